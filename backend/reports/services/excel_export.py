"""
Excel rendering of canonical reports with openpyxl.

One worksheet per logical section. Numbers are written as numbers with an
explicit number format so the workbook totals match the report object
exactly. Each report type gets at least one native Excel chart; the summary
sheet also carries the rendered PNG chart shared with the PDF export.
"""
import io
import logging
from typing import Callable, Iterable, Optional, Sequence, Tuple

from openpyxl import Workbook
from openpyxl.chart import BarChart, LineChart, PieChart, Reference
from openpyxl.drawing.image import Image as XLImage
from openpyxl.styles import Alignment, Font, PatternFill
from openpyxl.utils import get_column_letter

from ..exceptions import RenderError
from .charts import ChartRenderer
from .domain import (
    CustomReport,
    FinancialReport,
    InventoryReport,
    MetricKind,
    NamedAmount,
    ProductInventory,
    Report,
    SalesReport,
    StockStatus,
)

logger = logging.getLogger(__name__)

CURRENCY_FORMAT = '"$"#,##0.00'
INTEGER_FORMAT = "#,##0"
PERCENT_FORMAT = '0.00"%"'
DATE_FORMAT = "yyyy-mm-dd"

HEADER_FONT = Font(bold=True, color="FFFFFF")
HEADER_FILL = PatternFill(start_color="366092", end_color="366092", fill_type="solid")
HEADER_ALIGNMENT = Alignment(horizontal="center", vertical="center")
TITLE_FONT = Font(bold=True, size=14)
CHART_ERROR_FONT = Font(italic=True, color="C00000")

STATUS_FILLS = {
    StockStatus.OUT_OF_STOCK: PatternFill(start_color="F08080", end_color="F08080", fill_type="solid"),
    StockStatus.LOW: PatternFill(start_color="FFFFE0", end_color="FFFFE0", fill_type="solid"),
}

METRIC_FORMATS = {
    MetricKind.CURRENCY: CURRENCY_FORMAT,
    MetricKind.INTEGER: INTEGER_FORMAT,
    MetricKind.PERCENT: PERCENT_FORMAT,
    MetricKind.DATE: DATE_FORMAT,
}

# (header, number format or None)
Column = Tuple[str, Optional[str]]


class ExcelExporter:
    """Renders any canonical report into an .xlsx workbook."""

    def __init__(self, charts: Optional[ChartRenderer] = None):
        self.charts = charts or ChartRenderer()

    def export(self, report: Report) -> bytes:
        try:
            wb = Workbook()
            summary_ws = wb.active
            if isinstance(report, SalesReport):
                self._sales_workbook(wb, summary_ws, report)
            elif isinstance(report, InventoryReport):
                self._inventory_workbook(wb, summary_ws, report)
            elif isinstance(report, FinancialReport):
                self._financial_workbook(wb, summary_ws, report)
            elif isinstance(report, CustomReport):
                self._custom_workbook(wb, summary_ws, report)
            else:
                raise RenderError(f"Unsupported report type: {type(report).__name__}", "excel")

            for ws in wb.worksheets:
                self._autosize(ws)

            output = io.BytesIO()
            wb.save(output)
            return output.getvalue()
        except RenderError:
            raise
        except Exception as e:
            logger.error(f"Excel export failed for {report.report_type.value}: {e}")
            raise RenderError(f"Excel export failed: {e}", "excel") from e

    # === generic sheet helpers ===

    @staticmethod
    def _autosize(ws):
        for column in ws.columns:
            max_length = 0
            column_letter = get_column_letter(column[0].column)
            for cell in column:
                if cell.value is not None and len(str(cell.value)) > max_length:
                    max_length = len(str(cell.value))
            ws.column_dimensions[column_letter].width = min(max_length + 2, 50)

    @staticmethod
    def _write_header(ws, row: int, headers: Sequence[str]):
        for col, header in enumerate(headers, 1):
            cell = ws.cell(row=row, column=col, value=header)
            cell.font = HEADER_FONT
            cell.fill = HEADER_FILL
            cell.alignment = HEADER_ALIGNMENT

    def _write_table(self, ws, columns: Sequence[Column], rows: Iterable[Sequence], start_row: int = 1) -> int:
        """Write a header plus rows; returns the last row written."""
        self._write_header(ws, start_row, [header for header, _ in columns])
        row_index = start_row
        for row_index, values in enumerate(rows, start=start_row + 1):
            for col, (value, (_, number_format)) in enumerate(zip(values, columns), 1):
                cell = ws.cell(row=row_index, column=col, value=value)
                if number_format:
                    cell.number_format = number_format
        return row_index

    def _summary_sheet(self, ws, report: Report, title: str, chart: Optional[Callable[[], bytes]] = None):
        ws.title = title
        ws["A1"] = report.title
        ws["A1"].font = TITLE_FONT
        ws["A2"] = "Generated"
        ws["B2"] = report.generated_at.replace(tzinfo=None)
        ws["B2"].number_format = "yyyy-mm-dd hh:mm"

        self._write_header(ws, 4, ["Metric", "Value"])
        row = 4
        for row, metric in enumerate(report.summary_metrics(), start=5):
            ws.cell(row=row, column=1, value=metric.label)
            cell = ws.cell(row=row, column=2, value=metric.value)
            if metric.kind in METRIC_FORMATS:
                cell.number_format = METRIC_FORMATS[metric.kind]

        if chart is not None:
            self._chart_image(ws, chart, "D4")
        return row

    @staticmethod
    def _chart_image(ws, render: Callable[[], bytes], anchor: str):
        """Embed a rendered chart; a failed render leaves a visible note at ``anchor``."""
        try:
            png = render()
        except Exception as e:
            logger.warning(f"Chart image for workbook unavailable: {e}")
            ws[anchor] = f"Chart unavailable: {e}"
            ws[anchor].font = CHART_ERROR_FONT
            return
        image = XLImage(io.BytesIO(png))
        image.width, image.height = 640, 320
        ws.add_image(image, anchor)

    # === native charts ===

    @staticmethod
    def _line_chart(ws, title: str, data_col: int, last_row: int, anchor: str, y_title: str = "Amount"):
        chart = LineChart()
        chart.title = title
        chart.y_axis.title = y_title
        chart.height, chart.width = 8, 16
        data = Reference(ws, min_col=data_col, min_row=1, max_row=last_row)
        categories = Reference(ws, min_col=1, min_row=2, max_row=last_row)
        chart.add_data(data, titles_from_data=True)
        chart.set_categories(categories)
        ws.add_chart(chart, anchor)

    @staticmethod
    def _bar_chart(ws, title: str, data_col: int, last_row: int, anchor: str):
        chart = BarChart()
        chart.type = "col"
        chart.title = title
        chart.height, chart.width = 8, 16
        data = Reference(ws, min_col=data_col, min_row=1, max_row=last_row)
        categories = Reference(ws, min_col=1, min_row=2, max_row=last_row)
        chart.add_data(data, titles_from_data=True)
        chart.set_categories(categories)
        ws.add_chart(chart, anchor)

    @staticmethod
    def _pie_chart(ws, title: str, last_row: int, anchor: str):
        chart = PieChart()
        chart.title = title
        data = Reference(ws, min_col=2, min_row=1, max_row=last_row)
        categories = Reference(ws, min_col=1, min_row=2, max_row=last_row)
        chart.add_data(data, titles_from_data=True)
        chart.set_categories(categories)
        ws.add_chart(chart, anchor)

    @staticmethod
    def _summary_chart(ws, report: Report):
        """Bar chart over the numeric summary rows (header on row 4)."""
        numeric = [m for m in report.summary_metrics() if m.kind != MetricKind.DATE]
        if not numeric:
            return
        chart = BarChart()
        chart.type = "bar"
        chart.title = "Summary"
        chart.height, chart.width = 8, 16
        last_row = 4 + len(numeric)
        chart.add_data(Reference(ws, min_col=2, min_row=4, max_row=last_row), titles_from_data=True)
        chart.set_categories(Reference(ws, min_col=1, min_row=5, max_row=last_row))
        ws.add_chart(chart, "D22")

    # === shared sections ===

    def _daily_sheet(self, wb, daily, title="Daily Sales"):
        ws = wb.create_sheet(title)
        last = self._write_table(
            ws,
            [("Date", DATE_FORMAT), ("Orders", INTEGER_FORMAT), ("Sales", CURRENCY_FORMAT)],
            ((entry.date, entry.order_count, entry.total_amount) for entry in daily),
        )
        if last > 1:
            self._line_chart(ws, "Daily Sales Trend", 3, last, "E2", "Sales")
        return ws

    def _top_products_sheet(self, wb, products, title="Top Products"):
        ws = wb.create_sheet(title)
        last = self._write_table(
            ws,
            [("Product", None), ("SKU", None), ("Quantity Sold", INTEGER_FORMAT), ("Revenue", CURRENCY_FORMAT)],
            ((row.product_name, row.sku, row.quantity_sold, row.revenue) for row in products),
        )
        if last > 1:
            self._bar_chart(ws, "Top Products by Revenue", 4, last, "F2")
        return ws

    def _top_customers_sheet(self, wb, customers, title="Top Customers"):
        ws = wb.create_sheet(title)
        self._write_table(
            ws,
            [("Customer", None), ("Orders", INTEGER_FORMAT), ("Total Spent", CURRENCY_FORMAT)],
            ((row.customer_name, row.order_count, row.total_amount) for row in customers),
        )
        return ws

    def _amounts_sheet(self, wb, amounts: Sequence[NamedAmount], title: str, label: str):
        ws = wb.create_sheet(title)
        total = sum(row.amount for row in amounts)
        last = self._write_table(
            ws,
            [(label, None), ("Amount", CURRENCY_FORMAT), ("Share", PERCENT_FORMAT)],
            (
                (row.name, row.amount, round(row.amount / total * 100, 2) if total else 0)
                for row in amounts
            ),
        )
        if last > 1:
            self._pie_chart(ws, title, last, "E2")
        return ws

    def _product_sheet(self, wb, title: str, items: Sequence[ProductInventory]):
        ws = wb.create_sheet(title)
        columns = [
            ("Product", None),
            ("SKU", None),
            ("Category", None),
            ("Current Stock", INTEGER_FORMAT),
            ("Min Stock", INTEGER_FORMAT),
            ("Unit Price", CURRENCY_FORMAT),
            ("Stock Value", CURRENCY_FORMAT),
            ("Status", None),
        ]
        self._write_table(
            ws,
            columns,
            (
                (item.product_name, item.sku, item.category_name, item.current_stock, item.min_stock,
                 item.unit_price, item.stock_value, item.status.label)
                for item in items
            ),
        )
        status_col = len(columns)
        for row_index, item in enumerate(items, start=2):
            fill = STATUS_FILLS.get(item.status)
            if fill is not None:
                ws.cell(row=row_index, column=status_col).fill = fill
        return ws

    # === per report type ===

    def _sales_workbook(self, wb, ws, report: SalesReport, sheet_prefix: str = ""):
        chart = lambda: self.charts.daily_sales_chart(report.daily_sales)
        self._summary_sheet(ws, report, f"{sheet_prefix}Sales Summary", chart)
        self._sales_detail_sheets(wb, report, sheet_prefix)

    def _sales_detail_sheets(self, wb, report: SalesReport, sheet_prefix: str = ""):
        self._daily_sheet(wb, report.daily_sales, f"{sheet_prefix}Daily Sales")
        self._top_products_sheet(wb, report.top_products, f"{sheet_prefix}Top Products")
        self._top_customers_sheet(wb, report.top_customers, f"{sheet_prefix}Top Customers")
        self._amounts_sheet(wb, report.sales_by_category, f"{sheet_prefix}Sales by Category", "Category")

    def _inventory_workbook(self, wb, ws, report: InventoryReport):
        chart = lambda: self.charts.inventory_category_chart(report.categories)
        self._summary_sheet(ws, report, "Summary", chart)
        self._summary_chart(ws, report)
        self._inventory_detail_sheets(wb, report)

    def _inventory_detail_sheets(self, wb, report: InventoryReport, sheet_prefix: str = ""):
        if report.product_details:
            self._product_sheet(wb, f"{sheet_prefix}Product Details", report.product_details)

        ws = wb.create_sheet(f"{sheet_prefix}By Category")
        last = self._write_table(
            ws,
            [("Category", None), ("Products", INTEGER_FORMAT), ("Units in Stock", INTEGER_FORMAT),
             ("Stock Value", CURRENCY_FORMAT)],
            ((row.category_name, row.product_count, row.total_stock, row.total_value) for row in report.categories),
        )
        if last > 1:
            self._bar_chart(ws, "Stock Value by Category", 4, last, "F2")

        self._product_sheet(wb, f"{sheet_prefix}Low Stock Items", report.low_stock_items)

    def _financial_workbook(self, wb, ws, report: FinancialReport):
        chart = lambda: self.charts.monthly_revenue_chart(report.monthly_revenue)
        self._summary_sheet(ws, report, "Financial Summary", chart)
        self._financial_detail_sheets(wb, report)

    def _financial_detail_sheets(self, wb, report: FinancialReport, sheet_prefix: str = ""):
        ws = wb.create_sheet(f"{sheet_prefix}Monthly Revenue")
        last = self._write_table(
            ws,
            [("Month", None), ("Revenue", CURRENCY_FORMAT), ("Transactions", INTEGER_FORMAT),
             ("Growth", PERCENT_FORMAT)],
            (
                (row.label, row.revenue, row.transaction_count, row.growth_percent)
                for row in report.monthly_revenue
            ),
        )
        if last > 1:
            self._line_chart(ws, "Monthly Revenue", 2, last, "F2", "Revenue")
            self._bar_chart(ws, "Month-over-Month Growth", 4, last, "F20")

        self._amounts_sheet(wb, report.revenue_by_category, f"{sheet_prefix}Revenue by Category", "Category")

    def _custom_workbook(self, wb, ws, report: CustomReport):
        chart = None
        if report.include_charts and report.daily_sales is not None:
            chart = lambda: self.charts.daily_sales_chart(report.daily_sales)
        self._summary_sheet(ws, report, "Executive Summary", chart)

        if report.daily_sales is not None:
            self._daily_sheet(wb, report.daily_sales)
        if report.top_products is not None:
            self._top_products_sheet(wb, report.top_products)
        if report.top_customers is not None:
            self._top_customers_sheet(wb, report.top_customers)
        if report.sales_by_category is not None:
            self._amounts_sheet(wb, report.sales_by_category, "Sales by Category", "Category")

        if report.sales_overview is not None:
            overview = wb.create_sheet("Sales Overview")
            self._summary_sheet(overview, report.sales_overview, "Sales Overview")
            self._sales_detail_sheets(wb, report.sales_overview, "Overview ")
        if report.inventory_status is not None:
            inventory = wb.create_sheet("Inventory Status")
            self._summary_sheet(inventory, report.inventory_status, "Inventory Status")
            self._inventory_detail_sheets(wb, report.inventory_status, "Inv ")
        if report.financial_summary is not None:
            financial = wb.create_sheet("Financial Summary")
            self._summary_sheet(financial, report.financial_summary, "Financial Summary")
            self._financial_detail_sheets(wb, report.financial_summary, "Fin ")

        self._summary_chart(ws, report)
