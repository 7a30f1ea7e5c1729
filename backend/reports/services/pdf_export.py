"""
PDF rendering of canonical reports with reportlab.

Layout: title block, summary table, then one section per line-item family
(heading, chart, data table). A chart that fails to render is replaced by a
red note in its own section and the rest of the document is still built.
"""
import io
import logging
from typing import Callable, List, Optional, Sequence

from django.utils import timezone
from reportlab.lib import colors
from reportlab.lib.enums import TA_CENTER
from reportlab.lib.pagesizes import letter
from reportlab.lib.styles import getSampleStyleSheet, ParagraphStyle
from reportlab.lib.units import inch
from reportlab.lib.utils import ImageReader
from reportlab.platypus import Image, Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle
from xml.sax.saxutils import escape

from .charts import ChartRenderer
from .domain import (
    CustomReport,
    FinancialReport,
    InventoryReport,
    Report,
    SalesReport,
    StockStatus,
)
from .formatting import (
    format_currency,
    format_integer,
    format_metric,
    format_percent,
    period_text,
)

logger = logging.getLogger(__name__)

CHART_WIDTH = 6.5 * inch
PDF_TOP_ROWS = 10
PDF_DETAIL_ROWS = 15

HEADER_TABLE_STYLE = [
    ("BACKGROUND", (0, 0), (-1, 0), colors.grey),
    ("TEXTCOLOR", (0, 0), (-1, 0), colors.whitesmoke),
    ("ALIGN", (0, 0), (-1, -1), "CENTER"),
    ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
    ("FONTSIZE", (0, 0), (-1, 0), 11),
    ("FONTSIZE", (0, 1), (-1, -1), 9),
    ("BOTTOMPADDING", (0, 0), (-1, 0), 10),
    ("BACKGROUND", (0, 1), (-1, -1), colors.beige),
    ("GRID", (0, 0), (-1, -1), 1, colors.black),
]

STATUS_COLORS = {
    StockStatus.OUT_OF_STOCK: colors.lightcoral,
    StockStatus.LOW: colors.lightyellow,
}


class PdfExporter:
    """Renders any canonical report into PDF bytes."""

    def __init__(self, charts: Optional[ChartRenderer] = None, page_size=letter):
        self.charts = charts or ChartRenderer()
        self.page_size = page_size

    def export(self, report: Report) -> bytes:
        output = io.BytesIO()
        doc = SimpleDocTemplate(
            output,
            pagesize=self.page_size,
            leftMargin=0.75 * inch,
            rightMargin=0.75 * inch,
            topMargin=0.75 * inch,
            bottomMargin=0.75 * inch,
            title=report.title,
        )

        styles = self._styles()
        story = []
        story.append(Paragraph(escape(report.title), styles["CustomTitle"]))
        story.append(Paragraph(period_text(report.start_date, report.end_date), styles["Period"]))
        story.append(Spacer(1, 0.2 * inch))

        self._summary_table(story, styles, report)

        include_charts = getattr(report, "include_charts", True)
        if isinstance(report, SalesReport):
            self._sales_sections(story, styles, report, include_charts)
        elif isinstance(report, InventoryReport):
            self._inventory_sections(story, styles, report, include_charts)
        elif isinstance(report, FinancialReport):
            self._financial_sections(story, styles, report, include_charts)
        elif isinstance(report, CustomReport):
            self._custom_sections(story, styles, report)

        story.append(Spacer(1, 0.3 * inch))
        generated = timezone.localtime(report.generated_at) if timezone.is_aware(report.generated_at) else report.generated_at
        story.append(Paragraph(f"Generated on: {generated.strftime('%Y-%m-%d %H:%M:%S')}", styles["Footer"]))

        try:
            doc.build(story, onFirstPage=self._page_number, onLaterPages=self._page_number)
            return output.getvalue()
        finally:
            output.close()

    # === layout helpers ===

    @staticmethod
    def _styles():
        styles = getSampleStyleSheet()
        styles.add(
            ParagraphStyle(
                name="CustomTitle",
                parent=styles["Title"],
                alignment=TA_CENTER,
                fontSize=18,
                spaceAfter=12,
            )
        )
        styles.add(ParagraphStyle(name="Period", parent=styles["Normal"], alignment=TA_CENTER))
        styles.add(
            ParagraphStyle(name="ChartError", parent=styles["Normal"], textColor=colors.red, spaceAfter=6)
        )
        styles.add(
            ParagraphStyle(name="Footer", parent=styles["Normal"], fontSize=8, textColor=colors.grey)
        )
        return styles

    @staticmethod
    def _page_number(canvas, doc):
        canvas.saveState()
        canvas.setFont("Helvetica", 8)
        canvas.drawRightString(doc.pagesize[0] - 0.75 * inch, 0.5 * inch, f"Page {doc.page}")
        canvas.restoreState()

    @staticmethod
    def _table(rows: List[List[str]], col_widths: Sequence[float], extra_style=None) -> Table:
        table = Table(rows, colWidths=list(col_widths), repeatRows=1)
        table.setStyle(TableStyle(HEADER_TABLE_STYLE + list(extra_style or [])))
        return table

    def _summary_table(self, story, styles, report: Report):
        story.append(Paragraph("Summary", styles["Heading2"]))
        rows = [["Metric", "Value"]]
        rows += [[metric.label, format_metric(metric)] for metric in report.summary_metrics()]
        story.append(self._table(rows, [3 * inch, 2.5 * inch]))
        story.append(Spacer(1, 0.3 * inch))

    def _chart(self, story, styles, render: Callable[[], bytes], heading: str):
        """Render one chart into the story; failures become an inline note."""
        try:
            png = render()
            reader = ImageReader(io.BytesIO(png))
            width, height = reader.getSize()
            scaled_height = CHART_WIDTH * height / width
            story.append(Image(io.BytesIO(png), width=CHART_WIDTH, height=scaled_height))
            story.append(Spacer(1, 0.15 * inch))
        except Exception as e:
            logger.warning(f"Chart for section '{heading}' failed: {e}")
            story.append(Paragraph(escape(f"Chart unavailable: {e}"), styles["ChartError"]))

    def _section(
        self,
        story,
        styles,
        heading: str,
        rows: List[List[str]],
        col_widths: Sequence[float],
        render: Optional[Callable[[], bytes]] = None,
        extra_style=None,
    ):
        story.append(Paragraph(escape(heading), styles["Heading2"]))
        if render is not None:
            self._chart(story, styles, render, heading)
        if len(rows) > 1:
            story.append(self._table(rows, col_widths, extra_style))
        else:
            story.append(Paragraph("No data available for this period.", styles["Normal"]))
        story.append(Spacer(1, 0.3 * inch))

    # === section builders ===

    def _daily_sales_section(self, story, styles, daily, include_charts, heading="Daily Sales"):
        rows = [["Date", "Orders", "Sales"]]
        rows += [
            [entry.date.strftime("%b %d, %Y"), format_integer(entry.order_count), format_currency(entry.total_amount)]
            for entry in daily
        ]
        render = (lambda: self.charts.daily_sales_chart(daily)) if include_charts else None
        self._section(story, styles, heading, rows, [2.2 * inch, 1.5 * inch, 2 * inch], render)

    def _top_products_section(self, story, styles, products, include_charts, heading="Top Products"):
        shown = products[:PDF_TOP_ROWS]
        rows = [["Product", "SKU", "Qty Sold", "Revenue"]]
        rows += [
            [row.product_name, row.sku, format_integer(row.quantity_sold), format_currency(row.revenue)]
            for row in shown
        ]
        render = (lambda: self.charts.top_products_chart(shown)) if include_charts else None
        self._section(story, styles, heading, rows, [2.5 * inch, 1.2 * inch, 1 * inch, 1.3 * inch], render)

    def _top_customers_section(self, story, styles, customers, include_charts, heading="Top Customers"):
        shown = customers[:PDF_TOP_ROWS]
        rows = [["Customer", "Orders", "Total Spent"]]
        rows += [
            [row.customer_name, format_integer(row.order_count), format_currency(row.total_amount)]
            for row in shown
        ]
        render = (lambda: self.charts.top_customers_chart(shown)) if include_charts else None
        self._section(story, styles, heading, rows, [3 * inch, 1.2 * inch, 1.5 * inch], render)

    def _amounts_section(self, story, styles, amounts, include_charts, heading, label):
        total = sum(row.amount for row in amounts)
        rows = [[label, "Amount", "Share"]]
        for row in amounts:
            share = (row.amount / total * 100) if total else 0
            rows.append([row.name, format_currency(row.amount), format_percent(share)])
        render = (lambda: self.charts.category_pie_chart(amounts, heading)) if include_charts else None
        self._section(story, styles, heading, rows, [2.8 * inch, 1.6 * inch, 1.2 * inch], render)

    def _sales_sections(self, story, styles, report: SalesReport, include_charts=True):
        self._daily_sales_section(story, styles, report.daily_sales, include_charts)
        self._top_products_section(story, styles, report.top_products, include_charts)
        self._top_customers_section(story, styles, report.top_customers, include_charts)
        self._amounts_section(story, styles, report.sales_by_category, include_charts, "Sales by Category", "Category")
        self._amounts_section(
            story, styles, report.sales_by_payment_method, include_charts, "Sales by Payment Method", "Payment Method"
        )

    def _inventory_sections(self, story, styles, report: InventoryReport, include_charts=True):
        rows = [["Category", "Products", "Units", "Value"]]
        rows += [
            [row.category_name, format_integer(row.product_count), format_integer(row.total_stock),
             format_currency(row.total_value)]
            for row in report.categories
        ]
        render = (lambda: self.charts.inventory_category_chart(report.categories)) if include_charts else None
        self._section(
            story, styles, "Inventory by Category", rows,
            [2.5 * inch, 1 * inch, 1 * inch, 1.5 * inch], render,
        )

        self._product_table(story, styles, "Low Stock Items", report.low_stock_items)
        if report.product_details:
            self._product_table(story, styles, "Product Details", report.product_details[:PDF_DETAIL_ROWS])

    def _product_table(self, story, styles, heading, items):
        rows = [["Product", "SKU", "Stock", "Min", "Value", "Status"]]
        extra_style = []
        for index, item in enumerate(items, start=1):
            rows.append([
                item.product_name,
                item.sku,
                format_integer(item.current_stock),
                format_integer(item.min_stock),
                format_currency(item.stock_value),
                item.status.label,
            ])
            fill = STATUS_COLORS.get(item.status)
            if fill is not None:
                extra_style.append(("BACKGROUND", (5, index), (5, index), fill))
        self._section(
            story, styles, heading, rows,
            [2 * inch, 1 * inch, 0.7 * inch, 0.6 * inch, 1 * inch, 1 * inch],
            extra_style=extra_style,
        )

    def _financial_sections(self, story, styles, report: FinancialReport, include_charts=True):
        rows = [["Month", "Revenue", "Transactions", "Growth"]]
        rows += [
            [row.label, format_currency(row.revenue), format_integer(row.transaction_count),
             format_percent(row.growth_percent)]
            for row in report.monthly_revenue
        ]
        render = (lambda: self.charts.monthly_revenue_chart(report.monthly_revenue)) if include_charts else None
        self._section(
            story, styles, "Monthly Revenue", rows,
            [1.6 * inch, 1.6 * inch, 1.2 * inch, 1.2 * inch], render,
        )
        if include_charts:
            story.append(Paragraph("Month-over-Month Growth", styles["Heading2"]))
            self._chart(story, styles, lambda: self.charts.growth_chart(report.monthly_revenue), "Growth")
        self._amounts_section(
            story, styles, report.revenue_by_category, include_charts, "Revenue by Category", "Category"
        )
        self._amounts_section(
            story, styles, report.revenue_by_payment_method, include_charts,
            "Revenue by Payment Method", "Payment Method",
        )

    def _custom_sections(self, story, styles, report: CustomReport):
        charts = report.include_charts
        if report.daily_sales is not None:
            self._daily_sales_section(story, styles, report.daily_sales, charts)
        if report.top_products is not None:
            self._top_products_section(story, styles, report.top_products, charts)
        if report.top_customers is not None:
            self._top_customers_section(story, styles, report.top_customers, charts)
        if report.sales_by_category is not None:
            self._amounts_section(story, styles, report.sales_by_category, charts, "Sales by Category", "Category")

        for heading, nested, builder in (
            ("Sales Overview", report.sales_overview, self._sales_sections),
            ("Inventory Status", report.inventory_status, self._inventory_sections),
            ("Financial Summary", report.financial_summary, self._financial_sections),
        ):
            if nested is None:
                continue
            story.append(Paragraph(heading, styles["Heading1"]))
            story.append(Paragraph(period_text(nested.start_date, nested.end_date), styles["Normal"]))
            self._summary_table(story, styles, nested)
            builder(story, styles, nested, charts)
