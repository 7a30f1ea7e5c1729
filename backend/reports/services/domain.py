"""
Canonical report shapes.

Every report request produces exactly one of ``SalesReport``,
``InventoryReport``, ``FinancialReport`` or ``CustomReport``. They are frozen
dataclasses built once by the assembler and handed unchanged to the JSON
serializers or to one of the export formatters.

``summary_metrics()`` is the single list of headline figures every exporter
renders, which is what keeps PDF, Excel and CSV totals identical.
"""
import enum
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import Optional, Tuple, Union

ZERO = Decimal("0")
CENT = Decimal("0.01")


def money(value) -> Decimal:
    """Quantize a monetary value to cents."""
    return Decimal(value).quantize(CENT)


class ReportKind(str, enum.Enum):
    SALES = "Sales"
    INVENTORY = "Inventory"
    FINANCIAL = "Financial"
    CUSTOM = "Custom"


class StockStatus(str, enum.Enum):
    NORMAL = "Normal"
    LOW = "Low"
    OUT_OF_STOCK = "OutOfStock"

    @property
    def label(self) -> str:
        return {
            StockStatus.NORMAL: "Normal",
            StockStatus.LOW: "Low Stock",
            StockStatus.OUT_OF_STOCK: "Out of Stock",
        }[self]


class MetricKind(str, enum.Enum):
    CURRENCY = "currency"
    INTEGER = "integer"
    PERCENT = "percent"
    DATE = "date"
    TEXT = "text"


@dataclass(frozen=True)
class SummaryMetric:
    label: str
    value: Union[Decimal, int, date, str]
    kind: MetricKind


# === LINE ITEMS ===


@dataclass(frozen=True)
class DailySales:
    date: date
    total_amount: Decimal
    order_count: int


@dataclass(frozen=True)
class ProductSales:
    product_id: int
    product_name: str
    sku: str
    quantity_sold: int
    revenue: Decimal


@dataclass(frozen=True)
class CustomerSales:
    customer_id: int
    customer_name: str
    order_count: int
    total_amount: Decimal


@dataclass(frozen=True)
class NamedAmount:
    """One entry of a keyed rollup (category name or payment method -> amount)."""

    name: str
    amount: Decimal


@dataclass(frozen=True)
class CategoryInventory:
    category_id: Optional[int]
    category_name: str
    product_count: int
    total_stock: int
    total_value: Decimal


@dataclass(frozen=True)
class ProductInventory:
    product_id: int
    product_name: str
    sku: str
    category_name: str
    current_stock: int
    min_stock: int
    unit_price: Decimal
    is_active: bool
    stock_value: Decimal
    status: StockStatus


@dataclass(frozen=True)
class MonthlyRevenue:
    year: int
    month: int
    revenue: Decimal
    transaction_count: int
    growth_percent: Decimal

    @property
    def label(self) -> str:
        return date(self.year, self.month, 1).strftime("%b %Y")


# === SUMMARIES ===


@dataclass(frozen=True)
class SalesSummary:
    total_sales: Decimal
    total_orders: int
    average_order_value: Decimal


@dataclass(frozen=True)
class InventorySummary:
    total_products: int
    active_products: int
    inactive_products: int
    low_stock_products: int
    out_of_stock_products: int
    total_inventory_value: Decimal


@dataclass(frozen=True)
class FinancialSummary:
    gross_revenue: Decimal
    total_discounts: Decimal
    net_revenue: Decimal
    total_transactions: int
    average_transaction_value: Decimal


@dataclass(frozen=True)
class CustomSummary:
    total_revenue: Decimal
    total_transactions: int
    average_transaction_value: Decimal
    unique_customers: int
    products_sold: int


# === REPORTS ===


@dataclass(frozen=True)
class SalesReport:
    start_date: date
    end_date: date
    generated_at: datetime
    summary: SalesSummary
    daily_sales: Tuple[DailySales, ...] = ()
    top_products: Tuple[ProductSales, ...] = ()
    top_customers: Tuple[CustomerSales, ...] = ()
    sales_by_category: Tuple[NamedAmount, ...] = ()
    sales_by_payment_method: Tuple[NamedAmount, ...] = ()
    title: str = "Sales Report"
    report_type: ReportKind = field(default=ReportKind.SALES, init=False)

    def summary_metrics(self) -> Tuple[SummaryMetric, ...]:
        return (
            SummaryMetric("Total Sales", self.summary.total_sales, MetricKind.CURRENCY),
            SummaryMetric("Total Orders", self.summary.total_orders, MetricKind.INTEGER),
            SummaryMetric("Average Order Value", self.summary.average_order_value, MetricKind.CURRENCY),
            SummaryMetric("Start Date", self.start_date, MetricKind.DATE),
            SummaryMetric("End Date", self.end_date, MetricKind.DATE),
        )

    @property
    def row_count(self) -> int:
        return self.summary.total_orders

    @property
    def headline_amount(self) -> Decimal:
        return self.summary.total_sales


@dataclass(frozen=True)
class InventoryReport:
    start_date: date
    end_date: date
    generated_at: datetime
    summary: InventorySummary
    product_details: Tuple[ProductInventory, ...] = ()
    categories: Tuple[CategoryInventory, ...] = ()
    low_stock_items: Tuple[ProductInventory, ...] = ()
    title: str = "Inventory Report"
    report_type: ReportKind = field(default=ReportKind.INVENTORY, init=False)

    def summary_metrics(self) -> Tuple[SummaryMetric, ...]:
        return (
            SummaryMetric("Total Products", self.summary.total_products, MetricKind.INTEGER),
            SummaryMetric("Active Products", self.summary.active_products, MetricKind.INTEGER),
            SummaryMetric("Inactive Products", self.summary.inactive_products, MetricKind.INTEGER),
            SummaryMetric("Low Stock Products", self.summary.low_stock_products, MetricKind.INTEGER),
            SummaryMetric("Out of Stock Products", self.summary.out_of_stock_products, MetricKind.INTEGER),
            SummaryMetric("Total Inventory Value", self.summary.total_inventory_value, MetricKind.CURRENCY),
        )

    @property
    def row_count(self) -> int:
        return self.summary.total_products

    @property
    def headline_amount(self) -> Decimal:
        return self.summary.total_inventory_value


@dataclass(frozen=True)
class FinancialReport:
    start_date: date
    end_date: date
    generated_at: datetime
    summary: FinancialSummary
    monthly_revenue: Tuple[MonthlyRevenue, ...] = ()
    revenue_by_category: Tuple[NamedAmount, ...] = ()
    revenue_by_payment_method: Tuple[NamedAmount, ...] = ()
    title: str = "Financial Report"
    report_type: ReportKind = field(default=ReportKind.FINANCIAL, init=False)

    def summary_metrics(self) -> Tuple[SummaryMetric, ...]:
        return (
            SummaryMetric("Gross Revenue", self.summary.gross_revenue, MetricKind.CURRENCY),
            SummaryMetric("Total Discounts", self.summary.total_discounts, MetricKind.CURRENCY),
            SummaryMetric("Net Revenue", self.summary.net_revenue, MetricKind.CURRENCY),
            SummaryMetric("Total Transactions", self.summary.total_transactions, MetricKind.INTEGER),
            SummaryMetric(
                "Average Transaction Value",
                self.summary.average_transaction_value,
                MetricKind.CURRENCY,
            ),
            SummaryMetric("Start Date", self.start_date, MetricKind.DATE),
            SummaryMetric("End Date", self.end_date, MetricKind.DATE),
        )

    @property
    def row_count(self) -> int:
        return self.summary.total_transactions

    @property
    def headline_amount(self) -> Decimal:
        return self.summary.gross_revenue


@dataclass(frozen=True)
class CustomReport:
    start_date: date
    end_date: date
    generated_at: datetime
    summary: CustomSummary
    title: str = "Custom Report"
    include_charts: bool = True
    daily_sales: Optional[Tuple[DailySales, ...]] = None
    top_products: Optional[Tuple[ProductSales, ...]] = None
    top_customers: Optional[Tuple[CustomerSales, ...]] = None
    sales_by_category: Optional[Tuple[NamedAmount, ...]] = None
    sales_overview: Optional[SalesReport] = None
    inventory_status: Optional[InventoryReport] = None
    financial_summary: Optional[FinancialReport] = None
    report_type: ReportKind = field(default=ReportKind.CUSTOM, init=False)

    def summary_metrics(self) -> Tuple[SummaryMetric, ...]:
        return (
            SummaryMetric("Total Revenue", self.summary.total_revenue, MetricKind.CURRENCY),
            SummaryMetric("Total Transactions", self.summary.total_transactions, MetricKind.INTEGER),
            SummaryMetric(
                "Average Transaction Value",
                self.summary.average_transaction_value,
                MetricKind.CURRENCY,
            ),
            SummaryMetric("Unique Customers", self.summary.unique_customers, MetricKind.INTEGER),
            SummaryMetric("Products Sold", self.summary.products_sold, MetricKind.INTEGER),
            SummaryMetric("Start Date", self.start_date, MetricKind.DATE),
            SummaryMetric("End Date", self.end_date, MetricKind.DATE),
        )

    @property
    def row_count(self) -> int:
        return self.summary.total_transactions

    @property
    def headline_amount(self) -> Decimal:
        return self.summary.total_revenue


Report = Union[SalesReport, InventoryReport, FinancialReport, CustomReport]
