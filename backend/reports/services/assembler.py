"""
Report assembler.

Builds one canonical report per request: resolve the date range, fetch what
the report needs from the upstream gateway (concurrently, joined before any
aggregation), then run the aggregation engine. An empty upstream simply
yields empty/zero sections. Data that cannot be aggregated is surfaced as
``AggregationError``.
"""
import functools
import logging
from concurrent.futures import ThreadPoolExecutor, wait
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Any, Callable, Dict, List, Optional, Tuple

from django.conf import settings
from django.utils import timezone

from ..exceptions import AggregationError, ReportError
from . import aggregation as agg
from .base import CustomReportParameters, ReportParameters, resolve_date_range
from .domain import (
    CustomReport,
    FinancialReport,
    InventoryReport,
    MonthlyRevenue,
    NamedAmount,
    ProductInventory,
    ReportKind,
    SalesReport,
    ZERO,
    money,
)
from .entities import Category, Customer, Product, Sale, SaleStatus
from .upstream import UpstreamDataGateway

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DashboardStats:
    total_products: int
    active_products: int
    low_stock_products: int
    out_of_stock_products: int
    total_customers: int
    today_sales: Decimal
    month_sales: Decimal
    year_sales: Decimal
    pending_orders: int
    completed_orders: int


def aggregation_boundary(method: Callable) -> Callable:
    """Convert unexpected data-shape errors into ``AggregationError``."""

    @functools.wraps(method)
    def wrapper(*args, **kwargs):
        try:
            return method(*args, **kwargs)
        except ReportError:
            raise
        except (KeyError, TypeError, ValueError, AttributeError, ArithmeticError) as e:
            logger.error(f"Aggregation failed in {method.__name__}: {e}", exc_info=True)
            raise AggregationError(f"Could not aggregate upstream data: {e}") from e

    return wrapper


class ReportAssembler:
    """Orchestrates fetch + aggregation for each report type."""

    def __init__(self, gateway: Optional[UpstreamDataGateway] = None, parallel: Optional[bool] = None):
        self.gateway = gateway or UpstreamDataGateway()
        self.parallel = (
            parallel if parallel is not None else getattr(settings, "REPORT_PARALLEL_FETCH", True)
        )

    # --- fetching ---

    def _gather(self, **calls: Callable[[], List[Any]]) -> Dict[str, List[Any]]:
        """
        Run the fetches and wait for all of them.

        An empty result from one fetch never cancels the others; any
        exception is raised only after every fetch has finished.
        """
        if not self.parallel or len(calls) < 2:
            return {name: call() for name, call in calls.items()}

        with ThreadPoolExecutor(max_workers=len(calls)) as executor:
            futures = {name: executor.submit(call) for name, call in calls.items()}
            wait(futures.values())
        return {name: future.result() for name, future in futures.items()}

    def _sales_between(self, start: date, end: date) -> Callable[[], List[Sale]]:
        return lambda: self.gateway.fetch_sales(start, end)

    # --- selection ---

    @staticmethod
    def _select_sales(sales: List[Sale], params: ReportParameters, products: List[Product]) -> List[Sale]:
        if not params.has_selection:
            return sales
        criteria = agg.SalesFilter(
            customer_ids=params.selected_customers,
            product_ids=params.selected_products,
            category_ids=params.selected_categories,
            status=None,
        )
        return agg.filter_custom_sales(sales, criteria, products)

    @staticmethod
    def _select_products(products: List[Product], params: ReportParameters) -> List[Product]:
        if params.selected_categories:
            products = [p for p in products if p.category_id in params.selected_categories]
        if params.selected_products:
            products = [p for p in products if p.id in params.selected_products]
        return products

    # --- composition from already fetched data ---

    @staticmethod
    def _compose_sales(
        params: ReportParameters,
        start: date,
        end: date,
        sales: List[Sale],
        products: List[Product],
        customers: List[Customer],
        categories: List[Category],
    ) -> SalesReport:
        scoped = ReportAssembler._select_sales(agg.in_range(sales, start, end), params, products)
        done = agg.completed(scoped)
        return SalesReport(
            start_date=start,
            end_date=end,
            generated_at=timezone.now(),
            summary=agg.summarize_sales(scoped),
            daily_sales=agg.build_daily_series(done, start, end),
            top_products=agg.rank_top_products(done, products, params.top_count),
            top_customers=agg.rank_top_customers(done, customers, params.top_count),
            sales_by_category=agg.revenue_by_category(scoped, products, categories),
            sales_by_payment_method=agg.revenue_by_payment_method(scoped),
        )

    @staticmethod
    def _compose_inventory(
        params: ReportParameters,
        start: date,
        end: date,
        products: List[Product],
        categories: List[Category],
    ) -> InventoryReport:
        products = ReportAssembler._select_products(products, params)
        if params.selected_categories:
            categories = [c for c in categories if c.id in params.selected_categories]
        details = agg.inventory_details(products, categories)
        return InventoryReport(
            start_date=start,
            end_date=end,
            generated_at=timezone.now(),
            summary=agg.summarize_inventory(products),
            product_details=details if params.include_details else (),
            categories=agg.rollup_categories(products, categories),
            low_stock_items=agg.low_stock_items(details),
        )

    @staticmethod
    def _compose_financial(
        params: ReportParameters,
        start: date,
        end: date,
        sales: List[Sale],
        products: List[Product],
        categories: List[Category],
    ) -> FinancialReport:
        scoped = ReportAssembler._select_sales(agg.in_range(sales, start, end), params, products)
        return FinancialReport(
            start_date=start,
            end_date=end,
            generated_at=timezone.now(),
            summary=agg.summarize_financials(scoped),
            monthly_revenue=agg.monthly_revenue(scoped, end.year),
            revenue_by_category=agg.revenue_by_category(scoped, products, categories),
            revenue_by_payment_method=agg.revenue_by_payment_method(scoped),
        )

    # --- report builders ---

    @aggregation_boundary
    def build_sales_report(self, params: ReportParameters) -> SalesReport:
        start, end = resolve_date_range(ReportKind.SALES, params.start_date, params.end_date)
        data = self._gather(
            sales=self._sales_between(start, end),
            products=self.gateway.fetch_products,
            customers=self.gateway.fetch_customers,
            categories=self.gateway.fetch_categories,
        )
        report = self._compose_sales(params, start, end, **data)
        logger.info(
            f"Built sales report {start}..{end}: {report.summary.total_orders} orders, "
            f"{report.summary.total_sales} total"
        )
        return report

    @aggregation_boundary
    def build_inventory_report(self, params: ReportParameters) -> InventoryReport:
        start, end = resolve_date_range(ReportKind.INVENTORY, params.start_date, params.end_date)
        data = self._gather(
            products=self.gateway.fetch_products,
            categories=self.gateway.fetch_categories,
        )
        report = self._compose_inventory(params, start, end, **data)
        logger.info(
            f"Built inventory report: {report.summary.total_products} products, "
            f"{report.summary.low_stock_products} low stock"
        )
        return report

    @aggregation_boundary
    def build_financial_report(self, params: ReportParameters) -> FinancialReport:
        start, end = resolve_date_range(ReportKind.FINANCIAL, params.start_date, params.end_date)
        data = self._gather(
            sales=self._sales_between(start, end),
            products=self.gateway.fetch_products,
            categories=self.gateway.fetch_categories,
        )
        report = self._compose_financial(params, start, end, **data)
        logger.info(
            f"Built financial report {start}..{end}: gross {report.summary.gross_revenue}"
        )
        return report

    @aggregation_boundary
    def build_custom_report(self, params: CustomReportParameters) -> CustomReport:
        start, end = resolve_date_range(ReportKind.CUSTOM, params.start_date, params.end_date)
        data = self._gather(
            sales=self._sales_between(start, end),
            products=self.gateway.fetch_products,
            customers=self.gateway.fetch_customers,
            categories=self.gateway.fetch_categories,
        )
        sales, products = data["sales"], data["products"]
        customers, categories = data["customers"], data["categories"]

        criteria = agg.SalesFilter(
            customer_ids=params.selected_customers,
            product_ids=params.selected_products,
            category_ids=params.selected_categories,
            min_amount=params.min_sale_amount,
            max_amount=params.max_sale_amount,
            payment_method=params.payment_method,
            status=params.sales_status or SaleStatus.COMPLETED,
        )
        filtered = agg.filter_custom_sales(agg.in_range(sales, start, end), criteria, products)

        sections: Dict[str, Any] = {}
        if params.include_daily_sales:
            sections["daily_sales"] = agg.build_daily_series(filtered, start, end)
        if params.include_top_products:
            sections["top_products"] = agg.rank_top_products(filtered, products, params.top_products_count)
        if params.include_top_customers:
            sections["top_customers"] = agg.rank_top_customers(filtered, customers, params.top_customers_count)
        if params.include_sales_by_category:
            sections["sales_by_category"] = agg.revenue_by_category(
                filtered, products, categories, status=params.sales_status or SaleStatus.COMPLETED
            )
        if params.include_sales_overview:
            sections["sales_overview"] = self._compose_sales(
                params, start, end, sales, products, customers, categories
            )
        if params.include_inventory_status:
            sections["inventory_status"] = self._compose_inventory(params, end, end, products, categories)
        if params.include_financial_summary:
            sections["financial_summary"] = self._compose_financial(
                params, start, end, sales, products, categories
            )

        report = CustomReport(
            start_date=start,
            end_date=end,
            generated_at=timezone.now(),
            summary=agg.summarize_custom(filtered),
            title=params.report_title or "Custom Report",
            include_charts=params.include_charts,
            **sections,
        )
        logger.info(
            f"Built custom report '{report.title}' {start}..{end}: "
            f"{report.summary.total_transactions} matching sales"
        )
        return report

    # --- lookups ---

    @aggregation_boundary
    def daily_sales(self, start_date: Optional[date] = None, end_date: Optional[date] = None):
        start, end = resolve_date_range(ReportKind.SALES, start_date, end_date)
        sales = self.gateway.fetch_sales(start, end)
        return agg.build_daily_series(agg.completed(agg.in_range(sales, start, end)), start, end)

    @aggregation_boundary
    def top_products(self, start_date=None, end_date=None, top_count: int = agg.DEFAULT_TOP_N):
        start, end = resolve_date_range(ReportKind.SALES, start_date, end_date)
        data = self._gather(sales=self._sales_between(start, end), products=self.gateway.fetch_products)
        done = agg.completed(agg.in_range(data["sales"], start, end))
        return agg.rank_top_products(done, data["products"], top_count)

    @aggregation_boundary
    def top_customers(self, start_date=None, end_date=None, top_count: int = agg.DEFAULT_TOP_N):
        start, end = resolve_date_range(ReportKind.SALES, start_date, end_date)
        data = self._gather(sales=self._sales_between(start, end), customers=self.gateway.fetch_customers)
        done = agg.completed(agg.in_range(data["sales"], start, end))
        return agg.rank_top_customers(done, data["customers"], top_count)

    @aggregation_boundary
    def low_stock(self) -> Tuple[ProductInventory, ...]:
        data = self._gather(products=self.gateway.fetch_products, categories=self.gateway.fetch_categories)
        return agg.low_stock_items(agg.inventory_details(data["products"], data["categories"]))

    @aggregation_boundary
    def monthly_revenue(self, year: Optional[int] = None) -> Tuple[MonthlyRevenue, ...]:
        year = year or timezone.localdate().year
        sales = self.gateway.fetch_sales(date(year, 1, 1), date(year, 12, 31))
        return agg.monthly_revenue(sales, year)

    @aggregation_boundary
    def revenue_by_category(self, start_date=None, end_date=None) -> Tuple[NamedAmount, ...]:
        start, end = resolve_date_range(ReportKind.FINANCIAL, start_date, end_date)
        data = self._gather(
            sales=self._sales_between(start, end),
            products=self.gateway.fetch_products,
            categories=self.gateway.fetch_categories,
        )
        return agg.revenue_by_category(
            agg.in_range(data["sales"], start, end), data["products"], data["categories"]
        )

    @aggregation_boundary
    def dashboard_stats(self) -> DashboardStats:
        today = timezone.localdate()
        year_start = date(today.year, 1, 1)
        data = self._gather(
            sales=self._sales_between(year_start, today),
            products=self.gateway.fetch_products,
            customers=self.gateway.fetch_customers,
        )
        year_sales = agg.in_range(data["sales"], year_start, today)
        done = agg.completed(year_sales)
        inventory = agg.summarize_inventory(data["products"])

        def total(sales: List[Sale]) -> Decimal:
            return money(sum((sale.total_amount for sale in sales), ZERO))

        return DashboardStats(
            total_products=inventory.total_products,
            active_products=inventory.active_products,
            low_stock_products=inventory.low_stock_products,
            out_of_stock_products=inventory.out_of_stock_products,
            total_customers=len(data["customers"]),
            today_sales=total([s for s in done if s.sale_date == today]),
            month_sales=total([s for s in done if s.sale_date >= today.replace(day=1)]),
            year_sales=total(done),
            pending_orders=len(agg.with_status(year_sales, SaleStatus.PENDING)),
            completed_orders=len(done),
        )

