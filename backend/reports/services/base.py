"""
Shared helpers for report services: request parameters and date ranges.
"""
import hashlib
import json
from dataclasses import dataclass, asdict
from datetime import date, timedelta
from decimal import Decimal
from typing import Any, Dict, Optional, Tuple

from django.conf import settings
from django.utils import timezone

from .domain import ReportKind
from .entities import SaleStatus

TRAILING_DAYS = 30


def default_top_count() -> int:
    return getattr(settings, "REPORT_DEFAULT_TOP_COUNT", 10)


@dataclass(frozen=True)
class ReportParameters:
    """Parameters shared by every report type."""

    start_date: Optional[date] = None
    end_date: Optional[date] = None
    include_details: bool = True
    selected_categories: Tuple[int, ...] = ()
    selected_products: Tuple[int, ...] = ()
    selected_customers: Tuple[int, ...] = ()
    top_count: int = 10

    @property
    def has_selection(self) -> bool:
        return bool(self.selected_categories or self.selected_products or self.selected_customers)

    def to_json(self) -> Dict[str, Any]:
        """JSON-safe representation stored on the report history record."""
        return json.loads(json.dumps(asdict(self), default=str))

    def fingerprint(self) -> str:
        param_str = json.dumps(self.to_json(), sort_keys=True)
        return hashlib.md5(param_str.encode()).hexdigest()


@dataclass(frozen=True)
class CustomReportParameters(ReportParameters):
    report_title: str = "Custom Report"
    include_daily_sales: bool = True
    include_top_products: bool = True
    include_top_customers: bool = True
    include_sales_by_category: bool = True
    include_sales_overview: bool = False
    include_inventory_status: bool = False
    include_financial_summary: bool = False
    include_charts: bool = True
    top_products_count: int = 10
    top_customers_count: int = 10
    min_sale_amount: Optional[Decimal] = None
    max_sale_amount: Optional[Decimal] = None
    payment_method: str = ""
    sales_status: str = SaleStatus.COMPLETED


def resolve_date_range(
    kind: ReportKind,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    today: Optional[date] = None,
) -> Tuple[date, date]:
    """
    Fill in missing dates for ``kind``.

    Sales and custom reports default to the trailing 30 days, financial
    reports to the current year so far, and inventory is a snapshot of
    today. Explicit dates are returned unchanged.
    """
    today = today or timezone.localdate()
    if kind == ReportKind.INVENTORY:
        end = end_date or today
        return start_date or end, end
    if kind == ReportKind.FINANCIAL:
        end = end_date or today
        return start_date or date(end.year, 1, 1), end
    end = end_date or today
    return start_date or end - timedelta(days=TRAILING_DAYS), end
