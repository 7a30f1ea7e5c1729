"""Display formatting shared by the export formatters."""
from datetime import date, datetime
from decimal import Decimal

from .domain import MetricKind, SummaryMetric

DATE_FORMAT = "%Y-%m-%d"
DISPLAY_DATE_FORMAT = "%B %d, %Y"


def format_currency(value) -> str:
    return f"${Decimal(value):,.2f}"


def format_integer(value) -> str:
    return f"{int(value):,}"


def format_percent(value) -> str:
    return f"{Decimal(value):.2f}%"


def format_date(value) -> str:
    if isinstance(value, datetime):
        value = value.date()
    if isinstance(value, date):
        return value.strftime(DATE_FORMAT)
    return str(value)


def format_metric(metric: SummaryMetric) -> str:
    """Human readable value of a summary metric (PDF tables)."""
    if metric.kind == MetricKind.CURRENCY:
        return format_currency(metric.value)
    if metric.kind == MetricKind.INTEGER:
        return format_integer(metric.value)
    if metric.kind == MetricKind.PERCENT:
        return format_percent(metric.value)
    if metric.kind == MetricKind.DATE:
        return format_date(metric.value)
    return str(metric.value)


def plain_metric(metric: SummaryMetric) -> str:
    """Machine readable value of a summary metric (CSV)."""
    if metric.kind in (MetricKind.CURRENCY, MetricKind.PERCENT):
        return f"{Decimal(metric.value):.2f}"
    if metric.kind == MetricKind.INTEGER:
        return str(int(metric.value))
    if metric.kind == MetricKind.DATE:
        return format_date(metric.value)
    return str(metric.value)


def period_text(start: date, end: date) -> str:
    if start == end:
        return f"As of {start.strftime(DISPLAY_DATE_FORMAT)}"
    return f"Period: {start.strftime(DISPLAY_DATE_FORMAT)} to {end.strftime(DISPLAY_DATE_FORMAT)}"
