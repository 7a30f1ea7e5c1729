"""
Aggregation engine.

Pure functions that turn the raw entity lists from the upstream gateway into
the line items and summaries of the canonical reports. Nothing in here does
I/O or touches Django.

Financial aggregates only ever count sales in the ``Completed`` status;
Pending and Cancelled sales are dropped before summing.
"""
from collections import OrderedDict
from dataclasses import dataclass
from datetime import date, timedelta
from decimal import Decimal, ROUND_HALF_UP
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Tuple, TypeVar

from .domain import (
    CENT,
    ZERO,
    CategoryInventory,
    CustomSummary,
    CustomerSales,
    DailySales,
    FinancialSummary,
    InventorySummary,
    MonthlyRevenue,
    NamedAmount,
    ProductInventory,
    ProductSales,
    SalesSummary,
    StockStatus,
    money,
)
from .entities import Category, Customer, Product, Sale, SaleStatus

DEFAULT_TOP_N = 10
UNCATEGORIZED = "Uncategorized"
UNKNOWN_PAYMENT_METHOD = "Unknown"
MISSING_SKU = "N/A"

T = TypeVar("T")


def product_fallback_name(product_id: int) -> str:
    return f"Product ID {product_id}"


def customer_fallback_name(customer_id: int) -> str:
    return f"Customer ID {customer_id}"


def with_status(sales: Iterable[Sale], status: str = SaleStatus.COMPLETED) -> List[Sale]:
    """Keep only sales in ``status`` (case-insensitive)."""
    wanted = (status or SaleStatus.COMPLETED).lower()
    return [sale for sale in sales if (sale.status or "").lower() == wanted]


def completed(sales: Iterable[Sale]) -> List[Sale]:
    return with_status(sales, SaleStatus.COMPLETED)


def in_range(sales: Iterable[Sale], start: date, end: date) -> List[Sale]:
    return [sale for sale in sales if start <= sale.sale_date <= end]


def rank(items: Sequence[T], key: Callable[[T], Decimal], top_n: Optional[int]) -> Tuple[T, ...]:
    """
    Sort descending by ``key`` and truncate to ``top_n``.

    ``sorted`` is stable, so items with equal keys keep their insertion
    order. Truncation happens last; ``top_n=None`` keeps everything.
    """
    ordered = sorted(items, key=key, reverse=True)
    if top_n is not None:
        ordered = ordered[: max(top_n, 0)]
    return tuple(ordered)


# === STOCK ===


def stock_status(current_stock: int, minimum_stock: int) -> StockStatus:
    if current_stock == 0:
        return StockStatus.OUT_OF_STOCK
    if 0 < current_stock <= minimum_stock:
        return StockStatus.LOW
    return StockStatus.NORMAL


def _category_names(categories: Iterable[Category]) -> Dict[int, str]:
    return {category.id: category.name for category in categories}


def _resolve_category_name(product: Product, names: Dict[int, str]) -> str:
    if product.category_id is not None and product.category_id in names:
        return names[product.category_id]
    return product.category_name or UNCATEGORIZED


def inventory_details(
    products: Iterable[Product], categories: Iterable[Category] = ()
) -> Tuple[ProductInventory, ...]:
    names = _category_names(categories)
    return tuple(
        ProductInventory(
            product_id=product.id,
            product_name=product.name or product_fallback_name(product.id),
            sku=product.sku or MISSING_SKU,
            category_name=_resolve_category_name(product, names),
            current_stock=product.stock,
            min_stock=product.min_stock,
            unit_price=money(product.price),
            is_active=product.is_active,
            stock_value=money(product.stock_value),
            status=stock_status(product.stock, product.min_stock),
        )
        for product in products
    )


def low_stock_items(details: Iterable[ProductInventory]) -> Tuple[ProductInventory, ...]:
    """Products at or below their minimum, lowest stock first."""
    flagged = [item for item in details if item.current_stock <= item.min_stock]
    return tuple(sorted(flagged, key=lambda item: item.current_stock))


def rollup_categories(
    products: Iterable[Product], categories: Iterable[Category]
) -> Tuple[CategoryInventory, ...]:
    """
    Stock and value per category.

    Every known category appears, even with no products. Products pointing
    at a category the catalog did not return are grouped under their own
    category name (or "Uncategorized") after the known ones, so the rollup
    always accounts for the whole inventory value.
    """
    products = list(products)
    rows: "OrderedDict[Tuple[Optional[int], str], List[Product]]" = OrderedDict()
    known: Dict[int, Tuple[Optional[int], str]] = {}
    for category in categories:
        known[category.id] = (category.id, category.name)
        rows[known[category.id]] = []
    for product in products:
        if product.category_id in known:
            key = known[product.category_id]
        else:
            key = (None, product.category_name or UNCATEGORIZED)
            rows.setdefault(key, [])
        rows[key].append(product)

    return tuple(
        CategoryInventory(
            category_id=category_id,
            category_name=name,
            product_count=len(members),
            total_stock=sum(p.stock for p in members),
            total_value=money(sum((p.stock_value for p in members), ZERO)),
        )
        for (category_id, name), members in rows.items()
    )


def summarize_inventory(products: Iterable[Product]) -> InventorySummary:
    products = list(products)
    statuses = [stock_status(p.stock, p.min_stock) for p in products]
    active = sum(1 for p in products if p.is_active)
    return InventorySummary(
        total_products=len(products),
        active_products=active,
        inactive_products=len(products) - active,
        low_stock_products=statuses.count(StockStatus.LOW),
        out_of_stock_products=statuses.count(StockStatus.OUT_OF_STOCK),
        total_inventory_value=money(sum((p.stock_value for p in products), ZERO)),
    )


# === SALES SERIES & RANKINGS ===


def build_daily_series(sales: Iterable[Sale], start: date, end: date) -> Tuple[DailySales, ...]:
    """
    One entry per calendar day in ``[start, end]``, zero-filled.

    Callers decide which sales count (the sales report passes completed
    sales only so the series adds up to the report total).
    """
    buckets: "OrderedDict[date, List[Sale]]" = OrderedDict(
        (start + timedelta(days=offset), []) for offset in range((end - start).days + 1)
    )
    for sale in sales:
        if sale.sale_date in buckets:
            buckets[sale.sale_date].append(sale)
    return tuple(
        DailySales(
            date=day,
            total_amount=money(sum((s.total_amount for s in day_sales), ZERO)),
            order_count=len(day_sales),
        )
        for day, day_sales in buckets.items()
    )


def rank_top_products(
    sales: Iterable[Sale],
    products: Iterable[Product],
    top_n: Optional[int] = DEFAULT_TOP_N,
) -> Tuple[ProductSales, ...]:
    """
    Group line items by product, sum quantity and net revenue, rank by revenue.

    Products the catalog does not know about are kept and labelled
    "Product ID <id>".
    """
    catalog = {product.id: product for product in products}
    quantities: "OrderedDict[int, int]" = OrderedDict()
    revenue: Dict[int, Decimal] = {}
    for sale in sales:
        for item in sale.items:
            quantities[item.product_id] = quantities.get(item.product_id, 0) + item.quantity
            revenue[item.product_id] = revenue.get(item.product_id, ZERO) + item.net_amount

    rows = []
    for product_id, quantity in quantities.items():
        product = catalog.get(product_id)
        rows.append(
            ProductSales(
                product_id=product_id,
                product_name=product.name if product and product.name else product_fallback_name(product_id),
                sku=product.sku if product and product.sku else MISSING_SKU,
                quantity_sold=quantity,
                revenue=money(revenue[product_id]),
            )
        )
    return rank(rows, key=lambda row: row.revenue, top_n=top_n)


def rank_top_customers(
    sales: Iterable[Sale],
    customers: Iterable[Customer],
    top_n: Optional[int] = DEFAULT_TOP_N,
) -> Tuple[CustomerSales, ...]:
    directory = {customer.id: customer for customer in customers}
    counts: "OrderedDict[int, int]" = OrderedDict()
    amounts: Dict[int, Decimal] = {}
    for sale in sales:
        counts[sale.customer_id] = counts.get(sale.customer_id, 0) + 1
        amounts[sale.customer_id] = amounts.get(sale.customer_id, ZERO) + sale.total_amount

    rows = []
    for customer_id, count in counts.items():
        customer = directory.get(customer_id)
        rows.append(
            CustomerSales(
                customer_id=customer_id,
                customer_name=customer.name if customer and customer.name else customer_fallback_name(customer_id),
                order_count=count,
                total_amount=money(amounts[customer_id]),
            )
        )
    return rank(rows, key=lambda row: row.total_amount, top_n=top_n)


# === ROLLUPS ===


def _named_amounts(totals: "OrderedDict[str, Decimal]") -> Tuple[NamedAmount, ...]:
    rows = [NamedAmount(name=name, amount=money(amount)) for name, amount in totals.items()]
    return rank(rows, key=lambda row: row.amount, top_n=None)


def revenue_by_category(
    sales: Iterable[Sale],
    products: Iterable[Product],
    categories: Iterable[Category] = (),
    status: str = SaleStatus.COMPLETED,
) -> Tuple[NamedAmount, ...]:
    """Net line-item revenue grouped by the product's category name."""
    names = _category_names(categories)
    catalog = {product.id: product for product in products}
    totals: "OrderedDict[str, Decimal]" = OrderedDict()
    for sale in with_status(sales, status):
        for item in sale.items:
            product = catalog.get(item.product_id)
            name = _resolve_category_name(product, names) if product else UNCATEGORIZED
            totals[name] = totals.get(name, ZERO) + item.net_amount
    return _named_amounts(totals)


def revenue_by_payment_method(
    sales: Iterable[Sale], status: str = SaleStatus.COMPLETED
) -> Tuple[NamedAmount, ...]:
    totals: "OrderedDict[str, Decimal]" = OrderedDict()
    for sale in with_status(sales, status):
        method = (sale.payment_method or "").strip() or UNKNOWN_PAYMENT_METHOD
        totals[method] = totals.get(method, ZERO) + sale.total_amount
    return _named_amounts(totals)


def growth_percent(current: Decimal, previous: Decimal) -> Decimal:
    if previous <= 0:
        return Decimal("0.00")
    return ((current - previous) / previous * 100).quantize(CENT, rounding=ROUND_HALF_UP)


def monthly_revenue(sales: Iterable[Sale], year: int) -> Tuple[MonthlyRevenue, ...]:
    """
    Revenue and transaction count for months 1-12 of ``year``.

    Growth is measured against the previous month of the same sequence;
    January (and any month after a zero-revenue month) reports 0.
    """
    revenue = {month: ZERO for month in range(1, 13)}
    counts = {month: 0 for month in range(1, 13)}
    for sale in completed(sales):
        if sale.date.year != year:
            continue
        revenue[sale.date.month] += sale.total_amount
        counts[sale.date.month] += 1

    rows = []
    previous = None
    for month in range(1, 13):
        current = money(revenue[month])
        rows.append(
            MonthlyRevenue(
                year=year,
                month=month,
                revenue=current,
                transaction_count=counts[month],
                growth_percent=growth_percent(current, previous) if previous is not None else Decimal("0.00"),
            )
        )
        previous = current
    return tuple(rows)


# === SUMMARIES ===


def _average(total: Decimal, count: int) -> Decimal:
    return money(total / count) if count else Decimal("0.00")


def summarize_sales(sales: Iterable[Sale]) -> SalesSummary:
    """Totals over completed sales."""
    done = completed(sales)
    total = money(sum((sale.total_amount for sale in done), ZERO))
    return SalesSummary(
        total_sales=total,
        total_orders=len(done),
        average_order_value=_average(total, len(done)),
    )


def summarize_financials(sales: Iterable[Sale]) -> FinancialSummary:
    done = completed(sales)
    gross = money(sum((sale.total_amount for sale in done), ZERO))
    discounts = money(
        sum((item.total_discount for sale in done for item in sale.items), ZERO)
    )
    return FinancialSummary(
        gross_revenue=gross,
        total_discounts=discounts,
        net_revenue=gross - discounts,
        total_transactions=len(done),
        average_transaction_value=_average(gross, len(done)),
    )


def summarize_custom(sales: Iterable[Sale]) -> CustomSummary:
    """Summary over an already filtered list of sales."""
    sales = list(sales)
    total = money(sum((sale.total_amount for sale in sales), ZERO))
    return CustomSummary(
        total_revenue=total,
        total_transactions=len(sales),
        average_transaction_value=_average(total, len(sales)),
        unique_customers=len({sale.customer_id for sale in sales}),
        products_sold=sum(item.quantity for sale in sales for item in sale.items),
    )


# === CUSTOM FILTERS ===


@dataclass(frozen=True)
class SalesFilter:
    customer_ids: Tuple[int, ...] = ()
    product_ids: Tuple[int, ...] = ()
    category_ids: Tuple[int, ...] = ()
    min_amount: Optional[Decimal] = None
    max_amount: Optional[Decimal] = None
    payment_method: str = ""
    status: Optional[str] = SaleStatus.COMPLETED


def filter_custom_sales(
    sales: Iterable[Sale], criteria: SalesFilter, products: Iterable[Product] = ()
) -> List[Sale]:
    """
    Apply the custom report filters.

    A sale matches the product (or category) filter when any of its line
    items does. Category membership is resolved through the product catalog.
    A ``status`` of None keeps sales in any status.
    """
    category_products = set()
    if criteria.category_ids:
        wanted = set(criteria.category_ids)
        category_products = {p.id for p in products if p.category_id in wanted}

    result = []
    candidates = list(sales) if criteria.status is None else with_status(sales, criteria.status)
    for sale in candidates:
        if criteria.customer_ids and sale.customer_id not in criteria.customer_ids:
            continue
        if criteria.min_amount is not None and sale.total_amount < criteria.min_amount:
            continue
        if criteria.max_amount is not None and sale.total_amount > criteria.max_amount:
            continue
        if criteria.payment_method and (sale.payment_method or "").lower() != criteria.payment_method.lower():
            continue
        item_ids = {item.product_id for item in sale.items}
        if criteria.product_ids and not item_ids & set(criteria.product_ids):
            continue
        if criteria.category_ids and not item_ids & category_products:
            continue
        result.append(sale)
    return result
