"""
Aggregation Engine Tests

Pure-function tests for the aggregation engine. No database, no HTTP.

Test Categories:
1. Stock Status
2. Daily Series
3. Top-N Rankings
4. Inventory Rollups
5. Revenue Rollups & Monthly Growth
6. Summaries
7. Custom Sales Filters
"""
from datetime import date, datetime
from decimal import Decimal

import pytest

from reports.services import aggregation as agg
from reports.services.domain import StockStatus
from reports.services.entities import Product, Sale, SaleItem, SaleStatus


def completed_sale(sale_id, customer_id, when, total, items=(), payment_method="Card"):
    return Sale(
        id=sale_id,
        customer_id=customer_id,
        date=when,
        total_amount=Decimal(total),
        status=SaleStatus.COMPLETED,
        items=list(items),
        payment_method=payment_method,
    )


@pytest.fixture
def ten_product_sales():
    """Ten products, one sale each, revenues 10..19 in shuffled order."""
    products = [Product(id=i, name=f"Product {i}", price=Decimal("1.00"), stock=1) for i in range(1, 11)]
    when = datetime(2025, 6, 1, 9, 0)
    sales = [
        completed_sale(i, 1, when, str(10 + (i * 7) % 10),
                       [SaleItem(product_id=i, quantity=1, unit_price=Decimal(10 + (i * 7) % 10))])
        for i in range(1, 11)
    ]
    return sales, products


# ============================================================================
# STOCK STATUS TESTS
# ============================================================================

class TestStockStatus:
    """Stock status is a pure function of (current, minimum)."""

    @pytest.mark.parametrize(
        "current, minimum, expected",
        [
            (0, 10, StockStatus.OUT_OF_STOCK),
            (0, 0, StockStatus.OUT_OF_STOCK),
            (1, 10, StockStatus.LOW),
            (10, 10, StockStatus.LOW),
            (11, 10, StockStatus.NORMAL),
            (5, 0, StockStatus.NORMAL),
        ],
    )
    def test_status_thresholds(self, current, minimum, expected):
        assert agg.stock_status(current, minimum) == expected

    def test_negative_stock_is_not_low_or_out(self):
        """Negative counts fall outside both flagged bands"""
        assert agg.stock_status(-3, 10) == StockStatus.NORMAL

    def test_status_labels(self):
        assert StockStatus.LOW.label == "Low Stock"
        assert StockStatus.OUT_OF_STOCK.label == "Out of Stock"


# ============================================================================
# DAILY SERIES TESTS
# ============================================================================

class TestDailySeries:
    """One entry per calendar day, zero-filled."""

    def test_covers_every_day_inclusive(self, sales):
        series = agg.build_daily_series(agg.completed(sales), date(2025, 6, 1), date(2025, 6, 30))

        assert len(series) == 30
        assert series[0].date == date(2025, 6, 1)
        assert series[-1].date == date(2025, 6, 30)
        assert [entry.date for entry in series] == sorted(entry.date for entry in series)

    def test_groups_sales_by_day(self, sales):
        series = agg.build_daily_series(agg.completed(sales), date(2025, 6, 1), date(2025, 6, 30))
        by_day = {entry.date: entry for entry in series}

        assert by_day[date(2025, 6, 1)].total_amount == Decimal("43.00")
        assert by_day[date(2025, 6, 1)].order_count == 2
        assert by_day[date(2025, 6, 2)].total_amount == Decimal("0.00")
        assert by_day[date(2025, 6, 2)].order_count == 0

    def test_series_sums_to_completed_total(self, sales):
        done = agg.completed(sales)
        series = agg.build_daily_series(done, date(2025, 6, 1), date(2025, 6, 30))

        assert sum(entry.total_amount for entry in series) == agg.summarize_sales(sales).total_sales

    def test_single_day_range(self):
        series = agg.build_daily_series([], date(2025, 6, 5), date(2025, 6, 5))
        assert len(series) == 1
        assert series[0].total_amount == Decimal("0.00")

    def test_sales_outside_range_are_ignored(self, sales):
        series = agg.build_daily_series(sales, date(2025, 6, 2), date(2025, 6, 3))
        assert all(entry.order_count == 0 for entry in series)

    def test_series_ending_on_last_representable_day(self):
        series = agg.build_daily_series([], date(9999, 12, 29), date.max)

        assert [entry.date for entry in series] == [date(9999, 12, 29), date(9999, 12, 30), date(9999, 12, 31)]
        assert all(entry.total_amount == Decimal("0.00") for entry in series)


# ============================================================================
# TOP-N RANKING TESTS
# ============================================================================

class TestTopProducts:
    """Group, sum, sort descending, truncate last."""

    def test_ranked_by_revenue(self, sales, products):
        top = agg.rank_top_products(agg.completed(sales), products)

        assert [row.product_name for row in top] == ["Product ID 77", "Coffee", "Tea", "Chips"]
        assert [row.revenue for row in top] == [
            Decimal("30.00"), Decimal("25.00"), Decimal("18.00"), Decimal("12.50")
        ]

    def test_unknown_product_fallback(self, sales, products):
        top = agg.rank_top_products(agg.completed(sales), products)
        unknown = top[0]

        assert unknown.product_id == 77
        assert unknown.sku == "N/A"
        assert unknown.quantity_sold == 3

    def test_revenue_is_net_of_line_discounts(self, sales, products):
        top = agg.rank_top_products(agg.completed(sales), products)
        tea = next(row for row in top if row.product_id == 2)
        assert tea.revenue == Decimal("18.00")

    def test_truncation_keeps_highest(self, sales, products):
        top = agg.rank_top_products(agg.completed(sales), products, top_n=2)
        assert [row.product_id for row in top] == [77, 1]

    def test_top_three_of_ten(self, ten_product_sales):
        sales, products = ten_product_sales
        full = agg.rank_top_products(sales, products, top_n=None)

        top = agg.rank_top_products(sales, products, top_n=3)

        assert len(full) == 10
        assert top == full[:3]
        assert [row.product_id for row in top] == [7, 4, 1]

    def test_ranking_is_repeatable(self, ten_product_sales):
        sales, products = ten_product_sales

        first = agg.rank_top_products(sales, products)
        second = agg.rank_top_products(sales, products)

        assert [row.product_id for row in first] == [row.product_id for row in second]
        assert first == second

    def test_ties_keep_first_seen_order(self, products):
        when = datetime(2025, 6, 1, 9, 0)
        tied = [
            completed_sale(1, 1, when, "10.00", [SaleItem(product_id=2, quantity=1, unit_price=Decimal("10"))]),
            completed_sale(2, 1, when, "10.00", [SaleItem(product_id=1, quantity=1, unit_price=Decimal("10"))]),
        ]
        top = agg.rank_top_products(tied, products)
        assert [row.product_id for row in top] == [2, 1]

    def test_empty_input(self, products):
        assert agg.rank_top_products([], products) == ()


class TestTopCustomers:
    def test_ranked_by_total(self, sales, customers):
        top = agg.rank_top_customers(agg.completed(sales), customers)

        assert [row.customer_name for row in top] == ["Alice Johnson", "Customer ID 3", "Bob Smith"]
        assert top[0].order_count == 2
        assert top[0].total_amount == Decimal("37.50")

    def test_truncated_to_top_n(self, sales, customers):
        assert len(agg.rank_top_customers(agg.completed(sales), customers, top_n=1)) == 1


# ============================================================================
# INVENTORY ROLLUP TESTS
# ============================================================================

class TestInventoryRollups:
    """Category rollups and low stock listings."""

    def test_every_category_appears(self, products, categories):
        rollup = agg.rollup_categories(products, categories)
        names = [row.category_name for row in rollup]

        assert names == ["Beverages", "Snacks", "Frozen", "Bakery"]
        frozen = rollup[2]
        assert frozen.product_count == 0
        assert frozen.total_stock == 0
        assert frozen.total_value == Decimal("0.00")

    def test_unknown_category_grouped_by_own_name(self, products, categories):
        bakery = agg.rollup_categories(products, categories)[-1]
        assert bakery.category_id is None
        assert bakery.product_count == 1
        assert bakery.total_value == Decimal("60.00")

    def test_rollup_accounts_for_full_inventory_value(self, products, categories):
        rollup = agg.rollup_categories(products, categories)
        summary = agg.summarize_inventory(products)
        assert sum(row.total_value for row in rollup) == summary.total_inventory_value

    def test_product_without_category_is_uncategorized(self):
        loose = [Product(id=9, name="Loose", price=Decimal("1.00"), stock=3)]
        rollup = agg.rollup_categories(loose, [])
        assert rollup[0].category_name == "Uncategorized"

    def test_inventory_details(self, products, categories):
        details = agg.inventory_details(products, categories)
        by_id = {row.product_id: row for row in details}

        assert by_id[1].stock_value == Decimal("500.00")
        assert by_id[1].category_name == "Beverages"
        assert by_id[2].status == StockStatus.LOW
        assert by_id[3].status == StockStatus.OUT_OF_STOCK
        assert by_id[4].category_name == "Bakery"
        assert by_id[4].sku == "N/A"

    def test_low_stock_items_sorted_ascending(self, products, categories):
        low = agg.low_stock_items(agg.inventory_details(products, categories))
        assert [row.product_name for row in low] == ["Chips", "Tea"]


# ============================================================================
# REVENUE ROLLUP & MONTHLY GROWTH TESTS
# ============================================================================

class TestRevenueRollups:
    def test_revenue_by_category_completed_only(self, sales, products, categories):
        rollup = agg.revenue_by_category(sales, products, categories)

        assert [(row.name, row.amount) for row in rollup] == [
            ("Beverages", Decimal("43.00")),
            ("Uncategorized", Decimal("30.00")),
            ("Snacks", Decimal("12.50")),
        ]

    def test_revenue_by_payment_method(self, sales):
        rollup = agg.revenue_by_payment_method(sales)

        assert [(row.name, row.amount) for row in rollup] == [
            ("Card", Decimal("55.00")),
            ("Cash", Decimal("18.00")),
            ("Unknown", Decimal("12.50")),
        ]

    def test_rollups_sum_to_completed_total(self, sales, products, categories):
        total = agg.summarize_sales(sales).total_sales
        assert sum(row.amount for row in agg.revenue_by_payment_method(sales)) == total
        assert sum(row.amount for row in agg.revenue_by_category(sales, products, categories)) == total


class TestMonthlyRevenue:
    def test_twelve_months(self, sales):
        months = agg.monthly_revenue(sales, 2025)

        assert [row.month for row in months] == list(range(1, 13))
        assert months[5].revenue == Decimal("85.50")
        assert months[5].transaction_count == 4
        assert months[5].label == "Jun 2025"

    def test_growth_after_zero_month_is_zero(self, sales):
        months = agg.monthly_revenue(sales, 2025)
        assert months[0].growth_percent == Decimal("0.00")
        assert months[5].growth_percent == Decimal("0.00")

    def test_growth_drop_to_zero(self, sales):
        months = agg.monthly_revenue(sales, 2025)
        assert months[6].growth_percent == Decimal("-100.00")

    def test_growth_formula(self):
        sales = [
            completed_sale(1, 1, datetime(2025, 1, 10), "100.00"),
            completed_sale(2, 1, datetime(2025, 2, 10), "150.00"),
            completed_sale(3, 1, datetime(2025, 3, 10), "100.00"),
        ]
        months = agg.monthly_revenue(sales, 2025)

        assert months[1].growth_percent == Decimal("50.00")
        assert months[2].growth_percent == Decimal("-33.33")

    def test_growth_rounds_half_up(self):
        assert agg.growth_percent(Decimal("100.005"), Decimal("100")) == Decimal("0.01")
        assert agg.growth_percent(Decimal("5"), Decimal("0")) == Decimal("0.00")

    def test_other_years_ignored(self):
        sales = [completed_sale(1, 1, datetime(2024, 12, 31), "99.00")]
        assert all(row.revenue == Decimal("0.00") for row in agg.monthly_revenue(sales, 2025))


# ============================================================================
# SUMMARY TESTS
# ============================================================================

class TestSummaries:
    def test_sales_summary_completed_only(self, sales):
        summary = agg.summarize_sales(sales)

        assert summary.total_sales == Decimal("85.50")
        assert summary.total_orders == 4
        assert summary.average_order_value == Decimal("21.38")

    def test_sales_summary_empty(self):
        summary = agg.summarize_sales([])
        assert summary.total_sales == Decimal("0.00")
        assert summary.average_order_value == Decimal("0.00")

    def test_financial_summary(self, sales):
        summary = agg.summarize_financials(sales)

        assert summary.gross_revenue == Decimal("85.50")
        assert summary.total_discounts == Decimal("2.00")
        assert summary.net_revenue == Decimal("83.50")
        assert summary.net_revenue == summary.gross_revenue - summary.total_discounts
        assert summary.total_transactions == 4

    def test_inventory_summary(self, products):
        summary = agg.summarize_inventory(products)

        assert summary.total_products == 4
        assert summary.active_products == 3
        assert summary.inactive_products == 1
        assert summary.low_stock_products == 1
        assert summary.out_of_stock_products == 1
        assert summary.total_inventory_value == Decimal("580.00")

    def test_custom_summary(self, sales):
        summary = agg.summarize_custom(agg.completed(sales))

        assert summary.total_revenue == Decimal("85.50")
        assert summary.unique_customers == 3
        assert summary.products_sold == 18


# ============================================================================
# CUSTOM SALES FILTER TESTS
# ============================================================================

class TestCustomSalesFilter:
    def test_defaults_to_completed(self, sales):
        result = agg.filter_custom_sales(sales, agg.SalesFilter())
        assert {sale.id for sale in result} == {1, 2, 3, 5}

    def test_explicit_status(self, sales):
        result = agg.filter_custom_sales(sales, agg.SalesFilter(status=SaleStatus.PENDING))
        assert [sale.id for sale in result] == [4]

    def test_any_status(self, sales):
        assert len(agg.filter_custom_sales(sales, agg.SalesFilter(status=None))) == 6

    def test_customer_selection(self, sales):
        result = agg.filter_custom_sales(sales, agg.SalesFilter(customer_ids=(1,)))
        assert [sale.id for sale in result] == [1, 3]

    def test_product_selection_matches_any_line(self, sales):
        result = agg.filter_custom_sales(sales, agg.SalesFilter(product_ids=(2, 77)))
        assert [sale.id for sale in result] == [2, 5]

    def test_category_selection_through_catalog(self, sales, products):
        result = agg.filter_custom_sales(sales, agg.SalesFilter(category_ids=(1,)), products)
        assert [sale.id for sale in result] == [1, 2]

    def test_amount_bounds_inclusive(self, sales):
        criteria = agg.SalesFilter(min_amount=Decimal("18.00"), max_amount=Decimal("25.00"))
        result = agg.filter_custom_sales(sales, criteria)
        assert [sale.id for sale in result] == [1, 2]

    def test_payment_method_case_insensitive(self, sales):
        result = agg.filter_custom_sales(sales, agg.SalesFilter(payment_method="cash"))
        assert [sale.id for sale in result] == [2]
