"""
Root conftest.py for all backend tests.

This file makes fixtures available to all test files across all apps.
"""
from datetime import datetime
from decimal import Decimal
from unittest.mock import MagicMock

import pytest
from django.test import override_settings
from rest_framework_simplejwt.models import TokenUser

from reports.services.entities import Category, Customer, Product, Sale, SaleItem, SaleStatus
from reports.services.upstream import UpstreamDataGateway


# ============================================================================
# AUTO-USE FIXTURES (Run automatically for every test)
# ============================================================================

@pytest.fixture(autouse=True)
def sequential_fetches():
    """
    Run upstream fetches on the calling thread.

    Tests that exercise the thread pool opt back in explicitly.
    """
    with override_settings(REPORT_PARALLEL_FETCH=False):
        yield


# ============================================================================
# API CLIENT FIXTURES
# ============================================================================

@pytest.fixture
def api_client():
    """
    Provide DRF API client for API tests.

    Usage:
        def test_my_api(api_client):
            response = api_client.get('/api/reports/dashboard/stats/')
            assert response.status_code == 401
    """
    from rest_framework.test import APIClient
    return APIClient()


def _token_user(user_id, role):
    return TokenUser({"user_id": user_id, "role": role, "token_type": "access"})


@pytest.fixture
def manager_user():
    """Stateless JWT user carrying the Manager role claim."""
    return _token_user(7, "Manager")


@pytest.fixture
def cashier_user():
    """Stateless JWT user carrying the Cashier role claim."""
    return _token_user(12, "Cashier")


@pytest.fixture
def manager_client(api_client, manager_user):
    api_client.force_authenticate(user=manager_user)
    return api_client


@pytest.fixture
def cashier_client(api_client, cashier_user):
    api_client.force_authenticate(user=cashier_user)
    return api_client


# ============================================================================
# UPSTREAM DATA FIXTURES
# ============================================================================
#
# June 2025 sample data. Completed sales total 85.50 across four orders:
#   sale 1  2025-06-01  customer 1  Card   25.00  (5 x Coffee)
#   sale 2  2025-06-01  customer 2  Cash   18.00  (5 x Tea, 0.40 off each)
#   sale 3  2025-06-15  customer 1  blank  12.50  (5 x Chips)
#   sale 5  2025-06-30  customer 3  Card   30.00  (3 x product 77, not in the catalog)
# plus a Pending sale (4) and a Cancelled sale (6) that financial totals ignore.

@pytest.fixture
def categories():
    return [
        Category(id=1, name="Beverages"),
        Category(id=2, name="Snacks"),
        Category(id=3, name="Frozen"),
    ]


@pytest.fixture
def products():
    return [
        Product(id=1, name="Coffee", sku="BEV-001", price=Decimal("5.00"), stock=100, category_id=1),
        Product(id=2, name="Tea", sku="BEV-002", price=Decimal("4.00"), stock=5, category_id=1),
        Product(id=3, name="Chips", sku="SNK-001", price=Decimal("2.50"), stock=0, category_id=2, is_active=False),
        Product(id=4, name="Cookies", sku="", price=Decimal("3.00"), stock=20, category_id=99,
                category_name="Bakery"),
    ]


@pytest.fixture
def customers():
    return [
        Customer(id=1, name="Alice Johnson", email="alice@example.com"),
        Customer(id=2, name="Bob Smith", email="bob@example.com"),
    ]


def make_sale(sale_id, customer_id, when, total, items, status=SaleStatus.COMPLETED, payment_method="Card"):
    return Sale(
        id=sale_id,
        customer_id=customer_id,
        date=when,
        total_amount=Decimal(total),
        status=status,
        items=items,
        payment_method=payment_method,
    )


@pytest.fixture
def sales():
    return [
        make_sale(1, 1, datetime(2025, 6, 1, 10, 0), "25.00",
                  [SaleItem(product_id=1, quantity=5, unit_price=Decimal("5.00"))]),
        make_sale(2, 2, datetime(2025, 6, 1, 15, 30), "18.00",
                  [SaleItem(product_id=2, quantity=5, unit_price=Decimal("4.00"),
                            discount_amount=Decimal("0.40"))],
                  payment_method="Cash"),
        make_sale(3, 1, datetime(2025, 6, 15, 12, 0), "12.50",
                  [SaleItem(product_id=3, quantity=5, unit_price=Decimal("2.50"))],
                  payment_method=""),
        make_sale(4, 2, datetime(2025, 6, 20, 9, 0), "100.00",
                  [SaleItem(product_id=1, quantity=20, unit_price=Decimal("5.00"))],
                  status=SaleStatus.PENDING),
        make_sale(5, 3, datetime(2025, 6, 30, 18, 45), "30.00",
                  [SaleItem(product_id=77, quantity=3, unit_price=Decimal("10.00"))]),
        make_sale(6, 1, datetime(2025, 6, 10, 11, 0), "40.00",
                  [SaleItem(product_id=1, quantity=8, unit_price=Decimal("5.00"))],
                  status=SaleStatus.CANCELLED),
    ]


@pytest.fixture
def fake_gateway(sales, products, customers, categories):
    """
    Upstream gateway double returning the sample data.

    Sales are filtered by the requested window the way the sales service does.
    """
    gateway = MagicMock(spec=UpstreamDataGateway)

    def fetch_sales(start_date=None, end_date=None):
        return [
            sale for sale in sales
            if (start_date is None or sale.sale_date >= start_date)
            and (end_date is None or sale.sale_date <= end_date)
        ]

    gateway.fetch_sales.side_effect = fetch_sales
    gateway.fetch_products.return_value = products
    gateway.fetch_customers.return_value = customers
    gateway.fetch_categories.return_value = categories
    return gateway


@pytest.fixture
def empty_gateway():
    """Gateway double for an upstream that returned nothing (or was down)."""
    gateway = MagicMock(spec=UpstreamDataGateway)
    gateway.fetch_sales.return_value = []
    gateway.fetch_products.return_value = []
    gateway.fetch_customers.return_value = []
    gateway.fetch_categories.return_value = []
    return gateway
