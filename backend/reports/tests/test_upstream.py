"""
Upstream Gateway & Entity Parsing Tests

Test Categories:
1. Entity Parsing (camelCase payloads, bad shapes)
2. Gateway Requests (URLs, query params, auth header)
3. Gateway Degrade Paths (transport errors, non-2xx, bad bodies)
4. Per-Thread Sessions
"""
import threading
from datetime import date, datetime
from decimal import Decimal
from unittest.mock import MagicMock, patch

import pytest
import requests

from reports.exceptions import AggregationError
from reports.services import aggregation as agg
from reports.services.entities import Product, Sale, SaleStatus
from reports.services.upstream import UpstreamDataGateway


def json_response(payload, status_code=200):
    response = MagicMock()
    response.status_code = status_code
    response.ok = 200 <= status_code < 300
    response.json.return_value = payload
    return response


def make_gateway(response=None, error=None):
    session = MagicMock()
    session.headers = {}
    if error is not None:
        session.get.side_effect = error
    else:
        session.get.return_value = response
    gateway = UpstreamDataGateway(
        base_urls={
            "sales": "http://sales.local/",
            "products": "http://catalog.local",
            "customers": "http://crm.local",
        },
        timeout=5,
        session=session,
        page_size=500,
    )
    return gateway, session


SALE_PAYLOAD = {
    "id": 42,
    "customerId": 3,
    "customerName": "Carol",
    "date": "2025-06-14T13:45:00",
    "totalAmount": 19.5,
    "status": "completed",
    "paymentMethod": "Card",
    "items": [
        {"productId": 1, "productName": "Coffee", "quantity": 3, "unitPrice": "6.50", "discountAmount": 0}
    ],
}


# ============================================================================
# ENTITY PARSING TESTS
# ============================================================================

class TestEntityParsing:
    """Collaborator JSON is camelCase and not always consistent about it."""

    def test_sale_from_api(self):
        sale = Sale.from_api(SALE_PAYLOAD)

        assert sale.id == 42
        assert sale.date == datetime(2025, 6, 14, 13, 45)
        assert sale.total_amount == Decimal("19.5")
        assert sale.is_completed
        assert sale.items[0].net_amount == Decimal("19.50")

    def test_keys_are_case_insensitive(self):
        product = Product.from_api(
            {"ID": 5, "Name": "Tea", "Price": "4.00", "STOCK": 12, "MinStock": 3, "IsActive": "false"}
        )

        assert product.id == 5
        assert product.stock == 12
        assert product.min_stock == 3
        assert product.is_active is False

    def test_product_min_stock_defaults_to_ten(self):
        product = Product.from_api({"id": 1, "name": "Coffee", "price": 5, "stock": 40})
        assert product.min_stock == 10
        assert product.is_active is True

    @pytest.mark.parametrize("status", [None, ""])
    def test_missing_status_is_pending(self, status):
        payload = {key: value for key, value in SALE_PAYLOAD.items() if key != "status"}
        if status is not None:
            payload["status"] = status

        sale = Sale.from_api(payload)

        assert sale.status == SaleStatus.PENDING
        assert not sale.is_completed

    def test_status_less_sale_excluded_from_totals(self):
        payload = {"id": 1, "customerId": 1, "date": "2025-06-01T10:00:00", "totalAmount": "50.00"}

        summary = agg.summarize_sales([Sale.from_api(payload)])

        assert summary.total_sales == Decimal("0.00")
        assert summary.total_orders == 0

    def test_date_only_sale(self):
        sale = Sale.from_api({**SALE_PAYLOAD, "date": "2025-06-14"})
        assert sale.sale_date == date(2025, 6, 14)

    def test_missing_id_is_aggregation_error(self):
        with pytest.raises(AggregationError):
            Product.from_api({"name": "No id", "price": 1, "stock": 1})

    def test_unparseable_number_is_aggregation_error(self):
        with pytest.raises(AggregationError):
            Sale.from_api({**SALE_PAYLOAD, "totalAmount": "lots"})

    def test_bad_date_is_aggregation_error(self):
        with pytest.raises(AggregationError):
            Sale.from_api({**SALE_PAYLOAD, "date": "yesterday"})


# ============================================================================
# GATEWAY REQUEST TESTS
# ============================================================================

class TestGatewayRequests:
    def test_fetch_sales_sends_date_window(self):
        gateway, session = make_gateway(json_response({"items": [SALE_PAYLOAD], "totalCount": 1}))

        sales = gateway.fetch_sales(date(2025, 6, 1), date(2025, 6, 30))

        assert [sale.id for sale in sales] == [42]
        session.get.assert_called_once_with(
            "http://sales.local/sales",
            params={"pageSize": 500, "startDate": "2025-06-01", "endDate": "2025-06-30"},
            timeout=5,
        )

    def test_categories_come_from_product_service(self):
        gateway, session = make_gateway(json_response([{"id": 1, "name": "Beverages"}]))

        categories = gateway.fetch_categories()

        assert categories[0].name == "Beverages"
        assert session.get.call_args[0][0] == "http://catalog.local/products/categories"

    def test_items_envelope_key_is_case_insensitive(self):
        gateway, _ = make_gateway(json_response({"Items": [{"id": 2, "name": "Bob"}]}))
        assert [customer.name for customer in gateway.fetch_customers()] == ["Bob"]

    def test_bearer_token_forwarded(self):
        session = MagicMock()
        session.headers = {}
        UpstreamDataGateway(base_urls={}, session=session, auth_token="abc.def.ghi")
        assert session.headers["Authorization"] == "Bearer abc.def.ghi"

    def test_unwrap_items(self):
        assert UpstreamDataGateway.unwrap_items([{"id": 1}]) == [{"id": 1}]
        assert UpstreamDataGateway.unwrap_items({"items": []}) == []
        assert UpstreamDataGateway.unwrap_items({"data": []}) is None
        assert UpstreamDataGateway.unwrap_items("nope") is None


# ============================================================================
# GATEWAY DEGRADE PATH TESTS
# ============================================================================

class TestGatewayDegradePaths:
    """An unavailable collaborator yields an empty list, never an exception."""

    def test_connection_error_returns_empty(self):
        gateway, _ = make_gateway(error=requests.exceptions.ConnectionError("refused"))
        assert gateway.fetch_products() == []

    def test_timeout_returns_empty(self):
        gateway, _ = make_gateway(error=requests.exceptions.Timeout("slow"))
        assert gateway.fetch_sales() == []

    @pytest.mark.parametrize("status_code", [401, 404, 500, 503])
    def test_non_success_status_returns_empty(self, status_code):
        gateway, _ = make_gateway(json_response({"error": "nope"}, status_code=status_code))
        assert gateway.fetch_customers() == []

    def test_non_json_body_returns_empty(self):
        response = json_response(None)
        response.json.side_effect = ValueError("Expecting value")
        gateway, _ = make_gateway(response)
        assert gateway.fetch_products() == []

    def test_unexpected_payload_returns_empty(self):
        gateway, _ = make_gateway(json_response({"message": "maintenance"}))
        assert gateway.fetch_sales() == []

    def test_degrade_is_logged(self):
        gateway, _ = make_gateway(error=requests.exceptions.ConnectionError("refused"))
        with patch("reports.services.upstream.logger") as mock_logger:
            gateway.fetch_products()
        mock_logger.warning.assert_called_once()
        assert "unavailable" in mock_logger.warning.call_args[0][0]


# ============================================================================
# PER-THREAD SESSION TESTS
# ============================================================================

class TestPerThreadSessions:
    """Concurrent fetches never share a requests.Session."""

    def test_each_thread_gets_its_own_session(self):
        created = []

        def new_session():
            session = MagicMock()
            session.headers = {}
            session.get.return_value = json_response([])
            created.append(session)
            return session

        with patch("reports.services.upstream.requests.Session", side_effect=new_session):
            gateway = UpstreamDataGateway(base_urls={}, auth_token="abc.def.ghi")
            gateway.fetch_products()
            worker = threading.Thread(target=gateway.fetch_customers)
            worker.start()
            worker.join()
            gateway.fetch_categories()

        assert len(created) == 2
        assert created[0].get.call_count == 2
        assert created[1].get.call_count == 1
        assert all(session.headers["Authorization"] == "Bearer abc.def.ghi" for session in created)

    def test_close_releases_every_session(self):
        created = []

        def new_session():
            session = MagicMock()
            session.headers = {}
            session.get.return_value = json_response([])
            created.append(session)
            return session

        with patch("reports.services.upstream.requests.Session", side_effect=new_session):
            gateway = UpstreamDataGateway(base_urls={})
            threads = [threading.Thread(target=gateway.fetch_products) for _ in range(3)]
            for thread in threads:
                thread.start()
            for thread in threads:
                thread.join()

        gateway.close()

        assert len(created) == 3
        for session in created:
            session.close.assert_called_once()
