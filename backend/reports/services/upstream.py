"""
HTTP gateway to the collaborator services (products, sales, customers).

Every fetch degrades to an empty list when the collaborator is down or
answers with an error: a report built from partial data is preferred over a
failed report. No retries happen here.
"""
import logging
import threading
from datetime import date
from typing import Any, Callable, Dict, List, Optional, TypeVar

import requests
from django.conf import settings

from .entities import Category, Customer, Product, Sale

logger = logging.getLogger(__name__)

T = TypeVar("T")

DATE_PARAM_FORMAT = "%Y-%m-%d"


class UpstreamDataGateway:
    """Fetches raw entities from the collaborator services."""

    SALES_PATH = "/sales"
    PRODUCTS_PATH = "/products"
    CATEGORIES_PATH = "/products/categories"
    CUSTOMERS_PATH = "/customers"

    def __init__(
        self,
        base_urls: Optional[Dict[str, str]] = None,
        timeout: Optional[float] = None,
        auth_token: Optional[str] = None,
        session: Optional[requests.Session] = None,
        page_size: Optional[int] = None,
    ):
        self.base_urls = base_urls or dict(getattr(settings, "UPSTREAM_SERVICES", {}))
        self.timeout = timeout if timeout is not None else getattr(settings, "UPSTREAM_TIMEOUT", 30)
        self.page_size = page_size or getattr(settings, "UPSTREAM_PAGE_SIZE", 1000)
        self.headers = {"Accept": "application/json"}
        if auth_token:
            self.headers["Authorization"] = f"Bearer {auth_token}"

        self._shared_session = session
        if session is not None:
            session.headers.update(self.headers)
        self._local = threading.local()
        self._sessions: List[requests.Session] = []
        self._sessions_lock = threading.Lock()

    @property
    def session(self) -> requests.Session:
        """
        The calling thread's session.

        ``requests.Session`` is not thread-safe, so concurrent fetches each
        get their own. An injected session is used as-is.
        """
        if self._shared_session is not None:
            return self._shared_session
        session = getattr(self._local, "session", None)
        if session is None:
            session = requests.Session()
            session.headers.update(self.headers)
            self._local.session = session
            with self._sessions_lock:
                self._sessions.append(session)
        return session

    # --- public fetches ---

    def fetch_sales(self, start_date: Optional[date] = None, end_date: Optional[date] = None) -> List[Sale]:
        params: Dict[str, Any] = {"pageSize": self.page_size}
        if start_date:
            params["startDate"] = start_date.strftime(DATE_PARAM_FORMAT)
        if end_date:
            params["endDate"] = end_date.strftime(DATE_PARAM_FORMAT)
        return self._fetch("sales", self.SALES_PATH, Sale.from_api, params)

    def fetch_products(self) -> List[Product]:
        return self._fetch("products", self.PRODUCTS_PATH, Product.from_api, {"pageSize": self.page_size})

    def fetch_categories(self) -> List[Category]:
        return self._fetch("products", self.CATEGORIES_PATH, Category.from_api)

    def fetch_customers(self) -> List[Customer]:
        return self._fetch("customers", self.CUSTOMERS_PATH, Customer.from_api, {"pageSize": self.page_size})

    def close(self):
        if self._shared_session is not None:
            self._shared_session.close()
        with self._sessions_lock:
            for session in self._sessions:
                session.close()
            self._sessions.clear()

    # --- helpers ---

    def _url(self, service: str, path: str) -> str:
        base = self.base_urls.get(service) or "http://localhost:5000"
        return f"{base.rstrip('/')}{path}"

    def _fetch(
        self,
        service: str,
        path: str,
        parse: Callable[[Dict[str, Any]], T],
        params: Optional[Dict[str, Any]] = None,
    ) -> List[T]:
        """
        GET ``path`` and parse each record with ``parse``.

        Transport problems, non-2xx answers and non-JSON bodies return ``[]``
        with a warning. Records that parse but miss required fields raise
        ``AggregationError`` from the entity parser.
        """
        url = self._url(service, path)
        try:
            response = self.session.get(url, params=params, timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            logger.warning(f"Upstream {service} service unavailable at {url}: {e}")
            return []

        if not response.ok:
            logger.warning(
                f"Upstream {service} service returned HTTP {response.status_code} for {url}"
            )
            return []

        try:
            payload = response.json()
        except ValueError as e:
            logger.warning(f"Upstream {service} service returned a non-JSON body for {url}: {e}")
            return []

        records = self.unwrap_items(payload)
        if records is None:
            logger.warning(f"Upstream {service} service returned an unexpected payload for {url}")
            return []

        entities = [parse(record) for record in records]
        logger.debug(f"Fetched {len(entities)} records from {url}")
        return entities

    @staticmethod
    def unwrap_items(payload: Any) -> Optional[List[Dict[str, Any]]]:
        """
        Return the record list from a paginated ``{"items": [...]}`` envelope
        or a bare list. Pagination metadata is ignored.
        """
        if isinstance(payload, list):
            return payload
        if isinstance(payload, dict):
            for key, value in payload.items():
                if key.lower() == "items" and isinstance(value, list):
                    return value
        return None
