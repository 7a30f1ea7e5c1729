"""
Raw entities fetched from the collaborator services.

The collaborators serialize camelCase JSON (``totalAmount``, ``minStock`` ...)
and are not always consistent about casing, so fields are looked up
case-insensitively. Monetary values are parsed into ``Decimal``.
"""
from dataclasses import dataclass, field
from datetime import datetime, date
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Optional

from django.utils.dateparse import parse_datetime, parse_date

from ..exceptions import AggregationError


class SaleStatus:
    PENDING = "Pending"
    COMPLETED = "Completed"
    CANCELLED = "Cancelled"


def _lookup(data: Dict[str, Any], key: str, default: Any = None) -> Any:
    """Case-insensitive dictionary lookup."""
    if key in data:
        return data[key]
    lowered = key.lower()
    for candidate, value in data.items():
        if candidate.lower() == lowered:
            return value
    return default


def _required(data: Dict[str, Any], key: str, entity: str) -> Any:
    value = _lookup(data, key)
    if value is None:
        raise AggregationError(f"{entity} record is missing required field '{key}'")
    return value


def _to_int(value: Any, key: str, entity: str, default: int = 0) -> int:
    if value is None or value == "":
        return default
    try:
        return int(value)
    except (TypeError, ValueError):
        raise AggregationError(f"{entity} field '{key}' is not an integer: {value!r}")


def _to_decimal(value: Any, key: str, entity: str) -> Decimal:
    if value is None or value == "":
        return Decimal("0")
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise AggregationError(f"{entity} field '{key}' is not a number: {value!r}")


def _to_bool(value: Any, default: bool = True) -> bool:
    if value is None:
        return default
    if isinstance(value, str):
        return value.strip().lower() in ("true", "1", "yes")
    return bool(value)


def _to_datetime(value: Any, entity: str) -> datetime:
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    if isinstance(value, str):
        parsed = parse_datetime(value)
        if parsed is None:
            parsed_date = parse_date(value)
            if parsed_date is not None:
                parsed = datetime(parsed_date.year, parsed_date.month, parsed_date.day)
        if parsed is not None:
            return parsed
    raise AggregationError(f"{entity} field 'date' is not a valid date: {value!r}")


@dataclass(frozen=True)
class SaleItem:
    product_id: int
    quantity: int
    unit_price: Decimal
    discount_amount: Decimal = Decimal("0")
    product_name: str = ""
    product_sku: str = ""

    @property
    def net_amount(self) -> Decimal:
        """Line revenue after the per-unit discount."""
        return (self.unit_price - self.discount_amount) * self.quantity

    @property
    def total_discount(self) -> Decimal:
        return self.discount_amount * self.quantity

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "SaleItem":
        return cls(
            product_id=_to_int(_required(data, "productId", "SaleItem"), "productId", "SaleItem"),
            quantity=_to_int(_lookup(data, "quantity"), "quantity", "SaleItem"),
            unit_price=_to_decimal(_lookup(data, "unitPrice"), "unitPrice", "SaleItem"),
            discount_amount=_to_decimal(_lookup(data, "discountAmount"), "discountAmount", "SaleItem"),
            product_name=_lookup(data, "productName") or "",
            product_sku=_lookup(data, "productSKU") or "",
        )


@dataclass(frozen=True)
class Sale:
    id: int
    customer_id: int
    date: datetime
    total_amount: Decimal
    status: str = SaleStatus.PENDING
    items: List[SaleItem] = field(default_factory=list)
    payment_method: str = ""
    customer_name: str = ""

    @property
    def is_completed(self) -> bool:
        return (self.status or "").lower() == SaleStatus.COMPLETED.lower()

    @property
    def sale_date(self) -> date:
        return self.date.date()

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "Sale":
        raw_items = _lookup(data, "items") or []
        if not isinstance(raw_items, list):
            raise AggregationError(f"Sale field 'items' is not a list: {raw_items!r}")
        return cls(
            id=_to_int(_required(data, "id", "Sale"), "id", "Sale"),
            customer_id=_to_int(_lookup(data, "customerId"), "customerId", "Sale"),
            date=_to_datetime(_required(data, "date", "Sale"), "Sale"),
            total_amount=_to_decimal(_lookup(data, "totalAmount"), "totalAmount", "Sale"),
            status=_lookup(data, "status") or SaleStatus.PENDING,
            items=[SaleItem.from_api(item) for item in raw_items],
            payment_method=_lookup(data, "paymentMethod") or "",
            customer_name=_lookup(data, "customerName") or "",
        )


@dataclass(frozen=True)
class Product:
    id: int
    name: str
    price: Decimal
    stock: int
    sku: str = ""
    category_id: Optional[int] = None
    category_name: str = ""
    min_stock: int = 10
    is_active: bool = True

    @property
    def stock_value(self) -> Decimal:
        return self.price * self.stock

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "Product":
        category_id = _lookup(data, "categoryId")
        return cls(
            id=_to_int(_required(data, "id", "Product"), "id", "Product"),
            name=_lookup(data, "name") or "",
            sku=_lookup(data, "sku") or "",
            price=_to_decimal(_lookup(data, "price"), "price", "Product"),
            stock=_to_int(_lookup(data, "stock"), "stock", "Product"),
            category_id=None if category_id is None else _to_int(category_id, "categoryId", "Product"),
            category_name=_lookup(data, "categoryName") or "",
            min_stock=_to_int(_lookup(data, "minStock"), "minStock", "Product", default=10),
            is_active=_to_bool(_lookup(data, "isActive")),
        )


@dataclass(frozen=True)
class Customer:
    id: int
    name: str = ""
    email: str = ""

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "Customer":
        return cls(
            id=_to_int(_required(data, "id", "Customer"), "id", "Customer"),
            name=_lookup(data, "name") or "",
            email=_lookup(data, "email") or "",
        )


@dataclass(frozen=True)
class Category:
    id: int
    name: str
    description: str = ""
    is_active: bool = True

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "Category":
        return cls(
            id=_to_int(_required(data, "id", "Category"), "id", "Category"),
            name=_lookup(data, "name") or "",
            description=_lookup(data, "description") or "",
            is_active=_to_bool(_lookup(data, "isActive")),
        )
