"""Storefront records carried by store events and used to fill email templates."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any


def _parse_datetime(raw: Any) -> datetime | None:
    if raw is None or isinstance(raw, datetime):
        return raw
    return datetime.fromisoformat(str(raw).replace("Z", "+00:00"))


@dataclass(frozen=True, slots=True)
class ShippingAddress:
    full_name: str
    street: str = ""
    city: str = ""
    state: str = ""
    postal_code: str = ""
    country: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ShippingAddress:
        return cls(
            full_name=data.get("full_name", ""),
            street=data.get("street", ""),
            city=data.get("city", ""),
            state=data.get("state", ""),
            postal_code=str(data.get("postal_code", "")),
            country=data.get("country", ""),
        )

    def one_line(self) -> str:
        return (
            f"{self.full_name}, {self.street}, {self.city}, "
            f"{self.state} {self.postal_code}, {self.country}"
        )


@dataclass(frozen=True, slots=True)
class Product:
    id: str
    name: str
    price: float
    discount_price: float | None = None
    image: str | None = None

    @property
    def effective_price(self) -> float:
        return self.discount_price or self.price

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Product:
        discount = data.get("discount_price")
        return cls(
            id=str(data["id"]),
            name=data["name"],
            price=float(data.get("price", 0)),
            discount_price=float(discount) if discount is not None else None,
            image=data.get("image"),
        )


@dataclass(frozen=True, slots=True)
class OrderItem:
    product: Product
    quantity: int
    price: float

    @property
    def total(self) -> float:
        return self.price * self.quantity

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> OrderItem:
        product = Product.from_dict(data["product"])
        return cls(
            product=product,
            quantity=int(data.get("quantity", 1)),
            price=float(data.get("price", product.effective_price)),
        )


@dataclass(frozen=True, slots=True)
class Order:
    id: str
    status: str
    total: float
    created_at: datetime
    shipping_address: ShippingAddress
    payment_method: str = "cod"
    items: list[OrderItem] = field(default_factory=list)

    @property
    def short_id(self) -> str:
        return self.id[:8]

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Order:
        payment = data.get("payment_details") or {}
        return cls(
            id=str(data["id"]),
            status=data.get("status", "pending"),
            total=float(data.get("total", 0)),
            created_at=_parse_datetime(data["created_at"]),  # type: ignore[arg-type]
            shipping_address=ShippingAddress.from_dict(data.get("shipping_address") or {}),
            payment_method=payment.get("method", "cod"),
            items=[OrderItem.from_dict(i) for i in data.get("items") or []],
        )


@dataclass(frozen=True, slots=True)
class CartItem:
    product: Product
    quantity: int

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CartItem:
        return cls(
            product=Product.from_dict(data["product"]),
            quantity=int(data.get("quantity", 1)),
        )


@dataclass(frozen=True, slots=True)
class TrackingInfo:
    tracking_id: str = ""
    tracking_url: str = ""
    carrier: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> TrackingInfo:
        return cls(
            tracking_id=data.get("tracking_id", ""),
            tracking_url=data.get("tracking_url", ""),
            carrier=data.get("carrier", ""),
        )


@dataclass(frozen=True, slots=True)
class Workshop:
    id: str
    title: str

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Workshop:
        return cls(id=str(data["id"]), title=data["title"])


@dataclass(frozen=True, slots=True)
class WorkshopBooking:
    id: str
    name: str
    date: str
    time: str
    participants: int
    location: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> WorkshopBooking:
        return cls(
            id=str(data["id"]),
            name=data.get("name", ""),
            date=data.get("date", ""),
            time=data.get("time", ""),
            participants=int(data.get("participants", 1)),
            location=data.get("location"),
        )
