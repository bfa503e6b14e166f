"""Order intake models.

MessageContext is built per inbound message by the webhook layer;
ExtractedOrder is the only output of the extractor and lives for the
duration of one message.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Protocol


class ProductKey(str, Enum):
    """Canonical product keys produced by the product-code grammar."""

    WASH = "wash"
    WASH_30ML = "wash_30ml"
    FEMLIFT_30ML = "femlift_30ml"
    FEMLIFT_10ML = "femlift_10ml"
    SPRAY = "spray"


class PaymentMethod(str, Enum):
    COD = "COD"
    TNG = "TNG"
    BANK_TRANSFER = "BANK_TRANSFER"
    CARD = "CARD"
    GRABPAY = "GRABPAY"
    BOOST = "BOOST"
    MAYA = "MAYA"
    GCASH = "GCASH"
    CASH = "CASH"
    ATOME = "ATOME"

    @property
    def label(self) -> str:
        """Human label used in the order sheet (e.g. "BANK TRANSFER")."""
        return self.value.replace("_", " ")


class OrderFormat(str, Enum):
    CONDENSED = "condensed"
    MULTILINE = "multiline"


@dataclass(frozen=True)
class LineItem:
    """One product line decoded from a product code token."""

    product_key: ProductKey
    quantity: int
    variant: str | None = None  # "30ml" / "10ml"


@dataclass(frozen=True)
class ParsedAddress:
    """Free-text address decomposed into its searchable parts."""

    raw: str = ""
    postcode: str | None = None
    city: str | None = None
    state: str | None = None
    country: str = "Malaysia"
    line: str = ""  # raw with postcode, state and labels removed


@dataclass(frozen=True)
class MessageContext:
    """Sender metadata for one inbound chat message.

    sender_phone is PII: never log it raw.
    """

    sender_phone: str
    sender_display_name: str | None = None
    group_name: str | None = None
    message_id: str | None = None
    timestamp: str | None = None


@dataclass
class ExtractedOrder:
    """Structured order recovered from a chat message."""

    order_date: date
    customer_name: str
    phone_number: str
    line_items: list[LineItem] = field(default_factory=list)
    address: ParsedAddress = field(default_factory=ParsedAddress)
    total_paid: float = 0
    payment_method: PaymentMethod | None = None
    is_repeat_customer: bool = False
    remark: str = ""
    product_code: str = ""
    group_name: str | None = None
    message_id: str | None = None
    format: OrderFormat = OrderFormat.MULTILINE

    def quantity_of(self, product_key: ProductKey) -> int:
        """Total quantity ordered for one product key."""
        return sum(item.quantity for item in self.line_items if item.product_key == product_key)

    @property
    def currency(self) -> str:
        return "SGD" if self.phone_number.startswith("65") else "MYR"


class CustomerLookup(Protocol):
    """Customer store capability used for repeat-customer detection."""

    def find_by_phone(self, phone: str) -> object | None: ...


class OrderSink(Protocol):
    """Relational-store writer keyed by normalized phone number."""

    def save_order(self, order: ExtractedOrder) -> bool:
        """Store the order. False when its message was already stored."""
        ...


class SheetWriter(Protocol):
    """Spreadsheet writer; raises when the order could not be appended anywhere."""

    def append_order(self, order: ExtractedOrder) -> object: ...
