"""Run every field extractor over a whole message.

Used where a message has no reliable line structure and a best-effort
field sweep is enough (e.g. previews, manual re-imports).
"""

from dataclasses import dataclass, field
from datetime import date

from orderbot.domain.address import AddressExtractor
from orderbot.domain.extractors import (
    AmountExtractor,
    DateExtractor,
    EmailExtractor,
    NameExtractor,
    PaymentMethodExtractor,
    PhoneExtractor,
    RepeatMarkerExtractor,
)
from orderbot.domain.orders import LineItem, ParsedAddress, PaymentMethod
from orderbot.domain.product_code import is_product_code, parse_product_code


@dataclass(frozen=True)
class ExtractedFields:
    """Independent per-field results; any field may be missing."""

    total: int | None = None
    payment_method: PaymentMethod | None = None
    order_date: date | None = None
    name: str | None = None
    phone: str | None = None
    email: str | None = None
    address: ParsedAddress | None = None
    line_items: list[LineItem] = field(default_factory=list)
    repeat_marker: bool = False


class ContentExtractor:
    def __init__(
        self,
        phone_extractor: PhoneExtractor | None = None,
        address_extractor: AddressExtractor | None = None,
    ):
        self._amount = AmountExtractor()
        self._payment = PaymentMethodExtractor()
        self._date = DateExtractor()
        self._name = NameExtractor()
        self._email = EmailExtractor()
        self._repeat = RepeatMarkerExtractor()
        self._phone = phone_extractor or PhoneExtractor()
        self._address = address_extractor or AddressExtractor()

    def extract_all(self, text: str) -> ExtractedFields:
        if not text or not text.strip():
            return ExtractedFields()

        lines = [line.strip() for line in text.splitlines() if line.strip()]
        # The product code sits on the last non-empty line
        line_items = parse_product_code(lines[-1]) if is_product_code(lines[-1]) else []

        return ExtractedFields(
            total=self._amount.extract(text),
            payment_method=self._payment.extract(text),
            order_date=self._date.extract(text),
            name=self._name.extract(text),
            phone=self._phone.extract(text),
            email=self._email.extract(text),
            address=self._address.extract(text),
            line_items=line_items,
            repeat_marker=self._repeat.extract(text),
        )
