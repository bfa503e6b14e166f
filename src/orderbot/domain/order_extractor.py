"""Order extraction from WhatsApp chat messages.

Turns one free-text message (English or Chinese, condensed or multi-line)
into an ExtractedOrder. Deterministic, synchronous, no I/O except the
optional customer lookup in apply_customer_history().

Security: NEVER log raw text or phone numbers (PII).
"""

import logging
import re
from collections.abc import Callable
from dataclasses import dataclass, field, replace
from datetime import date

from orderbot.domain.address import parse_address
from orderbot.domain.authorization import AllowList
from orderbot.domain.extractors import (
    DATE_TOKEN,
    PAYMENT_METHOD_PATTERNS,
    detect_payment_method,
    extract_amount,
    has_repeat_marker,
    looks_like_name,
    parse_date_token,
    strip_trailing_parenthetical,
)
from orderbot.domain.format_detection import detect_format
from orderbot.domain.orders import (
    CustomerLookup,
    ExtractedOrder,
    MessageContext,
    OrderFormat,
    ParsedAddress,
    PaymentMethod,
)
from orderbot.domain.phones import find_phone, looks_like_phone, normalize_phone
from orderbot.domain.product_code import PRODUCT_CODE_TOKEN, is_product_code, parse_product_code
from orderbot.observability.redaction import redact_phone, safe_log_context

logger = logging.getLogger(__name__)

PLACEHOLDER_CUSTOMER_NAME = "WhatsApp Customer"
REMARK_PREFIX = "Order from WhatsApp"
REPEAT_CUSTOMER_TAG = " (Repeat Customer)"
NEW_CUSTOMER_TAG = " (New Customer)"

MIN_MULTILINE_LINES = 2

# Condensed format pieces
_CONDENSED_DATE = re.compile(rf"^({DATE_TOKEN})(?:[\s.]*(rpt|repeat)\b)?", re.IGNORECASE)
_LEADING_PAYMENT_AMOUNT = re.compile(
    r"^(cod|bank(?:\s*in|\s*transfer)?|transfer|cash|tng|fpx|card|grab\s*pay|boost|maya|gcash|atome)"
    r"\s*rm\s*(\d+)",
    re.IGNORECASE,
)
_LEADING_AMOUNT = re.compile(r"^(?:rm\s*)?(\d{2,4})\s+", re.IGNORECASE)
_TRAILING_PRODUCT_CODE = re.compile(rf"(?:^|\s+)((?:{PRODUCT_CODE_TOKEN})+)\s*$", re.IGNORECASE)

# Multi-line pieces
_DATE_LINE = re.compile(rf"^({DATE_TOKEN})(?:[\s.]*(?:rpt|repeat)\b.*)?$", re.IGNORECASE)
_DATE_PREFIX = re.compile(rf"^{DATE_TOKEN}")
_BARE_AMOUNT_LINE = re.compile(r"^(?:rm\s*)?\d{2,4}$", re.IGNORECASE)
_HAS_AMOUNT_DIGITS = re.compile(r"\d{2,4}")
_INLINE_CONTACT = re.compile(r"\s+(?=contact\s*[:：])", re.IGNORECASE)
_ADDRESS_HINT = re.compile(r",|\bjalan\b|\blorong\b|^\d{5}", re.IGNORECASE)


def _label(*names: str) -> re.Pattern:
    alternatives = "|".join(names)
    return re.compile(rf"^(?:{alternatives})\s*[:：]\s*", re.IGNORECASE)


_DATE_LABEL = _label("date")
_NAME_LABEL = _label("name")
_CONTACT_LABEL = _label("contact")
_ADDRESS_LABEL = _label("address")
_PAYMENT_LABEL = _label("payment")
_SENDER_LABEL = _label("汇款人名字")
_RECEIVER_LABEL = _label("收件人名字")
_PHONE_LABEL = _label("电话号码")
_CN_ADDRESS_LABEL = _label("地址")


def build_remark(
    group_name: str | None,
    sender_name: str | None,
    is_repeat: bool,
    product_code: str,
) -> str:
    """Descriptive remark for the order sheet. Never parsed back."""
    remark = REMARK_PREFIX
    if group_name:
        remark += f" (Group: {group_name})"
    if sender_name:
        remark += f" (Sender: {sender_name})"
    remark += REPEAT_CUSTOMER_TAG if is_repeat else NEW_CUSTOMER_TAG
    if product_code:
        remark += f" - {product_code}"
    return remark


@dataclass
class _Scan:
    """Mutable per-message scan state for the multi-line path."""

    order_date: date | None = None
    total: int | None = None
    name: str | None = None
    receiver_name: str | None = None
    phone: str | None = None
    payment: PaymentMethod | None = None
    repeat: bool = False
    product_code: str = ""
    address_lines: list[str] = field(default_factory=list)
    other_lines: list[str] = field(default_factory=list)
    done: bool = False

    def set_payment_if_missing(self, text: str) -> None:
        if self.payment is None:
            self.payment = detect_payment_method(text)


@dataclass(frozen=True)
class LineRule:
    """One line classifier: if matches(line, scan), apply(line, scan) consumes it."""

    name: str
    matches: Callable[[str, _Scan], bool]
    apply: Callable[[str, _Scan], None]


def _strip(pattern: re.Pattern, line: str) -> str:
    return pattern.sub("", line, count=1).strip()


def _apply_date_line(line: str, scan: _Scan) -> None:
    match = _DATE_LINE.match(line)
    scan.order_date = parse_date_token(match.group(1)) or scan.order_date


def _apply_date_label(line: str, scan: _Scan) -> None:
    content = _strip(_DATE_LABEL, line)
    content = re.sub(r"\s+(?:repeat|rpt).*$", "", content, flags=re.IGNORECASE)
    scan.order_date = parse_date_token(content) or scan.order_date


def _apply_total(line: str, scan: _Scan) -> None:
    scan.total = extract_amount(line)


def _apply_name_label(line: str, scan: _Scan) -> None:
    content = _strip(_NAME_LABEL, line)
    # "Name: Ali Contact: 012..." carries the phone on the same line
    content, *contact = _INLINE_CONTACT.split(content, maxsplit=1)
    if contact:
        _apply_phone_from(_CONTACT_LABEL)(contact[0], scan)
    scan.set_payment_if_missing(content)
    scan.name = strip_trailing_parenthetical(content) or scan.name


def _apply_phone_from(pattern: re.Pattern) -> Callable[[str, _Scan], None]:
    def apply(line: str, scan: _Scan) -> None:
        match = find_phone(_strip(pattern, line))
        if match:
            scan.phone = normalize_phone(match.group(0))

    return apply


def _apply_address_from(pattern: re.Pattern) -> Callable[[str, _Scan], None]:
    def apply(line: str, scan: _Scan) -> None:
        content = _strip(pattern, line)
        if content:
            scan.address_lines.append(content)

    return apply


def _apply_payment_label(line: str, scan: _Scan) -> None:
    method = detect_payment_method(_strip(_PAYMENT_LABEL, line))
    if method is not None:
        scan.payment = method


def _apply_sender(line: str, scan: _Scan) -> None:
    scan.name = _strip(_SENDER_LABEL, line) or scan.name


def _apply_receiver(line: str, scan: _Scan) -> None:
    scan.receiver_name = _strip(_RECEIVER_LABEL, line) or scan.receiver_name


def _is_payment_only(line: str, scan: _Scan) -> bool:
    if detect_payment_method(line) is None:
        return False
    residue = line
    for pattern, _method in PAYMENT_METHOD_PATTERNS:
        residue = pattern.sub("", residue)
    return not residue.strip(" ()（）.,:-")


def _apply_payment_only(line: str, scan: _Scan) -> None:
    scan.set_payment_if_missing(line)


def _is_bare_phone(line: str, scan: _Scan) -> bool:
    return scan.phone is None and looks_like_phone(line)


def _apply_bare_phone(line: str, scan: _Scan) -> None:
    scan.phone = normalize_phone(find_phone(line).group(0))


def _is_bare_name(line: str, scan: _Scan) -> bool:
    return scan.name is None and scan.receiver_name is None and looks_like_name(line)


def _apply_bare_name(line: str, scan: _Scan) -> None:
    scan.set_payment_if_missing(line)
    scan.name = strip_trailing_parenthetical(line) or line


def _is_product_line(line: str, scan: _Scan) -> bool:
    return is_product_code(line) and not _ADDRESS_HINT.search(line) and find_phone(line) is None


def _apply_product_line(line: str, scan: _Scan) -> None:
    scan.product_code = re.sub(r"\s+", "", line)
    scan.done = True


def _is_address_line(line: str, scan: _Scan) -> bool:
    return not (
        "：" in line
        or _DATE_PREFIX.match(line)
        or detect_payment_method(line)
        or "total" in line.lower()
        or _BARE_AMOUNT_LINE.match(line)
        or find_phone(line)
    )


def _apply_address_line(line: str, scan: _Scan) -> None:
    scan.address_lines.append(line)


# Priority order: a line is consumed by the first rule that matches.
LINE_RULES: list[LineRule] = [
    LineRule("date", lambda line, scan: bool(_DATE_LINE.match(line)), _apply_date_line),
    LineRule("date_label", lambda line, scan: bool(_DATE_LABEL.match(line)), _apply_date_label),
    LineRule(
        "total",
        lambda line, scan: scan.total is None and extract_amount(line) is not None,
        _apply_total,
    ),
    LineRule("name_label", lambda line, scan: bool(_NAME_LABEL.match(line)), _apply_name_label),
    LineRule(
        "contact_label",
        lambda line, scan: bool(_CONTACT_LABEL.match(line)),
        _apply_phone_from(_CONTACT_LABEL),
    ),
    LineRule(
        "address_label",
        lambda line, scan: bool(_ADDRESS_LABEL.match(line)),
        _apply_address_from(_ADDRESS_LABEL),
    ),
    LineRule("payment_label", lambda line, scan: bool(_PAYMENT_LABEL.match(line)), _apply_payment_label),
    LineRule("sender_name_cn", lambda line, scan: bool(_SENDER_LABEL.match(line)), _apply_sender),
    LineRule("receiver_name_cn", lambda line, scan: bool(_RECEIVER_LABEL.match(line)), _apply_receiver),
    LineRule(
        "phone_cn",
        lambda line, scan: bool(_PHONE_LABEL.match(line)),
        _apply_phone_from(_PHONE_LABEL),
    ),
    LineRule(
        "address_cn",
        lambda line, scan: bool(_CN_ADDRESS_LABEL.match(line)),
        _apply_address_from(_CN_ADDRESS_LABEL),
    ),
    LineRule("payment_only", _is_payment_only, _apply_payment_only),
    LineRule("bare_phone", _is_bare_phone, _apply_bare_phone),
    LineRule("bare_name", _is_bare_name, _apply_bare_name),
    LineRule("product_code", _is_product_line, _apply_product_line),
    LineRule("address", _is_address_line, _apply_address_line),
]


class OrderExtractor:
    """Extract structured orders from allow-listed senders' messages.

    Args:
        allow_list: Numbers allowed to submit orders.
        customer_lookup: Optional customer store used by
            apply_customer_history() for repeat-customer detection.
        today: Clock for the default order date (injectable for tests).
    """

    def __init__(
        self,
        allow_list: AllowList,
        customer_lookup: CustomerLookup | None = None,
        today: Callable[[], date] | None = None,
    ):
        self.allow_list = allow_list
        self._customer_lookup = customer_lookup
        self._today = today or date.today

    def extract(self, raw: str, ctx: MessageContext) -> ExtractedOrder | None:
        """Extract an order from one message.

        Returns None when the sender is not allow-listed, or when the
        message cannot be an order (condensed format missing its phone or
        product code, or a multi-line message under two lines).
        Never raises for any message text.
        """
        if not self.allow_list.is_authorized(ctx.sender_phone):
            logger.info(
                "order rejected: sender not authorized",
                extra={"extra_fields": {"sender": redact_phone(ctx.sender_phone)}},
            )
            return None

        text = raw or ""
        order_format = detect_format(text)
        if order_format is OrderFormat.CONDENSED:
            order = self._extract_condensed(text, ctx)
        else:
            order = self._extract_multiline(text, ctx)

        if order is None:
            logger.info("no order in message", extra={"extra_fields": safe_log_context(format=order_format.value)})
        else:
            logger.info(
                "order extracted",
                extra={
                    "extra_fields": safe_log_context(
                        format=order_format.value,
                        line_items=len(order.line_items),
                        has_postcode=order.address.postcode is not None,
                        repeat=order.is_repeat_customer,
                    )
                },
            )
        return order

    def apply_customer_history(self, order: ExtractedOrder) -> ExtractedOrder:
        """Mark the order as repeat when the customer store knows the phone.

        Called at most once per message. Lookup failures mean "not repeat".
        """
        if order.is_repeat_customer or self._customer_lookup is None:
            return order

        try:
            customer = self._customer_lookup.find_by_phone(order.phone_number)
        except Exception:
            logger.warning("customer lookup failed; assuming new customer", exc_info=True)
            return order

        if not customer:
            return order

        return replace(
            order,
            is_repeat_customer=True,
            remark=order.remark.replace(NEW_CUSTOMER_TAG, REPEAT_CUSTOMER_TAG, 1),
        )

    def _fallback_name(self, ctx: MessageContext) -> str:
        return ctx.sender_display_name or PLACEHOLDER_CUSTOMER_NAME

    def _extract_condensed(self, text: str, ctx: MessageContext) -> ExtractedOrder | None:
        trimmed = text.strip()
        date_match = _CONDENSED_DATE.match(trimmed)
        if date_match is None:
            return None

        order_date = parse_date_token(date_match.group(1)) or self._today()
        is_repeat = bool(date_match.group(2)) or has_repeat_marker(trimmed)
        remaining = trimmed[date_match.end():].strip()

        payment: PaymentMethod | None = None
        total = 0
        payment_match = _LEADING_PAYMENT_AMOUNT.match(remaining)
        if payment_match:
            token = payment_match.group(1)
            payment = detect_payment_method(token)
            if payment is None and token.lower().startswith("bank"):
                payment = PaymentMethod.BANK_TRANSFER
            total = int(payment_match.group(2))
            remaining = remaining[payment_match.end():].strip()
        else:
            amount_match = _LEADING_AMOUNT.match(remaining)
            if amount_match:
                total = int(amount_match.group(1))
                remaining = remaining[amount_match.end():].strip()

        code_match = _TRAILING_PRODUCT_CODE.search(remaining)
        if code_match is None:
            return None
        product_code = code_match.group(1)
        remaining = remaining[: code_match.start()].strip()

        phone_match = find_phone(remaining)
        if phone_match is None:
            return None

        name_segment = remaining[: phone_match.start()].strip()
        address_text = remaining[phone_match.end():].strip()

        # "Dorcas Koh (cod)": a leading payment token always wins
        if payment is None:
            payment = detect_payment_method(name_segment)
        customer_name = strip_trailing_parenthetical(name_segment) or self._fallback_name(ctx)

        return ExtractedOrder(
            order_date=order_date,
            customer_name=customer_name,
            phone_number=normalize_phone(phone_match.group(0)),
            line_items=parse_product_code(product_code),
            address=parse_address(address_text),
            total_paid=total,
            payment_method=payment,
            is_repeat_customer=is_repeat,
            remark=build_remark(ctx.group_name, None, is_repeat, product_code),
            product_code=product_code,
            group_name=ctx.group_name,
            message_id=ctx.message_id,
            format=OrderFormat.CONDENSED,
        )

    def _extract_multiline(self, text: str, ctx: MessageContext) -> ExtractedOrder | None:
        lines = [line.strip() for line in text.splitlines() if line.strip()]
        if len(lines) < MIN_MULTILINE_LINES:
            return None

        scan = _Scan(repeat=has_repeat_marker(text))
        for line in lines:
            if scan.done:
                # Lines after the product code are only looked at for a total
                scan.other_lines.append(line)
                continue
            rule = next((r for r in LINE_RULES if r.matches(line, scan)), None)
            if rule is None:
                scan.other_lines.append(line)
                continue
            rule.apply(line, scan)
            if rule.name != "address":
                scan.other_lines.append(line)

        if scan.total is None:
            scan.total = self._final_pass_total(lines)

        if scan.payment is None:
            scan.payment = detect_payment_method("\n".join(scan.other_lines))

        address = parse_address("\n".join(scan.address_lines)) if scan.address_lines else ParsedAddress()

        customer_name = scan.receiver_name or scan.name or self._fallback_name(ctx)
        sender_name = scan.name if scan.receiver_name and scan.name else None

        phone = scan.phone or normalize_phone(ctx.sender_phone)

        return ExtractedOrder(
            order_date=scan.order_date or self._today(),
            customer_name=customer_name,
            phone_number=phone,
            line_items=parse_product_code(scan.product_code),
            address=address,
            total_paid=scan.total or 0,
            payment_method=scan.payment,
            is_repeat_customer=scan.repeat,
            remark=build_remark(ctx.group_name, sender_name, scan.repeat, scan.product_code),
            product_code=scan.product_code,
            group_name=ctx.group_name,
            message_id=ctx.message_id,
            format=OrderFormat.MULTILINE,
        )

    @staticmethod
    def _final_pass_total(lines: list[str]) -> int | None:
        for line in lines:
            if not _HAS_AMOUNT_DIGITS.search(line) or find_phone(line) or _DATE_PREFIX.match(line):
                continue
            amount = extract_amount(line)
            if amount is not None:
                return amount
        return None
