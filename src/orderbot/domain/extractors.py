"""Deterministic field extractors for free-text order messages.

NO LLM. Regex layers only, most specific pattern first.
Every extractor returns None (or False) on no match and never raises for
any input string: malformed text is simply "no match".
Security: NEVER log raw text (PII).
"""

import re
from datetime import date

from orderbot.domain.orders import PaymentMethod
from orderbot.domain.phones import extract_phone, normalize_phone

# ---------------------------------------------------------------------------
# Dates
# ---------------------------------------------------------------------------

# d/m/yy, d-m-yyyy, ... (day first)
DATE_TOKEN = r"\d{1,2}[/\-]\d{1,2}[/\-](?:\d{4}|\d{2})"

_DATE_PATTERN = re.compile(r"(?<!\d)(\d{1,2})[/\-](\d{1,2})[/\-](\d{4}|\d{2})(?!\d)")

# Two-digit years below the pivot are 20xx, the rest 19xx
TWO_DIGIT_YEAR_PIVOT = 50

# ---------------------------------------------------------------------------
# Amounts
# ---------------------------------------------------------------------------

_AMOUNT_PATTERNS: list[re.Pattern] = [
    re.compile(r"total\s*[:：]\s*(?:rm)?\s*(\d+)", re.IGNORECASE),
    re.compile(r"total\s+(?:rm\s*)?(\d+)", re.IGNORECASE),
    re.compile(r"total.*?(\d+)", re.IGNORECASE),
    re.compile(r"^rm\s*(\d+)$", re.IGNORECASE),
    re.compile(r"(\d{2,4})\s*(?:ringgit|dollar|myr|sgd)", re.IGNORECASE),
]

_BARE_AMOUNT = re.compile(r"^\d{2,4}$")
MIN_BARE_AMOUNT = 20
MAX_BARE_AMOUNT = 9999

# ---------------------------------------------------------------------------
# Names and emails
# ---------------------------------------------------------------------------

_NAME_LABEL = re.compile(r"^name\s*[:：]\s*(.+?)(?=\s*contact\s*[:：]|$)", re.IGNORECASE)

# Letters (any script), whitespace and parentheses only
_NAME_LIKE = re.compile(r"^(?:[^\W\d_]|[\s()（）])+$")

_TRAILING_PARENTHETICAL = re.compile(r"\s*[(（]([^)）]*)[)）]\s*$")

_EMAIL_LABEL = re.compile(r"email\s*[:：]?\s*([\w.\-+]+@[\w.\-]+\.\w+)", re.IGNORECASE)
_EMAIL = re.compile(r"[\w.%+\-]+@[\w.\-]+\.[a-zA-Z]{2,}")

# ---------------------------------------------------------------------------
# Payment methods
# ---------------------------------------------------------------------------

# Order-significant: first match wins. "cash on delivery" must be seen as
# COD before the generic CASH entry, "bank transfer" before "transfer".
PAYMENT_METHOD_PATTERNS: list[tuple[re.Pattern, PaymentMethod]] = [
    (re.compile(r"\b(?:cod|cash\s*on\s*delivery)\b", re.IGNORECASE), PaymentMethod.COD),
    (
        re.compile(r"\b(?:tng|touch\s*n\s*go|touchngo|touch\s*and\s*go)\b", re.IGNORECASE),
        PaymentMethod.TNG,
    ),
    (
        re.compile(r"\b(?:bank\s*transfer|bank\s*in|transfer|online\s*banking|fpx)\b", re.IGNORECASE),
        PaymentMethod.BANK_TRANSFER,
    ),
    (
        re.compile(r"\b(?:credit\s*card|debit\s*card|card|stripe|visa|mastercard)\b", re.IGNORECASE),
        PaymentMethod.CARD,
    ),
    (re.compile(r"\b(?:grab\s*pay|grabpay)\b", re.IGNORECASE), PaymentMethod.GRABPAY),
    (re.compile(r"\bboost\b", re.IGNORECASE), PaymentMethod.BOOST),
    (re.compile(r"\b(?:maya|paymaya)\b", re.IGNORECASE), PaymentMethod.MAYA),
    (re.compile(r"\bgcash\b", re.IGNORECASE), PaymentMethod.GCASH),
    (re.compile(r"\b(?:cash|tunai)\b", re.IGNORECASE), PaymentMethod.CASH),
    (re.compile(r"\batome\b", re.IGNORECASE), PaymentMethod.ATOME),
]

# ---------------------------------------------------------------------------
# Repeat-customer markers
# ---------------------------------------------------------------------------

_REPEAT_PATTERNS: list[re.Pattern] = [
    re.compile(r"\brpt\b", re.IGNORECASE),
    re.compile(r"\brepeat(?:ing)?\b", re.IGNORECASE),
    re.compile(r"\b(?:return|regular|existing|old)\s*customer\b", re.IGNORECASE),
    re.compile(r"重复|老客户|回头客"),
]


def _lines(text: str) -> list[str]:
    return [line.strip() for line in text.splitlines() if line.strip()]


def parse_date_token(token: str) -> date | None:
    """Convert a d/m/y token into a date. Impossible dates give None."""
    match = _DATE_PATTERN.search(token or "")
    if not match:
        return None

    day, month, year = match.group(1), match.group(2), match.group(3)
    y = int(year)
    if len(year) == 2:
        y += 2000 if y < TWO_DIGIT_YEAR_PIVOT else 1900

    try:
        return date(y, int(month), int(day))
    except ValueError:
        return None


def extract_date(text: str | None) -> date | None:
    """First date token anywhere in text."""
    if not text:
        return None
    return parse_date_token(text)


def extract_amount(text: str | None) -> int | None:
    """Extract the order total. First successful pattern wins."""
    if not text:
        return None

    stripped = text.strip()
    for pattern in _AMOUNT_PATTERNS:
        match = pattern.search(stripped)
        if match:
            return int(match.group(1))

    if _BARE_AMOUNT.match(stripped):
        amount = int(stripped)
        if MIN_BARE_AMOUNT <= amount <= MAX_BARE_AMOUNT:
            return amount

    return None


def strip_trailing_parenthetical(text: str) -> str:
    """Drop a trailing "(...)" note, e.g. "Dorcas Koh (cod)" -> "Dorcas Koh"."""
    return _TRAILING_PARENTHETICAL.sub("", text).strip()


def looks_like_name(line: str) -> bool:
    return bool(_NAME_LIKE.match(line.strip())) and any(ch.isalpha() for ch in line)


def extract_name(text: str | None) -> str | None:
    """Labeled "name:" line first, else the first letters-only line."""
    if not text:
        return None

    lines = _lines(text)
    for line in lines:
        match = _NAME_LABEL.match(line)
        if match:
            name = match.group(1).strip().rstrip(",").strip()
            if name:
                return name

    for line in lines:
        if looks_like_name(line):
            return line
    return None


def extract_email(text: str | None) -> str | None:
    if not text:
        return None

    lines = _lines(text)
    for line in lines:
        match = _EMAIL_LABEL.search(line)
        if match:
            return match.group(1)

    for line in lines:
        match = _EMAIL.search(line)
        if match:
            return match.group(0)
    return None


def detect_payment_method(text: str | None) -> PaymentMethod | None:
    if not text:
        return None

    for pattern, method in PAYMENT_METHOD_PATTERNS:
        if pattern.search(text):
            return method
    return None


def has_repeat_marker(text: str | None) -> bool:
    if not text:
        return False
    return any(pattern.search(text) for pattern in _REPEAT_PATTERNS)


class DateExtractor:
    def extract(self, text: str) -> date | None:
        return extract_date(text)


class AmountExtractor:
    def extract(self, text: str) -> int | None:
        return extract_amount(text)


class NameExtractor:
    def extract(self, text: str) -> str | None:
        return extract_name(text)


class EmailExtractor:
    def extract(self, text: str) -> str | None:
        return extract_email(text)


class PaymentMethodExtractor:
    def extract(self, text: str) -> PaymentMethod | None:
        return detect_payment_method(text)


class RepeatMarkerExtractor:
    def extract(self, text: str) -> bool:
        return has_repeat_marker(text)


class PhoneExtractor:
    """Extracts the first phone number and normalizes it (e.g. "60123456789")."""

    def extract(self, text: str) -> str | None:
        raw = extract_phone(text)
        if raw is None:
            return None
        return normalize_phone(raw) or None
