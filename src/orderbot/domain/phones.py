"""Malaysian (+60) and Singaporean (+65) phone numbers.

Normalized form is a bare digit string carrying the country code,
e.g. "60194419638" or "6591234567".
Security: phone numbers are PII, NEVER log them raw.
"""

import re

MY_COUNTRY_CODE = "60"
SG_COUNTRY_CODE = "65"

# Ordered: most specific first. Digits may never touch either end of a match.
_PHONE_PATTERNS: list[re.Pattern] = [
    # Malaysian mobile: +60 / 60 / 0, then 1X, then 6-8 digits
    re.compile(r"(?<!\d)(?:\+?60|0)[\s-]?1\d[\s-]?\d{3,4}[\s-]?\d{3,4}(?!\d)"),
    # Malaysian landline: area code 3-9, then 7-8 digits
    re.compile(r"(?<!\d)(?:\+?60|0)[\s-]?[3-9][\s-]?\d{3,4}[\s-]?\d{4}(?!\d)"),
    # Singapore: optional +65, 8 digits starting with 6/8/9
    re.compile(r"(?<!\d)(?:\+?65[\s-]?)?[689]\d{3}[\s-]?\d{4}(?!\d)"),
]


def normalize_phone(raw: str | None) -> str:
    """Normalize a phone number to digits with a country code.

    Unrecognized shapes are returned as bare digits; empty input gives "".
    """
    if not raw:
        return ""

    digits = re.sub(r"\D", "", raw)
    if not digits:
        return ""

    if digits.startswith(MY_COUNTRY_CODE):
        return digits
    if digits.startswith(SG_COUNTRY_CODE) and len(digits) == 10:
        return digits
    if digits.startswith("0"):
        return MY_COUNTRY_CODE + digits[1:]
    if len(digits) == 8 and digits[0] in "3689":
        return SG_COUNTRY_CODE + digits
    if 9 <= len(digits) <= 11 and digits[0] in "123456789":
        return MY_COUNTRY_CODE + digits

    return digits


def country_code(normalized: str) -> str | None:
    """Country code of a normalized number, or None if it carries none."""
    if normalized.startswith(MY_COUNTRY_CODE):
        return MY_COUNTRY_CODE
    if normalized.startswith(SG_COUNTRY_CODE) and len(normalized) == 10:
        return SG_COUNTRY_CODE
    return None


def national_number(normalized: str) -> str:
    """Subscriber part of a normalized number (country code removed)."""
    code = country_code(normalized)
    return normalized[len(code):] if code else normalized


def find_phone(text: str | None) -> re.Match | None:
    """Locate the first phone-like token in text."""
    if not text:
        return None

    for pattern in _PHONE_PATTERNS:
        match = pattern.search(text)
        if match:
            return match
    return None


def extract_phone(text: str | None) -> str | None:
    """Return the first phone-like token exactly as written, or None."""
    match = find_phone(text)
    return match.group(0) if match else None


def looks_like_phone(text: str | None) -> bool:
    return find_phone(text) is not None
