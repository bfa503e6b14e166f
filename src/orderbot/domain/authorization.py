"""Sender allow-list.

Only agents on the allow-list may submit orders through the bot.
The list is built once from configuration and passed in explicitly.
"""

from collections.abc import Iterable

from orderbot.domain.phones import country_code, national_number, normalize_phone


def _same_number(a: str, b: str) -> bool:
    if a == b:
        return True

    code_a, code_b = country_code(a), country_code(b)
    if code_a and code_b and code_a != code_b:
        return False
    # Same country, or one side was written without its country code
    return national_number(a) == national_number(b)


class AllowList:
    """Immutable set of authorized sender numbers (normalized)."""

    def __init__(self, numbers: Iterable[str]):
        normalized = (normalize_phone(n) for n in numbers)
        self._numbers = frozenset(n for n in normalized if n)

    @classmethod
    def from_csv(cls, value: str | None) -> "AllowList":
        """Build from a comma-separated value, e.g. an env var."""
        return cls(part.strip() for part in (value or "").split(",") if part.strip())

    @property
    def numbers(self) -> frozenset[str]:
        return self._numbers

    def __len__(self) -> int:
        return len(self._numbers)

    def __contains__(self, phone: object) -> bool:
        return isinstance(phone, str) and self.is_authorized(phone)

    def is_authorized(self, phone: str | None) -> bool:
        """True if phone matches an allow-listed number. Never raises."""
        normalized = normalize_phone(phone)
        if not normalized:
            return False
        return any(_same_number(normalized, allowed) for allowed in self._numbers)


def is_authorized(phone: str | None, allow_list: AllowList) -> bool:
    return allow_list.is_authorized(phone)
