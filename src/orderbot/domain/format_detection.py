"""Order message format detection.

CONDENSED: "8/8/25.rpt Cod rm278 Dorcas Koh 0127370668 ... 81100 jb 3f1w"
MULTILINE: anything else (labeled or positional, one field per line).
"""

import re

from orderbot.domain.extractors import DATE_TOKEN
from orderbot.domain.orders import OrderFormat
from orderbot.domain.product_code import PRODUCT_CODE_TOKEN

MAX_CONDENSED_LINES = 2

_LEADING_DATE = re.compile(rf"^{DATE_TOKEN}(?!\d)")
_TRAILING_PRODUCT_CODE = re.compile(rf"(?:^|\s)(?:{PRODUCT_CODE_TOKEN})+\s*$", re.IGNORECASE)


def detect_format(raw: str | None) -> OrderFormat:
    """Classify a message. Pure; always returns a value."""
    trimmed = (raw or "").strip()

    starts_with_date = bool(_LEADING_DATE.match(trimmed))
    line_count = sum(1 for line in trimmed.splitlines() if line.strip())
    ends_with_product_code = bool(_TRAILING_PRODUCT_CODE.search(trimmed))

    if starts_with_date and line_count <= MAX_CONDENSED_LINES and ends_with_product_code:
        return OrderFormat.CONDENSED
    return OrderFormat.MULTILINE
