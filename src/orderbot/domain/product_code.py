"""Product code grammar.

A product code is a compact run of tokens such as ``1w1f1s1w30ml``:

    code     := token*
    token    := quantity letter sizeTag?
    quantity := \\d+
    letter   := 'w' | 'f' | 's'
    sizeTag  := '30ml' | '10ml'

Parsing is greedy and leftmost-first; the sized form of a token is tried
before the bare form so ``1w30ml`` never leaves a dangling ``30ml``.
"""

import re

from orderbot.domain.orders import LineItem, ProductKey

# Single token, as used by format detection and line classifiers
PRODUCT_CODE_TOKEN = r"\d+[wfs](?:\d+ml)?"

_PRODUCT_CODE_LINE = re.compile(rf"^(?:{PRODUCT_CODE_TOKEN})+$", re.IGNORECASE)

_SIZED_TOKEN = re.compile(r"(\d+)([wfs])(30ml|10ml)")
_BARE_TOKEN = re.compile(r"(\d+)([wfs])")

# (letter, size tag) -> product key. "f" with no tag is the 30ml bottle.
_PRODUCT_TABLE: dict[tuple[str, str | None], ProductKey] = {
    ("w", None): ProductKey.WASH,
    ("w", "30ml"): ProductKey.WASH_30ML,
    ("f", None): ProductKey.FEMLIFT_30ML,
    ("f", "30ml"): ProductKey.FEMLIFT_30ML,
    ("f", "10ml"): ProductKey.FEMLIFT_10ML,
}


def _resolve(letter: str, size: str | None) -> tuple[ProductKey, str | None] | None:
    if letter == "s":
        return ProductKey.SPRAY, None

    key = _PRODUCT_TABLE.get((letter, size))
    if key is None:
        # e.g. "1w10ml": no 10ml wash exists, fall back to the untagged product
        key = _PRODUCT_TABLE[(letter, None)]
        size = None

    if key is ProductKey.FEMLIFT_30ML:
        size = "30ml"
    return key, size


def is_product_code(text: str) -> bool:
    """True if the whole (whitespace-stripped) text is a product code."""
    cleaned = re.sub(r"\s+", "", text)
    return bool(cleaned) and bool(_PRODUCT_CODE_LINE.match(cleaned))


def parse_product_code(code: str) -> list[LineItem]:
    """Parse a product code into ordered line items.

    Never raises: scanning stops at the first unparseable residue and the
    items parsed so far are returned.
    """
    if not code:
        return []

    remaining = re.sub(r"\s+", "", code).lower()
    items: list[LineItem] = []

    while remaining:
        match = _SIZED_TOKEN.match(remaining) or _BARE_TOKEN.match(remaining)
        if match is None:
            break

        quantity = int(match.group(1))
        letter = match.group(2)
        size = match.group(3) if match.re is _SIZED_TOKEN else None
        remaining = remaining[match.end():]

        if quantity <= 0:
            continue

        product_key, variant = _resolve(letter, size)
        items.append(LineItem(product_key=product_key, quantity=quantity, variant=variant))

    return items
