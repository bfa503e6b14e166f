"""Free-text address decomposition for Malaysian / Singaporean addresses.

Uses fixed gazetteers and postcode adjacency heuristics. Every lookup
table below is an ordered list: the first match wins, so overlapping
aliases must be listed from the intended winner down.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from dataclasses import replace

from orderbot.domain.extractors import (
    DATE_TOKEN,
    PAYMENT_METHOD_PATTERNS,
)
from orderbot.domain.orders import ParsedAddress
from orderbot.domain.phones import find_phone
from orderbot.domain.product_code import is_product_code

MALAYSIA = "Malaysia"
SINGAPORE = "Singapore"

# (aliases, canonical state). Order-significant.
STATE_GAZETTEER: list[tuple[tuple[str, ...], str]] = [
    (("selangor", "sel", "shah alam", "pj", "subang", "klang"), "Selangor"),
    (("kuala lumpur", "kl", "k.l", "k l"), "Kuala Lumpur"),
    (("penang", "pulau pinang", "pg", "georgetown", "george town"), "Penang"),
    (
        ("johor", "jb", "johor bahru", "johor baru", "skudai", "masai", "iskandar puteri"),
        "Johor",
    ),
    (("perak", "ipoh", "taiping", "teluk intan"), "Perak"),
    (("kedah", "alor setar", "sungai petani"), "Kedah"),
    (("kelantan", "kota bharu", "kota bahru"), "Kelantan"),
    (("terengganu", "kuala terengganu"), "Terengganu"),
    (("pahang", "kuantan", "temerloh"), "Pahang"),
    (("negeri sembilan", "n9", "ns", "seremban", "port dickson"), "Negeri Sembilan"),
    (("melaka", "malacca"), "Melaka"),
    (("perlis", "kangar"), "Perlis"),
    (("sabah", "kota kinabalu", "sandakan", "tawau"), "Sabah"),
    (("sarawak", "kuching", "miri", "sibu"), "Sarawak"),
    (("putrajaya", "cyberjaya"), "Putrajaya"),
    (("labuan",), "Labuan"),
    (("singapore", "sg", "republik singapura"), SINGAPORE),
]

# Multi-word city names, tried before the generic locality prefixes
CITY_NAMES: list[str] = [
    "shah alam",
    "pj",
    "petaling jaya",
    "subang jaya",
    "seri kembangan",
    "puchong",
    "cheras",
    "ampang",
    "damansara",
    "mont kiara",
    "ttdi",
    "bangsar",
    "mid valley",
    "kl sentral",
    "bukit bintang",
    "georgetown",
    "george town",
    "bayan lepas",
    "butterworth",
    "bukit mertajam",
    "nibong tebal",
    "johor bahru",
    "iskandar puteri",
    "kota kinabalu",
]

CITY_PREFIXES: list[str] = ["taman", "bandar", "kampung", "kg", "pekan", "town"]

# Courier and payment words are removed before the state scan
_NOISE_WORDS = re.compile(
    r"\b(?:j\s*&\s*t|jnt|pos\s*laju|poslaju|ninja\s*van|dhl|gdex|city\s*link|lalamove|shopee)\b",
    re.IGNORECASE,
)

_LABEL_PREFIX = re.compile(r"^\s*(?:address\s*[:：]|地址\s*[:：]?)\s*", re.IGNORECASE)
_NOISE_LINE = re.compile(
    rf"^(?:{DATE_TOKEN}|(?:contact|name|date|payment)\s*[:：])|total",
    re.IGNORECASE,
)

_POSTCODE_MY = re.compile(r"\b\d{5}\b")
_POSTCODE_SG = re.compile(r"\b\d{6}\b")


def _alias_pattern(alias: str) -> re.Pattern:
    return re.compile(rf"(?<![a-z0-9]){re.escape(alias)}(?![a-z0-9])", re.IGNORECASE)


_STATE_PATTERNS: list[tuple[re.Pattern, str]] = [
    (_alias_pattern(alias), state) for aliases, state in STATE_GAZETTEER for alias in aliases
]
_CITY_NAME_PATTERNS: list[re.Pattern] = [_alias_pattern(name) for name in CITY_NAMES]
_CITY_PREFIX_PATTERNS: list[re.Pattern] = [_alias_pattern(prefix) for prefix in CITY_PREFIXES]


def _is_noise_line(line: str) -> bool:
    if _NOISE_LINE.search(line):
        return True
    if is_product_code(line):
        return True
    phone = find_phone(line)
    # A line that is nothing but a phone number
    return phone is not None and not line.replace(phone.group(0), "").strip(" ,.-")


def candidate_text(fragment: str) -> str:
    """Drop non-address lines and join the rest into one string."""
    lines = []
    for line in (fragment or "").splitlines():
        line = _LABEL_PREFIX.sub("", line.strip()).strip()
        if line and not _is_noise_line(line):
            lines.append(line.rstrip(","))
    return ", ".join(lines)


def _phone_spans(text: str) -> list[tuple[int, int]]:
    spans = []
    pos = 0
    while True:
        match = find_phone(text[pos:])
        if match is None:
            return spans
        spans.append((pos + match.start(), pos + match.end()))
        pos += match.end()


def _find_postcode(text: str) -> str | None:
    spans = _phone_spans(text)
    for pattern in (_POSTCODE_MY, _POSTCODE_SG):
        for match in pattern.finditer(text):
            inside_phone = any(start <= match.start() < end for start, end in spans)
            if not inside_phone:
                return match.group(0)
    return None


def _find_state(text: str, postcode: str | None = None) -> tuple[str | None, re.Pattern | None]:
    """First gazetteer state in text. A Malaysian postcode rules out Singapore ("Sg" is also Sungai)."""
    malaysian_postcode = postcode is not None and len(postcode) == 5
    scrubbed = _NOISE_WORDS.sub(" ", text)
    for pattern, _method in PAYMENT_METHOD_PATTERNS:
        scrubbed = pattern.sub(" ", scrubbed)

    for pattern, state in _STATE_PATTERNS:
        if malaysian_postcode and state == SINGAPORE:
            continue
        if pattern.search(scrubbed):
            return state, pattern
    return None, None


def _strip_postcode(segment: str, postcode: str) -> str:
    """Text around the postcode: what precedes it, else what follows it."""
    before, _, after = segment.partition(postcode)
    before = before.strip(" ,.")
    return before if before else after.strip(" ,.")


def _tidy_city(city: str, postcode: str | None, state: str | None, state_pattern: re.Pattern | None) -> str:
    if postcode:
        city = city.replace(postcode, " ")

    stripped = city
    if state:
        stripped = re.sub(re.escape(state), " ", stripped, flags=re.IGNORECASE)
    if state_pattern is not None:
        stripped = state_pattern.sub(" ", stripped)
    # Keep the state words when they are the whole city ("Kuala Lumpur", "Ipoh")
    if stripped.strip(" ,."):
        city = stripped
    city = re.sub(r"\s+", " ", city)
    return city.strip(" ,").rstrip(".").strip()


def _find_city(
    parts: list[str],
    postcode: str | None,
    state: str | None,
    postcode_cities: Mapping[str, str] | None,
) -> tuple[str, bool]:
    """Returns (city, known). Known cities keep their state words ("Johor Bahru")."""
    if postcode and postcode_cities and postcode in postcode_cities:
        return postcode_cities[postcode], True

    for patterns, known in ((_CITY_NAME_PATTERNS, True), (_CITY_PREFIX_PATTERNS, False)):
        for part in parts:
            if any(p.search(part) for p in patterns):
                city = _strip_postcode(part, postcode) if postcode and postcode in part else part
                return city, known

    if postcode:
        for i, part in enumerate(parts):
            if postcode in part:
                remainder = _strip_postcode(part, postcode)
                if remainder:
                    return remainder, False
                if i > 0:
                    return parts[i - 1], False
                if i + 1 < len(parts):
                    return parts[i + 1], False

    if state:
        for i, part in enumerate(parts):
            if state.lower() in part.lower() and i > 0:
                return parts[i - 1], False

    return "", False


def parse_address(
    fragment: str,
    postcode_cities: Mapping[str, str] | None = None,
) -> ParsedAddress:
    """Decompose an address fragment into postcode / city / state / country.

    Args:
        fragment: Raw address text; may span several lines and carry noise
            lines (dates, totals, phone numbers, product codes).
        postcode_cities: Optional postcode -> city table, preferred over
            the gazetteer heuristics when it knows the postcode.

    Returns:
        ParsedAddress. Missing parts are None; never raises.
    """
    text = candidate_text(fragment)
    if not text:
        return ParsedAddress(raw="", country=MALAYSIA)

    postcode = _find_postcode(text)
    state, state_pattern = _find_state(text, postcode)

    parts = [p.strip() for p in re.split(r"[,|\n]", text) if p.strip()]
    city, known = _find_city(parts, postcode, state, postcode_cities)
    if known:
        city = _tidy_city(city, postcode, None, None)
    else:
        city = _tidy_city(city, postcode, state, state_pattern)

    # A postcode decides the country on its own
    if postcode is not None:
        country = SINGAPORE if len(postcode) == 6 else MALAYSIA
    else:
        country = SINGAPORE if state == SINGAPORE else MALAYSIA

    parsed = ParsedAddress(
        raw=text,
        postcode=postcode,
        city=city or None,
        state=state,
        country=country,
    )
    return replace(parsed, line=clean_address_line(parsed))


def _state_aliases(state: str) -> list[str]:
    aliases = {state.lower()}
    for names, canonical in STATE_GAZETTEER:
        if canonical == state:
            aliases.update(names)
    return sorted(aliases, key=len, reverse=True)


def _strip_trailing_state(segment: str, aliases: list[str]) -> str:
    for alias in aliases:
        match = re.search(rf"\s{re.escape(alias)}$", segment, re.IGNORECASE)
        if match:
            return segment[: match.start()].strip()
    return segment


def clean_address_line(parsed: ParsedAddress) -> str:
    """Address line with postcode, state and labels removed.

    A segment that is only the state is dropped; a state word trailing the
    last segment is cut unless that segment is a known city ("Johor Bahru").
    """
    line = _LABEL_PREFIX.sub("", parsed.raw)
    if parsed.postcode:
        line = line.replace(parsed.postcode, " ")

    segments = [re.sub(r"\s+", " ", s).strip(" .") for s in line.split(",")]
    segments = [s for s in segments if s]
    if parsed.state and segments:
        aliases = _state_aliases(parsed.state)
        segments = [s for s in segments if s.lower() not in aliases]
        if segments and segments[-1].lower() not in CITY_NAMES:
            segments[-1] = _strip_trailing_state(segments[-1], aliases)

    return ", ".join(s for s in segments if s)


def extract_address(
    text: str | None,
    postcode_cities: Mapping[str, str] | None = None,
) -> ParsedAddress | None:
    """Address from a whole message: text after the last "address" label, if any."""
    if not text:
        return None

    src = text.strip()
    idx = src.lower().rfind("address")
    if idx != -1:
        src = src[idx:]

    parsed = parse_address(src, postcode_cities)
    return parsed if parsed.raw else None


class AddressExtractor:
    def __init__(self, postcode_cities: Mapping[str, str] | None = None):
        self._postcode_cities = postcode_cities

    def extract(self, text: str) -> ParsedAddress | None:
        return extract_address(text, self._postcode_cities)
