"""
Raw discovery item normalization.

Upstream page items have no stable schema: the same logical field has been
observed under several names over time. FIELD_ALIASES lists, per logical
field, the candidate keys in priority order; the first present, non-empty
value wins.

An item either becomes a CandidateRecord or is rejected. Rejection is not an
error: reject_reason() returns a short code so callers can count rejects, and
normalize_item() simply returns None.
"""

from __future__ import annotations

import re
from collections import Counter
from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping

from tokenlist.models.discovery import CandidateRecord

FIELD_ALIASES: dict[str, tuple[str, ...]] = {
    "object_id": ("objectId", "object_id"),
    "coin_type": ("coinType", "coin_type", "type"),
    "name": ("name", "coinName"),
    "symbol": ("symbol", "coinDenom", "coinSymbol"),
    "decimals": ("decimals",),
    "description": ("description",),
    "logo_uri": ("iconUrl", "icon_url", "imgUrl"),
    "website": ("websiteUrl", "website_url"),
}

MAX_SYMBOL_LENGTH = 16
MAX_NAME_LENGTH = 64
MAX_DECIMALS = 18

OBJECT_ID_PATTERN = re.compile(r"^0x[0-9a-f]+$")
COIN_TYPE_ID_PATTERN = re.compile(r"[0-9a-fA-F]{64}")

SPAM_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"test", re.IGNORECASE),
    re.compile(r"fake", re.IGNORECASE),
    re.compile(r"scam", re.IGNORECASE),
    re.compile(r"admin", re.IGNORECASE),
    re.compile(r"\$\$\$"),
    re.compile("(?:[\U0001F680\U0001F48E\U0001F525\U0001F4B0\U0001F315]\\s*){3,}"),
    re.compile(r"\.{3,}"),
    re.compile(r"\bx{3,}\b", re.IGNORECASE),
)


@dataclass
class NormalizedPage:
    candidates: list[CandidateRecord] = field(default_factory=list)
    rejects: Counter[str] = field(default_factory=Counter)


def pick_field(item: Mapping[str, Any], logical_name: str) -> Any:
    """Return the first present, non-empty value among the aliases of a field."""
    for key in FIELD_ALIASES[logical_name]:
        value = item.get(key)
        if value is None:
            continue
        if isinstance(value, str):
            if not value.strip():
                continue
        return value
    return None


def extract_object_id(item: Mapping[str, Any]) -> str | None:
    direct = pick_field(item, "object_id")
    if isinstance(direct, str):
        candidate = direct.strip().lower()
        if OBJECT_ID_PATTERN.match(candidate):
            return candidate

    for key in FIELD_ALIASES["coin_type"]:
        coin_type = item.get(key)
        if not isinstance(coin_type, str):
            continue
        match = COIN_TYPE_ID_PATTERN.search(coin_type)
        if match:
            return f"0x{match.group(0).lower()}"
    return None


def is_spam(name: str, symbol: str, description: str | None = None) -> bool:
    text = f"{name} {symbol} {description or ''}"
    return any(pattern.search(text) for pattern in SPAM_PATTERNS)


def _coerce_decimals(value: Any) -> int | None:
    if value is None:
        return 0
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if value.is_integer() else None
    if isinstance(value, str) and value.strip().isdecimal():
        return int(value.strip())
    return None


def _text(value: Any) -> str:
    return value.strip() if isinstance(value, str) else ""


def _optional_text(value: Any) -> str | None:
    text = _text(value)
    return text or None


def classify_item(item: Any) -> tuple[CandidateRecord | None, str | None]:
    """Return (record, None) for an acceptable item or (None, reason) otherwise."""
    if not isinstance(item, Mapping):
        return None, "not_an_object"
    object_id = extract_object_id(item)
    if object_id is None:
        return None, "invalid_object_id"

    name = _text(pick_field(item, "name"))
    symbol = _text(pick_field(item, "symbol"))
    if not name:
        return None, "missing_name"
    if not symbol:
        return None, "missing_symbol"

    decimals = _coerce_decimals(pick_field(item, "decimals"))
    if decimals is None or not 0 <= decimals <= MAX_DECIMALS:
        return None, "invalid_decimals"
    if len(symbol) > MAX_SYMBOL_LENGTH:
        return None, "symbol_too_long"
    if len(name) > MAX_NAME_LENGTH:
        return None, "name_too_long"

    description = pick_field(item, "description")
    if is_spam(name, symbol, description if isinstance(description, str) else None):
        return None, "spam"

    record = CandidateRecord(
        name=name,
        symbol=symbol,
        decimals=decimals,
        object_id=object_id,
        coin_type=_optional_text(pick_field(item, "coin_type")),
        logo_uri=_optional_text(pick_field(item, "logo_uri")),
        website=_optional_text(pick_field(item, "website")),
    )
    return record, None


def reject_reason(item: Any) -> str | None:
    return classify_item(item)[1]


def normalize_item(item: Any) -> CandidateRecord | None:
    return classify_item(item)[0]


def normalize_page(items: Iterable[Any]) -> NormalizedPage:
    page = NormalizedPage()
    for item in items:
        record, reason = classify_item(item)
        if record is None:
            page.rejects[reason or "unknown"] += 1
            continue
        page.candidates.append(record)
    return page
