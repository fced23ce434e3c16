from __future__ import annotations

import re
from datetime import datetime

from tokenlist.models.token import Token

HEX_LOWER_PATTERN = re.compile(r"^0x[0-9a-f]+$")
ISO_UTC_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}(\.\d{1,6})?Z$")


def is_hex_lower(value: str) -> bool:
    return bool(HEX_LOWER_PATTERN.match(value))


def is_iso_utc(value: str) -> bool:
    if not ISO_UTC_PATTERN.match(value):
        return False
    try:
        datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return False
    return True


def validate_token(token: Token) -> list[str]:
    """Return every structural violation of ``token``; empty when valid."""
    errors: list[str] = []
    if not token.name or not token.name.strip():
        errors.append("name required")
    if not token.symbol or not token.symbol.strip():
        errors.append("symbol required")
    if token.decimals is None or isinstance(token.decimals, bool) or not 0 <= token.decimals <= 18:
        errors.append("decimals 0-18")
    if not is_hex_lower(token.object_id or ""):
        errors.append("objectId must be 0x-prefixed lowercase hex")
    if not is_iso_utc(token.added_at or ""):
        errors.append("addedAt must be ISO-8601 UTC")
    if not isinstance(token.verified, bool):
        errors.append("verified boolean required")
    if token.logo_uri is not None and not (
        isinstance(token.logo_uri, str) and token.logo_uri.startswith("https://")
    ):
        errors.append("logoURI must be HTTPS")
    if token.verified_by is not None and not isinstance(token.verified_by, str):
        errors.append("verifiedBy must be a string")
    if token.coin_type is not None and not isinstance(token.coin_type, str):
        errors.append("coinType must be a string")
    return errors
