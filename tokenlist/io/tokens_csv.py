"""
CSV storage for token and ban lists.

Token CSV columns (TOKEN_COLUMNS) form a fixed, versioned set. On read,
REQUIRED_TOKEN_COLUMNS must all be present or the file is rejected with a
SchemaError; coinType and the social columns are optional. Rows are parsed
without validation: an unparseable decimals value is carried as None and
reported later by validate_token().

    tags         comma-joined inside one cell, e.g. "auto,partner"
    verified     "true" (any case) is True, everything else False
    extensions   website/twitter/github/discord/telegram/description cells
"""

from __future__ import annotations

import csv
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable

from tokenlist.io.errors import SchemaError
from tokenlist.models.token import BannedEntry, BannedList, Token

TOKEN_COLUMNS = [
    "name",
    "symbol",
    "decimals",
    "coinType",
    "objectId",
    "logoURI",
    "verified",
    "verifiedBy",
    "addedAt",
    "tags",
    "website",
    "twitter",
    "github",
    "discord",
    "telegram",
    "description",
    "version",
]

EXTENSION_COLUMNS = ["website", "twitter", "github", "discord", "telegram", "description"]

REQUIRED_TOKEN_COLUMNS = [
    "name",
    "symbol",
    "decimals",
    "objectId",
    "logoURI",
    "verified",
    "verifiedBy",
    "addedAt",
    "tags",
    "website",
    "description",
    "version",
]

BANNED_COLUMNS = ["objectId", "reason", "addedAt"]


def _read_table(path: Path, required: Iterable[str]) -> tuple[list[str], list[dict[str, str]]]:
    try:
        with path.open("r", encoding="utf-8", newline="") as handle:
            reader = csv.DictReader(handle)
            if reader.fieldnames is None:
                raise SchemaError(path, "missing CSV header")
            fieldnames = [name.strip() for name in reader.fieldnames]
            missing = [column for column in required if column not in fieldnames]
            if missing:
                raise SchemaError(path, f"CSV missing column(s): {', '.join(missing)}")
            reader.fieldnames = fieldnames
            rows: list[dict[str, str]] = []
            for row in reader:
                cleaned = {
                    key: (value or "").strip()
                    for key, value in row.items()
                    if key is not None and isinstance(value, str)
                }
                if not any(cleaned.values()):
                    continue
                rows.append(cleaned)
            return fieldnames, rows
    except UnicodeDecodeError as exc:
        raise SchemaError(path, f"not valid UTF-8: {exc}") from exc
    except csv.Error as exc:
        raise SchemaError(path, f"malformed CSV: {exc}") from exc


def _parse_int(value: str, default: int | None) -> int | None:
    if not value:
        return default
    try:
        return int(value)
    except ValueError:
        return None


def split_tags(value: str) -> tuple[str, ...]:
    return tuple(tag.strip() for tag in value.split(",") if tag.strip())


def token_from_row(row: dict[str, str]) -> Token:
    extensions = {column: row[column] for column in EXTENSION_COLUMNS if row.get(column)}
    version = _parse_int(row.get("version", ""), 1)
    return Token(
        name=row.get("name", ""),
        symbol=row.get("symbol", ""),
        decimals=_parse_int(row.get("decimals", ""), 0),
        object_id=row.get("objectId", "").lower(),
        verified=row.get("verified", "").lower() == "true",
        added_at=row.get("addedAt", ""),
        logo_uri=row.get("logoURI") or None,
        verified_by=row.get("verifiedBy") or None,
        tags=split_tags(row.get("tags", "")),
        extensions=extensions or None,
        version=version if version is not None else 1,
        coin_type=row.get("coinType") or None,
    )


def read_tokens_csv(path: Path) -> list[Token]:
    _, rows = _read_table(path, REQUIRED_TOKEN_COLUMNS)
    return [token_from_row(row) for row in rows]


def token_to_row(token: Token) -> dict[str, str]:
    extensions = token.extensions or {}
    row = {
        "name": token.name,
        "symbol": token.symbol,
        "decimals": "" if token.decimals is None else str(token.decimals),
        "coinType": token.coin_type or "",
        "objectId": token.object_id,
        "logoURI": token.logo_uri or "",
        "verified": "true" if token.verified else "false",
        "verifiedBy": token.verified_by or "",
        "addedAt": token.added_at,
        "tags": ",".join(token.tags),
        "version": str(token.version),
    }
    for column in EXTENSION_COLUMNS:
        value = extensions.get(column)
        row[column] = str(value) if value else ""
    return row


def write_tokens_csv(path: Path, tokens: Iterable[Token]) -> int:
    path.parent.mkdir(parents=True, exist_ok=True)
    count = 0
    with path.open("w", encoding="utf-8", newline="") as handle:
        writer = csv.DictWriter(handle, fieldnames=TOKEN_COLUMNS, lineterminator="\n")
        writer.writeheader()
        for token in tokens:
            writer.writerow(token_to_row(token))
            count += 1
    return count


def append_tokens_csv(path: Path, tokens: Iterable[Token]) -> int:
    """
    Add ``tokens`` after the existing rows of ``path`` and return the row count.

    Existing rows are copied back cell for cell, unparseable values and
    unknown columns included, so appending never rewrites a stored record.
    """
    if not path.exists():
        return write_tokens_csv(path, tokens)

    header, rows = _read_table(path, REQUIRED_TOKEN_COLUMNS)
    fieldnames = TOKEN_COLUMNS + [column for column in header if column not in TOKEN_COLUMNS]
    rows.extend(token_to_row(token) for token in tokens)
    with path.open("w", encoding="utf-8", newline="") as handle:
        writer = csv.DictWriter(handle, fieldnames=fieldnames, restval="", lineterminator="\n")
        writer.writeheader()
        writer.writerows(rows)
    return len(rows)


def read_banned_csv(path: Path, *, name: str, chain: str) -> BannedList:
    _, rows = _read_table(path, BANNED_COLUMNS)
    entries = [
        BannedEntry(
            object_id=row.get("objectId", "").lower(),
            reason=row.get("reason") or None,
            added_at=row.get("addedAt") or None,
        )
        for row in rows
    ]
    updated_at = datetime.now(timezone.utc).replace(microsecond=0).isoformat().replace("+00:00", "Z")
    return BannedList(name=name, chain=chain, updated_at=updated_at, banned=entries)
