"""
Loading of the three token sources from a data directory.

CSV files take precedence over their JSON counterparts. Missing sources are
empty; a present but malformed source raises SchemaError.
"""

from __future__ import annotations

from datetime import datetime, timezone

from tokenlist.io.json_io import read_banned_json, read_tokens_json
from tokenlist.io.layout import DataLayout
from tokenlist.io.tokens_csv import read_banned_csv, read_tokens_csv
from tokenlist.models.token import BannedList, Token


def load_discovered(layout: DataLayout) -> list[Token]:
    if layout.discovered_csv.exists():
        return read_tokens_csv(layout.discovered_csv)
    return []


def load_curated(layout: DataLayout) -> list[Token]:
    if layout.validated_csv.exists():
        return read_tokens_csv(layout.validated_csv)
    if layout.tokens_json.exists():
        return read_tokens_json(layout.tokens_json)
    return []


def load_banned(layout: DataLayout, *, name: str, chain: str) -> BannedList:
    if layout.banned_csv.exists():
        return read_banned_csv(layout.banned_csv, name=name, chain=chain)
    if layout.banned_json.exists():
        banned = read_banned_json(layout.banned_json)
        return BannedList(
            name=banned.name or name,
            chain=banned.chain or chain,
            updated_at=banned.updated_at,
            banned=banned.banned,
        )
    updated_at = datetime.now(timezone.utc).replace(microsecond=0).isoformat().replace("+00:00", "Z")
    return BannedList(name=name, chain=chain, updated_at=updated_at, banned=[])
