"""
Data models shared by the discovery provider, normalizer and engine.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class CandidateRecord:
    """
    One normalized token produced from a single upstream page item.

    Attributes:
        name: Trimmed display name (1-64 chars).
        symbol: Trimmed ticker symbol (1-16 chars).
        decimals: Decimal precision in [0, 18].
        object_id: Lowercase ``0x``-prefixed hex identifier.
        coin_type: Upstream coin type string, if supplied.
        logo_uri: Icon URL as reported upstream, if any.
        website: Project website as reported upstream, if any.
    """
    name: str
    symbol: str
    decimals: int
    object_id: str
    coin_type: str | None = None
    logo_uri: str | None = None
    website: str | None = None


@dataclass(frozen=True)
class ProviderPage:
    """
    One page returned by a discovery provider.

    Attributes:
        items: Raw page items; their schema is not controlled by us.
        total_pages: Provider-reported total page count, when present.
        total_count: Provider-reported total item count, when present.
    """
    items: list[Any]
    total_pages: int | None = None
    total_count: int | None = None


@dataclass(frozen=True)
class Checkpoint:
    """
    Persisted pagination cursor.

    Attributes:
        next_page: 1-based index of the first page not yet processed.
        page_size: Page size the cursor was recorded with.
        total_pages: Last provider-reported total page count, if known.
        updated_at: ISO-8601 UTC time the checkpoint was written.
    """
    next_page: int
    page_size: int
    total_pages: int | None = None
    updated_at: str | None = None


@dataclass(frozen=True)
class DiscoveryResult:
    """
    Outcome of one discovery run.

    Attributes:
        candidates: Accepted records in page order.
        start_page: First page fetched in this run.
        pages_fetched: Number of fetch calls made.
        raw_items: Total raw items seen across fetched pages.
        stop_reason: "exhausted" (empty page), "last_page" (short page)
            or "page_cap".
        next_page: Page a later run would resume from; None once exhausted.
        total_pages: Last provider-reported total page count.
        rejects: Normalizer reject counts keyed by reason code.
    """
    candidates: list[CandidateRecord]
    start_page: int
    pages_fetched: int
    raw_items: int
    stop_reason: str
    next_page: int | None
    total_pages: int | None
    rejects: dict[str, int] = field(default_factory=dict)

    @property
    def completed(self) -> bool:
        return self.stop_reason in {"exhausted", "last_page"}
