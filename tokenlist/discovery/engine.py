"""
Resumable pagination over a discovery provider.

The engine fetches one page at a time, normalizes every item and accumulates
the accepted candidates. After each page that is not known to be the last it
persists a checkpoint holding the next page index, so an interrupted run can
be resumed without refetching or skipping pages.

Termination, checked in order after each fetch:
    1. empty page                      -> "exhausted", checkpoint deleted
    2. short page (< page size)        -> "last_page", checkpoint deleted
    3. next page beyond effective cap  -> "page_cap", checkpoint kept

Any exception raised by the provider propagates unchanged; the checkpoint
then still points at the first page this run did not complete.
"""

from __future__ import annotations

import logging
import math
import time
from collections import Counter
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Protocol

from tokenlist.discovery.checkpoint import delete_checkpoint, load_checkpoint, write_checkpoint
from tokenlist.discovery.normalizer import normalize_page
from tokenlist.models.discovery import CandidateRecord, Checkpoint, DiscoveryResult, ProviderPage
from tokenlist.obs.logging import log_event


class PageProvider(Protocol):
    def fetch_page(self, page: int, page_size: int) -> ProviderPage:
        ...


@dataclass(frozen=True)
class EngineSettings:
    """
    Attributes:
        page_size: Items requested per page (already clamped to provider max).
        checkpoint_path: Location of the persisted cursor.
        resume: Resume from a compatible checkpoint; False discards it.
        start_page: Page to start from when there is nothing to resume.
        rate_limit_s: Pause between successive fetches.
    """
    page_size: int
    checkpoint_path: Path
    resume: bool = True
    start_page: int | None = None
    rate_limit_s: float = 0.2


def clamp_page_size(requested: int, provider_max: int) -> int:
    return max(1, min(requested, provider_max))


def effective_page_cap(
    start_page: int,
    page_limit: int | None,
    reported_total_pages: int | None,
) -> float:
    """
    Highest page index this run may fetch.

    ``page_limit`` counts pages per run, so it is anchored at ``start_page``;
    ``reported_total_pages`` is already an absolute index. A limit of None or
    <= 0 means unbounded.
    """
    cap = math.inf
    if page_limit is not None and page_limit > 0:
        cap = start_page + page_limit - 1
    if reported_total_pages is not None:
        cap = min(cap, reported_total_pages)
    return cap


class DiscoveryEngine:
    def __init__(
        self,
        provider: PageProvider,
        settings: EngineSettings,
        *,
        logger: logging.Logger | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        if settings.page_size < 1:
            raise ValueError("page_size must be >= 1")
        self._provider = provider
        self._settings = settings
        self._logger = logger or logging.getLogger(__name__)
        self._sleep = sleep

    def _starting_point(self) -> tuple[int, int | None]:
        """Return (start page, last known total pages)."""
        path = self._settings.checkpoint_path
        if not self._settings.resume:
            if delete_checkpoint(path):
                log_event(
                    self._logger,
                    logging.INFO,
                    "checkpoint_reset",
                    "Discarded discovery checkpoint",
                    path=str(path),
                )
        else:
            checkpoint = load_checkpoint(path, logger=self._logger)
            if checkpoint is not None:
                if checkpoint.page_size == self._settings.page_size:
                    log_event(
                        self._logger,
                        logging.INFO,
                        "checkpoint_resumed",
                        f"Resuming discovery from page {checkpoint.next_page}",
                        next_page=checkpoint.next_page,
                        page_size=checkpoint.page_size,
                        total_pages=checkpoint.total_pages,
                    )
                    return checkpoint.next_page, checkpoint.total_pages
                log_event(
                    self._logger,
                    logging.WARNING,
                    "checkpoint_incompatible",
                    "Checkpoint page size differs from configured page size; starting over",
                    checkpoint_page_size=checkpoint.page_size,
                    page_size=self._settings.page_size,
                )

        if self._settings.start_page is not None:
            return self._settings.start_page, None
        return 1, None

    def discover(self, page_cap: int | None = None) -> DiscoveryResult:
        page_size = self._settings.page_size
        path = self._settings.checkpoint_path
        start_page, total_pages = self._starting_point()

        candidates: list[CandidateRecord] = []
        rejects: Counter[str] = Counter()
        raw_items = 0
        pages_fetched = 0
        page = start_page

        log_event(
            self._logger,
            logging.INFO,
            "discovery_started",
            f"Starting discovery at page {start_page}",
            start_page=start_page,
            page_size=page_size,
            page_cap=page_cap,
        )

        while True:
            if pages_fetched > 0 and self._settings.rate_limit_s > 0:
                self._sleep(self._settings.rate_limit_s)

            try:
                result = self._provider.fetch_page(page, page_size)
            except Exception:
                log_event(
                    self._logger,
                    logging.ERROR,
                    "discovery_failed",
                    f"Fetching page {page} failed; checkpoint left in place",
                    page=page,
                    pages_fetched=pages_fetched,
                    discarded_candidates=len(candidates),
                )
                raise
            pages_fetched += 1

            if result.total_pages is not None and result.total_pages != total_pages:
                total_pages = result.total_pages
                log_event(
                    self._logger,
                    logging.INFO,
                    "total_pages_reported",
                    f"Provider reports {total_pages} pages",
                    total_pages=total_pages,
                )

            item_count = len(result.items)
            if item_count == 0:
                stop_reason = "exhausted"
                next_page = None
                break

            normalized = normalize_page(result.items)
            candidates.extend(normalized.candidates)
            rejects.update(normalized.rejects)
            raw_items += item_count
            log_event(
                self._logger,
                logging.INFO,
                "page_fetched",
                f"Page {page}: {len(normalized.candidates)}/{item_count} valid tokens",
                page=page,
                raw_items=item_count,
                accepted=len(normalized.candidates),
                total_accepted=len(candidates),
            )

            if item_count < page_size:
                stop_reason = "last_page"
                next_page = None
                break

            next_page = page + 1
            write_checkpoint(path, Checkpoint(next_page=next_page, page_size=page_size, total_pages=total_pages))
            log_event(
                self._logger,
                logging.DEBUG,
                "checkpoint_written",
                f"Checkpoint saved at page {next_page}",
                next_page=next_page,
            )

            cap = effective_page_cap(start_page, page_cap, total_pages)
            if next_page > cap:
                stop_reason = "page_cap"
                break
            page = next_page

        if stop_reason != "page_cap":
            delete_checkpoint(path)

        log_event(
            self._logger,
            logging.INFO,
            "discovery_complete",
            f"Discovery stopped ({stop_reason}): {len(candidates)} valid tokens from {raw_items} items",
            stop_reason=stop_reason,
            pages_fetched=pages_fetched,
            accepted=len(candidates),
            raw_items=raw_items,
            next_page=next_page,
            rejects=dict(rejects),
        )
        return DiscoveryResult(
            candidates=candidates,
            start_page=start_page,
            pages_fetched=pages_fetched,
            raw_items=raw_items,
            stop_reason=stop_reason,
            next_page=next_page,
            total_pages=total_pages,
            rejects=dict(rejects),
        )
