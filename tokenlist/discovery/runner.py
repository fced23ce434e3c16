from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Iterable

from tokenlist.compose.merge import candidates_to_tokens, generation_timestamp, select_new_candidates
from tokenlist.config import AppConfig
from tokenlist.discovery.engine import DiscoveryEngine, EngineSettings, PageProvider, clamp_page_size
from tokenlist.io.layout import DataLayout
from tokenlist.io.sources import load_banned, load_curated, load_discovered
from tokenlist.io.tokens_csv import append_tokens_csv
from tokenlist.models.discovery import DiscoveryResult
from tokenlist.models.token import BannedList, Token
from tokenlist.obs.logging import log_event
from tokenlist.obs.metrics import update_metrics


@dataclass(frozen=True)
class DiscoveryOptions:
    page_cap: int | None = None
    page_size: int | None = None
    resume: bool | None = None
    start_page: int | None = None
    rate_limit_ms: int | None = None


@dataclass(frozen=True)
class DiscoverySummary:
    result: DiscoveryResult
    known_ids: int
    new_tokens: int
    total_discovered: int


def collect_known_ids(tokens: Iterable[Token], banned: BannedList) -> set[str]:
    known = {token.object_id.strip().lower() for token in tokens if token.object_id}
    return known | banned.object_ids()


def build_engine_settings(
    config: AppConfig,
    layout: DataLayout,
    options: DiscoveryOptions,
    *,
    provider_max_page_size: int,
) -> EngineSettings:
    discovery = config.discovery
    page_size = options.page_size if options.page_size is not None else discovery.page_size
    rate_limit_ms = options.rate_limit_ms if options.rate_limit_ms is not None else discovery.rate_limit_ms
    return EngineSettings(
        page_size=clamp_page_size(page_size, provider_max_page_size),
        checkpoint_path=layout.checkpoint_path,
        resume=options.resume if options.resume is not None else discovery.resume,
        start_page=options.start_page if options.start_page is not None else discovery.start_page,
        rate_limit_s=rate_limit_ms / 1000,
    )


def run_discovery(
    provider: PageProvider,
    *,
    config: AppConfig,
    layout: DataLayout,
    options: DiscoveryOptions,
    logger: logging.Logger | None = None,
    now: datetime | None = None,
    sleep: Callable[[float], None] = time.sleep,
) -> DiscoverySummary:
    """
    Discover tokens and append the unknown ones to the discovered CSV.

    Sources are loaded before any network traffic so that a malformed input
    file fails the run early. The CSV is only rewritten after discovery
    returns; a transport failure leaves it untouched.
    """
    logger = logger or logging.getLogger(__name__)

    discovered = load_discovered(layout)
    curated = load_curated(layout)
    banned = load_banned(layout, name=config.compose.banned_list_name, chain=config.compose.chain)
    known_ids = collect_known_ids([*discovered, *curated], banned)
    log_event(
        logger,
        logging.INFO,
        "known_ids_loaded",
        f"Found {len(known_ids)} existing token IDs",
        discovered=len(discovered),
        curated=len(curated),
        banned=len(banned.banned),
    )

    settings = build_engine_settings(
        config,
        layout,
        options,
        provider_max_page_size=config.provider.max_page_size,
    )
    engine = DiscoveryEngine(provider, settings, logger=logger, sleep=sleep)
    page_cap = options.page_cap if options.page_cap is not None else config.discovery.max_pages
    result = engine.discover(page_cap)

    new_candidates = select_new_candidates(result.candidates, known_ids)
    new_tokens = candidates_to_tokens(new_candidates, generation_timestamp(now))
    total = len(discovered)
    if new_tokens:
        total = append_tokens_csv(layout.discovered_csv, new_tokens)

    update_metrics(
        layout.metrics_path,
        increments={
            "discovery_runs_total": 1,
            "discovery_pages_total": result.pages_fetched,
            "discovery_new_tokens_total": len(new_tokens),
        },
        gauges={
            "discovered_tokens": total,
            "last_stop_reason": result.stop_reason,
            "last_next_page": result.next_page,
            "last_rejects": result.rejects,
        },
    )
    log_event(
        logger,
        logging.INFO,
        "discovery_saved",
        f"{len(new_tokens)} new tokens added to {layout.discovered_csv.name}",
        new_tokens=len(new_tokens),
        already_known=len(result.candidates) - len(new_candidates),
        total_discovered=total,
    )
    return DiscoverySummary(
        result=result,
        known_ids=len(known_ids),
        new_tokens=len(new_tokens),
        total_discovered=total,
    )
