from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path

import pytest

from tokenlist.config import AppConfig
from tokenlist.discovery.runner import (
    DiscoveryOptions,
    build_engine_settings,
    collect_known_ids,
    run_discovery,
)
from tokenlist.io.layout import DataLayout, ensure_layout, resolve_layout
from tokenlist.io.tokens_csv import read_tokens_csv, write_tokens_csv
from tokenlist.models.discovery import ProviderPage
from tokenlist.models.token import BannedEntry, BannedList, Token
from tokenlist.provider.errors import TransientHttpError

NOW = datetime(2026, 3, 1, 9, 0, 0, tzinfo=timezone.utc)


def coin(object_id: str, symbol: str) -> dict:
    return {
        "objectId": object_id,
        "coinName": f"{symbol} Coin",
        "coinSymbol": symbol,
        "decimals": 9,
        "iconUrl": f"https://icons.example/{symbol.lower()}.png",
    }


class PagedProvider:
    def __init__(self, pages: dict[int, list[dict]], *, fail_on: int | None = None) -> None:
        self._pages = pages
        self._fail_on = fail_on
        self.calls: list[int] = []

    def fetch_page(self, page: int, page_size: int) -> ProviderPage:
        self.calls.append(page)
        if page == self._fail_on:
            raise TransientHttpError("Server error", status_code=502)
        return ProviderPage(items=self._pages.get(page, []))


def existing(object_id: str, symbol: str) -> Token:
    return Token(
        name=f"{symbol} Coin",
        symbol=symbol,
        decimals=9,
        object_id=object_id,
        verified=False,
        added_at="2025-01-01T00:00:00Z",
        tags=("auto",),
    )


@pytest.fixture()
def layout(tmp_path: Path) -> DataLayout:
    return ensure_layout(resolve_layout(AppConfig().paths, tmp_path))


def run(provider: PagedProvider, layout: DataLayout, **options: object):
    return run_discovery(
        provider,
        config=AppConfig(),
        layout=layout,
        options=DiscoveryOptions(page_size=2, **options),
        now=NOW,
        sleep=lambda _seconds: None,
    )


def test_only_unknown_tokens_are_appended(layout: DataLayout) -> None:
    write_tokens_csv(layout.discovered_csv, [existing("0x01", "ONE")])
    layout.banned_csv.write_text("objectId,reason,addedAt\n0x03,rug,\n", encoding="utf-8")
    provider = PagedProvider(
        {
            1: [coin("0x01", "ONE"), coin("0x02", "TWO")],
            2: [coin("0x03", "BAD"), coin("0x04", "FOUR")],
            3: [],
        }
    )

    summary = run(provider, layout)

    assert provider.calls == [1, 2, 3]
    assert summary.result.stop_reason == "exhausted"
    assert summary.known_ids == 2
    assert summary.new_tokens == 2
    assert summary.total_discovered == 3

    tokens = read_tokens_csv(layout.discovered_csv)
    assert [token.object_id for token in tokens] == ["0x01", "0x02", "0x04"]
    added = tokens[1]
    assert added.tags == ("auto",)
    assert added.verified is False
    assert added.added_at == "2026-03-01T09:00:00Z"
    assert added.logo_uri == "https://icons.example/two.png"


def test_curated_ids_count_as_known(layout: DataLayout) -> None:
    layout.tokens_json.write_text(
        json.dumps([existing("0x02", "TWO").to_payload()]),
        encoding="utf-8",
    )
    provider = PagedProvider({1: [coin("0x02", "TWO")]})

    summary = run(provider, layout)

    assert summary.new_tokens == 0
    assert not layout.discovered_csv.exists()


def test_failure_leaves_csv_untouched(layout: DataLayout) -> None:
    write_tokens_csv(layout.discovered_csv, [existing("0x01", "ONE")])
    before = layout.discovered_csv.read_text(encoding="utf-8")
    provider = PagedProvider({1: [coin("0x05", "FIVE"), coin("0x06", "SIX")]}, fail_on=2)

    with pytest.raises(TransientHttpError):
        run(provider, layout)

    assert layout.discovered_csv.read_text(encoding="utf-8") == before
    checkpoint = json.loads(layout.checkpoint_path.read_text(encoding="utf-8"))
    assert checkpoint["nextPage"] == 2


def test_page_cap_option_limits_run(layout: DataLayout) -> None:
    provider = PagedProvider(
        {
            1: [coin("0x11", "AA"), coin("0x12", "BB")],
            2: [coin("0x13", "CC"), coin("0x14", "DD")],
        }
    )

    summary = run(provider, layout, page_cap=1)

    assert provider.calls == [1]
    assert summary.result.stop_reason == "page_cap"
    assert summary.new_tokens == 2
    assert layout.checkpoint_path.exists()


def test_metrics_are_recorded(layout: DataLayout) -> None:
    provider = PagedProvider({1: [coin("0x21", "XY")]})

    run(provider, layout)
    run(PagedProvider({1: [coin("0x22", "YZ")]}), layout)

    metrics = json.loads(layout.metrics_path.read_text(encoding="utf-8"))
    assert metrics["discovery_runs_total"] == 2
    assert metrics["discovery_new_tokens_total"] == 2
    assert metrics["discovered_tokens"] == 2
    assert metrics["last_stop_reason"] == "last_page"


def test_collect_known_ids_lowercases() -> None:
    banned = BannedList(
        name="Banned",
        chain="sui",
        updated_at="2025-01-01T00:00:00Z",
        banned=[BannedEntry(object_id="0xAB")],
    )

    known = collect_known_ids([existing("0xCD", "CD"), existing("", "NONE")], banned)

    assert known == {"0xcd", "0xab"}


def test_build_engine_settings_prefers_options(layout: DataLayout) -> None:
    config = AppConfig()

    settings = build_engine_settings(
        config,
        layout,
        DiscoveryOptions(page_size=500, resume=False, rate_limit_ms=50),
        provider_max_page_size=100,
    )

    assert settings.page_size == 100
    assert settings.resume is False
    assert settings.rate_limit_s == pytest.approx(0.05)
    assert settings.start_page is None
    assert settings.checkpoint_path == layout.checkpoint_path


def test_append_leaves_invalid_existing_rows_invalid(layout: DataLayout) -> None:
    layout.discovered_csv.write_text(
        "name,symbol,decimals,objectId,logoURI,verified,verifiedBy,addedAt,tags,website,description,version\n"
        "Old,OLD,abc,0x01,,false,,2025-01-01T00:00:00Z,auto,,,1\n",
        encoding="utf-8",
    )
    provider = PagedProvider({1: [coin("0x02", "TWO")]})

    summary = run(provider, layout)

    assert summary.new_tokens == 1
    assert summary.total_discovered == 2
    old, new = read_tokens_csv(layout.discovered_csv)
    assert old.decimals is None
    assert new.object_id == "0x02"
