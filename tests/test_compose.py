from __future__ import annotations

import logging
from datetime import datetime, timezone

import pytest

from tokenlist.compose.merge import (
    ListNames,
    candidates_to_tokens,
    compose_lists,
    generation_timestamp,
    is_strict_eligible,
    merge_tokens,
    normalize_token,
    select_new_candidates,
    sort_tokens,
    strict_filter_names,
    subtract_banned,
)
from tokenlist.models.discovery import CandidateRecord
from tokenlist.models.token import BannedEntry, BannedList, Token

ALLOW_TAGS = ["partner", "community", "original-registry"]
NOW = datetime(2026, 3, 1, 12, 30, 45, 123000, tzinfo=timezone.utc)


def token(
    object_id: str,
    symbol: str,
    *,
    name: str | None = None,
    verified: bool = False,
    tags: tuple[str, ...] = ("auto",),
    decimals: int | None = 9,
) -> Token:
    return Token(
        name=name or f"{symbol} Token",
        symbol=symbol,
        decimals=decimals,
        object_id=object_id,
        verified=verified,
        added_at="2025-06-01T00:00:00Z",
        tags=tags,
    )


def empty_banned(*object_ids: str) -> BannedList:
    return BannedList(
        name="Banned",
        chain="sui",
        updated_at="2025-06-01T00:00:00Z",
        banned=[BannedEntry(object_id=object_id, reason="rug") for object_id in object_ids],
    )


def compose(discovered, curated, banned=None):
    return compose_lists(
        discovered,
        curated,
        banned or empty_banned(),
        allow_tags=ALLOW_TAGS,
        names=ListNames(chain="sui", all_name="All", strict_name="Strict"),
        now=NOW,
    )


def test_curated_record_replaces_discovered_record() -> None:
    discovered = [token("0xaa", "OLD", name="Old Name")]
    manual = token("0xAA", " NEW ", name="New Name", verified=True, tags=("partner",), decimals=6)

    result = compose(discovered, [manual])

    assert len(result.all_list.tokens) == 1
    merged = result.all_list.tokens[0]
    assert merged.object_id == "0xaa"
    assert merged.symbol == "NEW"
    assert merged.name == "New Name"
    assert merged.decimals == 6
    assert merged.verified is True
    assert merged.tags == ("partner",)


def test_banned_ids_never_published() -> None:
    discovered = [token("0x01", "AAA"), token("0x02", "BBB")]
    curated = [token("0x03", "CCC", verified=True)]

    result = compose(discovered, curated, empty_banned("0x02", "0X03"))

    all_ids = result.all_list.object_ids()
    strict_ids = result.strict_list.object_ids()
    assert all_ids == ["0x01"]
    assert "0x02" not in strict_ids and "0x03" not in strict_ids
    assert result.banned_removed == 2


def test_strict_is_subset_of_all() -> None:
    discovered = [token("0x01", "AUTO"), token("0x02", "COMM", tags=("auto", "community"))]
    curated = [token("0x03", "VER", verified=True, tags=()), token("0x04", "PART", tags=("partner",))]

    result = compose(discovered, curated)

    strict_ids = set(result.strict_list.object_ids())
    assert strict_ids <= set(result.all_list.object_ids())
    assert strict_ids == {"0x02", "0x03", "0x04"}
    assert result.strict_list.filters == strict_filter_names(ALLOW_TAGS)
    assert result.all_list.filters is None


def test_strict_eligibility() -> None:
    assert is_strict_eligible(token("0x01", "A", verified=True, tags=()), ALLOW_TAGS)
    assert is_strict_eligible(token("0x01", "A", tags=("original-registry",)), ALLOW_TAGS)
    assert not is_strict_eligible(token("0x01", "A", tags=("auto",)), ALLOW_TAGS)
    assert not is_strict_eligible(token("0x01", "A", tags=("partner",)), [])


def test_sort_order_verified_first_then_symbol() -> None:
    tokens = [
        token("0x01", "B", verified=True),
        token("0x02", "A", verified=False),
        token("0x03", "A", verified=True),
    ]

    ordered = sort_tokens(tokens)

    assert [(t.symbol, t.verified) for t in ordered] == [("A", True), ("B", True), ("A", False)]


def test_sort_is_case_insensitive_with_name_tie_break() -> None:
    tokens = [
        token("0x01", "usdc", name="Wrapped USDC"),
        token("0x02", "USDC", name="Native USDC"),
        token("0x03", "Apt"),
    ]

    ordered = sort_tokens(tokens)

    assert [t.object_id for t in ordered] == ["0x03", "0x02", "0x01"]


def test_invalid_records_skipped_with_warning(caplog: pytest.LogCaptureFixture) -> None:
    discovered = [token("0x01", "GOOD"), token("0x02", "BAD", decimals=42)]
    curated = [token("not-hex", "WORSE", verified=True)]

    with caplog.at_level(logging.WARNING):
        result = compose(discovered, curated)

    assert result.all_list.object_ids() == ["0x01"]
    assert [(w.object_id, w.source) for w in result.warnings] == [("0x02", "discovered"), ("not-hex", "curated")]
    assert result.warnings[0].errors == ("decimals 0-18",)
    assert "Skipping token BAD" in caplog.text


def test_invalid_curated_record_does_not_shadow_discovered() -> None:
    discovered = [token("0x01", "GOOD")]
    curated = [token("0x01", "BROKEN", decimals=None)]

    result = compose(discovered, curated)

    assert [t.symbol for t in result.all_list.tokens] == ["GOOD"]


def test_compose_is_idempotent() -> None:
    discovered = [token(f"0x{i:02x}", f"S{i % 5}", verified=i % 3 == 0) for i in range(30)]
    curated = [token("0x05", "MAN", verified=True, tags=("partner",))]
    banned = empty_banned("0x07")

    first = compose(discovered, curated, banned)
    second = compose(discovered, curated, banned)

    assert first.all_list.to_payload() == second.all_list.to_payload()
    assert first.strict_list.to_payload() == second.strict_list.to_payload()


def test_both_lists_share_generation_timestamp() -> None:
    result = compose([token("0x01", "A")], [])

    assert result.all_list.updated_at == "2026-03-01T12:30:45Z"
    assert result.strict_list.updated_at == result.all_list.updated_at
    assert generation_timestamp(NOW) == "2026-03-01T12:30:45Z"


def test_merge_tokens_counts_inputs() -> None:
    merged, warnings, count = merge_tokens(
        [("discovered", [token("0x01", "A"), token("0x01", "B")]), ("curated", [token("0x02", "C")])]
    )

    assert count == 3
    assert warnings == []
    assert [(t.object_id, t.symbol) for t in merged] == [("0x01", "B"), ("0x02", "C")]


def test_select_new_candidates_uses_explicit_known_set() -> None:
    candidates = [
        CandidateRecord(name="One", symbol="ONE", decimals=9, object_id="0x01"),
        CandidateRecord(name="Two", symbol="TWO", decimals=9, object_id="0x02"),
        CandidateRecord(name="Two again", symbol="TWO", decimals=9, object_id="0x02"),
    ]
    known = {"0x01"}

    selected = select_new_candidates(candidates, known)

    assert [c.name for c in selected] == ["Two"]
    assert known == {"0x01"}


def test_candidates_to_tokens_are_auto_tagged() -> None:
    candidate = CandidateRecord(
        name="One",
        symbol="ONE",
        decimals=9,
        object_id="0x01",
        coin_type="0x01::one::ONE",
        logo_uri="https://example.com/one.png",
        website="https://one.example",
    )

    [converted] = candidates_to_tokens([candidate], "2026-03-01T12:30:45Z")

    assert converted.tags == ("auto",)
    assert converted.verified is False
    assert converted.added_at == "2026-03-01T12:30:45Z"
    assert converted.extensions == {"website": "https://one.example"}
    assert converted.coin_type == "0x01::one::ONE"
    assert converted.version == 1


def test_normalize_token_trims_and_lowercases() -> None:
    normalized = normalize_token(token(" 0xABcd ", " ABC ", name="  Alpha  "))

    assert normalized.object_id == "0xabcd"
    assert normalized.symbol == "ABC"
    assert normalized.name == "Alpha"


def test_subtract_banned_is_case_insensitive() -> None:
    kept = subtract_banned([token("0x0a", "A"), token("0x0b", "B")], empty_banned("0x0A"))

    assert [t.object_id for t in kept] == ["0x0b"]


def test_wrongly_typed_curated_fields_are_skipped_with_warning() -> None:
    payload = token("0x0c", "ODD", verified=True, tags=("partner",)).to_payload()
    payload.update({"logoURI": 5, "verifiedBy": ["core"]})

    result = compose([token("0x0d", "FINE")], [Token.from_payload(payload)])

    assert result.all_list.object_ids() == ["0x0d"]
    [warning] = result.warnings
    assert warning.source == "curated"
    assert warning.errors == ("logoURI must be HTTPS", "verifiedBy must be a string")
