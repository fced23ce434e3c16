"""
Merge, dedupe and filter token sources into the published lists.

Precedence is positional: sources are concatenated from least to most
trusted (discovered first, curated last) and deduplicated by objectId with
last-write-wins, so a curated record fully replaces a discovered one. Banned
identifiers are removed afterwards, whatever their source or verified flag.

Everything here is a pure function of its inputs apart from the generation
timestamp, so composing the same inputs twice yields identical lists.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Iterable, Sequence

from tokenlist.models.discovery import CandidateRecord
from tokenlist.models.token import BannedList, OutputList, Token
from tokenlist.obs.logging import log_event
from tokenlist.validation.token import validate_token

AUTO_TAG = "auto"


@dataclass(frozen=True)
class RecordWarning:
    object_id: str
    label: str
    source: str
    errors: tuple[str, ...]


@dataclass(frozen=True)
class ListNames:
    chain: str = "sui"
    all_name: str = "Polar All Tokens"
    strict_name: str = "Polar Strict Tokens"


@dataclass(frozen=True)
class ComposeResult:
    all_list: OutputList
    strict_list: OutputList
    warnings: list[RecordWarning]
    input_count: int
    deduped_count: int
    banned_removed: int


def generation_timestamp(now: datetime | None = None) -> str:
    moment = (now or datetime.now(timezone.utc)).astimezone(timezone.utc)
    return moment.replace(microsecond=0).isoformat().replace("+00:00", "Z")


def normalize_token(token: Token) -> Token:
    return replace(
        token,
        name=(token.name or "").strip(),
        symbol=(token.symbol or "").strip(),
        object_id=(token.object_id or "").strip().lower(),
    )


def merge_tokens(
    sources: Sequence[tuple[str, Iterable[Token]]],
    *,
    logger: logging.Logger | None = None,
) -> tuple[list[Token], list[RecordWarning], int]:
    """
    Normalize, validate and dedupe ``sources`` given in ascending precedence.

    Returns (deduplicated tokens in first-seen order, warnings for skipped
    records, number of input records).
    """
    logger = logger or logging.getLogger(__name__)
    warnings: list[RecordWarning] = []
    by_id: dict[str, Token] = {}
    input_count = 0

    for source, tokens in sources:
        for raw_token in tokens:
            input_count += 1
            token = normalize_token(raw_token)
            errors = validate_token(token)
            if errors:
                warning = RecordWarning(
                    object_id=token.object_id,
                    label=token.display_label,
                    source=source,
                    errors=tuple(errors),
                )
                warnings.append(warning)
                log_event(
                    logger,
                    logging.WARNING,
                    "token_invalid",
                    f"Skipping token {warning.label}: {', '.join(errors)}",
                    object_id=token.object_id,
                    source=source,
                    errors=errors,
                )
                continue
            by_id[token.object_id] = token

    return list(by_id.values()), warnings, input_count


def subtract_banned(tokens: Iterable[Token], banned: BannedList) -> list[Token]:
    banned_ids = banned.object_ids()
    return [token for token in tokens if token.object_id not in banned_ids]


def is_strict_eligible(token: Token, allow_tags: Iterable[str]) -> bool:
    if token.verified is True:
        return True
    return bool(set(token.tags) & set(allow_tags))


def strict_filter_names(allow_tags: Iterable[str]) -> list[str]:
    return ["verified", *(f"tag:{tag}" for tag in sorted(set(allow_tags)))]


def token_sort_key(token: Token) -> tuple[bool, str, str, str, str]:
    # full ties fall back to objectId
    label = (token.symbol or token.name or "").lower()
    name = token.name or ""
    return (not token.verified, label, name.casefold(), name, token.object_id)


def sort_tokens(tokens: Iterable[Token]) -> list[Token]:
    return sorted(tokens, key=token_sort_key)


def compose_lists(
    discovered: Iterable[Token],
    curated: Iterable[Token],
    banned: BannedList,
    *,
    allow_tags: Iterable[str],
    names: ListNames | None = None,
    now: datetime | None = None,
    logger: logging.Logger | None = None,
) -> ComposeResult:
    names = names or ListNames()
    allow = sorted(set(allow_tags))
    deduped, warnings, input_count = merge_tokens(
        [("discovered", discovered), ("curated", curated)],
        logger=logger,
    )
    kept = subtract_banned(deduped, banned)
    strict = [token for token in kept if is_strict_eligible(token, allow)]

    stamp = generation_timestamp(now)
    all_list = OutputList(
        name=names.all_name,
        chain=names.chain,
        updated_at=stamp,
        tokens=sort_tokens(kept),
    )
    strict_list = OutputList(
        name=names.strict_name,
        chain=names.chain,
        updated_at=stamp,
        tokens=sort_tokens(strict),
        filters=strict_filter_names(allow),
    )
    return ComposeResult(
        all_list=all_list,
        strict_list=strict_list,
        warnings=warnings,
        input_count=input_count,
        deduped_count=len(deduped),
        banned_removed=len(deduped) - len(kept),
    )


def select_new_candidates(
    candidates: Iterable[CandidateRecord],
    known_ids: set[str],
) -> list[CandidateRecord]:
    """
    Keep candidates whose objectId is not in ``known_ids``.

    ``known_ids`` is not modified; repeats within ``candidates`` keep the
    first occurrence.
    """
    seen = {object_id.lower() for object_id in known_ids}
    selected: list[CandidateRecord] = []
    for candidate in candidates:
        object_id = candidate.object_id.lower()
        if object_id in seen:
            continue
        seen.add(object_id)
        selected.append(candidate)
    return selected


def candidates_to_tokens(candidates: Iterable[CandidateRecord], added_at: str) -> list[Token]:
    tokens: list[Token] = []
    for candidate in candidates:
        tokens.append(
            Token(
                name=candidate.name.strip(),
                symbol=candidate.symbol.strip(),
                decimals=candidate.decimals,
                object_id=candidate.object_id.lower(),
                verified=False,
                added_at=added_at,
                logo_uri=candidate.logo_uri,
                tags=(AUTO_TAG,),
                extensions={"website": candidate.website} if candidate.website else None,
                version=1,
                coin_type=candidate.coin_type,
            )
        )
    return tokens
