from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass
from datetime import datetime

from tokenlist.compose.merge import ComposeResult, ListNames, RecordWarning, compose_lists, normalize_token
from tokenlist.config import AppConfig
from tokenlist.io.json_io import write_json
from tokenlist.io.layout import DataLayout
from tokenlist.io.sources import load_banned, load_curated, load_discovered
from tokenlist.obs.logging import log_event
from tokenlist.validation.token import validate_token


@dataclass(frozen=True)
class ValidationReport:
    checked: int
    warnings: list[RecordWarning]

    @property
    def valid(self) -> bool:
        return not self.warnings


def run_compose(
    *,
    config: AppConfig,
    layout: DataLayout,
    logger: logging.Logger | None = None,
    now: datetime | None = None,
) -> ComposeResult:
    logger = logger or logging.getLogger(__name__)
    compose_cfg = config.compose

    discovered = load_discovered(layout)
    curated = load_curated(layout)
    banned = load_banned(layout, name=compose_cfg.banned_list_name, chain=compose_cfg.chain)

    result = compose_lists(
        discovered,
        curated,
        banned,
        allow_tags=compose_cfg.allow_tags,
        names=ListNames(
            chain=compose_cfg.chain,
            all_name=compose_cfg.all_list_name,
            strict_name=compose_cfg.strict_list_name,
        ),
        now=now,
        logger=logger,
    )

    write_json(layout.all_json, result.all_list.to_payload())
    write_json(layout.strict_json, result.strict_list.to_payload())
    write_json(layout.dist_banned_json, banned.to_payload())

    if result.warnings:
        by_source = Counter(warning.source for warning in result.warnings)
        log_event(
            logger,
            logging.WARNING,
            "compose_warnings",
            f"Skipped {len(result.warnings)} invalid token records",
            skipped=len(result.warnings),
            by_source=dict(by_source),
        )
    log_event(
        logger,
        logging.INFO,
        "compose_complete",
        f"Wrote {len(result.all_list.tokens)} tokens to {layout.all_json.name}, "
        f"{len(result.strict_list.tokens)} to {layout.strict_json.name}",
        discovered=len(discovered),
        curated=len(curated),
        banned=len(banned.banned),
        deduped=result.deduped_count,
        banned_removed=result.banned_removed,
        all_tokens=len(result.all_list.tokens),
        strict_tokens=len(result.strict_list.tokens),
        updated_at=result.all_list.updated_at,
    )
    return result


def validate_sources(
    *,
    layout: DataLayout,
    logger: logging.Logger | None = None,
) -> ValidationReport:
    """Run the record validator over every discovered and curated token."""
    logger = logger or logging.getLogger(__name__)
    warnings: list[RecordWarning] = []
    checked = 0

    for source, tokens in (("discovered", load_discovered(layout)), ("curated", load_curated(layout))):
        for raw_token in tokens:
            checked += 1
            token = normalize_token(raw_token)
            errors = validate_token(token)
            if not errors:
                continue
            warnings.append(
                RecordWarning(
                    object_id=token.object_id,
                    label=token.display_label,
                    source=source,
                    errors=tuple(errors),
                )
            )
            log_event(
                logger,
                logging.WARNING,
                "token_invalid",
                f"Invalid token {token.display_label}: {', '.join(errors)}",
                object_id=token.object_id,
                source=source,
                errors=errors,
            )

    log_event(
        logger,
        logging.INFO,
        "validation_complete",
        f"Validated {checked} tokens, {len(warnings)} invalid",
        checked=checked,
        invalid=len(warnings),
    )
    return ValidationReport(checked=checked, warnings=warnings)
