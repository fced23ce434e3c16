from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from tokenlist.io.json_io import write_json
from tokenlist.io.layout import DataLayout
from tokenlist.io.tokens_csv import write_tokens_csv
from tokenlist.obs.logging import log_event


@dataclass
class ResetSummary:
    rewritten: list[Path]
    removed: list[Path]


def _remove_if_exists(path: Path) -> bool:
    try:
        path.unlink()
    except FileNotFoundError:
        return False
    return True


def reset_data(layout: DataLayout, *, logger: logging.Logger | None = None) -> ResetSummary:
    """
    Return the data directory to an empty starting state.

    The discovered CSV keeps its header, tokens.json becomes an empty array,
    and the curated CSV and discovery checkpoint are removed. The ban list is
    left alone.
    """
    logger = logger or logging.getLogger(__name__)
    layout.data_dir.mkdir(parents=True, exist_ok=True)

    write_tokens_csv(layout.discovered_csv, [])
    write_json(layout.tokens_json, [])
    rewritten = [layout.discovered_csv, layout.tokens_json]

    removed = [
        path
        for path in (layout.validated_csv, layout.checkpoint_path)
        if _remove_if_exists(path)
    ]

    log_event(
        logger,
        logging.INFO,
        "data_reset",
        "Data reset complete",
        rewritten=[path.name for path in rewritten],
        removed=[path.name for path in removed],
    )
    return ResetSummary(rewritten=rewritten, removed=removed)
