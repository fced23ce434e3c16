from __future__ import annotations

import json
import logging
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from tokenlist.models.discovery import Checkpoint
from tokenlist.obs.logging import log_event


class CheckpointFormatError(ValueError):
    """Raised when a checkpoint file exists but cannot be interpreted."""


def _now_iso() -> str:
    return datetime.now(timezone.utc).replace(microsecond=0).isoformat().replace("+00:00", "Z")


def checkpoint_to_payload(checkpoint: Checkpoint) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "nextPage": checkpoint.next_page,
        "pageSize": checkpoint.page_size,
        "updatedAt": checkpoint.updated_at or _now_iso(),
    }
    if checkpoint.total_pages is not None:
        payload["totalPages"] = checkpoint.total_pages
    return payload


def checkpoint_from_payload(payload: Any) -> Checkpoint:
    if not isinstance(payload, dict):
        raise CheckpointFormatError("checkpoint root must be an object")

    next_page = payload.get("nextPage")
    page_size = payload.get("pageSize")
    total_pages = payload.get("totalPages")
    for key, value in (("nextPage", next_page), ("pageSize", page_size)):
        if isinstance(value, bool) or not isinstance(value, int) or value < 1:
            raise CheckpointFormatError(f"checkpoint {key} must be a positive integer")
    if total_pages is not None and (
        isinstance(total_pages, bool) or not isinstance(total_pages, int) or total_pages < 1
    ):
        raise CheckpointFormatError("checkpoint totalPages must be a positive integer")

    return Checkpoint(
        next_page=next_page,
        page_size=page_size,
        total_pages=total_pages,
        updated_at=payload.get("updatedAt"),
    )


def load_checkpoint(path: Path, *, logger: logging.Logger | None = None) -> Checkpoint | None:
    """
    Read the persisted cursor at ``path``.

    A missing file means there is nothing to resume. An unreadable file is
    logged and treated the same way; the next completed page overwrites it.
    """
    logger = logger or logging.getLogger(__name__)
    if not path.exists():
        return None

    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
        return checkpoint_from_payload(payload)
    except (json.JSONDecodeError, CheckpointFormatError) as exc:
        log_event(
            logger,
            logging.WARNING,
            "checkpoint_invalid",
            "Ignoring unreadable discovery checkpoint",
            path=str(path),
            error=str(exc),
        )
        return None


def write_checkpoint(path: Path, checkpoint: Checkpoint) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = path.with_name(f"{path.name}.tmp")
    tmp_path.write_text(
        json.dumps(checkpoint_to_payload(checkpoint), ensure_ascii=False, indent=2) + "\n",
        encoding="utf-8",
    )
    os.replace(tmp_path, path)


def delete_checkpoint(path: Path) -> bool:
    try:
        path.unlink()
    except FileNotFoundError:
        return False
    return True
