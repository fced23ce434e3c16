from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from tokenlist.io.errors import SchemaError
from tokenlist.models.token import BannedEntry, BannedList, Token


def read_json(path: Path) -> Any:
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except UnicodeDecodeError as exc:
        raise SchemaError(path, f"not valid UTF-8: {exc}") from exc
    except json.JSONDecodeError as exc:
        raise SchemaError(path, f"invalid JSON: {exc}") from exc


def write_json(path: Path, payload: Any) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(payload, ensure_ascii=False, indent=2) + "\n", encoding="utf-8")


def read_tokens_json(path: Path) -> list[Token]:
    payload = read_json(path)
    if not isinstance(payload, list):
        raise SchemaError(path, "token file root must be an array")
    tokens: list[Token] = []
    for index, item in enumerate(payload):
        if not isinstance(item, dict):
            raise SchemaError(path, f"token #{index} must be an object")
        tokens.append(Token.from_payload(item))
    return tokens


def read_banned_json(path: Path) -> BannedList:
    payload = read_json(path)
    if not isinstance(payload, dict):
        raise SchemaError(path, "banned file root must be an object")
    entries_payload = payload.get("banned")
    if not isinstance(entries_payload, list):
        raise SchemaError(path, "banned file must contain a 'banned' array")

    entries: list[BannedEntry] = []
    for index, item in enumerate(entries_payload):
        if not isinstance(item, dict) or not isinstance(item.get("objectId"), str):
            raise SchemaError(path, f"banned entry #{index} must be an object with a string objectId")
        entries.append(
            BannedEntry(
                object_id=item["objectId"].strip().lower(),
                reason=item.get("reason") or None,
                added_at=item.get("addedAt") or None,
            )
        )

    updated_at = payload.get("updatedAt")
    if not isinstance(updated_at, str) or not updated_at:
        updated_at = datetime.now(timezone.utc).replace(microsecond=0).isoformat().replace("+00:00", "Z")
    return BannedList(
        name=str(payload.get("name") or ""),
        chain=str(payload.get("chain") or ""),
        updated_at=updated_at,
        banned=entries,
    )
