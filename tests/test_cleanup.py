from pathlib import Path

from tokenlist.cleanup import reset_data
from tokenlist.config import AppConfig
from tokenlist.discovery.checkpoint import write_checkpoint
from tokenlist.io.layout import ensure_layout, resolve_layout
from tokenlist.io.tokens_csv import TOKEN_COLUMNS, read_tokens_csv, write_tokens_csv
from tokenlist.models.discovery import Checkpoint
from tokenlist.models.token import Token


def test_reset_data(tmp_path: Path) -> None:
    layout = ensure_layout(resolve_layout(AppConfig().paths, tmp_path))
    token = Token(
        name="One",
        symbol="ONE",
        decimals=9,
        object_id="0x01",
        verified=False,
        added_at="2025-01-01T00:00:00Z",
        tags=("auto",),
    )
    write_tokens_csv(layout.discovered_csv, [token])
    write_tokens_csv(layout.validated_csv, [token])
    layout.tokens_json.write_text('[{"objectId": "0x01"}]', encoding="utf-8")
    layout.banned_csv.write_text("objectId,reason,addedAt\n0x09,rug,\n", encoding="utf-8")
    write_checkpoint(layout.checkpoint_path, Checkpoint(next_page=4, page_size=100))

    summary = reset_data(layout)

    assert read_tokens_csv(layout.discovered_csv) == []
    assert layout.discovered_csv.read_text(encoding="utf-8") == ",".join(TOKEN_COLUMNS) + "\n"
    assert layout.tokens_json.read_text(encoding="utf-8") == "[]\n"
    assert not layout.validated_csv.exists()
    assert not layout.checkpoint_path.exists()
    assert layout.banned_csv.exists()
    assert summary.removed == [layout.validated_csv, layout.checkpoint_path]


def test_reset_on_empty_directory(tmp_path: Path) -> None:
    layout = resolve_layout(AppConfig().paths, tmp_path)

    summary = reset_data(layout)

    assert summary.removed == []
    assert layout.discovered_csv.exists()
    assert layout.tokens_json.exists()
