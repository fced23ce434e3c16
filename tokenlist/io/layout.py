from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from tokenlist.config import PathsConfig


@dataclass(frozen=True)
class DataLayout:
    data_dir: Path
    dist_dir: Path
    discovered_csv: Path
    validated_csv: Path
    tokens_json: Path
    banned_csv: Path
    banned_json: Path
    checkpoint_path: Path
    metrics_path: Path
    all_json: Path
    strict_json: Path
    dist_banned_json: Path


def resolve_layout(paths: PathsConfig, root: Path) -> DataLayout:
    data_dir = (root / paths.data_dir).resolve()
    dist_dir = (root / paths.dist_dir).resolve()
    return DataLayout(
        data_dir=data_dir,
        dist_dir=dist_dir,
        discovered_csv=data_dir / paths.discovered_csv,
        validated_csv=data_dir / paths.validated_csv,
        tokens_json=data_dir / paths.tokens_json,
        banned_csv=data_dir / paths.banned_csv,
        banned_json=data_dir / paths.banned_json,
        checkpoint_path=data_dir / paths.checkpoint,
        metrics_path=data_dir / paths.metrics,
        all_json=dist_dir / "all.json",
        strict_json=dist_dir / "strict.json",
        dist_banned_json=dist_dir / "banned.json",
    )


def ensure_layout(layout: DataLayout) -> DataLayout:
    try:
        layout.data_dir.mkdir(parents=True, exist_ok=True)
        layout.dist_dir.mkdir(parents=True, exist_ok=True)
    except PermissionError as exc:
        raise PermissionError(f"Cannot create data directories under {layout.data_dir.parent}") from exc
    return layout
