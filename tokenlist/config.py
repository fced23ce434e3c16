from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator


class ConfigError(Exception):
    """Raised when configuration cannot be loaded or validated."""


class ProviderConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    base_url: str = Field(default="https://api.blockberry.one")
    coins_path: str = Field(default="/sui/v1/coins")
    api_key: str | None = Field(default=None)
    api_key_env: str = Field(default="BLOCKBERRY_API_KEY")
    timeout_s: float = Field(default=15, gt=0)
    max_retries: int = Field(default=3, ge=0)
    backoff_base_s: float = Field(default=0.5, ge=0)
    backoff_max_s: float = Field(default=8, ge=0)
    max_page_size: int = Field(default=100, ge=1)
    order_by: str = Field(default="DESC")
    sort_by: str = Field(default="AGE")

    def resolve_api_key(self) -> str:
        key = self.api_key or os.environ.get(self.api_key_env, "")
        if not key.strip():
            raise ConfigError(f"{self.api_key_env} environment variable is required")
        return key.strip()


class DiscoveryConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    page_size: int = Field(default=100, ge=1)
    max_pages: int | None = Field(default=None)
    bootstrap_max_pages: int = Field(default=1000, ge=1)
    resume: bool = Field(default=True)
    start_page: int | None = Field(default=None, ge=1)
    rate_limit_ms: int = Field(default=200, ge=0)


class ComposeConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    chain: str = Field(default="sui")
    all_list_name: str = Field(default="Polar All Tokens")
    strict_list_name: str = Field(default="Polar Strict Tokens")
    banned_list_name: str = Field(default="Polar Banned Tokens")
    allow_tags: list[str] = Field(
        default_factory=lambda: ["partner", "community", "original-registry"]
    )

    @field_validator("allow_tags")
    @classmethod
    def _validate_allow_tags(cls, value: list[str]) -> list[str]:
        tags = [tag.strip() for tag in value if tag.strip()]
        if "auto" in tags:
            raise ValueError("allow_tags must not contain 'auto'; every discovered token carries it")
        return tags


class PathsConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    data_dir: str = Field(default="data")
    dist_dir: str = Field(default="dist")
    discovered_csv: str = Field(default="discovered-tokens.csv")
    validated_csv: str = Field(default="validated-tokens.csv")
    tokens_json: str = Field(default="tokens.json")
    banned_csv: str = Field(default="banned-tokens.csv")
    banned_json: str = Field(default="banned.json")
    checkpoint: str = Field(default=".discovery-checkpoint.json")
    metrics: str = Field(default="metrics.json")


class ObsConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    log_jsonl: bool = Field(default=True)
    log_file: str | None = Field(default=None)


class AppConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    provider: ProviderConfig = Field(default_factory=ProviderConfig)
    discovery: DiscoveryConfig = Field(default_factory=DiscoveryConfig)
    compose: ComposeConfig = Field(default_factory=ComposeConfig)
    paths: PathsConfig = Field(default_factory=PathsConfig)
    obs: ObsConfig = Field(default_factory=ObsConfig)


@dataclass(frozen=True)
class LoadedConfig:
    config: AppConfig
    raw: dict[str, Any]


def load_config(path: Path | None) -> LoadedConfig:
    if path is None:
        return LoadedConfig(config=AppConfig(), raw={})

    if not path.exists():
        raise ConfigError(f"Config not found: {path}")

    try:
        payload = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as exc:
        raise ConfigError(f"Invalid YAML: {exc}") from exc

    if not isinstance(payload, dict):
        raise ConfigError("Config root must be a mapping")

    try:
        config = AppConfig.model_validate(payload)
    except ValidationError as exc:
        raise ConfigError(str(exc)) from exc

    return LoadedConfig(config=config, raw=payload)
