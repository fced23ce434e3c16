"""
Canonical token list records.

Attributes use snake_case; ``to_payload`` / ``from_payload`` map them to the
camelCase names used in the published JSON documents (objectId, logoURI,
verifiedBy, addedAt, coinType, updatedAt).

``from_payload`` does not validate. Values of the wrong type are carried as
None (decimals, verified) or as-is (logoURI, verifiedBy, coinType) so that
validate_token() reports them, and the record is skipped with a warning instead
of failing the whole run.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class Token:
    """
    Canonical curated token record; ``object_id`` is the primary key.

    Attributes:
        name: Display name.
        symbol: Ticker symbol.
        decimals: Decimal precision in [0, 18]; None when unparseable.
        object_id: Lowercase ``0x`` hex identifier.
        verified: Verification flag; None when not a boolean.
        added_at: ISO-8601 UTC timestamp of first listing.
        logo_uri: HTTPS icon URL.
        verified_by: Who verified the token.
        tags: Ordered free-form labels such as "auto" or "partner".
        extensions: Extra metadata (website, description, socials).
        signature: Signature metadata, carried through untouched.
        version: Record schema version.
        coin_type: On-chain coin type string from discovery.
    """
    name: str
    symbol: str
    decimals: int | None
    object_id: str
    verified: bool | None
    added_at: str
    logo_uri: str | None = None
    verified_by: str | None = None
    tags: tuple[str, ...] = ()
    extensions: dict[str, Any] | None = None
    signature: dict[str, Any] | None = None
    version: int = 1
    coin_type: str | None = None

    @property
    def display_label(self) -> str:
        return self.symbol or self.object_id

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "name": self.name,
            "symbol": self.symbol,
            "decimals": self.decimals,
            "objectId": self.object_id,
        }
        if self.coin_type:
            payload["coinType"] = self.coin_type
        if self.logo_uri:
            payload["logoURI"] = self.logo_uri
        payload["verified"] = self.verified
        if self.verified_by:
            payload["verifiedBy"] = self.verified_by
        payload["addedAt"] = self.added_at
        payload["tags"] = list(self.tags)
        if self.extensions:
            payload["extensions"] = dict(self.extensions)
        if self.signature:
            payload["signature"] = dict(self.signature)
        payload["version"] = self.version
        return payload

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> "Token":
        decimals = payload.get("decimals")
        if isinstance(decimals, bool) or not isinstance(decimals, int):
            decimals = None
        verified = payload.get("verified")
        if not isinstance(verified, bool):
            verified = None
        tags = payload.get("tags") or []
        extensions = payload.get("extensions")
        signature = payload.get("signature")
        version = payload.get("version")
        return cls(
            name=_as_text(payload.get("name")),
            symbol=_as_text(payload.get("symbol")),
            decimals=decimals,
            object_id=_as_text(payload.get("objectId")),
            verified=verified,
            added_at=_as_text(payload.get("addedAt")),
            logo_uri=_optional(payload.get("logoURI")),
            verified_by=_optional(payload.get("verifiedBy")),
            tags=tuple(str(tag) for tag in tags) if isinstance(tags, list) else (),
            extensions=extensions if isinstance(extensions, dict) else None,
            signature=signature if isinstance(signature, dict) else None,
            version=version if isinstance(version, int) and not isinstance(version, bool) else 1,
            coin_type=_optional(payload.get("coinType")),
        )


@dataclass(frozen=True)
class BannedEntry:
    object_id: str
    reason: str | None = None
    added_at: str | None = None

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"objectId": self.object_id}
        if self.reason:
            payload["reason"] = self.reason
        if self.added_at:
            payload["addedAt"] = self.added_at
        return payload


@dataclass(frozen=True)
class BannedList:
    name: str
    chain: str
    updated_at: str
    banned: list[BannedEntry] = field(default_factory=list)

    def object_ids(self) -> set[str]:
        return {entry.object_id.strip().lower() for entry in self.banned if entry.object_id}

    def to_payload(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "chain": self.chain,
            "updatedAt": self.updated_at,
            "banned": [entry.to_payload() for entry in self.banned],
        }


@dataclass(frozen=True)
class OutputList:
    name: str
    chain: str
    updated_at: str
    tokens: list[Token]
    filters: list[str] | None = None

    def object_ids(self) -> list[str]:
        return [token.object_id for token in self.tokens]

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "name": self.name,
            "chain": self.chain,
            "updatedAt": self.updated_at,
        }
        if self.filters is not None:
            payload["filters"] = list(self.filters)
        payload["tokens"] = [token.to_payload() for token in self.tokens]
        return payload


def _as_text(value: Any) -> str:
    if value is None:
        return ""
    return value if isinstance(value, str) else str(value)


def _optional(value: Any) -> Any:
    if value is None or value == "":
        return None
    return value
