"""Wire models for the asset service.

Plain dataclasses with to_dict/from_dict.  ``from_dict`` raises
``DecodeError`` for bodies that do not match the expected shape.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from oomph_loader.errors import DecodeError


def _require_object(data: Any, model: str) -> dict[str, Any]:
    if not isinstance(data, dict):
        raise DecodeError(f"{model}: expected a JSON object, got {type(data).__name__}")
    return data


@dataclass(frozen=True)
class AssetRequest:
    """Ask the service for an asset, telling it which version we already have."""

    asset_id: str
    local_asset_hash: str = ""

    def to_dict(self) -> dict[str, Any]:
        # The service names the local hash field "asset_hash".
        return {"asset_id": self.asset_id, "asset_hash": self.local_asset_hash}


@dataclass(frozen=True)
class AssetResponse:
    """Result of an asset lookup.

    ``compression`` is the optional ``asset_compression`` protocol flag;
    None means the service did not say.
    """

    asset_payload: str = ""
    cache_hit: bool = False
    compression: str | None = None

    @classmethod
    def from_dict(cls, data: Any) -> AssetResponse:
        body = _require_object(data, "AssetResponse")
        payload = body.get("asset_payload", "")
        cache_hit = body.get("cache_hit", False)
        compression = body.get("asset_compression")
        if payload is None:
            payload = ""
        if not isinstance(payload, str):
            raise DecodeError("AssetResponse: asset_payload must be a string")
        if not isinstance(cache_hit, bool):
            raise DecodeError("AssetResponse: cache_hit must be a boolean")
        if compression is not None and not isinstance(compression, str):
            raise DecodeError("AssetResponse: asset_compression must be a string")
        return cls(asset_payload=payload, cache_hit=cache_hit, compression=compression)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "asset_payload": self.asset_payload,
            "cache_hit": self.cache_hit,
        }
        if self.compression is not None:
            data["asset_compression"] = self.compression
        return data


@dataclass(frozen=True)
class ErrorResponse:
    """Failure body returned with a non-200 status."""

    message: str = ""

    @classmethod
    def from_dict(cls, data: Any) -> ErrorResponse:
        # A JSON null body carries no message.
        if data is None:
            return cls()
        body = _require_object(data, "ErrorResponse")
        message = body.get("message", "")
        if message is None:
            message = ""
        if not isinstance(message, str):
            raise DecodeError("ErrorResponse: message must be a string")
        return cls(message=message)

    def to_dict(self) -> dict[str, Any]:
        return {"message": self.message}
