"""Local binary cache and payload codec.

The cache is stateless: one file per asset id, named after the id, and its
SHA-256 is recomputed every run.  A file at the canonical path is always a
complete binary; new downloads are written to a sibling temp file and
renamed into place only once fully written.
"""

from __future__ import annotations

import base64
import binascii
import hashlib
import os
import zlib
from pathlib import Path

from oomph_loader.api.models import AssetResponse
from oomph_loader.api.transport import Failure, Success, TransportResult
from oomph_loader.constants import CACHE_FILE_MODE
from oomph_loader.errors import CacheWriteError, DecodeError
from oomph_loader.logging import get_logger

log = get_logger("oomph_loader.assets.cache")

COMPRESSION_NONE = "none"
COMPRESSION_ZLIB = "zlib"
COMPRESSION_AUTO = "auto"

_HASH_CHUNK = 1024 * 1024


def _mb(size: int) -> float:
    return round(size / 1024 / 1024, 2)


def looks_like_zlib(data: bytes) -> bool:
    """True if *data* starts with a valid zlib (RFC 1950) stream header."""
    if len(data) < 2:
        return False
    cmf, flg = data[0], data[1]
    return cmf & 0x0F == 8 and cmf >> 4 <= 7 and ((cmf << 8) | flg) % 31 == 0


def decode_payload(payload: str, compression: str = COMPRESSION_AUTO) -> bytes:
    """Turn an ``asset_payload`` back into binary bytes.

    Raises DecodeError for bad base64, an unknown compression flag, a
    broken zlib stream, or an empty result.  In ``auto`` mode a payload
    that only looks like zlib but does not inflate is kept as-is.
    """
    try:
        raw = base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise DecodeError(f"failed to decode asset payload: {exc}") from exc

    if compression == COMPRESSION_AUTO:
        if looks_like_zlib(raw):
            try:
                raw = zlib.decompress(raw)
            except zlib.error:
                log.debug("asset_payload_not_zlib", size=len(raw))
    elif compression == COMPRESSION_ZLIB:
        try:
            raw = zlib.decompress(raw)
        except zlib.error as exc:
            raise DecodeError(f"failed to decompress asset payload: {exc}") from exc
    elif compression != COMPRESSION_NONE:
        raise DecodeError(f"unsupported asset compression: {compression!r}")

    if not raw:
        raise DecodeError("asset payload is empty")
    return raw


def encode_payload(data: bytes, compression: str = COMPRESSION_NONE) -> str:
    """Server-side counterpart of :func:`decode_payload`."""
    if compression == COMPRESSION_ZLIB:
        data = zlib.compress(data)
    elif compression != COMPRESSION_NONE:
        raise ValueError(f"unsupported asset compression: {compression!r}")
    return base64.b64encode(data).decode("ascii")


class AssetCache:
    """Directory of cached proxy binaries keyed by asset id."""

    def __init__(self, cache_dir: str | Path, default_compression: str = COMPRESSION_AUTO) -> None:
        self._dir = Path(cache_dir)
        self._default_compression = default_compression

    @property
    def directory(self) -> Path:
        return self._dir

    def ensure_dir(self) -> None:
        self._dir.mkdir(parents=True, exist_ok=True)

    def path_for(self, asset_id: str) -> Path:
        return self._dir / asset_id

    @staticmethod
    def file_hash(path: Path) -> str:
        """Upper-case hex SHA-256 of *path*, or "" if it is absent or unreadable."""
        digest = hashlib.sha256()
        try:
            with path.open("rb") as fh:
                for chunk in iter(lambda: fh.read(_HASH_CHUNK), b""):
                    digest.update(chunk)
        except OSError:
            return ""
        return digest.hexdigest().upper()

    def reconcile(self, result: TransportResult[AssetResponse], path: Path) -> bool:
        """Apply a lookup outcome to the cache.

        Returns True when a usable binary is at *path* afterwards.  Any
        failure leaves the existing file untouched.
        """
        return self.refresh(result, path) or path.is_file()

    def refresh(self, result: TransportResult[AssetResponse], path: Path) -> bool:
        """Bring *path* up to date from a lookup outcome.

        Returns True only when *path* now holds the latest asset, either
        because the service reported a cache hit or because the new payload
        was written.  Every failure returns False with the file untouched.
        """
        if isinstance(result, Success):
            return self._apply_response(result.value, path)

        if isinstance(result, Failure):
            log.warning("asset_fetch_rejected", error=str(result.as_exception()))
        else:
            log.warning("asset_fetch_error", error=str(result.error))
        return False

    def _apply_response(self, response: AssetResponse, path: Path) -> bool:
        if response.cache_hit:
            log.info("asset_up_to_date", path=str(path))
            return True

        log.info("asset_response_received", size_mb=_mb(len(response.asset_payload)))
        compression = response.compression or self._default_compression
        try:
            data = decode_payload(response.asset_payload, compression)
        except DecodeError as exc:
            log.warning("asset_decode_failed", error=str(exc))
            return False

        try:
            self.store(path, data)
        except CacheWriteError as exc:
            log.error("asset_cache_write_failed", path=str(path), error=str(exc))
            return False

        log.info("asset_downloaded", path=str(path), size_mb=_mb(len(data)))
        return True

    def store(self, path: Path, data: bytes) -> None:
        """Write *data* to *path* via a temp file and rename."""
        tmp_path = path.with_name(f"{path.name}.tmp")
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with tmp_path.open("wb") as fh:
                fh.write(data)
                fh.flush()
                os.fsync(fh.fileno())
            os.chmod(tmp_path, CACHE_FILE_MODE)
            tmp_path.replace(path)
        except OSError as exc:
            tmp_path.unlink(missing_ok=True)
            raise CacheWriteError(str(exc)) from exc
