"""Exception hierarchy for the Oomph loader."""

from __future__ import annotations


class LoaderError(Exception):
    """Base for all loader errors."""


class TransportError(LoaderError):
    """The request never produced a usable HTTP response (connect, TLS, timeout)."""


class ServerFailure(LoaderError):
    """The asset service answered with a non-200 status and a message."""

    def __init__(self, message: str, *, status_code: int):
        self.status_code = status_code
        super().__init__(f"[{status_code}] {message}")


class DecodeError(LoaderError):
    """A JSON body, base64 payload or compressed stream could not be decoded."""


class CacheWriteError(LoaderError):
    """The decoded binary could not be written to the cache."""


class NoCacheAvailableError(LoaderError):
    """Nothing was downloaded and no cached binary exists."""

    def __init__(self, asset_id: str):
        self.asset_id = asset_id
        super().__init__(f"No binary available for {asset_id}: nothing downloaded and cache is empty")


class SpawnError(LoaderError):
    """The cached binary could not be started."""

    def __init__(self, path: str, reason: str):
        self.path = path
        super().__init__(f"Failed to start {path}: {reason}")


class SignalDeliveryError(LoaderError):
    """An interrupt could not be delivered to the child process."""
