"""Single-shot JSON POST transport.

Every call resolves to exactly one of three outcomes:

- ``Success``: HTTP 200 and the body decoded as the expected model
- ``Failure``: non-200 and the body carried an ``ErrorResponse`` message
- ``Error``: anything else (network, TLS, timeout, undecodable body)

There is no retry; the caller decides what a failed fetch means.
"""

from __future__ import annotations

import json
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Generic, Protocol, TypeVar

import httpx

from oomph_loader.api.models import ErrorResponse
from oomph_loader.api.pool import BufferPool
from oomph_loader.errors import DecodeError, LoaderError, ServerFailure, TransportError
from oomph_loader.logging import get_logger

log = get_logger("oomph_loader.api.transport")

T = TypeVar("T")


class JSONBody(Protocol):
    def to_dict(self) -> dict[str, Any]: ...


@dataclass(frozen=True)
class Success(Generic[T]):
    value: T


@dataclass(frozen=True)
class Failure:
    message: str
    status_code: int

    def as_exception(self) -> ServerFailure:
        return ServerFailure(self.message or "no message", status_code=self.status_code)


@dataclass(frozen=True)
class Error:
    error: LoaderError


TransportResult = Success[T] | Failure | Error


class Transport:
    """POSTs JSON bodies with a pre-configured client and a shared buffer pool."""

    def __init__(self, client: httpx.AsyncClient, pool: BufferPool | None = None) -> None:
        self._client = client
        self._pool = pool or BufferPool()

    @property
    def pool(self) -> BufferPool:
        return self._pool

    async def send(
        self,
        endpoint: str,
        request: JSONBody | None,
        decode: Callable[[Any], T],
    ) -> TransportResult[T]:
        """POST *request* to *endpoint* and decode a 200 body with *decode*."""
        with self._pool.borrow() as body:
            if request is not None:
                try:
                    body += json.dumps(request.to_dict()).encode("utf-8")
                except (TypeError, ValueError) as exc:
                    return Error(TransportError(f"failed to encode request data: {exc}"))

            try:
                resp = await self._client.post(
                    endpoint,
                    content=bytes(body),
                    headers={"Content-Type": "application/json"},
                )
            except httpx.HTTPError as exc:
                log.debug("asset_request_failed", endpoint=endpoint, error=str(exc))
                return Error(TransportError(f"failed to send request: {exc}"))

        if resp.status_code == httpx.codes.OK:
            try:
                return Success(decode(resp.json()))
            except ValueError as exc:
                return Error(DecodeError(f"invalid response body: {exc}"))
            except DecodeError as exc:
                return Error(exc)

        try:
            err = ErrorResponse.from_dict(resp.json())
        except (ValueError, DecodeError):
            return Error(
                TransportError(
                    f"server responded with status code {resp.status_code} with no message"
                )
            )
        return Failure(message=err.message, status_code=resp.status_code)
