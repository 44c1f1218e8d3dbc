"""End-to-end: fetch from a mock asset service, cache, and supervise a real child.

The "proxy" is a /bin/sh script served as the asset payload, so these
tests run on POSIX hosts only.
"""

from __future__ import annotations

import asyncio
import hashlib
import json
import sys
from collections.abc import Iterator
from pathlib import Path
from unittest.mock import patch

import httpx
import pytest

from oomph_loader.assets.cache import encode_payload
from oomph_loader.config import Settings
from oomph_loader.launcher import launch
from oomph_loader.supervisor import ProcessSupervisor, SupervisorState

pytestmark = pytest.mark.skipif(sys.platform == "win32", reason="uses /bin/sh child scripts")

ASSET_ID = "production_binary_beta_linux_amd64"


@pytest.fixture(autouse=True)
def _linux_amd64() -> Iterator[None]:
    with patch("oomph_loader.launcher.host_platform", return_value=("linux", "amd64")):
        yield


class _AssetService:
    """In-memory stand-in for the asset service."""

    def __init__(self, binary: bytes, compression: str = "zlib") -> None:
        self.binary = binary
        self.compression = compression
        self.requests: list[dict[str, str]] = []

    @property
    def latest_hash(self) -> str:
        return hashlib.sha256(self.binary).hexdigest().upper()

    def __call__(self, request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        self.requests.append(body)
        if body["asset_id"] != ASSET_ID:
            return httpx.Response(404, json={"message": "unknown asset"})
        if body["asset_hash"] == self.latest_hash:
            return httpx.Response(200, json={"asset_payload": "", "cache_hit": True})
        return httpx.Response(
            200,
            json={
                "asset_payload": encode_payload(self.binary, self.compression),
                "cache_hit": False,
                "asset_compression": self.compression,
            },
        )

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self))


class TestLaunchEndToEnd:
    async def test_download_then_run(self, settings: Settings, tmp_path: Path) -> None:
        marker = tmp_path / "ran"
        service = _AssetService(f'#!/bin/sh\ntouch "{marker}"\nexit 0\n'.encode())

        result = await launch(settings, branch="beta", client=service.client())

        cached = Path(settings.cache_dir) / ASSET_ID
        assert cached.read_bytes() == service.binary
        assert marker.exists()
        assert result.state == SupervisorState.EXITED_NORMALLY
        assert result.exit_code == 0

    async def test_second_run_is_a_cache_hit(self, settings: Settings) -> None:
        service = _AssetService(b"#!/bin/sh\nexit 0\n")

        await launch(settings, branch="beta", client=service.client())
        cached = Path(settings.cache_dir) / ASSET_ID
        mtime = cached.stat().st_mtime_ns
        await launch(settings, branch="beta", client=service.client())

        assert [r["asset_hash"] for r in service.requests] == ["", service.latest_hash]
        assert cached.stat().st_mtime_ns == mtime

    async def test_update_replaces_older_binary(self, settings: Settings) -> None:
        cached = Path(settings.cache_dir) / ASSET_ID
        cached.parent.mkdir(parents=True)
        cached.write_bytes(b"#!/bin/sh\nexit 1\n")
        cached.chmod(0o755)
        service = _AssetService(b"#!/bin/sh\nexit 0\n", compression="none")

        result = await launch(settings, branch="beta", client=service.client())

        assert cached.read_bytes() == service.binary
        assert result.exit_code == 0

    async def test_offline_runs_cached_binary(self, settings: Settings) -> None:
        cached = Path(settings.cache_dir) / ASSET_ID
        cached.parent.mkdir(parents=True)
        cached.write_bytes(b"#!/bin/sh\nexit 4\n")
        cached.chmod(0o755)

        def offline(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("network unreachable", request=request)

        client = httpx.AsyncClient(transport=httpx.MockTransport(offline))
        result = await launch(settings, branch="beta", client=client)

        assert cached.read_bytes() == b"#!/bin/sh\nexit 4\n"
        assert result.state == SupervisorState.EXITED_NORMALLY
        assert result.exit_code == 4

    async def test_interrupt_during_run_stops_proxy(self, settings: Settings) -> None:
        service = _AssetService(b"#!/bin/sh\ntrap 'exit 0' INT\nwhile true; do sleep 0.05; done\n")
        created: list[ProcessSupervisor] = []

        class _Tracking(ProcessSupervisor):
            def __init__(self, *args, **kwargs) -> None:
                super().__init__(*args, **kwargs)
                created.append(self)

        async def interrupt_when_running() -> None:
            while not created or created[0].state != SupervisorState.RUNNING:
                await asyncio.sleep(0.01)
            await asyncio.sleep(0.3)
            created[0].request_shutdown()

        with patch("oomph_loader.launcher.ProcessSupervisor", _Tracking):
            helper = asyncio.create_task(interrupt_when_running())
            result = await launch(settings, branch="beta", client=service.client())
            await helper

        assert result.state == SupervisorState.GRACEFULLY_STOPPED
