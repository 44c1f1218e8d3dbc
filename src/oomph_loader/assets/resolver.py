"""Asset resolution: which binary we want, and is there a newer one."""

from __future__ import annotations

import platform
import sys

from oomph_loader.api.models import AssetRequest, AssetResponse
from oomph_loader.api.transport import Transport, TransportResult
from oomph_loader.constants import ASSET_ID_PREFIX
from oomph_loader.logging import get_logger

log = get_logger("oomph_loader.assets.resolver")

# Host names -> the OS/arch names the asset service publishes under
_OS_NAMES: dict[str, str] = {
    "linux": "linux",
    "darwin": "darwin",
    "win32": "windows",
    "cygwin": "windows",
    "freebsd": "freebsd",
}

_ARCH_NAMES: dict[str, str] = {
    "x86_64": "amd64",
    "amd64": "amd64",
    "aarch64": "arm64",
    "arm64": "arm64",
    "i386": "386",
    "i686": "386",
    "x86": "386",
    "armv7l": "arm",
    "armv6l": "arm",
}


def host_os(sys_platform: str | None = None) -> str:
    """Return the service OS name for *sys_platform* (default: this host)."""
    value = sys_platform or sys.platform
    for prefix, name in _OS_NAMES.items():
        if value.startswith(prefix):
            return name
    return value


def host_arch(machine: str | None = None) -> str:
    """Return the service architecture name for *machine* (default: this host)."""
    value = (machine or platform.machine()).lower()
    return _ARCH_NAMES.get(value, value)


def host_platform() -> tuple[str, str]:
    return host_os(), host_arch()


def build_asset_id(branch: str, os_name: str, arch: str) -> str:
    """Build the asset identifier, e.g. ``production_binary_beta_linux_amd64``."""
    if not branch:
        raise ValueError("branch must not be empty")
    return f"{ASSET_ID_PREFIX}_{branch}_{os_name}_{arch}"


class AssetResolver:
    """Asks the asset service whether a newer binary exists."""

    def __init__(self, transport: Transport, endpoint: str) -> None:
        self._transport = transport
        self._endpoint = endpoint

    async def resolve(self, asset_id: str, local_hash: str) -> TransportResult[AssetResponse]:
        """Send one asset request; the transport outcome is returned as-is."""
        log.info("asset_lookup", asset_id=asset_id, cached=bool(local_hash))
        return await self._transport.send(
            self._endpoint,
            AssetRequest(asset_id=asset_id, local_asset_hash=local_hash),
            AssetResponse.from_dict,
        )
