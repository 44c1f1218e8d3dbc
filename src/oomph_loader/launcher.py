"""Update-and-supervise pipeline.

Typical flow:
1. Work out the asset id for this branch/platform and hash the cached copy
2. Ask the asset service for anything newer (skipped with ``use_cache``)
3. Apply the answer to the cache, falling back to the cached copy on failure
4. Supervise whatever binary is now in the cache
"""

from __future__ import annotations

import httpx

from oomph_loader.api.client import build_client
from oomph_loader.api.pool import BufferPool
from oomph_loader.api.transport import Transport
from oomph_loader.assets.cache import AssetCache
from oomph_loader.assets.resolver import AssetResolver, build_asset_id, host_platform
from oomph_loader.config import Settings
from oomph_loader.errors import NoCacheAvailableError
from oomph_loader.logging import get_logger
from oomph_loader.supervisor import ProcessSupervisor, SupervisorResult

log = get_logger("oomph_loader.launcher")


async def refresh_cache(
    settings: Settings,
    cache: AssetCache,
    asset_id: str,
    client: httpx.AsyncClient | None = None,
) -> bool:
    """Fetch the latest binary into the cache.

    Returns True only if the cache now holds the latest binary.  On any
    failure the existing file, if there is one, is left as it was.
    """
    path = cache.path_for(asset_id)
    local_hash = cache.file_hash(path)

    owns_client = client is None
    if client is None:
        client = build_client(settings)
    try:
        transport = Transport(client, BufferPool(settings.max_pooled_buffer_bytes))
        resolver = AssetResolver(transport, settings.asset_endpoint)
        result = await resolver.resolve(asset_id, local_hash)
    finally:
        if owns_client:
            await client.aclose()

    return cache.refresh(result, path)


async def launch(
    settings: Settings,
    branch: str,
    use_cache: bool = False,
    client: httpx.AsyncClient | None = None,
) -> SupervisorResult:
    """Refresh the cached proxy binary and run it under supervision.

    Raises NoCacheAvailableError when nothing usable exists, and
    SpawnError when the binary cannot be started.
    """
    os_name, arch = host_platform()
    asset_id = build_asset_id(branch, os_name, arch)
    cache = AssetCache(settings.cache_dir, settings.asset_compression)
    try:
        cache.ensure_dir()
    except OSError as exc:
        # Not fatal: a later write fails and the run degrades to whatever exists.
        log.warning("cache_dir_unavailable", path=str(cache.directory), error=str(exc))
    path = cache.path_for(asset_id)
    log.info("searching_for_asset", asset_id=asset_id, use_cache=use_cache)

    refreshed = False
    if not use_cache:
        refreshed = await refresh_cache(settings, cache, asset_id, client=client)

    if not refreshed:
        if not path.is_file():
            log.error("no_cached_binary", asset_id=asset_id, path=str(path))
            raise NoCacheAvailableError(asset_id)
        if not use_cache:
            log.warning("download_failed_using_cache", path=str(path))

    supervisor = ProcessSupervisor(path, grace_seconds=settings.shutdown_grace_seconds)
    return await supervisor.run()
