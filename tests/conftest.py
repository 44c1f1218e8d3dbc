"""Shared fixtures for the Oomph loader test suite."""

from __future__ import annotations

from collections.abc import Callable, Iterator
from pathlib import Path

import pytest

from oomph_loader.config import Settings, get_settings


@pytest.fixture(autouse=True)
def _clear_settings_cache() -> Iterator[None]:
    """Make sure no test sees settings cached by another."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture()
def settings(tmp_path: Path) -> Settings:
    """Settings isolated from the environment, caching under tmp_path."""
    return Settings(
        _env_file=None,
        cache_dir=str(tmp_path / "cache"),
        asset_endpoint="https://assets.test/assets",
        client_cert_path=str(tmp_path / "missing.crt"),
        client_key_path=str(tmp_path / "missing.key"),
        shutdown_grace_seconds=0.5,
    )


@pytest.fixture()
def make_script(tmp_path: Path) -> Callable[[str, str], Path]:
    """Write an executable /bin/sh script and return its path."""

    def _make(name: str, body: str) -> Path:
        path = tmp_path / name
        path.write_text(f"#!/bin/sh\n{body}\n", encoding="utf-8")
        path.chmod(0o755)
        return path

    return _make
