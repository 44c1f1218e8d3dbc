"""Mutual-TLS HTTPS client for the asset service.

The client is built once at start-up and handed to ``Transport``; nothing
reads it from module state.
"""

from __future__ import annotations

import ssl
from pathlib import Path

import httpx

from oomph_loader.config import Settings
from oomph_loader.logging import get_logger

log = get_logger("oomph_loader.api.client")


def build_ssl_context(cert_path: str, key_path: str) -> ssl.SSLContext:
    """Create a TLS 1.2-1.3 context, presenting the client certificate if present.

    A missing or unreadable certificate is logged and the context is
    returned without one; the service will then refuse the request and
    the loader falls back to its cache.
    """
    context = ssl.create_default_context()
    context.minimum_version = ssl.TLSVersion.TLSv1_2
    context.maximum_version = ssl.TLSVersion.TLSv1_3

    if not Path(cert_path).is_file() or not Path(key_path).is_file():
        log.warning("client_certificate_missing", cert=cert_path, key=key_path)
        return context

    try:
        context.load_cert_chain(certfile=cert_path, keyfile=key_path)
    except (OSError, ssl.SSLError) as exc:
        log.warning("client_certificate_load_failed", cert=cert_path, error=str(exc))
    return context


def build_client(settings: Settings) -> httpx.AsyncClient:
    """Build the shared asset-service client from settings."""
    context = build_ssl_context(settings.client_cert_path, settings.client_key_path)
    return httpx.AsyncClient(
        verify=context,
        timeout=settings.request_timeout_seconds,
    )
