"""Client side of the Oomph asset service.

This package provides:
- BufferPool: bounded, thread-safe pool of request body buffers
- build_client: the once-built mutual-TLS HTTPS client
- Transport: one POST per call, resolved to Success / Failure / Error
- AssetRequest / AssetResponse / ErrorResponse: wire models
"""
