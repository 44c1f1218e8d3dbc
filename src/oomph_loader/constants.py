"""Centralized constants for the Oomph loader."""

# Release channels
DEFAULT_BRANCH = "stable"

# Asset naming
ASSET_ID_PREFIX = "production_binary"

# Remote asset service
DEFAULT_ASSET_ENDPOINT = "https://api.oomph.ac/assets"
REQUEST_TIMEOUT_SECONDS = 60

# Request body buffers larger than this are dropped instead of pooled
MAX_POOLED_BUFFER_BYTES = 1024 * 1024

# Local cache
DEFAULT_CACHE_DIR = ".oomph-cache"
CACHE_FILE_MODE = 0o755

# mTLS client material
DEFAULT_CLIENT_CERT = "oomph-api-client.crt"
DEFAULT_CLIENT_KEY = "oomph-api-client.key"

# Process supervision (seconds)
SHUTDOWN_GRACE_SECONDS = 5
