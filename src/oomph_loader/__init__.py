"""Oomph loader.

Self-updating launcher for the Oomph proxy: fetches the latest binary for
the current branch/platform, keeps a local cache, and supervises the proxy
as a child process.
"""

__version__ = "0.1.0"
