"""Entry point for ``python -m oomph_loader``."""

from oomph_loader.cli import main

if __name__ == "__main__":
    raise SystemExit(main())
