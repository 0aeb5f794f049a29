"""Entry point for ``python -m peerstream``."""

from __future__ import annotations

from peerstream.cli.main import main

if __name__ == "__main__":
    main()
