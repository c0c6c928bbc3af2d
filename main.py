"""Entry point for running the harvester from a source checkout."""

from __future__ import annotations

import sys

from vidharvest.cli import main

if __name__ == "__main__":
    sys.exit(main())
