#!/usr/bin/env python3
"""Run a soak test from a YAML configuration file."""

from __future__ import annotations

import sys
from pathlib import Path

# Allow running from a checkout without installing the package.
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from soakrunner.main import main

if __name__ == "__main__":
    raise SystemExit(main())
