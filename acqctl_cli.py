"""Thin launcher for running the acquisition controller from a source checkout."""
from __future__ import annotations

import sys

from acqctl.cli.main import main

if __name__ == '__main__':
    raise SystemExit(main(sys.argv[1:]))
