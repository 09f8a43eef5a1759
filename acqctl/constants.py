"""Shared constants used across the acquisition controller."""
from __future__ import annotations

import logging

PROGRAM_NAME = "acqctl"
VERSION = "0.1.0"

DEFAULT_OUTPUT_FORMAT = "bits"
DEFAULT_LINE_WIDTH = 64
DEFAULT_QUEUE_SIZE = 64

# 0 none, 1 error, 2 warning, 3 info, 4 debug, 5 spew
LOGLEVELS = {
    0: logging.CRITICAL + 10,
    1: logging.ERROR,
    2: logging.WARNING,
    3: logging.INFO,
    4: logging.DEBUG,
    5: logging.NOTSET + 1,
}
DEFAULT_LOGLEVEL = 2

EXIT_OK = 0
EXIT_FAILURE = 1
