# octink/log.py
"""
Handlers for the ``octink`` logger tree.

Every module logs through ``logging.getLogger(__name__)`` with a bracketed
tag leading the message (``[epd] busy timeout``, ``[cycle] source ...``), so
the line format only adds a clock and the level in front of it:

    14:02:11 INFO  [ctl] full wipe
"""
import logging
import sys
from typing import Optional

ROOT = "octink"
LINE = "%(asctime)s %(levelname)-5s %(message)s"
CLOCK = "%H:%M:%S"


def _handler(h: logging.Handler, level: int) -> logging.Handler:
    h.setLevel(level)
    h.setFormatter(logging.Formatter(LINE, datefmt=CLOCK))
    return h


def setup_logging(level: int = logging.INFO, log_file: Optional[str] = None) -> logging.Logger:
    """Console on stdout, plus ``log_file`` if given. Calling again replaces, never stacks."""
    root = logging.getLogger(ROOT)
    root.setLevel(level)
    for h in list(root.handlers):
        root.removeHandler(h)
        h.close()

    root.addHandler(_handler(logging.StreamHandler(sys.stdout), level))
    if log_file:
        root.addHandler(_handler(logging.FileHandler(log_file, encoding="utf-8"), level))
    return root


def parse_level(name: Optional[str]) -> int:
    """``"debug"`` -> ``logging.DEBUG``; anything unknown falls back to INFO."""
    level = logging.getLevelName((name or "").upper())
    return level if isinstance(level, int) else logging.INFO
