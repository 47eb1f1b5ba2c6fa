"""
Design (logs.py)
- Purpose: Configure application logging and feed log records into the UI Logs panel.
- Inputs: Log level; a callable that appends one line to the panel.
- Outputs: The configured "nbi_sites" logger; TextPanelHandler instances.
- Side effects: Adds handlers to the "nbi_sites" logger.
- Thread-safety: logging is thread-safe; TextPanelHandler only calls the post callable,
                 which must itself hop onto the Tk main thread (root.after).
"""

import logging
import sys
from typing import Callable

LOGGER_NAME = "nbi_sites"
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
PANEL_FORMAT = "[%(asctime)s] %(levelname)s %(message)s"
PANEL_DATEFMT = "%Y-%m-%d %H:%M:%S"


def setup_logging(level: int = logging.INFO) -> logging.Logger:
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level)
    if not any(getattr(h, "_nbi_stream", False) for h in logger.handlers):
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handler._nbi_stream = True  # type: ignore[attr-defined]
        logger.addHandler(handler)
    return logger


class TextPanelHandler(logging.Handler):
    """Formats each record as one line and hands it to the UI via post()."""

    def __init__(self, post: Callable[[str], None], level: int = logging.INFO) -> None:
        super().__init__(level)
        self.post = post
        self.setFormatter(logging.Formatter(PANEL_FORMAT, datefmt=PANEL_DATEFMT))

    def emit(self, record: logging.LogRecord) -> None:
        try:
            self.post(self.format(record) + "\n")
        except Exception:
            self.handleError(record)
