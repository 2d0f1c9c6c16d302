"""
FILE: jedi_organizer/logging_setup.py
PURPOSE: Logging configuration for the CLI process
EXPORTS:
  - setup_logging(level, log_file) -> None
DEPENDENCIES:
  - logging (stdlib)
  - rich (RichHandler for readable stderr logs)
NOTES:
  - Call once, early, from the CLI entry point
  - Replaces existing root handlers so repeated calls don't duplicate output
  - Replaced file handlers are closed so repeated calls keep one log file open
  - Console output goes to stderr so --json output on stdout stays clean
"""

import logging
from pathlib import Path
from typing import Optional, Union

from rich.console import Console
from rich.logging import RichHandler


def setup_logging(
    level: int = logging.WARNING,
    log_file: Optional[Union[str, Path]] = None,
) -> None:
    """
    Configure root logging.

    Args:
        level: Level for the console handler (and root logger)
        log_file: Optional path; when given, everything at DEBUG and above
            is also written there
    """
    root = logging.getLogger()
    root.setLevel(logging.DEBUG if log_file else level)

    for handler in list(root.handlers):
        root.removeHandler(handler)
        if isinstance(handler, logging.FileHandler):
            handler.close()

    console_handler = RichHandler(
        console=Console(stderr=True),
        show_path=False,
        rich_tracebacks=False,
    )
    console_handler.setLevel(level)
    console_handler.setFormatter(logging.Formatter("%(name)s: %(message)s"))
    root.addHandler(console_handler)

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(str(log_path), encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(
            logging.Formatter(
                fmt="%(asctime)s.%(msecs)03d %(levelname)s %(name)s: %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )
        )
        root.addHandler(file_handler)

    logging.captureWarnings(True)
