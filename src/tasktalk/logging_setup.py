# src/tasktalk/logging_setup.py

"""
Logging for the console agent.

stderr shares the terminal with the REPL prompt, so it only shows tasktalk records
plus errors from other libraries. The log file in the data directory gets everything.
"""

from __future__ import annotations

import logging
import sys
from collections.abc import Iterable
from pathlib import Path

LOG_FILE_NAME = "tasktalk.log"
LOG_FORMAT = "%(asctime)s.%(msecs)03d %(levelname)s %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# SDK and transport loggers that report every request
CHATTY_LOGGERS = ("httpx", "httpcore", "openai")


class ProjectOnlyFilter(logging.Filter):
    """Pass every record of one logger namespace; foreign records only from `foreign_level` up."""

    def __init__(self, namespace: str = "tasktalk", *, foreign_level: int = logging.ERROR) -> None:
        super().__init__()
        self.namespace = namespace
        self.foreign_level = foreign_level

    def filter(self, record: logging.LogRecord) -> bool:
        name = record.name
        if name == self.namespace or name.startswith(f"{self.namespace}."):
            return True
        return record.levelno >= self.foreign_level


def setup_logging(
    *,
    log_dir: str | Path = ".local/tasktalk",
    console_level: int = logging.INFO,
    file_level: int = logging.DEBUG,
    chatty_loggers: Iterable[str] = CHATTY_LOGGERS,
) -> Path:
    """
    Install the console and file handlers on the root logger.

    Handlers left by an earlier call are replaced. Returns the log file path.
    """
    log_file = Path(log_dir) / LOG_FILE_NAME
    log_file.parent.mkdir(parents=True, exist_ok=True)

    root = logging.getLogger()
    root.setLevel(min(console_level, file_level))
    for handler in list(root.handlers):
        root.removeHandler(handler)

    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT)

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(console_level)
    console.setFormatter(formatter)
    console.addFilter(ProjectOnlyFilter())
    root.addHandler(console)

    to_file = logging.FileHandler(str(log_file), encoding="utf-8")
    to_file.setLevel(file_level)
    to_file.setFormatter(formatter)
    root.addHandler(to_file)

    for name in chatty_loggers:
        logging.getLogger(name).setLevel(logging.WARNING)

    # warnings.warn() lands on "py.warnings", a foreign logger for the console filter
    logging.captureWarnings(True)

    return log_file
