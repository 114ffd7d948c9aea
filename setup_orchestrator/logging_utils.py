from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Tuple

from .lib.env import PATHS

DEFAULT_LOG_PATH = PATHS.log_default

PACKAGE_LOGGER = "setup_orchestrator"

_FILE_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
_CONSOLE_FORMAT = "%(levelname)s: %(message)s"


def _open_log_file(log_path: str) -> Tuple[logging.Handler, str]:
    try:
        Path(log_path).parent.mkdir(parents=True, exist_ok=True)
        return logging.FileHandler(log_path, encoding="utf-8"), log_path
    except OSError:
        fallback = str(Path.cwd() / "setup-orchestrator.log")
        return logging.FileHandler(fallback, encoding="utf-8"), fallback


def configure_logging(
    log_path: str = DEFAULT_LOG_PATH,
    *,
    console_level: int = logging.INFO,
    also_console: bool = True,
) -> str:
    """Attach this run's handlers to the package logger.

    The log file always records DEBUG, so skipped blank/comment lines,
    version queries and captured command output are on disk for every run;
    console_level (--verbose) only changes what is shown on screen.

    A second call replaces the handlers of the previous run. If the log file
    cannot be created, a file in the working directory is used instead.

    Returns the actual file path being used.
    """

    logger = logging.getLogger(PACKAGE_LOGGER)
    logger.setLevel(logging.DEBUG)

    previous: List[logging.Handler] = getattr(logger, "_run_handlers", [])
    for h in previous:
        logger.removeHandler(h)
        h.close()

    file_handler, chosen_path = _open_log_file(log_path)
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(logging.Formatter(_FILE_FORMAT, datefmt="%Y-%m-%dT%H:%M:%S%z"))
    handlers: List[logging.Handler] = [file_handler]

    if also_console:
        console = logging.StreamHandler()
        console.setLevel(console_level)
        console.setFormatter(logging.Formatter(_CONSOLE_FORMAT))
        handlers.append(console)

    for h in handlers:
        logger.addHandler(h)
    setattr(logger, "_run_handlers", handlers)

    logging.getLogger(__name__).info(
        "Logging initialized (requested=%s, actual=%s)", log_path, chosen_path
    )
    return chosen_path
