from __future__ import annotations

import logging
from pathlib import Path
from typing import Tuple

from .lib.env import PATHS

DEFAULT_LOG_PATH = PATHS.log_default
FALLBACK_LOG_NAME = "fleet-bootstrap.log"
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

# Set on the root logger once handlers are installed; holds the file in use.
_CONFIGURED_ATTR = "_fleet_bootstrap_log_path"


def _open_log_file(log_path: str) -> Tuple[logging.FileHandler, str]:
    try:
        Path(log_path).parent.mkdir(parents=True, exist_ok=True)
        return logging.FileHandler(log_path), log_path
    except OSError:
        # e.g. a dry run as a normal user cannot write /var/log.
        fallback = str(Path.cwd() / FALLBACK_LOG_NAME)
        return logging.FileHandler(fallback), fallback


def configure_logging(log_path: str = DEFAULT_LOG_PATH, *, verbose: bool = False, console: bool = True) -> str:
    """Send bootstrap logs to ``log_path`` and the console.

    The file always gets DEBUG so every command and stage transition is on
    record; the console shows INFO unless ``verbose``. Calling it again is a
    no-op. Returns the log file actually in use.
    """

    root = logging.getLogger()
    configured = getattr(root, _CONFIGURED_ATTR, None)
    if configured:
        return configured

    fmt = logging.Formatter(fmt=LOG_FORMAT, datefmt="%Y-%m-%dT%H:%M:%S%z")
    file_handler, chosen_path = _open_log_file(log_path)
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(fmt)
    root.addHandler(file_handler)

    if console:
        stream = logging.StreamHandler()
        stream.setLevel(logging.DEBUG if verbose else logging.INFO)
        stream.setFormatter(fmt)
        root.addHandler(stream)

    root.setLevel(logging.DEBUG)
    # Connection-pool chatter from requests only when asked for.
    logging.getLogger("urllib3").setLevel(logging.DEBUG if verbose else logging.WARNING)
    setattr(root, _CONFIGURED_ATTR, chosen_path)

    logging.getLogger(__name__).info("Logging to %s (requested %s)", chosen_path, log_path)
    return chosen_path
