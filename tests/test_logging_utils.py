"""Tests for the bootstrap log setup."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterator

import pytest

from fleet_bootstrap import logging_utils
from fleet_bootstrap.logging_utils import configure_logging


@pytest.fixture
def clean_root() -> Iterator[logging.Logger]:
    root = logging.getLogger()
    saved_handlers, saved_level = list(root.handlers), root.level
    urllib3_level = logging.getLogger("urllib3").level
    yield root
    logging.getLogger("urllib3").setLevel(urllib3_level)
    for h in list(root.handlers):
        if h not in saved_handlers:
            root.removeHandler(h)
            h.close()
    root.setLevel(saved_level)
    if hasattr(root, logging_utils._CONFIGURED_ATTR):
        delattr(root, logging_utils._CONFIGURED_ATTR)


def test_writes_debug_to_file_and_is_configured_once(tmp_path: Path, clean_root: logging.Logger) -> None:
    log_path = tmp_path / "var" / "log" / "bootstrap.log"

    assert configure_logging(str(log_path), console=False) == str(log_path)
    assert configure_logging(str(tmp_path / "other.log"), console=False) == str(log_path)
    logging.getLogger("fleet_bootstrap.test").debug("CMD apt-get update")
    for h in clean_root.handlers:
        h.flush()

    assert "CMD apt-get update" in log_path.read_text(encoding="utf-8")
    assert not (tmp_path / "other.log").exists()


def test_unwritable_path_falls_back_to_working_directory(
    tmp_path: Path, clean_root: logging.Logger, monkeypatch: pytest.MonkeyPatch
) -> None:
    blocker = tmp_path / "not-a-dir"
    blocker.write_text("", encoding="utf-8")
    monkeypatch.chdir(tmp_path)

    chosen = configure_logging(str(blocker / "bootstrap.log"), console=False)

    assert chosen == str(tmp_path / "fleet-bootstrap.log")


def test_verbose_controls_console_level(tmp_path: Path, clean_root: logging.Logger) -> None:
    configure_logging(str(tmp_path / "a.log"), verbose=True)

    consoles = [
        h for h in clean_root.handlers
        if type(h) is logging.StreamHandler and getattr(h, "stream", None) is not None
    ]
    assert consoles and consoles[-1].level == logging.DEBUG
