from __future__ import annotations

import logging
import os
import re
from pathlib import Path

logger = logging.getLogger(__name__)


def _read_lines(path: Path) -> list[str]:
    if not path.exists():
        return []
    return path.read_text(encoding="utf-8").splitlines()


def write_file(path: Path, contents: str, *, mode: int | None = None, dry_run: bool = False) -> None:
    if dry_run:
        logger.info("Would write %s", str(path))
        return
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(contents, encoding="utf-8")
    if mode is not None:
        os.chmod(path, mode)


def ensure_line_present(
    path: Path,
    line: str,
    *,
    pattern: str | None = None,
    dry_run: bool = False,
) -> bool:
    """Append ``line`` unless a line matching ``pattern`` already exists.

    ``pattern`` defaults to the literal line anchored at the start. Returns
    True when the file was changed.
    """

    rx = re.compile(pattern if pattern is not None else "^" + re.escape(line))
    lines = _read_lines(path)
    if any(rx.search(ln) for ln in lines):
        return False

    if dry_run:
        logger.info("Would append to %s: %s", str(path), line)
        return True

    path.parent.mkdir(parents=True, exist_ok=True)
    existing = path.read_text(encoding="utf-8") if path.exists() else ""
    sep = "" if not existing or existing.endswith("\n") else "\n"
    path.write_text(existing + sep + line + "\n", encoding="utf-8")
    logger.info("Appended to %s: %s", str(path), line)
    return True


def set_config_line(path: Path, pattern: str, replacement: str, *, dry_run: bool = False) -> bool:
    """Replace every line matching ``pattern`` with ``replacement`` (sed -i 's/pattern.*/.../').

    A missing file or no matching line leaves the file untouched. Returns
    True when the file was changed.
    """

    rx = re.compile(pattern)
    lines = _read_lines(path)
    out = [replacement if rx.search(ln) else ln for ln in lines]
    if out == lines:
        return False

    if dry_run:
        logger.info("Would set %s in %s", replacement, str(path))
        return True

    path.write_text("\n".join(out) + "\n", encoding="utf-8")
    logger.info("Set %s in %s", replacement, str(path))
    return True
