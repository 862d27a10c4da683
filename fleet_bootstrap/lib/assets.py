from __future__ import annotations

import logging
import shutil
from pathlib import Path

logger = logging.getLogger(__name__)

ASSETS_DIR = Path(__file__).resolve().parents[1] / "assets"


def asset_path(rel: str) -> Path:
    return ASSETS_DIR / rel.lstrip("/")


def copy_tree(src: str | Path, dst: str | Path, *, dry_run: bool = False) -> None:
    s = Path(src)
    d = Path(dst)
    if not s.exists():
        raise FileNotFoundError(str(src))

    if dry_run:
        logger.info("Would copy tree %s -> %s", str(s), str(d))
        return

    d.mkdir(parents=True, exist_ok=True)
    for item in sorted(s.rglob("*")):
        rel = item.relative_to(s)
        out = d / rel
        if item.is_dir():
            out.mkdir(parents=True, exist_ok=True)
        else:
            out.parent.mkdir(parents=True, exist_ok=True)
            shutil.copyfile(item, out)


def remove_tree(path: str | Path, *, dry_run: bool = False) -> bool:
    p = Path(path)
    if not p.exists():
        return False
    if dry_run:
        logger.info("Would remove %s", str(p))
        return True
    if p.is_dir() and not p.is_symlink():
        shutil.rmtree(p)
    else:
        p.unlink()
    logger.info("Removed %s", str(p))
    return True
