from __future__ import annotations

import logging
from typing import Sequence

from .command import Runner

logger = logging.getLogger(__name__)

APT_ENV = {"DEBIAN_FRONTEND": "noninteractive"}


def apt_update(run: Runner) -> None:
    run(["apt-get", "update"], env=APT_ENV)


def apt_install(run: Runner, packages: Sequence[str]) -> None:
    if not packages:
        return
    run(["apt-get", "install", "-y", *packages], env=APT_ENV)


def apt_full_upgrade(run: Runner) -> None:
    run(["apt-get", "-y", "full-upgrade"], env=APT_ENV)


def reconfigure(run: Runner, package: str) -> bool:
    """dpkg-reconfigure a package non-interactively. Best-effort."""

    r = run(["dpkg-reconfigure", "-fnoninteractive", package], check=False, env=APT_ENV)
    if r.returncode != 0:
        logger.info("Non-fatal: dpkg-reconfigure %s failed (%s)", package, r.returncode)
    return r.returncode == 0
