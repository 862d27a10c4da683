from __future__ import annotations

import logging
from typing import Iterable

from .command import Runner

logger = logging.getLogger(__name__)


def command_exists(run: Runner, name: str) -> bool:
    r = run(["sh", "-c", f"command -v {name}"], check=False)
    return r.returncode == 0


def run_remote_installer(run: Runner, url: str) -> None:
    """Pipe a vendor install script into sh (curl -fsSL URL | sh)."""

    run(["sh", "-c", f"curl -fsSL {url} | sh"])


def raspi_config(run: Runner, *args: str) -> None:
    run(["raspi-config", "nonint", *args])


def systemctl(run: Runner, *args: str, check: bool = True) -> bool:
    r = run(["systemctl", *args], check=check)
    if r.returncode != 0:
        logger.info("Non-fatal: systemctl %s failed (%s)", " ".join(args), r.returncode)
    return r.returncode == 0


def ufw_apply(run: Runner, allow: Iterable[str]) -> None:
    run(["ufw", "default", "deny", "incoming"])
    for rule in allow:
        run(["ufw", "allow", rule])
    run(["ufw", "--force", "enable"])
