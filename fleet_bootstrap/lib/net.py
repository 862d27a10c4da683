from __future__ import annotations

import logging

from .command import Runner

logger = logging.getLogger(__name__)


def detect_lan_ip(run: Runner) -> str:
    """First address reported by ``hostname -I``; empty when none."""

    r = run(["hostname", "-I"], check=False)
    if r.returncode != 0:
        logger.warning("Could not detect LAN address (hostname -I exit %s)", r.returncode)
        return ""
    parts = r.stdout.split()
    return parts[0] if parts else ""


def detect_mesh_ip(run: Runner) -> str:
    """Mesh-network IPv4 address; empty when the agent is not connected."""

    r = run(["tailscale", "ip", "-4"], check=False)
    if r.returncode != 0:
        return ""
    parts = r.stdout.split()
    return parts[0] if parts else ""
