"""Periodic liveness reporter.

``install_heartbeat`` writes a small launcher that calls :func:`main` with
the device's identity baked in and registers it with cron. Each invocation
POSTs ``{device_id, hostname, ts}`` to ``<api>/heartbeat`` once and always
exits 0: a missed heartbeat matters to the server, not to the device.
"""

from __future__ import annotations

import argparse
import logging
import sys
from datetime import datetime
from typing import Optional

import requests

from .identity import DeviceIdentity
from .lib.cron import install_cron_entry
from .lib.files import write_file
from .pipeline import StepContext

logger = logging.getLogger(__name__)

HEARTBEAT_TIMEOUT_SECONDS = 5.0

_LAUNCHER_TEMPLATE = """#!{python}
# Generated by fleet-bootstrap; re-running the bootstrap overwrites this file.
from fleet_bootstrap.heartbeat import main

raise SystemExit(main([
    "--api", {api_base!r},
    "--device-id", {device_id!r},
    "--hostname", {hostname!r},
]))
"""


def heartbeat_payload(device_id: str, hostname: str, now: Optional[datetime] = None) -> dict[str, str]:
    ts = (now or datetime.now().astimezone()).isoformat(timespec="seconds")
    return {"device_id": device_id, "hostname": hostname, "ts": ts}


def send_heartbeat(
    api_base: str,
    device_id: str,
    hostname: str,
    *,
    session: Optional[requests.Session] = None,
    timeout: float = HEARTBEAT_TIMEOUT_SECONDS,
    now: Optional[datetime] = None,
) -> bool:
    """Fire one heartbeat. Returns False on any failure instead of raising."""

    if session is None:
        with requests.Session() as owned:
            return send_heartbeat(api_base, device_id, hostname, session=owned, timeout=timeout, now=now)

    url = f"{api_base.rstrip('/')}/heartbeat"
    try:
        r = session.post(url, json=heartbeat_payload(device_id, hostname, now), timeout=timeout)
    except requests.RequestException as e:
        logger.debug("Heartbeat to %s failed: %s", url, e)
        return False
    if not r.ok:
        logger.debug("Heartbeat to %s returned HTTP %s", url, r.status_code)
    return r.ok


def render_launcher(api_base: str, identity: DeviceIdentity, python: Optional[str] = None) -> str:
    return _LAUNCHER_TEMPLATE.format(
        python=python or sys.executable or "/usr/bin/env python3",
        api_base=api_base,
        device_id=identity.device_id,
        hostname=identity.hostname,
    )


def install_heartbeat(
    ctx: StepContext,
    api_base: Optional[str],
    identity: DeviceIdentity,
    schedule: str,
) -> bool:
    """Write the reporter and register it with cron. No-op without an API base."""

    if not api_base:
        logger.info("No fleet API configured; skipping heartbeat")
        return False

    script_rel = ctx.paths.heartbeat_script
    write_file(ctx.path(script_rel), render_launcher(api_base, identity), mode=0o755, dry_run=ctx.dry_run)
    # cron runs the on-device path, not the test/dry-run root.
    install_cron_entry(ctx.run, schedule, script_rel)
    logger.info("Heartbeat installed (%s %s)", schedule, script_rel)
    return True


def main(argv: Optional[list[str]] = None) -> int:
    p = argparse.ArgumentParser(prog="fleet-heartbeat", description="Send one liveness ping to the fleet API.")
    p.add_argument("--api", required=True, help="Fleet API base URL")
    p.add_argument("--device-id", required=True)
    p.add_argument("--hostname", required=True)
    p.add_argument("--timeout", type=float, default=HEARTBEAT_TIMEOUT_SECONDS)

    args = p.parse_args(argv)
    with requests.Session() as session:
        send_heartbeat(args.api, args.device_id, args.hostname, session=session, timeout=args.timeout)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
