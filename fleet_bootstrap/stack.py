from __future__ import annotations

import logging
import secrets
import string
from pathlib import Path
from typing import Optional

from .identity import DeviceIdentity
from .lib.assets import asset_path, copy_tree, remove_tree
from .lib.command import Runner
from .lib.files import write_file
from .lib.net import detect_lan_ip
from .params import ConfigSnapshot
from .pipeline import StepContext

logger = logging.getLogger(__name__)

EMBEDDED_STACK = asset_path("compose")
COMPOSE_FILENAME = "docker-compose.yml"
SECRET_KEY = "PIHOLE_WEBPASSWORD"
SECRET_LENGTH = 16
SECRET_ALPHABET = string.ascii_letters + string.digits
ENROLLMENT_MARKER = "# From fleet API"


def generate_secret(length: int = SECRET_LENGTH) -> str:
    return "".join(secrets.choice(SECRET_ALPHABET) for _ in range(length))


def fetch_workload(
    run: Runner,
    target_dir: Path,
    repo_url: Optional[str],
    git_ref: str,
    embedded_fallback: Path = EMBEDDED_STACK,
    *,
    dry_run: bool = False,
) -> str:
    """Replace ``target_dir`` with a fresh workload definition.

    Clones ``repo_url`` at ``git_ref`` when set (clone failure raises),
    otherwise copies the embedded fallback verbatim. Returns the source used.
    """

    remove_tree(target_dir, dry_run=dry_run)

    if repo_url:
        if not dry_run:
            target_dir.parent.mkdir(parents=True, exist_ok=True)
        run(["git", "clone", "--depth=1", "--branch", git_ref, "--", repo_url, str(target_dir)])
        logger.info("Workload cloned from %s@%s", repo_url, git_ref)
        return f"{repo_url}@{git_ref}"

    logger.info("No workload repository configured; writing the embedded default stack")
    copy_tree(embedded_fallback, target_dir, dry_run=dry_run)
    return "embedded"


def render_env_file(
    identity: DeviceIdentity,
    config: ConfigSnapshot,
    *,
    lan_ip: str,
    secret: str,
) -> str:
    """Environment file for the workload. The enrollment fragment always comes last."""

    lines = [
        f"DEVICE_ID={identity.device_id}",
        f"TENANT={config.tenant}",
        f"CHANNEL={config.channel}",
        f"LAN_IP={lan_ip}",
        f"{SECRET_KEY}={secret}",
    ]
    out = "\n".join(lines) + "\n"
    if config.device_env:
        out += "\n" + ENROLLMENT_MARKER + "\n" + config.device_env.rstrip("\n") + "\n"
    return out


def materialize(
    ctx: StepContext,
    config: ConfigSnapshot,
    *,
    embedded_fallback: Path = EMBEDDED_STACK,
    secret: Optional[str] = None,
) -> Path:
    """Recreate the workload directory and its environment file. Returns the env file path."""

    paths = ctx.paths
    if not ctx.dry_run:
        paths.workdir_path.mkdir(parents=True, exist_ok=True)

    fetch_workload(
        ctx.run,
        paths.stack_dir,
        config.compose_url,
        config.git_ref,
        embedded_fallback,
        dry_run=ctx.dry_run,
    )

    contents = render_env_file(
        ctx.identity,
        config,
        lan_ip=detect_lan_ip(ctx.run),
        secret=secret if secret is not None else generate_secret(),
    )
    write_file(paths.env_file, contents, mode=0o600, dry_run=ctx.dry_run)
    logger.info("Wrote %s", str(paths.env_file))
    return paths.env_file
