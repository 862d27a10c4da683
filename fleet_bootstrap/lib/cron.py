from __future__ import annotations

import logging

from ..errors import CommandError
from .command import Runner

logger = logging.getLogger(__name__)


def read_crontab(run: Runner) -> list[str]:
    r = run(["crontab", "-l"], check=False)
    if r.returncode == 0:
        return r.stdout.splitlines()
    # Only a missing crontab counts as empty; rewriting after any other
    # failure would drop the existing entries.
    if "no crontab for" in r.stderr:
        return []
    raise CommandError(r.argv, r.returncode, r.stderr)


def install_cron_entry(run: Runner, schedule: str, command: str) -> list[str]:
    """Install ``schedule command`` replacing any entry for the same command.

    Re-running converges on exactly one entry per command. Returns the new
    crontab lines.
    """

    current = read_crontab(run)
    kept = [ln for ln in current if not _runs_command(ln, command)]
    if len(kept) != len(current):
        logger.info("Replacing %d existing cron entr(y/ies) for %s", len(current) - len(kept), command)
    lines = [*kept, f"{schedule} {command}"]
    run(["crontab", "-"], input_text="\n".join(lines) + "\n")
    return lines


def _runs_command(line: str, command: str) -> bool:
    stripped = line.strip()
    if not stripped or stripped.startswith("#"):
        return False
    return stripped.split()[-1] == command
