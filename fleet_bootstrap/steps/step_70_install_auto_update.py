from __future__ import annotations

import logging

from ..params import ConfigSnapshot
from ..pipeline import Policy, StepContext, StepResult

logger = logging.getLogger(__name__)

CONTAINER_NAME = "watchtower"
IMAGE = "containrrr/watchtower"
SCHEDULE = "0 0 3 * * *"


class InstallAutoUpdateStep:
    step_id = "install-auto-update"
    policy = Policy.BEST_EFFORT

    def enabled(self, config: ConfigSnapshot) -> bool:
        return config.enable_auto_update

    def run(self, ctx: StepContext, config: ConfigSnapshot) -> StepResult:
        # Replace rather than duplicate on re-run.
        ctx.run(["docker", "rm", "-f", CONTAINER_NAME], check=False)
        ctx.run(
            [
                "docker",
                "run",
                "-d",
                "--name",
                CONTAINER_NAME,
                "-v",
                "/var/run/docker.sock:/var/run/docker.sock",
                IMAGE,
                "--cleanup",
                "--label-enable",
                "--include-stopped",
                "--schedule",
                SCHEDULE,
            ]
        )
        logger.info("Auto-update sidecar running (%s)", SCHEDULE)
        return StepResult(config=config)
