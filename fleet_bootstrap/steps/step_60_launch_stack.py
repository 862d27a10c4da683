from __future__ import annotations

import logging

from ..params import ConfigSnapshot
from ..pipeline import Policy, StepContext, StepResult
from ..stack import COMPOSE_FILENAME

logger = logging.getLogger(__name__)


class LaunchStackStep:
    step_id = "launch-stack"
    policy = Policy.FATAL

    def enabled(self, config: ConfigSnapshot) -> bool:
        return True

    def run(self, ctx: StepContext, config: ConfigSnapshot) -> StepResult:
        paths = ctx.paths
        compose_file = f"{paths.stack_dirname}/{COMPOSE_FILENAME}"
        ctx.run(
            ["docker", "compose", "-f", compose_file, "--env-file", paths.env_filename, "up", "-d"],
            cwd=str(paths.workdir_path),
        )
        logger.info("Stack started from %s", str(paths.workdir_path / compose_file))
        return StepResult(config=config)
