from __future__ import annotations

import logging

from ..lib.system import command_exists, run_remote_installer, systemctl
from ..params import ConfigSnapshot
from ..pipeline import Policy, StepContext, StepResult

logger = logging.getLogger(__name__)

DOCKER_INSTALL_URL = "https://get.docker.com"


class InstallRuntimeStep:
    step_id = "install-runtime"
    policy = Policy.FATAL

    def enabled(self, config: ConfigSnapshot) -> bool:
        return True

    def run(self, ctx: StepContext, config: ConfigSnapshot) -> StepResult:
        if command_exists(ctx.run, "docker"):
            logger.info("Container runtime already installed")
        else:
            run_remote_installer(ctx.run, DOCKER_INSTALL_URL)
        systemctl(ctx.run, "enable", "--now", "docker")
        return StepResult(config=config)
