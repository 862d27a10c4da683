from __future__ import annotations

import logging

from ..errors import CommandError, DegradedOptionalFeature
from ..lib.system import command_exists, run_remote_installer
from ..params import ConfigSnapshot
from ..pipeline import Policy, StepContext, StepResult

logger = logging.getLogger(__name__)

TAILSCALE_INSTALL_URL = "https://tailscale.com/install.sh"


class InstallMeshAgentStep:
    """Install the mesh agent (fatal), then connect it (best-effort)."""

    step_id = "install-mesh-agent"
    policy = Policy.FATAL

    def enabled(self, config: ConfigSnapshot) -> bool:
        return config.enable_mesh

    def run(self, ctx: StepContext, config: ConfigSnapshot) -> StepResult:
        if command_exists(ctx.run, "tailscale"):
            logger.info("Mesh agent already installed")
        else:
            run_remote_installer(ctx.run, TAILSCALE_INSTALL_URL)

        if not config.auth_key:
            logger.info("No --auth-key given; run 'tailscale up' manually later")
            return StepResult(config=config)

        argv = [
            "tailscale",
            "up",
            "--auth-key",
            config.auth_key,
            "--hostname",
            ctx.identity.hostname,
            "--ssh",
            f"--advertise-tags=tenant:{config.tenant},channel:{config.channel}",
        ]
        try:
            ctx.run(argv)
        except CommandError as e:
            # Keep the auth key out of the warning.
            reason = f"tailscale up exited {e.returncode}"
            return StepResult(
                config=config,
                warnings=(DegradedOptionalFeature(self.step_id, reason, feature="mesh-connect"),),
            )

        logger.info("Mesh agent connected as %s", ctx.identity.hostname)
        return StepResult(config=config)
