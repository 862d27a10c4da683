from __future__ import annotations

from ..heartbeat import install_heartbeat
from ..params import ConfigSnapshot
from ..pipeline import Policy, StepContext, StepResult


class InstallHeartbeatStep:
    step_id = "install-heartbeat"
    policy = Policy.BEST_EFFORT

    def enabled(self, config: ConfigSnapshot) -> bool:
        return bool(config.api_base)

    def run(self, ctx: StepContext, config: ConfigSnapshot) -> StepResult:
        install_heartbeat(ctx, config.api_base, ctx.identity, config.heartbeat_schedule)
        return StepResult(config=config)
