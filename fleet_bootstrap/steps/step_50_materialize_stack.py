from __future__ import annotations

from ..params import ConfigSnapshot
from ..pipeline import Policy, StepContext, StepResult
from ..stack import materialize


class MaterializeStackStep:
    step_id = "materialize-stack"
    policy = Policy.FATAL

    def enabled(self, config: ConfigSnapshot) -> bool:
        return True

    def run(self, ctx: StepContext, config: ConfigSnapshot) -> StepResult:
        materialize(ctx, config)
        return StepResult(config=config)
