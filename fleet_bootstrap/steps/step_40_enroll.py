from __future__ import annotations

import logging

from ..enrollment import enroll
from ..params import ConfigSnapshot, apply_enrollment
from ..pipeline import Policy, StepContext, StepResult

logger = logging.getLogger(__name__)


class EnrollStep:
    step_id = "enroll"
    policy = Policy.BEST_EFFORT

    def enabled(self, config: ConfigSnapshot) -> bool:
        return bool(config.api_base)

    def run(self, ctx: StepContext, config: ConfigSnapshot) -> StepResult:
        if not config.api_base:
            return StepResult(config=config)
        if ctx.dry_run:
            logger.info("Would enroll %s at %s", ctx.identity.device_id, config.api_base)
            return StepResult(config=config)
        result = enroll(config.api_base, ctx.identity, config.tenant, config.channel, session=ctx.session)
        if result.error is not None:
            return StepResult(config=config, warnings=(result.error,))
        merged, warnings = apply_enrollment(config, result.response)
        return StepResult(config=merged, warnings=tuple(warnings))
