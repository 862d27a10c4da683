from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, List, Mapping, Optional, Protocol, Sequence, Tuple

import requests

from .errors import BootstrapWarning, DegradedOptionalFeature, FatalStageError
from .identity import DeviceIdentity
from .lib.command import CmdResult, Runner, run_cmd
from .lib.env import PATHS, Paths
from .params import ConfigSnapshot

logger = logging.getLogger(__name__)


class Policy(enum.Enum):
    FATAL = "fatal"
    BEST_EFFORT = "best-effort"


@dataclass(frozen=True)
class StepContext:
    """Read-only collaborators shared by all stages of one run."""

    identity: DeviceIdentity
    paths: Paths = PATHS
    runner: Runner = run_cmd
    session: Optional[requests.Session] = None
    dry_run: bool = False

    def run(
        self,
        argv: Sequence[str],
        *,
        check: bool = True,
        env: Mapping[str, str] | None = None,
        cwd: str | None = None,
        input_text: str | None = None,
    ) -> CmdResult:
        return self.runner(argv, check=check, env=env, cwd=cwd, input_text=input_text, dry_run=self.dry_run)

    def path(self, path: str) -> Path:
        return self.paths.resolve(path)


@dataclass(frozen=True)
class StepResult:
    config: ConfigSnapshot
    warnings: Tuple[BootstrapWarning, ...] = ()


class Step(Protocol):
    """A single idempotent stage."""

    step_id: str
    policy: Policy

    def enabled(self, config: ConfigSnapshot) -> bool:
        ...

    def run(self, ctx: StepContext, config: ConfigSnapshot) -> StepResult:
        ...


@dataclass(frozen=True)
class PipelineResult:
    config: ConfigSnapshot
    ran_steps: List[str]
    skipped_steps: List[str]
    warnings: List[BootstrapWarning] = field(default_factory=list)

    def summary(self) -> dict[str, Any]:
        return {
            "ran_steps": list(self.ran_steps),
            "skipped_steps": list(self.skipped_steps),
            "warnings": [str(w) for w in self.warnings],
        }


def run_pipeline(
    *,
    ctx: StepContext,
    config: ConfigSnapshot,
    steps: Sequence[Step],
) -> PipelineResult:
    """Run every stage in order, applying each stage's failure policy.

    Fatal stages raise FatalStageError and stop the run. Best-effort stages
    that fail contribute a warning and leave the snapshot as it was.
    """

    ran: List[str] = []
    skipped: List[str] = []
    warnings: List[BootstrapWarning] = []
    total = len(steps)

    for i, step in enumerate(steps, start=1):
        if not step.enabled(config):
            logger.info("[%d/%d] Skipping %s (disabled by configuration)", i, total, step.step_id)
            skipped.append(step.step_id)
            continue

        logger.info("[%d/%d] Running %s", i, total, step.step_id)
        try:
            result = step.run(ctx, config)
        except Exception as e:
            if step.policy is Policy.FATAL:
                logger.error("Stage %s failed: %s", step.step_id, e)
                raise FatalStageError(step.step_id, e, ran_steps=ran, warnings=warnings) from e
            warning = DegradedOptionalFeature(step.step_id, str(e))
            logger.warning("%s", warning)
            warnings.append(warning)
            ran.append(step.step_id)
            continue

        for w in result.warnings:
            logger.warning("%s", w)
        warnings.extend(result.warnings)
        config = result.config
        ran.append(step.step_id)

    return PipelineResult(config=config, ran_steps=ran, skipped_steps=skipped, warnings=warnings)
