"""Tests for the stage runner's ordering and failure policies."""

from __future__ import annotations

import dataclasses
from typing import List

import pytest

from fleet_bootstrap.errors import CommandError, DegradedOptionalFeature, FatalStageError
from fleet_bootstrap.main import build_steps
from fleet_bootstrap.params import ConfigSnapshot
from fleet_bootstrap.pipeline import Policy, StepContext, StepResult, run_pipeline


class RecordingStep:
    def __init__(self, step_id: str, log: List[str], *, policy: Policy = Policy.FATAL, enabled: bool = True,
                 error: Exception | None = None, tenant: str | None = None) -> None:
        self.step_id = step_id
        self.policy = policy
        self._enabled = enabled
        self._log = log
        self._error = error
        self._tenant = tenant

    def enabled(self, config: ConfigSnapshot) -> bool:
        return self._enabled

    def run(self, ctx: StepContext, config: ConfigSnapshot) -> StepResult:
        self._log.append(self.step_id)
        if self._error is not None:
            raise self._error
        if self._tenant is not None:
            config = dataclasses.replace(config, tenant=self._tenant)
        return StepResult(config=config)


def test_default_stage_order() -> None:
    assert [s.step_id for s in build_steps()] == [
        "preflight-harden",
        "install-runtime",
        "install-mesh-agent",
        "enroll",
        "materialize-stack",
        "launch-stack",
        "install-auto-update",
        "install-heartbeat",
    ]


def test_default_stage_policies() -> None:
    policies = {s.step_id: s.policy for s in build_steps()}

    assert policies["preflight-harden"] is Policy.FATAL
    assert policies["install-runtime"] is Policy.FATAL
    assert policies["materialize-stack"] is Policy.FATAL
    assert policies["launch-stack"] is Policy.FATAL
    assert policies["enroll"] is Policy.BEST_EFFORT
    assert policies["install-auto-update"] is Policy.BEST_EFFORT
    assert policies["install-heartbeat"] is Policy.BEST_EFFORT


def test_optional_stages_follow_configuration() -> None:
    steps = {s.step_id: s for s in build_steps()}
    bare = ConfigSnapshot(enable_mesh=False, enable_auto_update=False)

    assert not steps["install-mesh-agent"].enabled(bare)
    assert not steps["enroll"].enabled(bare)
    assert not steps["install-auto-update"].enabled(bare)
    assert not steps["install-heartbeat"].enabled(bare)
    assert steps["enroll"].enabled(ConfigSnapshot(api_base="https://hq.example.com"))


def test_runs_in_order_and_threads_config(ctx: StepContext) -> None:
    log: List[str] = []
    steps = [
        RecordingStep("a", log, tenant="changed"),
        RecordingStep("b", log, enabled=False),
        RecordingStep("c", log),
    ]

    result = run_pipeline(ctx=ctx, config=ConfigSnapshot(), steps=steps)

    assert log == ["a", "c"]
    assert result.ran_steps == ["a", "c"]
    assert result.skipped_steps == ["b"]
    assert result.config.tenant == "changed"
    assert result.warnings == []


def test_fatal_failure_stops_the_pipeline(ctx: StepContext) -> None:
    log: List[str] = []
    steps = [
        RecordingStep("a", log),
        RecordingStep("b", log, error=CommandError(["docker"], 7, "nope")),
        RecordingStep("c", log),
    ]

    with pytest.raises(FatalStageError) as excinfo:
        run_pipeline(ctx=ctx, config=ConfigSnapshot(), steps=steps)

    assert log == ["a", "b"]
    assert excinfo.value.step_id == "b"
    assert excinfo.value.exit_code == 7
    assert excinfo.value.ran_steps == ["a"]
    assert "b" in str(excinfo.value)


def test_fatal_failure_without_return_code_exits_1(ctx: StepContext) -> None:
    steps = [RecordingStep("a", [], error=RuntimeError("boom"))]

    with pytest.raises(FatalStageError) as excinfo:
        run_pipeline(ctx=ctx, config=ConfigSnapshot(), steps=steps)

    assert excinfo.value.exit_code == 1


def test_best_effort_failure_keeps_pre_stage_config(ctx: StepContext) -> None:
    log: List[str] = []
    steps = [
        RecordingStep("a", log, policy=Policy.BEST_EFFORT, error=RuntimeError("offline")),
        RecordingStep("b", log),
    ]

    result = run_pipeline(ctx=ctx, config=ConfigSnapshot(tenant="t"), steps=steps)

    assert log == ["a", "b"]
    assert result.config.tenant == "t"
    assert len(result.warnings) == 1
    warning = result.warnings[0]
    assert isinstance(warning, DegradedOptionalFeature)
    assert warning.step_id == "a"
    assert "offline" in str(warning)
    assert result.summary()["warnings"] == [str(warning)]
