"""Tests for the operator-facing run record."""

from __future__ import annotations

import json
from pathlib import Path

import yaml

from fleet_bootstrap.errors import CommandError, DegradedEnrollment, FatalStageError
from fleet_bootstrap.identity import DeviceIdentity
from fleet_bootstrap.params import ConfigSnapshot
from fleet_bootstrap.pipeline import PipelineResult
from fleet_bootstrap.state_store import build_run_record, save_state


def test_success_record(identity: DeviceIdentity) -> None:
    config = ConfigSnapshot(auth_key="tskey-x")
    result = PipelineResult(
        config=config,
        ran_steps=["preflight-harden", "enroll"],
        skipped_steps=["install-heartbeat"],
        warnings=[DegradedEnrollment("timed out")],
    )

    record = build_run_record(identity=identity, config=config, result=result)

    assert record["device"]["hostname"] == identity.hostname
    assert record["config"]["auth_key"] == "***"
    assert record["execution"]["ran_steps"] == ["preflight-harden", "enroll"]
    assert record["execution"]["skipped_steps"] == ["install-heartbeat"]
    assert record["execution"]["warnings"] == ["Enrollment degraded: timed out"]
    assert record["execution"]["errors"] == []


def test_failure_record_keeps_partial_progress(identity: DeviceIdentity) -> None:
    error = FatalStageError("install-runtime", CommandError(["systemctl"], 5), ran_steps=["preflight-harden"])

    record = build_run_record(identity=identity, config=ConfigSnapshot(), error=error)

    assert record["execution"]["ran_steps"] == ["preflight-harden"]
    assert record["execution"]["errors"][0]["step"] == "install-runtime"


def test_save_state_picks_format_by_extension(tmp_path: Path, identity: DeviceIdentity) -> None:
    record = build_run_record(identity=identity, config=ConfigSnapshot())

    save_state(str(tmp_path / "a" / "state.json"), record)
    save_state(str(tmp_path / "b" / "state.yaml"), record)

    assert json.loads((tmp_path / "a" / "state.json").read_text(encoding="utf-8")) == record
    assert yaml.safe_load((tmp_path / "b" / "state.yaml").read_text(encoding="utf-8")) == record
