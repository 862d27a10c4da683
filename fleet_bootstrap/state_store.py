from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional

from . import __version__
from .errors import FatalStageError
from .identity import DeviceIdentity
from .params import ConfigSnapshot
from .pipeline import PipelineResult

logger = logging.getLogger(__name__)


def _detect_format(path: Path) -> str:
    ext = path.suffix.lower().lstrip(".")
    if ext in {"json", "yaml", "yml"}:
        return ext
    # Default to JSON for unknown extensions.
    return "json"


def save_state(path: str, state: Dict[str, Any]) -> None:
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)

    if _detect_format(p) == "json":
        p.write_text(json.dumps(state, indent=2, sort_keys=True) + "\n", encoding="utf-8")
    else:
        import yaml

        p.write_text(yaml.safe_dump(state, sort_keys=False) + "\n", encoding="utf-8")


def build_run_record(
    *,
    identity: Optional[DeviceIdentity],
    config: Optional[ConfigSnapshot],
    result: Optional[PipelineResult] = None,
    error: Optional[BaseException] = None,
    failed_step: Optional[str] = None,
) -> Dict[str, Any]:
    """Operator-facing record of one run. Never read back into configuration."""

    record: Dict[str, Any] = {
        "version": __version__,
        "device": None,
        "config": config.redacted() if config is not None else None,
        "execution": {
            "ran_steps": [],
            "skipped_steps": [],
            "warnings": [],
            "errors": [],
            "finished_at": datetime.now(timezone.utc).isoformat(timespec="seconds"),
        },
    }
    if identity is not None:
        record["device"] = {
            "device_id": identity.device_id,
            "hostname": identity.hostname,
            "serial": identity.serial,
        }
    if result is not None:
        record["execution"].update(result.summary())
    if isinstance(error, FatalStageError):
        record["execution"]["ran_steps"] = list(error.ran_steps)
        record["execution"]["warnings"] = [str(w) for w in error.warnings]
        failed_step = failed_step or error.step_id
    if error is not None:
        record["execution"]["errors"].append({"step": failed_step, "error": str(error)})
    return record
