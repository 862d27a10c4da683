from __future__ import annotations

import argparse
import dataclasses
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Mapping, NoReturn, Optional, Sequence, Tuple, Union

from .errors import DegradedEnrollment, InvalidArgument

logger = logging.getLogger(__name__)


DEFAULT_CONFIG_PATH = "/etc/fleet-bootstrap/config.yaml"


@dataclass(frozen=True)
class ConfigSnapshot:
    """Resolved configuration handed from stage to stage.

    Stages never mutate it; an updated copy is produced with
    ``dataclasses.replace`` and returned to the pipeline.
    """

    tenant: str = "default"
    channel: str = "stable"
    api_base: Optional[str] = None
    compose_url: Optional[str] = None
    git_ref: str = "main"
    auth_key: str = ""
    host_prefix: str = "edge"
    enable_mesh: bool = True
    enable_firewall: bool = True
    enable_auto_update: bool = True
    timezone: str = "Europe/Berlin"
    locale: str = "de_DE.UTF-8"
    heartbeat_schedule: str = "*/5 * * * *"
    # Raw env-file fragment; only enrollment can set it.
    device_env: str = ""

    def redacted(self) -> Dict[str, Any]:
        data = dataclasses.asdict(self)
        if data.get("auth_key"):
            data["auth_key"] = "***"
        return data


_BOOL_FIELDS = {"enable_mesh", "enable_firewall", "enable_auto_update"}
_OPTIONAL_FIELDS = {"api_base", "compose_url"}
# Fields an operator may set (built-in defaults, config file, CLI).
OPERATOR_FIELDS = tuple(f.name for f in dataclasses.fields(ConfigSnapshot) if f.name != "device_env")
# Fields the enrollment response may override.
ENROLLMENT_FIELDS = ("compose_url", "git_ref", "device_env")

DEFAULTS: Dict[str, Any] = {
    name: getattr(ConfigSnapshot(), name) for name in OPERATOR_FIELDS
}


class _Parser(argparse.ArgumentParser):
    """ArgumentParser that raises InvalidArgument instead of exiting with 2."""

    def error(self, message: str) -> NoReturn:
        raise InvalidArgument(message)


def build_parser() -> argparse.ArgumentParser:
    p = _Parser(
        prog="fleet-bootstrap",
        allow_abbrev=False,
        description="Provision this device into the fleet (run as root).",
        epilog=(
            "example: fleet-bootstrap --auth-key tskey-abc --tenant customer1 "
            "--api https://hq.example.com/api "
            "--compose https://github.com/org/prod-stack.git --git-ref main"
        ),
    )
    # Snapshot fields use SUPPRESS so only flags actually given show up in the namespace.
    s = argparse.SUPPRESS
    p.add_argument("--auth-key", dest="auth_key", default=s, help="Mesh-network auth key")
    p.add_argument("--tenant", default=s, help="Tenant / customer tag (default: default)")
    p.add_argument("--api", dest="api_base", default=s, help="Fleet API base URL (enables enrollment and heartbeat)")
    p.add_argument("--compose", dest="compose_url", default=s, help="Git URL of the workload repository")
    p.add_argument("--git-ref", dest="git_ref", default=s, help="Branch or tag of the workload repository (default: main)")
    p.add_argument("--channel", default=s, help="Rollout channel, e.g. stable|beta (default: stable)")
    p.add_argument("--no-tailscale", "--no-mesh", dest="enable_mesh", action="store_false", default=s)
    p.add_argument("--no-firewall", dest="enable_firewall", action="store_false", default=s)
    p.add_argument("--no-watchtower", "--no-auto-update", dest="enable_auto_update", action="store_false", default=s)
    p.add_argument("--tz", dest="timezone", default=s, help="Timezone (default: Europe/Berlin)")
    p.add_argument("--locale", default=s, help="Locale (default: de_DE.UTF-8)")
    p.add_argument("--host-prefix", dest="host_prefix", default=s, help="Hostname prefix (default: edge)")
    p.add_argument("--heartbeat-cron", dest="heartbeat_schedule", default=s, help="Heartbeat cron schedule")

    p.add_argument("--config", default=DEFAULT_CONFIG_PATH, help="Optional YAML file overriding built-in defaults")
    p.add_argument("--state", default=None, help="Path to the run record (json|yaml)")
    p.add_argument("--log", default=None, help="Path to the bootstrap log")
    p.add_argument("--workdir", default=None, help="Workload directory (default: /opt/product)")
    p.add_argument("--dry-run", action="store_true", help="Log commands and writes without executing them")
    p.add_argument("-v", "--verbose", action="store_true", help="Show debug output on the console")
    return p


def parse_cli(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    return build_parser().parse_args(argv)


def load_defaults(path: Optional[str] = None) -> Dict[str, Any]:
    """Built-in defaults overlaid with the optional YAML config file."""

    defaults = dict(DEFAULTS)
    if not path:
        return defaults

    p = Path(path)
    if not p.exists():
        return defaults

    import yaml

    try:
        raw = yaml.safe_load(p.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise InvalidArgument(f"{path}: invalid YAML: {e}") from e
    if not isinstance(raw, dict):
        raise InvalidArgument(f"{path}: config file must contain a mapping")

    unknown = sorted(set(raw) - set(OPERATOR_FIELDS))
    if unknown:
        raise InvalidArgument(f"{path}: unknown config key(s): {', '.join(unknown)}")

    for key, value in raw.items():
        defaults[key] = _check_type(key, value, source=path)
    logger.info("Loaded defaults from %s (%s)", path, ",".join(sorted(raw)))
    return defaults


def _check_type(key: str, value: Any, *, source: str) -> Any:
    if key in _BOOL_FIELDS:
        if not isinstance(value, bool):
            raise InvalidArgument(f"{source}: {key} must be true or false")
        return value
    if value is None and key in _OPTIONAL_FIELDS:
        return None
    if not isinstance(value, str):
        raise InvalidArgument(f"{source}: {key} must be a string")
    return value


def resolve(
    defaults: Mapping[str, Any],
    cli_args: Union[argparse.Namespace, Sequence[str]],
) -> ConfigSnapshot:
    """Merge defaults with CLI overrides into a snapshot.

    Pure: no side effects. Repeated flags resolve to the last occurrence.
    Raises InvalidArgument on unknown flags or missing values.
    """

    ns = cli_args if isinstance(cli_args, argparse.Namespace) else parse_cli(list(cli_args))

    values: Dict[str, Any] = {}
    for name in OPERATOR_FIELDS:
        if name in defaults:
            values[name] = defaults[name]
    for name in OPERATOR_FIELDS:
        if hasattr(ns, name):
            values[name] = getattr(ns, name)

    for name in _OPTIONAL_FIELDS:
        if isinstance(values.get(name), str):
            values[name] = values[name].strip() or None

    if not str(values.get("host_prefix") or "").strip():
        raise InvalidArgument("host prefix must not be empty")

    return ConfigSnapshot(**values)


def apply_enrollment(config: ConfigSnapshot, response: Any) -> Tuple[ConfigSnapshot, List[DegradedEnrollment]]:
    """Merge an enrollment response into ``config``.

    Only compose_url, git_ref and device_env may change; absent, empty or
    malformed fields leave the snapshot untouched. Never raises: every
    malformed part is reported as a DegradedEnrollment warning instead.
    """

    warnings: List[DegradedEnrollment] = []
    if response is None:
        return config, warnings
    if not isinstance(response, Mapping):
        warnings.append(DegradedEnrollment(f"expected an object, got {type(response).__name__}"))
        return config, warnings
    if not response:
        logger.info("Enrollment response carried no overrides")
        return config, warnings

    ignored = sorted(str(k) for k in response if k not in ENROLLMENT_FIELDS)
    if ignored:
        warnings.append(DegradedEnrollment(f"ignored field(s) that may not be overridden: {', '.join(ignored)}"))

    changes: Dict[str, str] = {}
    for key in ENROLLMENT_FIELDS:
        value = response.get(key)
        if value is None:
            continue
        if not isinstance(value, str):
            warnings.append(DegradedEnrollment(f"ignored {key}: expected a string, got {type(value).__name__}"))
            continue
        if key != "device_env":
            value = value.strip()
        if not value.strip():
            continue
        changes[key] = value

    if not changes:
        return config, warnings

    logger.info("Enrollment overrides: %s", ",".join(sorted(changes)))
    return dataclasses.replace(config, **changes), warnings

