"""Shared fixtures: a recording command runner, a temp device root and a fake HTTP session."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

import pytest
import requests

from fleet_bootstrap.errors import CommandError
from fleet_bootstrap.identity import DeviceIdentity
from fleet_bootstrap.lib.command import CmdResult
from fleet_bootstrap.lib.env import Paths
from fleet_bootstrap.pipeline import StepContext

SERIAL = "10000000abcdef01"


class FakeRunner:
    """Stands in for run_cmd. Records argv and simulates the few commands whose output matters."""

    def __init__(self, *, lan_ip: str = "192.168.1.50", mesh_ip: str = "", installed: Sequence[str] = ()) -> None:
        self.calls: List[List[str]] = []
        self.cwds: List[Optional[str]] = []
        self.lan_ip = lan_ip
        self.mesh_ip = mesh_ip
        self.installed = set(installed)
        self.crontab: Optional[str] = None
        self.failures: Dict[Tuple[str, ...], int] = {}

    def fail(self, *prefix: str, returncode: int = 1) -> None:
        self.failures[tuple(prefix)] = returncode

    def __call__(
        self,
        argv: Sequence[str],
        *,
        check: bool = True,
        env: Mapping[str, str] | None = None,
        cwd: str | None = None,
        input_text: str | None = None,
        dry_run: bool = False,
    ) -> CmdResult:
        argv = list(argv)
        self.calls.append(argv)
        self.cwds.append(cwd)
        rc, out, err = 0, "", ""

        for prefix, code in self.failures.items():
            if tuple(argv[: len(prefix)]) == prefix:
                rc, err = code, "simulated failure"

        if rc == 0 and not dry_run:
            if argv[:2] == ["hostname", "-I"]:
                out = f"{self.lan_ip} fd00::1\n"
            elif argv[:2] == ["crontab", "-l"]:
                if self.crontab is None:
                    rc, err = 1, "no crontab for root\n"
                else:
                    out = self.crontab
            elif argv[:3] == ["tailscale", "ip", "-4"]:
                out = f"{self.mesh_ip}\n" if self.mesh_ip else ""
            elif argv[:2] == ["crontab", "-"]:
                self.crontab = input_text
            elif argv[:2] == ["sh", "-c"] and argv[2].startswith("command -v "):
                rc = 0 if argv[2].split()[-1] in self.installed else 1
            elif argv[:2] == ["git", "clone"]:
                target = Path(argv[-1])
                target.mkdir(parents=True)
                (target / "docker-compose.yml").write_text(f"# cloned {argv[-2]} @ {argv[4]}\n", encoding="utf-8")

        if check and rc != 0:
            raise CommandError(argv, rc, err)
        return CmdResult(argv=argv, returncode=rc, stdout=out, stderr=err)

    def ran(self, *prefix: str) -> bool:
        return self.count(*prefix) > 0

    def count(self, *prefix: str) -> int:
        return sum(1 for c in self.calls if tuple(c[: len(prefix)]) == prefix)

    def index(self, *prefix: str) -> int:
        for i, c in enumerate(self.calls):
            if tuple(c[: len(prefix)]) == prefix:
                return i
        raise ValueError(prefix)


class FakeSession:
    """Minimal requests.Session replacement returning canned responses."""

    def __init__(self, response: Optional[requests.Response] = None, exc: Optional[Exception] = None) -> None:
        self.response = response
        self.exc = exc
        self.calls: List[Dict[str, Any]] = []
        self.closed = False

    def __enter__(self) -> "FakeSession":
        return self

    def __exit__(self, *exc: Any) -> None:
        self.close()

    def close(self) -> None:
        self.closed = True

    def post(self, url: str, json: Any = None, timeout: Optional[float] = None, **kwargs: Any) -> requests.Response:
        self.calls.append({"url": url, "json": json, "timeout": timeout})
        if self.exc is not None:
            raise self.exc
        assert self.response is not None
        return self.response


def make_response(status: int, body: Any = None) -> requests.Response:
    r = requests.Response()
    r.status_code = status
    r.encoding = "utf-8"
    if body is None:
        r._content = b""
    elif isinstance(body, (bytes, str)):
        r._content = body.encode("utf-8") if isinstance(body, str) else body
    else:
        r._content = json.dumps(body).encode("utf-8")
    return r


@pytest.fixture
def runner() -> FakeRunner:
    return FakeRunner()


@pytest.fixture
def paths(tmp_path: Path) -> Paths:
    root = tmp_path / "root"
    root.mkdir()
    return Paths(root=str(root))


@pytest.fixture
def identity() -> DeviceIdentity:
    return DeviceIdentity(device_id=SERIAL, hostname=f"edge-{SERIAL}", serial=SERIAL)


@pytest.fixture
def ctx(identity: DeviceIdentity, paths: Paths, runner: FakeRunner) -> StepContext:
    return StepContext(identity=identity, paths=paths, runner=runner)
