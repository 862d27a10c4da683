from __future__ import annotations

import dataclasses
import functools
import logging
import os
import sys
from typing import Optional, Sequence

import requests

from .errors import FatalStageError, InvalidArgument, PrivilegeError
from .identity import DeviceIdentity, derive_identity
from .lib.command import Runner, run_cmd
from .lib.env import PATHS, Paths
from .lib.net import detect_lan_ip, detect_mesh_ip
from .logging_utils import configure_logging
from .params import ConfigSnapshot, build_parser, load_defaults, parse_cli, resolve
from .pipeline import PipelineResult, Step, StepContext, run_pipeline
from .state_store import build_run_record, save_state
from .steps import (
    EnrollStep,
    InstallAutoUpdateStep,
    InstallHeartbeatStep,
    InstallMeshAgentStep,
    InstallRuntimeStep,
    LaunchStackStep,
    MaterializeStackStep,
    PreflightHardenStep,
)

logger = logging.getLogger(__name__)


def build_steps() -> list[Step]:
    return [
        PreflightHardenStep(),
        InstallRuntimeStep(),
        InstallMeshAgentStep(),
        EnrollStep(),
        MaterializeStackStep(),
        LaunchStackStep(),
        InstallAutoUpdateStep(),
        InstallHeartbeatStep(),
    ]


def require_root() -> None:
    if os.geteuid() != 0:
        raise PrivilegeError("fleet-bootstrap must run as root (use sudo)")


def run(
    *,
    config: ConfigSnapshot,
    identity: DeviceIdentity,
    paths: Paths = PATHS,
    runner: Runner = run_cmd,
    session: Optional[requests.Session] = None,
    state_path: Optional[str] = None,
    dry_run: bool = False,
    steps: Optional[Sequence[Step]] = None,
) -> PipelineResult:
    """Run the provisioning pipeline and write the run record."""

    if session is None:
        with requests.Session() as owned:
            return run(config=config, identity=identity, paths=paths, runner=runner, session=owned,
                       state_path=state_path, dry_run=dry_run, steps=steps)

    ctx = StepContext(identity=identity, paths=paths, runner=runner, session=session, dry_run=dry_run)
    record_path = state_path or str(paths.resolve(paths.state_default))

    result: Optional[PipelineResult] = None
    error: Optional[BaseException] = None
    try:
        result = run_pipeline(ctx=ctx, config=config, steps=steps if steps is not None else build_steps())
        return result
    except Exception as e:
        error = e
        raise
    finally:
        record = build_run_record(
            identity=identity,
            config=result.config if result is not None else config,
            result=result,
            error=error,
        )
        if dry_run:
            logger.info("Would write run record to %s", record_path)
        else:
            try:
                save_state(record_path, record)
            except OSError as e:
                logger.warning("Could not write run record to %s: %s", record_path, e)


def log_summary(
    result: PipelineResult,
    identity: DeviceIdentity,
    paths: Paths,
    lan_ip: str,
    mesh_ip: Optional[str] = None,
) -> None:
    logger.info("=======================================================")
    logger.info("Done. Hostname: %s", identity.hostname)
    logger.info("  LAN IP: %s", lan_ip or "unknown")
    if mesh_ip is not None:
        logger.info("  Mesh IP: %s", mesh_ip or "not connected")
    logger.info("  Admin UI: http://%s/admin", lan_ip or "<lan-ip>")
    logger.info("  Admin password: see %s", str(paths.env_file))
    if result.warnings:
        logger.warning("Completed with %d warning(s):", len(result.warnings))
        for w in result.warnings:
            logger.warning("  - %s", w)
    logger.info("=======================================================")


def main(argv: Optional[list[str]] = None, *, runner: Runner = run_cmd, paths: Paths = PATHS) -> int:
    try:
        args = parse_cli(argv)
        config = resolve(load_defaults(args.config), args)
    except InvalidArgument as e:
        parser = build_parser()
        parser.print_usage(sys.stderr)
        print(f"{parser.prog}: error: {e}", file=sys.stderr)
        return 1

    if not args.dry_run:
        try:
            require_root()
        except PrivilegeError as e:
            print(str(e), file=sys.stderr)
            return 1

    if args.workdir:
        paths = dataclasses.replace(paths, workdir=args.workdir)

    configure_logging(log_path=args.log or str(paths.resolve(paths.log_default)), verbose=bool(args.verbose))
    identity = derive_identity(host_prefix=config.host_prefix)

    try:
        with requests.Session() as session:
            result = run(
                config=config,
                identity=identity,
                paths=paths,
                runner=runner,
                session=session,
                state_path=args.state,
                dry_run=bool(args.dry_run),
            )
    except FatalStageError as e:
        logger.error("Bootstrap aborted: %s", e)
        print(f"fleet-bootstrap: {e}", file=sys.stderr)
        return e.exit_code

    host_run = functools.partial(runner, dry_run=bool(args.dry_run))
    mesh_ip = detect_mesh_ip(host_run) if result.config.enable_mesh else None
    log_summary(result, identity, paths, detect_lan_ip(host_run), mesh_ip)
    return 0
