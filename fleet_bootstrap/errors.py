from __future__ import annotations

from typing import Optional, Sequence

from .lib.redact import redact_argv


class BootstrapError(Exception):
    """Base class for errors that abort a bootstrap run."""

    exit_code = 1


class InvalidArgument(BootstrapError):
    """Malformed CLI input or config file; raised before any side effect."""


class PrivilegeError(BootstrapError):
    pass


class CommandError(RuntimeError):
    """An external command exited non-zero."""

    def __init__(self, argv: Sequence[str], returncode: int, stderr: str = "") -> None:
        self.argv = list(argv)
        self.returncode = returncode
        self.stderr = stderr
        msg = f"Command failed ({returncode}): {' '.join(redact_argv(self.argv))}"
        if stderr.strip():
            msg += f"\n{stderr.strip()}"
        super().__init__(msg)


class FatalStageError(BootstrapError):
    """A fatal-policy stage failed. The remaining pipeline is not run."""

    def __init__(
        self,
        step_id: str,
        cause: BaseException,
        *,
        ran_steps: Sequence[str] = (),
        warnings: Sequence["BootstrapWarning"] = (),
    ) -> None:
        self.step_id = step_id
        self.cause = cause
        self.ran_steps = list(ran_steps)
        self.warnings = list(warnings)
        super().__init__(f"Stage {step_id} failed: {cause}")

    @property
    def exit_code(self) -> int:  # type: ignore[override]
        if isinstance(self.cause, CommandError) and self.cause.returncode > 0:
            return self.cause.returncode
        return 1


class BootstrapWarning(Exception):
    """A degraded condition. Returned as a value, never raised out of the pipeline."""


class DegradedEnrollment(BootstrapWarning):
    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(f"Enrollment degraded: {reason}")


class DegradedOptionalFeature(BootstrapWarning):
    def __init__(self, step_id: str, reason: str, feature: Optional[str] = None) -> None:
        self.step_id = step_id
        self.reason = reason
        self.feature = feature or step_id
        super().__init__(f"{self.feature} unavailable ({step_id}): {reason}")
