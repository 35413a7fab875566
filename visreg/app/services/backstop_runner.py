"""BackstopJS CLI invocation and result classification.

`run_backstop` only launches the CLI and captures its output. Whether a
non-zero exit means "visual differences found" or "the tool broke" is decided
by one of the named strategies in `FAILURE_POLICIES`:

- `exit_code`: every non-zero exit is a differences-found outcome.
- `report_marker`: a non-zero `test` run counts as differences found only when
  the CLI got far enough to print its report marker; everything else is an
  operational failure.
"""

from __future__ import annotations

import enum
import logging
import re
import shlex
import subprocess
from dataclasses import dataclass
from typing import Callable, Literal

from ..settings import Settings
from .work_paths import WorkPaths

logger = logging.getLogger(__name__)

BackstopCommand = Literal["reference", "test"]


class BackstopError(RuntimeError):
    """The CLI could not be launched or failed operationally."""

    def __init__(self, message: str, *, stderr: str = "") -> None:
        super().__init__(message)
        self.stderr = stderr


class RunOutcome(str, enum.Enum):
    SUCCESS = "success"
    DIFFERENCES_FOUND = "differences_found"
    OPERATIONAL_FAILURE = "operational_failure"


@dataclass(frozen=True)
class BackstopRunResult:
    exit_code: int
    stdout: str
    stderr: str


@dataclass(frozen=True)
class Classification:
    outcome: RunOutcome
    detail: str = ""

    @property
    def has_differences(self) -> bool:
        return self.outcome is RunOutcome.DIFFERENCES_FOUND


def classify_by_exit_code(*, command: str, result: BackstopRunResult, marker: str) -> Classification:  # noqa: ARG001
    if result.exit_code == 0:
        return Classification(RunOutcome.SUCCESS)
    return Classification(RunOutcome.DIFFERENCES_FOUND)


def classify_by_report_marker(*, command: str, result: BackstopRunResult, marker: str) -> Classification:
    if result.exit_code == 0:
        return Classification(RunOutcome.SUCCESS)
    if command == "test" and marker and marker in result.stdout:
        return Classification(RunOutcome.DIFFERENCES_FOUND)
    return Classification(
        RunOutcome.OPERATIONAL_FAILURE,
        detail=f"BackstopJS failed with code {result.exit_code}: {result.stderr}",
    )


FAILURE_POLICIES: dict[str, Callable[..., Classification]] = {
    "exit_code": classify_by_exit_code,
    "report_marker": classify_by_report_marker,
}


def classify_run(*, command: str, result: BackstopRunResult, settings: Settings) -> Classification:
    policy = FAILURE_POLICIES[settings.failure_policy]
    return policy(command=command, result=result, marker=settings.report_marker)


def filter_pattern(test_case: str) -> str:
    # BackstopJS compiles --filter into a RegExp matched against scenario labels.
    return f"^{re.escape(test_case)}$"


def build_command(*, command: BackstopCommand, test_case: str, settings: Settings, paths: WorkPaths) -> list[str]:
    return [
        *shlex.split(settings.backstop_command),
        command,
        f"--config={paths.config_path}",
        f"--filter={filter_pattern(test_case)}",
    ]


def run_backstop(
    *,
    command: BackstopCommand,
    test_case: str,
    settings: Settings,
    paths: WorkPaths,
) -> BackstopRunResult:
    """Run the CLI to completion and buffer both output streams.

    There is no timeout: a hung CLI blocks the caller.

    Raises:
        BackstopError: When the process cannot be spawned.
    """

    cmd = build_command(command=command, test_case=test_case, settings=settings, paths=paths)
    logger.info("backstop %s started: test_case=%s", command, test_case)
    try:
        completed = subprocess.run(
            cmd,
            cwd=str(paths.root),
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            check=False,
        )
    except OSError as exc:
        raise BackstopError(f"backstop_spawn_failed: {type(exc).__name__}: {exc}") from exc

    result = BackstopRunResult(
        exit_code=int(completed.returncode),
        stdout=completed.stdout.decode("utf-8", errors="replace"),
        stderr=completed.stderr.decode("utf-8", errors="replace"),
    )
    logger.info("backstop %s finished: test_case=%s exit_code=%s", command, test_case, result.exit_code)
    return result
