from __future__ import annotations

# Upload -> config -> CLI -> diff lookup pipeline.
#
# Locking: requests for the same test case are serialized by `KeyedLocks`;
# config persistence and the CLI run share one process-wide lock because the
# config file path is the same for every test case.

import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable

from ..settings import Settings
from .backstop_config import build_config, persist_config
from .backstop_runner import BackstopCommand, BackstopError, BackstopRunResult, Classification, RunOutcome, classify_run, run_backstop
from .diff_locator import DiffArtifact, locate_diff
from .image_store import ImageRecord, ImageStore, Role, image_key
from .locks import KeyedLocks
from .work_paths import WorkPaths

logger = logging.getLogger(__name__)

Runner = Callable[..., BackstopRunResult]


class MissingReferenceError(Exception):
    def __init__(self, test_case: str) -> None:
        super().__init__(
            f"No reference image found for test case: {test_case}. Please upload reference image first."
        )
        self.test_case = test_case


@dataclass(frozen=True)
class SubmissionResult:
    test_case: str
    mode: Role
    passed: bool = True
    diff: DiffArtifact | None = None

    @property
    def verdict(self) -> str:
        return "passed" if self.passed else "failed"


class ComparisonService:
    def __init__(
        self,
        *,
        store: ImageStore,
        settings: Settings,
        paths: WorkPaths,
        runner: Runner = run_backstop,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.store = store
        self.settings = settings
        self.paths = paths
        self.runner = runner
        self.sleep = sleep
        self.locks = KeyedLocks()
        self._run_lock = threading.Lock()

    def get_image(self, test_case: str, role: str) -> ImageRecord | None:
        return self.store.get(image_key(test_case, role))

    def has_reference(self, test_case: str) -> bool:
        return self.store.has(image_key(test_case, "reference"))

    def submit(self, *, test_case: str, mode: Role, record: ImageRecord) -> SubmissionResult:
        """Record an upload and run the matching BackstopJS command.

        Raises:
            MissingReferenceError: Current upload without a reference.
            BackstopError: The CLI could not run or failed operationally.
        """

        with self.locks.hold(test_case):
            self.store.put(image_key(test_case, mode), record)
            if mode == "reference":
                self._run(command="reference", test_case=test_case, capture_mode="reference")
                return SubmissionResult(test_case=test_case, mode="reference")

            if not self.has_reference(test_case):
                raise MissingReferenceError(test_case)

            classification = self._run(command="test", test_case=test_case, capture_mode="current")
            if not classification.has_differences:
                return SubmissionResult(test_case=test_case, mode="current", passed=True)

            diff = locate_diff(test_case, paths=self.paths)
            return SubmissionResult(test_case=test_case, mode="current", passed=False, diff=diff)

    def _run(self, *, command: BackstopCommand, test_case: str, capture_mode: str) -> Classification:
        with self._run_lock:
            config = build_config([test_case], mode=capture_mode, settings=self.settings, paths=self.paths)
            persist_config(config, self.paths.config_path)
            # Give the freshly written config time to become visible to the CLI.
            if self.settings.settle_delay_ms > 0:
                self.sleep(self.settings.settle_delay_ms / 1000)
            result = self.runner(command=command, test_case=test_case, settings=self.settings, paths=self.paths)

        classification = classify_run(command=command, result=result, settings=self.settings)
        if classification.outcome is RunOutcome.OPERATIONAL_FAILURE:
            logger.warning("backstop %s failed: test_case=%s exit_code=%s", command, test_case, result.exit_code)
            raise BackstopError(classification.detail, stderr=result.stderr)
        return classification
