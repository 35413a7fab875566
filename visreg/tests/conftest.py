from __future__ import annotations

import os
import tempfile
from pathlib import Path
from typing import Any
from uuid import uuid4

import pytest
from fastapi.testclient import TestClient


def _init_test_env() -> None:
    """
    Point the service at an isolated work root before importing app modules.

    Settings are created at import time and read env vars only once.
    """

    root = Path(tempfile.mkdtemp(prefix="visreg-pytest-"))
    os.environ["VISREG_WORK_ROOT"] = str(root)
    os.environ["VISREG_SETTLE_DELAY_MS"] = "0"
    os.environ.setdefault("VISREG_BACKSTOP_COMMAND", "backstop-not-installed")


_init_test_env()


# The fake CLI only compares bytes, so payloads need not decode.
PNG_RED = b"\x89PNG\r\n\x1a\n" + b"red-pixels" * 8
PNG_BLUE = b"\x89PNG\r\n\x1a\n" + b"blue-pixels" * 8
PNG_DIFF = b"\x89PNG\r\n\x1a\n" + b"diff-pixels" * 8


class FakeBackstop:
    """Stands in for the BackstopJS CLI.

    `test` runs compare the staged reference and current bytes; a mismatch
    writes a failed_diff bitmap into the test directory like BackstopJS does.
    """

    def __init__(self, service: Any) -> None:
        self.service = service
        self.calls: list[tuple[str, str]] = []
        self.write_diff = True
        self.broken = False

    def __call__(self, *, command: str, test_case: str, settings: Any, paths: Any):
        from visreg.app.services.backstop_runner import BackstopRunResult  # noqa: WPS433

        self.calls.append((command, test_case))
        if self.broken:
            return BackstopRunResult(exit_code=1, stdout="", stderr="Error: puppeteer crashed")
        if command == "reference":
            return BackstopRunResult(exit_code=0, stdout="Command \"reference\" successfully executed", stderr="")

        reference = self.service.get_image(test_case, "reference")
        current = self.service.get_image(test_case, "current")
        if reference.path.read_bytes() == current.path.read_bytes():
            return BackstopRunResult(exit_code=0, stdout="report | 1 Passed\nreport | 0 Failed", stderr="")

        if self.write_diff:
            run_dir = paths.test_dir / f"run-{uuid4().hex[:8]}"
            run_dir.mkdir(parents=True, exist_ok=True)
            label = test_case.replace(" ", "_")
            (run_dir / f"failed_diff_visual_regression_{label}_0_document_0_desktop.png").write_bytes(PNG_DIFF)
        return BackstopRunResult(exit_code=1, stdout="report | 0 Passed\nreport | 1 Failed", stderr="")


@pytest.fixture(scope="session")
def client():
    from visreg.app.main import app  # noqa: WPS433

    return TestClient(app)


@pytest.fixture
def service(client):
    return client.app.state.comparison_service


@pytest.fixture
def fake_backstop(service, monkeypatch):
    fake = FakeBackstop(service)
    monkeypatch.setattr(service, "runner", fake)
    return fake


@pytest.fixture
def work_paths(tmp_path):
    from visreg.app.services.work_paths import get_work_paths  # noqa: WPS433

    paths = get_work_paths(work_root=tmp_path)
    for directory in paths.directories():
        directory.mkdir(parents=True, exist_ok=True)
    return paths
