#
# BackstopJS config synthesis.
#
from __future__ import annotations

from pathlib import Path
from typing import Any
from urllib.parse import quote

from ..settings import Settings
from ..utils.fs import write_json
from .work_paths import WorkPaths


def capture_url(*, test_case: str, mode: str, settings: Settings) -> str:
    # The test case is a single path segment so /serve-image can dispatch it back.
    return f"{settings.capture_base_url}/serve-image/{quote(test_case, safe='')}?mode={mode}"


def build_scenario(*, test_case: str, mode: str, settings: Settings) -> dict[str, Any]:
    return {
        "label": test_case,
        "url": capture_url(test_case=test_case, mode=mode, settings=settings),
        "selectors": ["body"],
        "misMatchThreshold": settings.mismatch_threshold,
        "requireSameDimensions": False,
        "delay": settings.capture_delay_ms,
    }


def build_config(
    test_cases: list[str],
    *,
    mode: str,
    settings: Settings,
    paths: WorkPaths,
) -> dict[str, Any]:
    """Build a BackstopJS config with one scenario per test case.

    Capture and compare concurrency are pinned to 1 so the CLI never drives
    more than one browser page at a time.
    """

    return {
        "id": settings.backstop_config_id,
        "viewports": [
            {"label": "desktop", "width": settings.viewport_width, "height": settings.viewport_height},
        ],
        "scenarios": [build_scenario(test_case=tc, mode=mode, settings=settings) for tc in test_cases],
        "paths": {
            "bitmaps_reference": str(paths.reference_dir),
            "bitmaps_test": str(paths.test_dir),
            "html_report": str(paths.html_report_dir),
            "ci_report": str(paths.ci_report_dir),
            "json_report": str(paths.json_report_dir),
        },
        "report": ["CI", "json"],
        "engine": settings.engine,
        "engineOptions": {"args": list(settings.engine_args)},
        "asyncCaptureLimit": 1,
        "asyncCompareLimit": 1,
    }


def persist_config(config: dict[str, Any], path: Path) -> None:
    write_json(path, config)
