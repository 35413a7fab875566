from __future__ import annotations

import logging
import re
import shutil
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from ..utils.fs import iter_files, read_b64, read_json
from .work_paths import WorkPaths

logger = logging.getLogger(__name__)

DIFF_SUFFIX = "_diff.png"
_FAILURE_MARKERS = ("diff", "failed")
_UNSAFE_NAME_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


@dataclass(frozen=True)
class DiffArtifact:
    path: Path
    source_path: Path
    name: str
    base64: str


def artifact_timestamp(now: datetime) -> str:
    # 2026-10-19T08-15-02-123Z
    now = now.astimezone(timezone.utc)
    return now.strftime("%Y-%m-%dT%H-%M-%S-") + f"{now.microsecond // 1000:03d}Z"


def safe_name(test_case: str) -> str:
    return _UNSAFE_NAME_CHARS.sub("_", test_case).strip("._") or "test_case"


def find_in_json_report(*, test_case: str, paths: WorkPaths) -> Path | None:
    # BackstopJS lists diff images relative to the json_report directory.
    report_path = paths.json_report_path
    if not report_path.exists():
        return None
    try:
        report = read_json(report_path)
    except ValueError as exc:
        logger.debug("json report unreadable: %s (%s)", report_path, exc)
        return None
    if not isinstance(report, dict):
        return None
    tests: list[Any] = report.get("tests") or []
    for item in tests:
        if not isinstance(item, dict) or item.get("status") != "fail":
            continue
        pair = item.get("pair") or {}
        if not isinstance(pair, dict) or pair.get("label") != test_case:
            continue
        diff_image = str(pair.get("diffImage") or "")
        if not diff_image:
            continue
        candidate = Path(diff_image)
        if not candidate.is_absolute():
            candidate = (paths.json_report_dir / candidate).resolve()
        if candidate.is_file():
            return candidate
    return None


def _matches(name: str, needles: tuple[str, ...]) -> bool:
    # BackstopJS names bitmaps <prefix>_<label>_<scenario index>_..., so the
    # label must be followed by an index (or the extension) to rule out
    # labels that merely start with this one.
    lowered = name.lower()
    if not lowered.endswith(".png") or not any(marker in lowered for marker in _FAILURE_MARKERS):
        return False
    return any(re.search(rf"(?:^|_){re.escape(needle)}(?:_\d|\.png$)", lowered) for needle in needles)


def latest_run_dir(test_dir: Path) -> Path:
    # Each `backstop test` writes into a fresh timestamped subdirectory.
    run_dirs = [p for p in test_dir.iterdir() if p.is_dir()]
    if not run_dirs:
        return test_dir
    return max(run_dirs, key=lambda p: p.stat().st_mtime_ns)


def scan_test_bitmaps(*, test_case: str, paths: WorkPaths) -> Path | None:
    # BackstopJS replaces spaces in labels with underscores in file names.
    lowered = test_case.lower()
    needles = tuple({lowered, lowered.replace(" ", "_")})
    if not paths.test_dir.exists():
        return None
    run_dir = latest_run_dir(paths.test_dir)
    candidates = [p for p in iter_files(run_dir) if _matches(p.name, needles)]
    if not candidates:
        return None
    return max(candidates, key=lambda p: p.stat().st_mtime_ns)


def locate_diff(test_case: str, *, paths: WorkPaths, now: datetime | None = None) -> DiffArtifact | None:
    """Find the diff image for a failed comparison and publish a copy.

    Lookup/copy failures degrade to None; a missing diff never fails the request.
    """

    try:
        source = find_in_json_report(test_case=test_case, paths=paths)
        if source is None:
            source = scan_test_bitmaps(test_case=test_case, paths=paths)
        if source is None:
            logger.info("no diff image found: test_case=%s", test_case)
            return None

        stamp = artifact_timestamp(now or datetime.now(tz=timezone.utc))
        name = f"{safe_name(test_case)}_{stamp}{DIFF_SUFFIX}"
        paths.diff_images_dir.mkdir(parents=True, exist_ok=True)
        dest = paths.diff_images_dir / name
        shutil.copyfile(source, dest)
        return DiffArtifact(path=dest, source_path=source, name=name, base64=read_b64(dest))
    except (OSError, ValueError) as exc:
        logger.warning("diff lookup failed: test_case=%s error=%s", test_case, exc)
        return None
