from __future__ import annotations

import base64
import json
import os
from datetime import datetime, timezone

from visreg.app.services import diff_locator
from visreg.app.services.diff_locator import artifact_timestamp, locate_diff, safe_name


NOW = datetime(2026, 10, 19, 8, 15, 2, 123456, tzinfo=timezone.utc)


def _write(path, data: bytes):
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(data)
    return path


def test_artifact_timestamp_format() -> None:
    assert artifact_timestamp(NOW) == "2026-10-19T08-15-02-123Z"


def test_safe_name_replaces_separators() -> None:
    assert safe_name("checkout/step 1") == "checkout_step_1"
    assert safe_name("..") == "test_case"


def test_locate_diff_scans_test_bitmaps(work_paths) -> None:
    _write(work_paths.test_dir / "20261019-081500" / "visual_regression_login_0_document_0_desktop.png", b"test")
    source = _write(
        work_paths.test_dir / "20261019-081500" / "failed_diff_visual_regression_login_0_document_0_desktop.png",
        b"diff-bytes",
    )

    artifact = locate_diff("login", paths=work_paths, now=NOW)

    assert artifact is not None
    assert artifact.source_path == source
    assert artifact.name == "login_2026-10-19T08-15-02-123Z_diff.png"
    assert artifact.path == work_paths.diff_images_dir / artifact.name
    assert artifact.path.read_bytes() == b"diff-bytes"
    assert base64.b64decode(artifact.base64) == b"diff-bytes"


def test_locate_diff_is_case_insensitive_and_handles_spaces(work_paths) -> None:
    _write(work_paths.test_dir / "run" / "FAILED_DIFF_Visual_Regression_Sign_Up_Form_0.PNG", b"d")

    artifact = locate_diff("Sign Up Form", paths=work_paths, now=NOW)

    assert artifact is not None
    assert artifact.name.startswith("Sign_Up_Form_")


def test_locate_diff_uses_latest_run_directory(work_paths) -> None:
    older = _write(work_paths.test_dir / "run-1" / "failed_diff_login.png", b"old")
    newer = _write(work_paths.test_dir / "run-2" / "failed_diff_login.png", b"new")
    os.utime(older.parent, (1_000_000, 1_000_000))
    os.utime(newer.parent, (2_000_000, 2_000_000))

    artifact = locate_diff("login", paths=work_paths, now=NOW)

    assert artifact is not None
    assert artifact.source_path == newer


def test_locate_diff_skips_diffs_from_earlier_runs(work_paths) -> None:
    stale = _write(work_paths.test_dir / "run-1" / "failed_diff_visual_regression_login_0_document_0_desktop.png", b"old")
    latest = _write(work_paths.test_dir / "run-2" / "visual_regression_login_0_document_0_desktop.png", b"pass")
    os.utime(stale.parent, (1_000_000, 1_000_000))
    os.utime(latest.parent, (2_000_000, 2_000_000))

    assert locate_diff("login", paths=work_paths, now=NOW) is None


def test_locate_diff_does_not_match_longer_labels(work_paths) -> None:
    _write(work_paths.test_dir / "run" / "failed_diff_visual_regression_login_admin_0_document_0_desktop.png", b"admin")

    assert locate_diff("login", paths=work_paths, now=NOW) is None

    artifact = locate_diff("login_admin", paths=work_paths, now=NOW)
    assert artifact is not None
    assert artifact.path.read_bytes() == b"admin"


def test_locate_diff_ignores_non_matching_files(work_paths) -> None:
    _write(work_paths.test_dir / "run" / "visual_regression_login_0_document_0_desktop.png", b"no marker")
    _write(work_paths.test_dir / "run" / "failed_diff_signup.png", b"other case")
    _write(work_paths.test_dir / "run" / "failed_diff_login.jpg", b"wrong extension")

    assert locate_diff("login", paths=work_paths, now=NOW) is None


def test_locate_diff_prefers_json_report(work_paths) -> None:
    reported = _write(work_paths.test_dir / "run" / "reported.png", b"from-report")
    _write(work_paths.test_dir / "run" / "failed_diff_login.png", b"from-scan")
    report = {
        "testSuite": "BackstopJS",
        "tests": [
            {"pair": {"label": "login", "diffImage": "../bitmaps_test/run/missing.png"}, "status": "pass"},
            {"pair": {"label": "login", "diffImage": "../bitmaps_test/run/reported.png"}, "status": "fail"},
        ],
    }
    work_paths.json_report_path.write_text(json.dumps(report), encoding="utf-8")

    artifact = locate_diff("login", paths=work_paths, now=NOW)

    assert artifact is not None
    assert artifact.source_path == reported.resolve()
    assert artifact.path.read_bytes() == b"from-report"


def test_locate_diff_invalid_json_report_falls_back_to_scan(work_paths) -> None:
    work_paths.json_report_path.write_text("{not json", encoding="utf-8")
    _write(work_paths.test_dir / "run" / "failed_diff_login.png", b"d")

    artifact = locate_diff("login", paths=work_paths, now=NOW)

    assert artifact is not None
    assert artifact.path.read_bytes() == b"d"


def test_locate_diff_copy_failure_degrades(work_paths, monkeypatch) -> None:
    _write(work_paths.test_dir / "run" / "failed_diff_login.png", b"d")

    def broken_copy(src, dst):
        raise PermissionError("read-only filesystem")

    monkeypatch.setattr(diff_locator.shutil, "copyfile", broken_copy)

    assert locate_diff("login", paths=work_paths, now=NOW) is None
