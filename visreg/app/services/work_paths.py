#
# Working directory layout shared with the BackstopJS CLI.
#
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True)
class WorkPaths:
    root: Path
    uploads_dir: Path
    backstop_data_dir: Path
    reference_dir: Path
    test_dir: Path
    html_report_dir: Path
    ci_report_dir: Path
    json_report_dir: Path
    diff_images_dir: Path
    config_path: Path

    @property
    def json_report_path(self) -> Path:
        return self.json_report_dir / "jsonReport.json"

    def directories(self) -> list[Path]:
        return [
            self.uploads_dir,
            self.backstop_data_dir,
            self.reference_dir,
            self.test_dir,
            self.html_report_dir,
            self.ci_report_dir,
            self.json_report_dir,
            self.diff_images_dir,
        ]


def get_work_paths(*, work_root: Path) -> WorkPaths:
    root = work_root.resolve()
    backstop_data_dir = root / "backstop_data"
    return WorkPaths(
        root=root,
        uploads_dir=root / "temp_uploads",
        backstop_data_dir=backstop_data_dir,
        reference_dir=backstop_data_dir / "bitmaps_reference",
        test_dir=backstop_data_dir / "bitmaps_test",
        html_report_dir=backstop_data_dir / "html_report",
        ci_report_dir=backstop_data_dir / "ci_report",
        json_report_dir=backstop_data_dir / "json_report",
        diff_images_dir=root / "diff_images",
        config_path=root / "backstop.selenium.json",
    )
