from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from .services.work_paths import WorkPaths, get_work_paths


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="VISREG_", extra="ignore")

    # Server
    host: str = "0.0.0.0"
    port: int = 3000
    # Base for absolute diff-image links; empty means http://127.0.0.1:{port}.
    public_base_url: str = ""
    log_level: str = "INFO"

    # Paths
    work_root: str = "."

    # BackstopJS
    backstop_command: str = "npx backstop"
    backstop_config_id: str = "visual_regression"
    settle_delay_ms: int = 500
    capture_delay_ms: int = 1000
    mismatch_threshold: float = 0.1
    viewport_width: int = 1280
    viewport_height: int = 800
    engine: str = "puppeteer"
    engine_args: tuple[str, ...] = Field(
        default=("--no-sandbox", "--disable-setuid-sandbox", "--disable-dev-shm-usage")
    )

    # How a non-zero CLI exit is interpreted (see services/backstop_runner.py).
    failure_policy: Literal["exit_code", "report_marker"] = "report_marker"
    report_marker: str = "report"

    # inline: diffImage is the artifact path plus diffImageBase64.
    # url: diffImage is an absolute link under /diff-images.
    diff_image_mode: Literal["inline", "url"] = "inline"

    @property
    def capture_base_url(self) -> str:
        return f"http://127.0.0.1:{self.port}"

    def resolved_public_base_url(self) -> str:
        return (self.public_base_url or self.capture_base_url).rstrip("/")

    def work_paths(self) -> WorkPaths:
        return get_work_paths(work_root=Path(self.work_root))

    def ensure_dirs(self) -> None:
        for directory in self.work_paths().directories():
            directory.mkdir(parents=True, exist_ok=True)


SETTINGS = Settings()
