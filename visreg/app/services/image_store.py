#
# Uploaded image bookkeeping.
#
from __future__ import annotations

import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Literal, Protocol

from fastapi import UploadFile

Role = Literal["reference", "current"]
ROLES: tuple[str, ...] = ("reference", "current")
DEFAULT_CONTENT_TYPE = "image/png"


@dataclass(frozen=True)
class ImageRecord:
    path: Path
    content_type: str
    filename: str


def image_key(test_case: str, role: str) -> str:
    return f"{test_case}_{role}"


class ImageStore(Protocol):
    def put(self, key: str, record: ImageRecord) -> None: ...

    def get(self, key: str) -> ImageRecord | None: ...

    def has(self, key: str) -> bool: ...


class InMemoryImageStore:
    """Process-lifetime store; later uploads for the same key overwrite earlier ones."""

    def __init__(self) -> None:
        self._records: dict[str, ImageRecord] = {}

    def put(self, key: str, record: ImageRecord) -> None:
        self._records[key] = record

    def get(self, key: str) -> ImageRecord | None:
        return self._records.get(key)

    def has(self, key: str) -> bool:
        return key in self._records

    def __len__(self) -> int:
        return len(self._records)


def stage_upload(upload: UploadFile, *, uploads_dir: Path) -> ImageRecord:
    # Staged files are never removed; overwritten records leave orphans behind.
    uploads_dir.mkdir(parents=True, exist_ok=True)
    target = uploads_dir / uuid.uuid4().hex
    target.write_bytes(upload.file.read())
    return ImageRecord(
        path=target,
        content_type=str(upload.content_type or DEFAULT_CONTENT_TYPE),
        filename=str(upload.filename or ""),
    )
