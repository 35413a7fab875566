from __future__ import annotations

import base64
import json
import os
from pathlib import Path
from typing import Any, Iterator


def write_text(path: Path, text: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_suffix(path.suffix + ".tmp")
    tmp.write_text(text, encoding="utf-8")
    os.replace(tmp, path)


def write_json(path: Path, obj: Any) -> None:
    text = json.dumps(obj, ensure_ascii=False, indent=2, sort_keys=False)
    write_text(path, text + "\n")


def read_json(path: Path) -> Any:
    return json.loads(path.read_text(encoding="utf-8"))


def read_b64(path: Path) -> str:
    return base64.b64encode(path.read_bytes()).decode("ascii")


def iter_files(root: Path) -> Iterator[Path]:
    # Recursive; BackstopJS writes each test run into a timestamped subdirectory.
    for walk_root, _dirs, files in os.walk(root):
        for name in files:
            yield Path(walk_root) / name
