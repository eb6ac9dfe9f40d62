from __future__ import annotations

import json
import shutil
from pathlib import Path
from typing import Any

from collection_runner.core.security import ensure_within


def ensure_dirs(directories: list[Path]) -> None:
    for directory in directories:
        Path(directory).mkdir(parents=True, exist_ok=True)


def empty_dir(directory: Path) -> None:
    target = Path(directory)
    if not target.exists():
        target.mkdir(parents=True, exist_ok=True)
        return
    for child in target.iterdir():
        if child.is_dir() and not child.is_symlink():
            shutil.rmtree(child)
        else:
            child.unlink()


def pretty_json(payload: Any) -> str:
    return json.dumps(payload, indent=2, ensure_ascii=False)


def write_json_file(base_dir: Path, file_name: str, payload: Any) -> Path:
    target = ensure_within(Path(base_dir) / file_name, base_dir)
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(pretty_json(payload), encoding="utf-8")
    return target


def read_json_file(base_dir: Path, file_name: str) -> Any:
    target = ensure_within(Path(base_dir) / file_name, base_dir)
    return json.loads(target.read_text(encoding="utf-8"))


def list_json_files(directory: Path) -> list[str]:
    base = Path(directory)
    if not base.exists():
        return []
    return sorted(p.name for p in base.iterdir() if p.is_file() and p.name.endswith(".json"))
