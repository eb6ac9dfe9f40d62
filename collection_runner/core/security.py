from __future__ import annotations

import re
from pathlib import Path

_UNSAFE_NAME_CHARS = re.compile(r'[\\/:*?"<>|\x00-\x1f]')


def ensure_within(path: str | Path, base_dir: str | Path) -> Path:
    resolved = Path(path).resolve()
    base = Path(base_dir).resolve()
    if base == resolved or base in resolved.parents:
        return resolved
    raise PermissionError(f"Path traversal blocked: {resolved}")


def safe_file_name(name: str, default: str = "unnamed") -> str:
    cleaned = _UNSAFE_NAME_CHARS.sub("_", str(name or "")).strip()
    if cleaned in {"", ".", ".."}:
        return default
    return cleaned
