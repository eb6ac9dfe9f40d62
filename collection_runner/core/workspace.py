from __future__ import annotations

import threading
import time
from pathlib import Path

from collection_runner.core.errors import ArtifactWriteError
from collection_runner.core.file_manager import empty_dir
from collection_runner.core.logger import get_logger
from collection_runner.core.security import safe_file_name

logger = get_logger(__name__)


class RunWorkspace:
    """Results and report directories holding the output of the last run.

    Both directories are shared by every collection of a run. Artifact names
    carry a millisecond stamp that never repeats within one workspace, so
    concurrent captures can write side by side.
    """

    def __init__(self, results_dir: Path, report_dir: Path):
        self.results_dir = Path(results_dir)
        self.report_dir = Path(report_dir)
        self._last_stamp = 0
        self._stamp_lock = threading.Lock()

    def reset(self) -> None:
        empty_dir(self.results_dir)
        empty_dir(self.report_dir)
        logger.info("workspace.reset", results_dir=str(self.results_dir), report_dir=str(self.report_dir))

    def next_stamp(self) -> int:
        with self._stamp_lock:
            stamp = int(time.time() * 1000)
            if stamp <= self._last_stamp:
                stamp = self._last_stamp + 1
            self._last_stamp = stamp
            return stamp

    def artifact_name(self, item_name: str) -> str:
        return f"{self.next_stamp()}-{safe_file_name(item_name)}-response.json"

    def write_artifact(self, file_name: str, content: str) -> Path:
        target = self.results_dir / file_name
        try:
            target.write_text(content, encoding="utf-8")
        except OSError as exc:
            raise ArtifactWriteError(f"Cannot write {target}: {exc}") from exc
        return target

    def artifacts(self) -> list[Path]:
        if not self.results_dir.exists():
            return []
        return sorted(p for p in self.results_dir.iterdir() if p.name.endswith("-response.json"))
