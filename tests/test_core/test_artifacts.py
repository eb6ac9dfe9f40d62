from __future__ import annotations

import json
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

from collection_runner.core.artifacts import capture_response
from collection_runner.core.errors import ArtifactWriteError
from collection_runner.core.workspace import RunWorkspace
from collection_runner.runner.events import RequestEvent


class FlakyWorkspace(RunWorkspace):
    def __init__(self, results_dir: Path, report_dir: Path, failing_item: str):
        super().__init__(results_dir, report_dir)
        self.failing_item = failing_item

    def write_artifact(self, file_name: str, content: str) -> Path:
        if f"-{self.failing_item}-" in file_name:
            raise ArtifactWriteError("disk full")
        return super().write_artifact(file_name, content)


def _workspace(tmp_path: Path) -> RunWorkspace:
    workspace = RunWorkspace(tmp_path / "results", tmp_path / "report")
    workspace.reset()
    return workspace


def test_json_response_is_pretty_printed(tmp_path: Path):
    workspace = _workspace(tmp_path)
    path = capture_response(RequestEvent(item_name="Get user", body=b'{"id":1,"tags":["a"]}'), workspace)

    assert path is not None
    assert path.name.endswith("-Get user-response.json")
    assert path.read_text(encoding="utf-8") == json.dumps({"id": 1, "tags": ["a"]}, indent=2)


def test_non_json_and_failed_requests_are_dropped(tmp_path: Path):
    workspace = _workspace(tmp_path)
    assert capture_response(RequestEvent(item_name="html", body=b"<html></html>"), workspace) is None
    assert capture_response(RequestEvent(item_name="err", error="ECONNREFUSED"), workspace) is None
    assert capture_response(RequestEvent(item_name="binary", body=b"\xff\xfe\x00"), workspace) is None
    assert workspace.artifacts() == []


def test_write_failure_does_not_stop_later_captures(tmp_path: Path):
    workspace = FlakyWorkspace(tmp_path / "results", tmp_path / "report", failing_item="second")
    workspace.reset()

    first = capture_response(RequestEvent(item_name="first", body=b"{}"), workspace)
    second = capture_response(RequestEvent(item_name="second", body=b"{}"), workspace)
    third = capture_response(RequestEvent(item_name="third", body=b"[]"), workspace)

    assert first is not None and third is not None
    assert second is None
    assert len(workspace.artifacts()) == 2


def test_artifact_names_never_repeat(tmp_path: Path):
    workspace = _workspace(tmp_path)
    names = {workspace.artifact_name("same item") for _ in range(50)}
    assert len(names) == 50


def test_artifact_names_never_repeat_across_threads(tmp_path: Path):
    workspace = _workspace(tmp_path)
    with ThreadPoolExecutor(max_workers=8) as pool:
        names = list(pool.map(lambda _: workspace.artifact_name("same item"), range(200)))
    assert len(set(names)) == 200


def test_item_names_are_made_file_safe(tmp_path: Path):
    workspace = _workspace(tmp_path)
    name = workspace.artifact_name("users/../admin")
    assert "/" not in name
    assert name.endswith("-users_.._admin-response.json")


def test_reset_empties_both_directories(tmp_path: Path):
    workspace = _workspace(tmp_path)
    (workspace.results_dir / "old-response.json").write_text("{}", encoding="utf-8")
    (workspace.report_dir / "data").mkdir()
    (workspace.report_dir / "index.html").write_text("<html/>", encoding="utf-8")

    workspace.reset()

    assert workspace.results_dir.is_dir() and list(workspace.results_dir.iterdir()) == []
    assert workspace.report_dir.is_dir() and list(workspace.report_dir.iterdir()) == []
