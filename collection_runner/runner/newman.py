from __future__ import annotations

import asyncio
import json
import subprocess
import tempfile
import time
from pathlib import Path
from typing import Any, AsyncIterator

from collection_runner.config.settings import settings
from collection_runner.core.errors import RunnerError
from collection_runner.core.logger import get_logger
from collection_runner.runner.events import DoneEvent, RequestEvent, RunnerEvent

logger = get_logger(__name__)

_EXPORT_NAME = "run.json"
_OUTPUT_CAP_CHARS = 2000


def _stream_bytes(stream: Any) -> bytes | None:
    # The json reporter serializes Node buffers as {"type": "Buffer", "data": [...]}.
    if isinstance(stream, dict) and isinstance(stream.get("data"), list):
        try:
            return bytes(stream["data"])
        except (TypeError, ValueError):
            return None
    if isinstance(stream, str):
        return stream.encode("utf-8")
    return None


def _request_error(execution: dict[str, Any]) -> str | None:
    error = execution.get("requestError")
    if not error:
        return None
    if isinstance(error, dict):
        return str(error.get("message") or error.get("code") or "request error")
    return str(error)


def events_from_export(export: dict[str, Any]) -> list[RequestEvent]:
    run = export.get("run") if isinstance(export, dict) else None
    executions = run.get("executions", []) if isinstance(run, dict) else []
    events: list[RequestEvent] = []
    for execution in executions:
        if not isinstance(execution, dict):
            continue
        item = execution.get("item") or {}
        item_name = str(item.get("name", "")) if isinstance(item, dict) else ""
        error = _request_error(execution)
        response = execution.get("response")
        if error is None and not isinstance(response, dict):
            error = "no response"
        body = _stream_bytes(response.get("stream")) if isinstance(response, dict) else None
        events.append(RequestEvent(item_name=item_name, body=body, error=error))
    return events


def _failed_assertions(export: dict[str, Any]) -> int:
    run = export.get("run") if isinstance(export, dict) else None
    failures = run.get("failures", []) if isinstance(run, dict) else []
    return len(failures) if isinstance(failures, list) else 0


class NewmanRunner:
    """Runs a collection with the newman CLI.

    newman only reports per-request results through its reporters, so the
    json reporter's export is replayed as RequestEvents once the process has
    exited. The allure reporter writes its results straight into the shared
    results directory.
    """

    def __init__(self, command: list[str] | None = None, reporters: str | None = None, timeout: float | None = None):
        self.command = list(command or settings.newman_command)
        self.reporters = reporters or settings.newman_reporters
        self.timeout = timeout if timeout is not None else settings.run_timeout

    def build_command(self, collection_file: Path, environment_file: Path | None, results_dir: Path, export_file: Path) -> list[str]:
        command = [*self.command, "run", str(collection_file)]
        if environment_file is not None:
            command += ["-e", str(environment_file)]
        command += [
            "--reporters",
            self.reporters,
            "--reporter-allure-export",
            str(results_dir),
            "--reporter-json-export",
            str(export_file),
        ]
        return command

    def _execute(self, command: list[str], cwd: str) -> subprocess.CompletedProcess:
        try:
            return subprocess.run(command, capture_output=True, text=True, timeout=self.timeout, cwd=cwd)
        except FileNotFoundError as exc:
            raise RunnerError(f"newman executable not found: {command[0]}") from exc
        except OSError as exc:
            raise RunnerError(f"newman could not be started: {exc}") from exc
        except subprocess.TimeoutExpired as exc:
            raise RunnerError(f"newman timed out after {self.timeout}s") from exc

    def _write_inputs(self, tmp_path: Path, collection: dict, environment: dict | None) -> tuple[Path, Path | None]:
        try:
            collection_file = tmp_path / "collection.json"
            collection_file.write_text(json.dumps(collection), encoding="utf-8")
            environment_file = None
            if environment is not None:
                environment_file = tmp_path / "environment.json"
                environment_file.write_text(json.dumps(environment), encoding="utf-8")
        except (OSError, TypeError, ValueError) as exc:
            raise RunnerError(f"Cannot stage newman inputs: {exc}") from exc
        return collection_file, environment_file

    async def run(self, collection: dict, environment: dict | None, results_dir: Path) -> AsyncIterator[RunnerEvent]:
        collection_name = str((collection.get("info") or {}).get("name", "")) if isinstance(collection, dict) else ""
        try:
            staging = tempfile.TemporaryDirectory(prefix="newman-")
        except OSError as exc:
            raise RunnerError(f"Cannot create newman staging directory: {exc}") from exc
        with staging as tmp:
            tmp_path = Path(tmp)
            collection_file, environment_file = await asyncio.to_thread(self._write_inputs, tmp_path, collection, environment)
            export_file = tmp_path / _EXPORT_NAME
            command = self.build_command(collection_file, environment_file, Path(results_dir), export_file)

            logger.info("newman.run.start", collection=collection_name, command=command)
            start = time.time()
            result = await asyncio.to_thread(self._execute, command, tmp)
            duration = time.time() - start

            if not export_file.exists():
                logger.error(
                    "newman.run.no_export",
                    collection=collection_name,
                    returncode=result.returncode,
                    stderr_tail=result.stderr[-_OUTPUT_CAP_CHARS:],
                )
                raise RunnerError(f"newman exited with code {result.returncode} without producing results")
            try:
                export = json.loads(export_file.read_text(encoding="utf-8"))
            except (OSError, ValueError) as exc:
                raise RunnerError(f"Unreadable newman export: {exc}") from exc

        events = events_from_export(export)
        failed = _failed_assertions(export)
        logger.info(
            "newman.run.end",
            collection=collection_name,
            returncode=result.returncode,
            executed=len(events),
            failed_assertions=failed,
            duration_sec=round(duration, 3),
        )
        for event in events:
            yield event
        yield DoneEvent(returncode=result.returncode, executed=len(events), failed_assertions=failed)
