from __future__ import annotations

import asyncio
import json
import subprocess
from pathlib import Path
from typing import Any

import httpx
import pytest
import pytest_asyncio
import structlog

from collection_runner.api.app import create_app
from collection_runner.config.settings import settings
from collection_runner.core.errors import RunnerError
from collection_runner.core.report_publisher import ReportPublisher
from collection_runner.runner.events import DoneEvent, RequestEvent

VALID_KEY = "valid-key"
WORKSPACE_ID = "ws-1"


def collection_doc(name: str, requests: int = 1) -> dict[str, Any]:
    return {
        "info": {"name": name, "schema": "https://schema.getpostman.com/json/collection/v2.1.0/collection.json"},
        "item": [
            {"name": f"request {idx}", "request": {"method": "GET", "url": "https://example.test/ping"}}
            for idx in range(requests)
        ],
    }


def environment_doc(name: str, values: dict[str, str] | None = None) -> dict[str, Any]:
    return {
        "name": name,
        "values": [{"key": key, "value": value, "enabled": True} for key, value in (values or {}).items()],
    }


def write_json(directory: Path, file_name: str, payload: Any) -> Path:
    directory.mkdir(parents=True, exist_ok=True)
    target = directory / file_name
    target.write_text(json.dumps(payload), encoding="utf-8")
    return target


def non_executable_command(path: Path) -> str:
    path.write_text("#!/bin/sh\nexit 0\n", encoding="utf-8")
    path.chmod(0o644)
    return str(path)


class FakeRunner:
    """In-process stand-in for newman that records when each collection starts and finishes."""

    def __init__(self) -> None:
        self.log: list[tuple[str, str]] = []
        self.responses: dict[str, list[RequestEvent]] = {}
        self.failing: set[str] = set()
        self.crashing: dict[str, Exception] = {}
        self.contexts: list[dict[str, Any]] = []
        self.environments: list[dict | None] = []
        self.results_dirs: list[Path] = []
        self.active = 0
        self.max_active = 0

    async def run(self, collection: dict, environment: dict | None, results_dir: Path):
        name = str(collection.get("info", {}).get("name", ""))
        self.log.append(("start", name))
        self.environments.append(environment)
        self.results_dirs.append(results_dir)
        self.contexts.append(structlog.contextvars.get_contextvars())
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            await asyncio.sleep(0.01)
            if name in self.failing:
                raise RunnerError(f"newman crashed on {name}")
            if name in self.crashing:
                raise self.crashing[name]
            for event in self.responses.get(name, []):
                await asyncio.sleep(0)
                yield event
        finally:
            self.active -= 1
        self.log.append(("done", name))
        yield DoneEvent(executed=len(self.responses.get(name, [])))


class RecordingPublisher(ReportPublisher):
    """Real publisher with the allure subprocess replaced by a recorder."""

    def __init__(self, runner: FakeRunner | None = None, returncode: int = 0):
        super().__init__(command=["allure"], base_url="http://testserver", timeout=None)
        self.runner = runner
        self.returncode = returncode
        self.launch_with: str | None = None
        self.commands: list[list[str]] = []
        self.runner_log_at_publish: list[list[tuple[str, str]]] = []

    def _execute(self, command: list[str]) -> subprocess.CompletedProcess:
        self.commands.append(command)
        self.runner_log_at_publish.append(list(self.runner.log) if self.runner else [])
        if self.launch_with is not None:
            return super()._execute([self.launch_with, *command[1:]])
        return subprocess.CompletedProcess(command, self.returncode, stdout="", stderr="" if self.returncode == 0 else "allure: failed")


class FakeRemote:
    """Remote test-management API served through httpx.MockTransport."""

    def __init__(self, api_key: str = VALID_KEY):
        self.api_key = api_key
        self.collections: dict[str, tuple[str, dict]] = {}
        self.environments: dict[str, tuple[str, dict]] = {}
        self.requests: list[httpx.Request] = []
        self.broken_uids: set[str] = set()
        self.raw_listed: dict[str, list[dict]] = {"collections": [], "environments": []}

    def add_collection(self, uid: str, name: str, document: dict | None = None) -> None:
        self.collections[uid] = (name, document or collection_doc(name))

    def add_environment(self, uid: str, name: str, document: dict | None = None) -> None:
        self.environments[uid] = (name, document or environment_doc(name))

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.headers.get("X-Api-Key") != self.api_key:
            return httpx.Response(401, json={"error": {"name": "AuthenticationError"}})
        parts = request.url.path.strip("/").split("/")
        stores = {"collections": self.collections, "environments": self.environments}
        kind = parts[0]
        if kind not in stores:
            return httpx.Response(404, json={"error": "not found"})
        store = stores[kind]
        if len(parts) == 1:
            listed = [{"name": name, "uid": uid} for uid, (name, _) in store.items()] + self.raw_listed[kind]
            return httpx.Response(200, json={kind: listed})
        uid = parts[1]
        if uid in self.broken_uids:
            return httpx.Response(200, json={"unexpected": True})
        if uid not in store:
            return httpx.Response(404, json={"error": "not found"})
        return httpx.Response(200, json={kind[:-1]: store[uid][1]})

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


@pytest.fixture(autouse=True)
def _isolated_settings(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    data_root = tmp_path / "data"
    data_root.mkdir()
    monkeypatch.setattr(settings, "DATA_ROOT", str(data_root))
    monkeypatch.setattr(settings, "PUBLIC_BASE_URL", "http://testserver")
    monkeypatch.setattr(settings, "REMOTE_API_BASE_URL", "https://remote.test")
    monkeypatch.setattr(settings, "MAX_PARALLEL_RUNS", 0)
    return data_root


@pytest.fixture()
def fake_runner() -> FakeRunner:
    return FakeRunner()


@pytest.fixture()
def publisher(fake_runner: FakeRunner) -> RecordingPublisher:
    return RecordingPublisher(runner=fake_runner)


@pytest.fixture()
def remote() -> FakeRemote:
    return FakeRemote()


@pytest_asyncio.fixture()
async def client(fake_runner: FakeRunner, publisher: RecordingPublisher, remote: FakeRemote) -> httpx.AsyncClient:
    app = create_app(runner=fake_runner, publisher=publisher, remote_transport=remote.transport)
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as test_client:
        yield test_client


async def use_local_mode(client: httpx.AsyncClient) -> None:
    response = await client.post("/config", json={"apiKey": "", "workspaceId": "", "useApi": False})
    assert response.status_code == 200


async def use_remote_mode(client: httpx.AsyncClient, api_key: str = VALID_KEY) -> None:
    response = await client.post("/config", json={"apiKey": api_key, "workspaceId": WORKSPACE_ID, "useApi": True})
    assert response.status_code == 200
