from __future__ import annotations

from dataclasses import dataclass

import httpx
from fastapi import Request

from collection_runner.config.settings import settings
from collection_runner.config.store import ConfigStore, RunnerConfig
from collection_runner.core.orchestrator import RunOrchestrator
from collection_runner.core.refresher import CacheRefresher
from collection_runner.core.report_publisher import ReportPublisher
from collection_runner.core.resolver import RemoteClientFactory, ResourceResolver
from collection_runner.core.workspace import RunWorkspace
from collection_runner.remote.client import RemoteApiClient, build_remote_client
from collection_runner.runner.events import CollectionRunner
from collection_runner.runner.newman import NewmanRunner


@dataclass
class AppServices:
    config_store: ConfigStore
    remote_factory: RemoteClientFactory
    resolver: ResourceResolver
    refresher: CacheRefresher
    workspace: RunWorkspace
    orchestrator: RunOrchestrator


def build_services(
    runner: CollectionRunner | None = None,
    publisher: ReportPublisher | None = None,
    remote_transport: httpx.AsyncBaseTransport | None = None,
) -> AppServices:
    def remote_factory(config: RunnerConfig) -> RemoteApiClient:
        return build_remote_client(config, transport=remote_transport)

    resolver = ResourceResolver(settings.collections_path, settings.environments_path, remote_factory)
    workspace = RunWorkspace(settings.results_path, settings.report_path)
    orchestrator = RunOrchestrator(
        resolver=resolver,
        runner=runner or NewmanRunner(),
        publisher=publisher or ReportPublisher(),
        workspace=workspace,
        max_parallel=settings.max_parallel_runs,
    )
    return AppServices(
        config_store=ConfigStore.load(settings.config_path),
        remote_factory=remote_factory,
        resolver=resolver,
        refresher=CacheRefresher(settings.collections_path, settings.environments_path, remote_factory),
        workspace=workspace,
        orchestrator=orchestrator,
    )


def get_request_id(request: Request) -> str:
    rid = getattr(request.state, "request_id", "")
    return rid or "req_local"


def get_services(request: Request) -> AppServices:
    return request.app.state.services


def get_config_store(request: Request) -> ConfigStore:
    return get_services(request).config_store
