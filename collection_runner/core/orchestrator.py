"""Runs a batch of collections and publishes one report for the whole batch.

A run request is executed in four steps: the results and report directories
are emptied, the shared environment is resolved, every collection is resolved
and executed (one after another or concurrently), and the report is generated
once all of them have finished.

Failures are isolated per collection. A collection that cannot be resolved is
skipped and one whose runner fails is marked failed; neither stops its
siblings. Only a report generation failure fails the request.
"""

from __future__ import annotations

import asyncio
import uuid
from dataclasses import dataclass, field
from typing import AsyncIterator

import structlog

from collection_runner.config.store import RunnerConfig
from collection_runner.core.artifacts import capture_response
from collection_runner.core.errors import ResolutionError, RunnerError
from collection_runner.core.logger import get_logger
from collection_runner.core.report_publisher import ReportPublisher
from collection_runner.core.resolver import ResourceResolver
from collection_runner.core.workspace import RunWorkspace
from collection_runner.runner.events import CollectionRunner, DoneEvent, RequestEvent, RunnerEvent
from collection_runner.schemas.request_schemas import ResourceRef, RunRequest

logger = get_logger(__name__)

COMPLETED = "completed"
SKIPPED = "skipped"
FAILED = "failed"


@dataclass
class CollectionOutcome:
    name: str
    status: str
    artifacts: int = 0
    error: str | None = None


@dataclass
class RunSummary:
    report_url: str
    outcomes: list[CollectionOutcome] = field(default_factory=list)

    def count(self, status: str) -> int:
        return sum(1 for outcome in self.outcomes if outcome.status == status)


class RunOrchestrator:
    def __init__(
        self,
        resolver: ResourceResolver,
        runner: CollectionRunner,
        publisher: ReportPublisher,
        workspace: RunWorkspace,
        max_parallel: int | None = None,
    ):
        self.resolver = resolver
        self.runner = runner
        self.publisher = publisher
        self.workspace = workspace
        self.max_parallel = max_parallel

    async def run_all(self, request: RunRequest, config: RunnerConfig) -> RunSummary:
        with structlog.contextvars.bound_contextvars(run_id=uuid.uuid4().hex[:12]):
            return await self._run_all(request, config)

    async def _run_all(self, request: RunRequest, config: RunnerConfig) -> RunSummary:
        logger.info(
            "run.start",
            collections=len(request.files),
            parallel=request.parallel,
            use_api_mode=config.use_api_mode,
            environment=request.environment.label() if request.environment else None,
        )
        await asyncio.to_thread(self.workspace.reset)

        environment_error: str | None = None
        environment: dict | None = None
        try:
            environment = await self.resolver.resolve_environment(request.environment, config)
        except ResolutionError as exc:
            environment_error = str(exc)
            logger.warning("run.environment.unresolved", environment=request.environment.label(), error=environment_error)

        if request.parallel:
            outcomes = await self._run_parallel(request.files, environment, environment_error, config)
        else:
            outcomes = []
            for ref in request.files:
                outcomes.append(await self._run_one(ref, environment, environment_error, config))

        summary = RunSummary(report_url="", outcomes=outcomes)
        logger.info(
            "run.collections.finished",
            completed=summary.count(COMPLETED),
            skipped=summary.count(SKIPPED),
            failed=summary.count(FAILED),
            artifacts=sum(o.artifacts for o in outcomes),
        )
        summary.report_url = await self.publisher.publish(self.workspace)
        return summary

    async def _run_parallel(
        self,
        refs: list[ResourceRef],
        environment: dict | None,
        environment_error: str | None,
        config: RunnerConfig,
    ) -> list[CollectionOutcome]:
        semaphore = asyncio.Semaphore(self.max_parallel) if self.max_parallel else None

        async def bounded(ref: ResourceRef) -> CollectionOutcome:
            if semaphore is None:
                return await self._run_one(ref, environment, environment_error, config)
            async with semaphore:
                return await self._run_one(ref, environment, environment_error, config)

        return list(await asyncio.gather(*(bounded(ref) for ref in refs)))

    async def _run_one(
        self,
        ref: ResourceRef,
        environment: dict | None,
        environment_error: str | None,
        config: RunnerConfig,
    ) -> CollectionOutcome:
        name = ref.label()
        if environment_error is not None:
            logger.warning("run.collection.skipped", collection=name, reason="environment unresolved")
            return CollectionOutcome(name=name, status=SKIPPED, error=environment_error)
        try:
            collection = await self.resolver.resolve_collection(ref, config)
        except ResolutionError as exc:
            logger.warning("run.collection.skipped", collection=name, error=str(exc))
            return CollectionOutcome(name=name, status=SKIPPED, error=str(exc))

        logger.info("run.collection.start", collection=name)
        try:
            captured = await self._drain(self.runner.run(collection, environment, self.workspace.results_dir), name)
        except RunnerError as exc:
            logger.error("run.collection.failed", collection=name, error=str(exc))
            return CollectionOutcome(name=name, status=FAILED, error=str(exc))
        except Exception as exc:
            logger.exception("run.collection.failed", collection=name, error=str(exc))
            return CollectionOutcome(name=name, status=FAILED, error=str(exc) or type(exc).__name__)
        logger.info("run.collection.done", collection=name, artifacts=captured)
        return CollectionOutcome(name=name, status=COMPLETED, artifacts=captured)

    async def _drain(self, events: AsyncIterator[RunnerEvent], name: str) -> int:
        captured = 0
        done = False
        try:
            async for event in events:
                if isinstance(event, DoneEvent):
                    done = True
                    break
                if isinstance(event, RequestEvent) and await asyncio.to_thread(capture_response, event, self.workspace) is not None:
                    captured += 1
        finally:
            aclose = getattr(events, "aclose", None)
            if aclose is not None:
                await aclose()
        if not done:
            logger.warning("run.collection.no_done_event", collection=name)
        return captured
