from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import AsyncIterator, Protocol, Union


@dataclass(frozen=True)
class RequestEvent:
    item_name: str
    body: bytes | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.body is not None


@dataclass(frozen=True)
class DoneEvent:
    returncode: int = 0
    executed: int = 0
    failed_assertions: int = 0


RunnerEvent = Union[RequestEvent, DoneEvent]


class CollectionRunner(Protocol):
    def run(self, collection: dict, environment: dict | None, results_dir: Path) -> AsyncIterator[RunnerEvent]:
        """Execute one collection: one RequestEvent per request, then a single DoneEvent."""
        ...
