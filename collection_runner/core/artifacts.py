from __future__ import annotations

import json
from pathlib import Path

from collection_runner.core.errors import ArtifactWriteError
from collection_runner.core.file_manager import pretty_json
from collection_runner.core.logger import get_logger
from collection_runner.core.workspace import RunWorkspace
from collection_runner.runner.events import RequestEvent

logger = get_logger(__name__)


def capture_response(event: RequestEvent, workspace: RunWorkspace) -> Path | None:
    """Save a JSON response body as a pretty-printed artifact.

    Capture is best effort: failed requests, non-JSON bodies and write errors
    produce no artifact and never raise.
    """
    if not event.ok:
        return None
    try:
        payload = json.loads(event.body)
    except (ValueError, TypeError):
        return None
    file_name = workspace.artifact_name(event.item_name)
    try:
        return workspace.write_artifact(file_name, pretty_json(payload))
    except ArtifactWriteError as exc:
        logger.debug("artifact.write_failed", item=event.item_name, file_name=file_name, error=str(exc))
        return None
