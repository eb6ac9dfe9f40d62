from __future__ import annotations

import asyncio
from pathlib import Path

from collection_runner.config.store import RunnerConfig
from collection_runner.core.file_manager import empty_dir, write_json_file
from collection_runner.core.logger import get_logger
from collection_runner.core.resolver import RemoteClientFactory
from collection_runner.core.security import safe_file_name
from collection_runner.remote.client import COLLECTIONS, ENVIRONMENTS, RemoteApiClient

logger = get_logger(__name__)


async def _download_all(client: RemoteApiClient, kind: str, listed: list[dict[str, str]]) -> list[tuple[str, dict]]:
    documents: list[tuple[str, dict]] = []
    for item in listed:
        document = await client.get_resource(kind, item["uid"])
        documents.append((f"{safe_file_name(item['name'])}.json", document))
    return documents


class CacheRefresher:
    """Rebuilds the local collection/environment cache from the remote API.

    Everything is downloaded before the local directories are touched, so a
    remote failure leaves the previous cache in place. Two remote resources
    with the same display name end up in the same file; the last one wins.
    """

    def __init__(self, collections_dir: Path, environments_dir: Path, remote_factory: RemoteClientFactory):
        self.collections_dir = Path(collections_dir)
        self.environments_dir = Path(environments_dir)
        self.remote_factory = remote_factory

    def _rewrite_cache(self, collection_docs: list[tuple[str, dict]], environment_docs: list[tuple[str, dict]]) -> None:
        empty_dir(self.collections_dir)
        empty_dir(self.environments_dir)
        for file_name, document in collection_docs:
            write_json_file(self.collections_dir, file_name, document)
        for file_name, document in environment_docs:
            write_json_file(self.environments_dir, file_name, document)

    async def refresh(self, config: RunnerConfig) -> dict:
        logger.info("refresh.start", workspace_id=config.workspace_id)
        async with self.remote_factory(config) as client:
            collections, environments = await asyncio.gather(
                client.list_resources(COLLECTIONS),
                client.list_resources(ENVIRONMENTS),
            )
            collection_docs = await _download_all(client, COLLECTIONS, collections)
            environment_docs = await _download_all(client, ENVIRONMENTS, environments)

        await asyncio.to_thread(self._rewrite_cache, collection_docs, environment_docs)

        logger.info(
            "refresh.done",
            workspace_id=config.workspace_id,
            collections=len(collection_docs),
            environments=len(environment_docs),
        )
        return {"updated": True}
