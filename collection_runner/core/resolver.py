from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import Callable

from collection_runner.config.store import RunnerConfig
from collection_runner.core.errors import LocalReadError, RemoteFetchError
from collection_runner.core.file_manager import read_json_file
from collection_runner.core.logger import get_logger
from collection_runner.remote.client import COLLECTIONS, ENVIRONMENTS, RemoteApiClient
from collection_runner.schemas.request_schemas import ResourceRef

logger = get_logger(__name__)

RemoteClientFactory = Callable[[RunnerConfig], RemoteApiClient]


class ResourceResolver:
    """Turns a collection/environment reference into its JSON document.

    Remote mode fetches by ``uid`` from the remote API; local mode reads the
    file ``name`` from the matching cache directory. Resolution has no side
    effects, so a result depends only on the reference and the config.
    """

    def __init__(self, collections_dir: Path, environments_dir: Path, remote_factory: RemoteClientFactory):
        self.directories = {COLLECTIONS: Path(collections_dir), ENVIRONMENTS: Path(environments_dir)}
        self.remote_factory = remote_factory

    async def resolve(self, ref: ResourceRef | None, kind: str, config: RunnerConfig) -> dict | None:
        if config.use_api_mode:
            return await self._resolve_remote(ref, kind, config)
        return await asyncio.to_thread(self._resolve_local, ref, kind)

    async def resolve_collection(self, ref: ResourceRef, config: RunnerConfig) -> dict:
        return await self.resolve(ref, COLLECTIONS, config)

    async def resolve_environment(self, ref: ResourceRef | None, config: RunnerConfig) -> dict | None:
        # A missing environment is not an error: the run simply goes without one.
        if ref is None:
            return None
        if config.use_api_mode and not ref.uid:
            return None
        if not config.use_api_mode and not ref.name:
            return None
        return await self.resolve(ref, ENVIRONMENTS, config)

    async def _resolve_remote(self, ref: ResourceRef | None, kind: str, config: RunnerConfig) -> dict:
        if ref is None or not ref.uid:
            raise RemoteFetchError(f"No remote uid given for {kind} reference", kind=kind, ref=ref.label() if ref else "")
        async with self.remote_factory(config) as client:
            document = await client.get_resource(kind, ref.uid)
        logger.debug("resolver.remote", kind=kind, uid=ref.uid)
        return document

    def _resolve_local(self, ref: ResourceRef | None, kind: str) -> dict:
        if ref is None or not ref.name:
            raise LocalReadError(f"No file name given for {kind} reference", kind=kind, ref=ref.label() if ref else "")
        directory = self.directories[kind]
        try:
            document = read_json_file(directory, ref.name)
        except PermissionError as exc:
            raise LocalReadError(str(exc), kind=kind, ref=ref.name) from exc
        except FileNotFoundError as exc:
            raise LocalReadError(f"{kind} file not found: {ref.name}", kind=kind, ref=ref.name) from exc
        except OSError as exc:
            raise LocalReadError(f"Cannot read {kind} file {ref.name}: {exc}", kind=kind, ref=ref.name) from exc
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            raise LocalReadError(f"{kind} file {ref.name} is not valid JSON: {exc}", kind=kind, ref=ref.name) from exc
        except ValueError as exc:
            raise LocalReadError(f"Invalid {kind} file name {ref.name!r}: {exc}", kind=kind, ref=ref.name) from exc
        if not isinstance(document, dict):
            raise LocalReadError(f"{kind} file {ref.name} does not hold a JSON object", kind=kind, ref=ref.name)
        logger.debug("resolver.local", kind=kind, name=ref.name)
        return document
