from __future__ import annotations

from typing import Any

import httpx

from collection_runner.config.settings import settings
from collection_runner.config.store import RunnerConfig
from collection_runner.core.errors import RemoteFetchError
from collection_runner.core.logger import get_logger

logger = get_logger(__name__)

COLLECTIONS = "collections"
ENVIRONMENTS = "environments"

# Wrapper field holding the document in a get-by-id response.
_SINGULAR = {COLLECTIONS: "collection", ENVIRONMENTS: "environment"}


class RemoteApiClient:
    """Read-only client for the remote test-management API.

    Two endpoints per resource kind: ``GET /{kind}?workspace=`` to list and
    ``GET /{kind}/{uid}`` to fetch one document. Requests carry the API key in
    the ``X-Api-Key`` header.
    """

    def __init__(
        self,
        base_url: str,
        api_key: str,
        workspace_id: str,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.workspace_id = workspace_id
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            headers={"X-Api-Key": api_key},
            timeout=httpx.Timeout(timeout, connect=timeout),
            transport=transport,
        )

    async def __aenter__(self) -> "RemoteApiClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _get_json(self, path: str, kind: str, ref: str, params: dict[str, str] | None = None) -> dict:
        try:
            response = await self._client.get(path, params=params)
        except httpx.HTTPError as exc:
            logger.warning("remote.request_failed", path=path, error=str(exc))
            raise RemoteFetchError(f"Request to {path} failed: {exc}", kind=kind, ref=ref) from exc
        if not 200 <= response.status_code < 300:
            logger.warning("remote.http_error", path=path, status_code=response.status_code)
            raise RemoteFetchError(
                f"{path} returned HTTP {response.status_code}",
                kind=kind,
                ref=ref,
                status_code=response.status_code,
            )
        try:
            body = response.json()
        except ValueError as exc:
            raise RemoteFetchError(f"{path} returned a non-JSON body", kind=kind, ref=ref) from exc
        if not isinstance(body, dict):
            raise RemoteFetchError(f"{path} returned an unexpected body", kind=kind, ref=ref)
        return body

    async def list_resources(self, kind: str) -> list[dict[str, str]]:
        body = await self._get_json(f"/{kind}", kind, self.workspace_id, params={"workspace": self.workspace_id})
        items = body.get(kind)
        if not isinstance(items, list):
            raise RemoteFetchError(f"Listing response is missing '{kind}'", kind=kind, ref=self.workspace_id)
        listed = []
        for item in items:
            if not isinstance(item, dict):
                continue
            uid = item.get("uid")
            if uid is None or uid == "":
                logger.warning("remote.listed.no_uid", kind=kind, name=item.get("name"))
                continue
            listed.append({"name": str(item.get("name") or ""), "uid": str(uid)})
        logger.info("remote.listed", kind=kind, workspace_id=self.workspace_id, count=len(listed))
        return listed

    async def get_resource(self, kind: str, uid: str) -> dict:
        body = await self._get_json(f"/{kind}/{uid}", kind, uid)
        wrapper = _SINGULAR[kind]
        document = body.get(wrapper)
        if not isinstance(document, dict):
            raise RemoteFetchError(f"Response for {kind}/{uid} is missing '{wrapper}'", kind=kind, ref=uid)
        return document


def build_remote_client(config: RunnerConfig, transport: httpx.AsyncBaseTransport | None = None) -> RemoteApiClient:
    return RemoteApiClient(
        base_url=settings.remote_api_base_url,
        api_key=config.api_key,
        workspace_id=config.workspace_id,
        timeout=settings.REMOTE_API_TIMEOUT,
        transport=transport,
    )
