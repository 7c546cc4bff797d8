"""Backend implementation over the content server's REST API."""

from __future__ import annotations

import logging
from typing import Any

import httpx
from pydantic import ValidationError

from specsync.changes import SpecChanges
from specsync.config import SPECSYNC_SERVER_URL
from specsync.exceptions import BackendError
from specsync.http_utils import create_client, request_with_retries
from specsync.schemas import ContentSpecEntity, PersistedNode, Tag, TopicEntity

logger = logging.getLogger(__name__)


class RestBackend:
    """Talks to the content server with an ``httpx.AsyncClient``.

    The REST API has no transactions, so failed runs are cleaned up with
    compensating deletes instead of ``rollback``.

    Args:
        base_url: Root URL of the REST API.
        client: Optional client for connection pooling. If not provided, one
            is created and closed by ``aclose``.
    """

    def __init__(self, base_url: str = SPECSYNC_SERVER_URL, *, client: httpx.AsyncClient | None = None) -> None:
        self.base_url = base_url.rstrip("/")
        self._owns_client = client is None
        self._client = client or create_client(self.base_url)

    async def __aenter__(self) -> RestBackend:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def _json(self, method: str, url: str, **kwargs: Any) -> Any:
        response = await request_with_retries(self._client, method, url, **kwargs)
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as exc:
            raise BackendError(f"Invalid JSON from {method} {url}: {exc}") from exc

    def is_rollback_supported(self) -> bool:
        return False

    async def rollback(self) -> None:
        raise BackendError("The REST backend does not support rollback")

    async def get_content_spec(self, spec_id: int) -> ContentSpecEntity:
        data = await self._json(
            "GET", f"/contentspecs/{spec_id}", on_404_message=f"Content spec {spec_id} does not exist"
        )
        return ContentSpecEntity.model_validate(data)

    async def create_content_spec(self, entity: ContentSpecEntity) -> ContentSpecEntity:
        data = await self._json("POST", "/contentspecs", json=entity.model_dump(mode="json", exclude_none=True))
        return ContentSpecEntity.model_validate(data)

    async def update_content_spec(self, entity: ContentSpecEntity) -> ContentSpecEntity:
        data = await self._json("PUT", f"/contentspecs/{entity.id}", json=entity.model_dump(mode="json"))
        return ContentSpecEntity.model_validate(data)

    async def delete_content_spec(self, spec_id: int) -> None:
        await request_with_retries(self._client, "DELETE", f"/contentspecs/{spec_id}")
        logger.info("Deleted content spec %s", spec_id)

    async def get_topic(self, topic_id: int, revision: int | None = None) -> TopicEntity:
        url = f"/topics/{topic_id}" if revision is None else f"/topics/{topic_id}/r/{revision}"
        data = await self._json("GET", url, on_404_message=f"Topic {topic_id} does not exist")
        # Loaded tags are the topic's current tags, not pending additions.
        tags = data.pop("tags", []) if isinstance(data, dict) else []
        entity = TopicEntity.model_validate(data)
        for tag in tags:
            entity.tags.add_item(Tag.model_validate(tag))
        return entity

    async def get_tags_by_name(self, name: str) -> list[Tag]:
        data = await self._json("GET", "/tags", params={"name": name})
        return [Tag.model_validate(item) for item in (data or {}).get("items", [])]

    async def save_topics(self, new_topics: list[TopicEntity], updated_topics: list[TopicEntity]) -> list[TopicEntity]:
        payload = {
            "new": [_topic_payload(topic) for topic in new_topics],
            "updated": [_topic_payload(topic) for topic in updated_topics],
        }
        data = await self._json("POST", "/topics/batch", json=payload)
        try:
            created = [TopicEntity.model_validate(item) for item in (data or {}).get("items", [])]
        except ValidationError as exc:
            raise BackendError(f"Malformed response from POST /topics/batch: {exc}") from exc
        logger.debug("Backend created %d topics", len(created))
        return created

    async def delete_topics(self, topic_ids: list[int]) -> None:
        await request_with_retries(
            self._client, "DELETE", "/topics", params={"ids": ",".join(str(topic_id) for topic_id in topic_ids)}
        )

    async def create_node(self, node: PersistedNode) -> PersistedNode:
        data = await self._json("POST", "/nodes", json=node.model_dump(mode="json", exclude_none=True))
        return PersistedNode.model_validate(data)

    async def update_nodes(self, changes: SpecChanges) -> bool:
        if changes.is_empty:
            logger.info("No content spec node changes to save")
            return True
        await self._json("PUT", "/nodes/batch", json=_changes_payload(changes))
        return True


def _topic_payload(topic: TopicEntity) -> dict[str, Any]:
    payload = topic.model_dump(mode="json", exclude={"tags"})
    payload["tags"] = {
        "add": [tag.id for tag in topic.tags.added],
        "remove": [tag.id for tag in topic.tags.removed],
        "keep": [tag.id for tag in topic.tags.items],
    }
    return payload


def _changes_payload(changes: SpecChanges) -> dict[str, Any]:
    related: dict[str, Any] = {}
    for node_id, edges in changes.edges.items():
        if not edges.has_changes:
            continue
        related[str(node_id)] = {
            "added": [edge.model_dump(mode="json", exclude={"id"}) for edge in edges.added],
            "updated": [edge.update_payload() for edge in edges.updated],
            "removed": [edge.id for edge in edges.removed],
        }
    return {
        "updated": [node.update_payload() for node in changes.nodes.updated],
        "removed": [node.id for node in changes.nodes.removed],
        "related": related,
    }
