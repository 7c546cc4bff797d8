"""Interfaces of the collaborators the processor talks to."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

from specsync.schemas import (
    ContentSpec,
    ContentSpecEntity,
    PersistedNode,
    Tag,
    TopicEntity,
    User,
)

if TYPE_CHECKING:
    from specsync.changes import SpecChanges


@runtime_checkable
class Backend(Protocol):
    """Structural interface for the content backend.

    Both ``RestBackend`` and test doubles satisfy this protocol. Every call
    either succeeds completely or raises; partial success is never reported.
    """

    def is_rollback_supported(self) -> bool: ...

    async def rollback(self) -> None: ...

    async def get_content_spec(self, spec_id: int) -> ContentSpecEntity: ...

    async def create_content_spec(self, entity: ContentSpecEntity) -> ContentSpecEntity: ...

    async def update_content_spec(self, entity: ContentSpecEntity) -> ContentSpecEntity: ...

    async def delete_content_spec(self, spec_id: int) -> None: ...

    async def get_topic(self, topic_id: int, revision: int | None = None) -> TopicEntity: ...

    async def get_tags_by_name(self, name: str) -> list[Tag]: ...

    async def save_topics(
        self, new_topics: list[TopicEntity], updated_topics: list[TopicEntity]
    ) -> list[TopicEntity]:
        """Create and update topics in one call.

        Returns:
            The created topics, in the order given, with their ids set.
        """
        ...

    async def delete_topics(self, topic_ids: list[int]) -> None: ...

    async def create_node(self, node: PersistedNode) -> PersistedNode: ...

    async def update_nodes(self, changes: SpecChanges) -> bool: ...


@runtime_checkable
class Validator(Protocol):
    """Checks a content spec before anything is written."""

    def pre_validate(self, content_spec: ContentSpec) -> bool: ...

    async def post_validate(self, content_spec: ContentSpec, user: User | None) -> bool: ...
