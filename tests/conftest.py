"""Test setup for specsync."""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from specsync.changes import SpecChanges  # noqa: E402
from specsync.exceptions import BackendError, NotFoundError  # noqa: E402
from specsync.schemas import (  # noqa: E402
    ContentSpecEntity,
    NodeType,
    PersistedNode,
    PropertyTag,
    RelatedEdge,
    Tag,
    TopicEntity,
)

WRITER_CATEGORY = 12


def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers for pytest."""
    config.addinivalue_line(
        "markers",
        "integration: marks tests that run the whole processor against the in-memory backend",
    )


class InMemoryBackend:
    """Backend double that keeps everything in dicts.

    Node changes sent through ``update_nodes`` are applied to the stored
    nodes, so a second run sees what the first one saved.
    """

    def __init__(self) -> None:
        self.tags: dict[str, list[Tag]] = {}
        self.topics: dict[int, TopicEntity] = {}
        self.specs: dict[int, ContentSpecEntity] = {}
        self.nodes: dict[int, PersistedNode] = {}
        self.edges: dict[int, list[RelatedEdge]] = {}
        self.calls: list[str] = []
        self.rollback_supported = False
        self.rolled_back = False
        self.fail_save_topics = False
        self.fail_update_nodes = False
        self._next_id = 1000

    # Test helpers

    def _new_id(self) -> int:
        self._next_id += 1
        return self._next_id

    def add_tag(self, tag_id: int, name: str, *categories: int) -> Tag:
        tag = Tag(id=tag_id, name=name, category_ids=list(categories))
        self.tags.setdefault(name, []).append(tag)
        return tag

    def add_topic(self, topic: TopicEntity) -> TopicEntity:
        assert topic.id is not None
        self.topics[topic.id] = topic.model_copy(deep=True)
        return topic

    def add_spec(self, title: str = "Guide", locale: str = "en-US") -> int:
        spec_id = self._new_id()
        self.specs[spec_id] = ContentSpecEntity(id=spec_id, title=title, locale=locale)
        return spec_id

    def add_node(
        self, spec_id: int, node_type: NodeType, parent_id: int | None = None, **fields: object
    ) -> PersistedNode:
        """Append a node as the last child of ``parent_id``."""
        siblings = self._children(spec_id, parent_id)
        node = PersistedNode(
            id=fields.pop("id", None) or self._new_id(),
            node_type=node_type,
            parent_id=parent_id,
            content_spec_id=spec_id,
            previous_node_id=siblings[-1].id if siblings else None,
            **fields,
        )
        if siblings:
            siblings[-1].next_node_id = node.id
        self.nodes[node.id] = node
        return node

    def add_edge(self, node_id: int, edge: RelatedEdge) -> RelatedEdge:
        self.edges.setdefault(node_id, []).append(edge)
        return edge

    @property
    def writes(self) -> list[str]:
        return list(self.calls)

    def children_titles(self, spec_id: int, parent_id: int | None = None) -> list[str | None]:
        return [node.title for node in self._children(spec_id, parent_id)]

    def _children(self, spec_id: int, parent_id: int | None) -> list[PersistedNode]:
        nodes = [
            node
            for node in self.nodes.values()
            if node.content_spec_id == spec_id and node.parent_id == parent_id
        ]
        by_id = {node.id: node for node in nodes}
        ordered: list[PersistedNode] = []
        current = next((node for node in nodes if node.previous_node_id is None), None)
        while current is not None and current not in ordered:
            ordered.append(current)
            current = by_id.get(current.next_node_id)
        ordered.extend(node for node in nodes if node not in ordered)
        return ordered

    def _load(self, node: PersistedNode) -> PersistedNode:
        loaded = node.model_copy(deep=True)
        loaded.mark_clean()
        loaded.children = [self._load(child) for child in self._children(node.content_spec_id, node.id)]
        loaded.related_to = [edge.model_copy(deep=True) for edge in self.edges.get(node.id, [])]
        return loaded

    def _remove_node(self, node_id: int) -> None:
        node = self.nodes.pop(node_id, None)
        self.edges.pop(node_id, None)
        if node is None:
            return
        for child in [child for child in self.nodes.values() if child.parent_id == node_id]:
            self._remove_node(child.id)

    # Backend protocol

    def is_rollback_supported(self) -> bool:
        return self.rollback_supported

    async def rollback(self) -> None:
        self.rolled_back = True

    async def get_content_spec(self, spec_id: int) -> ContentSpecEntity:
        if spec_id not in self.specs:
            raise NotFoundError(f"Content spec {spec_id} does not exist")
        entity = self.specs[spec_id].model_copy(deep=True)
        entity.children = [self._load(node) for node in self._children(spec_id, None)]
        return entity

    async def create_content_spec(self, entity: ContentSpecEntity) -> ContentSpecEntity:
        self.calls.append("create_content_spec")
        spec_id = self._new_id()
        stored = entity.model_copy(update={"id": spec_id, "children": []}, deep=True)
        self.specs[spec_id] = stored
        return stored.model_copy(deep=True)

    async def update_content_spec(self, entity: ContentSpecEntity) -> ContentSpecEntity:
        self.calls.append("update_content_spec")
        stored = entity.model_copy(update={"children": []}, deep=True)
        self.specs[entity.id] = stored
        return stored.model_copy(deep=True)

    async def delete_content_spec(self, spec_id: int) -> None:
        self.calls.append("delete_content_spec")
        self.specs.pop(spec_id, None)
        for node_id in [node.id for node in self.nodes.values() if node.content_spec_id == spec_id]:
            self._remove_node(node_id)

    async def get_topic(self, topic_id: int, revision: int | None = None) -> TopicEntity:
        if topic_id not in self.topics:
            raise NotFoundError(f"Topic {topic_id} does not exist")
        return self.topics[topic_id].model_copy(deep=True)

    async def get_tags_by_name(self, name: str) -> list[Tag]:
        return [tag.model_copy() for tag in self.tags.get(name, [])]

    async def save_topics(self, new_topics: list[TopicEntity], updated_topics: list[TopicEntity]) -> list[TopicEntity]:
        self.calls.append("save_topics")
        if self.fail_save_topics:
            raise BackendError("save_topics failed")
        created = []
        for topic in new_topics:
            topic_id = self._new_id()
            stored = topic.model_copy(update={"id": topic_id, "revision": 1}, deep=True)
            self.topics[topic_id] = stored
            created.append(stored.model_copy(deep=True))
        for topic in updated_topics:
            self.topics[topic.id] = topic.model_copy(deep=True)
        return created

    async def delete_topics(self, topic_ids: list[int]) -> None:
        self.calls.append("delete_topics")
        for topic_id in topic_ids:
            self.topics.pop(topic_id, None)

    async def create_node(self, node: PersistedNode) -> PersistedNode:
        self.calls.append("create_node")
        stored = node.model_copy(update={"id": self._new_id()}, deep=True)
        stored.mark_clean()
        self.nodes[stored.id] = stored
        return stored.model_copy(deep=True)

    async def update_nodes(self, changes: SpecChanges) -> bool:
        self.calls.append("update_nodes")
        if self.fail_update_nodes:
            return False
        for node in changes.nodes.updated:
            stored = self.nodes[node.id]
            for name in node.changed_fields:
                setattr(stored, name, getattr(node, name))
        for node in changes.nodes.removed:
            self._remove_node(node.id)
        for node_id, edges in changes.edges.items():
            current = self.edges.setdefault(node_id, [])
            removed_ids = {edge.id for edge in edges.removed}
            current[:] = [edge for edge in current if edge.id not in removed_ids]
            for edge in edges.updated:
                for stored_edge in current:
                    if stored_edge.id == edge.id:
                        stored_edge.relationship_type = edge.relationship_type
            for edge in edges.added:
                current.append(edge.model_copy(update={"id": self._new_id()}, deep=True))
        return True


@pytest.fixture
def backend() -> InMemoryBackend:
    """In-memory backend seeded with type, tag and writer tags."""
    memory = InMemoryBackend()
    memory.add_tag(1, "Concept")
    memory.add_tag(2, "Task")
    memory.add_tag(3, "Deprecated")
    memory.add_tag(4, "Installation")
    memory.add_tag(10, "jdoe", WRITER_CATEGORY)
    memory.add_tag(11, "asmith", WRITER_CATEGORY)
    return memory


@pytest.fixture
def source_topic(backend: InMemoryBackend) -> TopicEntity:
    """An existing topic that carries a deprecated tag and a writer tag."""
    topic = TopicEntity(
        id=20,
        revision=3,
        title="Configuring the server",
        description="How to configure",
        xml="<section/>",
        properties=[
            PropertyTag(id=15, value="old-unique-id"),
            PropertyTag(id=14, value="asmith"),
            PropertyTag(id=30, value="keep me"),
        ],
    )
    for name in ("Concept", "Deprecated", "asmith"):
        topic.tags.add_item(backend.tags[name][0])
    return backend.add_topic(topic)
