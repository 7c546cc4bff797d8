"""Backend representation of content spec nodes."""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, PrivateAttr


class NodeType(str, Enum):
    """Discriminator for persisted nodes."""

    TOPIC = "TOPIC"
    COMMENT = "COMMENT"
    META_DATA = "META_DATA"
    CHAPTER = "CHAPTER"
    SECTION = "SECTION"
    APPENDIX = "APPENDIX"
    PART = "PART"
    PROCESS = "PROCESS"
    PREFACE = "PREFACE"

    @property
    def is_level(self) -> bool:
        return self not in (NodeType.TOPIC, NodeType.COMMENT, NodeType.META_DATA)


class RelationshipType(str, Enum):
    """Kind of a topic relationship."""

    REFER_TO = "REFER_TO"
    PREREQUISITE = "PREREQUISITE"
    LINK_LIST = "LINK_LIST"
    NEXT = "NEXT"
    PREVIOUS = "PREVIOUS"


class TrackedModel(BaseModel):
    """Model that remembers which fields were assigned a different value."""

    _changed: set[str] = PrivateAttr(default_factory=set)

    def assign(self, name: str, value: Any) -> bool:
        """Set ``name`` to ``value`` if it differs and record the change."""
        if getattr(self, name) == value:
            return False
        setattr(self, name, value)
        self._changed.add(name)
        return True

    @property
    def changed_fields(self) -> frozenset[str]:
        return frozenset(self._changed)

    @property
    def is_changed(self) -> bool:
        return bool(self._changed)

    def mark_clean(self) -> None:
        self._changed.clear()

    def update_payload(self) -> dict[str, Any]:
        """Serialize the id plus every changed field."""
        return self.model_dump(mode="json", include={"id", *self._changed})


class RelatedEdge(TrackedModel):
    """Directed related-to edge from one persisted node to another."""

    id: int | None = None
    related_id: int
    related_node_type: NodeType = NodeType.TOPIC
    related_entity_id: int | None = None
    related_target_id: str | None = None
    relationship_type: RelationshipType

    @classmethod
    def to_node(cls, node: PersistedNode, relationship_type: RelationshipType) -> RelatedEdge:
        if node.id is None:
            raise ValueError("Related nodes must have a durable id")
        return cls(
            related_id=node.id,
            related_node_type=node.node_type,
            related_entity_id=node.entity_id,
            related_target_id=node.target_id,
            relationship_type=relationship_type,
        )


class PersistedNode(TrackedModel):
    """One element of a persisted content spec tree.

    Sibling order is carried by ``previous_node_id``/``next_node_id``;
    ``children`` is only populated when loading and is never sent back.
    """

    id: int | None = None
    node_type: NodeType
    title: str | None = None
    target_id: str | None = None
    condition: str | None = None
    additional_text: str | None = None
    entity_id: int | None = None
    entity_revision: int | None = None
    previous_node_id: int | None = None
    next_node_id: int | None = None
    parent_id: int | None = None
    content_spec_id: int | None = None
    children: list[PersistedNode] = Field(default_factory=list, exclude=True)
    related_to: list[RelatedEdge] = Field(default_factory=list, exclude=True)

    def __repr__(self) -> str:
        return f"PersistedNode(id={self.id!r}, node_type={self.node_type.value}, title={self.title!r})"

    __str__ = __repr__
