"""Parsed content spec tree models."""

from __future__ import annotations

import re
from enum import Enum
from typing import Annotated, Iterable, Iterator, Literal, Union

from pydantic import BaseModel, Field, model_validator

from specsync.schemas.persisted import NodeType, RelationshipType

# Unique ids that reference a persisted node start with a digit; parser
# generated ids are symbolic.
_PERSISTED_ID_RE = re.compile(r"^\d")
_NEW_TOPIC_RE = re.compile(r"^N\d*$")
_CLONED_TOPIC_RE = re.compile(r"^C\d+$")
_DUPLICATE_TOPIC_RE = re.compile(r"^X\d+$")
_CLONED_DUPLICATE_TOPIC_RE = re.compile(r"^XC\d+$")
_EXISTING_TOPIC_RE = re.compile(r"^\d+$")


class LevelType(str, Enum):
    """Kinds of levels a content spec can contain."""

    BASE = "BASE"
    CHAPTER = "CHAPTER"
    SECTION = "SECTION"
    APPENDIX = "APPENDIX"
    PART = "PART"
    PROCESS = "PROCESS"
    PREFACE = "PREFACE"

    @property
    def node_type(self) -> NodeType:
        # The base level is the content spec itself and is never stored as a node.
        return NodeType(self.value)


class RelationshipCategory(str, Enum):
    """How the secondary side of a relationship was referenced."""

    TOPIC = "topic"
    TARGET = "target"
    PROCESS = "process"


class SpecNodeBase(BaseModel):
    """Attributes shared by every parsed node."""

    unique_id: str | None = None
    line_number: int | None = None
    index: int | None = Field(default=None, exclude=True)

    @property
    def has_persisted_id(self) -> bool:
        """True when ``unique_id`` references a persisted node directly."""
        return self.unique_id is not None and bool(_PERSISTED_ID_RE.match(self.unique_id))

    def describe(self) -> str:
        location = f"line {self.line_number}" if self.line_number is not None else "unknown line"
        return f"{type(self).__name__} at {location}"


class Relationship(BaseModel):
    """Outgoing relationship of a spec topic."""

    category: RelationshipCategory = RelationshipCategory.TOPIC
    relationship_type: RelationshipType = RelationshipType.REFER_TO
    secondary_id: str
    secondary: SpecTopic | Level | None = Field(default=None, exclude=True, repr=False)

    @property
    def is_process_relationship(self) -> bool:
        return self.category == RelationshipCategory.PROCESS


class Comment(SpecNodeBase):
    kind: Literal["comment"] = "comment"
    text: str = ""


class MetadataEntry(SpecNodeBase):
    kind: Literal["metadata"] = "metadata"
    key: str
    value: str = ""


class SpecTopic(SpecNodeBase):
    """A topic reference inside a content spec.

    ``id`` carries the provenance of the topic: ``N``/``N<n>`` for a new
    topic, ``C<n>`` for a clone of topic ``n``, ``X<n>``/``XC<n>`` for
    duplicates of a new or cloned topic, and plain digits for an existing
    topic.
    """

    kind: Literal["topic"] = "topic"
    id: str
    db_id: int | None = None
    revision: int | None = None
    title: str | None = None
    description: str | None = None
    type: str | None = None
    assigned_writer: str | None = None
    tags: list[str] = Field(default_factory=list)
    remove_tags: list[str] = Field(default_factory=list)
    source_urls: list[str] = Field(default_factory=list)
    relationships: list[Relationship] = Field(default_factory=list)
    target_id: str | None = None
    internal_target_id: bool = False
    condition: str | None = None

    @model_validator(mode="after")
    def _default_db_id(self) -> SpecTopic:
        if self.db_id is None and self.is_existing_topic:
            self.db_id = int(self.id)
        return self

    @property
    def is_new_topic(self) -> bool:
        return bool(_NEW_TOPIC_RE.match(self.id))

    @property
    def is_cloned_topic(self) -> bool:
        return bool(_CLONED_TOPIC_RE.match(self.id))

    @property
    def is_duplicate_topic(self) -> bool:
        return bool(_DUPLICATE_TOPIC_RE.match(self.id))

    @property
    def is_cloned_duplicate_topic(self) -> bool:
        return bool(_CLONED_DUPLICATE_TOPIC_RE.match(self.id))

    @property
    def is_existing_topic(self) -> bool:
        return bool(_EXISTING_TOPIC_RE.match(self.id))

    @property
    def cloned_from_id(self) -> int:
        if not self.is_cloned_topic:
            raise ValueError(f"Topic {self.id} is not a cloned topic")
        return int(self.id[1:])

    @property
    def csp_key(self) -> str:
        """Value stored in the topic's CSP id property."""
        return self.unique_id or self.id

    def describe(self) -> str:
        return f"topic {self.id} ({super().describe()})"


class Level(SpecNodeBase):
    kind: Literal["level"] = "level"
    level_type: LevelType = LevelType.CHAPTER
    title: str = ""
    target_id: str | None = None
    internal_target_id: bool = False
    condition: str | None = None
    children: list[ParsedNode] = Field(default_factory=list)

    def describe(self) -> str:
        return f"{self.level_type.value.lower()} '{self.title}' ({super().describe()})"


ParsedNode = Annotated[
    Union[Level, SpecTopic, Comment, MetadataEntry],
    Field(discriminator="kind"),
]


def walk(nodes: Iterable[ParsedNode]) -> Iterator[ParsedNode]:
    """Yield nodes in preorder, descending into levels."""
    for node in nodes:
        yield node
        if isinstance(node, Level):
            yield from walk(node.children)


def assign_preorder_indexes(nodes: Iterable[ParsedNode], start: int = 0) -> int:
    """Number nodes by preorder position and return the next free index."""
    index = start
    for node in walk(nodes):
        node.index = index
        index += 1
    return index


class ContentSpec(BaseModel):
    """A parsed content specification.

    ``nodes`` holds the top-level metadata and comments, ``base_level`` the
    authored level hierarchy.
    """

    id: int | None = None
    title: str | None = None
    locale: str | None = None
    assigned_writer: str | None = None
    nodes: list[ParsedNode] = Field(default_factory=list)
    base_level: Level = Field(default_factory=lambda: Level(level_type=LevelType.BASE))

    @model_validator(mode="after")
    def _index_nodes(self) -> ContentSpec:
        self.reindex()
        return self

    def transformable_nodes(self) -> list[ParsedNode]:
        """Top-level nodes that map onto persisted nodes."""
        return [*self.nodes, *self.base_level.children]

    def preorder(self) -> Iterator[ParsedNode]:
        return walk(self.transformable_nodes())

    def reindex(self) -> None:
        assign_preorder_indexes(self.transformable_nodes())

    @property
    def spec_topics(self) -> list[SpecTopic]:
        return [node for node in self.preorder() if isinstance(node, SpecTopic)]

    def resolve_relationships(self) -> list[Relationship]:
        """Attach secondary nodes to relationships and return the unresolved ones."""
        topics: dict[str, SpecTopic] = {}
        targets: dict[str, SpecTopic | Level] = {}
        for node in self.preorder():
            if isinstance(node, SpecTopic):
                topics.setdefault(node.id, node)
            if isinstance(node, (SpecTopic, Level)) and node.target_id:
                targets.setdefault(node.target_id, node)

        unresolved: list[Relationship] = []
        for topic in self.spec_topics:
            for relationship in topic.relationships:
                if relationship.is_process_relationship or relationship.secondary is not None:
                    continue
                if relationship.category == RelationshipCategory.TARGET:
                    secondary = targets.get(relationship.secondary_id)
                else:
                    secondary = topics.get(relationship.secondary_id)
                if secondary is None:
                    unresolved.append(relationship)
                else:
                    relationship.secondary = secondary
        return unresolved


Relationship.model_rebuild()
Level.model_rebuild()
SpecTopic.model_rebuild()
ContentSpec.model_rebuild()
