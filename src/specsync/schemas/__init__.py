"""Shared schemas for specsync."""

from specsync.schemas.changeset import ChangeSet
from specsync.schemas.parsed import (
    Comment,
    ContentSpec,
    Level,
    LevelType,
    MetadataEntry,
    ParsedNode,
    Relationship,
    RelationshipCategory,
    SpecTopic,
)
from specsync.schemas.persisted import NodeType, PersistedNode, RelatedEdge, RelationshipType
from specsync.schemas.topic import (
    ContentSpecEntity,
    PropertyTag,
    SourceUrl,
    Tag,
    TopicEntity,
    User,
)

__all__ = [
    "ChangeSet",
    "Comment",
    "ContentSpec",
    "ContentSpecEntity",
    "Level",
    "LevelType",
    "MetadataEntry",
    "NodeType",
    "ParsedNode",
    "PersistedNode",
    "PropertyTag",
    "RelatedEdge",
    "Relationship",
    "RelationshipCategory",
    "RelationshipType",
    "SourceUrl",
    "SpecTopic",
    "Tag",
    "TopicEntity",
    "User",
]
