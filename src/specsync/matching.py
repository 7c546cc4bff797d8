"""Decide whether a parsed node is the same element as a persisted node.

Nodes that were re-parsed from an already saved spec carry the persisted
node id as their unique id and are matched on it. Freshly authored nodes
are matched on the best semantic key available for their kind.
"""

from __future__ import annotations

from specsync.schemas import (
    Comment,
    Level,
    MetadataEntry,
    NodeType,
    PersistedNode,
    RelatedEdge,
    Relationship,
    RelationshipCategory,
    SpecTopic,
)


def _same_id(unique_id: str | None, persisted_id: int | None) -> bool:
    return unique_id is not None and persisted_id is not None and unique_id == str(persisted_id)


def topic_matches(topic: SpecTopic, node: PersistedNode) -> bool:
    if node.node_type != NodeType.TOPIC:
        return False

    if topic.has_persisted_id:
        return _same_id(topic.unique_id, node.id)

    if topic.revision is not None and topic.revision != node.entity_revision:
        return False

    return topic.db_id == node.entity_id


def level_matches(level: Level, node: PersistedNode) -> bool:
    if node.node_type in (NodeType.TOPIC, NodeType.COMMENT):
        return False

    if level.has_persisted_id:
        return _same_id(level.unique_id, node.id)

    if level.target_id is not None and level.target_id == node.target_id:
        return True

    return level.title == node.title


def comment_matches(comment: Comment, node: PersistedNode) -> bool:
    # Comments have no identity of their own, the first free one is claimed.
    return node.node_type == NodeType.COMMENT


def metadata_matches(metadata: MetadataEntry, node: PersistedNode) -> bool:
    return node.node_type == NodeType.META_DATA


def relationship_matches(relationship: Relationship, edge: RelatedEdge) -> bool:
    """Check whether an existing related-to edge represents ``relationship``."""
    if edge.related_node_type != NodeType.TOPIC:
        return False

    if relationship.relationship_type != edge.relationship_type:
        return False

    secondary = relationship.secondary
    if secondary is None:
        return False

    if secondary.has_persisted_id:
        return _same_id(secondary.unique_id, edge.related_id)

    if relationship.category == RelationshipCategory.TARGET:
        return secondary.target_id is not None and secondary.target_id == edge.related_target_id

    if isinstance(secondary, SpecTopic):
        return secondary.db_id == edge.related_entity_id

    return False
