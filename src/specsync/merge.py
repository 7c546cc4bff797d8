"""Copy parsed node fields onto persisted nodes.

Every merge goes through ``PersistedNode.assign`` so only values that
actually differ end up in the update sent to the backend.
"""

from __future__ import annotations

from specsync.schemas import Comment, Level, MetadataEntry, PersistedNode, SpecTopic


def _merge_target_id(target_id: str | None, internal: bool, node: PersistedNode) -> None:
    # Parser generated target ids are not authored and must not be stored.
    if internal:
        return
    node.assign("target_id", target_id)


def merge_topic(topic: SpecTopic, node: PersistedNode) -> bool:
    """Merge a spec topic into a topic node.

    Returns:
        True if the node now has pending changes.
    """
    node.assign("title", topic.title)
    _merge_target_id(topic.target_id, topic.internal_target_id, node)
    node.assign("condition", topic.condition)
    node.assign("entity_id", topic.db_id)
    # A revision of None means "latest" and is a valid value to switch to.
    node.assign("entity_revision", topic.revision)
    return node.is_changed


def merge_level(level: Level, node: PersistedNode) -> bool:
    node.assign("node_type", level.level_type.node_type)
    node.assign("title", level.title)
    _merge_target_id(level.target_id, level.internal_target_id, node)
    node.assign("condition", level.condition)
    return node.is_changed


def merge_comment(comment: Comment, node: PersistedNode) -> bool:
    node.assign("additional_text", comment.text)
    return node.is_changed


def merge_metadata(metadata: MetadataEntry, node: PersistedNode) -> bool:
    node.assign("title", metadata.key)
    node.assign("additional_text", metadata.value)
    return node.is_changed
