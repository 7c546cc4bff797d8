"""Reconcile the parsed node tree with the persisted node tree."""

from __future__ import annotations

import logging
from typing import Iterable, Iterator

from specsync.backend import Backend
from specsync.changes import SpecChanges
from specsync.exceptions import ProcessingError
from specsync.matching import comment_matches, level_matches, metadata_matches, topic_matches
from specsync.merge import merge_comment, merge_level, merge_metadata, merge_topic
from specsync.schemas import (
    Comment,
    ContentSpecEntity,
    Level,
    MetadataEntry,
    NodeType,
    ParsedNode,
    PersistedNode,
    SpecTopic,
)

logger = logging.getLogger(__name__)


class IdentityMap:
    """Parsed node to persisted node pairs for one run, keyed by preorder index."""

    def __init__(self) -> None:
        self._pairs: dict[int, tuple[ParsedNode, PersistedNode]] = {}

    def record(self, parsed: ParsedNode, node: PersistedNode) -> None:
        if parsed.index is None:
            raise ProcessingError(f"{parsed.describe()} has no index; reindex the content spec first.")
        self._pairs[parsed.index] = (parsed, node)

    def get(self, parsed: ParsedNode) -> PersistedNode | None:
        if parsed.index is None:
            return None
        pair = self._pairs.get(parsed.index)
        return pair[1] if pair is not None else None

    def __contains__(self, parsed: ParsedNode) -> bool:
        return self.get(parsed) is not None

    def __len__(self) -> int:
        return len(self._pairs)

    def items(self) -> Iterator[tuple[ParsedNode, PersistedNode]]:
        for index in sorted(self._pairs):
            yield self._pairs[index]


def _placeholder_type(child: ParsedNode) -> NodeType:
    if isinstance(child, SpecTopic):
        return NodeType.TOPIC
    if isinstance(child, Level):
        return child.level_type.node_type
    if isinstance(child, Comment):
        return NodeType.COMMENT
    return NodeType.META_DATA


def _matches(child: ParsedNode, node: PersistedNode) -> bool:
    if isinstance(child, SpecTopic):
        return topic_matches(child, node)
    if isinstance(child, Level):
        return node.node_type.is_level and level_matches(child, node)
    if isinstance(child, Comment):
        return comment_matches(child, node)
    return metadata_matches(child, node)


def _merge(child: ParsedNode, node: PersistedNode) -> bool:
    if isinstance(child, SpecTopic):
        return merge_topic(child, node)
    if isinstance(child, Level):
        return merge_level(child, node)
    if isinstance(child, Comment):
        return merge_comment(child, node)
    return merge_metadata(child, node)


def _contains(nodes: Iterable[PersistedNode], node: PersistedNode) -> bool:
    return any(existing is node for existing in nodes)


class TreeReconciler:
    """Merges parsed children into persisted children, level by level.

    Placeholders for unmatched parsed nodes are created on the backend as
    soon as they are needed so that sibling links can use their ids. All
    other changes are queued on ``changes`` and sent in one update later.
    """

    def __init__(self, backend: Backend, changes: SpecChanges | None = None) -> None:
        self._backend = backend
        self.changes = changes if changes is not None else SpecChanges()
        self.identity = IdentityMap()

    async def merge_children(
        self,
        parsed_children: list[ParsedNode],
        persisted_children: list[PersistedNode],
        parent: PersistedNode | None,
        spec: ContentSpecEntity,
    ) -> IdentityMap:
        """Merge one parent's children and recurse into levels.

        Args:
            parsed_children: Parsed children in authored order.
            persisted_children: Children currently stored under ``parent``.
            parent: The parent node, or None for the top of the content spec.
            spec: The owning content spec entity; must already have an id.

        Returns:
            The identity map, shared across the whole recursion.
        """
        processed: list[PersistedNode] = []
        previous: PersistedNode | None = None
        parent_id = parent.id if parent is not None else None

        for child in parsed_children:
            node = self._claim(child, persisted_children, processed)
            if node is None:
                node = await self._create_placeholder(child)
            processed.append(node)

            _merge(child, node)

            node.assign("previous_node_id", previous.id if previous is not None else None)
            if previous is not None:
                previous.assign("next_node_id", node.id)
            node.assign("parent_id", parent_id)
            node.assign("content_spec_id", spec.id)

            if not isinstance(child, MetadataEntry):
                self.identity.record(child, node)

            if isinstance(child, Level):
                await self.merge_children(child.children, node.children, node, spec)

            previous = node

        if previous is not None:
            previous.assign("next_node_id", None)

        for node in persisted_children:
            if not _contains(processed, node):
                logger.debug("Removing %s", node)
                self.changes.nodes.add_removed(node)

        for node in processed:
            if node.is_changed:
                self.changes.nodes.add_updated(node)

        return self.identity

    def _claim(
        self,
        child: ParsedNode,
        persisted_children: list[PersistedNode],
        processed: list[PersistedNode],
    ) -> PersistedNode | None:
        for node in persisted_children:
            if _contains(processed, node):
                continue
            if _matches(child, node):
                logger.debug("Matched %s to %s", child.describe(), node)
                return node
        return None

    async def _create_placeholder(self, child: ParsedNode) -> PersistedNode:
        node = await self._backend.create_node(PersistedNode(node_type=_placeholder_type(child)))
        if node.id is None:
            raise ProcessingError(f"Creating a node for {child.describe()} returned no id.")
        node.mark_clean()
        logger.debug("Created placeholder %s for %s", node, child.describe())
        return node
