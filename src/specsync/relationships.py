"""Second pass that merges topic relationships into related-to edges."""

from __future__ import annotations

import logging

from specsync.changes import SpecChanges
from specsync.exceptions import ProcessingError
from specsync.matching import relationship_matches
from specsync.schemas import RelatedEdge, SpecTopic
from specsync.tree import IdentityMap

logger = logging.getLogger(__name__)


def merge_relationships(identity: IdentityMap, changes: SpecChanges) -> None:
    """Queue edge additions, updates and removals for every mapped topic.

    Runs after the tree merge so every secondary node already has an id.

    Raises:
        ProcessingError: If a relationship points at a node that is not in
            the identity map.
    """
    for parsed, node in identity.items():
        if not isinstance(parsed, SpecTopic):
            continue
        if node.id is None:
            raise ProcessingError(f"{parsed.describe()} was merged without a node id.")

        existing = list(node.related_to)
        if not parsed.relationships:
            if existing:
                edges = changes.edges_for(node.id)
                for edge in existing:
                    edges.add_removed(edge)
            continue

        edges = changes.edges_for(node.id)
        used: list[RelatedEdge] = []
        for relationship in parsed.relationships:
            if relationship.is_process_relationship:
                continue

            found = next(
                (
                    edge
                    for edge in existing
                    if not any(edge is other for other in used)
                    and relationship_matches(relationship, edge)
                ),
                None,
            )
            if found is not None:
                used.append(found)
                if found.assign("relationship_type", relationship.relationship_type):
                    edges.add_updated(found)
                else:
                    edges.add_item(found)
                continue

            secondary = relationship.secondary
            related = identity.get(secondary) if secondary is not None else None
            if related is None:
                raise ProcessingError(
                    f"Relationship from {parsed.describe()} to '{relationship.secondary_id}' "
                    "does not reference a node in this content spec."
                )
            edges.add_new(RelatedEdge.to_node(related, relationship.relationship_type))
            logger.debug(
                "New %s edge from node %s to node %s",
                relationship.relationship_type.value,
                node.id,
                related.id,
            )

        for edge in existing:
            if not any(edge is other for other in used):
                edges.add_removed(edge)
