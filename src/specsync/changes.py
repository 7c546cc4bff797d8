"""Pending node and edge changes for one processing run."""

from __future__ import annotations

from pydantic import BaseModel, Field

from specsync.schemas import ChangeSet, PersistedNode, RelatedEdge


class SpecChanges(BaseModel):
    """Everything the final batched update sends to the backend.

    Attributes:
        nodes: Updated and removed content spec nodes.
        edges: Related-to edge changes keyed by the id of the owning node.
    """

    nodes: ChangeSet[PersistedNode] = Field(default_factory=ChangeSet[PersistedNode])
    edges: dict[int, ChangeSet[RelatedEdge]] = Field(default_factory=dict)

    def edges_for(self, node_id: int) -> ChangeSet[RelatedEdge]:
        if node_id not in self.edges:
            self.edges[node_id] = ChangeSet[RelatedEdge]()
        return self.edges[node_id]

    @property
    def is_empty(self) -> bool:
        return not self.nodes.has_changes and not any(
            edges.has_changes for edges in self.edges.values()
        )

    def summary(self) -> str:
        edge_changes = sum(edges.change_count() for edges in self.edges.values())
        return (
            f"{len(self.nodes.updated)} nodes updated, "
            f"{len(self.nodes.removed)} nodes removed, "
            f"{edge_changes} relationship changes"
        )
