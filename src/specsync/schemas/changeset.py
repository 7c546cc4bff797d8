"""Change-tracking collection shared by nodes, edges and tags."""

from __future__ import annotations

from typing import Generic, TypeVar

from pydantic import BaseModel, Field

T = TypeVar("T", bound=BaseModel)


class ChangeSet(BaseModel, Generic[T]):
    """A collection that records which of its entries are new, updated or removed.

    ``items`` holds entries that are carried along unchanged. The backend
    applies ``added``, ``updated`` and ``removed`` in one call.
    """

    items: list[T] = Field(default_factory=list)
    added: list[T] = Field(default_factory=list)
    updated: list[T] = Field(default_factory=list)
    removed: list[T] = Field(default_factory=list)

    def add_item(self, item: T) -> None:
        self.items.append(item)

    def add_new(self, item: T) -> None:
        # Re-adding an entry that is pending removal keeps it instead.
        item_id = getattr(item, "id", None)
        if item_id is not None:
            for position, pending in enumerate(self.removed):
                if getattr(pending, "id", None) == item_id:
                    self.items.append(self.removed.pop(position))
                    return
        self.added.append(item)

    def add_updated(self, item: T) -> None:
        if not any(existing is item for existing in self.updated):
            self.updated.append(item)

    def add_removed(self, item: T) -> None:
        if not any(existing is item for existing in self.removed):
            self.removed.append(item)

    def discard(self, item_id: int) -> T | None:
        """Drop an entry from the unchanged/new lists and return it."""
        for bucket in (self.items, self.added):
            for position, item in enumerate(bucket):
                if getattr(item, "id", None) == item_id:
                    return bucket.pop(position)
        return None

    def contains(self, item_id: int) -> bool:
        return any(getattr(item, "id", None) == item_id for item in self.current)

    @property
    def current(self) -> list[T]:
        """Entries that will exist once the changes are applied."""
        return [*self.items, *self.updated, *self.added]

    @property
    def has_changes(self) -> bool:
        return bool(self.added or self.updated or self.removed)

    def change_count(self) -> int:
        return len(self.added) + len(self.updated) + len(self.removed)
