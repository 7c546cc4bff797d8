"""Tag reconciliation for topics built from a content spec."""

from __future__ import annotations

import logging
from typing import Iterable

from specsync.backend import Backend
from specsync.config import SPECSYNC_WRITER_CATEGORY_ID
from specsync.exceptions import TagLookupError
from specsync.schemas import SpecTopic, Tag, TopicEntity

logger = logging.getLogger(__name__)


async def resolve_tag(backend: Backend, name: str, *, what: str = "tag") -> Tag:
    """Resolve a tag name to exactly one tag.

    Raises:
        TagLookupError: If no tag or more than one tag has that name.
    """
    tags = await backend.get_tags_by_name(name)
    if len(tags) != 1:
        problem = "does not exist" if not tags else "is ambiguous"
        raise TagLookupError(f"The {what} '{name}' {problem}.")
    return tags[0]


async def resolve_tags(backend: Backend, names: Iterable[str]) -> list[Tag]:
    return [await resolve_tag(backend, name) for name in names]


def reconcile_tags(
    topic: SpecTopic,
    entity: TopicEntity,
    add_tags: list[Tag],
    remove_tags: list[Tag] | None = None,
    *,
    writer_category_id: int = SPECSYNC_WRITER_CATEGORY_ID,
) -> bool:
    """Apply the tag changes requested by a spec topic to its topic entity.

    The policy depends on where the topic came from: new topics get every
    requested tag, clones get the difference plus explicit removals and lose
    their previous writer tag, existing topics only ever gain tags.

    Returns:
        True if the entity's tags changed.
    """
    if topic.is_cloned_topic:
        return _reconcile_cloned_topic_tags(entity, add_tags, remove_tags or [], writer_category_id)
    if topic.is_existing_topic and topic.revision is None:
        return _reconcile_existing_topic_tags(entity, add_tags)
    if topic.is_new_topic:
        return _reconcile_new_topic_tags(entity, add_tags)
    return False


def _reconcile_new_topic_tags(entity: TopicEntity, add_tags: list[Tag]) -> bool:
    for tag in add_tags:
        entity.tags.add_new(tag)
    return bool(add_tags)


def _reconcile_cloned_topic_tags(
    entity: TopicEntity,
    add_tags: list[Tag],
    remove_tags: list[Tag],
    writer_category_id: int,
) -> bool:
    changed = False

    for tag in add_tags:
        if not entity.tags.contains(tag.id):
            entity.tags.add_new(tag)
            changed = True

    for tag in remove_tags:
        removed = entity.tags.discard(tag.id)
        if removed is not None:
            entity.tags.add_removed(removed)
            changed = True

    # The writer of the source topic is replaced by the clone's writer.
    for tag in list(entity.tags.current):
        if tag.in_category(writer_category_id):
            removed = entity.tags.discard(tag.id)
            if removed is not None:
                entity.tags.add_removed(removed)
                changed = True

    return changed


def _reconcile_existing_topic_tags(entity: TopicEntity, add_tags: list[Tag]) -> bool:
    # Tags set by other tooling are never removed here.
    changed = False
    for tag in add_tags:
        if not entity.tags.contains(tag.id):
            entity.tags.add_new(tag)
            changed = True
    return changed


async def assign_writer_tag(backend: Backend, topic: SpecTopic, entity: TopicEntity, writer: str | None) -> None:
    """Add the assigned writer tag to a new or cloned topic.

    Raises:
        TagLookupError: If the writer is missing or does not resolve to one tag.
    """
    if not writer:
        raise TagLookupError(f"No assigned writer for {topic.describe()}.")
    writer_tag = await resolve_tag(backend, writer, what="assigned writer")
    if not entity.tags.contains(writer_tag.id):
        entity.tags.add_new(writer_tag)
    logger.debug("Assigned writer %s to %s", writer, topic.describe())
