"""Build the topic entities a content spec needs saved."""

from __future__ import annotations

import logging

from specsync.backend import Backend
from specsync.config import (
    SPECSYNC_ADDED_BY_PROPERTY_ID,
    SPECSYNC_CSP_PROPERTY_ID,
    SPECSYNC_DEFAULT_LOCALE,
    SPECSYNC_XML_DOCTYPE,
)
from specsync.exceptions import ProcessingError
from specsync.schemas import ChangeSet, SourceUrl, SpecTopic, Tag, TopicEntity
from specsync.tags import assign_writer_tag, reconcile_tags, resolve_tag, resolve_tags

logger = logging.getLogger(__name__)


async def build_topic_entity(
    backend: Backend,
    topic: SpecTopic,
    default_writer: str | None = None,
) -> TopicEntity | None:
    """Create, clone or load the topic entity for a spec topic and apply its changes.

    Args:
        backend: Backend used to look up topics and tags.
        topic: The spec topic to build the entity for.
        default_writer: Writer used when the topic does not name one.

    Returns:
        The entity if it needs saving, or None for duplicates and unchanged
        existing topics.

    Raises:
        TagLookupError: If the type, a tag or the writer cannot be resolved.
        ProcessingError: If the topic id has an unknown form.
    """
    # Duplicates share the entity of the topic they duplicate.
    if topic.is_duplicate_topic or topic.is_cloned_duplicate_topic:
        return None

    writer = topic.assigned_writer or default_writer

    if topic.is_new_topic:
        entity = await _new_topic_entity(backend, topic, writer)
    elif topic.is_cloned_topic:
        entity = await _cloned_topic_entity(backend, topic, writer)
    elif topic.is_existing_topic:
        entity = await _existing_topic_entity(backend, topic)
    else:
        raise ProcessingError(f"Creating a topic failed for {topic.describe()}.")

    changed = topic.is_new_topic or topic.is_cloned_topic

    add_tags = await resolve_tags(backend, topic.tags)
    remove_tags: list[Tag] = []
    if topic.is_cloned_topic:
        remove_tags = await resolve_tags(backend, topic.remove_tags)
    if reconcile_tags(topic, entity, add_tags, remove_tags):
        changed = True

    if not topic.is_existing_topic:
        await assign_writer_tag(backend, topic, entity, writer)
        if _add_source_urls(topic, entity):
            changed = True

    if not changed:
        logger.debug("No topic changes for %s", topic.describe())
        return None
    return entity


async def _new_topic_entity(backend: Backend, topic: SpecTopic, writer: str | None) -> TopicEntity:
    entity = TopicEntity(
        title=topic.title,
        description=topic.description,
        xml="",
        xml_doctype=SPECSYNC_XML_DOCTYPE,
        locale=SPECSYNC_DEFAULT_LOCALE,
    )

    if not topic.type:
        raise ProcessingError(f"No type specified for {topic.describe()}.")
    type_tag = await resolve_tag(backend, topic.type, what="type")
    entity.tags.add_new(type_tag)

    entity.set_property(SPECSYNC_CSP_PROPERTY_ID, topic.csp_key)
    if writer:
        entity.set_property(SPECSYNC_ADDED_BY_PROPERTY_ID, writer)
    return entity


async def _cloned_topic_entity(backend: Backend, topic: SpecTopic, writer: str | None) -> TopicEntity:
    source = await backend.get_topic(topic.cloned_from_id)
    logger.debug("Cloning topic %s for %s", source.id, topic.describe())

    properties = [
        prop.model_copy()
        for prop in source.properties
        if prop.id not in (SPECSYNC_CSP_PROPERTY_ID, SPECSYNC_ADDED_BY_PROPERTY_ID)
    ]
    entity = TopicEntity(
        title=source.title,
        description=source.description,
        xml=source.xml,
        xml_doctype=source.xml_doctype,
        locale=source.locale,
        tags=ChangeSet[Tag](items=[tag.model_copy() for tag in source.tags.current]),
        properties=properties,
        source_urls=[url.model_copy() for url in source.source_urls],
    )
    entity.set_property(SPECSYNC_CSP_PROPERTY_ID, topic.csp_key)
    if writer:
        entity.set_property(SPECSYNC_ADDED_BY_PROPERTY_ID, writer)
    return entity


async def _existing_topic_entity(backend: Backend, topic: SpecTopic) -> TopicEntity:
    if topic.db_id is None:
        raise ProcessingError(f"No database id for {topic.describe()}.")
    entity = await backend.get_topic(topic.db_id)
    entity.set_property(SPECSYNC_CSP_PROPERTY_ID, topic.csp_key)
    return entity


def _add_source_urls(topic: SpecTopic, entity: TopicEntity) -> bool:
    for url in topic.source_urls:
        entity.source_urls.append(SourceUrl(url=url))
    return bool(topic.source_urls)

