"""Structural checks a content spec must pass before it is saved."""

from __future__ import annotations

import logging

from specsync.backend import Backend
from specsync.exceptions import TagLookupError
from specsync.schemas import ContentSpec, SpecTopic, User
from specsync.tags import resolve_tag

logger = logging.getLogger(__name__)


class SpecValidator:
    """Checks the structural rules the processor relies on.

    ``pre_validate`` only looks at the parsed tree. ``post_validate`` also
    resolves types and writers when a backend is available.

    Args:
        backend: Optional backend used to resolve tag names.
    """

    def __init__(self, backend: Backend | None = None) -> None:
        self.backend = backend

    def pre_validate(self, content_spec: ContentSpec) -> bool:
        valid = True
        topics = content_spec.spec_topics
        ids = {topic.id for topic in topics}

        for topic in topics:
            if not _has_known_id_form(topic):
                logger.error("Invalid topic id '%s' for %s", topic.id, topic.describe())
                valid = False
                continue

            if topic.is_new_topic:
                if not topic.title:
                    logger.error("No title for %s", topic.describe())
                    valid = False
                if not topic.type:
                    logger.error("No type for %s", topic.describe())
                    valid = False

            if topic.is_duplicate_topic and "N" + topic.id[1:] not in ids:
                logger.error("No new topic N%s for duplicate %s", topic.id[1:], topic.describe())
                valid = False

            if topic.is_cloned_duplicate_topic and not any(
                other.endswith(topic.id[1:]) and not other.endswith(topic.id) for other in ids
            ):
                logger.error("No cloned topic %s for duplicate %s", topic.id[1:], topic.describe())
                valid = False

            if topic.revision is not None and not topic.is_existing_topic:
                logger.error("Only existing topics can pin a revision: %s", topic.describe())
                valid = False

        for relationship in content_spec.resolve_relationships():
            logger.error("Relationship target '%s' does not exist", relationship.secondary_id)
            valid = False

        return valid

    async def post_validate(self, content_spec: ContentSpec, user: User | None) -> bool:
        valid = True
        if content_spec.id is None and user is None:
            logger.error("A user is required to create a new content spec")
            valid = False

        for topic in content_spec.spec_topics:
            if not (topic.is_new_topic or topic.is_cloned_topic):
                continue
            writer = topic.assigned_writer or content_spec.assigned_writer
            if not writer:
                logger.error("No assigned writer for %s", topic.describe())
                valid = False
                continue
            if self.backend is None:
                continue
            names = [(writer, "assigned writer")]
            if topic.is_new_topic and topic.type:
                names.append((topic.type, "type"))
            for name, what in names:
                try:
                    await resolve_tag(self.backend, name, what=what)
                except TagLookupError as exc:
                    logger.error("%s (%s)", exc, topic.describe())
                    valid = False

        return valid


def _has_known_id_form(topic: SpecTopic) -> bool:
    return (
        topic.is_new_topic
        or topic.is_cloned_topic
        or topic.is_duplicate_topic
        or topic.is_cloned_duplicate_topic
        or topic.is_existing_topic
    )
