"""Staging area that saves every new and updated topic in one call."""

from __future__ import annotations

import logging

from specsync.backend import Backend
from specsync.config import SPECSYNC_CSP_PROPERTY_ID
from specsync.exceptions import BackendError
from specsync.schemas import SpecTopic, TopicEntity

logger = logging.getLogger(__name__)


class TopicPool:
    """Collects topic entities and persists them as a batch.

    After a successful ``save_pool`` the created topics carry database ids
    and can be mapped back onto their spec topics with ``initialise_from_pool``.
    """

    def __init__(self, backend: Backend, *, csp_property_id: int = SPECSYNC_CSP_PROPERTY_ID) -> None:
        self._backend = backend
        self._csp_property_id = csp_property_id
        self.new_topics: list[TopicEntity] = []
        self.updated_topics: list[TopicEntity] = []
        self._initialised = False

    def add_new(self, topic: TopicEntity) -> None:
        self.new_topics.append(topic)

    def add_updated(self, topic: TopicEntity) -> None:
        self.updated_topics.append(topic)

    def is_initialised(self) -> bool:
        return self._initialised

    def __len__(self) -> int:
        return len(self.new_topics) + len(self.updated_topics)

    async def save_pool(self) -> bool:
        """Send every pooled topic to the backend in one call.

        Returns:
            True on success. On failure the pool is emptied.
        """
        if not self.new_topics and not self.updated_topics:
            self._initialised = True
            return True

        try:
            created = await self._backend.save_topics(self.new_topics, self.updated_topics)
        except BackendError as exc:
            logger.error("Saving %d pooled topics failed: %s", len(self), exc)
            self.new_topics = []
            self.updated_topics = []
            self._initialised = False
            return False

        if len(created) != len(self.new_topics):
            logger.error(
                "Backend created %d topics but %d were pooled", len(created), len(self.new_topics)
            )
            self.new_topics = list(created)
            await self.rollback_pool()
            self.new_topics = []
            self.updated_topics = []
            self._initialised = False
            return False

        self.new_topics = list(created)
        self._initialised = True
        logger.info(
            "Saved topic pool: %d created, %d updated", len(self.new_topics), len(self.updated_topics)
        )
        return True

    def initialise_from_pool(self, topic: SpecTopic) -> None:
        """Copy the id assigned by the backend onto ``topic``.

        Only new and cloned topics are looked up. The revision is copied for
        topics that pin one.
        """
        if not self._initialised:
            return
        if not (topic.is_new_topic or topic.is_cloned_topic):
            return

        for entity in self.new_topics:
            if entity.get_property(self._csp_property_id) == topic.csp_key:
                topic.db_id = entity.id
                if topic.revision is not None:
                    topic.revision = entity.revision
                logger.debug("Initialised %s with topic id %s", topic.describe(), entity.id)
                return

    async def rollback_pool(self) -> None:
        """Delete every topic the pool created. Failures are logged."""
        created_ids = [entity.id for entity in self.new_topics if entity.id is not None]
        if not created_ids:
            return
        try:
            await self._backend.delete_topics(created_ids)
        except BackendError as exc:
            logger.error("Rolling back pooled topics %s failed: %s", created_ids, exc)
            return
        logger.warning("Rolled back %d pooled topics", len(created_ids))
        self.new_topics = []
        self._initialised = False
