"""Point duplicate topic references at the topic they duplicate."""

from __future__ import annotations

import logging

from specsync.exceptions import ProcessingError
from specsync.schemas import SpecTopic

logger = logging.getLogger(__name__)


def sync_duplicates(spec_topics: list[SpecTopic]) -> None:
    """Copy database ids onto ``X<n>`` and ``XC<n>`` topics.

    ``X<n>`` takes the id of ``N<n>``. ``XC<n>`` takes the id of the topic
    whose id ends with ``C<n>`` without being ``XC<n>`` itself. Must run
    after the topic pool assigned ids to new and cloned topics.

    Raises:
        ProcessingError: If a duplicate has no counterpart.
    """
    for topic in spec_topics:
        if topic.is_duplicate_topic:
            wanted = "N" + topic.id[1:]
            counterpart = next((other for other in spec_topics if other.id == wanted), None)
        elif topic.is_cloned_duplicate_topic:
            suffix = topic.id[1:]
            counterpart = next(
                (
                    other
                    for other in spec_topics
                    if other.id.endswith(suffix) and not other.id.endswith(topic.id)
                ),
                None,
            )
        else:
            continue

        if counterpart is None:
            raise ProcessingError(f"No topic found for duplicate {topic.describe()}.")
        topic.db_id = counterpart.db_id
        logger.debug("Synced duplicate %s to topic id %s", topic.id, topic.db_id)
