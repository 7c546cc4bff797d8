"""Tests for the field merger."""

from __future__ import annotations

from specsync.merge import merge_comment, merge_level, merge_metadata, merge_topic
from specsync.schemas import Comment, Level, LevelType, MetadataEntry, NodeType, PersistedNode, SpecTopic


def _topic_node(**fields: object) -> PersistedNode:
    return PersistedNode(id=100, node_type=NodeType.TOPIC, entity_id=5, **fields)


class TestMergeTopic:
    """Tests for merge_topic."""

    def test_title_only_change(self) -> None:
        """Only the changed title ends up in the update payload."""
        node = _topic_node(title="Old", condition="beta")
        topic = SpecTopic(id="5", title="New", condition="beta")

        assert merge_topic(topic, node)
        assert node.changed_fields == {"title"}
        assert node.update_payload() == {"id": 100, "title": "New"}

    def test_no_change_when_equal(self) -> None:
        """Merging identical values leaves the node clean."""
        node = _topic_node(title="Same")

        assert not merge_topic(SpecTopic(id="5", title="Same"), node)
        assert not node.is_changed

    def test_internal_target_id_is_not_stored(self) -> None:
        """Parser generated target ids are skipped."""
        node = _topic_node()
        topic = SpecTopic(id="5", target_id="T-generated", internal_target_id=True)

        merge_topic(topic, node)

        assert node.target_id is None
        assert "target_id" not in node.changed_fields

    def test_authored_target_id_is_stored(self) -> None:
        node = _topic_node()
        merge_topic(SpecTopic(id="5", target_id="install"), node)

        assert node.target_id == "install"

    def test_revision_can_be_removed(self) -> None:
        """Dropping a revision pin is a real change."""
        node = _topic_node(entity_revision=4)

        assert merge_topic(SpecTopic(id="5"), node)
        assert node.entity_revision is None
        assert "entity_revision" in node.changed_fields

    def test_entity_id_follows_spec_topic(self) -> None:
        node = PersistedNode(id=100, node_type=NodeType.TOPIC)
        merge_topic(SpecTopic(id="N1", db_id=42), node)

        assert node.entity_id == 42


class TestMergeOtherNodes:
    """Tests for merge_level, merge_comment and merge_metadata."""

    def test_level_type_and_title(self) -> None:
        node = PersistedNode(id=7, node_type=NodeType.CHAPTER, title="Intro")
        level = Level(level_type=LevelType.APPENDIX, title="Intro")

        assert merge_level(level, node)
        assert node.node_type == NodeType.APPENDIX
        assert node.changed_fields == {"node_type"}

    def test_comment_text(self) -> None:
        node = PersistedNode(id=8, node_type=NodeType.COMMENT, additional_text="# old")

        assert merge_comment(Comment(text="# new"), node)
        assert node.additional_text == "# new"

    def test_metadata_key_and_value(self) -> None:
        node = PersistedNode(id=9, node_type=NodeType.META_DATA, title="Title", additional_text="Guide")

        assert not merge_metadata(MetadataEntry(key="Title", value="Guide"), node)
        assert merge_metadata(MetadataEntry(key="Title", value="Handbook"), node)
        assert node.update_payload() == {"id": 9, "additional_text": "Handbook"}
