"""Tests for building topic entities from spec topics."""

from __future__ import annotations

import pytest

from specsync.exceptions import NotFoundError, TagLookupError
from specsync.schemas import SpecTopic
from specsync.topics import build_topic_entity


def _tag_names(tags) -> set[str]:
    return {tag.name for tag in tags}


class TestNewTopic:
    """Tests for new topics."""

    @pytest.mark.asyncio
    async def test_new_concept_topic(self, backend) -> None:
        """Type and writer tags are added, CSP id and added-by properties set."""
        topic = SpecTopic(id="N1", unique_id="L4-N1", title="Intro", type="Concept", source_urls=["https://example.com"])

        entity = await build_topic_entity(backend, topic, "jdoe")

        assert entity is not None
        assert entity.id is None
        assert entity.title == "Intro"
        assert entity.xml == ""
        assert entity.xml_doctype == "DOCBOOK_45"
        assert _tag_names(entity.tags.added) == {"Concept", "jdoe"}
        assert entity.get_property(15) == "L4-N1"
        assert entity.get_property(14) == "jdoe"
        assert [url.url for url in entity.source_urls] == ["https://example.com"]

    @pytest.mark.asyncio
    async def test_topic_writer_overrides_default(self, backend) -> None:
        topic = SpecTopic(id="N1", title="Intro", type="Concept", assigned_writer="asmith")

        entity = await build_topic_entity(backend, topic, "jdoe")

        assert "asmith" in _tag_names(entity.tags.added)
        assert entity.get_property(14) == "asmith"

    @pytest.mark.asyncio
    async def test_unknown_type_fails(self, backend) -> None:
        topic = SpecTopic(id="N1", title="Intro", type="Reference")

        with pytest.raises(TagLookupError, match="type 'Reference'"):
            await build_topic_entity(backend, topic, "jdoe")

    @pytest.mark.asyncio
    async def test_unknown_tag_fails(self, backend) -> None:
        topic = SpecTopic(id="N1", title="Intro", type="Concept", tags=["Unknown"])

        with pytest.raises(TagLookupError):
            await build_topic_entity(backend, topic, "jdoe")


class TestClonedTopic:
    """Tests for cloned topics."""

    @pytest.mark.asyncio
    async def test_clone_drops_deprecated_and_old_writer(self, backend, source_topic) -> None:
        topic = SpecTopic(id="C20", remove_tags=["Deprecated"])

        entity = await build_topic_entity(backend, topic, "jdoe")

        assert entity is not None
        assert entity.id is None
        assert entity.title == "Configuring the server"
        assert entity.xml == "<section/>"
        assert _tag_names(entity.tags.removed) == {"Deprecated", "asmith"}
        assert _tag_names(entity.tags.current) == {"Concept", "jdoe"}

    @pytest.mark.asyncio
    async def test_clone_by_source_writer_keeps_writer_tag(self, backend, source_topic) -> None:
        """The writer tag is neither re-added nor removed when the writer is unchanged."""
        entity = await build_topic_entity(backend, SpecTopic(id="C20", unique_id="L1-C20"), "asmith")

        added = {tag.id for tag in entity.tags.added}
        removed = {tag.id for tag in entity.tags.removed}
        assert not added & removed
        assert 11 not in removed
        assert "asmith" in _tag_names(entity.tags.current)
        assert _tag_names(entity.tags.removed) == set()

    @pytest.mark.asyncio
    async def test_clone_replaces_identity_properties(self, backend, source_topic) -> None:
        entity = await build_topic_entity(backend, SpecTopic(id="C20"), "jdoe")

        assert entity.get_property(15) == "C20"
        assert entity.get_property(14) == "jdoe"
        assert entity.get_property(30) == "keep me"
        assert len(entity.properties) == 3

    @pytest.mark.asyncio
    async def test_clone_of_missing_topic(self, backend) -> None:
        with pytest.raises(NotFoundError):
            await build_topic_entity(backend, SpecTopic(id="C404"), "jdoe")


class TestExistingTopic:
    """Tests for existing and duplicate topics."""

    @pytest.mark.asyncio
    async def test_existing_topic_with_new_tag(self, backend, source_topic) -> None:
        topic = SpecTopic(id="20", unique_id="L7-20", tags=["Installation"])

        entity = await build_topic_entity(backend, topic, "jdoe")

        assert entity is not None
        assert entity.id == 20
        assert _tag_names(entity.tags.added) == {"Installation"}
        assert entity.tags.removed == []
        assert entity.get_property(15) == "L7-20"

    @pytest.mark.asyncio
    async def test_existing_topic_without_changes(self, backend, source_topic) -> None:
        """Tags already on the topic are not a change."""
        topic = SpecTopic(id="20", tags=["Concept"])

        assert await build_topic_entity(backend, topic, "jdoe") is None

    @pytest.mark.asyncio
    async def test_duplicates_have_no_entity(self, backend) -> None:
        assert await build_topic_entity(backend, SpecTopic(id="X1"), "jdoe") is None
        assert await build_topic_entity(backend, SpecTopic(id="XC20"), "jdoe") is None
