"""Backend topic, tag and content spec entities."""

from __future__ import annotations

from pydantic import BaseModel, Field

from specsync.config import SPECSYNC_DEFAULT_LOCALE, SPECSYNC_XML_DOCTYPE
from specsync.schemas.changeset import ChangeSet
from specsync.schemas.persisted import PersistedNode


class Tag(BaseModel):
    """A tag that can be applied to topics."""

    id: int
    name: str
    category_ids: list[int] = Field(default_factory=list)

    def in_category(self, category_id: int) -> bool:
        return category_id in self.category_ids


class PropertyTag(BaseModel):
    """A key/value property attached to a topic or content spec."""

    id: int
    value: str | None = None


class SourceUrl(BaseModel):
    """Source URL recorded against a topic."""

    url: str
    title: str | None = None
    description: str | None = None


class TopicEntity(BaseModel):
    """A topic as stored by the backend.

    Attributes:
        id: Database id, ``None`` until the topic has been created.
        revision: Revision of the topic this entity was loaded from.
        tags: Current tags plus pending additions and removals.
        properties: Property tags such as the CSP id and added-by user.
    """

    id: int | None = None
    revision: int | None = None
    title: str | None = None
    description: str | None = None
    xml: str = ""
    xml_doctype: str = SPECSYNC_XML_DOCTYPE
    locale: str = SPECSYNC_DEFAULT_LOCALE
    tags: ChangeSet[Tag] = Field(default_factory=ChangeSet[Tag])
    properties: list[PropertyTag] = Field(default_factory=list)
    source_urls: list[SourceUrl] = Field(default_factory=list)

    def get_property(self, property_id: int) -> str | None:
        for prop in self.properties:
            if prop.id == property_id:
                return prop.value
        return None

    def set_property(self, property_id: int, value: str | None) -> None:
        for prop in self.properties:
            if prop.id == property_id:
                prop.value = value
                return
        self.properties.append(PropertyTag(id=property_id, value=value))


class ContentSpecEntity(BaseModel):
    """Persisted content spec and its top-level nodes."""

    id: int | None = None
    title: str | None = None
    locale: str | None = None
    properties: list[PropertyTag] = Field(default_factory=list)
    children: list[PersistedNode] = Field(default_factory=list, exclude=True)


class User(BaseModel):
    """User requesting the save."""

    username: str
