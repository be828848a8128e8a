"""Catalog entities for vaultsync.

Raw catalog records are JSON objects of the shape
``{"key": ..., "meta": {...}, "data": {...}}``. Each ``from_api`` classmethod
validates one record into a Pydantic model and raises
``pydantic.ValidationError`` when a required field is missing or mistyped.
"""

from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator

PDF_CONTENT_TYPE = "application/pdf"
EXCLUDED_ITEM_TYPES = frozenset({"attachment", "note"})


class Creator(BaseModel):
    model_config = {"extra": "ignore", "populate_by_name": True}

    creator_type: str = Field(alias="creatorType")
    first_name: Optional[str] = Field(default=None, alias="firstName")
    last_name: Optional[str] = Field(default=None, alias="lastName")
    name: Optional[str] = None


class Collection(BaseModel):
    """A named catalog collection. ``parent_key`` is None for roots."""

    model_config = {"extra": "ignore"}

    key: str = Field(min_length=1)
    name: str
    parent_key: Optional[str] = None
    item_count: int = 0

    @field_validator("parent_key", mode="before")
    @classmethod
    def _false_means_root(cls, value: Any) -> Any:
        # The API marks roots with `"parentCollection": false`
        if value is False or value == "":
            return None
        return value

    @classmethod
    def from_api(cls, raw: dict[str, Any]) -> "Collection":
        data = raw.get("data") or {}
        meta = raw.get("meta") or {}
        return cls.model_validate(
            {
                "key": raw.get("key") or data.get("key"),
                "name": data.get("name"),
                "parent_key": data.get("parentCollection", False),
                "item_count": meta.get("numItems", 0),
            }
        )


class Item(BaseModel):
    """A bibliographic record (never an attachment or a note)."""

    model_config = {"extra": "ignore"}

    key: str = Field(min_length=1)
    item_type: str
    title: str = ""
    creators: list[Creator] = Field(default_factory=list)
    date: str = ""
    abstract: str = ""
    collections: list[str] = Field(default_factory=list)
    url: Optional[str] = None
    doi: Optional[str] = None
    tags: list[str] = Field(default_factory=list)

    @classmethod
    def from_api(cls, raw: dict[str, Any]) -> "Item":
        data = raw.get("data") or {}
        return cls.model_validate(
            {
                "key": raw.get("key") or data.get("key"),
                "item_type": data.get("itemType"),
                "title": data.get("title") or "",
                "creators": data.get("creators") or [],
                "date": data.get("date") or "",
                "abstract": data.get("abstractNote") or "",
                "collections": data.get("collections") or [],
                "url": data.get("url") or None,
                "doi": data.get("DOI") or None,
                "tags": [t["tag"] for t in data.get("tags") or [] if t.get("tag")],
            }
        )


class Attachment(BaseModel):
    """A file attached to an item, stored under ``{storage}/{key}/{filename}``."""

    model_config = {"extra": "ignore"}

    key: str = Field(min_length=1)
    parent_key: Optional[str] = None
    content_type: Optional[str] = None
    filename: Optional[str] = None
    title: str = ""
    link_mode: Optional[str] = None

    @property
    def is_pdf(self) -> bool:
        """True if this attachment can be mirrored into the library."""
        return (
            self.content_type == PDF_CONTENT_TYPE
            and bool(self.filename)
            and bool(self.parent_key)
        )

    @classmethod
    def from_api(cls, raw: dict[str, Any]) -> "Attachment":
        data = raw.get("data") or {}
        return cls.model_validate(
            {
                "key": data.get("key") or raw.get("key"),
                "parent_key": data.get("parentItem") or None,
                "content_type": data.get("contentType") or None,
                "filename": data.get("filename") or None,
                "title": data.get("title") or "",
                "link_mode": data.get("linkMode"),
            }
        )


class CollectionTreeNode(BaseModel):
    """A collection placed in the library folder hierarchy."""

    key: str
    name: str
    path: str  # vault-relative, e.g. "Library/PhD/Forecasting"
    item_count: int = 0
    children: list["CollectionTreeNode"] = Field(default_factory=list)


CollectionTreeNode.model_rebuild()
