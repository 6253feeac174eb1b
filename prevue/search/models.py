"""Shared data models for search results."""

from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Author(BaseModel):
    """A single author as reported by a search source."""

    name: str


class Article(BaseModel):
    """A single article returned by a search source.

    Field aliases follow the wire shape the source adapters and export
    serializers exchange (``sourceDB``, ``uniqueId``, ``externalIds``, ...).
    """

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    title: str = ""
    authors: list[Author] = Field(default_factory=list)
    year: Optional[Union[int, str]] = None
    pubdate: Optional[str] = None
    venue: Optional[str] = None
    journal: Optional[str] = None
    source: Optional[str] = None
    doi: Optional[str] = None
    external_ids: dict[str, Optional[str]] = Field(default_factory=dict, alias="externalIds")
    abstract: Optional[str] = None
    source_db: str = Field(default="", alias="sourceDB")
    unique_id: Optional[str] = Field(default=None, alias="uniqueId")
    url: Optional[str] = None
    citation_count: Optional[int] = Field(default=None, alias="citationCount")
    fields_of_study: list[str] = Field(default_factory=list, alias="fieldsOfStudy")
    pmid: Optional[str] = None

    @field_validator("authors", mode="before")
    @classmethod
    def coerce_authors(cls, v):
        if v is None:
            return []
        if isinstance(v, (str, dict)):
            v = [v]
        coerced = []
        for a in v:
            if isinstance(a, str):
                if a.strip():
                    coerced.append({"name": a})
            elif a is not None:
                coerced.append(a)
        return coerced

    @field_validator("title", mode="before")
    @classmethod
    def none_title_to_empty(cls, v):
        return "" if v is None else v

    @field_validator("fields_of_study", mode="before")
    @classmethod
    def none_fields_to_empty(cls, v):
        return [] if v is None else v

    # ── Derived values ───────────────────────────────────────────

    def source_tokens(self) -> set[str]:
        """Source keys this record came from (``sourceDB`` split on ``;``)."""
        return {t.strip() for t in self.source_db.split(";") if t.strip()}

    def best_doi(self) -> Optional[str]:
        return self.doi or self.external_ids.get("DOI")

    def best_venue(self) -> Optional[str]:
        return self.venue or self.journal or self.source

    def display_year(self) -> Optional[Union[int, str]]:
        return self.year or self.pubdate

    def author_names(self) -> list[str]:
        return [a.name for a in self.authors if a.name]

    def to_record(self) -> dict:
        """Wire-shaped dict (camelCase keys, empty values dropped)."""
        return self.model_dump(by_alias=True, exclude_none=True)
