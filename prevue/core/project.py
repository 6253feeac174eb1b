"""Search project: PICO question, keyword sets, YAML loader and hashing."""

import hashlib
import json
from pathlib import Path
from typing import Literal, Optional

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator

CATEGORIES = ("population", "intervention", "comparison", "outcome")
TERM_LISTS = ("keywords", "controlled_vocabulary")


# ── PICO ─────────────────────────────────────────────────────────────


class PICO(BaseModel):
    """Population, Intervention, Comparison, Outcome."""

    model_config = ConfigDict(populate_by_name=True)

    population: list[str] = Field(default_factory=list, alias="p")
    intervention: list[str] = Field(default_factory=list, alias="i")
    comparison: list[str] = Field(default_factory=list, alias="c")
    outcome: list[str] = Field(default_factory=list, alias="o")

    @field_validator("population", "intervention", "comparison", "outcome", mode="before")
    @classmethod
    def string_to_list(cls, v):
        if v is None:
            return []
        if isinstance(v, str):
            return [v] if v.strip() else []
        return v


# ── Keyword Terms ────────────────────────────────────────────────────


class KeywordTerm(BaseModel):
    """Free-text keyword."""

    model_config = ConfigDict(populate_by_name=True)

    term: str
    active: bool = True
    source: Literal["ai", "manual"] = "manual"
    search_field: Optional[int] = Field(default=None, alias="searchField")


class VocabularyTerm(BaseModel):
    """Controlled-vocabulary term such as a MeSH heading."""

    term: str
    type: str = "MeSH"
    active: bool = True
    source: Literal["ai", "manual"] = "manual"


class ConceptKeywords(BaseModel):
    """Keywords and vocabulary terms for one PICO category."""

    keywords: list[KeywordTerm] = Field(default_factory=list)
    controlled_vocabulary: list[VocabularyTerm] = Field(default_factory=list)

    def active_keywords(self) -> list[KeywordTerm]:
        return [k for k in self.keywords if k.active and k.term.strip()]

    def active_vocabulary(self) -> list[VocabularyTerm]:
        return [v for v in self.controlled_vocabulary if v.active and v.term.strip()]

    def has_active_terms(self) -> bool:
        return bool(self.active_keywords() or self.active_vocabulary())


class KeywordSet(BaseModel):
    """Keyword lists for all four PICO categories."""

    population: ConceptKeywords = Field(default_factory=ConceptKeywords)
    intervention: ConceptKeywords = Field(default_factory=ConceptKeywords)
    comparison: ConceptKeywords = Field(default_factory=ConceptKeywords)
    outcome: ConceptKeywords = Field(default_factory=ConceptKeywords)

    def category(self, name: str) -> ConceptKeywords:
        _check_category(name)
        return getattr(self, name)

    @classmethod
    def from_generated(cls, payload: dict) -> "KeywordSet":
        """Build from a keyword-generation payload; every term starts active."""
        data = {}
        for name in CATEGORIES:
            entry = payload.get(name) or {}
            keywords = entry.get("keywords") if isinstance(entry.get("keywords"), list) else []
            vocab = (
                entry.get("controlled_vocabulary")
                if isinstance(entry.get("controlled_vocabulary"), list)
                else []
            )
            data[name] = {
                "keywords": [
                    {"term": t, "active": True, "source": "ai"}
                    for t in keywords
                    if isinstance(t, str)
                ],
                "controlled_vocabulary": [
                    {**v, "active": True, "source": "ai"} for v in vocab if isinstance(v, dict)
                ],
            }
        return cls.model_validate(data)


# ── Immutable Updates ────────────────────────────────────────────────


def _check_category(category: str) -> None:
    if category not in CATEGORIES:
        raise ValueError(f"Unknown PICO category '{category}' (valid: {', '.join(CATEGORIES)})")


def _replace_term(keywords: KeywordSet, category: str, list_name: str, index: int, changes):
    """Return a copy of ``keywords`` with one term replaced; nothing else is copied.

    ``changes`` maps the current term to the fields to update.
    """
    _check_category(category)
    if list_name not in TERM_LISTS:
        raise ValueError(f"Unknown term list '{list_name}' (valid: {', '.join(TERM_LISTS)})")

    concept = getattr(keywords, category)
    terms = list(getattr(concept, list_name))
    if not 0 <= index < len(terms):
        raise IndexError(f"{category}.{list_name} has no term at index {index}")

    terms[index] = terms[index].model_copy(update=changes(terms[index]))
    new_concept = concept.model_copy(update={list_name: terms})
    return keywords.model_copy(update={category: new_concept})


def toggle_term(keywords: KeywordSet, category: str, list_name: str, index: int) -> KeywordSet:
    return _replace_term(keywords, category, list_name, index, lambda t: {"active": not t.active})


def set_term_active(
    keywords: KeywordSet, category: str, list_name: str, index: int, active: bool
) -> KeywordSet:
    return _replace_term(keywords, category, list_name, index, lambda t: {"active": active})


def edit_term(
    keywords: KeywordSet,
    category: str,
    list_name: str,
    index: int,
    term: str | None = None,
    search_field: int | None = None,
) -> KeywordSet:
    """Change a term's text and/or (keywords only) its search field."""
    changes = {}
    if term is not None:
        if not term.strip():
            raise ValueError("Term text cannot be empty")
        changes["term"] = term.strip()
    if search_field is not None:
        if list_name != "keywords":
            raise ValueError("Only keywords carry a search field")
        changes["search_field"] = search_field
    if not changes:
        return keywords
    return _replace_term(keywords, category, list_name, index, lambda t: changes)


def add_term(
    keywords: KeywordSet, category: str, term: str, vocab_type: str | None = None
) -> KeywordSet:
    """Append a manual keyword, or a vocabulary term when ``vocab_type`` is given."""
    _check_category(category)
    if not term or not term.strip():
        raise ValueError("Term text cannot be empty")

    concept = getattr(keywords, category)
    if vocab_type:
        new = VocabularyTerm(term=term.strip(), type=vocab_type, source="manual")
        update = {"controlled_vocabulary": [*concept.controlled_vocabulary, new]}
    else:
        new = KeywordTerm(term=term.strip(), source="manual")
        update = {"keywords": [*concept.keywords, new]}
    return keywords.model_copy(update={category: concept.model_copy(update=update)})


# ── Search Project (top-level) ───────────────────────────────────────


class SearchProject(BaseModel):
    """A research question and the keyword sets used to search for it."""

    name: str
    research_question: str = ""
    pico: PICO = Field(default_factory=PICO)
    keywords: KeywordSet = Field(default_factory=KeywordSet)
    negative_keywords: list[str] = Field(default_factory=list)
    databases: list[str] = Field(default_factory=lambda: ["pubmed"])
    search_fields: dict[str, int | str] = Field(default_factory=dict)

    @field_validator("databases")
    @classmethod
    def at_least_one_database(cls, v: list[str]) -> list[str]:
        if not v:
            raise ValueError("Project must select at least one database")
        return v

    def keywords_hash(self) -> str:
        """SHA-256 of the keyword sets and exclusions (canonical JSON)."""
        return _canonical_hash({
            "keywords": self.keywords.model_dump(),
            "negative_keywords": self.negative_keywords,
        })


# ── Helpers ──────────────────────────────────────────────────────────


def _canonical_hash(data: dict) -> str:
    """Deterministic SHA-256 hash of a dict via sorted-key JSON."""
    blob = json.dumps(data, sort_keys=True, default=str).encode()
    return hashlib.sha256(blob).hexdigest()


def load_project(path: str | Path) -> SearchProject:
    """Load a YAML search project from disk and return a validated model."""
    path = Path(path)
    with open(path) as f:
        raw = yaml.safe_load(f)
    return SearchProject.model_validate(raw)
