"""Database syntax table: YAML loader and pydantic models."""

import logging
from collections.abc import Callable
from functools import lru_cache
from pathlib import Path

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path(__file__).resolve().parent / "databases.yaml"

UNIFIED_SEARCH_FIELDS = {
    1: "Title/Abstract",
    2: "Title Only",
    3: "Abstract Only",
    4: "All Fields",
}

Renderer = Callable[[str, str], str]


# ── Syntax Rules ─────────────────────────────────────────────────────


class DatabaseSyntax(BaseModel):
    """How one database spells phrases, vocabulary terms and operators."""

    model_config = ConfigDict(populate_by_name=True)

    phrase_template: str = Field(alias="phrase")
    field_phrases: dict[str, str] = Field(default_factory=dict)
    vocabulary: dict[str, str] = Field(default_factory=dict)
    separator: str = " AND "
    not_operator: str = Field(default="NOT", alias="not")

    @field_validator("vocabulary")
    @classmethod
    def lowercase_vocabulary_types(cls, v: dict[str, str]) -> dict[str, str]:
        return {k.lower(): t for k, t in v.items()}

    @field_validator("phrase_template")
    @classmethod
    def phrase_has_term(cls, v: str) -> str:
        if "{term}" not in v:
            raise ValueError(f"Phrase template must contain '{{term}}': {v!r}")
        return v

    def phrase(self, term: str, field: str = "") -> str:
        """Render a free-text keyword restricted to ``field``."""
        template = self.field_phrases.get(field, self.phrase_template)
        return template.format(term=term, field=field)

    def renderer_for(self, vocab_type: str | None) -> Renderer:
        """Renderer for a controlled-vocabulary type, falling back to phrase."""
        template = self.vocabulary.get((vocab_type or "").lower())
        if template is None:
            return self.phrase
        return lambda term, field="": template.format(term=term, field=field)

    def vocabulary_term(self, term: str, vocab_type: str | None, field: str = "") -> str:
        return self.renderer_for(vocab_type)(term, field)


# ── Database Entry ───────────────────────────────────────────────────


class DatabaseConfig(BaseModel):
    """One bibliographic database: display name, search fields, syntax."""

    key: str = ""
    name: str
    search_fields: dict[int, str]
    default_field: str
    syntax: DatabaseSyntax

    @field_validator("search_fields")
    @classmethod
    def unified_field_numbers(cls, v: dict[int, str]) -> dict[int, str]:
        unknown = sorted(set(v) - set(UNIFIED_SEARCH_FIELDS))
        if unknown:
            raise ValueError(
                f"Unknown unified search field(s) {unknown} (valid: {sorted(UNIFIED_SEARCH_FIELDS)})"
            )
        return v

    def resolve_field(self, field: int | str | None = None) -> str:
        """Map a unified field number (or a raw field token) to a field token."""
        if field is None or field == "":
            return self.default_field
        if isinstance(field, int) or str(field).isdigit():
            number = int(field)
            if number not in self.search_fields:
                raise ValueError(
                    f"{self.name}: unknown search field {number} "
                    f"(known: {sorted(self.search_fields)})"
                )
            return self.search_fields[number]
        return str(field)


# ── Loading ──────────────────────────────────────────────────────────


def load_database_config(path: str | Path | None = None) -> dict[str, DatabaseConfig]:
    """Load and validate the database syntax table from YAML."""
    if path is None:
        return dict(_default_config())
    return _load(Path(path))


@lru_cache(maxsize=1)
def _default_config() -> dict[str, DatabaseConfig]:
    return _load(DEFAULT_CONFIG_PATH)


def _load(path: Path) -> dict[str, DatabaseConfig]:
    with open(path) as f:
        raw = yaml.safe_load(f) or {}
    if not isinstance(raw, dict):
        raise ValueError(f"{path}: expected a mapping of database keys")

    databases = {}
    for key, entry in raw.items():
        databases[key] = DatabaseConfig.model_validate({**entry, "key": key})
    logger.debug("Loaded %d database definitions from %s", len(databases), path)
    return databases


def get_database(key: str, config: dict[str, DatabaseConfig] | None = None) -> DatabaseConfig:
    """Look up one database by key."""
    config = config if config is not None else _default_config()
    try:
        return config[key]
    except KeyError:
        raise KeyError(f"Unknown database '{key}' (known: {', '.join(config)})") from None
