"""Build per-database boolean queries from PICO keyword sets."""

import logging
import re
from collections.abc import Iterable

from prevue.core.project import CATEGORIES, ConceptKeywords, KeywordSet
from prevue.query.databases import DatabaseConfig, get_database

logger = logging.getLogger(__name__)

MAX_TERMS_PER_GROUP = 6


# ── Query Builder ────────────────────────────────────────────────────


def build_query(
    keywords: KeywordSet | dict,
    database: DatabaseConfig | str,
    field: int | str | None = None,
    negative_keywords: Iterable[str] = (),
) -> str:
    """Combine active terms into ``(a OR b) AND (c) ... NOT ("x")``.

    Each PICO category with at least one active term becomes one OR-group;
    empty categories are left out entirely. Exclusion terms are appended only
    when a positive query exists.
    """
    if isinstance(keywords, dict):
        keywords = KeywordSet.model_validate(keywords)
    db = get_database(database) if isinstance(database, str) else database
    syntax = db.syntax
    default_field = db.resolve_field(field)

    groups = []
    for name in CATEGORIES:
        rendered = _render_category(keywords.category(name), db, default_field)
        if rendered:
            groups.append(f"({' OR '.join(rendered)})")

    query = syntax.separator.join(groups)

    negatives = [k.strip() for k in negative_keywords if k and k.strip()]
    if negatives and query:
        negative_part = " OR ".join(f'"{k}"' for k in negatives)
        query = f"{query} {syntax.not_operator} ({negative_part})"

    return query.strip()


def _render_category(concept: ConceptKeywords, db: DatabaseConfig, default_field: str) -> list[str]:
    syntax = db.syntax
    rendered = []
    for kw in concept.active_keywords():
        kw_field = db.resolve_field(kw.search_field) if kw.search_field is not None else default_field
        rendered.append(syntax.phrase(kw.term, kw_field))
    for vocab in concept.active_vocabulary():
        rendered.append(syntax.vocabulary_term(vocab.term, vocab.type, default_field))
    return rendered


def build_queries(
    keywords: KeywordSet,
    databases: Iterable[str],
    fields: dict[str, int | str] | None = None,
    negative_keywords: Iterable[str] = (),
) -> dict[str, str]:
    """Build one query per database key."""
    fields = fields or {}
    negative_keywords = list(negative_keywords)
    queries = {}
    for key in databases:
        queries[key] = build_query(keywords, key, fields.get(key), negative_keywords)
        logger.info("%s query: %s", key, queries[key] or "(empty)")
    return queries


# ── Semantic Scholar ─────────────────────────────────────────────────


_NEWLINES_RE = re.compile(r"[\r\n]+")
_SPACE_RE = re.compile(r"\s+")
_QUOTED_RE = re.compile(r'"([^"]+)"')


def sanitize_for_semantic_scholar(query: str | None, max_terms_per_group: int = MAX_TERMS_PER_GROUP) -> str:
    """Rewrite a boolean query into the plain form Semantic Scholar accepts.

    Parentheses are dropped, operators uppercased (``not`` becomes
    ``AND NOT``), commas inside quoted phrases removed, and each AND group is
    cut to its first ``max_terms_per_group`` OR terms.
    """
    if not query:
        return ""
    q = _NEWLINES_RE.sub(" ", str(query))
    q = _SPACE_RE.sub(" ", q).strip()
    q = re.sub(r"[()]", " ", q)
    q = re.sub(r"\s+or\s+", " OR ", q, flags=re.IGNORECASE)
    q = re.sub(r"\s+and\s+", " AND ", q, flags=re.IGNORECASE)
    q = re.sub(r"\s+not\s+", " AND NOT ", q, flags=re.IGNORECASE)
    q = _QUOTED_RE.sub(lambda m: '"' + m.group(1).replace(",", " ") + '"', q)
    q = _SPACE_RE.sub(" ", q).strip()

    groups = []
    for group in re.split(r"\s+AND\s+", q):
        parts = re.split(r"\s+OR\s+", group)
        if len(parts) > max_terms_per_group:
            group = " OR ".join(parts[:max_terms_per_group])
        groups.append(group)

    return _SPACE_RE.sub(" ", " AND ".join(groups)).strip()
