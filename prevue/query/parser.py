"""Parse boolean search queries into AND-clauses of OR-terms."""

import re
from typing import Literal

from pydantic import BaseModel, Field

_FIELD_TAG_RE = re.compile(r"\[[^\]]*\]$")
_LEADING_QUOTE_RE = re.compile(r"^[\"']")
_TRAILING_QUOTE_RE = re.compile(r"[\"']$")


class QueryClause(BaseModel):
    """One top-level AND clause."""

    id: int
    raw: str
    terms: list[str] = Field(default_factory=list)
    normalized: str = ""


class QueryStructure(BaseModel):
    """A parsed query: an ordered list of clauses, or the empty query."""

    type: Literal["query", "empty"]
    value: str = ""
    clauses: list[QueryClause] = Field(default_factory=list)


# ── Public API ───────────────────────────────────────────────────────


def parse_query(query) -> QueryStructure:
    """Split ``query`` into clauses and normalized term sets.

    Never raises: malformed input (unbalanced quotes or parentheses) still
    yields a best-effort split.
    """
    if not isinstance(query, str) or not query.strip():
        return QueryStructure(type="empty", value="")

    text = query.strip()
    clauses = []
    for idx, raw in enumerate(_split_top_level(text, "AND") or [text]):
        terms = [extract_term(t) for t in _split_top_level(_strip_parens(raw), "OR")]
        clauses.append(
            QueryClause(
                id=idx,
                raw=raw,
                terms=terms,
                normalized=normalize_terms(terms),
            )
        )
    return QueryStructure(type="query", value=text, clauses=clauses)


def normalize_terms(terms: list[str]) -> str:
    """Order-independent identity key for a clause's terms."""
    return "|".join(sorted(terms))


def extract_term(text: str) -> str:
    """Drop enclosing parentheses, a trailing ``[field]`` tag and enclosing quotes, lowercase."""
    t = _FIELD_TAG_RE.sub("", _unwrap_term(text.strip()))
    t = _LEADING_QUOTE_RE.sub("", t)
    t = _TRAILING_QUOTE_RE.sub("", t)
    return t.strip().lower()


# ── Scanner ──────────────────────────────────────────────────────────


def _split_top_level(text: str, operator: str) -> list[str]:
    """Split on a whole-word boolean operator outside quotes and parentheses."""
    parts: list[str] = []
    current: list[str] = []
    depth = 0
    in_quotes = False
    width = len(operator)
    i = 0

    while i < len(text):
        char = text[i]
        if char == '"':
            in_quotes = not in_quotes
        elif not in_quotes:
            if char == "(":
                depth += 1
            elif char == ")" and depth > 0:
                depth -= 1

        if (
            depth == 0
            and not in_quotes
            and text[i : i + width].upper() == operator
            and (i == 0 or text[i - 1].isspace())
            and (i + width >= len(text) or text[i + width].isspace())
        ):
            chunk = "".join(current).strip()
            if chunk:
                parts.append(chunk)
            current = []
            i += width
            continue

        current.append(char)
        i += 1

    chunk = "".join(current).strip()
    if chunk:
        parts.append(chunk)
    return parts


def _strip_parens(clause: str) -> str:
    """Remove one pair of enclosing parentheses, if they match each other."""
    inner = clause.strip()
    if inner.startswith("(") and _matching_paren(inner) == len(inner) - 1:
        inner = inner[1:-1].strip()
    return inner


def _matching_paren(text: str) -> int:
    """Index of the ``)`` closing the ``(`` at position 0, or -1."""
    depth = 0
    in_quotes = False
    for i, char in enumerate(text):
        if char == '"':
            in_quotes = not in_quotes
        elif not in_quotes:
            if char == "(":
                depth += 1
            elif char == ")":
                depth -= 1
                if depth == 0:
                    return i
    return -1


def _unwrap_term(term: str) -> str:
    """Strip parentheses around a single term such as ``("a"[tiab])``."""
    while True:
        inner = _strip_parens(term)
        if inner == term:
            return term
        # A group of several terms stays as one opaque term
        if len(_split_top_level(inner, "OR")) > 1 or len(_split_top_level(inner, "AND")) > 1:
            return term
        term = inner
