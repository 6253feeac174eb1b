"""String similarity, author overlap and DOI normalization."""

import re
from collections.abc import Iterable

from rapidfuzz.distance import Levenshtein

from prevue.search.models import Author

CONTAINMENT_SCORE = 0.9
CONTAINMENT_RATIO = 0.85
SUFFICIENT_AUTHOR_OVERLAP = 2

_PUNCT_RE = re.compile(r"[^\w\s]", re.UNICODE)
_SPACE_RE = re.compile(r"\s+")
_DOI_PREFIX_RE = re.compile(r"^(?:https?://(?:dx\.)?doi\.org/|doi:)", re.IGNORECASE)


# ── Text ─────────────────────────────────────────────────────────────


def normalize_text(text: str | None) -> str:
    """Lowercase, replace punctuation with spaces, collapse whitespace."""
    if not text:
        return ""
    t = _PUNCT_RE.sub(" ", str(text).lower())
    return _SPACE_RE.sub(" ", t).strip()


def similarity(a: str | None, b: str | None, *, normalized: bool = False) -> float:
    """Similarity of two strings in [0, 1].

    Equal strings score 1.0, an empty side scores 0. When the shorter string
    is contained in the longer one and covers at least 85% of it the score is
    0.9 without computing an edit distance. Otherwise the score is the
    normalized Levenshtein similarity.

    Pass ``normalized=True`` when both inputs already went through
    :func:`normalize_text`.
    """
    if not normalized:
        a, b = normalize_text(a), normalize_text(b)
    else:
        a, b = a or "", b or ""

    if a == b:
        return 1.0
    if not a or not b:
        return 0.0

    shorter, longer = (a, b) if len(a) <= len(b) else (b, a)
    if shorter in longer and len(shorter) / len(longer) >= CONTAINMENT_RATIO:
        return CONTAINMENT_SCORE

    distance = Levenshtein.distance(a, b)
    return 1.0 - distance / max(len(a), len(b))


# ── Authors ──────────────────────────────────────────────────────────


def normalize_author_name(name: str | None) -> str:
    """Lowercase, strip punctuation, collapse whitespace."""
    if not name:
        return ""
    n = _PUNCT_RE.sub("", str(name).lower())
    return _SPACE_RE.sub(" ", n).strip()


def author_name_set(authors: Iterable[Author | dict | str]) -> frozenset[str]:
    """Normalized, non-empty author names of a list of authors."""
    names = set()
    for a in authors or ():
        if isinstance(a, Author):
            raw = a.name
        elif isinstance(a, dict):
            raw = a.get("name")
        else:
            raw = a
        norm = normalize_author_name(raw)
        if norm:
            names.add(norm)
    return frozenset(names)


def author_overlap(list1, list2) -> int:
    """Number of normalized author names shared by the two lists.

    Either argument may be a raw author list or a set already produced by
    :func:`author_name_set`.
    """
    s1 = list1 if isinstance(list1, (set, frozenset)) else author_name_set(list1)
    s2 = list2 if isinstance(list2, (set, frozenset)) else author_name_set(list2)
    return len(s1 & s2)


def has_sufficient_overlap(list1, list2, minimum: int = SUFFICIENT_AUTHOR_OVERLAP) -> bool:
    return author_overlap(list1, list2) >= minimum


# ── DOI ──────────────────────────────────────────────────────────────


def normalize_doi(doi: str | None) -> str:
    """Lowercase and strip ``https://doi.org/`` / ``doi:`` prefixes."""
    if not doi:
        return ""
    d = str(doi).strip().lower()
    d = _DOI_PREFIX_RE.sub("", d)
    return d.strip()
