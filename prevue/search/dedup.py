"""Deduplicate articles pulled from several search sources."""

import logging
from collections import Counter, deque
from dataclasses import dataclass

from pydantic import BaseModel, Field

from prevue.search.models import Article, Author
from prevue.search.similarity import (
    author_name_set,
    normalize_author_name,
    normalize_doi,
    normalize_text,
    similarity,
)

logger = logging.getLogger(__name__)


# ── Configuration ────────────────────────────────────────────────────


class DedupConfig(BaseModel):
    """Thresholds for the duplicate predicate."""

    title_threshold: float = Field(default=0.85, ge=0.0, le=1.0)
    loose_title_threshold: float = Field(default=0.70, ge=0.0, le=1.0)
    min_title_length: int = Field(default=10, ge=0)
    short_title_length: int = Field(default=5, ge=0)
    min_author_overlap: int = Field(default=1, ge=0)
    sufficient_author_overlap: int = Field(default=2, ge=0)


DEFAULT_CONFIG = DedupConfig()


# ── Result Model ─────────────────────────────────────────────────────


class DuplicateGroup(BaseModel):
    """Members of one merged group, in input order."""

    merged_title: str
    source_db: str
    member_ids: list[str | None]
    member_titles: list[str]


class DedupResult(BaseModel):
    """Result of deduplication across search sources."""

    unique_articles: list[Article]
    duplicate_groups: list[DuplicateGroup]
    stats: dict


# ── Fingerprints ─────────────────────────────────────────────────────


@dataclass(frozen=True)
class _Fingerprint:
    """Normalized matching keys, computed once per article."""

    title: str
    doi: str
    authors: frozenset[str]
    sources: frozenset[str]

    @classmethod
    def of(cls, article: Article) -> "_Fingerprint":
        return cls(
            title=normalize_text(article.title),
            doi=normalize_doi(article.best_doi()),
            authors=author_name_set(article.authors),
            sources=frozenset(article.source_tokens()),
        )


def _fingerprints_match(a: _Fingerprint, b: _Fingerprint, config: DedupConfig) -> bool:
    # Records that share a source are never merged
    if a.sources & b.sources:
        return False

    if a.doi and b.doi and a.doi == b.doi:
        return True

    title_sim = None
    if len(a.title) >= config.min_title_length and len(b.title) >= config.min_title_length:
        title_sim = similarity(a.title, b.title, normalized=True)
        if title_sim >= config.title_threshold:
            if a.authors and b.authors:
                if len(a.authors & b.authors) >= config.min_author_overlap:
                    return True
            else:
                return True

    if len(a.authors & b.authors) >= config.sufficient_author_overlap:
        too_short = (
            len(a.title) < config.short_title_length
            or len(b.title) < config.short_title_length
        )
        if too_short:
            return True
        if title_sim is None:
            title_sim = similarity(a.title, b.title, normalized=True)
        if title_sim >= config.loose_title_threshold:
            return True

    return False


# ── Public API ───────────────────────────────────────────────────────


def is_duplicate(a: Article, b: Article, config: DedupConfig | None = None) -> bool:
    """True when two articles from different sources describe the same work."""
    return _fingerprints_match(_Fingerprint.of(a), _Fingerprint.of(b), config or DEFAULT_CONFIG)


def find_duplicate_groups(
    articles: list[Article], config: DedupConfig | None = None
) -> list[list[int]]:
    """Cluster article indices into duplicate groups.

    Groups are seeded in input order. A later article joins a group when it
    matches any member already in it, so groups grow transitively. Members
    are returned in input order.
    """
    config = config or DEFAULT_CONFIG
    prints = [_Fingerprint.of(a) for a in articles]
    processed = [False] * len(articles)
    groups: list[list[int]] = []

    for i in range(len(articles)):
        if processed[i]:
            continue
        processed[i] = True
        group = [i]
        frontier = deque([i])
        while frontier:
            member = frontier.popleft()
            for j in range(i + 1, len(articles)):
                if processed[j]:
                    continue
                if _fingerprints_match(prints[member], prints[j], config):
                    processed[j] = True
                    group.append(j)
                    frontier.append(j)
        groups.append(sorted(group))

    return groups


def deduplicate(articles: list[Article], config: DedupConfig | None = None) -> list[Article]:
    """Merge duplicate articles into canonical records."""
    return run_deduplication(articles, config).unique_articles


def run_deduplication(
    articles: list[Article], config: DedupConfig | None = None
) -> DedupResult:
    """Deduplicate and report which records were merged.

    Merged records are clustered again until a pass merges nothing, since a
    merged record carries more titles, authors and identifiers than any of
    its members. No two returned articles match each other.
    """
    config = config or DEFAULT_CONFIG
    records = _drop_repeated_records(list(articles))

    unique = list(records)
    origins = [[idx] for idx in range(len(records))]
    passes = 0
    while True:
        passes += 1
        groups = find_duplicate_groups(unique, config)
        if all(len(group) == 1 for group in groups):
            break
        unique = [merge_articles([unique[idx] for idx in group]) for group in groups]
        origins = [sorted(o for idx in group for o in origins[idx]) for group in groups]
        logger.debug("Pass %d: %d records after merging", passes, len(unique))

    duplicate_groups: list[DuplicateGroup] = []
    for merged, group in zip(unique, origins):
        if len(group) > 1:
            members = [records[idx] for idx in group]
            duplicate_groups.append(
                DuplicateGroup(
                    merged_title=merged.title,
                    source_db=merged.source_db,
                    member_ids=[m.unique_id for m in members],
                    member_titles=[m.title for m in members],
                )
            )
            logger.debug("Merged %d records into '%s'", len(members), merged.title[:80])

    by_source = Counter()
    for a in articles:
        for token in a.source_tokens() or {"unknown"}:
            by_source[token] += 1

    stats = {
        "input_total": len(articles),
        "by_source": dict(sorted(by_source.items())),
        "repeated_records": len(articles) - len(records),
        "groups_merged": len(duplicate_groups),
        "duplicates_removed": len(articles) - len(unique),
        "unique_total": len(unique),
    }

    logger.info(
        "Deduplication: %d records → %d unique (%d duplicates removed, %d groups merged)",
        stats["input_total"],
        stats["unique_total"],
        stats["duplicates_removed"],
        stats["groups_merged"],
    )

    return DedupResult(
        unique_articles=unique,
        duplicate_groups=duplicate_groups,
        stats=stats,
    )


def _drop_repeated_records(articles: list[Article]) -> list[Article]:
    """Keep the first record for each ``uniqueId`` seen more than once."""
    seen: set[str] = set()
    kept = []
    for a in articles:
        if a.unique_id:
            if a.unique_id in seen:
                logger.debug("Dropping repeated record %s", a.unique_id)
                continue
            seen.add(a.unique_id)
        kept.append(a)
    return kept


# ── Merging ──────────────────────────────────────────────────────────


def merge_articles(group: list[Article]) -> Article:
    """Merge a duplicate group into one canonical article.

    The first member is the base record; every member contributes metadata.
    Inputs are not modified.
    """
    if not group:
        raise ValueError("Cannot merge an empty group")
    if len(group) == 1:
        return group[0]

    data = group[0].model_dump()
    extras = dict(group[0].model_extra or {})

    tokens: set[str] = set()
    authors: list[Author] = []
    seen_authors: set[str] = set()

    for member in group:
        tokens |= member.source_tokens()

        for author in member.authors:
            key = normalize_author_name(author.name)
            if key and key not in seen_authors:
                seen_authors.add(key)
                authors.append(author)

        for field in ("title", "venue", "journal", "source", "abstract"):
            data[field] = _longest(data[field], getattr(member, field))

        data["year"] = _most_recent(data["year"], member.year)
        data["pubdate"] = _most_recent(data["pubdate"], member.pubdate)

        for field in ("doi", "url", "pmid", "unique_id"):
            if data[field] is None and getattr(member, field) is not None:
                data[field] = getattr(member, field)

        for kind, value in member.external_ids.items():
            if data["external_ids"].get(kind) is None:
                data["external_ids"][kind] = value

        if member.citation_count is not None:
            if data["citation_count"] is None or member.citation_count > data["citation_count"]:
                data["citation_count"] = member.citation_count

        if len(member.fields_of_study) > len(data["fields_of_study"]):
            data["fields_of_study"] = list(member.fields_of_study)

        for key, value in (member.model_extra or {}).items():
            if extras.get(key) is None:
                extras[key] = value

    data["source_db"] = "; ".join(sorted(tokens))
    data["authors"] = [a.model_dump() for a in authors]
    for key, value in extras.items():
        if data.get(key) is None:
            data[key] = value
    return Article.model_validate(data)


# ── Helpers ──────────────────────────────────────────────────────────


def _longest(current: str | None, candidate: str | None) -> str | None:
    if not candidate:
        return current
    if not current or len(candidate) > len(current):
        return candidate
    return current


def _most_recent(current, candidate):
    """Larger of two year/date values; mixed types compare as strings."""
    if candidate is None or candidate == "":
        return current
    if current is None or current == "":
        return candidate
    if isinstance(current, int) and isinstance(candidate, int):
        return max(current, candidate)
    return candidate if str(candidate) > str(current) else current
