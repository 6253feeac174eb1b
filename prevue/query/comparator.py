"""Clause-level diff between a saved query and the current one."""

import logging
from typing import Literal, Optional

from pydantic import BaseModel, Field

from prevue.query.parser import QueryClause, QueryStructure, parse_query

logger = logging.getLogger(__name__)

PARTIAL_MATCH_THRESHOLD = 0.3


# ── Models ───────────────────────────────────────────────────────────


class ClauseMatch(BaseModel):
    """How one clause of the current (or saved) query lines up."""

    type: Literal["exact", "partial", "added", "removed"]
    saved: Optional[QueryClause] = None
    current: Optional[QueryClause] = None
    similarity: Optional[float] = None
    added_terms: list[str] = Field(default_factory=list)
    removed_terms: list[str] = Field(default_factory=list)
    common_terms: list[str] = Field(default_factory=list)
    terms: list[str] = Field(default_factory=list)
    position: int


class StructureComparison(BaseModel):
    matched: list[ClauseMatch] = Field(default_factory=list)
    added: list[ClauseMatch] = Field(default_factory=list)
    removed: list[ClauseMatch] = Field(default_factory=list)
    ordered: list[ClauseMatch] = Field(default_factory=list)


class DisplaySection(BaseModel):
    """Human-readable section of a query diff."""

    type: Literal["unchanged", "modified", "added", "removed"]
    label: str
    position: int
    content: Optional[str] = None
    status: Optional[str] = None
    similarity: Optional[float] = None
    added: list[str] = Field(default_factory=list)
    removed: list[str] = Field(default_factory=list)
    common: list[str] = Field(default_factory=list)
    terms: list[str] = Field(default_factory=list)
    saved_raw: Optional[str] = None
    current_raw: Optional[str] = None


class ComparisonResult(BaseModel):
    success: bool
    error: Optional[str] = None
    comparison: Optional[StructureComparison] = None
    display: list[DisplaySection] = Field(default_factory=list)
    summary: dict = Field(default_factory=dict)


# ── Structure Comparison ─────────────────────────────────────────────


def jaccard(terms_a: list[str], terms_b: list[str]) -> float:
    a, b = set(terms_a), set(terms_b)
    union = a | b
    return len(a & b) / len(union) if union else 0.0


def compare_structures(
    saved: QueryStructure | None,
    current: QueryStructure | None,
    threshold: float = PARTIAL_MATCH_THRESHOLD,
) -> StructureComparison:
    """Align the current query's clauses with the saved query's.

    Walks the current clauses in order. Each one pairs with an unused saved
    clause: exact when the normalized term sets are equal, otherwise the best
    Jaccard match scoring above ``threshold``. Unpaired current clauses are
    ``added``; saved clauses left over are ``removed`` and go last.
    """
    if saved is None or current is None:
        return StructureComparison()

    saved_clauses = saved.clauses
    current_clauses = current.clauses
    used: set[int] = set()
    ordered: list[ClauseMatch] = []

    for pos, clause in enumerate(current_clauses):
        match = None

        for si, candidate in enumerate(saved_clauses):
            if si not in used and candidate.normalized == clause.normalized:
                match = ClauseMatch(
                    type="exact",
                    saved=candidate,
                    current=clause,
                    similarity=1.0,
                    position=pos,
                )
                used.add(si)
                break

        if match is None:
            best_idx, best_score = None, 0.0
            for si, candidate in enumerate(saved_clauses):
                if si in used:
                    continue
                score = jaccard(candidate.terms, clause.terms)
                if score > threshold and score > best_score:
                    best_idx, best_score = si, score

            if best_idx is not None:
                saved_clause = saved_clauses[best_idx]
                saved_terms = _unique(saved_clause.terms)
                current_terms = _unique(clause.terms)
                match = ClauseMatch(
                    type="partial",
                    saved=saved_clause,
                    current=clause,
                    similarity=best_score,
                    added_terms=[t for t in current_terms if t not in saved_terms],
                    removed_terms=[t for t in saved_terms if t not in current_terms],
                    common_terms=[t for t in saved_terms if t in current_terms],
                    position=pos,
                )
                used.add(best_idx)

        if match is None:
            match = ClauseMatch(type="added", current=clause, terms=clause.terms, position=pos)

        ordered.append(match)

    for si, clause in enumerate(saved_clauses):
        if si not in used:
            ordered.append(
                ClauseMatch(
                    type="removed",
                    saved=clause,
                    terms=clause.terms,
                    position=len(current_clauses) + si,
                )
            )

    return StructureComparison(
        matched=[m for m in ordered if m.type in ("exact", "partial")],
        added=[m for m in ordered if m.type == "added"],
        removed=[m for m in ordered if m.type == "removed"],
        ordered=ordered,
    )


# ── Display ──────────────────────────────────────────────────────────


def format_for_display(comparison: StructureComparison) -> list[DisplaySection]:
    sections = []
    for idx, item in enumerate(comparison.ordered, start=1):
        if item.type == "exact":
            sections.append(DisplaySection(
                type="unchanged",
                label=f"Clause {idx} (unchanged)",
                content=item.current.raw,
                status="equal",
                similarity=item.similarity,
                position=item.position,
            ))
        elif item.type == "partial":
            sections.append(DisplaySection(
                type="modified",
                label=f"Clause {idx} (modified)",
                similarity=item.similarity,
                removed=item.removed_terms,
                added=item.added_terms,
                common=item.common_terms,
                saved_raw=item.saved.raw,
                current_raw=item.current.raw,
                position=item.position,
            ))
        elif item.type == "added":
            sections.append(DisplaySection(
                type="added",
                label=f"Clause {idx} (new)",
                content=item.current.raw,
                terms=item.terms,
                position=item.position,
            ))
        else:
            sections.append(DisplaySection(
                type="removed",
                label="Removed Clause",
                content=item.saved.raw,
                terms=item.terms,
                position=item.position,
            ))
    return sections


def compare_queries(
    saved_query: str, current_query: str, threshold: float = PARTIAL_MATCH_THRESHOLD
) -> ComparisonResult:
    """Parse, compare and format two query strings.

    Errors are reported in the result rather than raised.
    """
    try:
        comparison = compare_structures(
            parse_query(saved_query), parse_query(current_query), threshold
        )
        display = format_for_display(comparison)
        summary = {
            "total_clauses": len(comparison.matched) + len(comparison.added),
            "unchanged": sum(1 for m in comparison.matched if m.type == "exact"),
            "modified": sum(1 for m in comparison.matched if m.type == "partial"),
            "added": len(comparison.added),
            "removed": len(comparison.removed),
        }
        return ComparisonResult(
            success=True,
            comparison=comparison,
            display=display,
            summary=summary,
        )
    except Exception as exc:
        logger.error("Query comparison failed: %s", exc)
        return ComparisonResult(success=False, error=str(exc), display=[])


def _unique(terms: list[str]) -> list[str]:
    return list(dict.fromkeys(terms))
