"""Tests for the query structure comparator."""

import pytest

from prevue.query import comparator
from prevue.query.comparator import compare_queries, compare_structures, jaccard
from prevue.query.parser import parse_query

QUERY = '("adults"[tiab] OR "Hypertension"[MeSH Terms]) AND ("telemedicine"[tiab]) AND ("blood pressure"[tiab])'


# ── Exact Matching ───────────────────────────────────────────────────


def test_identical_queries_all_exact():
    comparison = compare_structures(parse_query(QUERY), parse_query(QUERY))
    assert len(comparison.ordered) == 3
    assert all(m.type == "exact" and m.similarity == 1.0 for m in comparison.ordered)
    assert comparison.added == []
    assert comparison.removed == []


def test_reordered_terms_still_exact():
    saved = parse_query('("a" OR "b") AND ("c")')
    current = parse_query('("c") AND ("B" OR "a")')
    comparison = compare_structures(saved, current)
    assert [m.type for m in comparison.ordered] == ["exact", "exact"]
    assert comparison.ordered[0].saved.raw == '("c")'


# ── Partial Matching ─────────────────────────────────────────────────


def test_partial_match_term_diff():
    saved = parse_query('("a" OR "b" OR "c") AND ("x")')
    current = parse_query('("a" OR "b" OR "d") AND ("x")')
    comparison = compare_structures(saved, current)

    first = comparison.ordered[0]
    assert first.type == "partial"
    assert first.similarity == pytest.approx(0.5)
    assert first.added_terms == ["d"]
    assert first.removed_terms == ["c"]
    assert first.common_terms == ["a", "b"]
    assert comparison.ordered[1].type == "exact"


def test_partial_picks_best_candidate():
    saved = parse_query('("a" OR "z") AND ("a" OR "b" OR "c")')
    current = parse_query('("a" OR "b" OR "c" OR "d")')
    match = compare_structures(saved, current).ordered[0]
    assert match.type == "partial"
    assert match.saved.raw == '("a" OR "b" OR "c")'


def test_threshold_is_strict():
    saved = parse_query("(" + " OR ".join(f'"{t}"' for t in "abcdefghij") + ")")
    current = parse_query('("a" OR "b" OR "c")')
    comparison = compare_structures(saved, current)
    assert jaccard(saved.clauses[0].terms, current.clauses[0].terms) == pytest.approx(0.3)
    assert [m.type for m in comparison.ordered] == ["added", "removed"]


# ── Added / Removed ──────────────────────────────────────────────────


def test_added_and_removed_order():
    saved = parse_query('("a") AND ("b")')
    current = parse_query('("a") AND ("z")')
    comparison = compare_structures(saved, current)

    assert [m.type for m in comparison.ordered] == ["exact", "added", "removed"]
    assert comparison.ordered[1].terms == ["z"]
    removed = comparison.removed[0]
    assert removed.saved.raw == '("b")'
    assert removed.position == 3


def test_missing_structure_gives_empty_comparison():
    comparison = compare_structures(None, parse_query(QUERY))
    assert comparison.ordered == []


def test_against_empty_saved_query():
    comparison = compare_structures(parse_query(""), parse_query(QUERY))
    assert [m.type for m in comparison.ordered] == ["added"] * 3


# ── compare_queries ──────────────────────────────────────────────────


def test_compare_queries_summary_and_display():
    saved = '("a" OR "b" OR "c") AND ("x") AND ("gone")'
    current = '("a" OR "b" OR "d") AND ("x") AND ("new")'
    result = compare_queries(saved, current)

    assert result.success
    assert result.summary == {
        "total_clauses": 3,
        "unchanged": 1,
        "modified": 1,
        "added": 1,
        "removed": 1,
    }
    labels = [s.label for s in result.display]
    assert labels == [
        "Clause 1 (modified)",
        "Clause 2 (unchanged)",
        "Clause 3 (new)",
        "Removed Clause",
    ]
    modified = result.display[0]
    assert modified.type == "modified"
    assert modified.added == ["d"]
    assert modified.removed == ["c"]
    assert modified.saved_raw == '("a" OR "b" OR "c")'
    assert result.display[1].status == "equal"
    assert result.display[3].content == '("gone")'


def test_compare_queries_both_empty():
    result = compare_queries("", "")
    assert result.success
    assert result.display == []
    assert result.summary["total_clauses"] == 0


def test_compare_queries_reports_errors(monkeypatch):
    def boom(*args, **kwargs):
        raise RuntimeError("bad structure")

    monkeypatch.setattr(comparator, "compare_structures", boom)
    result = compare_queries("a", "b")
    assert result.success is False
    assert result.error == "bad structure"
    assert result.display == []


def test_compare_queries_custom_threshold():
    saved = '("a" OR "b" OR "c" OR "d")'
    current = '("a" OR "x" OR "y" OR "z")'
    assert compare_queries(saved, current).summary["added"] == 1
    assert compare_queries(saved, current, threshold=0.1).summary["modified"] == 1
