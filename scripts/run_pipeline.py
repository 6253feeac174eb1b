#!/usr/bin/env python3
"""Search pipeline runner: build queries, deduplicate results, export."""

import argparse
import json
import logging
import sys
import time
from datetime import datetime, timezone
from pathlib import Path

# Ensure project root is on sys.path
PROJECT_ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from prevue.core.project import SearchProject, load_project
from prevue.exporters import export_all
from prevue.query.comparator import compare_queries
from prevue.query.synthesizer import build_queries
from prevue.search.adapters import load_articles
from prevue.search.dedup import DedupConfig, DedupResult, run_deduplication
from prevue.search.models import Article

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%H:%M:%S",
)
logger = logging.getLogger("pipeline")

STAGES = ("query", "dedup", "export")


# ── Pipeline ─────────────────────────────────────────────────────────


def run_pipeline(
    project_path: str,
    output_dir: str,
    articles_path: str | None = None,
    saved_queries_path: str | None = None,
    skip_to: str | None = None,
    dedup_config: DedupConfig | None = None,
) -> dict:
    """Run the search pipeline and return per-stage results."""
    t_start = time.time()

    logger.info("Loading project: %s", project_path)
    project = load_project(project_path)
    logger.info("Project: %s (%d databases)", project.name, len(project.databases))

    out = Path(output_dir)
    out.mkdir(parents=True, exist_ok=True)

    start_idx = STAGES.index(skip_to) if skip_to else 0
    results: dict = {}
    queries: dict[str, str] = {}
    dedup_result: DedupResult | None = None

    try:
        # ── QUERY ────────────────────────────────────────────
        if start_idx <= STAGES.index("query"):
            queries, results["query"] = _stage_query(project, out, saved_queries_path)
        elif (out / "queries.json").exists():
            queries = json.loads((out / "queries.json").read_text())["queries"]

        # ── DEDUP ────────────────────────────────────────────
        if start_idx <= STAGES.index("dedup"):
            if not articles_path:
                logger.info("No --articles file given, skipping deduplication.")
            else:
                dedup_result, results["dedup"] = _stage_dedup(articles_path, out, dedup_config)

        # ── EXPORT ───────────────────────────────────────────
        if start_idx <= STAGES.index("export"):
            results["export"] = _stage_export(project, queries, dedup_result, out)

    except Exception as exc:
        logger.error("Pipeline failed: %s", exc, exc_info=True)
        raise
    finally:
        elapsed = time.time() - t_start
        logger.info("=" * 60)
        logger.info("PIPELINE COMPLETE in %.1fs", elapsed)

    _write_manifest(project, results, out)
    return results


# ── Stage Implementations ────────────────────────────────────────────


def _stage_query(
    project: SearchProject, out: Path, saved_queries_path: str | None
) -> tuple[dict[str, str], dict]:
    t = time.time()
    logger.info("=" * 60)
    logger.info("STAGE: QUERY")

    queries = build_queries(
        project.keywords,
        project.databases,
        project.search_fields,
        project.negative_keywords,
    )
    (out / "queries.json").write_text(
        json.dumps({"keywords_hash": project.keywords_hash(), "queries": queries}, indent=2)
    )

    stage = {"queries": queries, "elapsed": 0.0}

    if saved_queries_path:
        saved = json.loads(Path(saved_queries_path).read_text())
        saved = saved.get("queries", saved)
        diffs = {}
        for key, query in queries.items():
            if key not in saved:
                continue
            comparison = compare_queries(saved[key], query)
            if comparison.success:
                logger.info("%s vs saved: %s", key, json.dumps(comparison.summary))
            else:
                logger.warning("%s comparison failed: %s", key, comparison.error)
            diffs[key] = comparison.model_dump(exclude={"comparison"})
        (out / "query_diff.json").write_text(json.dumps(diffs, indent=2))
        stage["diffs"] = {k: d["summary"] for k, d in diffs.items()}

    stage["elapsed"] = time.time() - t
    logger.info("Query stage complete in %.1fs", stage["elapsed"])
    return queries, stage


def _stage_dedup(
    articles_path: str, out: Path, config: DedupConfig | None
) -> tuple[DedupResult, dict]:
    t = time.time()
    logger.info("=" * 60)
    logger.info("STAGE: DEDUP")

    articles: list[Article] = load_articles(articles_path)
    logger.info("Loaded %d articles from %s", len(articles), articles_path)

    result = run_deduplication(articles, config)
    (out / "articles_dedup.json").write_text(
        json.dumps([a.to_record() for a in result.unique_articles], indent=2, default=str)
    )

    elapsed = time.time() - t
    logger.info("Dedup complete in %.1fs: %s", elapsed, json.dumps(result.stats))
    return result, {**result.stats, "elapsed": elapsed}


def _stage_export(
    project: SearchProject,
    queries: dict[str, str],
    dedup_result: DedupResult | None,
    out: Path,
) -> dict:
    t = time.time()
    logger.info("=" * 60)
    logger.info("STAGE: EXPORT")

    if dedup_result is None:
        dedup_path = out / "articles_dedup.json"
        if not dedup_path.exists():
            logger.info("No deduplicated articles, skipping export.")
            return {"files": {}, "elapsed": 0}
        articles = load_articles(dedup_path)
    else:
        articles = dedup_result.unique_articles

    paths = export_all(articles, str(out / "exports"), project, queries or None, dedup_result)
    elapsed = time.time() - t
    logger.info("Export complete in %.1fs", elapsed)
    for name, path in paths.items():
        logger.info("  %s: %s", name, path)
    return {"files": paths, "elapsed": elapsed}


def _write_manifest(project: SearchProject, results: dict, out: Path) -> None:
    manifest = {
        "project": project.name,
        "keywords_hash": project.keywords_hash(),
        "completed_at": datetime.now(timezone.utc).isoformat(),
        "stages": results,
    }
    (out / "run_manifest.json").write_text(json.dumps(manifest, indent=2, default=str))


# ── CLI ──────────────────────────────────────────────────────────────


def main():
    parser = argparse.ArgumentParser(description="Build queries, deduplicate and export search results")
    parser.add_argument("--project", required=True, help="Path to project YAML file")
    parser.add_argument("--output", required=True, help="Output directory")
    parser.add_argument("--articles", default=None, help="JSON file of search results to deduplicate")
    parser.add_argument("--saved-queries", default=None, help="queries.json from an earlier run to diff against")
    parser.add_argument(
        "--skip-to",
        choices=STAGES,
        default=None,
        help="Skip to a specific pipeline stage",
    )
    parser.add_argument("--title-threshold", type=float, default=None, help="Title similarity threshold")
    args = parser.parse_args()

    config = None
    if args.title_threshold is not None:
        config = DedupConfig(title_threshold=args.title_threshold)

    run_pipeline(
        args.project,
        args.output,
        articles_path=args.articles,
        saved_queries_path=args.saved_queries,
        skip_to=args.skip_to,
        dedup_config=config,
    )


if __name__ == "__main__":
    main()
