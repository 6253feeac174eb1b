"""Draft search-methods paragraph in Markdown."""

import logging

from prevue.core.project import SearchProject
from prevue.exporters.prisma import generate_prisma_identification
from prevue.query.databases import get_database
from prevue.search.dedup import DedupResult

logger = logging.getLogger(__name__)


def generate_search_report(
    project: SearchProject,
    queries: dict[str, str],
    dedup_result: DedupResult | None = None,
) -> str:
    """Describe the search strategy and, when available, the dedup outcome."""
    names = [get_database(key).name for key in queries]
    databases = ", ".join(names) if names else "no databases"

    report = f"A literature search was conducted in {databases}"
    if project.research_question:
        report += f" to address the question: {project.research_question}"
    report += ". "

    report += (
        "Search terms were grouped by PICO concept (population, intervention, "
        "comparison, outcome), combined with OR within each concept and AND "
        "between concepts."
    )
    if [k for k in project.negative_keywords if k.strip()]:
        excluded = ", ".join(f'"{k.strip()}"' for k in project.negative_keywords if k.strip())
        report += f" Records matching {excluded} were excluded."

    if dedup_result is not None:
        flow = generate_prisma_identification(dedup_result)
        source_parts = [f"{cnt} from {src}" for src, cnt in flow["records_by_source"].items()]
        source_breakdown = " and ".join(source_parts) if source_parts else "multiple sources"
        report += (
            f" {flow['records_identified']} records were retrieved ({source_breakdown}); "
            f"{flow['duplicates_removed']} duplicates were removed by DOI, title and "
            f"author matching, leaving {flow['records_after_dedup']} unique records."
        )

    lines = ["# Search Methods", "", report, "", "## Search Strings", ""]
    for key, query in queries.items():
        lines.append(f"**{get_database(key).name}**")
        lines.append("")
        lines.append("```")
        lines.append(query or "(no active terms)")
        lines.append("```")
        lines.append("")
    return "\n".join(lines)


def export_search_report_md(
    project: SearchProject,
    queries: dict[str, str],
    output_path: str,
    dedup_result: DedupResult | None = None,
) -> None:
    """Write the search report to a Markdown file."""
    with open(output_path, "w") as f:
        f.write(generate_search_report(project, queries, dedup_result))

    logger.info("Search report exported to %s", output_path)
