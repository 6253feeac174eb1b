"""Export convenience functions."""

import logging
import re
from datetime import datetime
from pathlib import Path

from prevue.core.project import SearchProject
from prevue.exporters.article_table import export_articles_csv, export_articles_excel, generate_csv
from prevue.exporters.printable import export_printable, generate_printable
from prevue.exporters.prisma import export_prisma_csv
from prevue.exporters.ris import export_ris, generate_ris
from prevue.exporters.search_report import export_search_report_md
from prevue.search.dedup import DedupResult
from prevue.search.models import Article

logger = logging.getLogger(__name__)

_EXTENSIONS = {"csv": "csv", "ris": "ris", "printable": "html"}


def generate_export(fmt: str, articles: list[Article], **options) -> str:
    """Render articles in one of the text export formats."""
    fmt = fmt.lower()
    if fmt == "csv":
        return generate_csv(articles)
    if fmt == "ris":
        return generate_ris(articles)
    if fmt == "printable":
        return generate_printable(articles, options.get("title", "Export Results"))
    raise ValueError(f"Unsupported export format: {fmt}")


def get_file_extension(fmt: str) -> str:
    return _EXTENSIONS.get(fmt.lower(), "txt")


def export_filename(project_name: str, fmt: str, timestamp: datetime | None = None) -> str:
    """``{project}_export_{YYYY-MM-DD}.{ext}`` with unsafe characters replaced."""
    timestamp = timestamp or datetime.now()
    clean = re.sub(r"[^a-zA-Z0-9_-]", "_", project_name)
    return f"{clean}_export_{timestamp.date().isoformat()}.{get_file_extension(fmt)}"


def export_all(
    articles: list[Article],
    output_dir: str,
    project: SearchProject | None = None,
    queries: dict[str, str] | None = None,
    dedup_result: DedupResult | None = None,
) -> dict:
    """Run all exports and return dict of file paths created."""
    out = Path(output_dir)
    out.mkdir(parents=True, exist_ok=True)
    name = project.name if project else "articles"

    paths = {fmt: str(out / export_filename(name, fmt)) for fmt in _EXTENSIONS}
    export_articles_csv(articles, paths["csv"])
    export_ris(articles, paths["ris"])
    export_printable(articles, paths["printable"], title=name)

    xlsx_path = str(out / "articles.xlsx")
    export_articles_excel(articles, xlsx_path, dedup_result)
    paths["xlsx"] = xlsx_path

    if dedup_result is not None:
        prisma_path = str(out / "prisma_identification.csv")
        export_prisma_csv(dedup_result, prisma_path)
        paths["prisma_csv"] = prisma_path

    if project is not None and queries is not None:
        report_path = str(out / "search_methods.md")
        export_search_report_md(project, queries, report_path, dedup_result)
        paths["search_report"] = report_path

    logger.info("All exports written to %s", output_dir)
    return paths
