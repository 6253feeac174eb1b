"""Article table exports: CSV and Excel."""

import csv
import io
import logging

import openpyxl
from openpyxl.styles import Font

from prevue.search.dedup import DedupResult
from prevue.search.models import Article

logger = logging.getLogger(__name__)

HEADERS = ["Title", "Authors", "Year", "Journal/Venue", "DOI", "Abstract", "Source"]


# ── Helpers ──────────────────────────────────────────────────────────


def format_authors(article: Article) -> str:
    return "; ".join(article.author_names())


def _article_row(article: Article) -> list[str]:
    year = article.display_year()
    return [
        article.title or "",
        format_authors(article),
        "" if year is None else str(year),
        article.best_venue() or "",
        article.best_doi() or "",
        article.abstract or "",
        article.source_db or "",
    ]


# ── CSV Export ───────────────────────────────────────────────────────


def generate_csv(articles: list[Article]) -> str:
    """CSV text with every cell quoted, prefixed with a UTF-8 BOM for Excel."""
    buf = io.StringIO()
    writer = csv.writer(buf, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerow(HEADERS)
    writer.writerows(_article_row(a) for a in articles)
    return "\ufeff" + buf.getvalue()


def export_articles_csv(articles: list[Article], output_path: str) -> None:
    """Export the article list as CSV."""
    with open(output_path, "w", newline="", encoding="utf-8") as f:
        f.write(generate_csv(articles))

    logger.info("Article CSV exported to %s (%d rows)", output_path, len(articles))


# ── Excel Export ─────────────────────────────────────────────────────


def export_articles_excel(
    articles: list[Article],
    output_path: str,
    dedup_result: DedupResult | None = None,
) -> None:
    """Export articles to Excel; adds a merge log sheet when given a dedup result."""
    wb = openpyxl.Workbook()

    # Sheet 1: Articles
    ws1 = wb.active
    ws1.title = "Articles"
    ws1.append(HEADERS)
    for article in articles:
        ws1.append(_article_row(article))
    _style_header(ws1)

    # Sheet 2: Duplicate Groups
    if dedup_result is not None:
        ws2 = wb.create_sheet("Duplicate Groups")
        ws2.append(["group", "merged_title", "sources", "member_id", "member_title"])
        for n, group in enumerate(dedup_result.duplicate_groups, start=1):
            for member_id, member_title in zip(group.member_ids, group.member_titles):
                ws2.append([n, group.merged_title, group.source_db, member_id or "", member_title])
        _style_header(ws2)

    wb.save(output_path)
    logger.info("Article Excel exported to %s", output_path)


def _style_header(ws) -> None:
    """Bold the header row."""
    for cell in ws[1]:
        cell.font = Font(bold=True)
