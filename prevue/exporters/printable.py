"""Printable HTML report of an article list."""

import logging
from datetime import date
from html import escape

from prevue.search.models import Article

logger = logging.getLogger(__name__)

_STYLE = """
        body { font-family: sans-serif; line-height: 1.5; padding: 20px; max-width: 800px; margin: 0 auto; }
        article { border-bottom: 1px solid #eee; padding-bottom: 1rem; margin-bottom: 1rem; page-break-inside: avoid; }
        h1 { color: #333; border-bottom: 2px solid #333; padding-bottom: 0.5rem; }
        h3 { font-size: 1.2rem; margin-bottom: 0.5rem; color: #444; }
        p { margin: 0.25rem 0; }
        .meta { font-size: 0.9rem; color: #555; }
        .abstract { margin-top: 0.5rem; text-align: justify; }
        @media print { body { margin: 0; } article { page-break-inside: avoid; } }
"""


def _article_html(index: int, article: Article) -> str:
    authors = "; ".join(article.author_names()) or "N/A"
    year = article.display_year() or "N/A"
    return f"""
    <article>
        <h3>{index}. {escape(article.title or "No Title")}</h3>
        <p class="meta"><strong>Authors:</strong> {escape(authors)}</p>
        <p class="meta"><strong>Journal/Venue:</strong> {escape(article.best_venue() or "N/A")} ({escape(str(year))})</p>
        <p class="meta"><strong>DOI:</strong> {escape(article.best_doi() or "N/A")}</p>
        <p class="meta"><strong>Source Database:</strong> {escape(article.source_db or "N/A")}</p>
        <div class="abstract"><strong>Abstract:</strong> {escape(article.abstract or "No abstract available.")}</div>
    </article>"""


def generate_printable(
    articles: list[Article], title: str = "Export Results", generated_on: date | None = None
) -> str:
    """Standalone HTML page listing every article."""
    generated_on = generated_on or date.today()
    body = "".join(_article_html(i, a) for i, a in enumerate(articles, start=1))
    return f"""<!DOCTYPE html>
<html>
<head>
    <meta charset="utf-8">
    <title>Printable Report - {escape(title)}</title>
    <style>{_STYLE}    </style>
</head>
<body>
    <h1>Results for: {escape(title)}</h1>
    <p class="meta">Generated on {generated_on.isoformat()} &bull; {len(articles)} articles</p>{body}
</body>
</html>
"""


def export_printable(articles: list[Article], output_path: str, title: str = "Export Results") -> None:
    with open(output_path, "w", encoding="utf-8") as f:
        f.write(generate_printable(articles, title))

    logger.info("Printable report exported to %s", output_path)
