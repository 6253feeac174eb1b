"""RIS export for reference managers."""

import logging

from prevue.search.models import Article

logger = logging.getLogger(__name__)


def _ris_record(article: Article) -> str:
    lines = ["TY  - JOUR"]
    if article.title:
        lines.append(f"TI  - {article.title}")
    for name in article.author_names():
        lines.append(f"AU  - {name}")

    year = article.display_year()
    if year:
        lines.append(f"PY  - {year}")
    venue = article.best_venue()
    if venue:
        lines.append(f"JO  - {venue}")
    doi = article.best_doi()
    if doi:
        lines.append(f"DO  - {doi}")
    if article.abstract:
        lines.append(f"AB  - {article.abstract}")
    lines.append("ER  - ")
    return "\n".join(lines) + "\n"


def generate_ris(articles: list[Article]) -> str:
    """One ``TY``..``ER`` block per article."""
    return "".join(_ris_record(a) for a in articles)


def export_ris(articles: list[Article], output_path: str) -> None:
    with open(output_path, "w", encoding="utf-8") as f:
        f.write(generate_ris(articles))

    logger.info("RIS exported to %s (%d records)", output_path, len(articles))
