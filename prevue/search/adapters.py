"""Map raw search-source records onto the Article model.

Each adapter takes one record as returned by a source API (already decoded
JSON, or a Biopython MEDLINE record) and returns an :class:`Article` with
``sourceDB`` and ``uniqueId`` set, or ``None`` when the record has no title.
"""

import json
import logging
from pathlib import Path

from Bio import Medline

from prevue.search.models import Article

logger = logging.getLogger(__name__)


# ── PubMed ───────────────────────────────────────────────────────────


def from_pubmed_summary(item: dict) -> Article | None:
    """Convert an ESummary JSON document into an Article."""
    title = item.get("title")
    if not title or not item.get("uid"):
        return None

    pubdate = item.get("pubdate") or item.get("epubdate") or None
    doi = None
    for aid in item.get("articleids", []):
        if aid.get("idtype") == "doi" and aid.get("value"):
            doi = aid["value"]
            break

    uid = str(item["uid"])
    return Article(
        title=title,
        authors=[{"name": a["name"]} for a in item.get("authors", []) if a.get("name")],
        year=_year_from_date(pubdate),
        pubdate=pubdate,
        journal=item.get("fulljournalname"),
        source=item.get("source"),
        doi=doi,
        external_ids={"DOI": doi, "PubMed": uid},
        pmid=uid,
        source_db="pubmed",
        unique_id=f"pubmed_{uid}",
    )


def from_medline(rec: dict) -> Article | None:
    """Convert a MEDLINE record dict into an Article."""
    title = rec.get("TI")
    if not title:
        return None

    # DOI is in Article Identifier (AID) field, tagged with [doi]
    doi = None
    for aid in rec.get("AID", []):
        if aid.endswith("[doi]"):
            doi = aid.replace(" [doi]", "")
            break

    pmid = rec.get("PMID")
    dp = rec.get("DP")
    return Article(
        title=title,
        authors=rec.get("FAU") or rec.get("AU", []),
        year=_year_from_date(dp),
        pubdate=dp,
        journal=rec.get("JT"),
        source=rec.get("TA"),
        doi=doi,
        external_ids={"DOI": doi, "PubMed": pmid},
        abstract=rec.get("AB"),
        pmid=pmid,
        source_db="pubmed",
        unique_id=f"pubmed_{pmid}" if pmid else None,
    )


def parse_medline(handle) -> list[Article]:
    """Parse a MEDLINE text export (open file handle) into Articles."""
    articles = []
    for rec in Medline.parse(handle):
        article = from_medline(rec)
        if article:
            articles.append(article)
        else:
            logger.debug("Skipping MEDLINE record without title: %s", rec.get("PMID"))
    return articles


# ── Semantic Scholar ─────────────────────────────────────────────────


def from_semantic_scholar(item: dict) -> Article | None:
    """Convert a Semantic Scholar Graph API paper into an Article."""
    title = item.get("title")
    if not title:
        return None

    ext = item.get("externalIds") or {}
    best = ext.get("best") or {}
    doi = best.get("DOI") or ext.get("DOI")
    pmid = best.get("PubMed") or ext.get("PubMed")

    return Article(
        title=title,
        authors=[{"name": a["name"]} for a in item.get("authors") or [] if a.get("name")],
        year=item.get("year"),
        venue=item.get("venue") or None,
        abstract=item.get("abstract"),
        url=item.get("url"),
        citation_count=item.get("citationCount") or 0,
        fields_of_study=item.get("fieldsOfStudy") or [],
        doi=doi,
        pmid=str(pmid) if pmid else None,
        external_ids={k: v for k, v in ext.items() if k != "best" and isinstance(v, str)},
        source_db="semanticScholar",
        unique_id=f"semantic_{item.get('paperId')}",
    )


# ── CORE ─────────────────────────────────────────────────────────────


def from_core(item: dict) -> Article | None:
    """Convert a CORE v3 search result into an Article."""
    title = item.get("title")
    if not title:
        return None

    return Article(
        title=title,
        authors=item.get("authors") or [],
        year=item.get("yearPublished"),
        download_url=item.get("downloadUrl"),
        doi=item.get("doi"),
        abstract=item.get("abstract"),
        source_db="core",
        unique_id=f"core_{item.get('id')}",
    )


# ── Elsevier (Scopus / Embase) ───────────────────────────────────────


def from_elsevier(item: dict, db_key: str = "scopus") -> Article | None:
    """Convert an Elsevier Search API entry into an Article."""
    title = item.get("dc:title")
    if not title:
        return None

    creator = item.get("dc:creator")
    cover_date = item.get("prism:coverDate")
    return Article(
        title=title,
        authors=[{"name": creator}] if creator else [],
        year=_year_from_date(cover_date),
        venue=item.get("prism:publicationName"),
        doi=item.get("prism:doi"),
        abstract=item.get("dc:description"),
        source_db=db_key,
        unique_id=f"{db_key}_{item.get('dc:identifier')}",
    )


ADAPTERS = {
    "pubmed": from_pubmed_summary,
    "semanticScholar": from_semantic_scholar,
    "core": from_core,
    "scopus": lambda item: from_elsevier(item, "scopus"),
    "embase": lambda item: from_elsevier(item, "embase"),
}


# ── Loading ──────────────────────────────────────────────────────────


def load_articles(path: str | Path) -> list[Article]:
    """Load articles from a JSON file.

    The file holds either a list of article dicts, or a mapping of source key
    to a list of raw records from that source.
    """
    path = Path(path)
    with open(path, encoding="utf-8") as f:
        raw = json.load(f)

    if isinstance(raw, list):
        return [Article.model_validate(item) for item in raw]

    if not isinstance(raw, dict):
        raise ValueError(f"{path}: expected a list of articles or a mapping of sources")

    articles: list[Article] = []
    for source_key, records in raw.items():
        adapter = ADAPTERS.get(source_key)
        if adapter is None:
            raise ValueError(
                f"{path}: unknown source '{source_key}' (known: {', '.join(ADAPTERS)})"
            )
        converted = [a for a in (adapter(rec) for rec in records) if a is not None]
        logger.info("Loaded %d/%d records from %s", len(converted), len(records), source_key)
        articles.extend(converted)
    return articles


# ── Helpers ──────────────────────────────────────────────────────────


def _year_from_date(value: str | None) -> int | None:
    """Year from a date string such as ``2023 Jan 5``."""
    if not value:
        return None
    try:
        return int(str(value)[:4])
    except ValueError:
        return None
