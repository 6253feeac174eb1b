"""Tests for export modules: CSV, RIS, printable HTML, Excel, PRISMA, search report."""

import csv
import io
from datetime import date, datetime
from pathlib import Path

import openpyxl
import pytest

from prevue.core.project import load_project
from prevue.exporters import export_all, export_filename, generate_export, get_file_extension
from prevue.exporters.article_table import HEADERS, export_articles_excel, generate_csv
from prevue.exporters.printable import generate_printable
from prevue.exporters.prisma import export_prisma_csv, generate_prisma_identification
from prevue.exporters.ris import generate_ris
from prevue.exporters.search_report import generate_search_report
from prevue.query.synthesizer import build_queries
from prevue.search.dedup import run_deduplication
from prevue.search.models import Article

PROJECT_PATH = Path(__file__).resolve().parent.parent / "projects" / "telemedicine_hypertension.yaml"


@pytest.fixture()
def raw_articles():
    return [
        Article(
            title="Home BP telemonitoring, a trial",
            authors=["Smith J", "Doe A"],
            year=2021,
            journal="J Hypertens",
            doi="10.1/bp",
            abstract='Uses "quotes" & <tags>.',
            sourceDB="pubmed",
            uniqueId="pubmed_1",
        ),
        Article(
            title="Home BP telemonitoring: a trial",
            authors=["Smith J"],
            pubdate="2021",
            venue="Journal of Hypertension",
            externalIds={"DOI": "10.1/BP"},
            sourceDB="scopus",
            uniqueId="scopus_1",
        ),
        Article(title="Salt intake survey", sourceDB="core", uniqueId="core_7"),
    ]


@pytest.fixture()
def dedup_result(raw_articles):
    return run_deduplication(raw_articles)


@pytest.fixture(scope="module")
def project():
    return load_project(PROJECT_PATH)


# ── CSV ──────────────────────────────────────────────────────────────


def test_csv_has_bom_and_quoted_cells(raw_articles):
    text = generate_csv(raw_articles)
    assert text.startswith("\ufeff")
    assert text[1:].splitlines()[0] == ",".join(f'"{h}"' for h in HEADERS)

    rows = list(csv.reader(io.StringIO(text.lstrip("\ufeff"))))
    assert len(rows) == 4
    assert rows[1][1] == "Smith J; Doe A"
    assert rows[1][5] == 'Uses "quotes" & <tags>.'
    # Falls back to pubdate, venue and externalIds
    assert rows[2][2] == "2021"
    assert rows[2][3] == "Journal of Hypertension"
    assert rows[2][4] == "10.1/BP"
    assert rows[3] == ["Salt intake survey", "", "", "", "", "", "core"]


def test_csv_empty_list():
    assert generate_csv([]) == "\ufeff" + ",".join(f'"{h}"' for h in HEADERS) + "\n"


# ── RIS ──────────────────────────────────────────────────────────────


def test_ris_records(raw_articles):
    text = generate_ris(raw_articles)
    assert text.count("TY  - JOUR") == 3
    assert text.count("ER  - ") == 3
    first = text.split("ER  - ")[0]
    assert "AU  - Smith J\nAU  - Doe A" in first
    assert "PY  - 2021" in first
    assert "DO  - 10.1/bp" in first
    assert "JO  - J Hypertens" in first


def test_ris_skips_missing_fields():
    text = generate_ris([Article(title="Bare")])
    assert text == "TY  - JOUR\nTI  - Bare\nER  - \n"


# ── Printable HTML ───────────────────────────────────────────────────


def test_printable_escapes_content(raw_articles):
    html = generate_printable(raw_articles, title="BP <review>", generated_on=date(2024, 5, 1))
    assert "<title>Printable Report - BP &lt;review&gt;</title>" in html
    assert "&lt;tags&gt;" in html
    assert "<tags>" not in html
    assert "Generated on 2024-05-01 &bull; 3 articles" in html
    assert "3. Salt intake survey" in html
    assert "No abstract available." in html


# ── Dispatcher & Filenames ───────────────────────────────────────────


def test_generate_export_dispatch(raw_articles):
    assert generate_export("CSV", raw_articles) == generate_csv(raw_articles)
    assert generate_export("ris", raw_articles) == generate_ris(raw_articles)
    assert "<!DOCTYPE html>" in generate_export("printable", raw_articles, title="T")
    with pytest.raises(ValueError, match="Unsupported export format"):
        generate_export("bibtex", raw_articles)


def test_file_extensions_and_names():
    assert get_file_extension("printable") == "html"
    assert get_file_extension("unknown") == "txt"
    name = export_filename("BP review: v2", "ris", datetime(2024, 3, 9, 15, 0))
    assert name == "BP_review__v2_export_2024-03-09.ris"


# ── Excel ────────────────────────────────────────────────────────────


def test_excel_sheets(tmp_path, dedup_result):
    path = tmp_path / "articles.xlsx"
    export_articles_excel(dedup_result.unique_articles, str(path), dedup_result)

    wb = openpyxl.load_workbook(path)
    assert wb.sheetnames == ["Articles", "Duplicate Groups"]

    articles = wb["Articles"]
    assert [c.value for c in articles[1]] == HEADERS
    assert articles[1][0].font.bold
    assert articles.max_row == 3
    assert articles.cell(row=2, column=7).value == "pubmed; scopus"

    groups = wb["Duplicate Groups"]
    member_ids = [groups.cell(row=r, column=4).value for r in range(2, groups.max_row + 1)]
    assert member_ids == ["pubmed_1", "scopus_1"]


def test_excel_without_dedup(tmp_path, raw_articles):
    path = tmp_path / "plain.xlsx"
    export_articles_excel(raw_articles, str(path))
    assert openpyxl.load_workbook(path).sheetnames == ["Articles"]


# ── PRISMA ───────────────────────────────────────────────────────────


def test_prisma_identification(dedup_result):
    flow = generate_prisma_identification(dedup_result)
    assert flow == {
        "records_identified": 3,
        "records_by_source": {"core": 1, "pubmed": 1, "scopus": 1},
        "duplicates_removed": 1,
        "duplicate_groups": 1,
        "records_after_dedup": 2,
    }


def test_prisma_csv(tmp_path, dedup_result):
    path = tmp_path / "prisma.csv"
    export_prisma_csv(dedup_result, str(path))
    with open(path, newline="") as f:
        rows = list(csv.reader(f))
    assert rows[0] == ["Stage", "Count", "Detail"]
    assert rows[1] == ["Records identified", "3", ""]
    assert ["", "1", "From pubmed"] in rows
    assert rows[-1] == ["Records after deduplication", "2", ""]


# ── Search Report ────────────────────────────────────────────────────


def test_search_report(project, dedup_result):
    queries = build_queries(project.keywords, ["pubmed", "scopus"], project.search_fields,
                            project.negative_keywords)
    report = generate_search_report(project, queries, dedup_result)

    assert report.startswith("# Search Methods")
    assert "conducted in PubMed, Scopus" in report
    assert 'Records matching "pediatric" were excluded.' in report
    assert "3 records were retrieved (1 from core and 1 from pubmed and 1 from scopus)" in report
    assert "leaving 2 unique records" in report
    assert f"```\n{queries['pubmed']}\n```" in report


def test_search_report_empty_query(project):
    report = generate_search_report(project, {"core": ""})
    assert "(no active terms)" in report
    assert "records were retrieved" not in report


# ── export_all ───────────────────────────────────────────────────────


def test_export_all(tmp_path, project, dedup_result):
    queries = build_queries(project.keywords, project.databases, project.search_fields)
    paths = export_all(dedup_result.unique_articles, str(tmp_path / "out"), project, queries, dedup_result)

    assert set(paths) == {"csv", "ris", "printable", "xlsx", "prisma_csv", "search_report"}
    for p in paths.values():
        assert Path(p).exists()
    assert Path(paths["printable"]).name.startswith("Telemedicine_for_hypertension_export_")
    assert Path(paths["printable"]).suffix == ".html"


def test_export_all_articles_only(tmp_path, raw_articles):
    paths = export_all(raw_articles, str(tmp_path))
    assert set(paths) == {"csv", "ris", "printable", "xlsx"}
    assert Path(paths["csv"]).name.startswith("articles_export_")


def test_export_all_file_contents(tmp_path, raw_articles):
    paths = export_all(raw_articles, str(tmp_path))

    with open(paths["ris"], encoding="utf-8") as f:
        assert f.read() == generate_ris(raw_articles)
    with open(paths["csv"], newline="", encoding="utf-8-sig") as f:
        rows = list(csv.reader(f))
    assert rows[0] == HEADERS
    assert [r[0] for r in rows[1:]] == [a.title for a in raw_articles]
    with open(paths["printable"], encoding="utf-8") as f:
        html = f.read()
    assert "<title>Printable Report - articles</title>" in html
    assert "3 articles" in html
