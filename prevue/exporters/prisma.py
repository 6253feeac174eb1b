"""PRISMA identification counts and CSV export."""

import csv
import logging

from prevue.search.dedup import DedupResult

logger = logging.getLogger(__name__)


def generate_prisma_identification(dedup_result: DedupResult) -> dict:
    """Identification-stage counts of the PRISMA flow from a dedup run."""
    stats = dedup_result.stats
    return {
        "records_identified": stats["input_total"],
        "records_by_source": dict(stats["by_source"]),
        "duplicates_removed": stats["duplicates_removed"],
        "duplicate_groups": stats["groups_merged"],
        "records_after_dedup": stats["unique_total"],
    }


def export_prisma_csv(dedup_result: DedupResult, output_path: str) -> None:
    """Write the identification counts as a CSV file."""
    flow = generate_prisma_identification(dedup_result)

    rows = [
        ("Stage", "Count", "Detail"),
        ("Records identified", flow["records_identified"], ""),
    ]
    for source, count in flow["records_by_source"].items():
        rows.append(("", count, f"From {source}"))

    rows.extend([
        ("Duplicates removed", flow["duplicates_removed"], f"{flow['duplicate_groups']} merged groups"),
        ("Records after deduplication", flow["records_after_dedup"], ""),
    ])

    with open(output_path, "w", newline="") as f:
        writer = csv.writer(f)
        writer.writerows(rows)

    logger.info("PRISMA CSV exported to %s", output_path)
