"""JSON and CSV import/export of the dataset."""

import csv
import io
import json
import logging
from dataclasses import dataclass
from datetime import date, tzinfo

from substance_tracker.domain.errors import ParseError
from substance_tracker.domain.models import Dataset
from substance_tracker.domain.timestamps import now_local
from substance_tracker.services.migration import read_dataset
from substance_tracker.services.store import DatasetStore, encode_dataset

logger = logging.getLogger(__name__)

CSV_HEADER = ("Date", "Time", "Substance", "Person", "Delta (g)")


def export_json(dataset: Dataset) -> str:
    """Serialize the dataset as a pretty-printed JSON document."""
    return encode_dataset(dataset, indent=2)


def export_csv(dataset: Dataset) -> str:
    """Serialize entries as CSV with one quoted row per entry."""
    buffer = io.StringIO()
    csv.writer(buffer, lineterminator="\n").writerow(CSV_HEADER)
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
    for entry in dataset.entries:
        logged_at = entry.logged_at
        writer.writerow(
            [
                logged_at.strftime("%Y-%m-%d"),
                logged_at.strftime("%H:%M:%S"),
                dataset.substance_name(entry.substance_id),
                entry.person,
                f"{entry.delta:.2f}",
            ]
        )
    return buffer.getvalue()


def export_filename(
    extension: str, day: date | None = None, tz: tzinfo | None = None
) -> str:
    """Return ``tracker-<YYYY-MM-DD>.<extension>``, dated today in ``tz``."""
    return f"tracker-{(day or now_local(tz).date()).isoformat()}.{extension}"


def import_json(content: str | bytes, tz: tzinfo | None = None) -> Dataset:
    """Parse an uploaded document, migrating legacy shapes.

    Raises ParseError for invalid JSON, for documents without both a
    ``substances`` and an ``entries`` array, and for undecodable records.
    """
    try:
        document = json.loads(content)
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise ParseError("Invalid JSON file") from exc
    if not (
        isinstance(document, dict)
        and isinstance(document.get("substances"), list)
        and isinstance(document.get("entries"), list)
    ):
        raise ParseError("Invalid data format: expected substances and entries arrays")
    dataset, migrated = read_dataset(document, tz)
    if migrated:
        logger.info("Migrated imported document from a legacy schema")
    return dataset


@dataclass
class TransferService:
    """Exports the stored dataset and replaces it from imports."""

    store: DatasetStore

    def export_json(self) -> str:
        """Return the stored dataset as pretty-printed JSON."""
        return export_json(self.store.load())

    def export_csv(self) -> str:
        """Return the stored entries as CSV."""
        return export_csv(self.store.load())

    def export_filename(self, extension: str) -> str:
        """Return a download filename dated in the store timezone."""
        return export_filename(extension, tz=self.store.timezone)

    def import_and_replace(self, content: str | bytes) -> Dataset:
        """Import a document and store it in place of the current dataset.

        Nothing is written unless the whole document imports cleanly.
        """
        dataset = import_json(content, self.store.timezone)
        saved = self.store.save(dataset)
        logger.info(
            "Imported %d substances and %d entries",
            len(saved.substances),
            len(saved.entries),
        )
        return saved
