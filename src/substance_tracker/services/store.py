"""Persistence store for the tracker dataset."""

import json
import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass, field, replace
from datetime import UTC, datetime, tzinfo
from typing import Protocol

from substance_tracker.domain.errors import ParseError
from substance_tracker.domain.models import CURRENT_VERSION, Dataset
from substance_tracker.domain.schema import dump_document, from_dataset
from substance_tracker.domain.seed import seed_dataset
from substance_tracker.services.migration import read_dataset

logger = logging.getLogger(__name__)


class DatasetRepository(Protocol):
    """Storage interface for the single persisted document."""

    def read_document(self) -> str | None:
        """Return the stored document text, or None when absent."""

    def write_document(self, content: str) -> None:
        """Replace the stored document in a single atomic write."""

    def delete_document(self) -> None:
        """Remove the stored document if present."""

    def archive_document(self, label: str) -> None:
        """Move the stored document aside under ``label``."""


def encode_dataset(dataset: Dataset, indent: int | None = None) -> str:
    """Serialize a dataset as a current-shape JSON document."""
    return json.dumps(
        dump_document(from_dataset(dataset)), indent=indent, ensure_ascii=False
    )


@dataclass
class DatasetStore:
    """Owns read and write access to the persisted dataset.

    Every call holds one re-entrant lock, so a load followed by a save in
    ``update`` cannot interleave with another caller.
    """

    repository: DatasetRepository
    timezone: tzinfo | None = None
    _lock: threading.RLock = field(
        default_factory=threading.RLock, init=False, repr=False
    )

    def load(self) -> Dataset:
        """Return the stored dataset, seeding or migrating it as needed."""
        with self._lock:
            try:
                raw = self.repository.read_document()
            except OSError:
                logger.exception("Failed to read stored dataset; using seed data")
                return seed_dataset()
            if raw is None:
                logger.info("No stored dataset found; writing seed data")
                return self._write_back(seed_dataset())
            try:
                dataset, migrated = self._decode(raw)
            except ParseError as exc:
                logger.warning("Stored dataset is unreadable (%s); replacing it", exc)
                return self._write_back(seed_dataset(), archive=True)
            if migrated:
                logger.info("Migrated stored dataset to schema %s", CURRENT_VERSION)
                return self._write_back(dataset)
            return dataset

    def save(self, dataset: Dataset) -> Dataset:
        """Stamp and persist the whole dataset, returning the stamped copy."""
        stamped = replace(
            dataset,
            metadata=replace(
                dataset.metadata,
                version=CURRENT_VERSION,
                last_updated=datetime.now(tz=UTC).isoformat(),
            ),
        )
        content = encode_dataset(stamped)
        with self._lock:
            self.repository.write_document(content)
        return stamped

    def update(self, mutator: Callable[[Dataset], Dataset]) -> Dataset:
        """Load, transform and save the dataset as one serialized step."""
        with self._lock:
            return self.save(mutator(self.load()))

    def clear(self) -> None:
        """Delete the stored dataset. Callers confirm before invoking."""
        with self._lock:
            self.repository.delete_document()
        logger.info("Cleared stored dataset")

    def _decode(self, raw: str) -> tuple[Dataset, bool]:
        try:
            document = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise ParseError(f"Invalid JSON: {exc.msg}") from exc
        if not isinstance(document, dict):
            raise ParseError("Stored document is not a JSON object")
        return read_dataset(document, self.timezone)

    def _write_back(self, dataset: Dataset, archive: bool = False) -> Dataset:
        try:
            if archive:
                label = "corrupt-" + datetime.now(tz=UTC).strftime("%Y%m%dT%H%M%S")
                self.repository.archive_document(label)
            return self.save(dataset)
        except OSError:
            logger.exception("Failed to persist dataset")
            return dataset
