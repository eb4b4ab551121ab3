"""File-backed repository for the persisted dataset document."""

import os
from dataclasses import dataclass
from pathlib import Path

from substance_tracker.services.store import DatasetRepository


@dataclass
class FileDatasetRepository(DatasetRepository):
    """Stores the dataset as ``<data_dir>/<storage_key>.json``."""

    path: Path

    @classmethod
    def create(cls, data_dir: Path, storage_key: str) -> "FileDatasetRepository":
        """Create a repository for a storage key inside ``data_dir``."""
        return cls(path=data_dir / f"{storage_key}.json")

    def read_document(self) -> str | None:
        """Return the document text, or None when the file does not exist."""
        try:
            return self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None

    def write_document(self, content: str) -> None:
        """Write through a temporary file and rename it over the document."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        temp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        temp_path.write_text(content, encoding="utf-8")
        os.replace(temp_path, self.path)

    def delete_document(self) -> None:
        """Remove the document file."""
        self.path.unlink(missing_ok=True)

    def archive_document(self, label: str) -> None:
        """Rename the document to ``<storage_key>.<label>.json``."""
        if not self.path.exists():
            return
        os.replace(self.path, self.path.with_name(f"{self.path.stem}.{label}.json"))
