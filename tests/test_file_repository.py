"""Tests for the file-backed dataset repository."""

import json
from pathlib import Path

from substance_tracker.adapters.file_dataset_repository import FileDatasetRepository
from substance_tracker.services.store import DatasetStore
from tests.conftest import UTC_ZONE


def test_read_missing_document_returns_none(tmp_path: Path) -> None:
    repository = FileDatasetRepository.create(tmp_path, "tracker_data")

    assert repository.path == tmp_path / "tracker_data.json"
    assert repository.read_document() is None


def test_write_replaces_document_without_leftovers(tmp_path: Path) -> None:
    repository = FileDatasetRepository.create(tmp_path / "nested", "tracker_data")

    repository.write_document('{"a": 1}')
    repository.write_document('{"a": 2}')

    assert repository.read_document() == '{"a": 2}'
    assert sorted(p.name for p in (tmp_path / "nested").iterdir()) == [
        "tracker_data.json"
    ]


def test_delete_is_safe_when_absent(tmp_path: Path) -> None:
    repository = FileDatasetRepository.create(tmp_path, "tracker_data")

    repository.delete_document()
    repository.write_document("{}")
    repository.delete_document()

    assert repository.read_document() is None


def test_archive_moves_document_aside(tmp_path: Path) -> None:
    repository = FileDatasetRepository.create(tmp_path, "tracker_data")
    repository.write_document("{broken")

    repository.archive_document("corrupt-20260101T000000")

    assert repository.read_document() is None
    archived = tmp_path / "tracker_data.corrupt-20260101T000000.json"
    assert archived.read_text(encoding="utf-8") == "{broken"


def test_store_round_trip_on_disk(tmp_path: Path) -> None:
    repository = FileDatasetRepository.create(tmp_path, "tracker_data")
    store = DatasetStore(repository=repository, timezone=UTC_ZONE)

    seeded = store.load()

    document = json.loads(repository.path.read_text(encoding="utf-8"))
    assert [s["id"] for s in document["substances"]] == [
        s.id for s in seeded.substances
    ]
    assert store.load() == seeded
