"""Shared test fixtures."""

from dataclasses import dataclass, field
from pathlib import Path
from zoneinfo import ZoneInfo

import pytest

from substance_tracker.config import Settings
from substance_tracker.containers import AppContainer
from substance_tracker.domain.models import Entry, Substance
from substance_tracker.services.stats import StatsService
from substance_tracker.services.store import DatasetRepository, DatasetStore
from substance_tracker.services.tracker import TrackerService
from substance_tracker.services.transfer import TransferService

UTC_ZONE = ZoneInfo("UTC")


@dataclass
class InMemoryDatasetRepository(DatasetRepository):
    """In-memory dataset repository for tests."""

    content: str | None = None
    writes: list[str] = field(default_factory=list)
    archived: dict[str, str] = field(default_factory=dict)

    def read_document(self) -> str | None:
        return self.content

    def write_document(self, content: str) -> None:
        self.content = content
        self.writes.append(content)

    def delete_document(self) -> None:
        self.content = None

    def archive_document(self, label: str) -> None:
        if self.content is not None:
            self.archived[label] = self.content
            self.content = None


def make_substance(**overrides: object) -> Substance:
    values: dict[str, object] = {
        "id": "substance-1",
        "name": "Apollo",
        "advertised_mass": 1.0,
        "created_at": "2026-01-01T00:00:00",
    }
    values.update(overrides)
    return Substance(**values)  # type: ignore[arg-type]


def make_entry(
    delta: float,
    timestamp: str,
    substance_id: str = "substance-1",
    person: str = "t",
    entry_id: str | None = None,
) -> Entry:
    return Entry(
        id=entry_id or f"entry-{timestamp}-{person}-{delta}",
        substance_id=substance_id,
        person=person,
        delta=delta,
        timestamp=timestamp,
    )


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return Settings(data_dir=tmp_path / "data", timezone="UTC")


@pytest.fixture
def repository() -> InMemoryDatasetRepository:
    return InMemoryDatasetRepository()


@pytest.fixture
def store(repository: InMemoryDatasetRepository) -> DatasetStore:
    return DatasetStore(repository=repository, timezone=UTC_ZONE)


@pytest.fixture
def tracker_service(store: DatasetStore) -> TrackerService:
    return TrackerService(store)


@pytest.fixture
def container(settings: Settings, store: DatasetStore) -> AppContainer:
    return AppContainer(
        settings=settings,
        store=store,
        tracker_service=TrackerService(store),
        stats_service=StatsService(store),
        transfer_service=TransferService(store),
    )
