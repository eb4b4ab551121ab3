"""Dependency container wiring for the application."""

from dataclasses import dataclass

from substance_tracker.adapters.file_dataset_repository import FileDatasetRepository
from substance_tracker.config import Settings, resolve_timezone
from substance_tracker.services.stats import StatsService
from substance_tracker.services.store import DatasetStore
from substance_tracker.services.tracker import TrackerService
from substance_tracker.services.transfer import TransferService


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    store: DatasetStore
    tracker_service: TrackerService
    stats_service: StatsService
    transfer_service: TransferService


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    repository = FileDatasetRepository.create(
        resolved_settings.data_dir, resolved_settings.storage_key
    )
    store = DatasetStore(
        repository=repository,
        timezone=resolve_timezone(resolved_settings.timezone),
    )
    return AppContainer(
        settings=resolved_settings,
        store=store,
        tracker_service=TrackerService(store),
        stats_service=StatsService(store),
        transfer_service=TransferService(store),
    )
