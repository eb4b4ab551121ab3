"""Mutators for substances and entries."""

import html
import logging
from collections.abc import Mapping
from dataclasses import dataclass, replace
from uuid import uuid4

from substance_tracker.domain.errors import NotFoundError, ValidationError
from substance_tracker.domain.models import (
    MAX_NOTES_LENGTH,
    Dataset,
    Entry,
    Substance,
    is_valid_mass,
    round_mass,
)
from substance_tracker.domain.timestamps import format_timestamp, now_local
from substance_tracker.services.store import DatasetStore

logger = logging.getLogger(__name__)

_UPDATABLE_SUBSTANCE_FIELDS = frozenset(
    {"name", "advertised_mass", "gross_initial_mass", "gross_final_mass", "active"}
)
_REQUIRED_SUBSTANCE_FIELDS = frozenset({"name", "advertised_mass", "active"})


def sanitize_notes(notes: str | None) -> str | None:
    """Trim and HTML-escape notes, dropping empty ones.

    The length limit applies to the trimmed text as typed, so escaping may
    make the stored value longer.
    """
    if notes is None:
        return None
    cleaned = notes.strip()
    if not cleaned:
        return None
    if len(cleaned) > MAX_NOTES_LENGTH:
        raise ValidationError(f"Notes must be at most {MAX_NOTES_LENGTH} characters")
    return html.escape(cleaned)


@dataclass
class TrackerService:
    """Adds, updates and removes records through the store.

    Deleting and clearing are unconditional; callers obtain confirmation
    before invoking them.
    """

    store: DatasetStore

    def load_dataset(self) -> Dataset:
        """Return the stored dataset."""
        return self.store.load()

    def save_dataset(self, dataset: Dataset) -> Dataset:
        """Replace the stored dataset."""
        return self.store.save(dataset)

    def add_substance(
        self,
        name: str,
        advertised_mass: float,
        gross_initial_mass: float | None = None,
    ) -> Substance:
        """Create an active substance."""
        substance = Substance(
            id=str(uuid4()),
            name=name.strip() if isinstance(name, str) else name,
            advertised_mass=advertised_mass,
            gross_initial_mass=gross_initial_mass,
            created_at=format_timestamp(now_local(self.store.timezone)),
        )
        self.store.update(
            lambda dataset: replace(dataset, substances=(*dataset.substances, substance))
        )
        logger.info("Added substance %s", substance.id)
        return substance

    def update_substance(
        self, substance_id: str, changes: Mapping[str, object]
    ) -> Substance:
        """Apply field changes to a substance."""
        unknown = set(changes) - _UPDATABLE_SUBSTANCE_FIELDS
        if unknown:
            raise ValidationError(f"Cannot update fields: {', '.join(sorted(unknown))}")
        cleared = sorted(
            name
            for name in _REQUIRED_SUBSTANCE_FIELDS
            if name in changes and changes[name] is None
        )
        if cleared:
            raise ValidationError(f"Fields cannot be null: {', '.join(cleared)}")
        cleaned = dict(changes)
        if isinstance(cleaned.get("name"), str):
            cleaned["name"] = cleaned["name"].strip()
        return self._replace_substance(substance_id, **cleaned)

    def deactivate_substance(
        self, substance_id: str, gross_final_mass: float | None = None
    ) -> Substance:
        """Retire a substance, optionally recording its final gross mass."""
        return self._replace_substance(
            substance_id, active=False, gross_final_mass=gross_final_mass
        )

    def reactivate_substance(self, substance_id: str) -> Substance:
        """Return a retired substance to active use.

        A final mass recorded at retirement no longer applies and is cleared.
        """
        return self._replace_substance(
            substance_id, active=True, gross_final_mass=None
        )

    def delete_substance(self, substance_id: str) -> None:
        """Remove a substance. Its entries are kept and show as Unknown."""

        def mutate(dataset: Dataset) -> Dataset:
            if dataset.find_substance(substance_id) is None:
                raise NotFoundError(f"Substance {substance_id} not found")
            return replace(
                dataset,
                substances=tuple(s for s in dataset.substances if s.id != substance_id),
            )

        self.store.update(mutate)
        logger.info("Deleted substance %s", substance_id)

    def add_entry(
        self,
        substance_id: str,
        person: str,
        delta: float,
        notes: str | None = None,
    ) -> Entry:
        """Record a usage event. New entries are stored newest first.

        Retired substances do not take new entries. An id with no matching
        substance is accepted and shows as Unknown.
        """
        entry = Entry(
            id=str(uuid4()),
            substance_id=substance_id,
            person=person.strip() if isinstance(person, str) else person,
            delta=_clean_delta(delta),
            timestamp=format_timestamp(now_local(self.store.timezone)),
            notes=sanitize_notes(notes),
        )

        def mutate(dataset: Dataset) -> Dataset:
            substance = dataset.find_substance(substance_id)
            if substance is not None and not substance.active:
                raise ValidationError(f"Substance {substance.name} is finished")
            return replace(dataset, entries=(entry, *dataset.entries))

        self.store.update(mutate)
        return entry

    def update_entry(self, entry_id: str, delta: float) -> Entry:
        """Change the recorded delta of an entry."""
        cleaned = _clean_delta(delta)
        updated: list[Entry] = []

        def mutate(dataset: Dataset) -> Dataset:
            entry = dataset.find_entry(entry_id)
            if entry is None:
                raise NotFoundError(f"Entry {entry_id} not found")
            updated.append(replace(entry, delta=cleaned))
            return replace(
                dataset,
                entries=tuple(
                    updated[0] if e.id == entry_id else e for e in dataset.entries
                ),
            )

        self.store.update(mutate)
        return updated[0]

    def delete_entry(self, entry_id: str) -> None:
        """Remove an entry."""

        def mutate(dataset: Dataset) -> Dataset:
            if dataset.find_entry(entry_id) is None:
                raise NotFoundError(f"Entry {entry_id} not found")
            return replace(
                dataset, entries=tuple(e for e in dataset.entries if e.id != entry_id)
            )

        self.store.update(mutate)

    def clear_all(self) -> None:
        """Delete all stored data. The next load writes seed data."""
        self.store.clear()

    def _replace_substance(self, substance_id: str, **changes: object) -> Substance:
        updated: list[Substance] = []

        def mutate(dataset: Dataset) -> Dataset:
            substance = dataset.find_substance(substance_id)
            if substance is None:
                raise NotFoundError(f"Substance {substance_id} not found")
            updated.append(replace(substance, **changes))
            return replace(
                dataset,
                substances=tuple(
                    updated[0] if s.id == substance_id else s
                    for s in dataset.substances
                ),
            )

        self.store.update(mutate)
        return updated[0]


def _clean_delta(delta: object) -> float:
    if not is_valid_mass(delta):
        raise ValidationError("Delta must be a non-negative number")
    return round_mass(float(delta))  # type: ignore[arg-type]
