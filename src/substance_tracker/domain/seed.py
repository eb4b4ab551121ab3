"""Seed dataset written on first run."""

from substance_tracker.domain.models import Dataset, Metadata, Substance

SEED_CREATED_AT = "2026-01-01T00:00:00"


def seed_dataset() -> Dataset:
    """Return the default dataset with two active substances and no entries."""
    return Dataset(
        substances=(
            Substance(
                id="substance-apollo",
                name="Apollo",
                advertised_mass=1.0,
                created_at=SEED_CREATED_AT,
            ),
            Substance(
                id="substance-gramlin",
                name="Gramlin",
                advertised_mass=1.0,
                created_at=SEED_CREATED_AT,
            ),
        ),
        entries=(),
        metadata=Metadata(),
    )
