"""Tests for domain models."""

import math

import pytest

from substance_tracker.domain.errors import ValidationError
from substance_tracker.domain.models import (
    UNKNOWN_SUBSTANCE,
    Dataset,
    Entry,
    is_valid_mass,
    round_mass,
)
from tests.conftest import make_entry, make_substance


def test_is_valid_mass_accepts_non_negative_numbers() -> None:
    assert is_valid_mass(0)
    assert is_valid_mass(1.25)
    assert not is_valid_mass(-0.01)
    assert not is_valid_mass(math.nan)
    assert not is_valid_mass(math.inf)
    assert not is_valid_mass("1.0")
    assert not is_valid_mass(True)
    assert not is_valid_mass(None)


def test_round_mass_rounds_half_up() -> None:
    assert round_mass(0.125) == 0.13
    assert round_mass(1 - 0.17) == 0.83
    assert round_mass(0.0566666, 3) == 0.057
    assert round_mass(-0.005) == -0.01


@pytest.mark.parametrize(
    "overrides",
    [
        {"name": ""},
        {"name": "   "},
        {"advertised_mass": 0},
        {"advertised_mass": -1.0},
        {"advertised_mass": math.inf},
        {"gross_initial_mass": 0},
        {"gross_final_mass": -0.5},
        {"gross_final_mass": 1.5},
        {"gross_initial_mass": 10.0, "gross_final_mass": 12.0},
        {"created_at": "yesterday"},
        {"active": None},
        {"active": "yes"},
    ],
)
def test_substance_rejects_invalid_values(overrides: dict[str, object]) -> None:
    with pytest.raises(ValidationError):
        make_substance(**overrides)


def test_substance_final_mass_checked_against_gross_initial_mass() -> None:
    substance = make_substance(
        advertised_mass=1.0, gross_initial_mass=30.0, gross_final_mass=25.0
    )

    assert substance.reference_mass == 30.0
    assert substance.has_final_mass


def test_entry_rejects_non_numeric_delta() -> None:
    with pytest.raises(ValidationError):
        Entry(
            id="e1",
            substance_id="substance-1",
            person="t",
            delta="0.05",  # type: ignore[arg-type]
            timestamp="2026-01-01T10:00:00",
        )


def test_entry_rejects_empty_person() -> None:
    with pytest.raises(ValidationError):
        make_entry(0.05, "2026-01-01T10:00:00", person=" ")


def test_entry_logged_at_parses_naive_timestamp() -> None:
    entry = make_entry(0.05, "2026-01-01T10:30:00")

    assert entry.logged_at.hour == 10
    assert entry.logged_at.tzinfo is None


def test_dataset_resolves_missing_substance_as_unknown() -> None:
    dataset = Dataset(
        substances=(make_substance(),),
        entries=(make_entry(0.05, "2026-01-01T10:00:00", substance_id="gone"),),
    )

    assert dataset.substance_name("substance-1") == "Apollo"
    assert dataset.substance_name("gone") == UNKNOWN_SUBSTANCE
    assert dataset.find_entry("missing") is None
