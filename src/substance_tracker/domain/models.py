"""Domain models for the substance tracker."""

import math
from dataclasses import dataclass, field
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal

from substance_tracker.domain.errors import ValidationError
from substance_tracker.domain.timestamps import parse_timestamp

CURRENT_VERSION = "2.0"
UNKNOWN_SUBSTANCE = "Unknown"
MAX_NOTES_LENGTH = 200


def is_valid_mass(value: object) -> bool:
    """Return True for finite, non-negative numbers."""
    if isinstance(value, bool) or not isinstance(value, int | float):
        return False
    return math.isfinite(value) and value >= 0


def round_mass(value: float, places: int = 2) -> float:
    """Round half-up using the exact binary value of ``value``."""
    quantum = Decimal(1).scaleb(-places)
    return float(Decimal(value).quantize(quantum, rounding=ROUND_HALF_UP))


def _check_timestamp(value: str, label: str) -> None:
    if not isinstance(value, str):
        raise ValidationError(f"{label} must be an ISO-8601 string")
    try:
        parse_timestamp(value)
    except (ValueError, OverflowError) as exc:
        raise ValidationError(f"{label} is not a valid timestamp: {value!r}") from exc


@dataclass(frozen=True)
class Substance:
    """A named, depleting supply being tracked."""

    id: str
    name: str
    advertised_mass: float
    created_at: str
    active: bool = True
    gross_initial_mass: float | None = None
    gross_final_mass: float | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.name, str) or not self.name.strip():
            raise ValidationError("Substance name must not be empty")
        if not isinstance(self.active, bool):
            raise ValidationError("Active flag must be true or false")
        if not is_valid_mass(self.advertised_mass) or self.advertised_mass <= 0:
            raise ValidationError("Advertised mass must be a positive number")
        if self.gross_initial_mass is not None and (
            not is_valid_mass(self.gross_initial_mass) or self.gross_initial_mass <= 0
        ):
            raise ValidationError("Gross initial mass must be positive if provided")
        if self.gross_final_mass is not None:
            if not is_valid_mass(self.gross_final_mass):
                raise ValidationError("Final mass must be a non-negative number")
            if self.gross_final_mass > self.reference_mass:
                raise ValidationError(
                    f"Final mass cannot exceed {self.reference_mass}g (initial mass)"
                )
        _check_timestamp(self.created_at, "createdAt")

    @property
    def reference_mass(self) -> float:
        """Mass that a recorded final mass is measured against."""
        if self.gross_initial_mass is not None:
            return self.gross_initial_mass
        return self.advertised_mass

    @property
    def has_final_mass(self) -> bool:
        return self.gross_final_mass is not None


@dataclass(frozen=True)
class Entry:
    """One recorded usage event against a substance."""

    id: str
    substance_id: str
    person: str
    delta: float
    timestamp: str
    notes: str | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.substance_id, str) or not self.substance_id:
            raise ValidationError("Entry must reference a substance")
        if not isinstance(self.person, str) or not self.person.strip():
            raise ValidationError("Person must not be empty")
        if (
            isinstance(self.delta, bool)
            or not isinstance(self.delta, int | float)
            or not math.isfinite(self.delta)
        ):
            raise ValidationError("Delta must be a number")
        _check_timestamp(self.timestamp, "timestamp")

    @property
    def logged_at(self) -> datetime:
        """Entry time as a naive local datetime."""
        return parse_timestamp(self.timestamp)


@dataclass(frozen=True)
class Metadata:
    """Document metadata."""

    version: str = CURRENT_VERSION
    last_updated: str | None = None


@dataclass(frozen=True)
class Dataset:
    """Root persisted aggregate of substances and entries."""

    substances: tuple[Substance, ...] = ()
    entries: tuple[Entry, ...] = ()
    metadata: Metadata = field(default_factory=Metadata)

    def find_substance(self, substance_id: str) -> Substance | None:
        """Return a substance by id, if present."""
        for substance in self.substances:
            if substance.id == substance_id:
                return substance
        return None

    def find_entry(self, entry_id: str) -> Entry | None:
        """Return an entry by id, if present."""
        for entry in self.entries:
            if entry.id == entry_id:
                return entry
        return None

    def substance_name(self, substance_id: str) -> str:
        """Resolve a substance name, falling back to ``Unknown``."""
        substance = self.find_substance(substance_id)
        return substance.name if substance else UNKNOWN_SUBSTANCE
