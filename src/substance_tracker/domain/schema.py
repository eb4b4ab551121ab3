"""Pydantic models for the persisted JSON document.

Two on-disk shapes exist. Version 1 stored substance masses as
``theoreticalInitialMass``/``totalInitialMass``/``finalMass`` and kept raw
before/after masses on entries. Version 2 renames the substance masses and
keeps only ``delta`` on entries.
"""

from collections.abc import Mapping
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field

from substance_tracker.domain.models import (
    CURRENT_VERSION,
    Dataset,
    Entry,
    Metadata,
    Substance,
)

LEGACY_VERSION = "1.0"
LEGACY_CREATED_AT = "1970-01-01T00:00:00"


class SchemaVersion(StrEnum):
    """Known document shapes."""

    V1 = LEGACY_VERSION
    V2 = CURRENT_VERSION


class _Record(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class MetadataRecord(_Record):
    """Document metadata payload."""

    version: str | None = None
    last_updated: str | None = Field(default=None, alias="lastUpdated")


class SubstanceV1(_Record):
    """Version 1 substance payload.

    Current-shape fields are accepted as fallbacks so that half-migrated
    documents upgrade without losing values.
    """

    id: str
    name: str
    theoretical_initial_mass: float | None = Field(
        default=None, alias="theoreticalInitialMass"
    )
    total_initial_mass: float | None = Field(default=None, alias="totalInitialMass")
    final_mass: float | None = Field(default=None, alias="finalMass")
    advertised_mass: float | None = Field(default=None, alias="advertisedMass")
    gross_initial_mass: float | None = Field(default=None, alias="grossInitialMass")
    gross_final_mass: float | None = Field(default=None, alias="grossFinalMass")
    active: bool = True
    created_at: str = Field(default=LEGACY_CREATED_AT, alias="createdAt")


class EntryV1(_Record):
    """Version 1 entry payload with raw before/after masses."""

    id: str
    substance_id: str = Field(alias="substanceId")
    person: str
    delta: float | None = None
    initial_mass: float | None = Field(default=None, alias="initialMass")
    final_mass: float | None = Field(default=None, alias="finalMass")
    timestamp: str
    notes: str | None = None


class DocumentV1(_Record):
    """Version 1 document."""

    substances: list[SubstanceV1] = Field(default_factory=list)
    entries: list[EntryV1] = Field(default_factory=list)
    metadata: MetadataRecord = Field(default_factory=MetadataRecord)


class SubstanceRecord(_Record):
    """Current substance payload."""

    id: str
    name: str
    advertised_mass: float = Field(alias="advertisedMass")
    gross_initial_mass: float | None = Field(default=None, alias="grossInitialMass")
    gross_final_mass: float | None = Field(default=None, alias="grossFinalMass")
    active: bool = True
    created_at: str = Field(default=LEGACY_CREATED_AT, alias="createdAt")


class EntryRecord(_Record):
    """Current entry payload."""

    id: str
    substance_id: str = Field(alias="substanceId")
    person: str
    delta: float
    timestamp: str
    notes: str | None = None


class DocumentV2(_Record):
    """Current document."""

    substances: list[SubstanceRecord] = Field(default_factory=list)
    entries: list[EntryRecord] = Field(default_factory=list)
    metadata: MetadataRecord = Field(
        default_factory=lambda: MetadataRecord(version=CURRENT_VERSION)
    )


def has_legacy_fields(document: Mapping[str, object]) -> bool:
    """Structural fallback: any substance still carrying a v1 mass field.

    A current version stamp does not rule out v1 substance fields, so this
    check runs regardless of ``metadata.version``.
    """
    substances = document.get("substances")
    if not isinstance(substances, list):
        return False
    return any(
        isinstance(item, Mapping) and "theoreticalInitialMass" in item
        for item in substances
    )


def detect_schema(document: Mapping[str, object]) -> SchemaVersion:
    """Return the shape of a raw document."""
    metadata = document.get("metadata")
    version = metadata.get("version") if isinstance(metadata, Mapping) else None
    if version in (None, LEGACY_VERSION) or has_legacy_fields(document):
        return SchemaVersion.V1
    return SchemaVersion.V2


def decode_document(document: Mapping[str, object]) -> DocumentV1 | DocumentV2:
    """Decode a raw document into its explicit schema variant.

    Raises pydantic.ValidationError for payloads that do not fit the shape.
    """
    if detect_schema(document) is SchemaVersion.V1:
        return DocumentV1.model_validate(document)
    return DocumentV2.model_validate(document)


def dump_document(document: DocumentV2) -> dict[str, object]:
    """Serialize a current document to plain JSON-compatible data."""
    return {
        "substances": [item.model_dump(by_alias=True) for item in document.substances],
        "entries": [
            item.model_dump(by_alias=True, exclude_none=True)
            for item in document.entries
        ],
        "metadata": document.metadata.model_dump(by_alias=True),
    }


def to_dataset(document: DocumentV2) -> Dataset:
    """Build domain objects from a current document.

    Raises substance_tracker.domain.errors.ValidationError on invalid records.
    """
    return Dataset(
        substances=tuple(
            Substance(
                id=item.id,
                name=item.name,
                advertised_mass=item.advertised_mass,
                gross_initial_mass=item.gross_initial_mass,
                gross_final_mass=item.gross_final_mass,
                active=item.active,
                created_at=item.created_at,
            )
            for item in document.substances
        ),
        entries=tuple(
            Entry(
                id=item.id,
                substance_id=item.substance_id,
                person=item.person,
                delta=item.delta,
                timestamp=item.timestamp,
                notes=item.notes,
            )
            for item in document.entries
        ),
        metadata=Metadata(
            version=document.metadata.version or CURRENT_VERSION,
            last_updated=document.metadata.last_updated,
        ),
    )


def from_dataset(dataset: Dataset) -> DocumentV2:
    """Build a current document from domain objects."""
    return DocumentV2(
        substances=[
            SubstanceRecord(
                id=substance.id,
                name=substance.name,
                advertised_mass=substance.advertised_mass,
                gross_initial_mass=substance.gross_initial_mass,
                gross_final_mass=substance.gross_final_mass,
                active=substance.active,
                created_at=substance.created_at,
            )
            for substance in dataset.substances
        ],
        entries=[
            EntryRecord(
                id=entry.id,
                substance_id=entry.substance_id,
                person=entry.person,
                delta=entry.delta,
                timestamp=entry.timestamp,
                notes=entry.notes,
            )
            for entry in dataset.entries
        ],
        metadata=MetadataRecord(
            version=dataset.metadata.version,
            last_updated=dataset.metadata.last_updated,
        ),
    )
