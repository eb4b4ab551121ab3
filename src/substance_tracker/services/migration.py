"""Schema migration for persisted documents.

Two independent upgrades are applied in order: the v1 field rename, then
timestamp normalization. Both are pure and idempotent, and neither drops
substances or entries.
"""

from collections.abc import Mapping
from datetime import tzinfo

from pydantic import ValidationError as SchemaValidationError

from substance_tracker.domain.errors import ParseError, ValidationError
from substance_tracker.domain.models import CURRENT_VERSION, Dataset, round_mass
from substance_tracker.domain.schema import (
    DocumentV1,
    DocumentV2,
    EntryRecord,
    EntryV1,
    MetadataRecord,
    SchemaVersion,
    SubstanceRecord,
    SubstanceV1,
    decode_document,
    detect_schema,
    dump_document,
    to_dataset,
)
from substance_tracker.domain.timestamps import has_utc_suffix, to_local_naive

DEFAULT_ADVERTISED_MASS = 1.0


def upgrade_v1(document: DocumentV1) -> DocumentV2:
    """Rename v1 substance masses and drop raw before/after entry masses."""
    return DocumentV2(
        substances=[_upgrade_substance(item) for item in document.substances],
        entries=[_upgrade_entry(item) for item in document.entries],
        metadata=MetadataRecord(
            version=CURRENT_VERSION,
            last_updated=document.metadata.last_updated,
        ),
    )


def has_offset_timestamps(document: Mapping[str, object]) -> bool:
    """Return True when any entry or substance timestamp carries a UTC suffix."""
    entries = document.get("entries")
    substances = document.get("substances")
    for items, key in ((entries, "timestamp"), (substances, "createdAt")):
        if not isinstance(items, list):
            continue
        if any(
            isinstance(item, Mapping) and has_utc_suffix(item.get(key))
            for item in items
        ):
            return True
    return False


def normalize_timestamps(
    document: DocumentV2, tz: tzinfo | None = None
) -> DocumentV2:
    """Rewrite suffixed timestamps as naive local wall-clock strings.

    Raises ValueError for suffixed timestamps that are not valid ISO-8601 and
    OverflowError when the local reading falls outside the datetime range.
    """
    return document.model_copy(
        update={
            "substances": [
                item.model_copy(
                    update={"created_at": to_local_naive(item.created_at, tz)}
                )
                for item in document.substances
            ],
            "entries": [
                item.model_copy(update={"timestamp": to_local_naive(item.timestamp, tz)})
                for item in document.entries
            ],
        }
    )


def needs_migration(document: Mapping[str, object]) -> bool:
    """Return True when either upgrade would change the document."""
    return detect_schema(document) is SchemaVersion.V1 or has_offset_timestamps(
        document
    )


def migrate_document(
    document: Mapping[str, object], tz: tzinfo | None = None
) -> dict[str, object]:
    """Upgrade a raw document of any known shape to the current shape.

    Running this on its own output returns an equal document.
    """
    return dump_document(_migrate(document, tz))


def read_dataset(
    document: Mapping[str, object], tz: tzinfo | None = None
) -> tuple[Dataset, bool]:
    """Decode a raw document into a dataset, migrating when required.

    Returns the dataset and whether a migration was applied. Raises
    ParseError when the document cannot be decoded.
    """
    migrated = needs_migration(document)
    if migrated:
        current = _migrate(document, tz)
    else:
        try:
            current = DocumentV2.model_validate(document)
        except SchemaValidationError as exc:
            raise ParseError(_describe(exc)) from exc
    try:
        return to_dataset(current), migrated
    except ValidationError as exc:
        raise ParseError(f"Invalid record in document: {exc}") from exc


def _migrate(document: Mapping[str, object], tz: tzinfo | None) -> DocumentV2:
    try:
        decoded = decode_document(document)
        current = upgrade_v1(decoded) if isinstance(decoded, DocumentV1) else decoded
        current = normalize_timestamps(current, tz)
    except SchemaValidationError as exc:
        raise ParseError(_describe(exc)) from exc
    except (ValueError, OverflowError) as exc:
        raise ParseError(f"Invalid timestamp in document: {exc}") from exc
    metadata = current.metadata.model_copy(update={"version": CURRENT_VERSION})
    return current.model_copy(update={"metadata": metadata})


def _upgrade_substance(item: SubstanceV1) -> SubstanceRecord:
    advertised = _first_present(item.theoretical_initial_mass, item.advertised_mass)
    return SubstanceRecord(
        id=item.id,
        name=item.name,
        advertised_mass=(
            advertised if advertised is not None else DEFAULT_ADVERTISED_MASS
        ),
        gross_initial_mass=_first_present(
            item.total_initial_mass, item.gross_initial_mass
        ),
        gross_final_mass=_first_present(item.final_mass, item.gross_final_mass),
        active=item.active,
        created_at=item.created_at,
    )


def _upgrade_entry(item: EntryV1) -> EntryRecord:
    delta = item.delta
    if delta is None and item.initial_mass is not None and item.final_mass is not None:
        delta = round_mass(item.initial_mass - item.final_mass)
    return EntryRecord(
        id=item.id,
        substance_id=item.substance_id,
        person=item.person,
        delta=delta if delta is not None else 0.0,
        timestamp=item.timestamp,
        notes=item.notes,
    )


def _first_present(*values: float | None) -> float | None:
    for value in values:
        if value is not None:
            return value
    return None


def _describe(exc: SchemaValidationError) -> str:
    first = exc.errors()[0]
    location = ".".join(str(part) for part in first["loc"])
    return f"Unrecognized document shape at {location}: {first['msg']}"
