"""FastAPI application factory."""

import logging
from dataclasses import asdict
from datetime import date

from fastapi import FastAPI, Request, Response, status
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse

from substance_tracker.api.models import (
    EntryCreate,
    EntryUpdate,
    SubstanceCreate,
    SubstanceDeactivate,
    SubstanceUpdate,
)
from substance_tracker.app_logging import configure_logging
from substance_tracker.containers import AppContainer
from substance_tracker.domain.errors import (
    NotFoundError,
    ParseError,
    TrackerError,
    ValidationError,
)
from substance_tracker.domain.models import Entry, Substance
from substance_tracker.domain.schema import (
    EntryRecord,
    SubstanceRecord,
    dump_document,
    from_dataset,
)

_STATUS_BY_ERROR: dict[type[TrackerError], int] = {
    ValidationError: 422,
    ParseError: 400,
    NotFoundError: 404,
}


def create_app(container: AppContainer) -> FastAPI:  # noqa: PLR0915
    """Create a FastAPI app configured with dependencies."""
    configure_logging(container.settings.log_level)
    logger = logging.getLogger(__name__)

    app = FastAPI()
    app.state.container = container

    @app.exception_handler(TrackerError)
    async def tracker_error_handler(
        request: Request, exc: TrackerError
    ) -> JSONResponse:
        status_code = _STATUS_BY_ERROR.get(type(exc), status.HTTP_400_BAD_REQUEST)
        if isinstance(exc, ParseError):
            logger.warning("Rejected document on %s: %s", request.url.path, exc)
        return JSONResponse(status_code=status_code, content={"detail": str(exc)})

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Simple health check endpoint."""
        return {"status": "ok"}

    @app.get("/dataset")
    def get_dataset(request: Request) -> dict[str, object]:
        """Return the stored dataset document."""
        state_container: AppContainer = request.app.state.container
        dataset = state_container.tracker_service.load_dataset()
        return dump_document(from_dataset(dataset))

    @app.delete("/dataset")
    def clear_dataset(request: Request) -> dict[str, str]:
        """Delete all stored data. The caller confirms before sending this."""
        state_container: AppContainer = request.app.state.container
        state_container.tracker_service.clear_all()
        return {"status": "cleared"}

    @app.post("/substances", status_code=status.HTTP_201_CREATED)
    def add_substance(payload: SubstanceCreate, request: Request) -> dict[str, object]:
        """Create a substance."""
        state_container: AppContainer = request.app.state.container
        substance = state_container.tracker_service.add_substance(
            payload.name, payload.advertised_mass, payload.gross_initial_mass
        )
        return _substance_payload(substance)

    @app.patch("/substances/{substance_id}")
    def update_substance(
        substance_id: str, payload: SubstanceUpdate, request: Request
    ) -> dict[str, object]:
        """Apply a partial update to a substance."""
        state_container: AppContainer = request.app.state.container
        substance = state_container.tracker_service.update_substance(
            substance_id, payload.model_dump(exclude_unset=True)
        )
        return _substance_payload(substance)

    @app.post("/substances/{substance_id}/deactivate")
    def deactivate_substance(
        substance_id: str, payload: SubstanceDeactivate, request: Request
    ) -> dict[str, object]:
        """Mark a substance as finished."""
        state_container: AppContainer = request.app.state.container
        substance = state_container.tracker_service.deactivate_substance(
            substance_id, payload.gross_final_mass
        )
        return _substance_payload(substance)

    @app.post("/substances/{substance_id}/reactivate")
    def reactivate_substance(substance_id: str, request: Request) -> dict[str, object]:
        """Return a finished substance to active use."""
        state_container: AppContainer = request.app.state.container
        substance = state_container.tracker_service.reactivate_substance(substance_id)
        return _substance_payload(substance)

    @app.delete("/substances/{substance_id}")
    def delete_substance(substance_id: str, request: Request) -> dict[str, str]:
        """Delete a substance; its entries are kept."""
        state_container: AppContainer = request.app.state.container
        state_container.tracker_service.delete_substance(substance_id)
        return {"status": "deleted"}

    @app.get("/substances/{substance_id}/stats")
    def substance_stats(
        substance_id: str, request: Request, today: date | None = None
    ) -> dict[str, object]:
        """Return remaining mass, usage rate, depletion and distribution."""
        state_container: AppContainer = request.app.state.container
        report = state_container.stats_service.substance_report(
            substance_id, today=today
        )
        return asdict(report)

    @app.post("/entries", status_code=status.HTTP_201_CREATED)
    def add_entry(payload: EntryCreate, request: Request) -> dict[str, object]:
        """Record a usage entry."""
        state_container: AppContainer = request.app.state.container
        entry = state_container.tracker_service.add_entry(
            payload.substance_id, payload.person, payload.delta, payload.notes
        )
        return _entry_payload(entry)

    @app.patch("/entries/{entry_id}")
    def update_entry(
        entry_id: str, payload: EntryUpdate, request: Request
    ) -> dict[str, object]:
        """Correct the delta of an entry."""
        state_container: AppContainer = request.app.state.container
        entry = state_container.tracker_service.update_entry(entry_id, payload.delta)
        return _entry_payload(entry)

    @app.delete("/entries/{entry_id}")
    def delete_entry(entry_id: str, request: Request) -> dict[str, str]:
        """Delete an entry."""
        state_container: AppContainer = request.app.state.container
        state_container.tracker_service.delete_entry(entry_id)
        return {"status": "deleted"}

    @app.get("/people")
    def list_people(request: Request) -> dict[str, object]:
        """Return everyone who has recorded an entry."""
        state_container: AppContainer = request.app.state.container
        return {"people": state_container.stats_service.people()}

    @app.get("/people/{person}/stats")
    def person_stats(
        person: str, request: Request, include_inactive: bool = False
    ) -> dict[str, object]:
        """Return overall, per-substance, weekly and weekday statistics."""
        state_container: AppContainer = request.app.state.container
        report = state_container.stats_service.person_report(
            person, include_inactive=include_inactive
        )
        return asdict(report)

    @app.get("/export/json")
    def export_json(request: Request) -> Response:
        """Download the dataset as JSON."""
        state_container: AppContainer = request.app.state.container
        return _attachment(
            state_container.transfer_service.export_json(),
            "application/json",
            state_container.transfer_service.export_filename("json"),
        )

    @app.get("/export/csv")
    def export_csv(request: Request) -> Response:
        """Download entries as CSV."""
        state_container: AppContainer = request.app.state.container
        return _attachment(
            state_container.transfer_service.export_csv(),
            "text/csv",
            state_container.transfer_service.export_filename("csv"),
        )

    @app.post("/import")
    async def import_json(request: Request) -> dict[str, object]:
        """Replace the stored dataset with an uploaded JSON document."""
        state_container: AppContainer = request.app.state.container
        content = await request.body()
        dataset = await run_in_threadpool(
            state_container.transfer_service.import_and_replace, content
        )
        return {
            "status": "imported",
            "substances": len(dataset.substances),
            "entries": len(dataset.entries),
        }

    return app


def _substance_payload(substance: Substance) -> dict[str, object]:
    return SubstanceRecord(
        id=substance.id,
        name=substance.name,
        advertised_mass=substance.advertised_mass,
        gross_initial_mass=substance.gross_initial_mass,
        gross_final_mass=substance.gross_final_mass,
        active=substance.active,
        created_at=substance.created_at,
    ).model_dump(by_alias=True)


def _entry_payload(entry: Entry) -> dict[str, object]:
    return EntryRecord(
        id=entry.id,
        substance_id=entry.substance_id,
        person=entry.person,
        delta=entry.delta,
        timestamp=entry.timestamp,
        notes=entry.notes,
    ).model_dump(by_alias=True, exclude_none=True)


def _attachment(content: str, media_type: str, filename: str) -> Response:
    return Response(
        content=content,
        media_type=media_type,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
