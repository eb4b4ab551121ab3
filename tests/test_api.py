"""Tests for HTTP endpoints."""

import asyncio
import json
from dataclasses import replace

from fastapi.testclient import TestClient

from substance_tracker.api.app import create_app
from substance_tracker.containers import AppContainer
from substance_tracker.domain.models import Dataset
from substance_tracker.services.transfer import TransferService


def _client(container: AppContainer) -> TestClient:
    return TestClient(create_app(container))


def test_health(container: AppContainer) -> None:
    response = _client(container).get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_get_dataset_returns_seed(container: AppContainer) -> None:
    response = _client(container).get("/dataset")

    assert response.status_code == 200
    data = response.json()
    assert [s["name"] for s in data["substances"]] == ["Apollo", "Gramlin"]
    assert data["metadata"]["version"] == "2.0"


def test_substance_lifecycle(container: AppContainer) -> None:
    client = _client(container)

    created = client.post(
        "/substances", json={"name": "Orbit", "advertisedMass": 3.5}
    )
    assert created.status_code == 201
    substance_id = created.json()["id"]

    patched = client.patch(f"/substances/{substance_id}", json={"name": "Orbit 2"})
    assert patched.json()["name"] == "Orbit 2"
    assert patched.json()["advertisedMass"] == 3.5

    retired = client.post(
        f"/substances/{substance_id}/deactivate", json={"grossFinalMass": 1.5}
    )
    assert retired.json()["active"] is False
    assert retired.json()["grossFinalMass"] == 1.5

    restored = client.post(f"/substances/{substance_id}/reactivate")
    assert restored.json()["active"] is True
    assert restored.json()["grossFinalMass"] is None

    deleted = client.delete(f"/substances/{substance_id}")
    assert deleted.status_code == 200
    assert client.delete(f"/substances/{substance_id}").status_code == 404


def test_invalid_substance_is_rejected(container: AppContainer) -> None:
    response = _client(container).post(
        "/substances", json={"name": "Orbit", "advertisedMass": 0}
    )

    assert response.status_code == 422
    assert "Advertised mass" in response.json()["detail"]


def test_entry_endpoints(container: AppContainer) -> None:
    client = _client(container)

    created = client.post(
        "/entries",
        json={
            "substanceId": "substance-apollo",
            "person": "t",
            "delta": 0.05,
            "notes": "<i>ok</i>",
        },
    )
    assert created.status_code == 201
    entry = created.json()
    assert entry["notes"] == "&lt;i&gt;ok&lt;/i&gt;"

    updated = client.patch(f"/entries/{entry['id']}", json={"delta": 0.08})
    assert updated.json()["delta"] == 0.08

    assert client.delete(f"/entries/{entry['id']}").status_code == 200
    assert client.delete(f"/entries/{entry['id']}").status_code == 404


def test_negative_delta_is_rejected(container: AppContainer) -> None:
    response = _client(container).post(
        "/entries",
        json={"substanceId": "substance-apollo", "person": "t", "delta": -0.1},
    )

    assert response.status_code == 422


def test_stats_endpoints(container: AppContainer) -> None:
    client = _client(container)
    for delta in (0.1, 0.2):
        client.post(
            "/entries",
            json={"substanceId": "substance-apollo", "person": "t", "delta": delta},
        )

    substance = client.get(
        "/substances/substance-apollo/stats", params={"today": "2026-10-17"}
    )
    people = client.get("/people")
    person = client.get("/people/t/stats")

    assert substance.status_code == 200
    assert substance.json()["remaining"] == 0.7
    assert substance.json()["summary"]["total_entries"] == 2
    assert people.json() == {"people": ["t"]}
    assert person.json()["overall"]["total_sessions"] == 2
    assert len(person.json()["day_of_week"]) == 7


def test_unknown_substance_stats(container: AppContainer) -> None:
    response = _client(container).get("/substances/missing/stats")

    assert response.status_code == 404


def test_export_endpoints(container: AppContainer) -> None:
    client = _client(container)

    exported = client.get("/export/json")
    csv_export = client.get("/export/csv")

    assert exported.status_code == 200
    assert "attachment" in exported.headers["content-disposition"]
    assert ".json" in exported.headers["content-disposition"]
    assert json.loads(exported.text)["metadata"]["version"] == "2.0"
    assert csv_export.text.startswith("Date,Time,Substance,Person,Delta (g)")


def test_import_replaces_dataset(container: AppContainer) -> None:
    client = _client(container)
    document = {
        "substances": [
            {
                "id": "s1",
                "name": "Legacy",
                "theoreticalInitialMass": 2,
                "createdAt": "2026-01-01T00:00:00Z",
            }
        ],
        "entries": [],
    }

    response = client.post("/import", content=json.dumps(document))

    assert response.status_code == 200
    assert response.json() == {"status": "imported", "substances": 1, "entries": 0}
    names = [s["name"] for s in client.get("/dataset").json()["substances"]]
    assert names == ["Legacy"]


def test_import_rejects_invalid_document(container: AppContainer) -> None:
    client = _client(container)

    response = client.post("/import", content="not json")

    assert response.status_code == 400
    assert [s["name"] for s in client.get("/dataset").json()["substances"]] == [
        "Apollo",
        "Gramlin",
    ]


def test_clear_dataset_reseeds(container: AppContainer) -> None:
    client = _client(container)
    client.post(
        "/entries",
        json={"substanceId": "substance-apollo", "person": "t", "delta": 0.1},
    )

    assert client.delete("/dataset").json() == {"status": "cleared"}
    assert client.get("/dataset").json()["entries"] == []


class _LoopCheckingTransferService(TransferService):
    ran_on_event_loop: bool | None = None

    def import_and_replace(self, content: str | bytes) -> Dataset:
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            self.ran_on_event_loop = False
        else:
            self.ran_on_event_loop = True
        return super().import_and_replace(content)


def test_import_runs_off_the_event_loop(container: AppContainer) -> None:
    transfer_service = _LoopCheckingTransferService(container.store)
    client = _client(replace(container, transfer_service=transfer_service))

    empty = json.dumps({"substances": [], "entries": []})
    response = client.post("/import", content=empty)

    assert response.status_code == 200
    assert transfer_service.ran_on_event_loop is False


def test_import_rejects_timestamp_outside_datetime_range(
    container: AppContainer,
) -> None:
    document = {
        "substances": [],
        "entries": [
            {
                "id": "e1",
                "substanceId": "s",
                "person": "t",
                "delta": 0.1,
                "timestamp": "0001-01-01T00:00:00+01:00",
            }
        ],
    }

    response = _client(container).post("/import", content=json.dumps(document))

    assert response.status_code == 400


def test_null_active_flag_is_rejected(container: AppContainer) -> None:
    client = _client(container)

    response = client.patch("/substances/substance-apollo", json={"active": None})

    assert response.status_code == 422
    apollo = client.get("/dataset").json()["substances"][0]
    assert apollo["active"] is True


def test_entry_for_finished_substance_is_rejected(container: AppContainer) -> None:
    client = _client(container)
    client.post("/substances/substance-apollo/deactivate", json={})

    response = client.post(
        "/entries",
        json={"substanceId": "substance-apollo", "person": "t", "delta": 0.1},
    )

    assert response.status_code == 422
    assert client.get("/dataset").json()["entries"] == []
