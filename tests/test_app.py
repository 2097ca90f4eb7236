import random
from datetime import datetime, timedelta, timezone
from typing import Iterator

import pytest
from fastapi.testclient import TestClient

from app.main import create_app
from datastore.readings import ReadingStore, StoreError, build_default_store
from services.telemetry import TelemetryService, build_default_service
from settings import get_settings


BASE_TIME = datetime(2025, 4, 5, 14, 0, tzinfo=timezone.utc)


class FailingStore(ReadingStore):
    def insert(self, temp, hum, timestamp):
        raise StoreError("connection refused")

    def find(self, skip=0, limit=None):
        raise StoreError("connection refused")

    def count(self):
        raise StoreError("connection refused")


def _install_service(monkeypatch, service: TelemetryService) -> None:
    def build_test_service() -> TelemetryService:
        return service

    build_test_service.cache_clear = lambda: None  # type: ignore[attr-defined]

    monkeypatch.setattr("app.main.build_default_service", build_test_service)
    monkeypatch.setattr("app.api.build_default_service", build_test_service)


@pytest.fixture
def store() -> ReadingStore:
    return ReadingStore(name="test")


@pytest.fixture
def api_client(store, monkeypatch) -> Iterator[TestClient]:
    _install_service(monkeypatch, TelemetryService(store=store, rng=random.Random(7)))
    app = create_app()
    with TestClient(app) as client:
        yield client


def _seed(store: ReadingStore, count: int) -> None:
    for minute in range(count):
        store.insert(temp=20.0 + minute, hum=50.0, timestamp=BASE_TIME + timedelta(minutes=minute))


def test_lifespan_closes_store_and_clears_cache(monkeypatch, tmp_path) -> None:
    monkeypatch.setenv("READINGS_STORE_URI", f"file://{tmp_path / 'readings.json'}")
    get_settings.cache_clear()
    build_default_store.cache_clear()
    build_default_service.cache_clear()
    try:
        with TestClient(create_app()):
            service_during = build_default_service()
            assert service_during.store.closed is False

        assert service_during.store.closed is True
        service_after = build_default_service()
        assert service_after is not service_during
        assert service_after.store.closed is False
    finally:
        build_default_service.cache_clear()
        build_default_store.cache_clear()
        get_settings.cache_clear()


def test_ingest_returns_id_and_increments_count(api_client: TestClient) -> None:
    before = api_client.get("/api/datos/count").json()["total_registros"]

    response = api_client.post(
        "/api/datos",
        json={"temp": 23.4, "hum": 55.1, "timestamp": "2025-04-05 14:32:10"},
    )

    assert response.status_code == 201
    body = response.json()
    assert set(body) == {"message", "id"}
    assert isinstance(body["id"], str) and body["id"]
    after = api_client.get("/api/datos/count").json()["total_registros"]
    assert after == before + 1


def test_zero_values_are_accepted(api_client: TestClient) -> None:
    response = api_client.post(
        "/api/datos",
        json={"temp": 0, "hum": 0, "timestamp": "2025-04-05T14:32:10Z"},
    )

    assert response.status_code == 201
    items = api_client.get("/api/datos", params={"limit": 1}).json()["items"]
    assert items[0]["temp"] == 0
    assert items[0]["hum"] == 0


def test_identical_posts_create_distinct_readings(api_client: TestClient) -> None:
    payload = {"temp": 21.0, "hum": 40.0, "timestamp": "2025-04-05 10:00:00"}

    first = api_client.post("/api/datos", json=payload).json()["id"]
    second = api_client.post("/api/datos", json=payload).json()["id"]

    assert first != second
    assert api_client.get("/api/datos/count").json() == {"total_registros": 2}


@pytest.mark.parametrize(
    "payload",
    [
        {"temp": 21.0, "hum": 40.0},
        {"temp": 21.0, "hum": 40.0, "timestamp": ""},
        {"hum": 40.0, "timestamp": "2025-04-05 10:00:00"},
        {"temp": 21.0, "timestamp": "2025-04-05 10:00:00"},
        {},
    ],
)
def test_missing_fields_are_rejected(api_client: TestClient, payload: dict) -> None:
    response = api_client.post("/api/datos", json=payload)

    assert response.status_code == 400
    assert response.json() == {"error": "Missing fields: temp, hum or timestamp"}


def test_invalid_timestamp_is_rejected(api_client: TestClient) -> None:
    response = api_client.post(
        "/api/datos",
        json={"temp": 21.0, "hum": 40.0, "timestamp": "not-a-date"},
    )

    assert response.status_code == 400
    assert response.json() == {"error": "Invalid timestamp format"}
    assert api_client.get("/api/datos/count").json()["total_registros"] == 0


def test_malformed_payloads_use_error_shape(api_client: TestClient) -> None:
    non_numeric = api_client.post(
        "/api/datos",
        json={"temp": "warm", "hum": 40.0, "timestamp": "2025-04-05 10:00:00"},
    )
    broken_json = api_client.post(
        "/api/datos",
        content=b"{not json",
        headers={"content-type": "application/json"},
    )

    for response in (non_numeric, broken_json):
        assert response.status_code == 400
        assert isinstance(response.json()["error"], str)


def test_readings_are_listed_newest_first(api_client: TestClient) -> None:
    stamps = ["2025-04-05 10:00:00", "2025-04-07 09:00:00", "2025-04-06 12:30:00"]
    for index, stamp in enumerate(stamps):
        api_client.post("/api/datos", json={"temp": index, "hum": 50, "timestamp": stamp})

    recent = api_client.get("/api/datos", params={"limit": 10}).json()
    paged = api_client.get("/api/datos").json()

    expected = [
        "2025-04-07T09:00:00.000Z",
        "2025-04-06T12:30:00.000Z",
        "2025-04-05T10:00:00.000Z",
    ]
    assert [item["timestamp_utc"] for item in recent["items"]] == expected
    assert [item["timestamp_utc"] for item in paged["items"]] == expected


def test_item_shape_includes_local_and_utc_time(api_client: TestClient) -> None:
    api_client.post(
        "/api/datos",
        json={"temp": 23.5, "hum": 61.2, "timestamp": "2025-04-05 14:32:10"},
    )

    item = api_client.get("/api/datos", params={"limit": 1}).json()["items"][0]

    assert item == {
        "temp": 23.5,
        "hum": 61.2,
        "timestamp_local": "5/4/2025, 8:32:10 a.m.",
        "timestamp_utc": "2025-04-05T14:32:10.000Z",
    }


def test_limit_mode_total_is_batch_size(api_client: TestClient, store: ReadingStore) -> None:
    _seed(store, 8)

    body = api_client.get("/api/datos", params={"limit": 5}).json()

    assert set(body) == {"items", "total"}
    assert len(body["items"]) == 5
    assert body["total"] == 5


def test_limit_is_clamped_and_defaulted(api_client: TestClient, store: ReadingStore) -> None:
    _seed(store, 505)

    capped = api_client.get("/api/datos", params={"limit": 1000}).json()
    zero = api_client.get("/api/datos", params={"limit": 0}).json()
    text = api_client.get("/api/datos", params={"limit": "abc"}).json()
    negative = api_client.get("/api/datos", params={"limit": -3}).json()

    assert len(capped["items"]) == 500
    assert len(zero["items"]) == 20
    assert len(text["items"]) == 20
    assert len(negative["items"]) == 1


def test_paged_mode_returns_slice_and_global_total(
    api_client: TestClient, store: ReadingStore
) -> None:
    _seed(store, 25)

    body = api_client.get("/api/datos", params={"page": 2, "pageSize": 10}).json()

    assert body["page"] == 2
    assert body["pageSize"] == 10
    assert body["total"] == 25
    # Newest is minute 24, so page 2 holds minutes 14 down to 5.
    assert [item["temp"] for item in body["items"]] == [20.0 + m for m in range(14, 4, -1)]


def test_paged_mode_defaults(api_client: TestClient, store: ReadingStore) -> None:
    _seed(store, 35)

    default = api_client.get("/api/datos").json()
    bad_page = api_client.get("/api/datos", params={"page": "abc", "pageSize": 1000}).json()

    assert (default["page"], default["pageSize"], len(default["items"])) == (1, 30, 30)
    assert (bad_page["page"], bad_page["pageSize"], len(bad_page["items"])) == (1, 500, 35)


def test_page_past_the_end_is_empty(api_client: TestClient, store: ReadingStore) -> None:
    _seed(store, 3)

    body = api_client.get("/api/datos", params={"page": 5, "pageSize": 10}).json()

    assert body["items"] == []
    assert body["total"] == 3


def test_update_suggests_interval_in_range(api_client: TestClient) -> None:
    for _ in range(50):
        response = api_client.get("/api/update")
        assert response.status_code == 200
        value = response.json()["intervalSeconds"]
        assert isinstance(value, int)
        assert 4 <= value <= 60


def test_root_page_renders_without_readings(api_client: TestClient) -> None:
    response = api_client.get("/")

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/html")
    assert "ESP32 + DHT22" in response.text
    assert "/api/datos/count" in response.text


def test_health(api_client: TestClient) -> None:
    assert api_client.get("/health").json() == {"status": "ok"}


def test_store_faults_surface_as_server_errors(monkeypatch) -> None:
    _install_service(monkeypatch, TelemetryService(store=FailingStore(name="broken")))

    with TestClient(create_app()) as client:
        responses = [
            client.post(
                "/api/datos",
                json={"temp": 1, "hum": 2, "timestamp": "2025-04-05 10:00:00"},
            ),
            client.get("/api/datos", params={"limit": 5}),
            client.get("/api/datos"),
            client.get("/api/datos/count"),
        ]
        interval = client.get("/api/update")

    for response in responses:
        assert response.status_code == 500
        assert response.json() == {"error": "connection refused"}
    assert interval.status_code == 200


def test_non_finite_values_are_listed_as_null(api_client: TestClient) -> None:
    response = api_client.post(
        "/api/datos",
        content=b'{"temp": NaN, "hum": Infinity, "timestamp": "2025-04-05 10:00:00"}',
        headers={"content-type": "application/json"},
    )
    assert response.status_code == 201

    recent = api_client.get("/api/datos", params={"limit": 5})
    paged = api_client.get("/api/datos")

    for listing in (recent, paged):
        assert listing.status_code == 200
        item = listing.json()["items"][0]
        assert item["temp"] is None
        assert item["hum"] is None
        assert item["timestamp_utc"] == "2025-04-05T10:00:00.000Z"


@pytest.mark.parametrize(
    "timestamp",
    ["0001-01-01 00:00:00", "9999-12-31T23:00:00-06:00"],
)
def test_timestamps_outside_representable_range_are_rejected(
    api_client: TestClient, timestamp: str
) -> None:
    response = api_client.post(
        "/api/datos",
        json={"temp": 21.0, "hum": 40.0, "timestamp": timestamp},
    )

    assert response.status_code == 400
    assert response.json() == {"error": "Invalid timestamp format"}
    assert api_client.get("/api/datos", params={"limit": 5}).status_code == 200
    assert api_client.get("/api/datos").json()["total"] == 0


def test_latest_representable_timestamp_is_listed(api_client: TestClient) -> None:
    response = api_client.post(
        "/api/datos",
        json={"temp": 21.0, "hum": 40.0, "timestamp": "9999-12-31 23:59:59"},
    )
    assert response.status_code == 201

    recent = api_client.get("/api/datos", params={"limit": 5}).json()
    paged = api_client.get("/api/datos").json()

    assert recent["items"][0]["timestamp_local"] == "31/12/9999, 5:59:59 p.m."
    assert paged["items"][0]["timestamp_utc"] == "9999-12-31T23:59:59.000Z"


class ExplodingService(TelemetryService):
    def count(self) -> int:
        raise RuntimeError("disk on fire")


def test_unexpected_errors_use_error_shape(monkeypatch) -> None:
    _install_service(monkeypatch, ExplodingService(store=ReadingStore(name="test")))

    with TestClient(create_app(), raise_server_exceptions=False) as client:
        response = client.get("/api/datos/count")

    assert response.status_code == 500
    assert response.json() == {"error": "disk on fire"}
