import pytest
from fastapi.testclient import TestClient

from farmdoc.api.main import create_app
from farmdoc.api.routes.extract import snapshot_store
from farmdoc.storage.snapshots import InMemorySnapshotStore

LIVESTOCK_LINE = "1 Galvijai LT000012345678 Margė Karvė Holšteinų juodmargiai 2019-03-15 78 AF-096882"


@pytest.fixture
def client(store: InMemorySnapshotStore) -> TestClient:
    app = create_app()
    app.dependency_overrides[snapshot_store] = lambda: store
    return TestClient(app)


def test_raw_text_extraction(client: TestClient) -> None:
    resp = client.post("/extract/livestock_registry/raw", json={"text": LIVESTOCK_LINE + "\nnoise"})
    assert resp.status_code == 200
    assert resp.headers["cache-control"] == "no-store"
    body = resp.json()
    assert body["family"] == "livestock_registry"
    assert body["count"] == 1
    assert body["skipped"] == 1
    (section,) = body["sections"]
    assert section["meta"]["patterns"] == {"full": 1}
    assert section["records"][0]["tag_no"] == "LT000012345678"
    assert list(section["records"][0]) == section["columns"]


def test_raw_rows_with_fallback_headers(client: TestClient) -> None:
    resp = client.post(
        "/extract/milking_report/raw",
        json={"rows": [["LT000012345678", "15"]], "fallback_headers": ["cow", "collar"]},
    )
    assert resp.status_code == 200
    section = resp.json()["sections"][0]
    assert section["meta"]["schema_source"] == "fallback"
    assert section["records"] == [{"cow": "LT000012345678", "collar": "15"}]


def test_fallback_headers_from_settings(monkeypatch) -> None:
    from farmdoc.core.settings import get_settings

    monkeypatch.setenv("FARMDOC_FALLBACK_HEADERS", '{"milking_report": ["cow", "collar"]}')
    get_settings.cache_clear()
    app = create_app()
    app.dependency_overrides[snapshot_store] = lambda: InMemorySnapshotStore()
    resp = TestClient(app).post("/extract/milking_report/raw", json={"rows": [["LT000012345678", "15"]]})
    assert resp.json()["sections"][0]["columns"] == ["cow", "collar"]


def test_uploaded_csv_saves_snapshot(client: TestClient, store: InMemorySnapshotStore) -> None:
    data = b"Karves nr;Kaklo nr;Pieno kiekis\nLT000012345678;15;12.3\n"
    resp = client.post("/extract/milking_report", files={"file": ("m.csv", data, "text/csv")})
    assert resp.status_code == 200
    section = resp.json()["sections"][0]
    assert section["meta"]["header_detected"] is True
    assert section["records"] == [{"Karves nr": "LT000012345678", "Kaklo nr": 15.0, "Pieno kiekis": 12.3}]
    assert store.load("milking_report") == ["Karves nr", "Kaklo nr", "Pieno kiekis"]


def test_raw_body_upload(client: TestClient) -> None:
    resp = client.post("/extract/livestock_registry", content=LIVESTOCK_LINE.encode("utf-8"))
    assert resp.status_code == 200
    assert resp.json()["count"] == 1


def test_missing_marker_is_unprocessable(client: TestClient) -> None:
    resp = client.post("/extract/automatic_report/raw", json={"rows": [["1 ATASKAITA"], [1001, 5501]]})
    assert resp.status_code == 422
    body = resp.json()
    assert body["error"] == "missing_marker"
    assert body["missing"] == ["2 ATASKAITA", "3 ATASKAITA"]
    assert body["found"]["1 ATASKAITA"] == 0


def test_bad_requests(client: TestClient) -> None:
    assert client.post("/extract/nope/raw", json={"text": "x"}).status_code == 404
    assert client.post("/extract/invoice/raw", json={}).status_code == 400

    resp = client.post("/extract/invoice/raw", json={"text": " \n "})
    assert resp.status_code == 400
    assert resp.json()["error"] == "empty_input"

    resp = client.post("/extract/automatic_report/raw", json={"text": "1 ATASKAITA"})
    assert resp.status_code == 400
    assert resp.json()["error"] == "extraction_error"

    assert client.post("/extract/invoice", content=b"").status_code == 400


def test_unreadable_upload(client: TestClient) -> None:
    resp = client.post("/extract/milking_report", files={"file": ("m.xlsx", b"PK\x03\x04broken", "application/octet-stream")})
    assert resp.status_code == 400
    assert resp.json()["error"] == "unreadable_document"


def test_metrics_exposed(client: TestClient) -> None:
    client.post("/extract/livestock_registry/raw", json={"text": LIVESTOCK_LINE})
    text = client.get("/metrics").text
    assert "farmdoc_records_total" in text
    assert "http_requests_total" in text
