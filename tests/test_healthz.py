from fastapi.testclient import TestClient

from farmdoc.api.main import create_app


def test_healthz() -> None:
    app = create_app()
    client = TestClient(app)
    resp = client.get("/healthz")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok"}


def test_version_falls_back_to_package_version() -> None:
    client = TestClient(create_app())
    body = client.get("/version").json()
    assert body["version"]
    assert "build_time" in body


def test_families_lists_known_families() -> None:
    client = TestClient(create_app())
    resp = client.get("/families")
    assert resp.status_code == 200
    names = [f["name"] for f in resp.json()["families"]]
    assert names == ["livestock_registry", "invoice", "milking_report", "automatic_report"]
    auto = next(f for f in resp.json()["families"] if f["name"] == "automatic_report")
    assert [s["marker"] for s in auto["sections"]] == ["1 ATASKAITA", "2 ATASKAITA", "3 ATASKAITA"]
