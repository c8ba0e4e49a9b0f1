import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from catalog_ingest.extraction.pipeline import parse_catalog_text
from catalog_ingest.main import app, get_db
from catalog_ingest.store import init_db, save_catalog


@pytest.fixture
def session_factory():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(engine)
    TestingSession = sessionmaker(bind=engine, autocommit=False, autoflush=False)
    yield TestingSession
    engine.dispose()


@pytest.fixture
def client(session_factory):
    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def seeded(session_factory, bsba_text):
    parsed = parse_catalog_text(bsba_text, "catalog-2025-08.pdf", page_count=3)
    db = session_factory()
    try:
        save_catalog(db, parsed.catalog, "2025-08", "catalog-2025-08.pdf", parsed.report)
    finally:
        db.close()


def test_health_db(client):
    r = client.get("/health/db")
    assert r.status_code == 200
    assert r.json() == {"ok": True}


def test_empty_database_returns_404(client):
    r = client.get("/api/courses")
    assert r.status_code == 404
    assert r.json()["detail"] == "No catalogs have been ingested"


def test_list_catalogs(client, seeded):
    r = client.get("/api/catalogs")
    assert r.status_code == 200
    body = r.json()
    assert len(body) == 1
    assert body[0]["catalogDate"] == "2025-08"
    assert body[0]["era"] == "2025 (Current)"
    assert body[0]["statistics"]["coursesFound"] == 3


def test_search_courses(client, seeded):
    r = client.get("/api/courses", params={"q": "principles"})
    assert r.status_code == 200
    body = r.json()
    assert body["catalogDate"] == "2025-08"
    assert body["total"] == 2
    assert [c["courseCode"] for c in body["courses"]] == ["C211", "C483"]

    assert client.get("/api/courses", params={"q": "Marketing"}).json()["total"] == 1
    assert client.get("/api/courses", params={"courseType": "degree-plan"}).json()["total"] == 3
    assert client.get("/api/courses", params={"courseType": "flexible-learning"}).json()["total"] == 0
    assert client.get("/api/courses", params={"limit": 0}).status_code == 422


def test_unknown_catalog_date(client, seeded):
    r = client.get("/api/courses", params={"catalogDate": "1999-01"})
    assert r.status_code == 404
    assert r.json()["detail"] == "Catalog not found"


def test_get_course(client, seeded):
    r = client.get("/api/courses/c715")
    assert r.status_code == 200
    body = r.json()
    assert body["courseCode"] == "C715"
    assert body["ccn"] == "MGMT 3000"
    assert body["competencyUnits"] == 3

    missing = client.get("/api/courses/C000")
    assert missing.status_code == 404
    assert missing.json()["detail"] == "Course not found"


def test_degree_plans(client, seeded):
    r = client.get("/api/degree-plans")
    assert r.status_code == 200
    plans = r.json()
    assert [p["planKey"] for p in plans] == ["BSBA"]
    assert plans[0]["courseCount"] == 3
    assert plans[0]["totalCUs"] == 120

    detail = client.get("/api/degree-plans/BSBA").json()
    assert detail["courses"] == ["C715", "C211", "C483"]
    assert detail["missingCourses"] == []
    assert detail["school"] == "Business"

    assert client.get("/api/degree-plans/NOPE").status_code == 404


def test_undated_catalog_never_becomes_the_default(client, session_factory, bsba_text, scenario_a_text):
    db = session_factory()
    try:
        for catalog_date, text in (("2025-08", bsba_text), ("2023-01", bsba_text), ("wgu-catalog", scenario_a_text)):
            parsed = parse_catalog_text(text, f"{catalog_date}.pdf")
            save_catalog(db, parsed.catalog, catalog_date, f"{catalog_date}.pdf", parsed.report)
    finally:
        db.close()

    assert [c["catalogDate"] for c in client.get("/api/catalogs").json()] == ["2025-08", "2023-01", "wgu-catalog"]
    body = client.get("/api/courses").json()
    assert body["catalogDate"] == "2025-08"
    assert body["total"] == 3
    assert client.get("/api/courses", params={"catalogDate": "wgu-catalog"}).json()["total"] == 1
