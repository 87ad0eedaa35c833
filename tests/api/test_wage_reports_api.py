"""HTTP tests for the wage report and wage statistics routes."""

from datetime import date, timedelta

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import Session
from sqlalchemy.pool import NullPool

from wdtp.dependencies.services import get_statistics_service, get_wage_report_service
from wdtp.main import app
from wdtp.models import Base, Location, Organization
from wdtp.models.base import get_db
from wdtp.services.counter_ledger import CounterLedger
from wdtp.services.errors import CounterError
from wdtp.services.wage_report_service import WageReportService
from wdtp.services.wage_statistics import WageStatisticsService


@pytest.fixture
def database(tmp_path, sqlite_savepoints):
    path = tmp_path / "wdtp.db"

    sync_engine = create_engine(f"sqlite:///{path}")
    sqlite_savepoints(sync_engine)
    Base.metadata.create_all(sync_engine)

    # One connection per request; aiosqlite connections can't be shared across event loops
    async_engine = create_async_engine(f"sqlite+aiosqlite:///{path}", poolclass=NullPool)
    sqlite_savepoints(async_engine.sync_engine)

    yield sync_engine, async_sessionmaker(async_engine, class_=AsyncSession, expire_on_commit=False)
    sync_engine.dispose()


@pytest.fixture
def seed(database):
    sync_engine, _ = database
    with Session(sync_engine) as session:
        org = Organization(name="Corner Cafe", slug="corner-cafe")
        session.add(org)
        session.flush()
        location = Location(name="Corner Cafe Main", slug="corner-cafe-main", organization_id=org.id)
        session.add(location)
        session.commit()
        return {"organization_id": org.id, "location_id": location.id}


@pytest.fixture
def client(database, version_bus):
    _, session_factory = database

    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_wage_report_service] = lambda: WageReportService(version_bus)
    app.dependency_overrides[get_statistics_service] = lambda: WageStatisticsService(None, version_bus)
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def stored_count(database):
    sync_engine, _ = database

    def _read(model, entity_id):
        with Session(sync_engine) as session:
            return session.execute(select(model.wage_reports_count).where(model.id == entity_id)).scalar_one()

    return _read


def submit(client, location_id, amount_cents, **fields):
    payload = {
        "location_id": location_id,
        "job_title": "Barista",
        "employment_type": "part_time",
        "wage_period": "hourly",
        "amount_cents": amount_cents,
        **fields,
    }
    return client.post("/api/v1/wage-reports", json=payload)


def test_submit_approves_and_counts(client, seed, stored_count):
    response = submit(client, seed["location_id"], 1500, currency="usd")

    assert response.status_code == 201
    body = response.json()
    assert body["status"] == "approved"
    assert body["sanity_score"] == 5
    assert body["normalized_hourly_cents"] == 1500
    assert body["normalized_hourly_display"] == "$15.00"
    assert body["wage_period_display"] == "Hourly"
    assert body["currency"] == "USD"
    assert body["organization_id"] == seed["organization_id"]
    assert stored_count(Location, seed["location_id"]) == 1
    assert stored_count(Organization, seed["organization_id"]) == 1


def test_submit_ignores_derived_fields(client, seed):
    response = submit(
        client, seed["location_id"], 30_000,
        status="approved", sanity_score=5, normalized_hourly_cents=1500,
    )

    assert response.status_code == 201
    assert response.json()["status"] == "pending"
    assert response.json()["normalized_hourly_cents"] == 30_000


def test_submit_yearly_wage(client, seed):
    response = submit(client, seed["location_id"], 6_000_000, wage_period="yearly", hours_per_week=40)
    assert response.json()["normalized_hourly_cents"] == 2884


@pytest.mark.parametrize(
    "fields",
    [
        {"amount_cents": 0},
        {"amount_cents": 100_000_000},
        {"hours_per_week": 169},
        {"currency": "US"},
        {"wage_period": "daily"},
        {"effective_date": (date.today() + timedelta(days=3)).isoformat()},
        {"notes": "x" * 1001},
        {"job_title": "   "},
    ],
)
def test_submit_rejects_invalid_input(client, seed, fields):
    payload = {"amount_cents": 1500, **fields}
    response = submit(client, seed["location_id"], payload.pop("amount_cents"), **payload)
    assert response.status_code == 422


def test_submit_requires_employment_type(client, seed):
    payload = {
        "location_id": seed["location_id"],
        "job_title": "Barista",
        "wage_period": "hourly",
        "amount_cents": 1500,
    }

    response = client.post("/api/v1/wage-reports", json=payload)

    assert response.status_code == 422
    assert client.get("/api/v1/wage-reports").json() == []


def test_submit_unknown_location(client, seed):
    response = submit(client, 9999, 1500)

    assert response.status_code == 404
    assert response.json()["code"] == "LOCATION_NOT_FOUND"


def test_get_only_returns_approved_reports(client, seed):
    approved = submit(client, seed["location_id"], 1500).json()
    pending = submit(client, seed["location_id"], 30_000).json()

    assert client.get(f"/api/v1/wage-reports/{approved['id']}").status_code == 200
    assert client.get(f"/api/v1/wage-reports/{pending['id']}").status_code == 404


def test_list_filters_and_sorts(client, seed):
    for cents in (1500, 1700, 1600):
        submit(client, seed["location_id"], cents)
    submit(client, seed["location_id"], 1800, job_title="Cook")

    highest = client.get("/api/v1/wage-reports", params={"sort": "highest"}).json()
    assert [r["normalized_hourly_cents"] for r in highest] == [1800, 1700, 1600, 1500]

    cooks = client.get("/api/v1/wage-reports", params={"job_title": "coo"}).json()
    assert [r["job_title"] for r in cooks] == ["Cook"]

    ranged = client.get("/api/v1/wage-reports", params={"min_hourly": 16, "max_hourly": 17.5}).json()
    assert sorted(r["normalized_hourly_cents"] for r in ranged) == [1600, 1700]

    limited = client.get("/api/v1/wage-reports", params={"limit": 2, "sort": "lowest"}).json()
    assert [r["normalized_hourly_cents"] for r in limited] == [1500, 1600]


def test_list_pending_reports(client, seed):
    submit(client, seed["location_id"], 1500)
    submit(client, seed["location_id"], 30_000)

    pending = client.get("/api/v1/wage-reports", params={"status": "pending"}).json()
    assert [r["normalized_hourly_cents"] for r in pending] == [30_000]


def test_update_wage_rescores(client, seed, stored_count):
    for cents in (1500, 1600, 1400):
        submit(client, seed["location_id"], cents)
    report = submit(client, seed["location_id"], 1500).json()

    response = client.patch(f"/api/v1/wage-reports/{report['id']}/wage", json={"amount_cents": 9000})

    assert response.status_code == 200
    assert response.json()["status"] == "pending"
    assert response.json()["sanity_score"] == -5
    assert stored_count(Location, seed["location_id"]) == 3


def test_update_wage_unknown_report(client, seed):
    response = client.patch("/api/v1/wage-reports/4242/wage", json={"amount_cents": 1500})
    assert response.status_code == 404
    assert response.json()["code"] == "WAGE_REPORT_NOT_FOUND"


def test_moderation_override(client, seed, stored_count):
    report = submit(client, seed["location_id"], 30_000).json()

    response = client.patch(f"/api/v1/wage-reports/{report['id']}/status", json={"status": "approved"})

    assert response.status_code == 200
    assert response.json()["status"] == "approved"
    assert stored_count(Location, seed["location_id"]) == 1

    bad = client.patch(f"/api/v1/wage-reports/{report['id']}/status", json={"status": "archived"})
    assert bad.status_code == 422


def test_delete_and_restore(client, seed, stored_count):
    report = submit(client, seed["location_id"], 1500).json()

    assert client.delete(f"/api/v1/wage-reports/{report['id']}").status_code == 204
    assert client.get(f"/api/v1/wage-reports/{report['id']}").status_code == 404
    assert stored_count(Location, seed["location_id"]) == 0

    restored = client.post(f"/api/v1/wage-reports/{report['id']}/restore")
    assert restored.status_code == 200
    assert restored.json()["deleted_at"] is None
    assert stored_count(Location, seed["location_id"]) == 1


def test_hard_delete(client, seed, stored_count):
    report = submit(client, seed["location_id"], 1500).json()

    assert client.delete(f"/api/v1/wage-reports/{report['id']}", params={"hard": True}).status_code == 204
    assert client.post(f"/api/v1/wage-reports/{report['id']}/restore").status_code == 404
    assert stored_count(Location, seed["location_id"]) == 0


def test_counter_failure_maps_to_503(client, seed, version_bus):
    class ExplodingLedger(CounterLedger):
        def adjust(self, session, entity, entity_id, delta):
            raise CounterError("lock timeout")

    app.dependency_overrides[get_wage_report_service] = lambda: WageReportService(version_bus, ledger=ExplodingLedger())

    response = submit(client, seed["location_id"], 1500)

    assert response.status_code == 503
    assert response.json()["retryable"] is True
    assert client.get("/api/v1/wage-reports").json() == []


def test_global_stats(client, seed):
    for cents in (1500, 1600, 1400):
        submit(client, seed["location_id"], cents)
    submit(client, seed["location_id"], 30_000)

    stats = client.get("/api/v1/wage-reports/stats").json()

    assert stats["count"] == 3
    assert stats["median_cents"] == 1500
    assert stats["employment_types"] == [{"type": "part_time", "count": 3, "average_cents": 1500}]
    assert stats["top_job_titles"] == [{"job_title": "Barista", "count": 3, "average_cents": 1500}]
    assert stats["geographic_distribution"] == [{"city": None, "state": None, "count": 3, "average_cents": 1500}]


def test_location_and_organization_stats(client, seed):
    submit(client, seed["location_id"], 1500)
    submit(client, seed["location_id"], 1700, employment_type="full_time")

    location_stats = client.get(f"/api/v1/locations/{seed['location_id']}/wage-stats").json()
    org_stats = client.get(
        f"/api/v1/organizations/{seed['organization_id']}/wage-stats", params={"employment_type": "full_time"},
    ).json()

    assert location_stats["count"] == 2
    assert location_stats["geographic_distribution"] == []
    assert org_stats["count"] == 1
    assert org_stats["median_cents"] == 1700


def test_stats_for_unknown_entities(client, seed):
    assert client.get("/api/v1/locations/9999/wage-stats").status_code == 404
    assert client.get("/api/v1/organizations/9999/wage-stats").status_code == 404


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"
