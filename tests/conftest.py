"""Shared fixtures: in-memory SQLite database, fake cache version store, factories."""

import pytest
from sqlalchemy import create_engine, event, select
from sqlalchemy.orm import Session
from sqlalchemy.pool import StaticPool

from wdtp.models import Base, Location, Organization, User
from wdtp.services.cache_versions import INITIAL_VERSION, CacheVersionBus
from wdtp.services.errors import CacheBumpError
from wdtp.services.wage_report_service import WageReportService


def enable_sqlite_savepoints(engine) -> None:
    """Let pysqlite/aiosqlite run SAVEPOINTs inside a transaction.

    The driver's own transaction handling would otherwise commit before a
    SAVEPOINT; see "Serializable isolation / Savepoints" in the SQLAlchemy
    SQLite dialect docs.
    """

    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN")


class InMemoryVersionStore:
    """VersionStore double; ``fail`` makes every bump raise like a Redis outage."""

    def __init__(self, fail: bool = False):
        self.versions = {}
        self.bumps = []
        self.fail = fail

    def bump(self, key):
        if self.fail:
            raise CacheBumpError(f"Failed to bump {key.value}: connection refused")
        # Same as RedisVersionStore: SET NX to INITIAL_VERSION, then INCR
        self.versions.setdefault(key, INITIAL_VERSION)
        self.versions[key] += 1
        self.bumps.append(key)
        return self.versions[key]

    def get(self, key):
        return self.versions.get(key, INITIAL_VERSION)

    def ensure(self, key):
        self.versions.setdefault(key, INITIAL_VERSION)


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    enable_sqlite_savepoints(engine)
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db(engine):
    with Session(engine) as session:
        yield session


@pytest.fixture
def version_store():
    return InMemoryVersionStore()


@pytest.fixture
def version_bus(version_store):
    return CacheVersionBus(version_store)


@pytest.fixture
def service(version_bus):
    return WageReportService(version_bus)


@pytest.fixture
def make_organization(db):
    created = []

    def _make(name: str = "Acme Coffee") -> Organization:
        org = Organization(name=name, slug=f"{name.lower().replace(' ', '-')}-{len(created)}")
        db.add(org)
        db.commit()
        created.append(org)
        return org

    return _make


@pytest.fixture
def make_location(db):
    created = []

    def _make(organization: Organization | None = None, name: str = "Main St") -> Location:
        location = Location(
            name=name,
            slug=f"{name.lower().replace(' ', '-')}-{len(created)}",
            organization_id=organization.id if organization else None,
            city="Portland",
            state_province="OR",
        )
        db.add(location)
        db.commit()
        created.append(location)
        return location

    return _make


@pytest.fixture
def make_user(db):
    created = []

    def _make(display_name: str = "Sam") -> User:
        user = User(email=f"user{len(created)}@example.com", display_name=display_name)
        db.add(user)
        db.commit()
        created.append(user)
        return user

    return _make


@pytest.fixture
def read_count(db):
    """Read ``wage_reports_count`` straight from the table, bypassing the identity map."""

    def _read(model, entity_id: int) -> int:
        return db.execute(select(model.wage_reports_count).where(model.id == entity_id)).scalar_one()

    return _read


@pytest.fixture
def sqlite_savepoints():
    return enable_sqlite_savepoints
