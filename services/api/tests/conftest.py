import pytest
import fakeredis
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from nutriflow.main import app
from nutriflow.db import Base, enable_sqlite_foreign_keys, get_db
from nutriflow.deps import get_notification_dispatcher
from nutriflow.infra import redis_client
from nutriflow.models import Client, Practitioner
from nutriflow.routers.plans import limiter as plans_limiter
from nutriflow.services.notifications import NotificationDispatcher

# --- Test Database Setup ---

SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"

# One shared in-memory connection across sessions and the TestClient thread
engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
enable_sqlite_foreign_keys(engine)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def override_get_db():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


class RecordingDispatcher(NotificationDispatcher):
    """Captures plan-ready payloads; optionally fails like an unreachable endpoint."""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.sent: list[dict] = []

    def send_plan_ready(self, payload):
        if self.fail:
            raise ConnectionError("notification endpoint down")
        self.sent.append(payload)
        return True


@pytest.fixture(autouse=True)
def setup_database():
    """Create tables before each test, drop after."""
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(autouse=True)
def mock_redis():
    redis_client._redis_async = fakeredis.FakeAsyncRedis(decode_responses=True)
    yield
    redis_client._redis_async = None


@pytest.fixture(autouse=True)
def reset_rate_limits():
    plans_limiter.reset()
    yield


@pytest.fixture
def dispatcher():
    return RecordingDispatcher()


@pytest.fixture
def client(dispatcher):
    """Test client with DB and notification overrides."""
    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_notification_dispatcher] = lambda: dispatcher
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def db_session():
    """Direct database session for setup."""
    session = TestingSessionLocal()
    yield session
    session.close()


@pytest.fixture
def practitioner(db_session):
    p = Practitioner(slug="local", name="Dr. Test", email="dr@example.com")
    db_session.add(p)
    db_session.commit()
    db_session.refresh(p)
    return p


@pytest.fixture
def patient(db_session, practitioner):
    c = Client(practitioner_id=practitioner.id, name="Alice", email="alice@example.com", goal_weight=70)
    db_session.add(c)
    db_session.commit()
    db_session.refresh(c)
    return c
