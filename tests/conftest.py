import os

# Must be set before app modules read their configuration
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["DB_LOG_SLOW_QUERIES"] = "false"
os.environ["CALENDAR_SYNC_ENABLED"] = "false"
os.environ.setdefault("SECRET_KEY", "test-secret-key")

from datetime import datetime  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from app.auth import create_access_token  # noqa: E402
from app.database import Base, get_db  # noqa: E402
from app.main import app  # noqa: E402
from app.models import Job, User  # noqa: E402


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db(engine):
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = TestingSessionLocal()
    yield session
    session.close()


@pytest.fixture
def admin(db):
    user = User(email="owner@woodshop.test", full_name="Shop Owner", role="admin")
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture
def viewer(db):
    user = User(email="viewer@woodshop.test", full_name="Read Only", role="viewer")
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture
def make_job(db):
    """Factory for jobs inserted straight into the database"""

    def _make_job(**fields) -> Job:
        fields.setdefault("title", "Kitchen cabinets")
        fields.setdefault("customer_name", "Alvarez")
        fields.setdefault("stage", "READY_TO_SCHEDULE")
        job = Job(**fields)
        db.add(job)
        db.commit()
        db.refresh(job)
        return job

    return _make_job


def auth_headers(user: User) -> dict:
    return {"Authorization": f"Bearer {create_access_token({'sub': str(user.id)})}"}


@pytest.fixture
def admin_headers(admin):
    return auth_headers(admin)


@pytest.fixture
def viewer_headers(viewer):
    return auth_headers(viewer)


@pytest.fixture
def client(db):
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def now():
    return datetime(2026, 3, 2, 15, 4)
