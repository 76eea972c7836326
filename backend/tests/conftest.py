"""
Shared fixtures for the CaliQuest test suite.

The environment is configured before ``caliquest`` is imported so the
settings object picks up the in-memory SQLite engine.
"""

import os
import tempfile
from types import SimpleNamespace

os.environ["TESTING"] = "True"
os.environ["SECRET_KEY"] = "test-secret-key"
os.environ["MEDIA_ROOT"] = tempfile.mkdtemp(prefix="caliquest-media-")
os.environ["AUTO_CREATE_TABLES"] = "False"

import pytest
from fastapi.testclient import TestClient

from caliquest.core.config import settings
from caliquest.core.database import DatabaseManager, SessionLocal, init_db
from caliquest.core.security import get_password_hash
from caliquest.core.storage import LocalBlobStorage, get_blob_storage
from caliquest.main import app
from caliquest.models import Level, Map, Profile, User


PASSWORD = "secret123"


@pytest.fixture
def db():
    DatabaseManager.create_all_tables()
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        DatabaseManager.drop_all_tables()


@pytest.fixture
def client(db):
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def storage(tmp_path):
    store = LocalBlobStorage(
        tmp_path / "media",
        settings.MEDIA_URL,
        allowed_extensions=settings.ALLOWED_VIDEO_EXTENSIONS,
        max_size=1024
    )
    app.dependency_overrides[get_blob_storage] = lambda: store
    return store


def make_player(db, email="player@example.com", username="player", onboarded=True):
    """Insert a user (and optionally an onboarded profile) directly."""
    user = User(email=email, hashed_password=get_password_hash(PASSWORD), is_active=True)
    db.add(user)
    db.flush()
    if onboarded:
        db.add(Profile(id=user.id, username=username, age=25, onboarding_completed=True))
    db.commit()
    db.refresh(user)
    return user


def login(client, email, password=PASSWORD):
    response = client.post(
        f"{settings.API_V1_STR}/auth/login",
        data={"username": email, "password": password}
    )
    assert response.status_code == 200, response.text
    return {"Authorization": f"Bearer {response.json()['access_token']}"}


@pytest.fixture
def player(db):
    return make_player(db)


@pytest.fixture
def player_headers(client, player):
    return login(client, player.email)


@pytest.fixture
def admin_headers(client, db):
    init_db(db)
    return login(client, settings.FIRST_ADMIN_EMAIL, settings.FIRST_ADMIN_PASSWORD)


@pytest.fixture
def world(db):
    """
    Two maps; the first has three levels and the second has two.
    """
    forest = Map(name="Forest", description="Warm-up region", order_index=0)
    mountain = Map(name="Mountain", description="Strength region", order_index=1)
    db.add_all([forest, mountain])
    db.flush()

    forest_levels = [
        Level(map_id=forest.id, name=f"Forest {i + 1}", order_index=i) for i in range(3)
    ]
    mountain_levels = [
        Level(map_id=mountain.id, name=f"Mountain {i + 1}", order_index=i) for i in range(2)
    ]
    db.add_all(forest_levels + mountain_levels)
    db.commit()

    return SimpleNamespace(
        forest=forest,
        mountain=mountain,
        forest_levels=forest_levels,
        mountain_levels=mountain_levels
    )


def api(path):
    return f"{settings.API_V1_STR}{path}"
