import os
import tempfile
from pathlib import Path

# Settings are read once at import time, so point them at throwaway locations
# before anything from app is imported
_TEST_ROOT = Path(tempfile.mkdtemp(prefix="ecosystem-tests-"))
os.environ["DATABASE_URL"] = f"sqlite:///{_TEST_ROOT / 'test.db'}"
os.environ["PHOTO_DIR"] = str(_TEST_ROOT / "Photos")
os.environ["PHOTO_CLEANUP_ENABLED"] = "false"
os.environ["DISABLE_AUTH"] = "false"

from datetime import datetime, timedelta, timezone  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from jose import jwt  # noqa: E402
from app.api.dependencies import get_current_user, get_photo_storage  # noqa: E402
from app.core.config import settings  # noqa: E402
from app.core.database import Base, SessionLocal, engine  # noqa: E402
from app.main import app  # noqa: E402
from app.storage.local_storage import PhotoStorage  # noqa: E402


@pytest.fixture()
def db():
    """Fresh schema per test; the session sees whatever requests commit"""
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    yield session
    session.close()
    Base.metadata.drop_all(bind=engine)


@pytest.fixture()
def photo_storage(tmp_path):
    return PhotoStorage(tmp_path / "Photos")


@pytest.fixture()
def client(db, photo_storage):
    """Client with authentication satisfied"""
    app.dependency_overrides[get_photo_storage] = lambda: photo_storage
    app.dependency_overrides[get_current_user] = lambda: None
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture()
def anonymous_client(db, photo_storage):
    """Client going through real bearer-token authentication"""
    app.dependency_overrides[get_photo_storage] = lambda: photo_storage
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture()
def issue_token():
    """Mint bearer tokens the way the identity provider does"""
    def _issue(subject, expires_delta=timedelta(minutes=5)):
        claims = {"sub": subject, "exp": datetime.now(timezone.utc) + expires_delta}
        return jwt.encode(claims, settings.SECRET_KEY, algorithm=settings.ALGORITHM)
    return _issue
