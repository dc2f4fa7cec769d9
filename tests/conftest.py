import os
import tempfile
from pathlib import Path

_TEST_ROOT = Path(tempfile.mkdtemp(prefix="animelist-tests-"))
os.environ.setdefault("DATABASE_PATH", str(_TEST_ROOT / "anime_list.db"))
os.environ.setdefault("UPLOAD_DIRECTORY", str(_TEST_ROOT / "uploads"))
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("SECRET_KEY", "test-secret")

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from animelist.api.deps import get_asset_storage, get_db  # noqa: E402
from animelist.db.init_db import drop_database, init_database  # noqa: E402
from animelist.db.session import create_db_engine, create_session_factory  # noqa: E402
from animelist.main import app  # noqa: E402
from animelist.schemas.user import UserCreate  # noqa: E402
from animelist.services import auth as auth_service  # noqa: E402
from animelist.services.storage import AssetStorage  # noqa: E402


@pytest.fixture()
def session():
    engine = create_db_engine("sqlite://")
    init_database(engine)
    TestingSessionLocal = create_session_factory(engine)
    try:
        with TestingSessionLocal() as session:
            yield session
    finally:
        drop_database(engine)
        engine.dispose()


@pytest.fixture()
def storage(tmp_path):
    storage = AssetStorage(tmp_path / "uploads", max_bytes=1024)
    storage.ensure_directory()
    return storage


@pytest.fixture()
def make_user(session):
    def _make_user(username: str, password: str = "Password1", email: str | None = None):
        return auth_service.register_user(
            session, UserCreate(username=username, password=password, email=email)
        )

    return _make_user


@pytest.fixture()
def client(session, storage):
    def override_get_db():
        yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_asset_storage] = lambda: storage
    try:
        with TestClient(app) as test_client:
            yield test_client
    finally:
        app.dependency_overrides.clear()
