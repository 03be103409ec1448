"""Shared fixtures for catalog tests."""

import os
import tempfile

# Must be set before the boutique package reads its configuration
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["UPLOADS_DIR"] = tempfile.mkdtemp(prefix="boutique-uploads-")

import pytest
from fastapi.testclient import TestClient

from boutique import auth, models
from boutique.assets import ImageAssetManager
from boutique.database import SessionLocal, engine
from boutique.main import app, get_assets
from boutique.repository import InventoryRepository
from tests.factories import ADMIN_PASSWORD, ADMIN_USERNAME


@pytest.fixture(autouse=True)
def reset_database() -> None:
    """Start every test from empty tables."""
    models.Base.metadata.drop_all(bind=engine)
    models.Base.metadata.create_all(bind=engine)


@pytest.fixture
def db():
    """Database session for direct repository tests."""
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def upload_dir(tmp_path) -> str:
    path = tmp_path / "uploads"
    path.mkdir()
    return str(path)


@pytest.fixture
def assets(upload_dir: str) -> ImageAssetManager:
    return ImageAssetManager(upload_dir)


@pytest.fixture
def repo(db, assets: ImageAssetManager) -> InventoryRepository:
    return InventoryRepository(db, assets)


@pytest.fixture
def client(assets: ImageAssetManager):
    """Test client whose images go to the per-test upload directory."""
    app.dependency_overrides[get_assets] = lambda: assets
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def auth_headers(client: TestClient) -> dict:
    """Bearer headers for a freshly seeded admin."""
    session = SessionLocal()
    try:
        auth.seed_admin(session, ADMIN_USERNAME, ADMIN_PASSWORD)
    finally:
        session.close()
    response = client.post(
        "/api/admin/login",
        json={"username": ADMIN_USERNAME, "password": ADMIN_PASSWORD},
    )
    assert response.status_code == 200
    return {"Authorization": f"Bearer {response.json()['access_token']}"}
