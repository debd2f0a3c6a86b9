"""
Shared pytest fixtures.

Environment variables are set before anything under ``app`` is imported so
that ``Settings`` and the file store pick up the test values.
"""

import io
import os
import shutil
import tempfile

UPLOAD_ROOT = tempfile.mkdtemp(prefix="ecospine-test-uploads-")

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["SECRET_KEY"] = "test-secret-key"
os.environ["UPLOAD_DIR"] = UPLOAD_ROOT
os.environ["ENVIRONMENT"] = "test"

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from PIL import Image  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from app.core.security import create_access_token  # noqa: E402
from app.crud import crud_category, crud_user  # noqa: E402
from app.database import Base, get_db  # noqa: E402
from app.main import app  # noqa: E402
from app.schemas.category import CategoryCreate  # noqa: E402
from app.schemas.user import ModeratorCreate  # noqa: E402
from app.services.file_store import file_store  # noqa: E402


def make_image_bytes(fmt: str = "JPEG", size=(640, 480), color=(200, 30, 30)) -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", size, color).save(buffer, format=fmt)
    return buffer.getvalue()


def stored_files():
    """Names of originals currently in the upload directory."""
    if not file_store.upload_dir.is_dir():
        return set()
    return {p.name for p in file_store.upload_dir.iterdir() if p.is_file()}


@pytest.fixture(autouse=True)
def clean_upload_dir():
    yield
    for entry in file_store.upload_dir.iterdir() if file_store.upload_dir.is_dir() else []:
        if entry.is_dir():
            shutil.rmtree(entry)
        else:
            entry.unlink()
    file_store.ensure_directories()


@pytest.fixture
def SessionTesting():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db(SessionTesting):
    session = SessionTesting()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client(SessionTesting):
    def override_get_db():
        session = SessionTesting()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def owner(db):
    return crud_user.create_owner(
        db,
        username="admin",
        email="admin@ecospine.com",
        password="Admin123!",
        full_name="System Administrator",
    )


@pytest.fixture
def moderator(db, owner):
    return crud_user.create_moderator(
        db,
        user_in=ModeratorCreate(
            username="moderator1",
            email="moderator1@example.com",
            password="Moderator123",
            full_name="Aziz Karimov",
        ),
        created_by_id=owner.id,
    )


def auth_headers(user) -> dict:
    return {"Authorization": f"Bearer {create_access_token(user.id)}"}


@pytest.fixture
def owner_headers(owner):
    return auth_headers(owner)


@pytest.fixture
def moderator_headers(moderator):
    return auth_headers(moderator)


@pytest.fixture
def category(db, owner):
    """Plain category without declared properties."""
    return crud_category.create_category(
        db, obj_in=CategoryCreate(name="General Goods"), user_id=owner.id
    )


@pytest.fixture
def mattress_category(db, owner):
    return crud_category.create_category(
        db,
        obj_in=CategoryCreate(
            name="Ortopedik Matras",
            properties=[
                {"name": "firmness", "type": "select", "options": ["yumshoq", "o'rtacha", "qattiq"], "required": True},
                {"name": "thickness", "type": "number", "unit": "cm", "required": True},
                {"name": "pillow_top", "type": "boolean"},
            ],
        ),
        user_id=owner.id,
    )


@pytest.fixture
def jpeg_bytes():
    return make_image_bytes()
