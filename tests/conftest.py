import os
import shutil
import tempfile

# Point the app at a throw-away database and storage root before it is imported
_TMP = tempfile.mkdtemp(prefix="wastewatch-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{_TMP}/test.db"
os.environ["STORAGE_DIR"] = os.path.join(_TMP, "storage")
os.environ["SECRET_KEY"] = "test-secret"
os.environ["OFFICER_AREA_FALLBACKS"] = "{}"
os.environ["BOOTSTRAP_ADMIN_EMAIL"] = "root@example.com"

import pytest
from fastapi.testclient import TestClient

from wastewatch import config, models
from wastewatch.auth import SessionContext, hash_password
from wastewatch.crud import DataAccess
from wastewatch.database import SessionLocal, engine
from wastewatch.main import app

PASSWORD = "secret123"
# Hashing once keeps the suite fast
PASSWORD_HASH = hash_password(PASSWORD)


@pytest.fixture(autouse=True)
def fresh_state():
    """Empty tables and a storage root holding the two buckets."""
    models.Base.metadata.drop_all(bind=engine)
    models.Base.metadata.create_all(bind=engine)

    shutil.rmtree(config.STORAGE_DIR, ignore_errors=True)
    # Stored bucket name differs in case from the configured "complaints"
    (config.STORAGE_DIR / "Complaints").mkdir(parents=True)
    (config.STORAGE_DIR / "recyclable-items").mkdir(parents=True)
    yield


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def dal(db):
    return DataAccess(db)


@pytest.fixture
def make_user(db):
    def _make(clerk_id, role="user", area=None, email=None, first_name="Test", last_name=None, is_active=True):
        user = models.User(
            clerk_id=clerk_id,
            email=email or f"{clerk_id}@example.com",
            first_name=first_name,
            last_name=last_name or clerk_id,
            password_hash=PASSWORD_HASH,
            role=role,
            area=area,
            is_active=is_active,
        )
        db.add(user)
        db.commit()
        return user
    return _make


@pytest.fixture
def make_complaint(db):
    def _make(user_id="citizen1", **fields):
        values = {
            "title": "Overflowing bin",
            "description": "Bin has been overflowing for 3 days near the park entrance",
            "location": "Park Street",
            "coordinates": {"lat": 23.01, "lng": 72.51},
            "area": "bopal",
            "priority": "medium",
            "status": "pending",
        }
        values.update(fields)
        complaint = models.Complaint(user_id=user_id, **values)
        db.add(complaint)
        db.commit()
        return complaint.id
    return _make


@pytest.fixture
def make_item(db):
    def _make(user_id="citizen1", **fields):
        values = {
            "name": "Cardboard",
            "description": "Flattened boxes",
            "quantity": 4,
            "location": "Park Street",
            "area": "bopal",
            "status": "pending",
        }
        values.update(fields)
        item = models.RecyclableItem(user_id=user_id, **values)
        db.add(item)
        db.commit()
        return item.id
    return _make


def context(identity, role):
    return SessionContext(is_authenticated=True, identity=identity, role=role)


@pytest.fixture
def ctx():
    return context


@pytest.fixture
def client():
    return TestClient(app)


@pytest.fixture
def login():
    """A fresh signed-in TestClient for the given user."""
    def _login(email, password=PASSWORD):
        c = TestClient(app)
        response = c.post("/login", data={"email": email, "password": password}, follow_redirects=False)
        assert response.status_code == 302, response.text
        return c
    return _login
