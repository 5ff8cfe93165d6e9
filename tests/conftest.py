import os
import tempfile

# Settings are read at import time, so the environment must be set first.
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["STORAGE_BACKEND"] = "local"
os.environ["UPLOAD_DIR"] = tempfile.mkdtemp(prefix="placer-uploads-")
os.environ["SMTP_HOST"] = ""
os.environ["NOTIFICATION_EMAIL"] = ""

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import update

from placer.db.base import Base
from placer.db.session import SessionLocal, engine
from placer.main import app
from placer.models.user import User

PASSWORD = "secret123"


@pytest.fixture
def client():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def make_user(client):
    """Sign up through the API; approval and admin role are set directly."""

    def _make(email, first_name="Test", approved=True, admin=False):
        res = client.post(
            "/api/auth/signup",
            json={"firstName": first_name, "lastName": "User", "email": email, "password": PASSWORD},
        )
        assert res.status_code == 201, res.text
        body = res.json()
        values = {}
        if approved or admin:
            values["is_approved"] = True
        if admin:
            values["role"] = "admin"
        if values:
            with SessionLocal() as session:
                session.execute(update(User).where(User.id == body["user"]["id"]).values(**values))
                session.commit()
        token = body["token"]
        return {
            "id": body["user"]["id"],
            "email": body["user"]["email"],
            "token": token,
            "headers": {"Authorization": f"Bearer {token}"},
        }

    return _make


@pytest.fixture
def make_place(client):
    """Create a place through the multipart endpoint."""

    def _make(owner, name="Cafe", lng=126.9780, lat=37.5665, **fields):
        data = {
            "name": name,
            "description": fields.pop("description", f"{name} description"),
            "location[address]": fields.pop("address", "1 Main St"),
            "location[coordinates]": f"[{lng}, {lat}]",
        }
        for key, value in fields.items():
            data[key] = str(value).lower() if isinstance(value, bool) else str(value)
        res = client.post("/api/places", data=data, headers=owner["headers"])
        assert res.status_code == 201, res.text
        return res.json()["place"]

    return _make
