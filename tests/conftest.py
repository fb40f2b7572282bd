"""Shared fixtures: a fresh SQLite database per test and authenticated clients."""

import sqlite3
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from cmms_app.auth import hash_password, token_for_user
from cmms_app.database import new_id, utc_now_iso

PASSWORD = "secret-pass"


@pytest.fixture(scope="session")
def password_hash() -> str:
    # bcrypt is slow; hash once for the whole session
    return hash_password(PASSWORD)


@pytest.fixture
def env(tmp_path: Path, monkeypatch):
    db_path = tmp_path / "test.db"
    upload_dir = tmp_path / "documentos"
    monkeypatch.setenv("CMMS_DB_PATH", str(db_path))
    monkeypatch.setenv("CMMS_UPLOAD_DIR", str(upload_dir))
    monkeypatch.setenv("SECRET_KEY", "test-secret")
    return {"db_path": db_path, "upload_dir": upload_dir}


@pytest.fixture
def client(env):
    from cmms_app.main import create_app

    with TestClient(create_app()) as test_client:
        yield test_client


@pytest.fixture
def db(client, env):
    """Direct connection to the test database (schema already created)."""
    conn = sqlite3.connect(env["db_path"])
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON")
    yield conn
    conn.close()


@pytest.fixture
def make_user(db, password_hash):
    def _make_user(role="admin", first_name="Ada", last_name="Lovelace", email=None):
        user = {
            "id": new_id(),
            "first_name": first_name,
            "last_name": last_name,
            "email": email or f"{role}-{new_id()[:8]}@example.com",
            "role": role,
            "department": None,
            "phone": None,
            "password_hash": password_hash,
            "created_at": utc_now_iso(),
        }
        db.execute(
            f"INSERT INTO users ({','.join(user)}) VALUES ({','.join('?' * len(user))})",
            list(user.values()),
        )
        db.commit()
        return user
    return _make_user


def auth_headers(user):
    return {"Authorization": f"Bearer {token_for_user(user)}"}


@pytest.fixture
def admin(make_user):
    return make_user("admin")


@pytest.fixture
def admin_headers(admin):
    return auth_headers(admin)


@pytest.fixture
def technician(make_user):
    return make_user("technician", first_name="Tom", last_name="Wrench")


@pytest.fixture
def technician_headers(technician):
    return auth_headers(technician)


@pytest.fixture
def seeded_equipment(client, admin_headers):
    """One category, one department and one piece of equipment created through the API."""
    category = client.post("/categories/", json={"name": "Pumps"}, headers=admin_headers).json()
    department = client.post(
        "/departments/", json={"name": "Production", "location": "Hall A"}, headers=admin_headers
    ).json()
    equipment = client.post("/equipment/", json={
        "name": "Pump 1",
        "serial_number": "SN-001",
        "category_id": category["id"],
        "department_id": department["id"],
    }, headers=admin_headers).json()
    return {"category": category, "department": department, "equipment": equipment}


@pytest.fixture
def headers_for():
    return auth_headers
