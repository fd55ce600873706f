from contextlib import asynccontextmanager

import pytest

from boulder_catalog import create_app
from boulder_catalog.extensions import db
from boulder_catalog.helpers.sync import BoulderStore, StoreError

SECTOR_ID = "5f08920b-ff8b-45ed-b3f8-a4976bdd71b7"
UPLOAD_ENDPOINT = "http://upload.test/api/boulders"


@pytest.fixture
def app(tmp_path):
    app = create_app({
        "TESTING": True,
        "SECRET_KEY": "test-secret",
        "SQLALCHEMY_DATABASE_URI": "sqlite:///:memory:",
        "UPLOAD_DIR": str(tmp_path / "uploads"),
        "DEFAULT_SECTOR_ID": SECTOR_ID,
        "UPLOAD_ENDPOINT": "",
    })
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    with app.test_client() as c:
        yield c


# ── Fake store ───────────────────────────────────────────────────────

class FakeBoulderStore(BoulderStore):
    """In-memory boulder table; records every call."""

    def __init__(self, rows=None):
        self.rows = {r["id"]: dict(r) for r in (rows or [])}
        self.calls = []
        self.fail_on = set()
        self._next_id = 1

    def select_all_ordered(self, column="name"):
        self.calls.append(("select", column))
        if "select" in self.fail_on:
            raise StoreError("connection refused")
        return sorted((dict(r) for r in self.rows.values()), key=lambda r: r[column])

    def insert(self, record):
        self.calls.append(("insert", dict(record)))
        if "insert" in self.fail_on:
            raise StoreError("insert rejected")
        row = dict(record, id=f"b{self._next_id}")
        self._next_id += 1
        self.rows[row["id"]] = row
        return dict(row)

    def update(self, record, record_id):
        self.calls.append(("update", dict(record), record_id))
        if "update" in self.fail_on:
            raise StoreError("update rejected")
        self.rows[record_id] = dict(record)
        return dict(record)


@pytest.fixture
def store():
    return FakeBoulderStore()


# ── Fake aiohttp session ─────────────────────────────────────────────

class FakeResponse:
    def __init__(self, payload=None, exc=None):
        self._payload = payload
        self._exc = exc

    async def json(self, content_type="application/json"):
        if self._exc:
            raise self._exc
        return self._payload


class FakeSession:
    """Stands in for aiohttp.ClientSession.post(...) as used by ImageIntake."""

    def __init__(self, payload=None, transport_exc=None, body_exc=None):
        self.payload = payload
        self.transport_exc = transport_exc
        self.body_exc = body_exc
        self.calls = []

    @asynccontextmanager
    async def _respond(self):
        if self.transport_exc:
            raise self.transport_exc
        yield FakeResponse(self.payload, self.body_exc)

    def post(self, url, json=None, **kwargs):
        self.calls.append((url, json))
        return self._respond()
