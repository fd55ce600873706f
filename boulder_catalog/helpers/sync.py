import logging
from dataclasses import dataclass
from typing import Any, Optional

from sqlalchemy.exc import SQLAlchemyError

from boulder_catalog.errors import BoulderError, FetchError, MissingIdentifier, SaveError
from boulder_catalog.extensions import db
from boulder_catalog.helpers.record import BOULDER_FIELDS
from boulder_catalog.models import Boulder

logger = logging.getLogger(__name__)


class StoreError(Exception):
    """Raised by a BoulderStore when the backing database call fails."""


class BoulderStore:
    """
    Table-like access to boulders: select-all-ordered, insert, update-by-id.
    Records go in and come out as plain dicts with style as JSON text.
    """

    def select_all_ordered(self, column: str = "name") -> list[dict]:
        raise NotImplementedError

    def insert(self, record: dict) -> dict:
        raise NotImplementedError

    def update(self, record: dict, record_id: str) -> dict:
        raise NotImplementedError


class SqlAlchemyBoulderStore(BoulderStore):
    """BoulderStore over the `boulder` table via Flask-SQLAlchemy."""

    def select_all_ordered(self, column: str = "name") -> list[dict]:
        try:
            rows = Boulder.query.order_by(getattr(Boulder, column)).all()
        except SQLAlchemyError as e:
            raise StoreError(str(e)) from e
        return [b.to_dict() for b in rows]

    def insert(self, record: dict) -> dict:
        boulder = Boulder(**_writable(record))
        db.session.add(boulder)
        self._commit()
        return boulder.to_dict()

    def update(self, record: dict, record_id: str) -> dict:
        boulder = db.session.get(Boulder, record_id)
        if boulder is None:
            raise StoreError(f"Boulder {record_id} not found")

        # full-record replace: every writable column takes the given value
        values = _writable(record)
        for field in BOULDER_FIELDS:
            setattr(boulder, field, values.get(field))

        self._commit()
        return boulder.to_dict()

    def _commit(self):
        try:
            db.session.commit()
        except SQLAlchemyError as e:
            db.session.rollback()
            raise StoreError(str(e)) from e


def _writable(record: dict) -> dict:
    return {k: v for k, v in record.items() if k in BOULDER_FIELDS}


@dataclass
class SyncResult:
    ok: bool
    value: Any = None
    error: Optional[BoulderError] = None

    @classmethod
    def success(cls, value=None) -> "SyncResult":
        return cls(ok=True, value=value)

    @classmethod
    def failure(cls, error: BoulderError) -> "SyncResult":
        return cls(ok=False, error=error)

    def unwrap(self):
        if not self.ok:
            raise self.error
        return self.value


class BoulderSynchronizer:
    """
    Owns the boulder list shown on the page and the open edit/create session.

    Every mutation is followed by a fresh list() so the page reflects the
    store, never a local guess. The list is only ever replaced wholesale.
    """

    def __init__(self, store: BoulderStore, editing_id: Optional[str] = None, creating: bool = False):
        self.store = store
        self.boulders: list[dict] = []
        self.loading = False
        self.editing_id = editing_id
        self.creating = creating

    # --- edit/create session ---

    def start_edit(self, boulder_id: str):
        self.editing_id = boulder_id
        self.creating = False

    def start_create(self):
        self.creating = True
        self.editing_id = None

    def cancel(self):
        self.editing_id = None
        self.creating = False

    def find(self, boulder_id: str) -> Optional[dict]:
        for b in self.boulders:
            if b.get("id") == boulder_id:
                return b
        return None

    # --- store operations ---

    def list(self) -> SyncResult:
        self.loading = True
        try:
            rows = self.store.select_all_ordered("name")
        except StoreError as e:
            logger.error("Error fetching boulders: %s", e)
            self.boulders = []
            return SyncResult.failure(FetchError(str(e)))
        finally:
            self.loading = False

        self.boulders = sorted(rows, key=lambda b: b.get("name") or "")
        return SyncResult.success(self.boulders)

    def create(self, draft: dict) -> SyncResult:
        record = {k: v for k, v in draft.items() if k != "id"}
        try:
            created = self.store.insert(record)
        except StoreError as e:
            logger.error("Error creating boulder %r: %s", draft.get("name"), e)
            return SyncResult.failure(SaveError(str(e)))

        self.creating = False
        self._refresh()
        return SyncResult.success(created)

    def update(self, record: dict) -> SyncResult:
        record_id = record.get("id")
        if not record_id:
            err = MissingIdentifier("update() needs a record with an id")
            logger.error("Refusing to update boulder %r: %s", record.get("name"), err)
            return SyncResult.failure(err)

        try:
            updated = self.store.update(record, record_id)
        except StoreError as e:
            logger.error("Error updating boulder %s: %s", record_id, e)
            return SyncResult.failure(SaveError(str(e)))

        self.editing_id = None
        self._refresh()
        return SyncResult.success(updated)

    def _refresh(self):
        # A failed refresh is already logged by list(); the mutation stands
        self.list()
