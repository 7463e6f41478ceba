from typing import Dict, List, Optional

import mongomock
import pytest
from fastapi.testclient import TestClient
from pymongo.errors import PyMongoError

from database import RecordStore
from errors import AuthError
from identity import Principal
from main import create_app


class DummyIdentityProvider:
    def __init__(self):
        self.tokens: Dict[str, Principal] = {}
        self.uids: Dict[str, str] = {}
        self.deleted: List[str] = []
        self.lookup_error: Optional[Exception] = None
        self.delete_error: Optional[Exception] = None

    def add_user(self, email: str, uid: str, token: Optional[str] = None) -> None:
        self.uids[email] = uid
        if token:
            self.tokens[token] = Principal(uid=uid, email=email)

    def verify_token(self, token: str) -> Principal:
        if token not in self.tokens:
            raise AuthError()
        return self.tokens[token]

    def get_uid_by_email(self, email: str) -> Optional[str]:
        if self.lookup_error:
            raise self.lookup_error
        return self.uids.get(email)

    def delete_user(self, uid: str) -> None:
        if self.delete_error:
            raise self.delete_error
        self.deleted.append(uid)
        self.uids = {e: u for e, u in self.uids.items() if u != uid}


class FailingCollection:
    """Proxies a collection, raising PyMongoError for the named methods."""

    def __init__(self, inner, *methods: str):
        self._inner = inner
        self._methods = set(methods)

    def __getattr__(self, name):
        if name in self._methods:
            def boom(*args, **kwargs):
                raise PyMongoError(f"{name} unavailable")
            return boom
        return getattr(self._inner, name)


@pytest.fixture
def store():
    return RecordStore(mongomock.MongoClient().db)


@pytest.fixture
def identity():
    provider = DummyIdentityProvider()
    provider.add_user("admin@club.com", "uid-admin", token="admin-token")
    return provider


@pytest.fixture
def client(store, identity):
    return TestClient(create_app(store=store, identity=identity))


@pytest.fixture
def auth_headers():
    return {"Authorization": "Bearer admin-token"}


@pytest.fixture
def make_booking(store):
    def _make(email: str, status: str = "pending", created_at: str = "2026-01-01T10:00:00+00:00", **extra) -> str:
        doc = {"email": email, "status": status, "createdAt": created_at, "courtId": "court-1"}
        doc.update(extra)
        return str(store.bookings.insert_one(doc).inserted_id)
    return _make


@pytest.fixture
def make_user(store):
    def _make(email: str, role: str = "user", **extra) -> str:
        doc = {"email": email, "role": role}
        doc.update(extra)
        return str(store.users.insert_one(doc).inserted_id)
    return _make
