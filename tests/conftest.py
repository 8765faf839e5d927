import copy
import os
import re
from types import SimpleNamespace
from unittest.mock import AsyncMock, patch

os.environ.setdefault("SECRET_KEY", "test-secret-key-for-club-admin-suite")
os.environ.setdefault("MONGODB_URL", "mongodb://localhost:27017")
os.environ.setdefault("MAIL_ENABLED", "false")

import pytest
from bson import ObjectId
from fastapi.testclient import TestClient

from club_admin_api.database import db_manager
from club_admin_api.services.identity_resolver import build_context
from club_admin_api.services.mail_service import mail_service
from club_admin_api.services.token_service import token_service
from club_admin_api.utils.security_utils import hash_password

_MISSING = object()


def _lookup(doc, path):
    value = doc
    for part in path.split("."):
        if not isinstance(value, dict) or part not in value:
            return _MISSING
        value = value[part]
    return value


def _compare(value, op, arg):
    if value is _MISSING or value is None:
        return False
    return {"$gt": value > arg, "$gte": value >= arg, "$lt": value < arg, "$lte": value <= arg}[op]


def matches(doc, query):
    """Subset of the MongoDB query language used by the services."""
    for key, condition in (query or {}).items():
        if key == "$or":
            if not any(matches(doc, sub) for sub in condition):
                return False
            continue
        value = _lookup(doc, key)
        if isinstance(condition, dict) and condition and all(k.startswith("$") for k in condition):
            for op, arg in condition.items():
                if op == "$ne":
                    if (None if value is _MISSING else value) == arg:
                        return False
                elif op == "$in":
                    if value is _MISSING or value not in arg:
                        return False
                elif op == "$exists":
                    if (value is not _MISSING) != bool(arg):
                        return False
                elif op in ("$gt", "$gte", "$lt", "$lte"):
                    if not _compare(value, op, arg):
                        return False
                elif op == "$regex":
                    flags = re.IGNORECASE if "i" in condition.get("$options", "") else 0
                    if value is _MISSING or not re.search(arg, str(value), flags):
                        return False
                elif op == "$options":
                    continue
                else:
                    raise NotImplementedError(op)
        else:
            if value is _MISSING:
                value = None
            if value != condition:
                return False
    return True


def _set_path(doc, path, value):
    parts = path.split(".")
    for part in parts[:-1]:
        doc = doc.setdefault(part, {})
    doc[parts[-1]] = value


def _unset_path(doc, path):
    parts = path.split(".")
    for part in parts[:-1]:
        doc = doc.get(part)
        if not isinstance(doc, dict):
            return
    doc.pop(parts[-1], None)


class FakeCursor:
    def __init__(self, docs):
        self._docs = docs

    def sort(self, key, direction=1):
        self._docs.sort(
            key=lambda d: (_lookup(d, key) in (_MISSING, None), _lookup(d, key)), reverse=direction < 0
        )
        return self

    def skip(self, count):
        self._docs = self._docs[count:]
        return self

    def limit(self, count):
        if count:
            self._docs = self._docs[:count]
        return self

    async def to_list(self, length=None):
        return copy.deepcopy(self._docs if length is None else self._docs[:length])


class FakeCollection:
    """In-memory stand-in for a Motor collection."""

    def __init__(self, name):
        self.name = name
        self.docs = []
        self.find_one_calls = 0
        self.fail_inserts = False

    def seed(self, **fields):
        doc = {"_id": ObjectId(), **fields}
        self.docs.append(doc)
        return doc

    def get(self, oid):
        return next((doc for doc in self.docs if doc["_id"] == oid), None)

    async def find_one(self, query=None, projection=None, session=None):
        self.find_one_calls += 1
        found = next((doc for doc in self.docs if matches(doc, query)), None)
        return copy.deepcopy(found)

    def find(self, query=None, projection=None, session=None):
        return FakeCursor([doc for doc in self.docs if matches(doc, query)])

    async def count_documents(self, query, limit=None, session=None):
        count = sum(1 for doc in self.docs if matches(doc, query))
        return min(count, limit) if limit else count

    async def insert_one(self, document, session=None):
        if self.fail_inserts:
            raise RuntimeError("write refused")
        document.setdefault("_id", ObjectId())
        self.docs.append(copy.deepcopy(document))
        return SimpleNamespace(inserted_id=document["_id"])

    def _apply(self, doc, update):
        for path, value in update.get("$set", {}).items():
            _set_path(doc, path, copy.deepcopy(value))
        for path, amount in update.get("$inc", {}).items():
            current = _lookup(doc, path)
            _set_path(doc, path, (0 if current in (_MISSING, None) else current) + amount)
        for path in update.get("$unset", {}):
            _unset_path(doc, path)

    async def update_one(self, query, update, upsert=False, session=None):
        for doc in self.docs:
            if matches(doc, query):
                self._apply(doc, update)
                return SimpleNamespace(matched_count=1, modified_count=1, upserted_id=None)
        return SimpleNamespace(matched_count=0, modified_count=0, upserted_id=None)

    async def update_many(self, query, update, session=None):
        matched = [doc for doc in self.docs if matches(doc, query)]
        for doc in matched:
            self._apply(doc, update)
        return SimpleNamespace(matched_count=len(matched), modified_count=len(matched))

    async def delete_one(self, query, session=None):
        for index, doc in enumerate(self.docs):
            if matches(doc, query):
                del self.docs[index]
                return SimpleNamespace(deleted_count=1)
        return SimpleNamespace(deleted_count=0)

    async def delete_many(self, query, session=None):
        kept = [doc for doc in self.docs if not matches(doc, query)]
        deleted = len(self.docs) - len(kept)
        self.docs = kept
        return SimpleNamespace(deleted_count=deleted)


class FakeDatabase:
    def __init__(self):
        self.collections = {}

    def get_collection(self, name):
        if name not in self.collections:
            self.collections[name] = FakeCollection(name)
        return self.collections[name]

    def __getattr__(self, name):
        if name.startswith("_"):
            raise AttributeError(name)
        return self.get_collection(name)


@pytest.fixture
def fake_db():
    """Every service reads and writes this in-memory database instead of MongoDB."""
    database = FakeDatabase()
    with patch.object(db_manager, "get_collection", side_effect=database.get_collection):
        yield database


@pytest.fixture
def mock_mail():
    with patch.object(mail_service, "send_mail", new=AsyncMock(return_value=True)) as mock:
        yield mock


@pytest.fixture
def seed(fake_db):
    """Factories inserting principals with a known password."""
    password_hash = hash_password("Secret123")

    def admin(**fields):
        return fake_db.admins.seed(
            **{"email": "admin@esprit.tn", "password": password_hash, "nom": "Admin", "prenom": "Système", **fields}
        )

    def club(**fields):
        return fake_db.clubs.seed(
            **{
                "email": "club@esprit.tn",
                "password": password_hash,
                "nom": "Robotique",
                "categorie": "technologique",
                "statut": "actif",
                "valide": True,
                "premiereConnexion": False,
                "stats": {"nombreEvents": 0, "nombreEventsValides": 0},
                **fields,
            }
        )

    def user(**fields):
        return fake_db.users.seed(
            **{
                "email": "staff@esprit.tn",
                "password": password_hash,
                "nom": "Ben Ali",
                "prenom": "Sami",
                "role": "club_manager",
                "permissions": [],
                "statut": "actif",
                **fields,
            }
        )

    return SimpleNamespace(admin=admin, club=club, user=user, password="Secret123")


@pytest.fixture
def auth_header():
    """Builds the Authorization header carrying a fresh session token for a stored principal."""

    def build(doc, source):
        return {"Authorization": f"Bearer {token_service.issue(build_context(doc, source))}"}

    return build


@pytest.fixture
def client(fake_db):
    """Test client on the full application. The lifespan is not entered, so nothing connects to MongoDB."""
    from club_admin_api.main import app

    return TestClient(app)
