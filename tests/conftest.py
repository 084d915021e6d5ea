import re
import pytest
from fastapi.testclient import TestClient

from review_store import app
from review_store.db.main import get_repository
from review_store.db.repository import ConnectionRegistry, ReviewRepository


def _matches(document, query):
    for field, condition in query.items():
        value = document.get(field)
        if isinstance(condition, dict) and "$regex" in condition:
            flags = re.IGNORECASE if "i" in condition.get("$options", "") else 0
            if not isinstance(value, str) or re.search(condition["$regex"], value, flags) is None:
                return False
        elif value != condition:
            return False
    return True


class FakeCursor:
    """Lazy cursor over an in-memory collection with Mongo-style chaining."""

    def __init__(self, documents, query):
        self._documents = documents
        self._query = query
        self._sort = None
        self._skip = 0
        self._limit = 0
        self.iterated = False

    def sort(self, key, direction=1):
        self._sort = (key, direction)
        return self

    def skip(self, count):
        self._skip = count
        return self

    def limit(self, count):
        self._limit = count
        return self

    async def __aiter__(self):
        self.iterated = True
        matched = [dict(d) for d in self._documents.values() if _matches(d, self._query)]
        if self._sort:
            key, direction = self._sort
            matched.sort(key=lambda d: (d.get(key) is None, d.get(key)), reverse=direction == -1)
        matched = matched[self._skip:]
        if self._limit:
            matched = matched[:self._limit]
        for document in matched:
            yield document


class FakeCollection:
    def __init__(self, name):
        self.name = name
        self.documents = {}
        self.cursors = []

    async def find_one(self, query):
        for document in self.documents.values():
            if _matches(document, query):
                return dict(document)
        return None

    async def update_one(self, query, update, upsert=False):
        key = query["_id"]
        if key not in self.documents:
            if not upsert:
                return {"matched_count": 0}
            self.documents[key] = {"_id": key}
        self.documents[key].update(update["$set"])
        return {"matched_count": 1}

    async def delete_one(self, query):
        removed = self.documents.pop(query["_id"], None)
        return {"deleted_count": 0 if removed is None else 1}

    def find(self, query):
        cursor = FakeCursor(self.documents, query)
        self.cursors.append(cursor)
        return cursor

    async def count_documents(self, query):
        return sum(1 for d in self.documents.values() if _matches(d, query))


class FakeClient:
    def __init__(self, collections):
        self._collections = collections
        self.closed = False

    async def collection(self, name):
        return self._collections.setdefault(name, FakeCollection(name))

    async def close(self):
        self.closed = True


class FakeStore:
    def __init__(self, driver, region):
        self.driver = driver
        self.region = region

    async def connect(self):
        client = FakeClient(self.driver.collections)
        self.driver.clients.append(client)
        return client


class FakeDriver:
    """Document store double; all clients share one set of collections."""

    def __init__(self):
        self.collections = {}
        self.clients = []
        self.init_calls = []

    async def init(self, region):
        self.init_calls.append(region)
        return FakeStore(self, region)

    def collection(self, name="reviews"):
        return self.collections.setdefault(name, FakeCollection(name))


@pytest.fixture
def driver():
    return FakeDriver()


@pytest.fixture
def registry():
    return ConnectionRegistry()


@pytest.fixture
def repository(driver, registry):
    return ReviewRepository(driver, registry=registry, region="emea", collection="reviews")


@pytest.fixture
def auth_headers():
    return {
        "Authorization": "Bearer test-token",
        "x-gw-ims-org-id": "test-org",
        "x-gw-ims-user-id": "test-user",
    }


@pytest.fixture
def client(repository):
    app.dependency_overrides[get_repository] = lambda: repository
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def valid_review():
    return {
        "sku": "SKU-123",
        "rating": 5,
        "title": "Great product",
        "text": "Works exactly as described.",
        "author": "Sam",
        "author_email": "sam@example.com",
    }
