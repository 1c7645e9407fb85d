"""
Pytest configuration and fixtures
"""
import importlib.util
import json
import os
import sys
from pathlib import Path

import httpx
import pytest

# Add backend directory to path for imports
backend_dir = Path(__file__).parent.parent
if str(backend_dir) not in sys.path:
    sys.path.insert(0, str(backend_dir))

# Plain text logs keep test output readable
os.environ.setdefault("LOG_FORMAT", "text")
os.environ.setdefault("LOG_FILE_ENABLED", "false")

from rentat.core.config import Settings


def load_module(relative_path: str, name: str):
    """Import a backend file (main.py, scripts/*.py) by path"""
    path = backend_dir / relative_path
    spec = importlib.util.spec_from_file_location(name, path)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


@pytest.fixture
def settings():
    """Settings with test Paymob credentials, isolated from any .env"""
    return Settings(
        _env_file=None,
        app_env="test",
        paymob_api_key="test-api-key",
        paymob_integration_id="4097558",
        paymob_hmac_secret="test-secret",
        paymob_iframe_id="830000",
        paymob_base_url="https://paymob.test/api",
    )


class FakeClock:
    """Callable clock the tests move by hand"""

    def __init__(self, now: float = 1_700_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


class FakePaymobApi:
    """
    Test-only Paymob API served through httpx.MockTransport.

    Responses are registered per (method, path); a list of responses is
    consumed in order, a single response is reused.
    """

    def __init__(self):
        self.routes = {}
        self.requests = []

    def add(self, method: str, path: str, status_code: int = 200, json_body=None, text: str = None):
        response = (status_code, json_body, text)
        key = (method.upper(), path)
        existing = self.routes.get(key)
        if existing is None:
            self.routes[key] = response
        elif isinstance(existing, list):
            existing.append(response)
        else:
            self.routes[key] = [existing, response]

    def calls(self, path: str):
        return [r for r in self.requests if r.url.path == path]

    def bodies(self, path: str):
        return [json.loads(r.content) for r in self.calls(path)]

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        key = (request.method, request.url.path)
        if key not in self.routes:
            return httpx.Response(404, text=f"No route for {request.method} {request.url.path}")

        entry = self.routes[key]
        if isinstance(entry, list):
            entry = entry.pop(0) if len(entry) > 1 else entry[0]
        status_code, json_body, text = entry
        if json_body is not None:
            return httpx.Response(status_code, json=json_body)
        return httpx.Response(status_code, text=text or "")


@pytest.fixture
def paymob_api():
    api = FakePaymobApi()
    api.add("POST", "/api/auth/tokens", json_body={"token": "auth-token-1"})
    return api


@pytest.fixture
def paymob_service(settings, paymob_api, clock):
    from rentat.services.paymob_service import PaymobService

    http_client = httpx.AsyncClient(transport=httpx.MockTransport(paymob_api.handler))
    return PaymobService(settings, http_client=http_client, clock=clock)


# -----------------------------
# Test-only Firestore stubs
# Only the calls made by ChatMaintenanceService are implemented.
# -----------------------------
class FakeSnapshot:
    def __init__(self, reference, data, update_time=None):
        self.reference = reference
        self.id = reference.id
        self._data = data
        self.update_time = update_time

    @property
    def exists(self) -> bool:
        return self._data is not None

    def to_dict(self):
        return None if self._data is None else dict(self._data)


class FakeDocument:
    def __init__(self, collection, doc_id):
        self.collection_ref = collection
        self.id = doc_id
        self.data = None
        self.update_time = None
        self.subcollections = {}
        self.updates = []

    def get(self):
        return FakeSnapshot(self, self.data, self.update_time)

    def set(self, data):
        self.data = dict(data)
        self.update_time = self.collection_ref.db.tick()

    def update(self, fields, option=None):
        if self.data is None:
            raise KeyError(f"No document to update: {self.id}")
        if option is not None and option["last_update_time"] != self.update_time:
            raise RuntimeError(f"Document {self.id} changed since it was read")
        self.updates.append({"fields": dict(fields), "option": option})
        self.data.update(fields)
        self.update_time = self.collection_ref.db.tick()

    def collection(self, name):
        if name not in self.subcollections:
            self.subcollections[name] = FakeCollection(self.collection_ref.db, name)
        return self.subcollections[name]


class FakeCollection:
    def __init__(self, db, name):
        self.db = db
        self.name = name
        self.documents = {}

    def document(self, doc_id):
        if doc_id not in self.documents:
            self.documents[doc_id] = FakeDocument(self, doc_id)
        return self.documents[doc_id]

    def stream(self):
        return [doc.get() for doc in list(self.documents.values()) if doc.data is not None]


class FakeFirestore:
    def __init__(self):
        self.collections = {}
        self._clock = 0

    def tick(self) -> int:
        self._clock += 1
        return self._clock

    def collection(self, name):
        if name not in self.collections:
            self.collections[name] = FakeCollection(self, name)
        return self.collections[name]

    def write_option(self, last_update_time=None):
        return {"last_update_time": last_update_time}

    def add_chat(self, chat_id, data, messages=None):
        doc = self.collection("chats").document(chat_id)
        doc.set(data)
        for message_id, message in (messages or {}).items():
            doc.collection("messages").document(message_id).set(message)
        return doc


@pytest.fixture
def firestore_db():
    return FakeFirestore()


@pytest.fixture(scope="session")
def load_backend_module():
    return load_module
