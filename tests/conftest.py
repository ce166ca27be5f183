import secrets

import httpx
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

from shortlinkapi.main import app
from shortlinkapi.api.deps import (
    create_rate_limiter,
    get_click_recorder,
    hash_api_key,
    redirect_rate_limiter,
)
from shortlinkapi.db.base import Base
from shortlinkapi.db.models import ApiKey
from shortlinkapi.db.session import SessionLocal
from shortlinkapi.services.geo import GeoLocator
from shortlinkapi.services.recorder import ClickRecorder

OWNER_A = "owner-a"
OWNER_B = "owner-b"

# Canned ipapi.co answers keyed by IP; anything else gets a 404.
GEO_ANSWERS = {
    "8.8.8.8": {"country_name": "United States", "city": "Mountain View", "region": "California"},
    "1.1.1.1": {"country_name": "Australia", "city": "Sydney", "region": "New South Wales"},
    "9.9.9.9": {"country_name": "Switzerland", "city": "Zurich", "region": "Zurich"},
}


def _geo_handler(request: httpx.Request) -> httpx.Response:
    ip = request.url.path.strip("/").split("/")[0]
    if ip in GEO_ANSWERS:
        return httpx.Response(200, json=GEO_ANSWERS[ip])
    return httpx.Response(404, json={"error": True, "reason": "Not Found"})


test_engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
# get_db and the recorder both open sessions through SessionLocal
SessionLocal.configure(bind=test_engine)


@pytest.fixture()
def db_session():
    with SessionLocal() as session:
        yield session


@pytest.fixture(autouse=True)
def isolate_db():
    """
    Full test isolation:
    - Fresh tables before each test
    - Rate limiters and the geo lookup never leave the process
    """
    Base.metadata.drop_all(bind=test_engine)
    Base.metadata.create_all(bind=test_engine)

    geo_client = httpx.Client(transport=httpx.MockTransport(_geo_handler))
    recorder = ClickRecorder(
        session_factory=SessionLocal,
        locator=GeoLocator(client=geo_client, api_url="https://geo.test"),
        ip_salt="test-salt",
    )
    app.dependency_overrides[redirect_rate_limiter] = lambda: None
    app.dependency_overrides[create_rate_limiter] = lambda: None
    app.dependency_overrides[get_click_recorder] = lambda: recorder

    yield

    app.dependency_overrides.clear()
    geo_client.close()


def _issue_api_key(owner_id: str) -> str:
    raw = f"sk_test_{owner_id}_" + secrets.token_urlsafe(16)
    with SessionLocal() as db:
        db.add(ApiKey(name=owner_id, owner_id=owner_id, key_hash=hash_api_key(raw)))
        db.commit()
    return raw


@pytest.fixture()
def client() -> TestClient:
    return TestClient(app)


@pytest.fixture()
def client_a() -> TestClient:
    c = TestClient(app)
    c.headers.update({"X-API-Key": _issue_api_key(OWNER_A)})
    return c


@pytest.fixture()
def client_b() -> TestClient:
    c = TestClient(app)
    c.headers.update({"X-API-Key": _issue_api_key(OWNER_B)})
    return c


@pytest.fixture()
def make_link(client_a):
    def _make(**payload):
        payload.setdefault("original_url", "https://example.com")
        resp = client_a.post("/api/links", json=payload)
        assert resp.status_code == 201, resp.text
        return resp.json()

    return _make
