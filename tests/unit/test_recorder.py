from unittest.mock import Mock

from starlette.requests import Request

from shortlinkapi.db.models import AnalyticsEvent
from shortlinkapi.db.session import SessionLocal
from shortlinkapi.services.classifier import hash_ip
from shortlinkapi.services.geo import Location
from shortlinkapi.services.recorder import ClickContext, ClickRecorder, client_context, get_client_ip

CHROME_UA = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)


def _request(headers=None, client=("203.0.113.9", 5555)):
    scope = {
        "type": "http",
        "method": "GET",
        "path": "/abc123",
        "headers": [(k.lower().encode(), v.encode()) for k, v in (headers or {}).items()],
        "client": client,
    }
    return Request(scope)


def test_client_ip_prefers_first_forwarded_hop():
    req = _request({"X-Forwarded-For": " 8.8.8.8 , 10.0.0.1"})
    assert get_client_ip(req) == "8.8.8.8"


def test_client_ip_falls_back_to_peer():
    assert get_client_ip(_request()) == "203.0.113.9"
    assert get_client_ip(_request(client=None)) == "unknown"


def test_client_context_defaults_referrer_to_direct():
    ctx = client_context(_request({"User-Agent": CHROME_UA}))
    assert ctx == ClickContext(ip="203.0.113.9", user_agent=CHROME_UA, referrer="direct")


def _recorder(locator=None):
    if locator is None:
        locator = Mock()
        locator.lookup.return_value = Location(country="France", city="Paris", region="Ile-de-France")
    return ClickRecorder(session_factory=SessionLocal, locator=locator, ip_salt="pepper")


def test_record_persists_one_event(db_session):
    recorder = _recorder()
    ctx = ClickContext(ip="8.8.8.8", user_agent=CHROME_UA, referrer="https://www.reddit.com/r/python")

    recorder.record(42, ctx)

    event = db_session.query(AnalyticsEvent).one()
    assert event.link_id == 42
    assert (event.country, event.city, event.region) == ("France", "Paris", "Ile-de-France")
    assert (event.device, event.os, event.browser) == ("desktop", "Windows", "Chrome")
    assert event.referrer_domain == "reddit.com"
    assert event.user_agent == CHROME_UA
    assert event.ip_hash == hash_ip("8.8.8.8", "pepper")
    recorder.locator.lookup.assert_called_once_with("8.8.8.8")


def test_same_ip_same_hash(db_session):
    recorder = _recorder()
    ctx = ClickContext(ip="8.8.8.8", user_agent="", referrer="direct")
    recorder.record(1, ctx)
    recorder.record(1, ctx)

    hashes = {e.ip_hash for e in db_session.query(AnalyticsEvent).all()}
    assert len(hashes) == 1


def test_raw_ip_never_stored(db_session):
    _recorder().record(7, ClickContext(ip="8.8.8.8", user_agent="", referrer="direct"))

    event = db_session.query(AnalyticsEvent).one()
    stored = [getattr(event, col.key) for col in AnalyticsEvent.__table__.columns]
    assert all("8.8.8.8" not in str(value) for value in stored)


def test_record_swallows_geo_failure(db_session, caplog):
    locator = Mock()
    locator.lookup.side_effect = RuntimeError("boom")

    _recorder(locator).record(5, ClickContext(ip="8.8.8.8", user_agent="", referrer="direct"))

    assert db_session.query(AnalyticsEvent).count() == 0
    assert "Failed to record click for link 5" in caplog.text


def test_record_swallows_store_failure():
    def broken_session():
        raise RuntimeError("database is down")

    recorder = ClickRecorder(session_factory=broken_session, locator=Mock(), ip_salt="")
    recorder.locator.lookup.return_value = Location(country="X", city="Y", region="Z")

    # must not raise
    recorder.record(9, ClickContext(ip="8.8.8.8", user_agent="", referrer="direct"))
