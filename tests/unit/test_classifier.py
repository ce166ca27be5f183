import pytest

from shortlinkapi.services.classifier import DeviceInfo, extract_referrer_domain, hash_ip, parse_device

IPHONE_UA = (
    "Mozilla/5.0 (iPhone; CPU iPhone OS 17_0 like Mac OS X) AppleWebKit/605.1.15 "
    "(KHTML, like Gecko) Version/17.0 Mobile/15E148 Safari/604.1"
)
IPAD_UA = (
    "Mozilla/5.0 (iPad; CPU OS 16_6 like Mac OS X) AppleWebKit/605.1.15 "
    "(KHTML, like Gecko) Version/16.6 Mobile/15E148 Safari/604.1"
)
WINDOWS_CHROME_UA = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)
MAC_FIREFOX_UA = "Mozilla/5.0 (Macintosh; Intel Mac OS X 14.1; rv:121.0) Gecko/20100101 Firefox/121.0"


def test_iphone_is_mobile():
    info = parse_device(IPHONE_UA)
    assert info.device == "mobile"
    assert info.os == "iOS"


def test_ipad_is_tablet():
    assert parse_device(IPAD_UA).device == "tablet"


def test_windows_chrome_is_desktop():
    assert parse_device(WINDOWS_CHROME_UA) == DeviceInfo(device="desktop", os="Windows", browser="Chrome")


def test_mac_firefox_is_desktop():
    info = parse_device(MAC_FIREFOX_UA)
    assert info.device == "desktop"
    assert info.browser == "Firefox"


@pytest.mark.parametrize("ua", [None, "", "   "])
def test_missing_user_agent(ua):
    assert parse_device(ua) == DeviceInfo(device="unknown", os="Unknown", browser="Unknown")


def test_gibberish_user_agent_falls_back_to_unknown():
    info = parse_device("definitely-not-a-browser")
    assert info.device == "unknown"
    assert info.os == "Unknown"
    assert info.browser == "Unknown"


@pytest.mark.parametrize(
    "referrer, domain",
    [
        ("https://www.google.com/search?q=x", "google.com"),
        ("https://news.ycombinator.com/item?id=1", "news.ycombinator.com"),
        ("http://WWW.Example.org", "example.org"),
        ("https://mywww.example.com", "mywww.example.com"),
        ("https://sub.www.example.com", "sub.www.example.com"),
    ],
)
def test_extract_referrer_domain(referrer, domain):
    assert extract_referrer_domain(referrer) == domain


@pytest.mark.parametrize("referrer", [None, "", "direct", "not a url", "http://[broken"])
def test_extract_referrer_domain_defaults_to_direct(referrer):
    assert extract_referrer_domain(referrer) == "direct"


def test_hash_ip_is_deterministic_and_hides_ip():
    first = hash_ip("8.8.8.8", "salt")
    assert first == hash_ip("8.8.8.8", "salt")
    assert len(first) == 64
    assert "8.8.8.8" not in first


def test_hash_ip_depends_on_ip_and_salt():
    assert hash_ip("8.8.8.8") != hash_ip("8.8.4.4")
    assert hash_ip("8.8.8.8", "a") != hash_ip("8.8.8.8", "b")
