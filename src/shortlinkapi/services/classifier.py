from __future__ import annotations
from dataclasses import dataclass
import hashlib
from typing import Optional
from urllib.parse import urlsplit

from user_agents import parse as parse_user_agent

UNKNOWN = "Unknown"
DIRECT = "direct"

DEVICE_MOBILE = "mobile"
DEVICE_TABLET = "tablet"
DEVICE_DESKTOP = "desktop"
DEVICE_UNKNOWN = "unknown"


@dataclass(frozen=True)
class DeviceInfo:
    device: str
    os: str
    browser: str


def _family(value: Optional[str]) -> str:
    # ua-parser reports "Other" when it cannot place a string
    if not value or value == "Other":
        return UNKNOWN
    return value


def parse_device(user_agent: Optional[str]) -> DeviceInfo:
    """
    Classifies a user-agent string.

    An explicit tablet/mobile hint wins. Without one, a recognised OS means a
    desktop-class device; with neither the device is "unknown".
    """
    if not user_agent or not user_agent.strip():
        return DeviceInfo(device=DEVICE_UNKNOWN, os=UNKNOWN, browser=UNKNOWN)

    ua = parse_user_agent(user_agent)
    os_name = _family(ua.os.family)
    browser = _family(ua.browser.family)

    if ua.is_tablet:
        device = DEVICE_TABLET
    elif ua.is_mobile:
        device = DEVICE_MOBILE
    elif ua.is_pc or os_name != UNKNOWN:
        device = DEVICE_DESKTOP
    else:
        device = DEVICE_UNKNOWN

    return DeviceInfo(device=device, os=os_name, browser=browser)


def extract_referrer_domain(referrer: Optional[str]) -> str:
    if not referrer or referrer == DIRECT:
        return DIRECT
    try:
        host = urlsplit(referrer.strip()).hostname
    except ValueError:
        return DIRECT
    if not host:
        return DIRECT
    if host.startswith("www."):
        host = host[len("www."):]
    return host or DIRECT


def hash_ip(ip: str, salt: str = "") -> str:
    # SHA-256 hex digest (64 chars); the raw IP is never stored
    return hashlib.sha256(f"{salt}{ip}".encode("utf-8")).hexdigest()
