import random
import ipaddress
from urllib.parse import urlparse
from loguru import logger

from emotichat.pipeline.config import USER_AGENTS

# database, mail and remote-shell ports the image proxy must never reach
RESTRICTED_PORTS = frozenset({22, 23, 25, 135, 139, 445, 1433, 3306, 5432, 6379, 11211, 27017})
LOCAL_HOSTNAMES = frozenset({"localhost", "localhost.localdomain", "ip6-localhost"})


def get_random_user_agent():
    return random.choice(USER_AGENTS)


def _blocked_host_reason(hostname: str):
    host = hostname.rstrip(".").lower()
    if host in LOCAL_HOSTNAMES or host.endswith(".localhost"):
        return "local hostname"
    try:
        ip = ipaddress.ip_address(host)
    except ValueError:
        return None
    if ip.is_private or ip.is_loopback or ip.is_link_local or ip.is_reserved or ip.is_multicast or ip.is_unspecified:
        return "non-public address"
    return None


def validate_url_for_fetch(url: str) -> bool:
    """True when ``url`` is a public http(s) address the image proxy may fetch."""
    try:
        parsed = urlparse(url)
        port = parsed.port
    except ValueError as e:
        logger.warning(f"[Proxy] Unparseable image URL {url!r}: {e}")
        return False

    if parsed.scheme not in ("http", "https") or not parsed.hostname:
        logger.warning(f"[Proxy] Rejected image URL {url!r}: scheme or host missing")
        return False

    reason = _blocked_host_reason(parsed.hostname)
    if reason:
        logger.warning(f"[Proxy] Rejected image URL {url!r}: {reason}")
        return False

    if port in RESTRICTED_PORTS:
        logger.warning(f"[Proxy] Rejected image URL {url!r}: restricted port {port}")
        return False

    return True
