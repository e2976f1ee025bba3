"""Per-client rate limits for the payment API.

Verification fans out to several RPC nodes per request, so both payment
endpoints are limited per client IP. X-Forwarded-For is honored only when
the direct peer is a trusted proxy; otherwise a client could rotate the
header to get a fresh bucket on every request.
"""

import ipaddress
import logging
from functools import lru_cache

from slowapi import Limiter
from slowapi.util import get_remote_address

from .config import get_settings

logger = logging.getLogger(__name__)

IPNetwork = ipaddress.IPv4Network | ipaddress.IPv6Network


def parse_cidrs(raw: str) -> tuple[IPNetwork, ...]:
    """Parse a comma-separated CIDR list, skipping invalid entries."""
    networks = []
    for cidr in (part.strip() for part in raw.split(",")):
        if not cidr:
            continue
        try:
            networks.append(ipaddress.ip_network(cidr, strict=False))
        except ValueError:
            logger.warning("Ignoring invalid trusted proxy CIDR %r", cidr)
    return tuple(networks)


@lru_cache
def trusted_networks() -> tuple[IPNetwork, ...]:
    return parse_cidrs(get_settings().trusted_proxy_cidrs)


def is_trusted_proxy(ip_str: str, networks: tuple[IPNetwork, ...] | None = None) -> bool:
    try:
        addr = ipaddress.ip_address(ip_str)
    except ValueError:
        return False
    if networks is None:
        networks = trusted_networks()
    return any(addr in network for network in networks)


def get_client_ip(request) -> str:
    """Rate limit key: leftmost forwarded IP behind a trusted proxy, else the peer."""
    peer = get_remote_address(request)
    if not is_trusted_proxy(peer):
        return peer

    forwarded_for = request.headers.get("x-forwarded-for", "")
    client_ip = forwarded_for.split(",")[0].strip()
    return client_ip or peer


def verify_rate_limit() -> str:
    return get_settings().verify_rate_limit


def redeem_rate_limit() -> str:
    return get_settings().redeem_rate_limit


limiter = Limiter(key_func=get_client_ip)
