"""
Webhook Security

Telegram source IP validation and per-chat rate limiting.
"""

import ipaddress
import time
from collections import defaultdict, deque
from typing import Callable, Deque, Dict, Mapping, Optional

# https://core.telegram.org/bots/webhooks#the-short-version
TELEGRAM_IP_RANGES = (
    ipaddress.ip_network("149.154.160.0/20"),
    ipaddress.ip_network("91.108.4.0/22"),
)

RATE_LIMIT = 20  # requests per window
RATE_WINDOW_SECONDS = 60.0


def is_telegram_ip(ip: Optional[str]) -> bool:
    """Check if an address belongs to Telegram's webhook ranges"""
    if not ip:
        return False
    try:
        address = ipaddress.ip_address(ip.strip())
    except ValueError:
        return False
    return any(address in network for network in TELEGRAM_IP_RANGES)


def client_ip(headers: Mapping[str, str], peer: Optional[str] = None) -> Optional[str]:
    """
    Resolve the originating client address.

    Order: CF-Connecting-IP, first X-Forwarded-For hop, socket peer.
    """
    cf_ip = headers.get("cf-connecting-ip")
    if cf_ip:
        return cf_ip.strip()

    forwarded = headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()

    return peer


class RateLimiter:
    """
    In-memory sliding window rate limiter, keyed by chat id.

    Usage:
        limiter = RateLimiter()
        if not limiter.allow(chat_id):
            ...
    """

    def __init__(
        self,
        limit: int = RATE_LIMIT,
        window: float = RATE_WINDOW_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._limit = limit
        self._window = window
        self._clock = clock
        self._hits: Dict[int, Deque[float]] = defaultdict(deque)

    def allow(self, key: int) -> bool:
        """Record a request; False when the key is over its limit"""
        now = self._clock()
        hits = self._hits[key]
        while hits and now - hits[0] >= self._window:
            hits.popleft()

        if len(hits) >= self._limit:
            return False

        hits.append(now)
        return True

    def reset(self) -> None:
        self._hits.clear()
