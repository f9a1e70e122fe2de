"""
Username lookup proxy.

Resolves a game account's display name from an upstream
validation endpoint. Results are kept in an injected
UsernameCache with a TTL and a size bound; the cache has no
connection to the ledger.
"""

import logging
import time
import uuid
from collections import OrderedDict
from collections.abc import Callable
from dataclasses import dataclass
from urllib.parse import unquote

import httpx

from topup_store.config import get_settings
from topup_store.errors import InvalidRequestError, UpstreamFailureError

logger = logging.getLogger(__name__)


class UsernameCache:
    """
    TTL cache keyed by (user_id, zone_id).

    Oldest entries are evicted once ``max_entries`` is reached.
    snapshot()/restore() let the owner persist the cache on its
    own schedule.
    """

    def __init__(
        self,
        ttl_seconds: int,
        max_entries: int,
        clock: Callable[[], float] = time.time,
    ):
        self.ttl_seconds = ttl_seconds
        self.max_entries = max_entries
        self.clock = clock
        self._entries: OrderedDict[tuple[str, str], tuple[str, float]] = OrderedDict()

    def get(self, user_id: str, zone_id: str) -> str | None:
        key = (user_id, zone_id)
        item = self._entries.get(key)
        if item is None:
            return None
        username, stored_at = item
        if self.clock() - stored_at >= self.ttl_seconds:
            del self._entries[key]
            return None
        return username

    def set(self, user_id: str, zone_id: str, username: str) -> None:
        key = (user_id, zone_id)
        self._entries.pop(key, None)
        self._entries[key] = (username, self.clock())
        while len(self._entries) > self.max_entries:
            self._entries.popitem(last=False)

    def __len__(self) -> int:
        return len(self._entries)

    def snapshot(self) -> list[dict]:
        return [
            {"user_id": u, "zone_id": z, "username": name, "stored_at": ts}
            for (u, z), (name, ts) in self._entries.items()
        ]

    def restore(self, items: list[dict]) -> None:
        for item in items:
            key = (item["user_id"], item["zone_id"])
            self._entries[key] = (item["username"], item["stored_at"])
        while len(self._entries) > self.max_entries:
            self._entries.popitem(last=False)


@dataclass(frozen=True)
class LookupResult:
    username: str
    cached: bool


def decode_username(raw: str) -> str:
    return unquote(raw or "").replace("+", " ").strip()


class UsernameLookupClient:

    def __init__(
        self,
        http: httpx.Client,
        cache: UsernameCache,
        url: str | None = None,
    ):
        self.http = http
        self.cache = cache
        self.url = url or get_settings().USERNAME_LOOKUP_URL

    def lookup(self, user_id: str, zone_id: str) -> LookupResult:
        user_id = str(user_id or "").strip()
        zone_id = str(zone_id or "").strip()
        if not user_id or not zone_id:
            raise InvalidRequestError("UserID and ZoneID are required")

        cached = self.cache.get(user_id, zone_id)
        if cached is not None:
            return LookupResult(username=cached, cached=True)

        try:
            response = self.http.post(self.url, json={
                "userId": user_id,
                "zoneId": zone_id,
                "deviceId": str(uuid.uuid4()),
            })
            response.raise_for_status()
            body = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("Username lookup failed for %s/%s: %s", user_id, zone_id, e)
            raise UpstreamFailureError(f"Username lookup failed: {e}") from e

        result = (body.get("result") if isinstance(body, dict) else None) or {}
        username = decode_username(result.get("username", ""))
        self.cache.set(user_id, zone_id, username)
        return LookupResult(username=username, cached=False)


def build_lookup_client() -> UsernameLookupClient:
    settings = get_settings()
    return UsernameLookupClient(
        http=httpx.Client(timeout=settings.USERNAME_LOOKUP_TIMEOUT),
        cache=UsernameCache(
            ttl_seconds=settings.USERNAME_CACHE_TTL_SECONDS,
            max_entries=settings.USERNAME_CACHE_MAX_ENTRIES,
        ),
        url=settings.USERNAME_LOOKUP_URL,
    )
