"""
Reverse Geocoding Service

Resolves a latitude/longitude pair to a human readable place name using
an OpenStreetMap Nominatim instance.

Pieces:
- NominatimClient: one HTTP call per lookup, bounded end to end by its
  timeout (connect, headers and body together).
- GeocodeCache / RedisGeocodeCache: results keyed by coordinates rounded
  to 5 decimal places.
- CachingReverseGeocoder: cache in front of any client; a hit never
  touches the network.

A lookup never raises. Any failure (non-200, timeout, connection error,
unparseable body, missing display_name) is logged and returns None so the
caller can fall back to a coordinate label.

Usage:
    geocoder = build_reverse_geocoder()
    name = geocoder.lookup(53.3498, -6.2603)
"""

from collections import OrderedDict
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FuturesTimeout
from typing import Callable, Optional, Protocol
import json
import logging
import threading
import time

import requests

from core.cache import cache_key, get_cache, invalidate_pattern, set_cache
from core.config import MIN_GEOCODE_TIMEOUT_MS, settings

logger = logging.getLogger(__name__)

CACHE_KEY_DECIMALS = 5
REDIS_KEY_PREFIX = "geocode"

# Nominatim bodies for zoom 18 without address details are well under this.
MAX_RESPONSE_BYTES = 256 * 1024
# Small reads so the deadline is checked while a body trickles in.
READ_CHUNK_BYTES = 1
LOOKUP_WORKERS = 8

# Lookups run here so the caller can stop waiting at the deadline.
_lookup_pool = ThreadPoolExecutor(max_workers=LOOKUP_WORKERS, thread_name_prefix="geocode")


class PlaceNameLookup(Protocol):
    """Anything that can turn coordinates into an optional place name."""

    def lookup(self, lat: float, lng: float) -> Optional[str]:
        ...


def geocode_cache_key(lat: float, lng: float) -> str:
    """Cache key for a coordinate pair, rounded to 5 decimal places."""
    return f"{lat:.{CACHE_KEY_DECIMALS}f},{lng:.{CACHE_KEY_DECIMALS}f}"


# =============================================================================
# HTTP CLIENT
# =============================================================================

class NominatimClient:
    """
    Minimal Nominatim reverse-geocoding client.

    ``timeout_ms`` bounds the whole lookup, not just connect and each
    read: the request runs on a worker thread and the caller stops waiting
    at the deadline. The worker checks the same deadline while it streams
    the body, so a server that drips bytes cannot hold it either.

    Without a ``session`` every request goes through ``requests.get``, so
    nothing is shared between request threads.
    """

    def __init__(
        self,
        base_url: str,
        timeout_ms: int,
        user_agent: str,
        session: Optional[requests.Session] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout_ms = max(timeout_ms, MIN_GEOCODE_TIMEOUT_MS)
        self.user_agent = user_agent
        self.session = session

    @property
    def timeout_s(self) -> float:
        return self.timeout_ms / 1000.0

    def lookup(self, lat: float, lng: float) -> Optional[str]:
        deadline = time.monotonic() + self.timeout_s
        future = _lookup_pool.submit(self._fetch, lat, lng, deadline)
        try:
            return future.result(timeout=self.timeout_s)
        except FuturesTimeout:
            future.cancel()
            logger.warning(
                f"OSM reverse geocode exceeded {self.timeout_ms} ms for {lat},{lng}"
            )
            return None

    def _get(self, url: str, **kwargs) -> requests.Response:
        if self.session is not None:
            return self.session.get(url, **kwargs)
        return requests.get(url, **kwargs)

    def _fetch(self, lat: float, lng: float, deadline: float) -> Optional[str]:
        if time.monotonic() >= deadline:
            # Queued behind other lookups until the caller gave up.
            return None

        url = f"{self.base_url}/reverse"
        params = {
            "format": "jsonv2",
            "lat": lat,
            "lon": lng,
            "zoom": 18,
            "addressdetails": 0,
        }
        headers = {
            "User-Agent": self.user_agent,
            "Accept": "application/json",
        }

        try:
            r = self._get(url, params=params, headers=headers, timeout=self.timeout_s, stream=True)
        except requests.exceptions.RequestException as e:
            logger.warning(f"OSM reverse geocode request failed for {lat},{lng}: {e}")
            return None

        try:
            if r.status_code != 200:
                logger.warning(f"OSM reverse geocode failed with {r.status_code} for {lat},{lng}")
                return None
            body = self._read_body(r, deadline)
        except requests.exceptions.RequestException as e:
            logger.warning(f"OSM reverse geocode read failed for {lat},{lng}: {e}")
            return None
        finally:
            r.close()

        if body is None:
            logger.warning(f"OSM reverse geocode body too slow or too large for {lat},{lng}")
            return None

        try:
            payload = json.loads(body)
        except ValueError as e:
            logger.warning(f"OSM reverse geocode returned invalid JSON for {lat},{lng}: {e}")
            return None

        name = payload.get("display_name") if isinstance(payload, dict) else None
        if not isinstance(name, str) or not name.strip():
            logger.warning(f"OSM reverse geocode returned no display_name for {lat},{lng}")
            return None
        return name

    @staticmethod
    def _read_body(r: requests.Response, deadline: float) -> Optional[bytes]:
        """Body bytes, or None once past ``deadline`` or MAX_RESPONSE_BYTES."""
        body = bytearray()
        for chunk in r.iter_content(chunk_size=READ_CHUNK_BYTES):
            if time.monotonic() >= deadline:
                return None
            body.extend(chunk)
            if len(body) > MAX_RESPONSE_BYTES:
                return None
        return bytes(body)


# =============================================================================
# CACHES
# =============================================================================

class GeocodeCache:
    """
    In-process, thread-safe place-name cache.

    Unbounded by default. With ``max_entries`` the oldest entry is evicted
    first; with ``ttl_seconds`` entries older than the TTL read as misses.
    """

    def __init__(
        self,
        max_entries: Optional[int] = None,
        ttl_seconds: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.max_entries = max_entries
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: "OrderedDict[str, tuple[str, float]]" = OrderedDict()
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            name, stored_at = entry
            if self.ttl_seconds is not None and self._clock() - stored_at > self.ttl_seconds:
                del self._entries[key]
                return None
            return name

    def set(self, key: str, name: str) -> None:
        with self._lock:
            self._entries[key] = (name, self._clock())
            self._entries.move_to_end(key)
            if self.max_entries is not None:
                while len(self._entries) > self.max_entries:
                    self._entries.popitem(last=False)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


class RedisGeocodeCache:
    """Place-name cache shared between workers through Redis."""

    def __init__(self, ttl_seconds: Optional[int] = None):
        self.ttl_seconds = ttl_seconds

    def get(self, key: str) -> Optional[str]:
        value = get_cache(cache_key(REDIS_KEY_PREFIX, key))
        return value if isinstance(value, str) else None

    def set(self, key: str, name: str) -> None:
        set_cache(cache_key(REDIS_KEY_PREFIX, key), name, self.ttl_seconds)

    def clear(self) -> None:
        invalidate_pattern(f"{REDIS_KEY_PREFIX}:*")


# =============================================================================
# CACHING GEOCODER
# =============================================================================

class CachingReverseGeocoder:
    """Puts a cache in front of a lookup client. Only successful names are cached."""

    def __init__(self, client: PlaceNameLookup, cache=None):
        self.client = client
        self.cache = cache if cache is not None else GeocodeCache()

    def lookup(self, lat: float, lng: float) -> Optional[str]:
        key = geocode_cache_key(lat, lng)
        cached = self.cache.get(key)
        if cached is not None:
            logger.debug(f"Geocode cache hit: {key}")
            return cached

        logger.debug(f"Geocode cache miss: {key}")
        name = self.client.lookup(lat, lng)
        if name is not None:
            self.cache.set(key, name)
        return name


def build_reverse_geocoder() -> CachingReverseGeocoder:
    """Build the application geocoder from settings."""
    client = NominatimClient(
        base_url=settings.OPENSTREETMAP_BASE_URL,
        timeout_ms=settings.OPENSTREETMAP_TIMEOUT_MS,
        user_agent=settings.OPENSTREETMAP_USER_AGENT,
    )
    if settings.GEOCODE_CACHE_BACKEND == "redis":
        cache = RedisGeocodeCache(ttl_seconds=settings.GEOCODE_CACHE_TTL_S)
    else:
        cache = GeocodeCache(
            max_entries=settings.GEOCODE_CACHE_MAX_ENTRIES,
            ttl_seconds=settings.GEOCODE_CACHE_TTL_S,
        )
    logger.info(
        f"Reverse geocoder ready: {client.base_url} "
        f"(timeout {client.timeout_ms} ms, cache {settings.GEOCODE_CACHE_BACKEND})"
    )
    return CachingReverseGeocoder(client, cache)
