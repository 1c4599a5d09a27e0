"""
Version parsing, comparison and "latest" release resolution.
"""

import json
import re
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Callable, Dict, Optional, Tuple

import requests
from pydantic import BaseModel

from .logging_config import get_logger

logger = get_logger(__name__)

ENDOFLIFE_API_URL = "https://endoflife.date/api/{product}.json"

# Last known latest releases, used when the lookup fails and no usable cache exists
LAST_KNOWN_LATEST: Dict[str, str] = {
    "macos": "15.1",
    "ubuntu": "24.10",
    "fedora": "41",
    "debian": "12",
    "centos": "9",
    "rhel": "9.5",
    "windows": "10.0.26100",
}

DEFAULT_TTL = timedelta(hours=24)
DEFAULT_MAX_STALE = timedelta(days=30)

_VERSION_RE = re.compile(r"^\d+(\.\d+)*$")


def parse_version(version: str) -> Tuple[int, ...]:
    """Split a dotted version into integers; non-numeric parts count as 0."""
    parts = []
    for part in version.strip().split("."):
        match = re.match(r"\d+", part)
        parts.append(int(match.group()) if match else 0)
    return tuple(parts)


def compare_versions(current: str, target: str) -> int:
    """Return 1, 0 or -1 as ``current`` is newer, equal to or older than ``target``."""
    current_parts = list(parse_version(current))
    target_parts = list(parse_version(target))

    length = max(len(current_parts), len(target_parts))
    current_parts += [0] * (length - len(current_parts))
    target_parts += [0] * (length - len(target_parts))

    for c, t in zip(current_parts, target_parts):
        if c > t:
            return 1
        if c < t:
            return -1
    return 0


def is_valid_version(version: Optional[str]) -> bool:
    return bool(version) and bool(_VERSION_RE.match(version.strip()))


def fetch_latest_from_endoflife(product: str, timeout: float = 10.0) -> str:
    """Query endoflife.date for the newest release of ``product``."""
    response = requests.get(ENDOFLIFE_API_URL.format(product=product), timeout=timeout)
    response.raise_for_status()
    cycles = response.json()

    candidates = [
        str(cycle.get("latest") or cycle.get("cycle"))
        for cycle in cycles
        if isinstance(cycle, dict) and (cycle.get("latest") or cycle.get("cycle"))
    ]
    candidates = [c for c in candidates if is_valid_version(c)]
    if not candidates:
        raise ValueError(f"No usable release information for {product}")

    latest = candidates[0]
    for candidate in candidates[1:]:
        if compare_versions(candidate, latest) > 0:
            latest = candidate
    return latest


def _as_utc(value: datetime) -> datetime:
    """Cached timestamps without an offset are taken as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class ResolvedVersion(BaseModel):
    """Outcome of a latest-version lookup."""

    version: str
    source: str  # "cache", "network", "stale-cache", "fallback"
    fetched_at: Optional[datetime] = None


class LatestVersionResolver:
    """
    Resolves the latest released version of an operating system.

    Policy:
      * a cached value younger than ``ttl`` is returned without a lookup;
      * otherwise the lookup runs; success refreshes the cache;
      * when the lookup fails, a cached value younger than ``max_stale`` is
        used, else the built-in last known value for the product.
    """

    def __init__(
        self,
        product: str,
        fallback: Optional[str] = None,
        fetcher: Optional[Callable[[str], str]] = None,
        ttl: timedelta = DEFAULT_TTL,
        max_stale: timedelta = DEFAULT_MAX_STALE,
        cache_path: Optional[Path] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.product = product
        self.fallback = fallback or LAST_KNOWN_LATEST.get(product, "0")
        self.fetcher = fetcher or fetch_latest_from_endoflife
        self.ttl = ttl
        self.max_stale = max_stale
        self.cache_path = cache_path
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._cached: Optional[ResolvedVersion] = None

    def resolve(self) -> ResolvedVersion:
        now = self._clock()
        cached = self._load_cache()

        if cached and cached.fetched_at and now - cached.fetched_at <= self.ttl:
            return ResolvedVersion(
                version=cached.version, source="cache", fetched_at=cached.fetched_at
            )

        try:
            version = self.fetcher(self.product)
            if not is_valid_version(version):
                raise ValueError(f"Invalid version string: {version!r}")
        except (requests.RequestException, ValueError, KeyError, TypeError) as e:
            logger.warning("Latest %s version lookup failed: %s", self.product, e)
            if cached and cached.fetched_at and now - cached.fetched_at <= self.max_stale:
                return ResolvedVersion(
                    version=cached.version,
                    source="stale-cache",
                    fetched_at=cached.fetched_at,
                )
            return ResolvedVersion(version=self.fallback, source="fallback")

        resolved = ResolvedVersion(version=version, source="network", fetched_at=now)
        self._store_cache(resolved)
        logger.debug("Latest %s version resolved to %s", self.product, version)
        return resolved

    def _load_cache(self) -> Optional[ResolvedVersion]:
        if self._cached is not None or self.cache_path is None:
            return self._cached
        if not self.cache_path.exists():
            return None

        try:
            data = json.loads(self.cache_path.read_text(encoding="utf-8"))
            entry = data.get(self.product) if isinstance(data, dict) else None
            if isinstance(entry, dict):
                cached = ResolvedVersion(source="cache", **entry)
                if cached.fetched_at is not None:
                    cached.fetched_at = _as_utc(cached.fetched_at)
                self._cached = cached
        except (OSError, ValueError, TypeError) as e:
            logger.debug("Ignoring unreadable version cache %s: %s", self.cache_path, e)
        return self._cached

    def _store_cache(self, resolved: ResolvedVersion) -> None:
        self._cached = resolved
        if self.cache_path is None:
            return

        try:
            data = {}
            if self.cache_path.exists():
                data = json.loads(self.cache_path.read_text(encoding="utf-8"))
            if not isinstance(data, dict):
                data = {}
            data[self.product] = {
                "version": resolved.version,
                "fetched_at": resolved.fetched_at.isoformat(),
            }
            self.cache_path.parent.mkdir(parents=True, exist_ok=True)
            self.cache_path.write_text(json.dumps(data, indent=2), encoding="utf-8")
        except (OSError, ValueError) as e:
            logger.debug("Could not persist version cache %s: %s", self.cache_path, e)
