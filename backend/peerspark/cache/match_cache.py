"""Short-lived in-memory cache for pod recommendations."""

from __future__ import annotations

import hashlib
import json
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from ..models import LearnerProfile, MatchResult, Pod


def _normalize_user_id(user_id: str) -> str:
    normalized = user_id.strip()
    if not normalized:
        raise ValueError("User id cannot be empty when caching recommendations.")
    return normalized


def _canonical(fields: Dict[str, Any]) -> Dict[str, Any]:
    return {
        key: sorted(value) if isinstance(value, (set, frozenset)) else value
        for key, value in fields.items()
    }


def ranking_fingerprint(profile: LearnerProfile, pods: Sequence[Pod]) -> str:
    """Stable digest of everything a ranking depends on, catalog order included."""
    payload = {
        "profile": _canonical(profile.model_dump()),
        "pods": [_canonical(pod.model_dump()) for pod in pods],
    }
    encoded = json.dumps(payload, sort_keys=True, default=str).encode("utf-8")
    return hashlib.sha256(encoded).hexdigest()


@dataclass
class _MatchEntry:
    results: List[MatchResult]
    cached_at: float


class MatchCache:
    """Process-local recommendation cache.

    Entries are keyed by user, result limit and a fingerprint of the ranking
    inputs, so a changed profile or catalog never reuses an older ranking.
    """

    def __init__(self, ttl_seconds: float = 300, *, clock: Callable[[], float] = time.monotonic) -> None:
        self._ttl = ttl_seconds
        self._clock = clock
        self._entries: Dict[Tuple[str, int, str], _MatchEntry] = {}
        self._lock = threading.RLock()

    @property
    def ttl_seconds(self) -> float:
        return self._ttl

    def configure(self, ttl_seconds: float) -> None:
        with self._lock:
            self._ttl = ttl_seconds

    def get(self, user_id: str, limit: int, fingerprint: str = "") -> Optional[List[MatchResult]]:
        key = (_normalize_user_id(user_id), limit, fingerprint)
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if self._clock() - entry.cached_at >= self._ttl:
                del self._entries[key]
                return None
            return [result.model_copy(deep=True) for result in entry.results]

    def set(self, user_id: str, limit: int, results: List[MatchResult], fingerprint: str = "") -> None:
        key = (_normalize_user_id(user_id), limit, fingerprint)
        with self._lock:
            self._entries[key] = _MatchEntry(
                results=[result.model_copy(deep=True) for result in results],
                cached_at=self._clock(),
            )

    def invalidate(self, user_id: str) -> None:
        normalized = _normalize_user_id(user_id)
        with self._lock:
            for key in [key for key in self._entries if key[0] == normalized]:
                del self._entries[key]

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()


match_cache = MatchCache()

__all__ = ["MatchCache", "match_cache", "ranking_fingerprint"]
