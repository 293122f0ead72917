"""In-memory caches shared across backend services."""

from .match_cache import MatchCache, match_cache, ranking_fingerprint

__all__ = ["MatchCache", "match_cache", "ranking_fingerprint"]
