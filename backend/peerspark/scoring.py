"""Shared helpers for tag overlap and percentage scoring."""

from __future__ import annotations

import json
import logging
import math
from typing import AbstractSet, Any, Iterable, List

logger = logging.getLogger(__name__)

ENGAGEMENT_REFERENCE_MEMBERS = 25


def normalize_tags(values: Any) -> List[str]:
    """Return ordered, de-duplicated, lower-cased tags from a loosely typed value.

    Accepts lists, tuples and sets of scalars, bare strings (one tag), and
    strings holding a JSON array. Anything else yields an empty list.
    """
    if values is None:
        return []
    if isinstance(values, str):
        trimmed = values.strip()
        if not trimmed:
            return []
        if (trimmed.startswith("[") and trimmed.endswith("]")) or (
            trimmed.startswith("{") and trimmed.endswith("}")
        ):
            try:
                parsed = json.loads(trimmed)
            except ValueError:
                logger.debug("Treating unparseable tag payload as a single tag: %s", trimmed)
                return [trimmed.lower()]
            return normalize_tags(parsed)
        return [trimmed.lower()]
    if isinstance(values, (list, tuple, set, frozenset)):
        tags: List[str] = []
        for value in values:
            if value is None or isinstance(value, (dict, list, tuple, set, frozenset)):
                continue
            tag = str(value).strip().lower()
            if tag and tag not in tags:
                tags.append(tag)
        return tags
    return []


def overlap_ratio(wanted: AbstractSet[str], offered: AbstractSet[str]) -> float:
    """Share of ``wanted`` covered by ``offered``; 0 when nothing is wanted."""
    if not wanted:
        return 0.0
    return len(wanted & offered) / len(wanted)


def any_overlap(wanted: Iterable[str], offered: AbstractSet[str]) -> float:
    return 1.0 if any(value in offered for value in wanted) else 0.0


def engagement_score(member_count: int, *, reference: int = ENGAGEMENT_REFERENCE_MEMBERS) -> float:
    """Log-scaled activity in [0, 1], saturating at ``reference`` members."""
    members = max(int(member_count or 0), 0)
    ceiling = math.log1p(max(reference, 1))
    return min(1.0, math.log1p(members) / ceiling)


def clamp_unit(value: float) -> float:
    if math.isnan(value):
        return 0.0
    return min(1.0, max(0.0, value))


def to_percentage(fraction: float) -> int:
    """Convert a [0, 1] fraction to an integer percentage, rounding half up."""
    if math.isnan(fraction):
        return 0
    percent = math.floor(fraction * 100 + 0.5)
    return int(min(100, max(0, percent)))


__all__ = [
    "ENGAGEMENT_REFERENCE_MEMBERS",
    "any_overlap",
    "clamp_unit",
    "engagement_score",
    "normalize_tags",
    "overlap_ratio",
    "to_percentage",
]
