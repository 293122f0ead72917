"""Pod recommendation scoring and ranking."""

from __future__ import annotations

import hashlib
import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from .documents import coerce_pod, coerce_profile
from .models import LearnerProfile, MatchResult, MatchVariant, Pod
from .scoring import (
    ENGAGEMENT_REFERENCE_MEMBERS,
    any_overlap,
    clamp_unit,
    engagement_score,
    overlap_ratio,
    to_percentage,
)

logger = logging.getLogger(__name__)


TOPIC_WEIGHT = 0.40
GOAL_WEIGHT = 0.25
SESSION_TYPE_WEIGHT = 0.15
AVAILABILITY_WEIGHT = 0.10
ENGAGEMENT_WEIGHT = 0.10
NEUTRAL_TOPIC_CREDIT = 0.5
DEFAULT_MATCH_LIMIT = 5
DEFAULT_JOIN_LIMIT = 3
MATCH_VARIANTS: Tuple[MatchVariant, ...] = ("auto-join", "prompted")


@dataclass(frozen=True)
class FitBreakdown:
    """Per-axis fit values, each in [0, 1] before weighting."""

    topic: float
    goals: float
    session_type: float
    availability: float
    engagement: float

    @property
    def weighted_total(self) -> float:
        return (
            self.topic * TOPIC_WEIGHT
            + self.goals * GOAL_WEIGHT
            + self.session_type * SESSION_TYPE_WEIGHT
            + self.availability * AVAILABILITY_WEIGHT
            + self.engagement * ENGAGEMENT_WEIGHT
        )

    @property
    def score(self) -> int:
        return to_percentage(self.weighted_total)


class PodMatcher:
    """Scores pods against a learner profile and ranks the catalog."""

    def __init__(
        self,
        *,
        engagement_reference: int = ENGAGEMENT_REFERENCE_MEMBERS,
        neutral_topic_credit: float = NEUTRAL_TOPIC_CREDIT,
    ) -> None:
        self._engagement_reference = max(engagement_reference, 1)
        self._neutral_topic_credit = clamp_unit(neutral_topic_credit)

    def breakdown(self, profile: LearnerProfile, pod: Pod) -> FitBreakdown:
        profile_topics = profile.topic_tags
        if profile_topics:
            topic = overlap_ratio(profile_topics, pod.topic_tags)
        else:
            topic = self._neutral_topic_credit
        return FitBreakdown(
            topic=clamp_unit(topic),
            goals=clamp_unit(overlap_ratio(profile.learning_goals, pod.ideal_learner_types)),
            session_type=any_overlap(profile.preferred_session_types, pod.session_types),
            availability=clamp_unit(overlap_ratio(profile.availability, pod.common_availability)),
            engagement=engagement_score(pod.member_count, reference=self._engagement_reference),
        )

    def score(self, profile: LearnerProfile, pod: Pod) -> int:
        return self.breakdown(profile, pod).score

    def rank(self, profile: Any, pods: Sequence[Any], limit: Optional[int] = DEFAULT_MATCH_LIMIT) -> List[MatchResult]:
        """Rank ``pods`` for ``profile``; ties keep their catalog order.

        ``limit=None`` ranks the whole catalog and negative limits act as zero.
        """
        cap = len(pods) if limit is None else max(int(limit), 0)
        if cap == 0 or not pods:
            return []
        learner = coerce_profile(profile)
        scored = [MatchResult(pod=pod, score=self.score(learner, pod)) for pod in map(coerce_pod, pods)]
        ranked = sorted(scored, key=lambda result: result.score, reverse=True)
        logger.debug(
            "Ranked %d pods (limit=%d); top score %s",
            len(ranked),
            cap,
            ranked[0].score if ranked else None,
        )
        return ranked[:cap]

    def score_map(self, profile: Any, pods: Sequence[Any]) -> Dict[str, int]:
        """Scores keyed by pod id for catalog browsing.

        When two records share an id the first one in catalog order wins.
        """
        learner = coerce_profile(profile)
        scores: Dict[str, int] = {}
        for pod in map(coerce_pod, pods):
            if pod.id and pod.id not in scores:
                scores[pod.id] = self.score(learner, pod)
        return scores


def select_join_targets(
    ranked: Iterable[MatchResult],
    existing_pod_ids: Iterable[str],
    join_limit: int = DEFAULT_JOIN_LIMIT,
) -> List[Pod]:
    """Recommended pods the learner has not joined yet, in rank order."""
    existing = {pod_id for pod_id in existing_pod_ids if pod_id}
    targets: List[Pod] = []
    for result in ranked:
        if len(targets) >= max(join_limit, 0):
            break
        if result.pod.id and result.pod.id not in existing:
            targets.append(result.pod)
    return targets


def assign_match_variant(user_id: str) -> MatchVariant:
    """Sticky experiment arm for a learner, derived from the user id alone."""
    digest = hashlib.sha256(user_id.strip().encode("utf-8")).digest()
    return MATCH_VARIANTS[digest[0] % len(MATCH_VARIANTS)]


matcher = PodMatcher()


def calculate_pod_fit_score(profile: Any, pod: Any) -> int:
    return matcher.score(coerce_profile(profile), coerce_pod(pod))


def rank_pods_for_user(profile: Any, pods: Sequence[Any], limit: Optional[int] = DEFAULT_MATCH_LIMIT) -> List[MatchResult]:
    return matcher.rank(profile, pods, limit)


__all__ = [
    "DEFAULT_JOIN_LIMIT",
    "DEFAULT_MATCH_LIMIT",
    "FitBreakdown",
    "MATCH_VARIANTS",
    "PodMatcher",
    "assign_match_variant",
    "calculate_pod_fit_score",
    "matcher",
    "rank_pods_for_user",
    "select_join_targets",
]
