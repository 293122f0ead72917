"""PeerSpark pod matching and daily study plan backend."""

from .pod_matching import PodMatcher, calculate_pod_fit_score, rank_pods_for_user
from .study_plan import StudyPlanBuilder, build_study_plan, merge_plan_statuses

__all__ = [
    "PodMatcher",
    "StudyPlanBuilder",
    "build_study_plan",
    "calculate_pod_fit_score",
    "merge_plan_statuses",
    "rank_pods_for_user",
]
