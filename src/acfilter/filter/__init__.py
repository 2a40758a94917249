"""
Filter package: per-pair a contrario geometric filter and batch driver.
"""
from .results import FilterStatus, EstimationResult, GuidedMatchResult
from .utils import matches_pair_to_mat, copy_inlier_matches
from .geometric_filter import GeometricFilterAC
from .batch import BatchFilterConfig, PairFilterReport, filter_pair, filter_pairs, pair_rng

__all__ = [
    "FilterStatus", "EstimationResult", "GuidedMatchResult",
    "matches_pair_to_mat", "copy_inlier_matches",
    "GeometricFilterAC",
    "BatchFilterConfig", "PairFilterReport", "filter_pair", "filter_pairs", "pair_rng",
]
