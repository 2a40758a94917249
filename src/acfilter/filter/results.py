# Andy Zhao
"""
Typed outcomes of the geometric filter.

Expected data conditions (nothing to match, too few inliers, ...) are not
errors: they come back as a FilterStatus on the result.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum

import numpy as np

from ..ransac.types import Mat3x3
from ..features.matches import MatchesPerDescType, count_matches


class FilterStatus(Enum):
    OK = "ok"
    INPUT_EMPTY = "input_empty"                     # no common describer types / no putative matches
    INSUFFICIENT_INLIERS = "insufficient_inliers"   # no meaningful, well-supported model
    PRECONDITION_UNMET = "precondition_unmet"       # guided matching without a successful estimate
    NO_MATCHES = "no_matches"                       # guided matching found nothing


@dataclass(frozen=True)
class EstimationResult:
    """
    status:
      OK when a model was accepted.
    model:
      fitted model (the filter's default model when not OK)
    inliers:
      inlier matches per describer type (empty when not OK)
    robust_precision:
      inlier threshold in pixels picked by AC-RANSAC (inf when not OK)
    residual_threshold:
      robust_precision^2, the squared error bound used by guided matching
    nfa:
      log10 number of false alarms of the model
    """
    status: FilterStatus
    model: Mat3x3
    inliers: MatchesPerDescType = field(default_factory=dict)
    robust_precision: float = math.inf
    residual_threshold: float = math.inf
    nfa: float = math.inf
    num_putative: int = 0
    iterations: int = 0

    @property
    def ok(self) -> bool:
        return self.status is FilterStatus.OK and math.isfinite(self.robust_precision)

    @property
    def num_inliers(self) -> int:
        return count_matches(self.inliers)


@dataclass(frozen=True)
class GuidedMatchResult:
    status: FilterStatus
    matches: MatchesPerDescType = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.status is FilterStatus.OK

    @property
    def num_matches(self) -> int:
        return count_matches(self.matches)


def failed_estimation(status: FilterStatus, model: Mat3x3, *, num_putative: int = 0) -> EstimationResult:
    return EstimationResult(
        status=status,
        model=np.array(model, dtype=np.float64, copy=True),
        num_putative=num_putative,
    )
