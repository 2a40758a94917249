# Andy Zhao
"""
A contrario geometric filter for one image pair.

Given putative matches between views I and J:
  a) putative matches -> undistorted point matrices (xI, xJ)
  b) AC-RANSAC(kernel(xI, xJ)) -> model, inliers, robust precision
  c) inlier rows -> inlier matches per describer type
  d) (optional) guided matching with the model and its robust precision

This class is STATEFUL, with two states:

    "unestimated" --robust_estimation() succeeds--> "estimated"

Guided matching needs an "estimated" filter, or an explicit successful
EstimationResult. Use one filter per image pair.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal, Mapping, Optional
import math
import os

import numpy as np

from ..ransac.types import Mat3x3, ModelFitter
from ..ransac.homography_fitter import HomographyFitter
from ..ransac.kernel import ACKernelAdaptor
from ..ransac.core import ACRansacParams, ac_ransac
from ..camera.scene import Scene
from ..camera.undistort import undistort_features
from ..features.describer import DescriberType
from ..features.regions import RegionsPerView, Pair
from ..features.matches import IndMatches, MatchesPerDescType, count_matches
from ..matching.guided import guided_matching_geometry, guided_matching_descriptors
from ..matching.dedup import deduplicate_matches
from .results import (
    FilterStatus, EstimationResult, GuidedMatchResult, failed_estimation,
)
from .utils import matches_pair_to_mat, copy_inlier_matches

_FILTER_DEBUG = os.environ.get("ACFILTER_DEBUG", "0") == "1"

FilterState = Literal["unestimated", "estimated"]


@dataclass
class GeometricFilterAC:
    """
    upper_bound_precision:
      - Largest inlier error in pixels AC-RANSAC may pick. math.inf = no cap.
    max_iters:
      - AC-RANSAC iteration budget.
    point_to_line:
      - False: point-to-point probability model (homography default)
      - True: point-to-line probability model
    fitter:
      - Model family (HomographyFitter by default, AffineFitter, ...).
    seed / rng:
      - Sampling randomness. rng wins over seed when given.
    max_stall_iters:
      - Optional early exit, see ACRansacParams.
    min_inlier_coef:
      - A model needs more than min_inlier_coef * fitter.min_samples inliers.
    """
    upper_bound_precision: float = math.inf
    max_iters: int = 1024
    point_to_line: bool = False
    fitter: ModelFitter[Mat3x3] = field(default_factory=HomographyFitter)
    seed: int = 0
    rng: Optional[np.random.Generator] = None
    max_stall_iters: Optional[int] = None
    min_inlier_coef: float = 2.5

    # ---------- Stored data ----------
    model: Mat3x3 = field(init=False)
    robust_precision: float = field(init=False, default=math.inf)
    _estimate: Optional[EstimationResult] = field(init=False, default=None, repr=False)
    _params: ACRansacParams = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self.model = np.eye(3, dtype=np.float64)
        self._params = ACRansacParams(
            max_iters=self.max_iters,
            upper_bound_precision=self.upper_bound_precision,
            min_inlier_coef=self.min_inlier_coef,
            max_stall_iters=self.max_stall_iters,
        )

    @property
    def state(self) -> FilterState:
        return "estimated" if self._estimate is not None else "unestimated"

    @property
    def estimate(self) -> Optional[EstimationResult]:
        """
        Last successful estimation, None while unestimated.
        """
        return self._estimate

    def robust_estimation(
            self,
            scene: Scene,
            regions: RegionsPerView,
            pair: Pair,
            putative: Mapping[DescriberType, IndMatches],
    ) -> EstimationResult:
        """
        Estimate the model relating the two views and keep the matches that agree with it.

        Returns:
          EstimationResult; status OK moves the filter to "estimated".
        """
        if self._estimate is not None:
            raise RuntimeError("robust_estimation already succeeded on this filter; "
                               "create a new GeometricFilterAC for each image pair.")

        view_i, view_j = pair
        desc_types = regions.common_desc_types(pair)
        if not desc_types:
            if _FILTER_DEBUG:
                print(f"[FILTER] pair {pair}: no common describer types")
            return failed_estimation(FilterStatus.INPUT_EMPTY, self.model)

        xI, xJ = matches_pair_to_mat(pair, putative, scene, regions, desc_types)
        num_putative = int(xI.shape[0])
        if num_putative == 0:
            if _FILTER_DEBUG:
                print(f"[FILTER] pair {pair}: no putative matches")
            return failed_estimation(FilterStatus.INPUT_EMPTY, self.model)

        vi = scene.view(view_i)
        vj = scene.view(view_j)
        kernel = ACKernelAdaptor(
            self.fitter,
            xI, vi.width, vi.height,
            xJ, vj.width, vj.height,
            point_to_line=self.point_to_line,
        )

        res = ac_ransac(kernel, params=self._params, rng=self.rng, seed=self.seed)
        if res is None:
            if _FILTER_DEBUG:
                print(f"[FILTER] pair {pair}: estimation failed on {num_putative} putative matches")
            return failed_estimation(
                FilterStatus.INSUFFICIENT_INLIERS, self.model, num_putative=num_putative)

        self.model = np.array(res.model, dtype=np.float64, copy=True)
        self.robust_precision = res.precision

        estimate = EstimationResult(
            status=FilterStatus.OK,
            model=self.model.copy(),
            inliers=copy_inlier_matches(res.inliers, putative, desc_types),
            robust_precision=res.precision,
            residual_threshold=res.residual_threshold,
            nfa=res.nfa,
            num_putative=num_putative,
            iterations=res.iterations,
        )
        self._estimate = estimate

        if _FILTER_DEBUG:
            print(f"[FILTER] pair {pair}: {estimate.num_inliers}/{num_putative} inliers, "
                  f"precision={res.precision:.3f}px, nfa={res.nfa:.2f}")
        return estimate

    def guided_matching(
            self,
            scene: Scene,
            regions: RegionsPerView,
            pair: Pair,
            distance_ratio: float,
            estimate: Optional[EstimationResult] = None,
    ) -> GuidedMatchResult:
        """
        Search correspondences again using the estimated model.

        distance_ratio < 0:
          geometry only, per common describer type, duplicates at identical
          pixel coordinates removed
        distance_ratio >= 0:
          geometry + descriptor ratio test over all regions of both views

        estimate:
          successful EstimationResult to use; defaults to this filter's own.
        """
        est = estimate if estimate is not None else self._estimate
        if est is None or not est.ok:
            if _FILTER_DEBUG:
                print(f"[FILTER] pair {pair}: guided matching needs a successful estimation")
            return GuidedMatchResult(status=FilterStatus.PRECONDITION_UNMET)

        view_i, view_j = pair
        desc_types = regions.common_desc_types(pair)
        if not desc_types:
            return GuidedMatchResult(status=FilterStatus.INPUT_EMPTY)

        cam_i = scene.intrinsic_for(view_i)
        cam_j = scene.intrinsic_for(view_j)

        matches: MatchesPerDescType = {}
        if distance_ratio < 0:
            for desc_type in desc_types:
                pos_i = regions.regions(view_i, desc_type).positions
                pos_j = regions.regions(view_j, desc_type).positions

                local = guided_matching_geometry(
                    self.fitter,
                    est.model,
                    undistort_features(cam_i, pos_i),
                    undistort_features(cam_j, pos_j),
                    est.residual_threshold,
                )
                # Compare raw pixel positions, not indices
                matches[desc_type] = deduplicate_matches(local, pos_i, pos_j)
        else:
            matches = guided_matching_descriptors(
                self.fitter,
                est.model,
                cam_i, regions.all_regions(view_i),
                cam_j, regions.all_regions(view_j),
                est.residual_threshold,
                distance_ratio,
            )

        total = count_matches(matches)
        if _FILTER_DEBUG:
            print(f"[FILTER] pair {pair}: guided matching found {total} matches")
        if total == 0:
            return GuidedMatchResult(status=FilterStatus.NO_MATCHES)
        return GuidedMatchResult(status=FilterStatus.OK, matches=matches)
