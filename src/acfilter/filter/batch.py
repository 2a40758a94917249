# Andy Zhao
"""
Filter many image pairs concurrently.

Each pair gets its own GeometricFilterAC and its own random generator seeded
from (seed, view_i, view_j), so results do not depend on scheduling or on
which other pairs are in the batch. Scene and regions are only read.

A pair that fails (no inliers, no guided matches, ...) is reported in its
PairFilterReport and does not affect the other pairs.
"""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Callable, Dict, Mapping, Optional
import math

import numpy as np

from ..ransac.types import Mat3x3, ModelFitter
from ..ransac.homography_fitter import HomographyFitter
from ..camera.scene import Scene
from ..features.describer import DescriberType
from ..features.regions import RegionsPerView, Pair
from ..features.matches import IndMatches, MatchesPerDescType
from .geometric_filter import GeometricFilterAC
from .results import EstimationResult, GuidedMatchResult


@dataclass(frozen=True)
class BatchFilterConfig:
    """
    Settings shared by every pair of a batch.

    guided_distance_ratio:
      - None: skip guided matching
      - < 0: geometry-only guided matching
      - >= 0: geometry + descriptor ratio test
    max_workers:
      - Thread pool size (None lets concurrent.futures decide).
    """
    upper_bound_precision: float = math.inf
    max_iters: int = 1024
    point_to_line: bool = False
    max_stall_iters: Optional[int] = None
    min_inlier_coef: float = 2.5
    guided_distance_ratio: Optional[float] = None
    seed: int = 0
    max_workers: Optional[int] = None


@dataclass(frozen=True)
class PairFilterReport:
    pair: Pair
    estimation: EstimationResult
    guided: Optional[GuidedMatchResult] = None

    @property
    def ok(self) -> bool:
        return self.estimation.ok

    @property
    def matches(self) -> MatchesPerDescType:
        """
        Best available matches: guided if it succeeded, else the inliers.
        """
        if self.guided is not None and self.guided.ok:
            return self.guided.matches
        return self.estimation.inliers


def pair_rng(seed: int, pair: Pair) -> np.random.Generator:
    view_i, view_j = pair
    return np.random.default_rng([int(seed), int(view_i), int(view_j)])


def filter_pair(
        scene: Scene,
        regions: RegionsPerView,
        pair: Pair,
        putative: Mapping[DescriberType, IndMatches],
        config: BatchFilterConfig = BatchFilterConfig(),
        *,
        fitter_factory: Callable[[], ModelFitter[Mat3x3]] = HomographyFitter,
) -> PairFilterReport:
    """
    Estimation (+ optional guided matching) for a single pair.
    """
    geo_filter = GeometricFilterAC(
        upper_bound_precision=config.upper_bound_precision,
        max_iters=config.max_iters,
        point_to_line=config.point_to_line,
        fitter=fitter_factory(),
        rng=pair_rng(config.seed, pair),
        max_stall_iters=config.max_stall_iters,
        min_inlier_coef=config.min_inlier_coef,
    )

    estimation = geo_filter.robust_estimation(scene, regions, pair, putative)

    guided = None
    if config.guided_distance_ratio is not None and estimation.ok:
        guided = geo_filter.guided_matching(scene, regions, pair, config.guided_distance_ratio)

    return PairFilterReport(pair=pair, estimation=estimation, guided=guided)


def filter_pairs(
        scene: Scene,
        regions: RegionsPerView,
        putative_per_pair: Mapping[Pair, Mapping[DescriberType, IndMatches]],
        config: BatchFilterConfig = BatchFilterConfig(),
        *,
        fitter_factory: Callable[[], ModelFitter[Mat3x3]] = HomographyFitter,
) -> Dict[Pair, PairFilterReport]:
    """
    Run filter_pair on every pair using a thread pool.

    Returns:
      {pair: report}, in the order of putative_per_pair.
    """
    if not putative_per_pair:
        return {}

    with ThreadPoolExecutor(max_workers=config.max_workers) as pool:
        futures = {
            pair: pool.submit(
                filter_pair, scene, regions, pair, putative, config,
                fitter_factory=fitter_factory,
            )
            for pair, putative in putative_per_pair.items()
        }
        return {pair: fut.result() for pair, fut in futures.items()}
