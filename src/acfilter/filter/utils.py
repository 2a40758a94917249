# Andy Zhao
"""
Glue between per-describer matches and the flat point matrices AC-RANSAC works on.

Putative matches of describer types d_0, d_1, ... are stacked in that order:

    rows [0, n_0)            -> matches of d_0
    rows [n_0, n_0 + n_1)    -> matches of d_1
    ...

so an inlier row index maps back to (describer type, match) by its block.
"""

from __future__ import annotations

from typing import Mapping, Sequence

import numpy as np

from ..ransac.types import Points2D, IndexSet
from ..camera.scene import Scene
from ..camera.undistort import undistort_features
from ..features.describer import DescriberType
from ..features.regions import RegionsPerView, Pair
from ..features.matches import IndMatches, MatchesPerDescType, as_ind_matches, empty_matches


def _putative_block(putative: Mapping[DescriberType, IndMatches], desc_type: DescriberType) -> IndMatches:
    matches = putative.get(desc_type)
    return empty_matches() if matches is None else as_ind_matches(matches)


def matches_pair_to_mat(
        pair: Pair,
        putative: Mapping[DescriberType, IndMatches],
        scene: Scene,
        regions: RegionsPerView,
        desc_types: Sequence[DescriberType],
) -> tuple[Points2D, Points2D]:
    """
    Undistorted positions of the putative matches as two (N,2) arrays.

    Row k of xI and row k of xJ are the two ends of the k-th match.
    """
    view_i, view_j = pair
    cam_i = scene.intrinsic_for(view_i)
    cam_j = scene.intrinsic_for(view_j)

    blocks_i: list[Points2D] = []
    blocks_j: list[Points2D] = []
    for desc_type in desc_types:
        matches = _putative_block(putative, desc_type)
        if matches.shape[0] == 0:
            continue

        pos_i = regions.regions(view_i, desc_type).positions
        pos_j = regions.regions(view_j, desc_type).positions
        if (matches.min() < 0 or matches[:, 0].max() >= pos_i.shape[0]
                or matches[:, 1].max() >= pos_j.shape[0]):
            raise ValueError(f"{desc_type.value} putative matches index outside "
                             f"{pos_i.shape[0]} x {pos_j.shape[0]} regions")

        blocks_i.append(undistort_features(cam_i, pos_i[matches[:, 0]]))
        blocks_j.append(undistort_features(cam_j, pos_j[matches[:, 1]]))

    if not blocks_i:
        empty = np.zeros((0, 2), dtype=np.float64)
        return empty, empty.copy()
    return np.vstack(blocks_i), np.vstack(blocks_j)


def copy_inlier_matches(
        inliers: IndexSet,
        putative: Mapping[DescriberType, IndMatches],
        desc_types: Sequence[DescriberType],
) -> MatchesPerDescType:
    """
    Split flat inlier row indices back into per-describer matches.
    Describer types without inliers are left out.
    """
    inliers = np.asarray(inliers, dtype=np.int64)
    out: MatchesPerDescType = {}

    offset = 0
    for desc_type in desc_types:
        matches = _putative_block(putative, desc_type)
        n = matches.shape[0]
        if n == 0:
            continue

        in_block = inliers[(inliers >= offset) & (inliers < offset + n)]
        if in_block.size:
            out[desc_type] = matches[in_block - offset]
        offset += n

    return out
