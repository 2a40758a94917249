# Andy Zhao
"""
Utilities for cleaning correspondence sets after guided matching.

Guided matching compares positions only, so several features detected at the
same pixel (e.g. one keypoint with multiple orientations) produce matches that
are the same correspondence seen twice. Remove:
- matches whose (xI, yI, xJ, yJ) pixel coordinates repeat an earlier match
"""

from __future__ import annotations

import numpy as np

from ..ransac.types import Points2D, BoolArray, as_points2d
from ..features.matches import IndMatches, as_ind_matches


def _check_indices(matches: IndMatches, n_i: int, n_j: int) -> None:
    if matches.shape[0] == 0:
        return
    if matches.min() < 0 or matches[:, 0].max() >= n_i or matches[:, 1].max() >= n_j:
        raise ValueError(f"Match indices out of range for {n_i} x {n_j} features")


def unique_coordinates_mask(
    matches: IndMatches,
    positions_i: Points2D,
    positions_j: Points2D,
) -> BoolArray:
    """
    True for the first match of every distinct coordinate quadruple.

    Coordinates are compared in float32, the precision features are stored with.
    """
    matches = as_ind_matches(matches)
    positions_i = as_points2d(positions_i, name="positions_i")
    positions_j = as_points2d(positions_j, name="positions_j")
    _check_indices(matches, positions_i.shape[0], positions_j.shape[0])

    mask = np.zeros((matches.shape[0],), dtype=bool)
    if matches.shape[0] == 0:
        return mask

    coords = np.hstack([
        positions_i[matches[:, 0]],
        positions_j[matches[:, 1]],
    ]).astype(np.float32)

    # return_index gives the first occurrence of each unique row
    _, first = np.unique(coords, axis=0, return_index=True)
    mask[first] = True
    return mask


def deduplicate_matches(
    matches: IndMatches,
    positions_i: Points2D,
    positions_j: Points2D,
) -> IndMatches:
    """
    Drop matches that repeat the pixel coordinates of an earlier match.
    Order of the kept matches is preserved, so the pass is idempotent.
    """
    matches = as_ind_matches(matches)
    mask = unique_coordinates_mask(matches, positions_i, positions_j)
    return matches[mask]
