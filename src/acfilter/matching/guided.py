# Andy Zhao
"""
Geometry guided matching.

Once a model (e.g. homography H) and its robust precision are known, the
correspondences can be searched again directly in geometry space:

    (i, j) is a candidate  <=>  residual(model, xI[i], xJ[j]) <= precision^2

Two flavours:

(1) Geometry only
    Every candidate (i, j) is kept. A point i can receive several j's.

(2) Geometry + descriptors
    Among the candidates of point i, keep the descriptor nearest neighbour j1
    if it passes the distance ratio test against the second nearest j2:

        d(i, j1) < ratio^2 * d(i, j2)

    d is squared L2 for real valued descriptors and Hamming for binary ones;
    the ratio is squared in both cases. A lone candidate always passes.

Images are processed in chunks of rows of image I so the (chunk x NJ) error
matrices stay small. Descriptors are only compared for geometric candidates.
"""

from __future__ import annotations

import math
import os
from typing import Mapping, Optional, TypeVar

import numpy as np
import numpy.typing as npt

from ..ransac.types import Points2D, FloatArray, ModelFitter, as_points2d
from ..features.describer import DescriberType
from ..features.regions import Regions
from ..features.matches import IndMatches, MatchesPerDescType, empty_matches
from ..camera.scene import PinholeIntrinsics
from ..camera.undistort import undistort_features

M = TypeVar("M")
_GUIDED_DEBUG = os.environ.get("ACFILTER_DEBUG", "0") == "1"

# Bit count of every byte value, for Hamming distances on packed descriptors
_POPCOUNT = np.array([bin(b).count("1") for b in range(256)], dtype=np.uint8)


def _check_threshold(threshold: float) -> float:
    threshold = float(threshold)
    if not (math.isfinite(threshold) and threshold >= 0.0):
        raise ValueError(f"threshold must be finite and >= 0, got {threshold}")
    return threshold


def _stack_matches(blocks: list[IndMatches]) -> IndMatches:
    if not blocks:
        return empty_matches()
    return np.vstack(blocks).astype(np.int64)


# ---------- (1) Geometry only ----------
def guided_matching_geometry(
        fitter: ModelFitter[M],
        model: M,
        xI: Points2D,
        xJ: Points2D,
        threshold: float,
        *,
        chunk_size: int = 512,
) -> IndMatches:
    """
    All (i, j) with squared model error <= threshold.

    threshold:
      squared robust precision (pixels^2)

    Returns:
      (M,2) matches sorted by i, then j.
    """
    xI = as_points2d(xI, name="xI")
    xJ = as_points2d(xJ, name="xJ")
    threshold = _check_threshold(threshold)
    if chunk_size < 1:
        raise ValueError(f"chunk_size must be >= 1, got {chunk_size}")

    if xI.shape[0] == 0 or xJ.shape[0] == 0:
        return empty_matches()

    blocks: list[IndMatches] = []
    for start in range(0, xI.shape[0], chunk_size):
        stop = min(start + chunk_size, xI.shape[0])
        err = fitter.pairwise_residuals(model, xI[start:stop], xJ)

        # np.nonzero walks row-major: rows (i) ascending, then columns (j)
        ii, jj = np.nonzero(err <= threshold)
        if ii.size:
            blocks.append(np.column_stack([ii + start, jj]))

    return _stack_matches(blocks)


# ---------- (2) Geometry + descriptors ----------
def descriptor_distances(
        desc_type: DescriberType,
        desc_i: npt.NDArray,
        desc_j: npt.NDArray,
) -> FloatArray:
    """
    Distance between row k of desc_i and row k of desc_j. Shape (K,).

    Hamming for binary kinds, squared L2 otherwise. Only the candidate pairs
    are compared, never the full (Ni, Nj) grid.
    """
    if desc_i.ndim != 2 or desc_j.ndim != 2 or desc_i.shape != desc_j.shape:
        raise ValueError(f"Descriptor shapes do not match: {desc_i.shape} vs {desc_j.shape}")

    if desc_type.is_binary:
        if desc_i.dtype != np.uint8 or desc_j.dtype != np.uint8:
            raise ValueError(f"{desc_type.value} descriptors must be packed uint8, "
                             f"got {desc_i.dtype} and {desc_j.dtype}")
        xor = np.bitwise_xor(desc_i, desc_j)
        return _POPCOUNT[xor].sum(axis=1, dtype=np.int64).astype(np.float64)

    diff = desc_i.astype(np.float64) - desc_j.astype(np.float64)
    return (diff * diff).sum(axis=1)


def _ratio_test(
        ii: np.ndarray,
        jj: np.ndarray,
        dist: FloatArray,
        ratio_sq: float,
) -> tuple[np.ndarray, np.ndarray]:
    """
    Best candidate of each row i that passes d1 < ratio^2 * d2.

    ii, jj, dist: candidate pairs (row-major order) and their descriptor distances.
    """
    # Group by row, nearest first; stable sort keeps the smallest j on ties
    order = np.lexsort((dist, ii))
    ii, jj, dist = ii[order], jj[order], dist[order]

    starts = np.flatnonzero(np.r_[True, ii[1:] != ii[:-1]])
    counts = np.diff(np.r_[starts, ii.size])

    d1 = dist[starts]
    second = np.minimum(starts + 1, ii.size - 1)
    d2 = np.where(counts >= 2, dist[second], np.inf)

    with np.errstate(invalid="ignore"):
        accept = (counts == 1) | (d1 < ratio_sq * d2)
    return ii[starts][accept], jj[starts][accept]


def guided_matching_descriptors(
        fitter: ModelFitter[M],
        model: M,
        cam_i: Optional[PinholeIntrinsics],
        regions_i: Mapping[DescriberType, Regions],
        cam_j: Optional[PinholeIntrinsics],
        regions_j: Mapping[DescriberType, Regions],
        threshold: float,
        distance_ratio: float,
        *,
        chunk_size: int = 256,
) -> MatchesPerDescType:
    """
    Guided matching over every describer type the two views both carry.

    Positions are undistorted with each view's intrinsics before the
    geometric test. Descriptors are only compared within a describer type.

    Returns:
      {desc_type: (M,2) matches}, one entry per shared describer type.
    """
    threshold = _check_threshold(threshold)
    if not distance_ratio >= 0.0:
        raise ValueError(f"distance_ratio must be >= 0, got {distance_ratio}")
    if chunk_size < 1:
        raise ValueError(f"chunk_size must be >= 1, got {chunk_size}")
    ratio_sq = float(distance_ratio) ** 2

    out: MatchesPerDescType = {}
    for desc_type, reg_i in regions_i.items():
        reg_j = regions_j.get(desc_type)
        if reg_j is None:
            continue
        if reg_i.descriptors is None or reg_j.descriptors is None:
            raise ValueError(f"{desc_type.value} regions carry no descriptors, "
                             f"use a negative distance ratio for geometry-only matching")
        if reg_i.descriptors.shape[1] != reg_j.descriptors.shape[1]:
            raise ValueError(f"{desc_type.value} descriptor lengths differ: "
                             f"{reg_i.descriptors.shape[1]} vs {reg_j.descriptors.shape[1]}")

        xI = undistort_features(cam_i, reg_i.positions)
        xJ = undistort_features(cam_j, reg_j.positions)

        blocks: list[IndMatches] = []
        if xI.shape[0] and xJ.shape[0]:
            for start in range(0, xI.shape[0], chunk_size):
                stop = min(start + chunk_size, xI.shape[0])
                geom_err = fitter.pairwise_residuals(model, xI[start:stop], xJ)
                ci, cj = np.nonzero(geom_err <= threshold)
                if ci.size == 0:
                    continue

                desc_dist = descriptor_distances(
                    desc_type, reg_i.descriptors[ci + start], reg_j.descriptors[cj])
                ii, jj = _ratio_test(ci, cj, desc_dist, ratio_sq)
                if ii.size:
                    blocks.append(np.column_stack([ii + start, jj]))

        out[desc_type] = _stack_matches(blocks)
        if _GUIDED_DEBUG:
            print(f"[GUIDED] {desc_type.value}: {out[desc_type].shape[0]} matches "
                  f"({xI.shape[0]} x {xJ.shape[0]} regions, ratio={distance_ratio})")

    return out
