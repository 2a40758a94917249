# Andy Zhao
"""
Homography model utilities (3x3 projective form).

We estimate a homography H such that:

    [x', y', w']^T  ~  H @ [x, y, 1]^T,    (u, v) = (x'/w', y'/w')

H has 9 entries but only 8 degrees of freedom (defined up to scale),
so 4 point correspondences in general position determine it.

Solver: normalized Direct Linear Transform (Hartley & Zisserman, alg. 4.2).
Each correspondence (x, y) -> (u, v) gives two rows of A h = 0:

    [-x, -y, -1,  0,  0,  0, u*x, u*y, u]
    [ 0,  0,  0, -x, -y, -1, v*x, v*y, v]

h is the right singular vector of A with the smallest singular value.
"""

from __future__ import annotations

from itertools import combinations
from typing import Optional

import numpy as np

from .types import Points2D, Mat3x3, FloatArray, is_valid_mat3x3


# ---------- Degeneracy Check Helpers ----------
def _triangle_area(p1: np.ndarray, p2: np.ndarray, p3: np.ndarray) -> float:
    """
    Return 2x the triangle area formed by (p1, p2, p3):

        area2 = |(p2 - p1) x (p3 - p1)|
    """
    u = p2 - p1
    v = p3 - p1
    return float(abs(u[0] * v[1] - u[1] * v[0]))


def has_collinear_triplet(pts: Points2D, eps_area: float = 1e-6) -> bool:
    """
    True if any 3 of the given points are (nearly) collinear.

    A homography cannot be recovered from 4 points when 3 of them lie on a line.
    """
    for a, b, c in combinations(range(pts.shape[0]), 3):
        if _triangle_area(pts[a], pts[b], pts[c]) < eps_area:
            return True
    return False


def _hartley_normalizer(pts: Points2D) -> Optional[Mat3x3]:
    """
    Similarity that moves the centroid to the origin and makes the mean
    distance to it sqrt(2). Returns None when all points coincide.
    """
    centroid = pts.mean(axis=0)
    mean_dist = float(np.mean(np.linalg.norm(pts - centroid, axis=1)))
    if mean_dist < 1e-12:
        return None

    s = np.sqrt(2.0) / mean_dist
    return np.array(
        [
            [s, 0.0, -s * centroid[0]],
            [0.0, s, -s * centroid[1]],
            [0.0, 0.0, 1.0],
        ],
        dtype=np.float64,
    )


def _normalize_scale(H: Mat3x3) -> Mat3x3:
    """
    Fix the projective scale: H[2,2] = 1 when possible, unit Frobenius norm otherwise.
    """
    if abs(H[2, 2]) > 1e-12:
        return H / H[2, 2]
    return H / np.linalg.norm(H)


# ---------- Homography Fitting ----------
def fit_homography_dlt(pts0: Points2D, pts1: Points2D) -> Optional[Mat3x3]:
    """
    Fit a homography pts0 -> pts1 from N >= 4 correspondences (normalized DLT).

    With exactly 4 points this is the minimal solver; with more it is the
    algebraic least-squares solution.

    Returns:
      3x3 homography with H[2,2] = 1 (when finite), or None if the solve fails.
    """
    if pts0.shape != pts1.shape:
        raise ValueError(f"pts0 and pts1 must have same shape, got {pts0.shape} vs {pts1.shape}")
    if pts0.ndim != 2 or pts0.shape[1] != 2:
        raise ValueError(f"Expected pts shape (N,2), got {pts0.shape}")
    if pts0.shape[0] < 4:
        return None

    T0 = _hartley_normalizer(pts0)
    T1 = _hartley_normalizer(pts1)
    if T0 is None or T1 is None:
        return None

    # Apply the normalizers (both are similarities, w stays 1)
    p0 = pts0 * T0[0, 0] + T0[:2, 2]
    p1 = pts1 * T1[0, 0] + T1[:2, 2]

    n = p0.shape[0]
    x, y = p0[:, 0], p0[:, 1]
    u, v = p1[:, 0], p1[:, 1]
    zeros = np.zeros(n, dtype=np.float64)
    ones = np.ones(n, dtype=np.float64)

    A = np.zeros((2 * n, 9), dtype=np.float64)
    A[0::2] = np.column_stack([-x, -y, -ones, zeros, zeros, zeros, u * x, u * y, u])
    A[1::2] = np.column_stack([zeros, zeros, zeros, -x, -y, -ones, v * x, v * y, v])

    try:
        _, singular_vals, Vt = np.linalg.svd(A)
    except np.linalg.LinAlgError:
        return None

    # Null space must be one dimensional: the 8th singular value may not vanish
    if singular_vals[7] < 1e-10 * singular_vals[0]:
        return None

    Hn = Vt[-1].reshape(3, 3)

    # Undo the normalization: H = T1^-1 @ Hn @ T0
    try:
        H = np.linalg.inv(T1) @ Hn @ T0
    except np.linalg.LinAlgError:
        return None

    H = _normalize_scale(H)
    if not is_valid_mat3x3(H):
        return None

    # Rank-deficient maps collapse the plane onto a line or a point
    if abs(np.linalg.det(H / np.linalg.norm(H))) < 1e-12:
        return None
    return H


def fit_homography_minimal(pts0: Points2D, pts1: Points2D, eps_area: float = 1e-6) -> Optional[Mat3x3]:
    """
    Fit a homography from exactly 4 point correspondences.

    Returns None for degenerate samples (3 collinear points in either image).
    """
    if pts0.shape != (4, 2) or pts1.shape != (4, 2):
        raise ValueError(f"fit_homography_minimal expects (4,2) inputs, got {pts0.shape} and {pts1.shape}")

    if has_collinear_triplet(pts0, eps_area) or has_collinear_triplet(pts1, eps_area):
        return None

    return fit_homography_dlt(pts0, pts1)


# ---------- Apply transform + residuals ----------
def apply_T(T: Mat3x3, pts: Points2D) -> Points2D:
    """
    Apply a 3x3 transform to (N,2) points, returning (N,2) points.

    Written element-wise (no matmul) so a point maps to bit-identical
    coordinates whatever batch it is projected in.
    Points mapped to infinity (w == 0) come back as inf/nan.
    """
    if pts.ndim != 2 or pts.shape[1] != 2:
        raise ValueError(f"Expected pts shape (N,2), got {pts.shape}")
    if T.shape != (3, 3):
        raise ValueError(f"Expected T shape (3,3), got {T.shape}")

    x = pts[:, 0].astype(np.float64)
    y = pts[:, 1].astype(np.float64)

    with np.errstate(divide="ignore", invalid="ignore"):
        w = T[2, 0] * x + T[2, 1] * y + T[2, 2]
        u = (T[0, 0] * x + T[0, 1] * y + T[0, 2]) / w
        v = (T[1, 0] * x + T[1, 1] * y + T[1, 2]) / w

    return np.column_stack([u, v])


def _finite_or_inf(err: FloatArray) -> FloatArray:
    return np.where(np.isfinite(err), err, np.inf)


def residuals_sq(T: Mat3x3, pts0: Points2D, pts1: Points2D) -> FloatArray:
    """
    Per-point squared transfer error in image 1 (pixels^2):

        e_i = || apply_T(T, pts0[i]) - pts1[i] ||^2

    Returns shape (N,). Non-finite projections give inf.
    """
    if pts0.shape != pts1.shape:
        raise ValueError(f"pts0 and pts1 must have same shape, got {pts0.shape} vs {pts1.shape}")
    predicted = apply_T(T, pts0)
    with np.errstate(invalid="ignore", over="ignore"):
        dx = predicted[:, 0] - pts1[:, 0]
        dy = predicted[:, 1] - pts1[:, 1]
        err = dx * dx + dy * dy
    return _finite_or_inf(err)


def pairwise_residuals_sq(T: Mat3x3, pts0: Points2D, pts1: Points2D) -> FloatArray:
    """
    Squared transfer error of every (pts0[i], pts1[j]) pair. Shape (N0, N1).

    Entry (i, j) equals residuals_sq on the single pair (pts0[i], pts1[j]).
    """
    if pts1.ndim != 2 or pts1.shape[1] != 2:
        raise ValueError(f"Expected pts1 shape (N,2), got {pts1.shape}")
    predicted = apply_T(T, pts0)
    with np.errstate(invalid="ignore", over="ignore"):
        dx = predicted[:, 0, None] - pts1[None, :, 0]
        dy = predicted[:, 1, None] - pts1[None, :, 1]
        err = dx * dx + dy * dy
    return _finite_or_inf(err)
