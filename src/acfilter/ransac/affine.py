# Andy Zhao
"""
Affine model utilities (3x3 homogeneous form).

We estimate an affine transform T such that:

    [x', y', 1]^T  =  T @ [x, y, 1]^T

where:

    T = [[a, b, tx],
         [c, d, ty],
         [0, 0,  1]]

Unknowns are 6 parameters, so 3 non-collinear correspondences fix it.
Residuals reuse the projective helpers (w is always 1 for affine).
"""

from __future__ import annotations

from typing import Optional

import numpy as np

from .types import Points2D, Mat3x3, is_valid_mat3x3
from .homography import has_collinear_triplet


def _theta_to_mat3x3(theta: np.ndarray) -> Mat3x3:
    """
    Convert parameter vector theta = [a, b, tx, c, d, ty] into a 3x3 affine matrix.
    """
    T = np.eye(3, dtype=np.float64)
    T[0, :] = theta[0:3]
    T[1, :] = theta[3:6]
    return T


def fit_affine_minimal(pts0: Points2D, pts1: Points2D, eps_area: float = 1e-6) -> Optional[Mat3x3]:
    """
    Fit affine transform from exactly 3 point correspondences.

    For each correspondence (x, y) -> (x', y'):
      x' = a*x + b*y + tx
      y' = c*x + d*y + ty

    3 points give the 6 equations of a square system A theta = b.

    Returns:
      3x3 affine matrix, or None if degenerate / solve fails.
    """
    if pts0.shape != (3, 2) or pts1.shape != (3, 2):
        raise ValueError(f"fit_affine_minimal expects (3,2) inputs, got {pts0.shape} and {pts1.shape}")

    # Collinear source or target triplet: affine map not determined
    if has_collinear_triplet(pts0, eps_area) or has_collinear_triplet(pts1, eps_area):
        return None

    A = np.zeros((6, 6), dtype=np.float64)
    A[0::2, 0:2] = pts0
    A[0::2, 2] = 1.0
    A[1::2, 3:5] = pts0
    A[1::2, 5] = 1.0
    b_vec = pts1.reshape(-1).astype(np.float64)

    try:
        theta = np.linalg.solve(A, b_vec)
    except np.linalg.LinAlgError:
        return None

    T = _theta_to_mat3x3(theta)
    if not is_valid_mat3x3(T):
        return None
    return T
