# Andy Zhao
"""
Shared typed primitives for the a-contrario geometric filter.

Defines:
- Typed NumPy aliases for geometry
    - Points are (N,2) float arrays
    - Transforms are 3x3 homogeneous matrices
    - Correspondences are (M,2) int arrays of (idx_i, idx_j)
- Generic model protocol (minimal solver + residuals)
- Kernel protocol consumed by AC-RANSAC
- Structured AC-RANSAC result container (model + inliers + stats)
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol, TypeVar, Generic, TypeAlias

import numpy as np
import numpy.typing as npt

# ---------- Numpy typing aliases ----------
# - float64 for geometry / matrices (more stable for linear algebra)
# - int64 for index arrays

FloatArray: TypeAlias = npt.NDArray[np.float64]
IntArray: TypeAlias = npt.NDArray[np.int64]
BoolArray: TypeAlias = npt.NDArray[np.bool_]

# Points in 2D image coordinates.
Points2D: TypeAlias = FloatArray      # shape: (N, 2)

# Sorted indices into a point matrix pair.
IndexSet: TypeAlias = IntArray        # shape: (K,)

# 3x3 homogeneous transform matrix.
Mat3x3: TypeAlias = FloatArray        # shape: (3, 3)

M = TypeVar("M")


class ModelFitter(Protocol[M]):
    """
    Interface a model family must implement to be usable by AC-RANSAC
    and by guided matching.

    Residuals are SQUARED errors in image J pixels. AC-RANSAC turns them
    into probabilities, guided matching compares them to a squared precision.
    """

    # Number of correspondences needed by fit_minimal (homography=4, affine=3)
    min_samples: int

    # Upper bound on how many models fit_minimal can return for one sample
    max_models: int

    def fit_minimal(self, pts0: Points2D, pts1: Points2D) -> list[M]:
        """
        Fit from exactly min_samples correspondences.
        Return [] if the sample is degenerate (e.g. collinear points).
        """
        ...

    def residuals(self, model: M, pts0: Points2D, pts1: Points2D) -> FloatArray:
        """
        Squared error of each pair (pts0[i], pts1[i]). Shape: (N,).
        """
        ...

    def pairwise_residuals(self, model: M, pts0: Points2D, pts1: Points2D) -> FloatArray:
        """
        Squared error of every (pts0[i], pts1[j]) combination. Shape: (N0, N1).
        """
        ...


class ACKernel(Protocol[M]):
    """
    What the AC-RANSAC loop needs from a model bound to its data.
    """

    @property
    def min_samples(self) -> int: ...

    @property
    def max_models(self) -> int: ...

    @property
    def num_samples(self) -> int: ...

    @property
    def logalpha0(self) -> float: ...

    @property
    def mult_error(self) -> float: ...

    def fit(self, sample_idx: IntArray) -> list[M]: ...

    def residual(self, model: M, index: int) -> float: ...

    def residuals(self, model: M) -> FloatArray: ...


# ---------- AC-RANSAC output container ----------
@dataclass(frozen=True)
class ACRansacResult(Generic[M]):
    model: M                    # best model found
    inliers: IndexSet           # sorted indices of the inliers
    num_inliers: int            # len(inliers)
    nfa: float                  # log10 number of false alarms of the model
    residual_threshold: float   # squared error of the worst inlier (pixels^2)
    precision: float            # sqrt(residual_threshold), in pixels
    iterations: int             # how many iterations were actually run


# ---------- Helper Function ----------
def as_points2d(pts, *, name: str = "pts") -> Points2D:
    """
    Coerce array-like input to a float64 (N,2) array, or raise.
    """
    arr = np.asarray(pts, dtype=np.float64)
    if arr.size == 0:
        return np.zeros((0, 2), dtype=np.float64)
    if arr.ndim != 2 or arr.shape[1] != 2:
        raise ValueError(f"Expected {name} shape (N,2), got {arr.shape}")
    return arr


def is_valid_mat3x3(T: Mat3x3) -> bool:
    """
    Verify a 3x3 transform matrix.
    Used for rejecting failed fits.
    """
    return isinstance(T, np.ndarray) and T.shape == (3, 3) and np.isfinite(T).all()
