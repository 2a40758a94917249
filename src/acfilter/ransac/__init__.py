# Andy Zhao
"""
RANSAC package

This module provides:
- A generic a-contrario RANSAC (AC-RANSAC) implementation
- Typed geometry primitives
- Model / kernel interface definitions
- Homography and affine model families
"""

from .types import (
    FloatArray, IntArray, BoolArray, Points2D, IndexSet, Mat3x3,
    ModelFitter, ACKernel, ACRansacResult, as_points2d, is_valid_mat3x3,
)

from .homography import (
    fit_homography_dlt, fit_homography_minimal, has_collinear_triplet,
    apply_T, residuals_sq, pairwise_residuals_sq,
)

from .homography_fitter import HomographyFitter

from .affine import fit_affine_minimal

from .affine_fitter import AffineFitter

from .kernel import ACKernelAdaptor

from .core import ACRansacParams, ac_ransac, best_nfa, log_combi_n, log_combi_k

__all__ = [
    "FloatArray", "IntArray", "BoolArray", "Points2D", "IndexSet", "Mat3x3",
    "ModelFitter", "ACKernel", "ACRansacResult", "as_points2d", "is_valid_mat3x3",
    "fit_homography_dlt", "fit_homography_minimal", "has_collinear_triplet",
    "apply_T", "residuals_sq", "pairwise_residuals_sq",
    "HomographyFitter",
    "fit_affine_minimal",
    "AffineFitter",
    "ACKernelAdaptor",
    "ACRansacParams", "ac_ransac", "best_nfa", "log_combi_n", "log_combi_k",
]
