# Andy Zhao
"""
Adapter: makes homography functions conform to the ModelFitter Protocol.

This keeps ransac/core.py and the guided matcher generic.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import ClassVar

from .types import Points2D, Mat3x3, FloatArray, ModelFitter
from .homography import fit_homography_minimal, residuals_sq, pairwise_residuals_sq


@dataclass(frozen=True)
class HomographyFitter(ModelFitter[Mat3x3]):
    """
    4-point homography with point-to-point (transfer) error in image J.
    """
    eps_area: float = 1e-6

    min_samples: ClassVar[int] = 4
    max_models: ClassVar[int] = 1

    def fit_minimal(self, pts0: Points2D, pts1: Points2D) -> list[Mat3x3]:
        H = fit_homography_minimal(pts0, pts1, eps_area=self.eps_area)
        return [] if H is None else [H]

    def residuals(self, model: Mat3x3, pts0: Points2D, pts1: Points2D) -> FloatArray:
        return residuals_sq(model, pts0, pts1)

    def pairwise_residuals(self, model: Mat3x3, pts0: Points2D, pts1: Points2D) -> FloatArray:
        return pairwise_residuals_sq(model, pts0, pts1)
