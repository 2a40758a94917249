# Andy Zhao
"""
Adapter: makes affine functions conform to the ModelFitter Protocol.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import ClassVar

from .types import Points2D, Mat3x3, FloatArray, ModelFitter
from .affine import fit_affine_minimal
from .homography import residuals_sq, pairwise_residuals_sq


@dataclass(frozen=True)
class AffineFitter(ModelFitter[Mat3x3]):
    eps_area: float = 1e-6

    min_samples: ClassVar[int] = 3
    max_models: ClassVar[int] = 1

    def fit_minimal(self, pts0: Points2D, pts1: Points2D) -> list[Mat3x3]:
        T = fit_affine_minimal(pts0, pts1, eps_area=self.eps_area)
        return [] if T is None else [T]

    def residuals(self, model: Mat3x3, pts0: Points2D, pts1: Points2D) -> FloatArray:
        return residuals_sq(model, pts0, pts1)

    def pairwise_residuals(self, model: Mat3x3, pts0: Points2D, pts1: Points2D) -> FloatArray:
        return pairwise_residuals_sq(model, pts0, pts1)
