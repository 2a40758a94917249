# Andy Zhao
"""
Kernel adaptor: binds a ModelFitter to one point matrix pair.

AC-RANSAC needs more than "fit" and "residual": to score a model it needs
the probability that a random point in image J lands within a given error
of its prediction (the null hypothesis of the a-contrario test).

With squared residual e (pixels^2), that probability is modelled as

    alpha(e) = 10^logalpha0 * e^mult_error

Point-to-point (default):
    disk of radius sqrt(e) over the image J area
    alpha = pi * e / (w * h)           -> logalpha0 = log10(pi / (w*h)), mult = 1

Point-to-line (alternative):
    band of half-width sqrt(e) along a line crossing image J, whose length is
    bounded by the image diagonal D
    alpha = 2 * D * sqrt(e) / (w * h)  -> logalpha0 = log10(2*D / (w*h)), mult = 0.5
"""

from __future__ import annotations

import math
from typing import Generic, TypeVar

import numpy as np

from .types import Points2D, FloatArray, IntArray, ModelFitter, as_points2d

M = TypeVar("M")


class ACKernelAdaptor(Generic[M]):
    """
    Fit + score interface of one model family on one image pair.

    xI, xJ: (N,2) corresponding points (row i of xI pairs with row i of xJ)
    wI, hI, wJ, hJ: image sizes in pixels
    point_to_line: select the point-to-line probability model
    """

    def __init__(
            self,
            fitter: ModelFitter[M],
            xI: Points2D,
            wI: int,
            hI: int,
            xJ: Points2D,
            wJ: int,
            hJ: int,
            *,
            point_to_line: bool = False,
    ) -> None:
        xI = as_points2d(xI, name="xI")
        xJ = as_points2d(xJ, name="xJ")
        if xI.shape != xJ.shape:
            raise ValueError(f"xI and xJ must have same shape, got {xI.shape} vs {xJ.shape}")
        if min(wI, hI, wJ, hJ) <= 0:
            raise ValueError(f"Image sizes must be positive, got I=({wI},{hI}) J=({wJ},{hJ})")

        self._fitter = fitter
        self._xI = xI
        self._xJ = xJ
        self._point_to_line = bool(point_to_line)

        area = float(wJ) * float(hJ)
        if self._point_to_line:
            diagonal = math.hypot(float(wJ), float(hJ))
            self._logalpha0 = math.log10(2.0 * diagonal / area)
        else:
            self._logalpha0 = math.log10(math.pi / area)

    @property
    def fitter(self) -> ModelFitter[M]:
        return self._fitter

    @property
    def min_samples(self) -> int:
        return int(self._fitter.min_samples)

    @property
    def max_models(self) -> int:
        return int(self._fitter.max_models)

    @property
    def num_samples(self) -> int:
        return int(self._xI.shape[0])

    @property
    def logalpha0(self) -> float:
        return self._logalpha0

    @property
    def mult_error(self) -> float:
        return 0.5 if self._point_to_line else 1.0

    def fit(self, sample_idx: IntArray) -> list[M]:
        """
        Candidate models from the correspondences at sample_idx.
        Degenerate samples give [].
        """
        sample_idx = np.asarray(sample_idx, dtype=np.int64)
        if sample_idx.shape != (self.min_samples,):
            raise ValueError(f"Expected {self.min_samples} sample indices, got shape {sample_idx.shape}")
        return self._fitter.fit_minimal(self._xI[sample_idx], self._xJ[sample_idx])

    def residual(self, model: M, index: int) -> float:
        """
        Squared error of correspondence `index` under `model`.
        """
        i = int(index)
        return float(self._fitter.residuals(model, self._xI[i:i + 1], self._xJ[i:i + 1])[0])

    def residuals(self, model: M) -> FloatArray:
        """
        Squared error of every correspondence. Shape (N,).
        """
        return self._fitter.residuals(model, self._xI, self._xJ)
