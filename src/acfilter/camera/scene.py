# Andy Zhao
"""
Minimal scene container: views (image sizes) and camera intrinsics.

Only what the geometric filter consumes:
  - per-view width / height (kernel probability model)
  - per-view intrinsics handle, used to undistort raw feature positions
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Optional

import numpy as np
import cv2

from ..ransac.types import Points2D, Mat3x3, as_points2d

# Distortion vector lengths cv2.undistortPoints accepts
_CV_DIST_LENGTHS = (4, 5, 8, 12, 14)


def _pad_distortion(dist) -> np.ndarray:
    """
    Zero pad distortion coefficients to a length OpenCV accepts.
    """
    dist = np.asarray(dist, dtype=np.float64).reshape(-1)
    if dist.size == 0:
        return dist
    for n in _CV_DIST_LENGTHS:
        if dist.size <= n:
            return np.concatenate([dist, np.zeros((n - dist.size,), dtype=np.float64)])
    raise ValueError(f"At most {_CV_DIST_LENGTHS[-1]} distortion coefficients are supported, got {dist.size}")


@dataclass(frozen=True)
class PinholeIntrinsics:
    """
    Pinhole camera with OpenCV-style radial/tangential distortion.

    K:
      (3,3) camera matrix [[fx, 0, cx], [0, fy, cy], [0, 0, 1]]
    dist:
      distortion coefficients (k1, k2, p1, p2[, k3, ...]); empty = none.
      Shorter vectors (e.g. radial-only [k1]) are zero padded to the next
      length OpenCV accepts (4, 5, 8, 12, 14).
    """
    K: Mat3x3
    dist: np.ndarray = field(default_factory=lambda: np.zeros((0,), dtype=np.float64))

    def __post_init__(self) -> None:
        object.__setattr__(self, "K", np.asarray(self.K, dtype=np.float64))
        object.__setattr__(self, "dist", _pad_distortion(self.dist))

    def is_valid(self) -> bool:
        """
        Usable for undistortion: finite 3x3 matrix with positive focal lengths.
        """
        K = self.K
        if K.shape != (3, 3) or not np.isfinite(K).all():
            return False
        if not np.isfinite(self.dist).all():
            return False
        return bool(K[0, 0] > 0.0 and K[1, 1] > 0.0)

    def undistort(self, pts: Points2D) -> Points2D:
        """
        Map raw (distorted) pixel positions to undistorted pixel positions.
        """
        pts = as_points2d(pts)
        if pts.shape[0] == 0 or not np.any(self.dist):
            return pts.astype(np.float64, copy=True)

        # OpenCV expects (N,1,2); P=K keeps the output in pixel units
        out = cv2.undistortPoints(pts.reshape(-1, 1, 2), self.K, self.dist, P=self.K)
        return out.reshape(-1, 2).astype(np.float64)


@dataclass(frozen=True)
class View:
    view_id: int
    width: int
    height: int
    intrinsic_id: Optional[int] = None


@dataclass
class Scene:
    views: Dict[int, View] = field(default_factory=dict)
    intrinsics: Dict[int, PinholeIntrinsics] = field(default_factory=dict)

    def add_view(self, view: View) -> None:
        self.views[view.view_id] = view

    def view(self, view_id: int) -> View:
        try:
            return self.views[view_id]
        except KeyError:
            raise KeyError(f"Unknown view id {view_id}") from None

    def intrinsic_for(self, view_id: int) -> Optional[PinholeIntrinsics]:
        """
        Intrinsics of a view, or None if it has none / an unknown id.
        """
        intrinsic_id = self.view(view_id).intrinsic_id
        if intrinsic_id is None:
            return None
        return self.intrinsics.get(intrinsic_id)
