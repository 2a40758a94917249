# Andy Zhao
"""
Coordinate normalizer: raw feature positions -> undistorted point matrices.

Without (valid) intrinsics the raw positions are copied unchanged.
"""

from __future__ import annotations

from typing import Mapping, Optional

import numpy as np

from ..ransac.types import Points2D, as_points2d
from ..features.describer import DescriberType
from ..features.regions import Regions
from .scene import PinholeIntrinsics


def has_valid_intrinsics(cam: Optional[PinholeIntrinsics]) -> bool:
    return cam is not None and cam.is_valid()


def undistort_features(cam: Optional[PinholeIntrinsics], positions: Points2D) -> Points2D:
    """
    (N,2) raw positions -> (N,2) undistorted positions (float64 copy).
    """
    positions = as_points2d(positions, name="positions")
    if has_valid_intrinsics(cam):
        return cam.undistort(positions)
    return positions.astype(np.float64, copy=True)


def undistort_regions(
        cam: Optional[PinholeIntrinsics],
        regions_per_desc: Mapping[DescriberType, Regions],
) -> Points2D:
    """
    Stack the undistorted positions of every describer block.

    Blocks follow the mapping order; block d occupies rows
    [offset_d, offset_d + len(regions_d)).
    """
    blocks = [undistort_features(cam, regions.positions) for regions in regions_per_desc.values()]
    if not blocks:
        return np.zeros((0, 2), dtype=np.float64)
    return np.vstack(blocks)
