"""
Camera package: scene container and coordinate normalization.
"""
from .scene import PinholeIntrinsics, View, Scene
from .undistort import has_valid_intrinsics, undistort_features, undistort_regions

__all__ = [
    "PinholeIntrinsics", "View", "Scene",
    "has_valid_intrinsics", "undistort_features", "undistort_regions",
]
