"""Pytest configuration and shared fixtures for acfilter tests."""

from dataclasses import dataclass

import numpy as np
import pytest

from acfilter.ransac.homography import apply_T
from acfilter.camera.scene import Scene, View
from acfilter.features.describer import DescriberType
from acfilter.features.regions import Regions, RegionsPerView

IMAGE_W = 640
IMAGE_H = 480

# Mild perspective; large translation keeps scale-normalized comparisons meaningful
H_TRUE = np.array(
    [[0.95, 0.08, 40.0],
     [-0.05, 1.02, -30.0],
     [2e-4, -1e-4, 1.0]],
    dtype=np.float64,
)


@dataclass
class SyntheticPair:
    """Points of a synthetic image pair and the matching scene containers."""
    H: np.ndarray
    xI: np.ndarray
    xJ: np.ndarray
    is_inlier: np.ndarray
    scene: Scene
    regions: RegionsPerView
    putative: dict
    pair: tuple = (0, 1)


def _far_outliers(rng, H, n_out, min_dist):
    """Random pairs whose J point is at least min_dist px from where H sends the I point."""
    o0 = np.zeros((0, 2))
    o1 = np.zeros((0, 2))
    while o0.shape[0] < n_out:
        a = rng.uniform([0, 0], [IMAGE_W, IMAGE_H], size=(n_out, 2))
        b = rng.uniform([0, 0], [IMAGE_W, IMAGE_H], size=(n_out, 2))
        keep = np.linalg.norm(apply_T(H, a) - b, axis=1) > min_dist
        o0 = np.vstack([o0, a[keep]])
        o1 = np.vstack([o1, b[keep]])
    return o0[:n_out], o1[:n_out]


def make_points(seed=0, n_in=160, n_out=40, noise=0.1, H=H_TRUE, min_outlier_dist=20.0):
    """Inliers follow H plus uniform noise in [-noise, noise]; outliers are far off."""
    rng = np.random.default_rng(seed)
    pI = rng.uniform([0, 0], [IMAGE_W, IMAGE_H], size=(n_in, 2))
    pJ = apply_T(H, pI) + rng.uniform(-noise, noise, size=(n_in, 2))
    oI, oJ = _far_outliers(rng, H, n_out, min_outlier_dist)

    # Shuffle so inliers are not a contiguous block
    xI = np.vstack([pI, oI])
    xJ = np.vstack([pJ, oJ])
    is_inlier = np.concatenate([np.ones(n_in, dtype=bool), np.zeros(n_out, dtype=bool)])
    perm = rng.permutation(xI.shape[0])
    return xI[perm], xJ[perm], is_inlier[perm]


def build_pair(xI, xJ, is_inlier, H=H_TRUE, desc_types=(DescriberType.SIFT,)):
    """
    Scene with views 0 and 1, regions holding xI / xJ, putative (k, k) matches.

    With several describer types, the points are dealt round-robin into the types.
    """
    scene = Scene()
    scene.add_view(View(0, IMAGE_W, IMAGE_H))
    scene.add_view(View(1, IMAGE_W, IMAGE_H))

    regions = RegionsPerView()
    putative = {}
    n_types = len(desc_types)
    for t, desc_type in enumerate(desc_types):
        rows = np.arange(t, xI.shape[0], n_types)
        regions.add(0, desc_type, Regions(xI[rows]))
        regions.add(1, desc_type, Regions(xJ[rows]))
        k = np.arange(rows.shape[0], dtype=np.int64)
        putative[desc_type] = np.column_stack([k, k])

    return SyntheticPair(H=H, xI=xI, xJ=xJ, is_inlier=is_inlier,
                         scene=scene, regions=regions, putative=putative)


@pytest.fixture
def make_homography_pair():
    """Factory fixture: make_homography_pair(seed=..., n_in=..., ...) -> SyntheticPair."""
    def _make(seed=0, n_in=160, n_out=40, noise=0.1, desc_types=(DescriberType.SIFT,)):
        xI, xJ, is_inlier = make_points(seed=seed, n_in=n_in, n_out=n_out, noise=noise)
        return build_pair(xI, xJ, is_inlier, desc_types=desc_types)
    return _make


@pytest.fixture
def homography_pair(make_homography_pair):
    """The 160 inliers + 40 outliers scene."""
    return make_homography_pair()


def normalized_model_error(H_est, H_ref):
    """Frobenius distance between unit-norm, sign-aligned matrices."""
    a = H_est / np.linalg.norm(H_est)
    b = H_ref / np.linalg.norm(H_ref)
    if np.sum(a * b) < 0:
        a = -a
    return float(np.linalg.norm(a - b))


@pytest.fixture
def model_error():
    return normalized_model_error


@pytest.fixture
def build_scene_pair():
    """Factory fixture wrapping build_pair for hand-made point sets."""
    return build_pair
