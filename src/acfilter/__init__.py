"""
acfilter: threshold-free geometric filtering of feature matches.

A contrario RANSAC (AC-RANSAC) fits a homography (or another minimal-sample
model) to putative matches between two images, picks the inlier threshold
itself, then guided matching uses the model to recover missed matches.
"""

from .ransac import (
    ACRansacParams, ACRansacResult, ACKernelAdaptor, ac_ransac,
    HomographyFitter, AffineFitter, ModelFitter,
)
from .features import DescriberType, Regions, RegionsPerView, count_matches
from .camera import PinholeIntrinsics, View, Scene
from .filter import (
    FilterStatus, EstimationResult, GuidedMatchResult, GeometricFilterAC,
    BatchFilterConfig, PairFilterReport, filter_pair, filter_pairs,
)

__all__ = [
    "ACRansacParams", "ACRansacResult", "ACKernelAdaptor", "ac_ransac",
    "HomographyFitter", "AffineFitter", "ModelFitter",
    "DescriberType", "Regions", "RegionsPerView", "count_matches",
    "PinholeIntrinsics", "View", "Scene",
    "FilterStatus", "EstimationResult", "GuidedMatchResult", "GeometricFilterAC",
    "BatchFilterConfig", "PairFilterReport", "filter_pair", "filter_pairs",
]
