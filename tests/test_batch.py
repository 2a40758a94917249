"""Tests for filtering several image pairs at once."""

import numpy as np

from acfilter.camera import Scene, View
from acfilter.features import DescriberType, Regions, RegionsPerView
from acfilter.filter import (
    BatchFilterConfig, FilterStatus, filter_pair, filter_pairs, pair_rng,
)
from acfilter.ransac import AffineFitter

from conftest import IMAGE_W, IMAGE_H, make_points


def _three_view_scene():
    """
    Views 0 and 1 are related by a homography; view 2 is unrelated noise.
    """
    xI, xJ, _ = make_points(seed=0)
    rng = np.random.default_rng(1)
    xK = rng.uniform([0, 0], [IMAGE_W, IMAGE_H], size=xI.shape)

    scene = Scene()
    regions = RegionsPerView()
    for view_id, pts in enumerate((xI, xJ, xK)):
        scene.add_view(View(view_id, IMAGE_W, IMAGE_H))
        regions.add(view_id, DescriberType.SIFT, Regions(pts))

    k = np.arange(xI.shape[0])
    putative = {DescriberType.SIFT: np.column_stack([k, k])}
    return scene, regions, {(0, 1): putative, (0, 2): putative}


class TestFilterPairs:

    def test_good_and_bad_pair(self):
        scene, regions, per_pair = _three_view_scene()
        reports = filter_pairs(scene, regions, per_pair, BatchFilterConfig(max_workers=2))

        assert list(reports) == [(0, 1), (0, 2)]
        assert reports[(0, 1)].ok
        assert reports[(0, 1)].estimation.num_inliers >= 150
        assert reports[(0, 2)].estimation.status is FilterStatus.INSUFFICIENT_INLIERS
        assert reports[(0, 2)].guided is None
        assert reports[(0, 2)].matches == {}

    def test_independent_of_batch_content(self):
        scene, regions, per_pair = _three_view_scene()
        config = BatchFilterConfig(seed=3)
        batch = filter_pairs(scene, regions, per_pair, config)
        alone = filter_pair(scene, regions, (0, 1), per_pair[(0, 1)], config)

        np.testing.assert_array_equal(batch[(0, 1)].estimation.model, alone.estimation.model)
        np.testing.assert_array_equal(
            batch[(0, 1)].matches[DescriberType.SIFT], alone.matches[DescriberType.SIFT])

    def test_guided_report(self):
        scene, regions, per_pair = _three_view_scene()
        config = BatchFilterConfig(guided_distance_ratio=-1.0)
        report = filter_pair(scene, regions, (0, 1), per_pair[(0, 1)], config)

        assert report.guided is not None and report.guided.ok
        assert report.matches is report.guided.matches
        assert report.guided.num_matches >= report.estimation.num_inliers

    def test_other_model_family(self):
        scene, regions, per_pair = _three_view_scene()
        report = filter_pair(scene, regions, (0, 2), per_pair[(0, 2)],
                             fitter_factory=AffineFitter)
        assert not report.ok

    def test_empty_batch(self):
        scene, regions, _ = _three_view_scene()
        assert filter_pairs(scene, regions, {}) == {}

    def test_pair_rng_is_per_pair(self):
        a = pair_rng(0, (0, 1)).integers(1 << 30, size=4)
        b = pair_rng(0, (0, 1)).integers(1 << 30, size=4)
        c = pair_rng(0, (1, 0)).integers(1 << 30, size=4)
        np.testing.assert_array_equal(a, b)
        assert not np.array_equal(a, c)
