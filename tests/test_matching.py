"""Tests for guided matching and duplicate removal."""

import numpy as np
import pytest

from acfilter.features import DescriberType, Regions
from acfilter.matching import (
    deduplicate_matches, descriptor_distances, guided_matching_descriptors,
    guided_matching_geometry, unique_coordinates_mask,
)
from acfilter.ransac import HomographyFitter

IDENTITY = np.eye(3)


class TestDeduplicate:

    @pytest.fixture
    def positions(self):
        # Features 0 and 1 of image I sit on the same pixel
        pos_i = np.array([[10.0, 10.0], [10.0, 10.0], [50.0, 60.0]])
        pos_j = np.array([[12.0, 11.0], [52.0, 61.0]])
        return pos_i, pos_j

    def test_removes_repeated_coordinates(self, positions):
        pos_i, pos_j = positions
        matches = np.array([[0, 0], [1, 0], [2, 1]])
        out = deduplicate_matches(matches, pos_i, pos_j)
        np.testing.assert_array_equal(out, [[0, 0], [2, 1]])

    def test_keeps_first_occurrence_in_order(self, positions):
        pos_i, pos_j = positions
        matches = np.array([[2, 1], [1, 0], [0, 0]])
        mask = unique_coordinates_mask(matches, pos_i, pos_j)
        np.testing.assert_array_equal(mask, [True, True, False])
        np.testing.assert_array_equal(
            deduplicate_matches(matches, pos_i, pos_j), [[2, 1], [1, 0]])

    def test_idempotent(self, positions):
        pos_i, pos_j = positions
        matches = np.array([[0, 0], [1, 0], [2, 1], [2, 1]])
        once = deduplicate_matches(matches, pos_i, pos_j)
        np.testing.assert_array_equal(deduplicate_matches(once, pos_i, pos_j), once)

    def test_same_index_different_pixel_kept(self, positions):
        pos_i, pos_j = positions
        matches = np.array([[0, 0], [0, 1]])
        assert deduplicate_matches(matches, pos_i, pos_j).shape == (2, 2)

    def test_empty(self, positions):
        pos_i, pos_j = positions
        assert deduplicate_matches(np.zeros((0, 2)), pos_i, pos_j).shape == (0, 2)

    def test_out_of_range(self, positions):
        pos_i, pos_j = positions
        with pytest.raises(ValueError):
            deduplicate_matches(np.array([[3, 0]]), pos_i, pos_j)


class TestGuidedGeometry:

    def test_one_to_many(self):
        xI = np.array([[0.0, 0.0], [100.0, 100.0]])
        xJ = np.array([[0.5, 0.0], [0.0, 0.8], [100.0, 100.0], [300.0, 300.0]])
        out = guided_matching_geometry(HomographyFitter(), IDENTITY, xI, xJ, threshold=1.0)
        np.testing.assert_array_equal(out, [[0, 0], [0, 1], [1, 2]])

    def test_threshold_is_inclusive(self):
        xI = np.array([[0.0, 0.0]])
        xJ = np.array([[1.0, 0.0]])
        out = guided_matching_geometry(HomographyFitter(), IDENTITY, xI, xJ, threshold=1.0)
        np.testing.assert_array_equal(out, [[0, 0]])

    def test_chunking_gives_same_result(self):
        rng = np.random.default_rng(0)
        xI = rng.uniform(0, 50, size=(37, 2))
        xJ = xI + rng.uniform(-0.5, 0.5, size=xI.shape)
        fitter = HomographyFitter()
        full = guided_matching_geometry(fitter, IDENTITY, xI, xJ, 4.0)
        chunked = guided_matching_geometry(fitter, IDENTITY, xI, xJ, 4.0, chunk_size=5)
        np.testing.assert_array_equal(full, chunked)
        assert full.shape[0] >= xI.shape[0]

    def test_empty_side(self):
        out = guided_matching_geometry(
            HomographyFitter(), IDENTITY, np.zeros((0, 2)), np.ones((3, 2)), 1.0)
        assert out.shape == (0, 2)

    def test_bad_threshold(self):
        with pytest.raises(ValueError):
            guided_matching_geometry(
                HomographyFitter(), IDENTITY, np.ones((1, 2)), np.ones((1, 2)), -1.0)


class TestDescriptorDistances:

    def test_hamming(self):
        a = np.array([[0b00000000, 0b11111111], [0b00000000, 0b11111111]], dtype=np.uint8)
        b = np.array([[0b00000011, 0b11111111], [0b11111111, 0b00000000]], dtype=np.uint8)
        np.testing.assert_array_equal(descriptor_distances(DescriberType.ORB, a, b), [2.0, 16.0])

    def test_squared_l2(self):
        a = np.array([[0.0, 0.0], [1.0, 1.0]], dtype=np.float32)
        b = np.array([[3.0, 4.0], [3.0, 4.0]], dtype=np.float32)
        np.testing.assert_allclose(descriptor_distances(DescriberType.SIFT, a, b), [25.0, 13.0])

    def test_binary_needs_uint8(self):
        a = np.zeros((1, 4), dtype=np.float32)
        with pytest.raises(ValueError):
            descriptor_distances(DescriberType.AKAZE_MLDB, a, a)

    def test_shape_mismatch(self):
        with pytest.raises(ValueError):
            descriptor_distances(DescriberType.SIFT, np.zeros((1, 4)), np.zeros((1, 5)))
        with pytest.raises(ValueError):
            descriptor_distances(DescriberType.SIFT, np.zeros((2, 4)), np.zeros((1, 4)))


class TestGuidedDescriptors:

    @pytest.fixture
    def scene_regions(self):
        # Point 0 of I has two geometric candidates in J: 0 (close descriptor), 1 (far)
        # Point 1 of I has two candidates with near-identical descriptors
        # Point 2 of I has a single candidate
        pos_i = np.array([[10.0, 10.0], [200.0, 200.0], [400.0, 100.0]])
        pos_j = np.array([[10.5, 10.0], [10.0, 10.5],
                          [200.5, 200.0], [200.0, 200.5],
                          [400.0, 100.2]])
        desc_i = np.array([[0, 0], [10, 10], [5, 5]], dtype=np.float32)
        desc_j = np.array([[0, 1], [9, 9],
                           [10, 11], [11, 10],
                           [50, 50]], dtype=np.float32)
        regions_i = {DescriberType.SIFT: Regions(pos_i, desc_i)}
        regions_j = {DescriberType.SIFT: Regions(pos_j, desc_j)}
        return regions_i, regions_j

    def test_ratio_test(self, scene_regions):
        regions_i, regions_j = scene_regions
        out = guided_matching_descriptors(
            HomographyFitter(), IDENTITY, None, regions_i, None, regions_j,
            threshold=1.0, distance_ratio=0.8)
        # Ambiguous point 1 is dropped, the lone candidate of point 2 passes
        np.testing.assert_array_equal(out[DescriberType.SIFT], [[0, 0], [2, 4]])

    def test_zero_ratio_keeps_only_lone_candidates(self, scene_regions):
        regions_i, regions_j = scene_regions
        out = guided_matching_descriptors(
            HomographyFitter(), IDENTITY, None, regions_i, None, regions_j,
            threshold=1.0, distance_ratio=0.0)
        np.testing.assert_array_equal(out[DescriberType.SIFT], [[2, 4]])

    def test_binary_descriptors(self):
        pos = np.array([[0.0, 0.0], [100.0, 0.0]])
        desc_i = np.array([[0b0000], [0b1111]], dtype=np.uint8)
        desc_j = np.array([[0b0001], [0b1111]], dtype=np.uint8)
        out = guided_matching_descriptors(
            HomographyFitter(), IDENTITY,
            None, {DescriberType.ORB: Regions(pos, desc_i)},
            None, {DescriberType.ORB: Regions(pos, desc_j)},
            threshold=1.0, distance_ratio=0.8)
        np.testing.assert_array_equal(out[DescriberType.ORB], [[0, 0], [1, 1]])

    def test_shared_types_only(self, scene_regions):
        regions_i, regions_j = scene_regions
        regions_i = dict(regions_i)
        regions_i[DescriberType.AKAZE] = Regions(np.zeros((1, 2)), np.zeros((1, 4), dtype=np.float32))
        out = guided_matching_descriptors(
            HomographyFitter(), IDENTITY, None, regions_i, None, regions_j,
            threshold=1.0, distance_ratio=0.8)
        assert list(out) == [DescriberType.SIFT]

    def test_missing_descriptors(self):
        reg = {DescriberType.SIFT: Regions(np.zeros((2, 2)))}
        with pytest.raises(ValueError):
            guided_matching_descriptors(
                HomographyFitter(), IDENTITY, None, reg, None, reg,
                threshold=1.0, distance_ratio=0.8)

    def test_descriptor_length_mismatch(self):
        pos = np.zeros((1, 2))
        with pytest.raises(ValueError):
            guided_matching_descriptors(
                HomographyFitter(), IDENTITY,
                None, {DescriberType.SIFT: Regions(pos, np.zeros((1, 4), dtype=np.float32))},
                None, {DescriberType.SIFT: Regions(pos, np.zeros((1, 5), dtype=np.float32))},
                threshold=1.0, distance_ratio=0.8)

    @pytest.mark.parametrize("desc_type", [DescriberType.SIFT, DescriberType.ORB])
    def test_agrees_with_exhaustive_search(self, desc_type):
        # Dense points so most rows have several geometric candidates
        rng = np.random.default_rng(4)
        pos_i = rng.uniform(0, 6, size=(30, 2))
        pos_j = rng.uniform(0, 6, size=(40, 2))
        if desc_type.is_binary:
            desc_i = rng.integers(0, 256, size=(30, 8), dtype=np.uint8)
            desc_j = rng.integers(0, 256, size=(40, 8), dtype=np.uint8)
        else:
            desc_i = rng.uniform(0, 10, size=(30, 8)).astype(np.float32)
            desc_j = rng.uniform(0, 10, size=(40, 8)).astype(np.float32)
        threshold, ratio = 2.0, 0.9

        out = guided_matching_descriptors(
            HomographyFitter(), IDENTITY,
            None, {desc_type: Regions(pos_i, desc_i)},
            None, {desc_type: Regions(pos_j, desc_j)},
            threshold=threshold, distance_ratio=ratio, chunk_size=7)

        expected = []
        for i in range(30):
            cands = [j for j in range(40) if ((pos_i[i] - pos_j[j]) ** 2).sum() <= threshold]
            if not cands:
                continue
            dists = sorted(
                (float(descriptor_distances(desc_type, desc_i[i:i + 1], desc_j[j:j + 1])[0]), j)
                for j in cands)
            if len(dists) == 1 or dists[0][0] < ratio ** 2 * dists[1][0]:
                expected.append((i, dists[0][1]))

        assert [tuple(m) for m in out[desc_type]] == expected
