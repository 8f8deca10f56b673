"""Tests for descriptor matching."""

import logging

import cv2
import numpy as np
import pytest

from vistamatch.description.descriptors import DescriptorFamily
from vistamatch.errors import UnsupportedAlgorithm
from vistamatch.matching.matcher import (
    DescriptorMatcher, Match, MatcherKind, SelectorKind, infer_family,
    match_descriptors, ratio_test
)


def binary_descriptors(n=60, seed=0):
    rng = np.random.default_rng(seed)
    return rng.integers(0, 256, (n, 32), dtype=np.uint8)


def float_descriptors(n=40, dim=16, seed=0):
    rng = np.random.default_rng(seed)
    return rng.random((n, dim)).astype(np.float32)


class TestRatioTest:
    """Test the distance-ratio filter."""

    def test_clear_match_accepted(self):
        """Test nearest 10, second 20: 10 < 16."""
        best = Match(0, 1, 10.0)
        accepted = ratio_test([[best, Match(0, 2, 20.0)]], ratio=0.8)
        assert accepted == [best]

    def test_ambiguous_match_rejected(self):
        """Test nearest 15, second 17: 15 >= 13.6."""
        assert ratio_test([[Match(0, 1, 15.0), Match(0, 2, 17.0)]], ratio=0.8) == []

    def test_single_candidate_dropped(self):
        """Test a list with only one neighbour."""
        assert ratio_test([[Match(0, 1, 1.0)]]) == []

    def test_accepts_opencv_matches(self):
        """Test that cv2.DMatch lists work as well."""
        pair = [cv2.DMatch(0, 3, 5.0), cv2.DMatch(0, 4, 50.0)]
        accepted = ratio_test([pair])
        assert len(accepted) == 1
        assert accepted[0].trainIdx == 3


class TestKinds:
    """Test matcher and selector names."""

    @pytest.mark.parametrize("name,kind", [
        ("MAT_BF", MatcherKind.BRUTE_FORCE), ("bf", MatcherKind.BRUTE_FORCE),
        ("brute_force", MatcherKind.BRUTE_FORCE), ("MAT_FLANN", MatcherKind.FLANN),
        ("flann", MatcherKind.FLANN),
    ])
    def test_matcher_names(self, name, kind):
        """Test matcher aliases."""
        assert MatcherKind.parse(name) is kind

    @pytest.mark.parametrize("name,kind", [
        ("SEL_NN", SelectorKind.NN), ("nn", SelectorKind.NN),
        ("SEL_KNN", SelectorKind.KNN), ("knn", SelectorKind.KNN),
    ])
    def test_selector_names(self, name, kind):
        """Test selector aliases."""
        assert SelectorKind.parse(name) is kind

    def test_unknown_names(self):
        """Test unknown matcher and selector names."""
        with pytest.raises(UnsupportedAlgorithm):
            MatcherKind.parse("MAT_LSH")
        with pytest.raises(UnsupportedAlgorithm):
            SelectorKind.parse("SEL_RADIUS")
        with pytest.raises(UnsupportedAlgorithm):
            DescriptorMatcher("MAT_LSH")

    def test_infer_family(self):
        """Test family inference from dtype."""
        assert infer_family(binary_descriptors()) is DescriptorFamily.BINARY
        assert infer_family(float_descriptors()) is DescriptorFamily.FLOAT


class TestDescriptorMatcher:
    """Test descriptor matching."""

    def test_matcher_initialization(self):
        """Test DescriptorMatcher defaults."""
        matcher = DescriptorMatcher()
        assert matcher.matcher_kind is MatcherKind.BRUTE_FORCE
        assert matcher.selector_kind is SelectorKind.NN
        assert matcher.family is DescriptorFamily.BINARY
        assert matcher.ratio == 0.8

    def test_family_from_string(self):
        """Test the legacy descriptor type names."""
        assert DescriptorMatcher(family="DES_HOG").family is DescriptorFamily.FLOAT

    def test_invalid_ratio(self):
        """Test ratio validation."""
        with pytest.raises(ValueError):
            DescriptorMatcher(ratio=0.0)
        with pytest.raises(ValueError):
            DescriptorMatcher(ratio=1.5)

    def test_nn_binary_self_match(self):
        """Test that identical binary descriptors match one to one."""
        desc = binary_descriptors()
        matches = DescriptorMatcher("MAT_BF", "SEL_NN").match(desc, desc)
        assert len(matches) == len(desc)
        assert all(m.source_index == m.reference_index for m in matches)
        assert all(m.distance == 0 for m in matches)

    def test_nn_float_permuted(self):
        """Test L2 brute force against a permuted reference set."""
        src = float_descriptors()
        perm = np.random.default_rng(1).permutation(len(src))
        ref = src[perm]
        matches = DescriptorMatcher("MAT_BF", "SEL_NN", DescriptorFamily.FLOAT).match(src, ref)

        assert len(matches) == len(src)
        for m in matches:
            assert perm[m.reference_index] == m.source_index

    def test_nn_one_match_per_source(self):
        """Test that NN yields exactly one match per source descriptor."""
        matches = DescriptorMatcher().match(binary_descriptors(30, 1), binary_descriptors(50, 2))
        assert [m.source_index for m in matches] == list(range(30))
        assert all(0 <= m.reference_index < 50 for m in matches)

    def test_knn_not_more_than_nn(self):
        """Test that the ratio test only removes matches."""
        src, ref = binary_descriptors(80, 3), binary_descriptors(80, 4)
        nn = DescriptorMatcher("MAT_BF", "SEL_NN").match(src, ref)
        knn = DescriptorMatcher("MAT_BF", "SEL_KNN").match(src, ref)
        assert len(knn) <= len(nn)
        nn_pairs = {(m.source_index, m.reference_index) for m in nn}
        assert all((m.source_index, m.reference_index) in nn_pairs for m in knn)

    def test_knn_identical_descriptors(self):
        """Test that exact duplicates pass the ratio test."""
        desc = binary_descriptors()
        matches = DescriptorMatcher("MAT_BF", "SEL_KNN").match(desc, desc)
        assert len(matches) == len(desc)

    def test_knn_single_reference(self):
        """Test ratio matching against a single reference descriptor."""
        desc = binary_descriptors()
        assert DescriptorMatcher("MAT_BF", "SEL_KNN").match(desc, desc[:1]) == []

    def test_flann_float(self):
        """Test FLANN nearest neighbour on float descriptors."""
        desc = float_descriptors()
        matcher = DescriptorMatcher("MAT_FLANN", "SEL_NN", DescriptorFamily.FLOAT)
        matches = matcher.match(desc, desc)
        assert len(matches) == len(desc)
        assert sum(m.source_index == m.reference_index for m in matches) >= len(desc) - 2

    def test_flann_binary_conversion_logged(self, caplog):
        """Test that binary descriptors are converted for FLANN with a warning."""
        desc = binary_descriptors()
        matcher = DescriptorMatcher("MAT_FLANN", "SEL_KNN")
        with caplog.at_level(logging.WARNING, logger="vistamatch.matching.matcher"):
            matcher.match(desc, desc)
            matcher.match(desc, desc)
        warnings = [r for r in caplog.records if "float32" in r.getMessage()]
        assert len(warnings) == 1

    def test_empty_descriptors(self):
        """Test matching with missing descriptors."""
        matcher = DescriptorMatcher()
        desc = binary_descriptors()
        assert matcher.match(None, None) == []
        assert matcher.match(desc, None) == []
        assert matcher.match(None, desc) == []
        assert matcher.match(desc[:0], desc) == []

    def test_dimension_mismatch(self):
        """Test descriptors of different lengths."""
        with pytest.raises(ValueError):
            DescriptorMatcher().match(binary_descriptors(), binary_descriptors()[:, :16])

    def test_binary_matcher_rejects_float(self):
        """Test Hamming matching of float descriptors."""
        with pytest.raises(ValueError):
            DescriptorMatcher("MAT_BF", "SEL_NN", DescriptorFamily.BINARY).match(
                float_descriptors(), float_descriptors())

    def test_matches_in_source_order(self):
        """Test result ordering."""
        matches = DescriptorMatcher("MAT_BF", "SEL_KNN").match(binary_descriptors(40, 5),
                                                               binary_descriptors(40, 5))
        indices = [m.source_index for m in matches]
        assert indices == sorted(indices)


class TestMatchDescriptors:
    """Test the one-off matching helper."""

    def test_infers_float_family(self):
        """Test that float descriptors use L2 distance."""
        src = float_descriptors()
        matches = match_descriptors(src, src)
        assert all(m.distance == pytest.approx(0.0) for m in matches)

    def test_match_from_dmatch(self):
        """Test conversion from cv2.DMatch."""
        m = Match.from_dmatch(cv2.DMatch(2, 7, 3.5))
        assert (m.source_index, m.reference_index, m.distance) == (2, 7, 3.5)
