"""Tests for descriptor extraction."""

import cv2
import numpy as np
import pytest

from vistamatch.description.descriptors import (
    DescriptorExtractor, DescriptorFamily, DescriptorKind, describe_keypoints
)
from vistamatch.detection.detectors import KeypointDetector
from vistamatch.detection.keypoint import Keypoint
from vistamatch.errors import UnsupportedAlgorithm

requires_sift = pytest.mark.skipif(not hasattr(cv2, "SIFT_create"),
                                   reason="SIFT not available in this OpenCV build")


def make_scene(width=320, height=240, seed=11):
    """Textured test scene made of random filled rectangles."""
    rng = np.random.default_rng(seed)
    image = np.full((height, width), 40, dtype=np.uint8)
    for _ in range(30):
        x1, y1 = int(rng.integers(0, width - 20)), int(rng.integers(0, height - 20))
        x2, y2 = x1 + int(rng.integers(10, 60)), y1 + int(rng.integers(10, 60))
        cv2.rectangle(image, (x1, y1), (x2, y2), int(rng.integers(80, 256)), -1)
    return image


class TestDescriptorKind:
    """Test descriptor name resolution and families."""

    @pytest.mark.parametrize("kind", [DescriptorKind.BRISK, DescriptorKind.ORB,
                                      DescriptorKind.AKAZE, DescriptorKind.FREAK])
    def test_binary_family(self, kind):
        """Test binary descriptor kinds."""
        assert kind.family is DescriptorFamily.BINARY

    def test_float_family(self):
        """Test that SIFT is a floating-point descriptor."""
        assert DescriptorKind.SIFT.family is DescriptorFamily.FLOAT

    def test_parse(self):
        """Test case-insensitive names."""
        assert DescriptorKind.parse("orb") is DescriptorKind.ORB
        assert DescriptorKind.parse(DescriptorKind.SIFT) is DescriptorKind.SIFT

    def test_unknown_descriptor(self):
        """Test an unknown descriptor name."""
        with pytest.raises(UnsupportedAlgorithm):
            DescriptorKind.parse("SURF")
        with pytest.raises(UnsupportedAlgorithm):
            DescriptorExtractor("BRIEF")


class TestDescriptorExtractor:
    """Test descriptor computation."""

    def test_default_extractor(self):
        """Test DescriptorExtractor defaults."""
        extractor = DescriptorExtractor()
        assert extractor.kind is DescriptorKind.BRISK
        assert extractor.family is DescriptorFamily.BINARY

    def test_brisk_descriptors(self):
        """Test BRISK descriptors for Shi-Tomasi keypoints."""
        image = make_scene()
        keypoints = KeypointDetector("SHITOMASI").detect(image)
        kept, descriptors = DescriptorExtractor("BRISK").compute(image, keypoints)

        assert kept
        assert descriptors.dtype == np.uint8
        assert descriptors.shape == (len(kept), 64)
        assert all(isinstance(kp, Keypoint) for kp in kept)

    def test_orb_descriptors(self):
        """Test ORB descriptors for ORB keypoints."""
        image = make_scene()
        keypoints = KeypointDetector("ORB").detect(image)
        kept, descriptors = DescriptorExtractor("ORB").compute(image, keypoints)
        assert descriptors.shape == (len(kept), 32)

    def test_akaze_descriptors(self):
        """Test AKAZE descriptors for AKAZE keypoints."""
        image = make_scene()
        keypoints = KeypointDetector("AKAZE").detect(image)
        kept, descriptors = DescriptorExtractor("AKAZE").compute(image, keypoints)
        assert descriptors.dtype == np.uint8
        assert descriptors.shape[0] == len(kept)

    @requires_sift
    def test_sift_descriptors(self):
        """Test SIFT descriptors for SIFT keypoints."""
        image = make_scene()
        keypoints = KeypointDetector("SIFT").detect(image)
        kept, descriptors = DescriptorExtractor("SIFT").compute(image, keypoints)
        assert descriptors.dtype == np.float32
        assert descriptors.shape == (len(kept), 128)

    def test_no_keypoints(self):
        """Test describing an empty keypoint list."""
        kept, descriptors = DescriptorExtractor("BRISK").compute(make_scene(), [])
        assert kept == []
        assert descriptors is None

    def test_border_keypoints_dropped(self):
        """Test that keypoints too close to the border are not described."""
        image = make_scene()
        border = Keypoint(x=0, y=0, size=4)
        keypoints = [border] + KeypointDetector("SHITOMASI").detect(image)[:20]
        kept, descriptors = DescriptorExtractor("BRISK").compute(image, keypoints)
        assert (0.0, 0.0) not in [kp.pt for kp in kept]
        assert len(kept) == descriptors.shape[0]

    def test_freak_requires_contrib(self):
        """Test FREAK without the contrib modules."""
        if hasattr(cv2, "xfeatures2d"):
            pytest.skip("contrib modules installed")
        with pytest.raises(UnsupportedAlgorithm):
            DescriptorExtractor("FREAK")

    @pytest.mark.parametrize("kind,factory", [
        ("BRISK", "BRISK_create"),
        ("AKAZE", "AKAZE_create"),
        ("SIFT", "SIFT_create"),
    ])
    def test_missing_opencv_factory(self, monkeypatch, kind, factory):
        """Test a descriptor missing from the OpenCV build."""
        monkeypatch.delattr(cv2, factory, raising=False)
        monkeypatch.delattr(cv2, "xfeatures2d", raising=False)
        with pytest.raises(UnsupportedAlgorithm):
            DescriptorExtractor(kind)

    def test_describe_keypoints_function(self):
        """Test the one-off helper."""
        image = make_scene()
        keypoints = KeypointDetector("ORB").detect(image)
        kept, descriptors = describe_keypoints(image, keypoints, "ORB")
        assert len(kept) == len(descriptors)
