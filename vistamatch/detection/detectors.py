"""Keypoint detectors selected by algorithm kind."""

import logging
import time
from enum import Enum
from typing import Any, Dict, List, Optional, Union

import cv2
import numpy as np

from vistamatch.detection.harris import SuppressionPolicy, extract_harris_keypoints
from vistamatch.detection.keypoint import Keypoint, from_cv_keypoints
from vistamatch.errors import UnsupportedAlgorithm
from vistamatch.preprocessing.grayscale import to_gray_uint8
from vistamatch.utils.opencv import create_brisk, feature_factory

logger = logging.getLogger(__name__)


class DetectorKind(Enum):
    SHITOMASI = "SHITOMASI"
    HARRIS = "HARRIS"
    FAST = "FAST"
    BRISK = "BRISK"
    ORB = "ORB"
    AKAZE = "AKAZE"
    SIFT = "SIFT"

    @classmethod
    def parse(cls, name: Union[str, "DetectorKind"]) -> "DetectorKind":
        """Resolve a detector name such as ``"orb"`` or ``"Shi-Tomasi"``."""
        if isinstance(name, cls):
            return name
        key = str(name).upper().replace("-", "").replace("_", "")
        try:
            return cls(key)
        except ValueError:
            raise UnsupportedAlgorithm("detector", name) from None


FAST_TYPES = {
    "TYPE_5_8": cv2.FAST_FEATURE_DETECTOR_TYPE_5_8,
    "TYPE_7_12": cv2.FAST_FEATURE_DETECTOR_TYPE_7_12,
    "TYPE_9_16": cv2.FAST_FEATURE_DETECTOR_TYPE_9_16,
}


class KeypointDetector:
    """Detect keypoints with one algorithm, configured once."""

    def __init__(self, kind: Union[str, DetectorKind] = DetectorKind.SHITOMASI,
                 params: Optional[Dict[str, Any]] = None):
        """
        Initialize keypoint detector.

        Args:
            kind: Detector kind or its name
            params: Algorithm parameters, e.g. the per-algorithm section of
                ``DEFAULT_CONFIG["detection"]``

        Raises:
            UnsupportedAlgorithm: Unknown name or algorithm missing from OpenCV
        """
        self.kind = DetectorKind.parse(kind)
        self.params = dict(params or {})
        self._detector = self._create_detector()

    def _create_detector(self):
        kind = self.kind
        params = self.params
        if kind == DetectorKind.SHITOMASI:
            return None
        if kind == DetectorKind.HARRIS:
            policy = params.get("suppression", SuppressionPolicy.BEST_MATCH)
            try:
                self.params["suppression"] = SuppressionPolicy(policy)
            except ValueError:
                raise UnsupportedAlgorithm("suppression policy", policy) from None
            return None
        if kind == DetectorKind.FAST:
            fast_type = params.get("type", "TYPE_9_16")
            if fast_type not in FAST_TYPES:
                raise UnsupportedAlgorithm("FAST type", fast_type)
            return feature_factory("detector", "FastFeatureDetector")(
                threshold=int(params.get("threshold", 80)),
                nonmaxSuppression=bool(params.get("nonmax_suppression", True)),
                type=FAST_TYPES[fast_type],
            )
        if kind == DetectorKind.BRISK:
            return create_brisk("detector", params)
        if kind == DetectorKind.ORB:
            return feature_factory("detector", "ORB")(**params)
        if kind == DetectorKind.AKAZE:
            return feature_factory("detector", "AKAZE")(**params)
        if kind == DetectorKind.SIFT:
            return feature_factory("detector", "SIFT")(**params)
        raise UnsupportedAlgorithm("detector", kind)

    def detect(self, image: np.ndarray) -> List[Keypoint]:
        """
        Detect keypoints in image.

        Args:
            image: Grayscale or BGR image

        Returns:
            List of keypoints
        """
        gray = to_gray_uint8(image)
        if gray.size == 0:
            return []

        start = time.time()
        if self.kind == DetectorKind.SHITOMASI:
            keypoints = self._detect_shi_tomasi(gray)
        elif self.kind == DetectorKind.HARRIS:
            keypoints = self._detect_harris(gray)
        else:
            keypoints = from_cv_keypoints(self._detector.detect(gray, None))
        duration = (time.time() - start) * 1000

        logger.debug("%s detection with n=%d keypoints in %.2f ms",
                     self.kind.value, len(keypoints), duration)
        return keypoints

    def _detect_shi_tomasi(self, gray: np.ndarray) -> List[Keypoint]:
        block_size = int(self.params.get("block_size", 4))
        max_overlap = float(self.params.get("max_overlap", 0.0))
        quality_level = float(self.params.get("quality_level", 0.01))
        k = float(self.params.get("k", 0.04))

        min_distance = (1.0 - max_overlap) * block_size
        max_corners = int(gray.shape[0] * gray.shape[1] / max(1.0, min_distance))

        corners = cv2.goodFeaturesToTrack(
            gray, max_corners, quality_level, min_distance,
            mask=None, blockSize=block_size, useHarrisDetector=False, k=k
        )
        if corners is None:
            return []

        eigen = cv2.cornerMinEigenVal(gray, block_size)
        h, w = gray.shape
        keypoints = []
        for x, y in corners.reshape(-1, 2):
            col = min(max(int(round(x)), 0), w - 1)
            row = min(max(int(round(y)), 0), h - 1)
            keypoints.append(Keypoint(x=float(x), y=float(y), size=float(block_size),
                                      response=max(float(eigen[row, col]), 0.0)))
        return keypoints

    def _detect_harris(self, gray: np.ndarray) -> List[Keypoint]:
        return extract_harris_keypoints(
            gray,
            block_size=int(self.params.get("block_size", 2)),
            aperture_size=int(self.params.get("aperture_size", 3)),
            harris_k=float(self.params.get("k", 0.04)),
            response_threshold=float(self.params.get("min_response", 120)),
            max_overlap=float(self.params.get("max_overlap", 0.0)),
            policy=self.params["suppression"],
        )


def detect_keypoints(image: np.ndarray, detector: Union[str, DetectorKind] = "SHITOMASI",
                     params: Optional[Dict[str, Any]] = None) -> List[Keypoint]:
    """Detect keypoints with a one-off detector."""
    return KeypointDetector(detector, params).detect(image)
