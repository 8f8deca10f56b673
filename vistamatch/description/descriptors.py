"""Descriptor extraction for detected keypoints."""

import logging
import time
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

import numpy as np

from vistamatch.detection.keypoint import Keypoint, from_cv_keypoints, to_cv_keypoints
from vistamatch.errors import UnsupportedAlgorithm
from vistamatch.preprocessing.grayscale import to_gray_uint8
from vistamatch.utils.opencv import create_brisk, feature_factory

logger = logging.getLogger(__name__)


class DescriptorFamily(Enum):
    BINARY = "DES_BINARY"
    FLOAT = "DES_HOG"


class DescriptorKind(Enum):
    BRISK = "BRISK"
    ORB = "ORB"
    AKAZE = "AKAZE"
    SIFT = "SIFT"
    FREAK = "FREAK"

    @property
    def family(self) -> DescriptorFamily:
        if self == DescriptorKind.SIFT:
            return DescriptorFamily.FLOAT
        return DescriptorFamily.BINARY

    @classmethod
    def parse(cls, name: Union[str, "DescriptorKind"]) -> "DescriptorKind":
        if isinstance(name, cls):
            return name
        try:
            return cls(str(name).upper())
        except ValueError:
            raise UnsupportedAlgorithm("descriptor", name) from None


class DescriptorExtractor:
    """Compute descriptors for keypoints with one algorithm."""

    def __init__(self, kind: Union[str, DescriptorKind] = DescriptorKind.BRISK,
                 params: Optional[Dict[str, Any]] = None):
        self.kind = DescriptorKind.parse(kind)
        self.params = dict(params or {})
        self._extractor = self._create_extractor()

    @property
    def family(self) -> DescriptorFamily:
        return self.kind.family

    def _create_extractor(self):
        kind = self.kind
        params = self.params
        if kind == DescriptorKind.BRISK:
            return create_brisk("descriptor", params)
        if kind == DescriptorKind.ORB:
            return feature_factory("descriptor", "ORB")(**params)
        if kind == DescriptorKind.AKAZE:
            return feature_factory("descriptor", "AKAZE")(**params)
        if kind == DescriptorKind.SIFT:
            return feature_factory("descriptor", "SIFT")(**params)
        if kind == DescriptorKind.FREAK:
            # FREAK lives in the contrib modules
            return feature_factory("descriptor", "FREAK")(**params)
        raise UnsupportedAlgorithm("descriptor", kind)

    def compute(self, image: np.ndarray,
                keypoints: Sequence[Keypoint]) -> Tuple[List[Keypoint], Optional[np.ndarray]]:
        """
        Describe keypoints.

        Args:
            image: Grayscale or BGR image the keypoints were detected in
            keypoints: Keypoints to describe

        Returns:
            (kept keypoints, descriptors); row i of descriptors belongs to
            kept keypoint i. Descriptors are None when nothing was described.
        """
        if not keypoints:
            return [], None

        gray = to_gray_uint8(image)
        start = time.time()
        cv_keypoints, descriptors = self._extractor.compute(gray, to_cv_keypoints(keypoints))
        duration = (time.time() - start) * 1000

        kept = from_cv_keypoints(cv_keypoints or [])
        if descriptors is None or len(kept) == 0:
            return [], None

        logger.debug("%s descriptor extraction for n=%d keypoints in %.2f ms",
                     self.kind.value, len(kept), duration)
        return kept, descriptors


def describe_keypoints(image: np.ndarray, keypoints: Sequence[Keypoint],
                       descriptor: Union[str, DescriptorKind] = "BRISK",
                       params: Optional[Dict[str, Any]] = None):
    """Describe keypoints with a one-off extractor."""
    return DescriptorExtractor(descriptor, params).compute(image, keypoints)
