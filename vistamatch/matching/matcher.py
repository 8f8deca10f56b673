"""Descriptor matching with nearest-neighbour or ratio-tested selection."""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Sequence, Union

import cv2
import numpy as np

from vistamatch.description.descriptors import DescriptorFamily
from vistamatch.errors import UnsupportedAlgorithm

logger = logging.getLogger(__name__)

DEFAULT_RATIO = 0.8

FLANN_INDEX_KDTREE = 1


@dataclass(frozen=True)
class Match:
    """Correspondence between a source and a reference keypoint."""

    source_index: int
    reference_index: int
    distance: float

    @classmethod
    def from_dmatch(cls, dmatch: cv2.DMatch) -> "Match":
        return cls(source_index=int(dmatch.queryIdx),
                   reference_index=int(dmatch.trainIdx),
                   distance=float(dmatch.distance))


class MatcherKind(Enum):
    BRUTE_FORCE = "MAT_BF"
    FLANN = "MAT_FLANN"

    @classmethod
    def parse(cls, name: Union[str, "MatcherKind"]) -> "MatcherKind":
        if isinstance(name, cls):
            return name
        key = str(name).upper()
        aliases = {
            "MAT_BF": cls.BRUTE_FORCE, "BF": cls.BRUTE_FORCE, "BRUTE_FORCE": cls.BRUTE_FORCE,
            "MAT_FLANN": cls.FLANN, "FLANN": cls.FLANN,
        }
        if key not in aliases:
            raise UnsupportedAlgorithm("matcher", name)
        return aliases[key]


class SelectorKind(Enum):
    NN = "SEL_NN"
    KNN = "SEL_KNN"

    @classmethod
    def parse(cls, name: Union[str, "SelectorKind"]) -> "SelectorKind":
        if isinstance(name, cls):
            return name
        key = str(name).upper()
        aliases = {"SEL_NN": cls.NN, "NN": cls.NN, "SEL_KNN": cls.KNN, "KNN": cls.KNN}
        if key not in aliases:
            raise UnsupportedAlgorithm("selector", name)
        return aliases[key]


def ratio_test(knn_matches: Sequence[Sequence], ratio: float = DEFAULT_RATIO) -> List:
    """
    Keep the best candidate of each k-NN list when it is clearly better.

    A best match is accepted only if ``best.distance < ratio * second.distance``.
    Lists with fewer than two candidates are dropped.
    """
    accepted = []
    for candidates in knn_matches:
        if len(candidates) < 2:
            continue
        best, second = candidates[0], candidates[1]
        if best.distance < ratio * second.distance:
            accepted.append(best)
    return accepted


def infer_family(descriptors: np.ndarray) -> DescriptorFamily:
    """Binary descriptors are packed into uint8 bytes."""
    if descriptors.dtype == np.uint8:
        return DescriptorFamily.BINARY
    return DescriptorFamily.FLOAT


class DescriptorMatcher:
    """Match source descriptors against reference descriptors."""

    def __init__(self, matcher: Union[str, MatcherKind] = MatcherKind.BRUTE_FORCE,
                 selector: Union[str, SelectorKind] = SelectorKind.NN,
                 family: Union[str, DescriptorFamily] = DescriptorFamily.BINARY,
                 ratio: float = DEFAULT_RATIO):
        """
        Initialize descriptor matcher.

        Args:
            matcher: Brute force or FLANN
            selector: Nearest neighbour or k-NN with ratio test
            family: Binary descriptors use Hamming distance, float ones L2
            ratio: Distance ratio for the k-NN selector
        """
        if not 0.0 < ratio <= 1.0:
            raise ValueError(f"ratio must be in (0, 1], got {ratio}")
        self.matcher_kind = MatcherKind.parse(matcher)
        self.selector_kind = SelectorKind.parse(selector)
        self.family = family if isinstance(family, DescriptorFamily) else DescriptorFamily(family)
        self.ratio = ratio
        self._conversion_logged = False

        if self.matcher_kind == MatcherKind.BRUTE_FORCE:
            norm = cv2.NORM_HAMMING if self.family == DescriptorFamily.BINARY else cv2.NORM_L2
            self._matcher = cv2.BFMatcher(norm, crossCheck=False)
        else:
            index_params = dict(algorithm=FLANN_INDEX_KDTREE, trees=5)
            search_params = dict(checks=50)
            self._matcher = cv2.FlannBasedMatcher(index_params, search_params)

    def _prepare(self, descriptors: np.ndarray) -> np.ndarray:
        if self.matcher_kind == MatcherKind.FLANN:
            if descriptors.dtype != np.float32:
                if not self._conversion_logged:
                    logger.warning("Converting %s descriptors to float32 for FLANN matching; "
                                   "binary descriptors lose their Hamming geometry",
                                   descriptors.dtype)
                    self._conversion_logged = True
                return descriptors.astype(np.float32)
            return descriptors

        if self.family == DescriptorFamily.BINARY:
            if descriptors.dtype != np.uint8:
                raise ValueError(f"Binary descriptors must be uint8, got {descriptors.dtype}")
            return descriptors
        if descriptors.dtype not in (np.uint8, np.float32):
            return descriptors.astype(np.float32)
        return descriptors

    def match(self, desc_source: Optional[np.ndarray],
              desc_ref: Optional[np.ndarray]) -> List[Match]:
        """
        Match descriptor sets.

        Args:
            desc_source: N x D source descriptors
            desc_ref: M x D reference descriptors

        Returns:
            Matches in source order
        """
        if desc_source is None or desc_ref is None:
            return []
        if len(desc_source) == 0 or len(desc_ref) == 0:
            return []
        if desc_source.ndim != 2 or desc_ref.ndim != 2:
            raise ValueError("Descriptors must be 2D matrices")
        if desc_source.shape[1] != desc_ref.shape[1]:
            raise ValueError(
                f"Descriptor dimensions differ: {desc_source.shape[1]} vs {desc_ref.shape[1]}"
            )

        src = self._prepare(desc_source)
        ref = self._prepare(desc_ref)

        if self.selector_kind == SelectorKind.NN:
            matches = [Match.from_dmatch(m) for m in self._matcher.match(src, ref)]
        else:
            if len(ref) < 2:
                logger.debug("Ratio test needs two reference descriptors, got %d", len(ref))
                return []
            knn = self._matcher.knnMatch(src, ref, k=2)
            candidates = [[Match.from_dmatch(m) for m in pair] for pair in knn]
            matches = ratio_test(candidates, self.ratio)
            logger.debug("Ratio test kept %d of %d matches", len(matches), len(candidates))

        return sorted(matches, key=lambda m: m.source_index)


def match_descriptors(desc_source: Optional[np.ndarray], desc_ref: Optional[np.ndarray],
                      matcher: Union[str, MatcherKind] = MatcherKind.BRUTE_FORCE,
                      selector: Union[str, SelectorKind] = SelectorKind.NN,
                      family: Optional[DescriptorFamily] = None,
                      ratio: float = DEFAULT_RATIO) -> List[Match]:
    """Match two descriptor sets; the descriptor family follows the dtype when not given."""
    if family is None:
        family = infer_family(desc_source) if desc_source is not None else DescriptorFamily.BINARY
    return DescriptorMatcher(matcher, selector, family, ratio).match(desc_source, desc_ref)
