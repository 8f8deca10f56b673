"""
Harris corner keypoints with overlap-based non-maximum suppression.

The corner response is normalized to [0, 255] so that one threshold works
across images. Candidates are visited in row-major order and compared with
the keypoints accepted so far.
"""

import logging
from enum import Enum
from typing import Iterable, List, Optional, Union

import cv2
import numpy as np

from vistamatch.detection.keypoint import Keypoint, circle_overlap

logger = logging.getLogger(__name__)

SOBEL_APERTURES = (1, 3, 5, 7)


class SuppressionPolicy(Enum):
    """
    How a stronger candidate displaces overlapping keypoints.

    FIRST_MATCH replaces the first overlapping keypoint with a lower
    response and leaves any other overlapping keypoints in place, so the
    result may still contain overlapping pairs.

    BEST_MATCH keeps the candidate only if it is stronger than every
    keypoint it overlaps; it takes the slot of the first of them and the
    others are removed. No two surviving keypoints overlap by more than
    ``max_overlap``.
    """

    FIRST_MATCH = "first_match"
    BEST_MATCH = "best_match"


def _validate(block_size: int, aperture_size: int, max_overlap: float):
    if block_size < 1:
        raise ValueError(f"block_size must be >= 1, got {block_size}")
    if aperture_size not in SOBEL_APERTURES:
        raise ValueError(f"aperture_size must be one of {SOBEL_APERTURES}, got {aperture_size}")
    if not 0.0 <= max_overlap <= 1.0:
        raise ValueError(f"max_overlap must be in [0, 1], got {max_overlap}")


def harris_response(image: np.ndarray, block_size: int = 2, aperture_size: int = 3,
                    k: float = 0.04) -> np.ndarray:
    """
    Compute the Harris corner response normalized to [0, 255].

    Args:
        image: Single-channel image (BGR input is converted to gray)
        block_size: Neighbourhood size for the gradient covariance
        aperture_size: Sobel aperture
        k: Harris sensitivity constant

    Returns:
        float32 response map with the shape of the image; all zeros when the
        raw response is uniform
    """
    if image.size == 0:
        return np.zeros(image.shape[:2], dtype=np.float32)

    gray = cv2.cvtColor(image, cv2.COLOR_BGR2GRAY) if len(image.shape) == 3 else image

    dst = cv2.cornerHarris(np.float32(gray), block_size, aperture_size, k)
    if float(dst.max()) == float(dst.min()):
        return np.zeros_like(dst, dtype=np.float32)

    return cv2.normalize(dst, None, 0, 255, cv2.NORM_MINMAX, cv2.CV_32F)


def suppress_non_maxima(candidates: Iterable[Keypoint], max_overlap: float = 0.0,
                        policy: Union[str, SuppressionPolicy] = SuppressionPolicy.BEST_MATCH
                        ) -> List[Keypoint]:
    """
    Overlap-based non-maximum suppression in candidate order.

    Each candidate is checked against the accepted keypoints in the order
    they were accepted. A candidate that overlaps nothing by more than
    ``max_overlap`` is appended; otherwise ``policy`` decides whether it
    displaces an incumbent or is dropped. A displacing candidate takes the
    incumbent's position in the result.
    """
    policy = SuppressionPolicy(policy)
    candidates = list(candidates)
    capacity = len(candidates)
    xs = np.empty(capacity)
    ys = np.empty(capacity)
    sizes = np.empty(capacity)
    responses = np.empty(capacity)
    alive = np.zeros(capacity, dtype=bool)

    slots: List[Optional[Keypoint]] = []
    for cand in candidates:
        count = len(slots)
        if count:
            overlaps = circle_overlap(cand.x, cand.y, cand.size,
                                      xs[:count], ys[:count], sizes[:count])
            competing = np.flatnonzero(alive[:count] & (overlaps > max_overlap))
        else:
            competing = np.empty(0, dtype=np.intp)

        if competing.size == 0:
            slot = count
            slots.append(cand)
        elif policy == SuppressionPolicy.FIRST_MATCH:
            weaker = competing[responses[competing] < cand.response]
            if weaker.size == 0:
                continue
            slot = int(weaker[0])
            slots[slot] = cand
        else:
            if np.any(responses[competing] >= cand.response):
                continue
            slot = int(competing[0])
            slots[slot] = cand
            for other in competing[1:]:
                alive[other] = False
                slots[other] = None

        xs[slot] = cand.x
        ys[slot] = cand.y
        sizes[slot] = cand.size
        responses[slot] = cand.response
        alive[slot] = True

    return [kp for kp, keep in zip(slots, alive) if keep]


def keypoints_from_response(response: np.ndarray, threshold: float = 120,
                            aperture_size: int = 3, max_overlap: float = 0.0,
                            policy: Union[str, SuppressionPolicy] = SuppressionPolicy.BEST_MATCH
                            ) -> List[Keypoint]:
    """Threshold a normalized response map and suppress overlapping corners."""
    rows, cols = np.nonzero(response > threshold)  # row-major order
    size = 2.0 * aperture_size
    candidates = [
        Keypoint(x=float(c), y=float(r), size=size, response=float(response[r, c]))
        for r, c in zip(rows, cols)
    ]
    return suppress_non_maxima(candidates, max_overlap, policy)


def extract_harris_keypoints(image: np.ndarray, block_size: int = 2,
                             aperture_size: int = 3, harris_k: float = 0.04,
                             response_threshold: float = 120,
                             max_overlap: float = 0.0,
                             policy: Union[str, SuppressionPolicy] = SuppressionPolicy.BEST_MATCH
                             ) -> List[Keypoint]:
    """
    Detect Harris corners and keep only locally strongest ones.

    Args:
        image: Single-channel image
        block_size: Neighbourhood size for corner detection (>= 1)
        aperture_size: Odd Sobel aperture (1, 3, 5 or 7)
        harris_k: Harris detector free parameter
        response_threshold: Minimum normalized response, in [0, 255]
        max_overlap: Largest permitted overlap between two keypoints, in [0, 1]
        policy: Suppression policy; FIRST_MATCH reproduces the classic
            replace-first-weaker loop

    Returns:
        Keypoints of size ``2 * aperture_size`` in suppression order
    """
    _validate(block_size, aperture_size, max_overlap)
    response = harris_response(image, block_size, aperture_size, harris_k)
    keypoints = keypoints_from_response(response, response_threshold,
                                        aperture_size, max_overlap, policy)
    logger.debug("Harris kept %d keypoints above response %s",
                 len(keypoints), response_threshold)
    return keypoints
