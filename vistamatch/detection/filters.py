"""Keypoint filtering utilities."""

from typing import List, Optional, Sequence, Tuple

from vistamatch.detection.keypoint import Keypoint


def filter_by_region(keypoints: Sequence[Keypoint],
                     region: Optional[Tuple[float, float, float, float]]) -> List[Keypoint]:
    """
    Keep keypoints inside a rectangle.

    Args:
        keypoints: Keypoints to filter
        region: (x, y, width, height); None keeps everything

    Returns:
        Keypoints with x <= kp.x < x + width and y <= kp.y < y + height
    """
    if region is None:
        return list(keypoints)
    x, y, width, height = region
    if width < 0 or height < 0:
        raise ValueError(f"Region size must be non-negative, got {width}x{height}")
    return [kp for kp in keypoints
            if x <= kp.x < x + width and y <= kp.y < y + height]


def limit_keypoints(keypoints: Sequence[Keypoint],
                    max_keypoints: Optional[int]) -> List[Keypoint]:
    """Keep the strongest keypoints by response; ties keep detection order."""
    if max_keypoints is None:
        return list(keypoints)
    if max_keypoints < 0:
        raise ValueError(f"max_keypoints must be >= 0, got {max_keypoints}")
    ranked = sorted(keypoints, key=lambda kp: kp.response, reverse=True)
    return ranked[:max_keypoints]
