"""Keypoint value type and support-region overlap."""

from dataclasses import dataclass
from typing import Iterable, List

import cv2
import numpy as np


def circle_overlap(x1, y1, size1, x2, y2, size2):
    """
    Intersection-over-union of circular keypoint support regions.

    Arguments broadcast against each other, so one keypoint can be compared
    with an array of keypoints in a single call. Radii are ``size / 2``. A
    circle lying fully inside the other overlaps by ``min(r)^2 / max(r)^2``;
    disjoint or touching circles overlap by 0.

    Returns:
        Overlap ratio in [0, 1] (numpy scalar or array)
    """
    x1, y1, size1, x2, y2, size2 = np.broadcast_arrays(
        *(np.asarray(v, dtype=np.float64) for v in (x1, y1, size1, x2, y2, size2))
    )
    shape = x1.shape
    x1, y1, size1, x2, y2, size2 = (v.ravel() for v in (x1, y1, size1, x2, y2, size2))
    a = size1 * 0.5
    b = size2 * 0.5
    d = np.hypot(x1 - x2, y1 - y2)
    r_min = np.minimum(a, b)
    r_max = np.maximum(a, b)

    overlap = np.zeros(d.shape, dtype=np.float64)

    contained = (r_min + d <= r_max) & (r_max > 0)
    overlap[contained] = (r_min[contained] ** 2) / (r_max[contained] ** 2)

    crossing = ~contained & (d < a + b)
    if np.any(crossing):
        a_c, b_c, d_c = a[crossing], b[crossing], d[crossing]
        cos_a = np.clip((d_c ** 2 + a_c ** 2 - b_c ** 2) / (2 * d_c * a_c), -1.0, 1.0)
        cos_b = np.clip((d_c ** 2 + b_c ** 2 - a_c ** 2) / (2 * d_c * b_c), -1.0, 1.0)
        kite = (-d_c + a_c + b_c) * (d_c + a_c - b_c) * (d_c - a_c + b_c) * (d_c + a_c + b_c)
        intersection = (a_c ** 2 * np.arccos(cos_a) + b_c ** 2 * np.arccos(cos_b)
                        - 0.5 * np.sqrt(np.maximum(kite, 0.0)))
        union = np.pi * (a_c ** 2 + b_c ** 2) - intersection
        overlap[crossing] = intersection / union

    return overlap.reshape(shape)


@dataclass(frozen=True)
class Keypoint:
    """A salient image location with support size and strength."""

    x: float
    y: float
    size: float
    response: float = 0.0
    angle: float = -1.0
    octave: int = 0
    class_id: int = -1

    @property
    def pt(self):
        return (self.x, self.y)

    def overlap(self, other: "Keypoint") -> float:
        """Overlap ratio of the two support circles."""
        return float(circle_overlap(self.x, self.y, self.size,
                                    other.x, other.y, other.size))

    def to_cv(self) -> cv2.KeyPoint:
        return cv2.KeyPoint(float(self.x), float(self.y), float(self.size),
                            float(self.angle), float(self.response),
                            int(self.octave), int(self.class_id))

    @classmethod
    def from_cv(cls, kp: cv2.KeyPoint) -> "Keypoint":
        return cls(x=float(kp.pt[0]), y=float(kp.pt[1]), size=float(kp.size),
                   response=max(float(kp.response), 0.0), angle=float(kp.angle),
                   octave=int(kp.octave), class_id=int(kp.class_id))


def to_cv_keypoints(keypoints: Iterable[Keypoint]) -> List[cv2.KeyPoint]:
    """Convert keypoints to OpenCV keypoints."""
    return [kp.to_cv() for kp in keypoints]


def from_cv_keypoints(keypoints: Iterable[cv2.KeyPoint]) -> List[Keypoint]:
    """Convert OpenCV keypoints to immutable keypoints."""
    return [Keypoint.from_cv(kp) for kp in keypoints]
