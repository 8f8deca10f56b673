"""Performance metrics and keypoint/match statistics."""

import numpy as np
from scipy import stats
from typing import Dict, Sequence
from time import time


class PerformanceMetrics:
    """Track performance metrics."""

    def __init__(self):
        self.start_times = {}
        self.durations = {}

    def start_timer(self, name: str):
        """Start timing an operation."""
        self.start_times[name] = time()

    def stop_timer(self, name: str) -> float:
        """Stop timing and return duration in milliseconds."""
        if name not in self.start_times:
            return 0.0
        duration = (time() - self.start_times.pop(name)) * 1000
        self.durations[name] = duration
        return duration

    def get_summary(self) -> Dict[str, float]:
        """Get summary of all timings."""
        return self.durations.copy()


def _distribution(values: Sequence[float]) -> Dict[str, float]:
    values = np.asarray(values, dtype=np.float64)
    if values.size == 0:
        return {'mean': 0.0, 'variance': 0.0, 'min': 0.0, 'max': 0.0}
    summary = stats.describe(values, ddof=0)
    return {
        'mean': float(summary.mean),
        'variance': float(summary.variance),
        'min': float(summary.minmax[0]),
        'max': float(summary.minmax[1])
    }


def summarize_keypoints(keypoints: Sequence) -> Dict:
    """Count keypoints and describe their neighbourhood size and response."""
    return {
        'count': len(keypoints),
        'size': _distribution([kp.size for kp in keypoints]),
        'response': _distribution([kp.response for kp in keypoints])
    }


def summarize_matches(matches: Sequence) -> Dict:
    """Count matches and describe their descriptor distances."""
    return {
        'count': len(matches),
        'distance': _distribution([m.distance for m in matches])
    }
