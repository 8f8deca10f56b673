"""
vistamatch - keypoint detection, description and matching

Detectors: Shi-Tomasi, Harris, FAST, BRISK, ORB, AKAZE, SIFT
Matchers: brute force or FLANN, nearest neighbour or ratio-tested k-NN
"""

from .core import MatchingPipeline
from .errors import UnsupportedAlgorithm, IncompatibleAlgorithms

__all__ = ['MatchingPipeline', 'UnsupportedAlgorithm', 'IncompatibleAlgorithms']
__version__ = '1.0.0'
