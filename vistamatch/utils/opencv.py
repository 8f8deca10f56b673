"""
OpenCV feature factory lookup
"""

import cv2

from vistamatch.errors import UnsupportedAlgorithm


def feature_factory(role: str, algorithm: str):
    """
    Find the ``<algorithm>_create`` factory in the installed OpenCV build.

    The main ``cv2`` namespace is searched first, then the contrib
    ``cv2.xfeatures2d`` module.

    Raises:
        UnsupportedAlgorithm: No build module provides the factory
    """
    name = f"{algorithm}_create"
    for module in (cv2, getattr(cv2, "xfeatures2d", None)):
        factory = getattr(module, name, None) if module is not None else None
        if factory is not None:
            return factory
    raise UnsupportedAlgorithm(role, algorithm)


def create_brisk(role: str, params=None):
    """Create BRISK from ``threshold``, ``octaves`` and ``pattern_scale`` keys."""
    params = params or {}
    return feature_factory(role, "BRISK")(
        thresh=int(params.get("threshold", 30)),
        octaves=int(params.get("octaves", 3)),
        patternScale=float(params.get("pattern_scale", 1.0)),
    )
