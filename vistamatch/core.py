"""
vistamatch Core Pipeline
Keypoint detection, description and matching across consecutive frames
"""

import logging
import time
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Tuple, Union

import numpy as np

from vistamatch.config import DEFAULT_CONFIG, merge_config
from vistamatch.description.descriptors import DescriptorExtractor, DescriptorKind
from vistamatch.detection.detectors import DetectorKind, KeypointDetector
from vistamatch.detection.filters import filter_by_region, limit_keypoints
from vistamatch.detection.keypoint import Keypoint
from vistamatch.errors import IncompatibleAlgorithms
from vistamatch.matching.matcher import DescriptorMatcher, Match
from vistamatch.preprocessing.grayscale import to_gray_uint8
from vistamatch.utils.io_handler import load_grayscale
from vistamatch.utils.metrics import PerformanceMetrics, summarize_keypoints, summarize_matches

logger = logging.getLogger(__name__)

FrameInput = Union[str, Path, np.ndarray]


@dataclass
class Frame:
    """One processed frame held in the ring buffer."""

    frame_id: str
    keypoints: List[Keypoint] = field(default_factory=list)
    descriptors: Optional[np.ndarray] = None
    matches: List[Match] = field(default_factory=list)


class MatchingPipeline:
    """Detect, describe and match keypoints frame by frame"""

    def __init__(self, config: Dict[str, Any] = None):
        """
        Initialize matching pipeline

        Args:
            config: Configuration overrides merged over DEFAULT_CONFIG (optional)

        Raises:
            UnsupportedAlgorithm: An algorithm name is unknown or unavailable
            IncompatibleAlgorithms: Detector and descriptor cannot work together
        """
        self.config = merge_config(DEFAULT_CONFIG, config)
        detection = self.config["detection"]
        description = self.config["description"]
        matching = self.config["matching"]

        detector_kind = DetectorKind.parse(detection["detector"])
        descriptor_kind = DescriptorKind.parse(description["descriptor"])
        if descriptor_kind == DescriptorKind.AKAZE and detector_kind != DetectorKind.AKAZE:
            raise IncompatibleAlgorithms(
                f"AKAZE descriptors require AKAZE keypoints, got {detector_kind.value}"
            )

        self.detector = KeypointDetector(detector_kind,
                                         detection.get(detector_kind.value.lower()))
        self.extractor = DescriptorExtractor(descriptor_kind,
                                             description.get(descriptor_kind.value.lower()))
        self.matcher = DescriptorMatcher(matching["matcher"], matching["selector"],
                                         family=self.extractor.family,
                                         ratio=float(matching.get("ratio", 0.8)))

        region = detection.get("focus_region")
        self.focus_region = tuple(region) if region is not None else None
        self.max_keypoints = detection.get("max_keypoints")

        buffer_size = int(self.config["pipeline"]["buffer_size"])
        if buffer_size < 2:
            raise ValueError(f"buffer_size must be >= 2, got {buffer_size}")
        self.buffer = deque(maxlen=buffer_size)

        self.stats = {
            'total_frames': 0,
            'failed_frames': 0,
            'total_matches': 0,
            'total_processing_time': 0.0
        }

        logger.info("Pipeline configured: detector=%s descriptor=%s matcher=%s selector=%s",
                    detector_kind.value, descriptor_kind.value,
                    self.matcher.matcher_kind.value, self.matcher.selector_kind.value)

    def _load(self, frame_input: FrameInput) -> Tuple[np.ndarray, str]:
        if isinstance(frame_input, (str, Path)):
            image = load_grayscale(frame_input)
            frame_id = Path(frame_input).stem
        else:
            image = frame_input
            frame_id = f"frame_{self.stats['total_frames']:04d}"

        if image is None:
            raise ValueError(f"Failed to load frame from {frame_input}")

        return to_gray_uint8(image), frame_id

    def extract(self, image: np.ndarray,
                metrics: Optional[PerformanceMetrics] = None
                ) -> Tuple[List[Keypoint], Optional[np.ndarray]]:
        """
        Detect, filter and describe keypoints in a grayscale image

        Returns:
            (keypoints, descriptors) with one descriptor row per keypoint
        """
        metrics = metrics or PerformanceMetrics()

        metrics.start_timer('detection')
        keypoints = self.detector.detect(image)
        metrics.stop_timer('detection')

        keypoints = filter_by_region(keypoints, self.focus_region)
        keypoints = limit_keypoints(keypoints, self.max_keypoints)

        metrics.start_timer('description')
        keypoints, descriptors = self.extractor.compute(image, keypoints)
        metrics.stop_timer('description')

        return keypoints, descriptors

    def match_images(self, source: FrameInput,
                     reference: FrameInput) -> Tuple[List[Keypoint], List[Keypoint], List[Match]]:
        """
        Match a source image against a reference image

        The frame buffer is left untouched.
        """
        source_image, _ = self._load(source)
        reference_image, _ = self._load(reference)
        source_kps, source_desc = self.extract(source_image)
        reference_kps, reference_desc = self.extract(reference_image)
        matches = self.matcher.match(source_desc, reference_desc)
        return source_kps, reference_kps, matches

    def process_frame(self, frame_input: FrameInput) -> Dict[str, Any]:
        """
        Process the next frame of a sequence

        The frame is matched (as source) against the previous frame in the
        buffer (as reference).

        Args:
            frame_input: Path to image file or numpy array

        Returns:
            Dictionary with counts, statistics, matches and timing metadata
        """
        start_time = time.time()
        image, frame_id = self._load(frame_input)
        self.stats['total_frames'] += 1
        metrics = PerformanceMetrics()

        try:
            keypoints, descriptors = self.extract(image, metrics)
            frame = Frame(frame_id=frame_id, keypoints=keypoints, descriptors=descriptors)

            previous = self.buffer[-1] if self.buffer else None
            if previous is not None:
                metrics.start_timer('matching')
                frame.matches = self.matcher.match(descriptors, previous.descriptors)
                metrics.stop_timer('matching')

            self.buffer.append(frame)

            if previous is None:
                status = "first_frame"
            elif frame.matches:
                status = "success"
            else:
                status = "no_matches"

            processing_time = (time.time() - start_time) * 1000
            self.stats['total_matches'] += len(frame.matches)
            self.stats['total_processing_time'] += processing_time

            logger.info("Frame %s: %d keypoints, %d matches (%s)",
                        frame_id, len(keypoints), len(frame.matches), status)

            return {
                "system": "vistamatch",
                "timestamp": datetime.now().isoformat(),
                "frame_id": frame_id,
                "reference_frame_id": previous.frame_id if previous else None,
                "status": status,
                "keypoints": summarize_keypoints(keypoints),
                "matches": summarize_matches(frame.matches),
                "correspondences": [
                    {
                        "source_index": m.source_index,
                        "reference_index": m.reference_index,
                        "distance": round(m.distance, 4)
                    }
                    for m in frame.matches
                ],
                "configuration": {
                    "detector": self.detector.kind.value,
                    "descriptor": self.extractor.kind.value,
                    "matcher": self.matcher.matcher_kind.value,
                    "selector": self.matcher.selector_kind.value
                },
                "processing_metadata": {
                    "processing_time_ms": round(processing_time, 2),
                    "stage_times_ms": {k: round(v, 2) for k, v in metrics.get_summary().items()},
                    "image_size": {
                        "width": int(image.shape[1]),
                        "height": int(image.shape[0])
                    },
                    "errors": []
                }
            }

        except Exception as e:
            logger.exception("Frame %s failed", frame_id)
            self.stats['failed_frames'] += 1
            return {
                "system": "vistamatch",
                "timestamp": datetime.now().isoformat(),
                "frame_id": frame_id,
                "status": "failed",
                "processing_metadata": {
                    "processing_time_ms": (time.time() - start_time) * 1000,
                    "errors": [str(e)]
                }
            }

    def process_sequence(self, frame_inputs: Iterable[FrameInput]) -> List[Dict[str, Any]]:
        """Process frames in order and return one result per frame."""
        return [self.process_frame(frame_input) for frame_input in frame_inputs]

    def reset(self):
        """Forget buffered frames and statistics."""
        self.buffer.clear()
        for key in self.stats:
            self.stats[key] = 0.0 if key == 'total_processing_time' else 0
