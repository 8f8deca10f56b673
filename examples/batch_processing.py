"""Compare detector/descriptor combinations over an image sequence."""

from vistamatch.core import MatchingPipeline
from vistamatch.errors import IncompatibleAlgorithms, UnsupportedAlgorithm
from vistamatch.utils.io_handler import JSONWriter, list_images
from vistamatch.utils.logger import setup_logger

DETECTORS = ["SHITOMASI", "HARRIS", "FAST", "BRISK", "ORB", "AKAZE", "SIFT"]
DESCRIPTORS = ["BRISK", "ORB", "FREAK", "AKAZE", "SIFT"]


def main():
    """Run every combination and record keypoint and match counts."""
    logger = setup_logger('batch_processor')
    frames = list_images("test_data/frames")
    logger.info(f"Evaluating {len(DETECTORS) * len(DESCRIPTORS)} combinations on {len(frames)} frames")

    summary = []
    for detector in DETECTORS:
        for descriptor in DESCRIPTORS:
            config = {
                "detection": {"detector": detector},
                "description": {"descriptor": descriptor},
                "matching": {"selector": "SEL_KNN"}
            }
            try:
                pipeline = MatchingPipeline(config)
            except (UnsupportedAlgorithm, IncompatibleAlgorithms) as e:
                logger.warning(f"Skipping {detector}/{descriptor}: {e}")
                continue

            results = pipeline.process_sequence(frames)
            summary.append({
                'detector': detector,
                'descriptor': descriptor,
                'keypoints': [r['keypoints']['count'] for r in results if 'keypoints' in r],
                'matches': [r['matches']['count'] for r in results if 'matches' in r],
                'total_time_ms': round(pipeline.stats['total_processing_time'], 2)
            })

    JSONWriter.save_results(summary, "output/combination_summary.json")
    logger.info("Batch processing complete!")


if __name__ == "__main__":
    main()
