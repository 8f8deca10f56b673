"""
Headless sequence matching - matches every frame against the previous one
"""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent))

from vistamatch.config import load_config
from vistamatch.core import MatchingPipeline
from vistamatch.utils.io_handler import JSONWriter, list_images
from vistamatch.utils.logger import setup_logger, create_session_log_file


def main():
    """Process an image directory as a frame sequence."""

    if len(sys.argv) < 2:
        print("Usage: python match_sequence.py <image_directory> [config.yaml]")
        print("\nExample:")
        print("  python match_sequence.py images/KITTI/2011_09_26/image_00/data")
        sys.exit(1)

    image_dir = sys.argv[1]
    config_path = sys.argv[2] if len(sys.argv) > 2 else None

    if not Path(image_dir).is_dir():
        print(f"[X] Error: Directory not found at '{image_dir}'")
        sys.exit(1)

    logger = setup_logger(log_file=create_session_log_file())
    pipeline = MatchingPipeline(load_config(config_path))

    frames = list_images(image_dir)
    logger.info(f"Processing {len(frames)} frames from {image_dir}")

    results = pipeline.process_sequence(frames)

    failed = sum(1 for r in results if r["status"] == "failed")
    print("\n" + "=" * 60)
    print("SUMMARY")
    print("=" * 60)
    print(f"Frames processed: {pipeline.stats['total_frames']}")
    print(f"Failed frames:    {failed}")
    print(f"Total matches:    {pipeline.stats['total_matches']}")
    print(f"Total time:       {pipeline.stats['total_processing_time']:.0f}ms")
    print("=" * 60)

    json_path = Path("output") / "sequence_matches.json"
    JSONWriter.save_results(results, str(json_path))
    print(f"[OK] Results saved to: {json_path}")


if __name__ == "__main__":
    main()
