"""
Headless image-pair matching - no GUI windows, just prints and saves results
"""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent))

from vistamatch.config import load_config
from vistamatch.core import MatchingPipeline
from vistamatch.utils.io_handler import JSONWriter
from vistamatch.utils.logger import setup_logger
from vistamatch.utils.metrics import summarize_keypoints, summarize_matches


def main():
    """Match a source image against a reference image."""

    if len(sys.argv) < 3:
        print("Usage: python match_images.py <source_image> <reference_image> [config.yaml]")
        print("\nExample:")
        print("  python match_images.py images/0001.png images/0000.png")
        sys.exit(1)

    source_path, reference_path = sys.argv[1], sys.argv[2]
    config_path = sys.argv[3] if len(sys.argv) > 3 else None

    for path in (source_path, reference_path):
        if not Path(path).exists():
            print(f"[X] Error: Image not found at '{path}'")
            sys.exit(1)

    setup_logger()
    pipeline = MatchingPipeline(load_config(config_path))

    print("=" * 60)
    print("vistamatch - Image Pair Matching")
    print("=" * 60)
    print(f"Source:    {source_path}")
    print(f"Reference: {reference_path}")

    source_kps, reference_kps, matches = pipeline.match_images(source_path, reference_path)

    print("\n" + "=" * 60)
    print("RESULTS")
    print("=" * 60)
    print(f"Detector:            {pipeline.detector.kind.value}")
    print(f"Descriptor:          {pipeline.extractor.kind.value}")
    print(f"Source keypoints:    {len(source_kps)}")
    print(f"Reference keypoints: {len(reference_kps)}")
    print(f"Matches:             {len(matches)}")
    print("=" * 60)

    output = {
        "source": source_path,
        "reference": reference_path,
        "source_keypoints": summarize_keypoints(source_kps),
        "reference_keypoints": summarize_keypoints(reference_kps),
        "matches": summarize_matches(matches),
        "correspondences": [
            [m.source_index, m.reference_index, m.distance] for m in matches
        ]
    }
    json_path = Path("output") / "pair_matches.json"
    JSONWriter.save_results(output, str(json_path))
    print(f"[OK] Matches saved to: {json_path}")


if __name__ == "__main__":
    main()
