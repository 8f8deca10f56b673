"""Basic usage example for vistamatch."""

from vistamatch.detection.detectors import KeypointDetector
from vistamatch.description.descriptors import DescriptorExtractor
from vistamatch.matching.matcher import DescriptorMatcher
from vistamatch.utils.io_handler import load_grayscale


def main():
    """Detect, describe and match keypoints in two images."""
    source = load_grayscale("test_data/frames/0001.png")
    reference = load_grayscale("test_data/frames/0000.png")

    if source is None or reference is None:
        print("Error: Could not load test_data/frames/0000.png and 0001.png")
        return

    detector = KeypointDetector("HARRIS")
    extractor = DescriptorExtractor("BRISK")
    matcher = DescriptorMatcher("MAT_BF", "SEL_KNN", family=extractor.family)

    print("Detecting keypoints...")
    source_kps, source_desc = extractor.compute(source, detector.detect(source))
    reference_kps, reference_desc = extractor.compute(reference, detector.detect(reference))
    print(f"Described {len(source_kps)} / {len(reference_kps)} keypoints")

    print("Matching descriptors...")
    matches = matcher.match(source_desc, reference_desc)
    print(f"Found {len(matches)} matches")


if __name__ == "__main__":
    main()
