"""I/O handling for image sequences and JSON output."""

import cv2
import json
import numpy as np
from pathlib import Path
from typing import Dict, List, Optional, Union

IMAGE_EXTENSIONS = ('.png', '.jpg', '.jpeg', '.bmp', '.tif', '.tiff')


class JSONWriter:
    """Write matching results to JSON."""

    @staticmethod
    def save_results(output: Union[Dict, List], output_path: str, indent: int = 2):
        """Save results to JSON file."""
        Path(output_path).parent.mkdir(parents=True, exist_ok=True)
        with open(output_path, 'w') as f:
            json.dump(output, f, indent=indent)

    @staticmethod
    def load_results(input_path: str) -> Union[Dict, List]:
        """Load results from JSON file."""
        with open(input_path, 'r') as f:
            return json.load(f)


def load_grayscale(image_path: str) -> Optional[np.ndarray]:
    """Load image from file as 8-bit grayscale."""
    return cv2.imread(str(image_path), cv2.IMREAD_GRAYSCALE)


def list_images(directory: str) -> List[Path]:
    """List image files in a directory in name order."""
    root = Path(directory)
    if not root.is_dir():
        raise ValueError(f"Not a directory: {directory}")
    return sorted(p for p in root.iterdir()
                  if p.is_file() and p.suffix.lower() in IMAGE_EXTENSIONS)
