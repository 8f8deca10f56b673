"""Conversion of input frames to 8-bit grayscale."""

import cv2
import numpy as np
from skimage.util import img_as_ubyte


def to_gray_uint8(image: np.ndarray) -> np.ndarray:
    """
    Convert a BGR, BGRA or grayscale image of any dtype to 8-bit gray.

    Float images are expected in [0, 1] and are clipped to that range.
    """
    if image is None:
        raise ValueError("Image is None")
    if image.dtype == np.float64:
        image = image.astype(np.float32)

    if image.ndim == 3:
        if image.shape[2] == 4:
            image = cv2.cvtColor(image, cv2.COLOR_BGRA2GRAY)
        elif image.shape[2] == 3:
            image = cv2.cvtColor(image, cv2.COLOR_BGR2GRAY)
        elif image.shape[2] == 1:
            image = image[:, :, 0]
        else:
            raise ValueError(f"Unsupported channel count: {image.shape[2]}")
    elif image.ndim != 2:
        raise ValueError(f"Expected a 2D or 3D image, got shape {image.shape}")

    if image.dtype == np.uint8:
        return image
    if np.issubdtype(image.dtype, np.floating):
        image = np.clip(image, 0.0, 1.0)
    return img_as_ubyte(image)
