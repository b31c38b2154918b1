"""Image loading helpers producing RGB arrays for the pipeline."""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Union

import cv2
import numpy as np

from stake_counter.core.errors import InputError

LOGGER = logging.getLogger(__name__)


def decode_image_bytes(data: bytes) -> np.ndarray:
    """Decode an encoded image (JPEG, PNG, ...) into an 8-bit HxWx3 RGB array.

    EXIF orientation is applied, so the array matches the photo as displayed.
    Grayscale, alpha and 16-bit sources are reduced to 8-bit three channels.
    """

    if not data:
        raise InputError("Image payload is empty")
    buffer = np.frombuffer(data, dtype=np.uint8)
    image = cv2.imdecode(buffer, cv2.IMREAD_COLOR)
    if image is None or image.size == 0:
        raise InputError("Unable to decode image payload")
    return cv2.cvtColor(image, cv2.COLOR_BGR2RGB)


def load_image(path: Union[str, Path]) -> np.ndarray:
    """Read an image file from disk as RGB."""

    path = Path(path).expanduser()
    if not path.exists():
        raise InputError(f"Image not found: {path}")
    image = decode_image_bytes(path.read_bytes())
    LOGGER.info("Loaded image %s (%dx%d)", path, image.shape[1], image.shape[0])
    return image


def encode_jpeg(image_rgb: np.ndarray, quality: int = 90) -> bytes:
    success, encoded = cv2.imencode(
        ".jpg",
        cv2.cvtColor(image_rgb, cv2.COLOR_RGB2BGR),
        [int(cv2.IMWRITE_JPEG_QUALITY), quality],
    )
    if not success:
        raise RuntimeError("JPEG encoding failed")
    return encoded.tobytes()
