"""Letterbox preprocessing into the model's planar RGB input tensor."""
from __future__ import annotations

import logging
from typing import Tuple

import cv2
import numpy as np

from stake_counter.core.errors import InputError
from stake_counter.core.models import PreprocessInfo

LOGGER = logging.getLogger(__name__)

LETTERBOX_COLOR: Tuple[int, int, int] = (128, 128, 128)


def _as_rgb(image: np.ndarray) -> np.ndarray:
    if image.ndim == 2:
        return np.stack([image] * 3, axis=-1)
    if image.ndim != 3 or image.shape[2] not in (3, 4):
        raise InputError(f"Unsupported image shape: {image.shape}")
    return image[:, :, :3]


def letterbox(
    image: np.ndarray,
    target_size: int = 640,
    color: Tuple[int, int, int] = LETTERBOX_COLOR,
) -> Tuple[np.ndarray, PreprocessInfo]:
    """Resize ``image`` into a gray ``target_size`` square, keeping aspect ratio.

    Args:
        image: HxWx3 (or HxWx4, HxW) uint8 array in RGB order.
        target_size: Side of the square model input.
        color: Background fill for the padded area.

    Returns:
        tensor: float32 array of shape ``(1, 3, S, S)`` with values in [0, 1].
        info: Scale and offsets needed to map model coordinates back.

    The recorded offsets are the exact ``(S - scaled) / 2`` values, which are
    fractional when the padding is odd. Pixels are placed at the floored
    offset, so decoded boxes carry a bias of at most half a letterbox pixel
    (``0.5 / scale`` in original pixels) toward the top left.
    """

    if image is None or image.size == 0:
        raise InputError("Image is empty")
    height, width = image.shape[:2]
    if width <= 0 or height <= 0:
        raise InputError(f"Image has zero area: {width}x{height}")
    if image.dtype != np.uint8:
        raise InputError(f"Expected an 8-bit image, got {image.dtype}")
    rgb = _as_rgb(image)

    scale = min(target_size / width, target_size / height)
    scaled_w = max(1, int(round(width * scale)))
    scaled_h = max(1, int(round(height * scale)))
    offset_x = (target_size - scaled_w) / 2
    offset_y = (target_size - scaled_h) / 2

    resized = cv2.resize(rgb, (scaled_w, scaled_h), interpolation=cv2.INTER_LINEAR)
    canvas = np.empty((target_size, target_size, 3), dtype=np.uint8)
    canvas[:, :] = color
    left = int(offset_x)
    top = int(offset_y)
    canvas[top:top + scaled_h, left:left + scaled_w] = resized

    tensor = canvas.astype(np.float32) / 255.0
    tensor = np.ascontiguousarray(tensor.transpose(2, 0, 1))[np.newaxis, ...]

    info = PreprocessInfo(
        scale=scale,
        offset_x=offset_x,
        offset_y=offset_y,
        original_width=int(width),
        original_height=int(height),
    )
    LOGGER.debug(
        "Letterboxed %dx%d -> %dx%d (scale=%.4f, offset=%.1f,%.1f)",
        width,
        height,
        scaled_w,
        scaled_h,
        scale,
        offset_x,
        offset_y,
    )
    return tensor, info
