"""Decode raw YOLO output tensors into detections in source-image coordinates."""
from __future__ import annotations

import logging
from typing import Iterator, Optional, Sequence

import numpy as np

from stake_counter.core.errors import InferenceError
from stake_counter.core.models import Detection, PreprocessInfo
from stake_counter.utils.geometry import clamp_bbox, is_degenerate

LOGGER = logging.getLogger(__name__)


def as_feature_matrix(output: np.ndarray, dims: Optional[Sequence[int]] = None) -> np.ndarray:
    """Return the ``(features, num_detections)`` view of a ``[1, F, N]`` output.

    ``output`` may be the shaped tensor or a flat buffer accompanied by ``dims``.
    """

    data = np.asarray(output, dtype=np.float32)
    if dims is not None:
        dims = tuple(int(d) for d in dims)
        if int(np.prod(dims)) != data.size:
            raise InferenceError(f"Output buffer of size {data.size} does not match dims {dims}")
        data = data.reshape(dims)
    if data.ndim != 3 or data.shape[0] != 1:
        raise InferenceError(f"Expected output of shape [1, features, N], got {list(data.shape)}")
    if data.shape[1] < 5:
        raise InferenceError(f"Expected at least 5 features per candidate, got {data.shape[1]}")
    return data[0]


def decode(
    output: np.ndarray,
    info: PreprocessInfo,
    confidence_threshold: float,
    dims: Optional[Sequence[int]] = None,
) -> Iterator[Detection]:
    """Yield candidate detections in scan order.

    Row layout per candidate is ``x, y, w, h`` (center form, letterbox pixels)
    followed by either one confidence row or one score row per class.
    """

    matrix = as_feature_matrix(output, dims)
    features = matrix.shape[0]
    if features == 5:
        scores = matrix[4]
        classes = np.zeros(matrix.shape[1], dtype=np.int64)
    else:
        class_rows = matrix[4:]
        classes = class_rows.argmax(axis=0)
        scores = class_rows.max(axis=0)

    candidates = np.flatnonzero(scores >= confidence_threshold)
    LOGGER.debug("%d of %d candidates above confidence %.2f", candidates.size, matrix.shape[1], confidence_threshold)

    next_id = 0
    for index in candidates:
        x, y, w, h = (float(value) for value in matrix[:4, index])
        x1, y1 = info.to_original(x - w / 2, y - h / 2)
        x2, y2 = info.to_original(x + w / 2, y + h / 2)
        box = clamp_bbox((x1, y1, x2, y2), info.original_width, info.original_height)
        if is_degenerate(box):
            continue
        yield Detection(
            id=next_id,
            x1=box[0],
            y1=box[1],
            x2=box[2],
            y2=box[3],
            confidence=float(scores[index]),
            class_id=int(classes[index]),
        )
        next_id += 1
