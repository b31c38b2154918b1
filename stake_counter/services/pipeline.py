"""Compose preprocessing, inference, decoding, NMS and classification."""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Protocol

import numpy as np

from stake_counter.app.settings import AppSettings
from stake_counter.core.classifier import classify
from stake_counter.core.decoder import as_feature_matrix, decode
from stake_counter.core.errors import InferenceError, InputError
from stake_counter.core.models import PreprocessInfo
from stake_counter.core.preprocessor import letterbox
from stake_counter.core.session import DetectionSession
from stake_counter.core.suppressor import non_max_suppression

LOGGER = logging.getLogger(__name__)


class InferenceEngine(Protocol):
    def run(self, tensor: np.ndarray) -> np.ndarray:
        ...


@dataclass
class AnalysisResult:
    session: DetectionSession
    info: PreprocessInfo
    candidates: int
    kept: int
    latency_ms: float


class DetectionPipeline:
    """Turn one image into a populated :class:`DetectionSession`.

    Nothing is returned until every stage succeeds, so callers never observe a
    half-populated session.
    """

    def __init__(self, engine: InferenceEngine, settings: AppSettings) -> None:
        self.engine = engine
        self.settings = settings

    def analyze(self, image: np.ndarray) -> AnalysisResult:
        if image is None or image.ndim < 2 or image.shape[0] == 0 or image.shape[1] == 0:
            raise InputError("Image has zero width or height")

        started = time.perf_counter()
        tensor, info = letterbox(image, self.settings.model_input_size)

        try:
            output = self.engine.run(tensor)
        except InferenceError:
            raise
        except Exception as exc:
            raise InferenceError(f"Inference engine failed: {exc}") from exc
        if output is None:
            raise InferenceError("Inference engine returned no output")
        as_feature_matrix(output)

        candidates = list(decode(output, info, self.settings.confidence_threshold))
        kept = non_max_suppression(candidates, self.settings.iou_threshold)
        classification = classify(kept, self.settings.confidence_threshold, self.settings.doubt_threshold)

        session = DetectionSession(info.original_width, info.original_height, self.settings.doubt_threshold)
        classification.populate(session)
        latency_ms = (time.perf_counter() - started) * 1000
        LOGGER.info(
            "Analysed %dx%d image | candidates=%d | kept=%d | confirmed=%d | doubt=%d | latency_ms=%.2f",
            info.original_width,
            info.original_height,
            len(candidates),
            len(kept),
            session.total_confirmed,
            session.pending_doubts,
            latency_ms,
        )
        return AnalysisResult(
            session=session,
            info=info,
            candidates=len(candidates),
            kept=len(kept),
            latency_ms=latency_ms,
        )
