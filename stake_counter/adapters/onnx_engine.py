"""ONNX Runtime inference engine (adapter layer)."""
from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, Optional, Sequence, Tuple

import numpy as np

try:  # pragma: no cover - import guarded for environments without onnxruntime
    import onnxruntime as ort
except ImportError as exc:  # pragma: no cover
    raise ImportError(
        "onnxruntime is required for model inference. Install the project dependencies "
        "with `pip install -e .` before running the detector."
    ) from exc

from stake_counter.core.errors import InferenceError

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProgressEvent:
    message: str
    percent: int


ProgressObserver = Callable[[ProgressEvent], None]


class OnnxInferenceEngine:
    """Run a single-input, single-output YOLO ONNX graph."""

    def __init__(self, session: "ort.InferenceSession") -> None:
        self._session = session
        self.input_name = session.get_inputs()[0].name
        self.output_name = session.get_outputs()[0].name

    @classmethod
    def from_path(cls, model_path: Path, providers: Sequence[str]) -> "OnnxInferenceEngine":
        if not Path(model_path).exists():
            raise InferenceError(f"Model file not found: {model_path}")
        try:
            session = ort.InferenceSession(str(model_path), providers=list(providers))
        except Exception as exc:
            raise InferenceError(f"Unable to load model {model_path}: {exc}") from exc
        return cls(session)

    def run(self, tensor: np.ndarray) -> np.ndarray:
        try:
            outputs = self._session.run([self.output_name], {self.input_name: tensor})
        except Exception as exc:
            raise InferenceError(f"Inference failed: {exc}") from exc
        if not outputs:
            raise InferenceError("Inference returned no outputs")
        return np.asarray(outputs[0])


_ENGINES: Dict[Tuple[str, Tuple[str, ...]], OnnxInferenceEngine] = {}
_ENGINES_LOCK = threading.Lock()


def _emit(progress: Optional[ProgressObserver], message: str, percent: int) -> None:
    LOGGER.info("%s (%d%%)", message, percent)
    if progress is not None:
        progress(ProgressEvent(message=message, percent=percent))


def load_engine(
    model_path: Path,
    providers: Sequence[str] = ("CPUExecutionProvider",),
    progress: Optional[ProgressObserver] = None,
) -> OnnxInferenceEngine:
    """Load (or reuse) the engine for ``model_path``.

    Shared by the API preloader and the CLI so a model is built once per process.
    """

    key = (str(Path(model_path).resolve()), tuple(providers))
    with _ENGINES_LOCK:
        _emit(progress, "Checking loaded models", 10)
        engine = _ENGINES.get(key)
        if engine is None:
            _emit(progress, f"Loading model {model_path}", 40)
            engine = OnnxInferenceEngine.from_path(Path(model_path), providers)
            _ENGINES[key] = engine
        _emit(progress, "Model ready", 100)
        return engine


def clear_engines() -> None:
    with _ENGINES_LOCK:
        _ENGINES.clear()
