from __future__ import annotations

from typing import Callable, List, Sequence

import numpy as np
import pytest

from stake_counter.app.settings import AppSettings


def _build_output(rows: Sequence[Sequence[float]]) -> np.ndarray:
    """Pack per-candidate rows ``[x, y, w, h, score...]`` into a ``[1, F, N]`` tensor."""

    matrix = np.asarray(rows, dtype=np.float32).reshape(len(rows), -1)
    return np.ascontiguousarray(matrix.T)[np.newaxis, ...]


class FakeEngine:
    def __init__(self, output: np.ndarray | None = None, error: Exception | None = None) -> None:
        self.output = output
        self.error = error
        self.calls: List[tuple] = []

    def run(self, tensor: np.ndarray) -> np.ndarray:
        self.calls.append(tensor.shape)
        if self.error is not None:
            raise self.error
        return self.output


@pytest.fixture()
def build_output() -> Callable[[Sequence[Sequence[float]]], np.ndarray]:
    return _build_output


@pytest.fixture()
def fake_engine() -> Callable[..., FakeEngine]:
    return FakeEngine


@pytest.fixture()
def settings() -> AppSettings:
    return AppSettings(
        model_path="model/best.onnx",
        model_input_size=640,
        confidence_threshold=0.25,
        doubt_threshold=0.5,
        iou_threshold=0.45,
        preload_model=False,
    )
