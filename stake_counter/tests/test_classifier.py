from __future__ import annotations

import pytest

from stake_counter.core.classifier import classify
from stake_counter.core.decoder import decode
from stake_counter.core.models import Detection, PreprocessInfo
from stake_counter.core.session import DetectionSession
from stake_counter.core.suppressor import non_max_suppression


def _det(det_id: int, confidence: float) -> Detection:
    x = det_id * 50.0
    return Detection(id=det_id, x1=x, y1=0.0, x2=x + 20.0, y2=40.0, confidence=confidence)


def test_classify_partitions_by_doubt_threshold() -> None:
    detections = [_det(0, 0.9), _det(1, 0.6), _det(2, 0.4), _det(3, 0.3)]

    result = classify(detections, confidence_threshold=0.25, doubt_threshold=0.5)

    assert [det.confidence for det in result.confirmed] == [0.9, 0.6]
    assert [det.confidence for det in result.doubt] == [0.4, 0.3]
    assert result.discarded == []
    assert not any(det.was_doubt for det in result.confirmed)


def test_classify_boundaries_are_inclusive_on_the_lower_edge() -> None:
    result = classify([_det(0, 0.5), _det(1, 0.25), _det(2, 0.2499)], 0.25, 0.5)

    assert [det.id for det in result.confirmed] == [0]
    assert [det.id for det in result.doubt] == [1]
    assert [det.id for det in result.discarded] == [2]


def test_classify_rejects_inverted_thresholds() -> None:
    with pytest.raises(ValueError):
        classify([], confidence_threshold=0.6, doubt_threshold=0.5)


def test_decode_nms_classify_scenario(build_output) -> None:
    info = PreprocessInfo(scale=1.0, offset_x=0.0, offset_y=0.0, original_width=640, original_height=640)
    output = build_output(
        [
            [50, 50, 20, 40, 0.9],
            [150, 50, 20, 40, 0.6],
            [250, 50, 20, 40, 0.4],
            [350, 50, 20, 40, 0.3],
            [450, 50, 20, 40, 0.1],
        ]
    )

    kept = non_max_suppression(decode(output, info, 0.25), 0.45)
    result = classify(kept, 0.25, 0.5)
    session = result.populate(DetectionSession(640, 640, doubt_threshold=0.5))

    assert [det.confidence for det in session.confirmed] == pytest.approx([0.9, 0.6])
    assert [det.confidence for det in session.doubt] == pytest.approx([0.4, 0.3])
    assert session.rejected == []
    confirmed_ids = {det.id for det in session.confirmed}
    doubt_ids = {det.id for det in session.doubt}
    assert confirmed_ids.isdisjoint(doubt_ids)
    assert confirmed_ids | doubt_ids == {det.id for det in kept}
    assert all(det.confidence >= 0.25 for det in kept)
