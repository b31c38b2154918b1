from __future__ import annotations

import json
from pathlib import Path
from typing import List

import cv2
import numpy as np
import pytest

from stake_counter.app import detect
from stake_counter.core.models import Detection
from stake_counter.core.review import ReviewController, ReviewState
from stake_counter.core.session import DetectionSession

ROWS = [
    [100, 100, 40, 80, 0.9],
    [300, 100, 40, 80, 0.4],
    [500, 100, 40, 80, 0.3],
]


@pytest.fixture()
def image_path(tmp_path: Path) -> Path:
    path = tmp_path / "stakes.png"
    cv2.imwrite(str(path), np.full((640, 640, 3), 60, dtype=np.uint8))
    return path


@pytest.fixture()
def patched_engine(monkeypatch, build_output, fake_engine):
    engine = fake_engine(build_output(ROWS))
    monkeypatch.setattr(detect, "load_engine", lambda *args, **kwargs: engine)
    monkeypatch.setattr(detect, "setup_logging", lambda settings: None)
    return engine


def test_main_prints_summary_and_writes_outputs(image_path: Path, tmp_path: Path, patched_engine, capsys) -> None:
    output = tmp_path / "out" / "annotated.jpg"

    with pytest.raises(SystemExit) as exit_info:
        detect.main(["--image", str(image_path), "--output", str(output), "--json"])

    assert exit_info.value.code == 0
    assert output.exists()
    stdout = capsys.readouterr().out
    assert "Stakes: 1 | IA base: 1" in stdout
    payload = json.loads(stdout[stdout.index("{"):])
    assert payload["counters"]["pending_doubts"] == 2


def test_main_interactive_review(image_path: Path, patched_engine, monkeypatch, capsys) -> None:
    answers = iter(["maybe", "a", "r"])
    monkeypatch.setattr("builtins.input", lambda _prompt: next(answers))

    with pytest.raises(SystemExit) as exit_info:
        detect.main(["--image", str(image_path), "--review"])

    assert exit_info.value.code == 0
    stdout = capsys.readouterr().out
    assert "Stakes: 2 | IA base: 1 | accepted: 1 | added: 0 | pending doubts: 0 | rejected: 1" in stdout


def test_main_reports_missing_image(tmp_path: Path, patched_engine) -> None:
    with pytest.raises(SystemExit) as exit_info:
        detect.main(["--image", str(tmp_path / "missing.jpg")])

    assert exit_info.value.code == 1
    assert patched_engine.calls == []


def test_review_doubts_stops_on_request() -> None:
    session = DetectionSession(200, 200)
    session.populate(
        [],
        [
            Detection(id=0, x1=0, y1=0, x2=10, y2=10, confidence=0.4),
            Detection(id=1, x1=50, y1=50, x2=60, y2=60, confidence=0.3),
        ],
    )
    controller = ReviewController(session)
    seen: List[tuple] = []

    def prompt(position: int, total: int, confidence: float) -> str:
        seen.append((position, total))
        return "a" if not seen[1:] else "q"

    state = detect.review_doubts(controller, prompt=prompt)

    assert state is ReviewState.REVIEWING
    assert seen == [(1, 2), (1, 1)]
    assert session.pending_doubts == 1
    assert session.manually_accepted == 1
