from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError

from stake_counter.app.settings import AppSettings, load_settings


def test_defaults_match_model_contract(monkeypatch) -> None:
    for name in ("STAKE_CONFIDENCE_THRESHOLD", "STAKE_DOUBT_THRESHOLD", "STAKE_IOU_THRESHOLD", "STAKE_MODEL_INPUT_SIZE"):
        monkeypatch.delenv(name, raising=False)

    settings = AppSettings(_env_file=None)

    assert settings.model_input_size == 640
    assert settings.confidence_threshold == 0.25
    assert settings.doubt_threshold == 0.5
    assert settings.iou_threshold == 0.45


def test_environment_overrides(monkeypatch) -> None:
    monkeypatch.setenv("STAKE_CONFIDENCE_THRESHOLD", "0.3")
    monkeypatch.setenv("STAKE_MODEL_PATH", "~/weights/stakes.onnx")

    settings = AppSettings(_env_file=None)

    assert settings.confidence_threshold == 0.3
    assert settings.model_path == Path("~/weights/stakes.onnx").expanduser()


def test_load_settings_overrides() -> None:
    settings = load_settings(iou_threshold=0.6, log_format="JSON")

    assert settings.iou_threshold == 0.6
    assert settings.log_format == "json"


def test_doubt_threshold_must_not_be_below_confidence() -> None:
    with pytest.raises(ValidationError):
        AppSettings(confidence_threshold=0.6, doubt_threshold=0.5)


def test_rejects_unknown_log_format() -> None:
    with pytest.raises(ValidationError):
        AppSettings(log_format="xml")
