"""Configuration utilities for the stake counter."""
from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import List

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class AppSettings(BaseSettings):
    """Application configuration sourced from environment variables or defaults."""

    model_config = SettingsConfigDict(
        env_prefix="STAKE_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        protected_namespaces=(),
    )

    model_path: Path = Field(default=Path("model/best.onnx"), description="ONNX weights path")
    model_input_size: int = Field(default=640, gt=0)
    confidence_threshold: float = Field(default=0.25, ge=0.0, le=1.0)
    doubt_threshold: float = Field(default=0.5, ge=0.0, le=1.0)
    iou_threshold: float = Field(default=0.45, ge=0.0, le=1.0)
    default_box_size: float = Field(default=40.0, gt=0.0)
    review_crop_padding: float = Field(default=50.0, ge=0.0)
    review_crop_max_size: float = Field(default=400.0, gt=0.0)
    onnx_providers: List[str] = Field(default_factory=lambda: ["CPUExecutionProvider"])
    log_format: str = Field(default="text")
    preload_model: bool = Field(default=True, description="Load the ONNX model when the API starts.")
    max_upload_bytes: int = Field(default=25 * 1024 * 1024, gt=0)
    max_sessions: int = Field(default=32, ge=1, description="Live review sessions kept in memory.")

    @field_validator("model_path", mode="before")
    @classmethod
    def _expand_path(cls, value: str | Path) -> Path:
        return Path(value).expanduser()

    @field_validator("log_format")
    @classmethod
    def _check_log_format(cls, value: str) -> str:
        value = value.lower()
        if value not in {"text", "json"}:
            raise ValueError("log_format must be 'text' or 'json'")
        return value

    @model_validator(mode="after")
    def _check_thresholds(self) -> "AppSettings":
        if self.doubt_threshold < self.confidence_threshold:
            raise ValueError("doubt_threshold must be >= confidence_threshold")
        return self


def load_settings(**overrides: object) -> AppSettings:
    """Return application settings, applying optional overrides."""

    return AppSettings(**overrides)


def get_settings() -> AppSettings:
    return AppSettings()


def setup_logging(settings: AppSettings) -> None:
    log_level = logging.INFO
    if settings.log_format == "json":
        formatter = logging.Formatter('{"time": "%(asctime)s", "level": "%(levelname)s", "message": "%(message)s"}')
    else:
        formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)
    logging.basicConfig(level=log_level, handlers=[handler], force=True)
