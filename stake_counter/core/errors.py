"""Error taxonomy for the stake counting pipeline."""
from __future__ import annotations


class StakeCounterError(Exception):
    """Base class for errors raised by the detection pipeline."""


class InputError(StakeCounterError, ValueError):
    """Raised when an image cannot be analysed (empty, zero-area, undecodable)."""


class InferenceError(StakeCounterError, RuntimeError):
    """Raised when the inference engine fails or returns an unexpected tensor."""


class SessionStateError(StakeCounterError, RuntimeError):
    """Raised when a session's collections stop being mutually exclusive."""
