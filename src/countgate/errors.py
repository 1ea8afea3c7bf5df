from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .models import EvaluationResult


class GateError(Exception):
    pass


class ConfigError(GateError, ValueError):
    pass


class EncodingError(GateError):
    pass


class TransportError(GateError):
    pass


class DecodeError(GateError):
    pass


class ThresholdExceeded(GateError):
    """Raised when the count meets the configured threshold condition.

    This is the expected "failure" of the gate, not an infrastructure fault.
    """

    def __init__(self, result: EvaluationResult) -> None:
        super().__init__(result.diagnostic_message)
        self.result = result
