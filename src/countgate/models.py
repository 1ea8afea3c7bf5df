from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from .config import validate_query, validate_since, validate_threshold
from .errors import ConfigError


class Comparison(str, Enum):
    GTE = "gte"
    LTE = "lte"

    @property
    def symbol(self) -> str:
        return ">=" if self is Comparison.GTE else "<="

    @classmethod
    def parse(cls, value: str | Comparison | None) -> Comparison:
        if isinstance(value, cls):
            return value
        normalized = (value or "").strip().lower()
        for member in cls:
            if member.value == normalized:
                return member
        raise ConfigError(f"Comparison must be one of: gte, lte (got '{value}').")


class LookbackUnit(str, Enum):
    MINUTES = "MINUTES"
    HOURS = "HOURS"
    DAYS = "DAYS"

    @property
    def millis(self) -> int:
        return _UNIT_MILLIS[self]

    @classmethod
    def parse(cls, value: str | LookbackUnit | None) -> LookbackUnit:
        if isinstance(value, cls):
            return value
        normalized = (value or "").strip().upper()
        try:
            return cls(normalized)
        except ValueError:
            raise ConfigError(
                f"Units must be one of: MINUTES, HOURS, DAYS (got '{value}')."
            ) from None


_UNIT_MILLIS = {
    LookbackUnit.MINUTES: 60 * 1000,
    LookbackUnit.HOURS: 60 * 60 * 1000,
    LookbackUnit.DAYS: 24 * 60 * 60 * 1000,
}


@dataclass(frozen=True)
class Lookback:
    magnitude: int
    unit: LookbackUnit

    def __post_init__(self) -> None:
        validate_since(self.magnitude)
        object.__setattr__(self, "magnitude", int(str(self.magnitude).strip()))
        object.__setattr__(self, "unit", LookbackUnit.parse(self.unit))

    def to_millis(self) -> int:
        return self.magnitude * self.unit.millis


@dataclass(frozen=True)
class QuerySpec:
    """What to count and when to fail."""
    query: str
    comparison: Comparison
    threshold: int
    lookback: Lookback

    def __post_init__(self) -> None:
        validate_query(self.query)
        validate_threshold(self.threshold)
        if not isinstance(self.lookback, Lookback):
            raise ConfigError(f"Lookback must be a Lookback (got {type(self.lookback).__name__}).")
        object.__setattr__(self, "query", self.query.strip())
        object.__setattr__(self, "comparison", Comparison.parse(self.comparison))
        object.__setattr__(self, "threshold", int(str(self.threshold).strip()))

    @classmethod
    def from_params(
        cls,
        query: str | None,
        comparison: str | Comparison | None,
        threshold: int | str | None,
        since: int | None,
        units: str | LookbackUnit | None,
    ) -> QuerySpec:
        """Build a spec from raw build-step parameters, validating each field."""
        validate_query(query)
        validate_threshold(threshold)
        return cls(
            query=query,
            comparison=comparison,
            threshold=threshold,
            lookback=Lookback(magnitude=since, unit=units),
        )


@dataclass(frozen=True)
class FetchedCount:
    count: int
    content: str


@dataclass(frozen=True)
class EvaluationResult:
    count: int
    threshold_exceeded: bool
    diagnostic_message: str
    url: str = ""
    content: str = ""
