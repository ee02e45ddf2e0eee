"""Pricing-engine contract.

An engine owns one *arguments* record (the problem) and one *results*
record (the answer). Clients fill the arguments in place, call
``calculate()``, then read the results. Both records are mutable and are
shared by reference with anything that wraps the engine, so an engine is
not safe to drive from more than one caller at a time.
"""

from __future__ import annotations

import math
from abc import ABC, abstractmethod
from dataclasses import dataclass, field, fields
from typing import Generic, Optional, TypeVar

from .core import CALL, PUT, EUROPEAN, EXERCISE_TYPES, ConfigurationError
from .termstructures import YieldTermStructure
from .volatility import BlackVolTermStructure

__all__ = [
    "Arguments",
    "Results",
    "VanillaOptionArguments",
    "VanillaOptionResults",
    "PricingEngine",
    "GenericEngine",
]


class Arguments(ABC):
    """A problem description an engine can price."""

    @abstractmethod
    def validate(self) -> None:
        """Raise ``ConfigurationError`` if the record cannot be priced."""


class Results:
    """Computed quantities; every field is ``None`` until calculated."""

    def reset(self) -> None:
        for f in fields(self):
            setattr(self, f.name, None)


# ---------------------------------------------------------------------------
# One-asset vanilla option
# ---------------------------------------------------------------------------
@dataclass
class VanillaOptionArguments(Arguments):
    """Arguments of a one-asset vanilla option.

    ``maturity`` and ``stopping_times`` are year fractions measured from the
    risk-free curve's reference date.
    """
    type: Optional[str] = None
    underlying: Optional[float] = None
    strike: Optional[float] = None
    dividend_ts: Optional[YieldTermStructure] = None
    risk_free_ts: Optional[YieldTermStructure] = None
    vol_ts: Optional[BlackVolTermStructure] = None
    exercise_type: str = EUROPEAN
    stopping_times: list[float] = field(default_factory=list)
    maturity: Optional[float] = None

    def validate(self) -> None:
        if self.type not in (CALL, PUT):
            raise ConfigurationError(f"no valid option type given, got {self.type!r}")
        if self.underlying is None:
            raise ConfigurationError("null underlying given")
        if not self.underlying > 0.0:
            raise ConfigurationError(f"negative or zero underlying given: {self.underlying}")
        if self.strike is None:
            raise ConfigurationError("null strike given")
        if self.strike < 0.0:
            raise ConfigurationError(f"negative strike given: {self.strike}")
        if self.dividend_ts is None:
            raise ConfigurationError("no dividend term structure given")
        if self.risk_free_ts is None:
            raise ConfigurationError("no risk-free term structure given")
        if self.maturity is None or math.isnan(self.maturity):
            raise ConfigurationError("null maturity given")
        if self.maturity < 0.0:
            raise ConfigurationError(f"negative maturity given: {self.maturity}")
        if self.vol_ts is None:
            raise ConfigurationError("no vol term structure given")
        if self.exercise_type not in EXERCISE_TYPES:
            raise ConfigurationError(f"unknown exercise type {self.exercise_type!r}")
        if self.exercise_type != EUROPEAN and not self.stopping_times:
            raise ConfigurationError(
                f"no stopping times given for {self.exercise_type} exercise"
            )


@dataclass
class VanillaOptionResults(Results):
    value: Optional[float] = None
    delta: Optional[float] = None
    gamma: Optional[float] = None
    theta: Optional[float] = None
    vega: Optional[float] = None
    rho: Optional[float] = None
    dividend_rho: Optional[float] = None
    strike_sensitivity: Optional[float] = None


# ---------------------------------------------------------------------------
# Engines
# ---------------------------------------------------------------------------
A = TypeVar("A", bound=Arguments)
R = TypeVar("R", bound=Results)


class PricingEngine(ABC, Generic[A, R]):
    """Given a filled-in arguments record, compute and expose results."""

    @property
    @abstractmethod
    def arguments(self) -> A:
        ...

    @property
    @abstractmethod
    def results(self) -> R:
        ...

    def validate(self) -> None:
        self.arguments.validate()

    def reset(self) -> None:
        """Discard previously computed results."""
        self.results.reset()

    @abstractmethod
    def calculate(self) -> None:
        ...


class GenericEngine(PricingEngine[A, R]):
    """Engine owning one arguments and one results record for its lifetime."""

    def __init__(self, arguments: A, results: R):
        self._arguments = arguments
        self._results = results

    @property
    def arguments(self) -> A:
        return self._arguments

    @property
    def results(self) -> R:
        return self._results
