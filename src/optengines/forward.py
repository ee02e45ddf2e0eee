"""Forward-starting (strike-resetting) option engines.

A forward-starting option fixes its strike at ``reset_date`` as
``moneyness`` times the underlying level on that date. ``ForwardEngine``
prices it with an engine built for the plain vanilla case:

1. the forward problem is projected onto a vanilla problem that starts at
   the reset date (implied dividend/risk-free curves and an implied vol
   structure, all re-based at the reset date; strike = moneyness x spot);
2. the wrapped engine prices that vanilla problem;
3. its results are back-transformed into forward-option results.

The back-transform is chosen by a :class:`ForwardVariant`:

``FORWARD``
    absolute payoff, discounted with the dividend curve to the reset date.
``PERFORMANCE``
    payoff per unit of initial underlying, discounted with the risk-free
    curve to the reset date. The wrapped engine is not reset between calls.

The implied vol structure is only exact when volatility is at most time
dependent; with a genuine smile the projection is an approximation.

Greeks under the transform are approximations too: ``gamma`` is always 0,
and the performance variant also reports ``delta = 0``.

``calculate()`` validates the forward arguments before touching the wrapped
engine; errors raised by the wrapped engine propagate unchanged.

The wrapper binds the wrapped engine's arguments and results records once,
at construction, and mutates them in place on every ``calculate()``. Give
every wrapper its own wrapped engine.
"""

from __future__ import annotations

import functools
import logging
import math
from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Callable, Optional

from .core import ConfigurationError
from .engines import (
    A, R, PricingEngine, VanillaOptionArguments, VanillaOptionResults,
)
from .termstructures import ImpliedTermStructure
from .volatility import ImpliedVolTermStructure

__all__ = [
    "forward_arguments",
    "ForwardOptionArguments",
    "ForwardVariant",
    "ForwardEngine",
]

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Arguments
# ---------------------------------------------------------------------------
@functools.lru_cache(maxsize=None)
def forward_arguments(base: type) -> type:
    """Return the arguments type adding ``moneyness``/``reset_date`` to ``base``.

    ``base`` must be a dataclass whose fields all have defaults and which
    carries ``risk_free_ts`` and ``maturity``. The result is cached, so the
    same base always maps to the same class.
    """

    @dataclass
    class _ForwardArguments(base):
        moneyness: Optional[float] = None
        reset_date: Optional[date] = None

        def validate(self) -> None:
            super().validate()
            if self.moneyness is None or not math.isfinite(self.moneyness):
                raise ConfigurationError("null moneyness given")
            if not self.moneyness > 0.0:
                raise ConfigurationError(
                    f"negative or zero moneyness given: {self.moneyness}"
                )
            if self.reset_date is None:
                raise ConfigurationError("null reset date given")
            reset_time = self.reset_time()
            if reset_time < 0:
                raise ConfigurationError(
                    f"negative reset time given: reset date {self.reset_date} "
                    f"precedes reference date {self.risk_free_ts.reference_date}"
                )
            if self.maturity < reset_time:
                raise ConfigurationError(
                    f"reset time {reset_time:.6f} greater than maturity {self.maturity}"
                )

        def reset_time(self) -> float:
            """Year fraction from the risk-free reference date to the reset date."""
            ts = self.risk_free_ts
            return ts.day_counter.year_fraction(ts.reference_date, self.reset_date)

    name = "Forward" + base.__name__
    _ForwardArguments.__name__ = name
    _ForwardArguments.__qualname__ = name
    return _ForwardArguments


ForwardOptionArguments = forward_arguments(VanillaOptionArguments)


# ---------------------------------------------------------------------------
# Back-transforms
# ---------------------------------------------------------------------------
def _forward_results(args, original, results) -> None:
    reset_time = args.reset_time()
    disc_q = args.dividend_ts.discount(args.reset_date)

    results.value = disc_q * original.value
    # the wrapped strike is moneyness * underlying: chain rule through it
    results.delta = disc_q * (original.delta
                              + args.moneyness * original.strike_sensitivity)
    results.gamma = 0.0
    results.theta = args.dividend_ts.zero_yield(args.reset_date) * results.value
    results.vega = disc_q * original.vega
    results.rho = disc_q * original.rho
    results.dividend_rho = -reset_time * results.value + disc_q * original.dividend_rho


def _performance_results(args, original, results) -> None:
    reset_time = args.reset_time()
    # per unit of initial underlying
    disc_r = args.risk_free_ts.discount(args.reset_date) / args.underlying

    results.value = disc_r * original.value
    results.delta = 0.0
    results.gamma = 0.0
    results.theta = args.risk_free_ts.zero_yield(args.reset_date) * results.value
    results.vega = disc_r * original.vega
    results.rho = -reset_time * results.value + disc_r * original.rho
    results.dividend_rho = disc_r * original.dividend_rho


class ForwardVariant(Enum):
    """How the wrapped engine is driven and its results reinterpreted."""

    FORWARD = ("forward", True, _forward_results)
    PERFORMANCE = ("performance", False, _performance_results)

    def __init__(self, label: str, reset_original: bool,
                 transform: Callable[..., None]):
        self.label = label
        self.reset_original = reset_original
        self.transform = transform


# ---------------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------------
class ForwardEngine(PricingEngine[A, R]):
    """Prices a forward-starting option through a wrapped vanilla engine.

    Parameters
    ----------
    original_engine : PricingEngine
        Engine for the non-forward-starting problem. Its ``arguments`` must
        be an ``arguments_type`` instance and its ``results`` a
        ``results_type`` instance.
    variant : ForwardVariant
        ``FORWARD`` (default) or ``PERFORMANCE``.
    arguments_type, results_type : type
        Expected shapes of the wrapped engine's records.
    """

    def __init__(
        self,
        original_engine: PricingEngine[A, R],
        variant: ForwardVariant = ForwardVariant.FORWARD,
        *,
        arguments_type: type = VanillaOptionArguments,
        results_type: type = VanillaOptionResults,
    ):
        if original_engine is None:
            raise ConfigurationError("ForwardEngine: null engine or wrong engine type")
        original_arguments = getattr(original_engine, "arguments", None)
        original_results = getattr(original_engine, "results", None)
        if not isinstance(original_arguments, arguments_type):
            raise ConfigurationError(
                f"ForwardEngine: wrong engine type, arguments are "
                f"{type(original_arguments).__name__}, expected {arguments_type.__name__}"
            )
        if not isinstance(original_results, results_type):
            raise ConfigurationError(
                f"ForwardEngine: wrong engine type, results are "
                f"{type(original_results).__name__}, expected {results_type.__name__}"
            )
        if not isinstance(variant, ForwardVariant):
            raise ConfigurationError(f"ForwardEngine: unknown variant {variant!r}")

        self.variant = variant
        self._original_engine = original_engine
        self._original_arguments = original_arguments
        self._original_results = original_results
        self._arguments = forward_arguments(arguments_type)()
        self._results = results_type()

    @classmethod
    def performance(cls, original_engine: PricingEngine[A, R], **kwargs) -> "ForwardEngine[A, R]":
        """Forward performance engine: payoff relative to the reset level."""
        return cls(original_engine, ForwardVariant.PERFORMANCE, **kwargs)

    @property
    def arguments(self):
        return self._arguments

    @property
    def results(self) -> R:
        return self._results

    @property
    def original_engine(self) -> PricingEngine[A, R]:
        return self._original_engine

    def calculate(self) -> None:
        self._arguments.validate()
        if self.variant.reset_original:
            self._original_engine.reset()
        self.set_original_arguments()
        logger.debug("%s engine: delegating to %s",
                     self.variant.label, type(self._original_engine).__name__)
        self._original_engine.calculate()
        self.get_original_results()

    def set_original_arguments(self) -> None:
        """Project the forward problem onto the wrapped engine's arguments."""
        args = self._arguments
        original = self._original_arguments
        reset = args.reset_date

        original.type = args.type
        original.underlying = args.underlying
        original.strike = args.moneyness * args.underlying
        original.dividend_ts = ImpliedTermStructure(args.dividend_ts, reset, reset)
        original.risk_free_ts = ImpliedTermStructure(args.risk_free_ts, reset, reset)
        # exact only for a vol that is at most time dependent
        original.vol_ts = ImpliedVolTermStructure(args.vol_ts, reset)
        original.exercise_type = args.exercise_type
        original.stopping_times = list(args.stopping_times)
        original.maturity = args.maturity

        logger.debug("projected forward option: reset=%s moneyness=%s strike=%s",
                     reset, args.moneyness, original.strike)
        original.validate()

    def get_original_results(self) -> None:
        """Back-transform the wrapped engine's results into our own."""
        self.variant.transform(self._arguments, self._original_results, self._results)
        logger.debug("%s engine: value=%s", self.variant.label, self._results.value)
