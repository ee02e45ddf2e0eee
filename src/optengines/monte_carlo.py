# optengines/monte_carlo.py

from __future__ import annotations
import logging
import math
import sys

import numpy as np
from abc import ABC, abstractmethod
from typing import Optional

from .core import CALL, check_kind
from .processes import GaussianPathGenerator, Path
from .statistics import Statistics

__all__ = [
    "PathPricer",
    "EuropeanPathPricer",
    "DiscountedTerminalPathPricer",
    "MonteCarloModel",
    "McPricer",
    "McEuropean",
]

logger = logging.getLogger(__name__)

MIN_SAMPLES = 100
CHUNK_SIZE = 100_000


# ---- path pricers: payoff over one sampled path or a batch of them ----

class PathPricer(ABC):
    """Discounted payoff per path: a float for one path, an array for a batch."""

    @abstractmethod
    def __call__(self, path: Path):
        ...


def _european_payoff(kind: str, S, K: float):
    if kind == CALL:
        return np.maximum(S - K, 0.0)
    return np.maximum(K - S, 0.0)


class EuropeanPathPricer(PathPricer):
    """Discounted European payoff on the terminal level of a log-path.

    With ``antithetic=True`` the payoff is averaged with the one on the
    mirrored path (diffusion sign flipped).
    """

    def __init__(self, kind: str, underlying: float, strike: float,
                 discount: float, antithetic: bool = False):
        self.kind = check_kind(kind)
        if underlying <= 0:
            raise ValueError(f"underlying must be positive, got {underlying}")
        if strike < 0:
            raise ValueError(f"strike must be non-negative, got {strike}")
        if discount <= 0:
            raise ValueError(f"discount must be positive, got {discount}")
        self.underlying = underlying
        self.strike = strike
        self.discount = discount
        self.antithetic = antithetic

    def __call__(self, path: Path):
        ST = self.underlying * np.exp(path.log_return())
        payoff = _european_payoff(self.kind, ST, self.strike)
        if self.antithetic:
            ST_a = self.underlying * np.exp(path.log_return(antithetic=True))
            payoff = 0.5 * (payoff + _european_payoff(self.kind, ST_a, self.strike))
        return self.discount * payoff


class DiscountedTerminalPathPricer(PathPricer):
    """Control variate Y = e^{-rT} S_T, with known expectation S0 * e^{-qT}."""

    def __init__(self, underlying: float, discount: float, antithetic: bool = False):
        self.underlying = underlying
        self.discount = discount
        self.antithetic = antithetic

    def __call__(self, path: Path):
        ST = self.underlying * np.exp(path.log_return())
        if self.antithetic:
            ST = 0.5 * (ST + self.underlying * np.exp(path.log_return(antithetic=True)))
        return self.discount * ST


# ---- composition ----

class MonteCarloModel:
    """Path generator + path pricer + statistics accumulator.

    Optional control variate: each sample becomes
    ``price + cv_option_value - cv_price`` where ``cv_option_value`` is the
    known expectation of ``cv_path_pricer``.

    Paths are drawn with the generator's ``next_batch`` in chunks of at most
    ``chunk_size``, priced as arrays and folded into the statistics per chunk.
    """

    def __init__(self, path_generator, path_pricer: PathPricer,
                 statistics: Statistics,
                 cv_path_pricer: Optional[PathPricer] = None,
                 cv_option_value: Optional[float] = None,
                 chunk_size: int = CHUNK_SIZE):
        if (cv_path_pricer is None) != (cv_option_value is None):
            raise ValueError("control variate needs both a path pricer and its value")
        if chunk_size <= 0:
            raise ValueError(f"chunk_size must be positive, got {chunk_size}")
        self.chunk_size = chunk_size
        self.path_generator = path_generator
        self.path_pricer = path_pricer
        self.statistics = statistics
        self.cv_path_pricer = cv_path_pricer
        self.cv_option_value = cv_option_value

    @property
    def is_control_variate(self) -> bool:
        return self.cv_path_pricer is not None

    def add_samples(self, samples: int) -> None:
        remaining = int(samples)
        while remaining > 0:
            m = min(self.chunk_size, remaining)
            sample = self.path_generator.next_batch(m)
            prices = self.path_pricer(sample.value)
            if self.cv_path_pricer is not None:
                prices = prices + self.cv_option_value - self.cv_path_pricer(sample.value)
            self.statistics.add_batch(prices, sample.weight)
            remaining -= m


class McPricer:
    """Base for pricers driven by a composed :class:`MonteCarloModel`."""

    mc_model: MonteCarloModel
    min_samples: int = MIN_SAMPLES

    @property
    def statistics(self) -> Statistics:
        return self.mc_model.statistics

    def _ensure_min_samples(self) -> None:
        n = self.statistics.samples
        if n < self.min_samples:
            self.mc_model.add_samples(self.min_samples - n)

    def _relative_error(self) -> float:
        err = self.statistics.error_estimate()
        if err == 0.0:
            return 0.0
        m = self.statistics.mean()
        return err / abs(m) if m != 0.0 else math.inf

    def value(self, tolerance: float, max_samples: int = sys.maxsize) -> float:
        """Add samples until the relative error estimate is within ``tolerance``."""
        if tolerance <= 0:
            raise ValueError(f"tolerance must be positive, got {tolerance}")
        self._ensure_min_samples()
        n = self.statistics.samples
        accuracy = self._relative_error()

        while accuracy > tolerance:
            # samples needed scale with (accuracy/tolerance)^2
            order = min(accuracy * accuracy / (tolerance * tolerance), 1e6)
            next_batch = int(max(n * order * 0.8 - n, self.min_samples))
            next_batch = min(next_batch, max_samples - n)
            if next_batch <= 0:
                raise RuntimeError(
                    f"max number of samples ({max_samples}) exceeded, "
                    f"accuracy {accuracy:.3e} > tolerance {tolerance:.3e}"
                )
            logger.debug("mc: adding %d samples (accuracy %.3e)", next_batch, accuracy)
            self.mc_model.add_samples(next_batch)
            n += next_batch
            accuracy = self._relative_error()

        return self.statistics.mean()

    def value_with_samples(self, samples: int) -> float:
        """Estimate with exactly ``samples`` draws in total."""
        n = self.statistics.samples
        if samples < n:
            raise ValueError(
                f"number of already simulated samples ({n}) "
                f"greater than requested samples ({samples})"
            )
        self.mc_model.add_samples(samples - n)
        return self.statistics.mean()

    def error_estimate(self) -> float:
        self._ensure_min_samples()
        return self.statistics.error_estimate()


class McEuropean(McPricer):
    """One-factor Monte Carlo pricer for a European option under GBM.

    Terminal-only: the generator takes a single step over ``residual_time``.
    """

    def __init__(self, kind: str, underlying: float, strike: float,
                 dividend_yield: float, risk_free_rate: float,
                 residual_time: float, volatility: float,
                 antithetic_variance: bool = False, seed: Optional[int] = None,
                 *, control_variate: bool = False, chunk_size: int = CHUNK_SIZE):
        mu = risk_free_rate - dividend_yield - 0.5 * volatility * volatility
        path_generator = GaussianPathGenerator(
            mu, volatility * volatility, residual_time, 1, seed)

        discount = math.exp(-risk_free_rate * residual_time)
        path_pricer = EuropeanPathPricer(
            kind, underlying, strike, discount, antithetic_variance)

        cv_pricer, cv_value = None, None
        if control_variate:
            cv_pricer = DiscountedTerminalPathPricer(underlying, discount, antithetic_variance)
            cv_value = underlying * math.exp(-dividend_yield * residual_time)

        self.mc_model = MonteCarloModel(
            path_generator, path_pricer, Statistics(), cv_pricer, cv_value, chunk_size)
        logger.debug("mc european: kind=%s S=%s K=%s T=%s mu=%.6f seed=%s",
                     kind, underlying, strike, residual_time, mu, seed)
