"""Black volatility term structures.

``black_variance(t, K)`` is total variance ``sigma(t, K)^2 * t``. The
implied structure below shifts the variance origin to a later date, which
is only a correct calendar transform when the vol does not depend on the
asset level.
"""

from __future__ import annotations

import bisect
import datetime as dt
import math
from abc import ABC, abstractmethod
from typing import Union

from .daycount import Actual365Fixed, DayCounter

__all__ = [
    "BlackVolTermStructure",
    "BlackConstantVol",
    "BlackVarianceCurve",
    "ImpliedVolTermStructure",
]

DateOrTime = Union[dt.date, float]

# black_vol at t=0 is read a short step away from the reference date
ZERO_TIME_DT = 1e-5


class BlackVolTermStructure(ABC):
    def __init__(self, reference_date: dt.date, day_counter: DayCounter | None = None):
        if reference_date is None:
            raise ValueError("reference_date must be given")
        self._reference_date = reference_date
        self._day_counter = day_counter if day_counter is not None else Actual365Fixed()

    @property
    def reference_date(self) -> dt.date:
        return self._reference_date

    @property
    def day_counter(self) -> DayCounter:
        return self._day_counter

    def time_from_reference(self, d: dt.date) -> float:
        return self._day_counter.year_fraction(self.reference_date, d)

    def _to_time(self, x: DateOrTime) -> float:
        if isinstance(x, dt.date):
            return self.time_from_reference(x)
        return float(x)

    @abstractmethod
    def _black_variance_impl(self, t: float, strike: float) -> float:
        ...

    def black_variance(self, x: DateOrTime, strike: float) -> float:
        t = self._to_time(x)
        if t < 0:
            raise ValueError(f"negative time {t} given to black_variance()")
        if t == 0.0:
            return 0.0
        return self._black_variance_impl(t, strike)

    def black_vol(self, x: DateOrTime, strike: float) -> float:
        t = self._to_time(x)
        if t < 0:
            raise ValueError(f"negative time {t} given to black_vol()")
        if t == 0.0:
            t = ZERO_TIME_DT
        return math.sqrt(self._black_variance_impl(t, strike) / t)


class BlackConstantVol(BlackVolTermStructure):
    def __init__(self, reference_date: dt.date, volatility: float,
                 day_counter: DayCounter | None = None):
        super().__init__(reference_date, day_counter)
        if volatility < 0:
            raise ValueError(f"volatility must be non-negative, got {volatility}")
        self.volatility = float(volatility)

    def _black_variance_impl(self, t: float, strike: float) -> float:
        return self.volatility * self.volatility * t

    def __repr__(self):
        return f"BlackConstantVol({self.reference_date}, {self.volatility})"


class BlackVarianceCurve(BlackVolTermStructure):
    """Time-dependent (strike-independent) Black vol.

    Total variance is interpolated linearly between pillars, with variance
    zero at the reference date and flat vol beyond the last pillar.
    """

    def __init__(self, reference_date: dt.date, pillars: list[DateOrTime],
                 vols: list[float], day_counter: DayCounter | None = None):
        super().__init__(reference_date, day_counter)
        if len(pillars) != len(vols):
            raise ValueError("pillars and vols must have the same length")
        if not pillars:
            raise ValueError("curve has no pillars")
        times = [self._to_time(p) for p in pillars]
        if times[0] <= 0:
            raise ValueError("first pillar must be after the reference date")
        for i in range(1, len(times)):
            if times[i] <= times[i - 1]:
                raise ValueError("pillars must be strictly increasing")
        variances = [v * v * t for v, t in zip(vols, times)]
        for i in range(1, len(variances)):
            if variances[i] < variances[i - 1]:
                raise ValueError("total variance must be non-decreasing")
        self.times = [0.0] + times
        self.variances = [0.0] + variances

    def _black_variance_impl(self, t: float, strike: float) -> float:
        if t >= self.times[-1]:
            return self.variances[-1] * t / self.times[-1]
        i = bisect.bisect_left(self.times, t)
        t0, t1 = self.times[i - 1], self.times[i]
        v0, v1 = self.variances[i - 1], self.variances[i]
        return v0 + (v1 - v0) * (t - t0) / (t1 - t0)


class ImpliedVolTermStructure(BlackVolTermStructure):
    """Forward-start vol implied by ``original`` from ``reference_date`` on.

    ``var(t, K) = var_orig(shift + t, K) - var_orig(shift, K)``.
    """

    def __init__(self, original: BlackVolTermStructure, reference_date: dt.date):
        if original is None:
            raise ValueError("no original vol term structure given")
        super().__init__(reference_date, original.day_counter)
        shift = original.time_from_reference(reference_date)
        if shift < 0:
            raise ValueError(
                f"reference date {reference_date} precedes the original "
                f"reference date {original.reference_date}"
            )
        self.original = original
        self._shift = shift

    def _black_variance_impl(self, t: float, strike: float) -> float:
        return (self.original.black_variance(self._shift + t, strike)
                - self.original.black_variance(self._shift, strike))
