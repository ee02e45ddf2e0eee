"""Yield term structures.

Conventions:
- Times are **year fractions** measured from the curve's reference date with
  the curve's own day counter.
- Every public query accepts either a ``datetime.date`` or a time.
- Rates are **continuously compounded**.
- ``ImpliedTermStructure`` re-bases an existing curve at a later date, which
  is how a forward-starting problem is expressed as an ordinary one.
"""

from __future__ import annotations

import bisect
import datetime as dt
import math
from abc import ABC, abstractmethod
from typing import Union

from .daycount import Actual365Fixed, DayCounter

__all__ = [
    "YieldTermStructure",
    "FlatForward",
    "ZeroCurve",
    "ImpliedTermStructure",
]

DateOrTime = Union[dt.date, float]

# zero yield at t=0 is read a short step away from the reference date
ZERO_YIELD_DT = 1e-4


class YieldTermStructure(ABC):
    """Discount curve anchored at a reference date."""

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
    def _discount_impl(self, t: float) -> float:
        ...

    def discount(self, x: DateOrTime) -> float:
        """Discount factor from the reference date to ``x``."""
        t = self._to_time(x)
        if t < 0:
            raise ValueError(f"negative time {t} given to discount()")
        if t == 0.0:
            return 1.0
        return self._discount_impl(t)

    def zero_yield(self, x: DateOrTime) -> float:
        """Continuously compounded zero rate to ``x``."""
        t = self._to_time(x)
        if t < 0:
            raise ValueError(f"negative time {t} given to zero_yield()")
        if t == 0.0:
            t = ZERO_YIELD_DT
        return -math.log(self._discount_impl(t)) / t

    def forward(self, x1: DateOrTime, x2: DateOrTime) -> float:
        """Continuously compounded forward rate between ``x1`` and ``x2``."""
        t1, t2 = self._to_time(x1), self._to_time(x2)
        if t2 <= t1:
            raise ValueError("forward() needs t2 > t1")
        return math.log(self.discount(t1) / self.discount(t2)) / (t2 - t1)


class FlatForward(YieldTermStructure):
    """Single continuously compounded rate at every maturity."""

    def __init__(self, reference_date: dt.date, rate: float,
                 day_counter: DayCounter | None = None):
        super().__init__(reference_date, day_counter)
        self.rate = float(rate)

    def _discount_impl(self, t: float) -> float:
        return math.exp(-self.rate * t)

    def zero_yield(self, x: DateOrTime) -> float:
        if self._to_time(x) < 0:
            raise ValueError("negative time given to zero_yield()")
        return self.rate

    def __repr__(self):
        return f"FlatForward({self.reference_date}, {self.rate})"


class ZeroCurve(YieldTermStructure):
    """
    Zero rate curve with linear interpolation in rate between pillars and
    flat extrapolation beyond both ends.

    Pillars may be given as dates or as times; dates are converted with the
    curve's day counter.
    """

    def __init__(self, reference_date: dt.date, pillars: list[DateOrTime],
                 zero_rates: list[float], day_counter: DayCounter | None = None):
        super().__init__(reference_date, day_counter)
        if len(pillars) != len(zero_rates):
            raise ValueError("pillars and zero_rates must have the same length")
        if not pillars:
            raise ValueError("curve has no pillars")
        times = [self._to_time(p) for p in pillars]
        for i in range(1, len(times)):
            if times[i] <= times[i - 1]:
                raise ValueError("pillars must be strictly increasing")
        self.times = times
        self.zero_rates = [float(r) for r in zero_rates]

    def _rate(self, t: float) -> float:
        if t <= self.times[0]:
            return self.zero_rates[0]
        if t >= self.times[-1]:
            return self.zero_rates[-1]
        i = bisect.bisect_left(self.times, t)
        t0, t1 = self.times[i - 1], self.times[i]
        r0, r1 = self.zero_rates[i - 1], self.zero_rates[i]
        return r0 + (r1 - r0) * (t - t0) / (t1 - t0)

    def _discount_impl(self, t: float) -> float:
        return math.exp(-self._rate(t) * t)


class ImpliedTermStructure(YieldTermStructure):
    """Curve as seen from ``settlement_date``, implied by ``original``.

    ``discount(t) = P(offset + t) / P(offset)`` where ``P`` is the original
    curve and ``offset`` the original's time to ``settlement_date``.
    ``evaluation_date`` is kept for reference; the reference date of the
    implied curve is the settlement date.
    """

    def __init__(self, original: YieldTermStructure, evaluation_date: dt.date,
                 settlement_date: dt.date):
        if original is None:
            raise ValueError("no original term structure given")
        super().__init__(settlement_date, original.day_counter)
        offset = original.time_from_reference(settlement_date)
        if offset < 0:
            raise ValueError(
                f"settlement date {settlement_date} precedes the original "
                f"reference date {original.reference_date}"
            )
        self.original = original
        self.evaluation_date = evaluation_date
        self._offset = offset

    def _discount_impl(self, t: float) -> float:
        return self.original.discount(self._offset + t) / self.original.discount(self._offset)
