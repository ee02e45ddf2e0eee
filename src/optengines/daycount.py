# daycount.py
# Year-fraction conventions used by the term structures.

from __future__ import annotations
import datetime as dt
from abc import ABC, abstractmethod


__all__ = [
    "DayCounter",
    "Actual365Fixed",
    "Actual360",
    "Thirty360",
]


class DayCounter(ABC):
    """Base day-count convention: ``year_fraction(d1, d2)`` in years."""

    name = "abstract"

    def day_count(self, d1: dt.date, d2: dt.date) -> int:
        return (d2 - d1).days

    @abstractmethod
    def year_fraction(self, d1: dt.date, d2: dt.date) -> float:
        ...

    def __eq__(self, other):
        return type(self) is type(other)

    def __hash__(self):
        return hash(type(self))

    def __repr__(self):
        return f"{type(self).__name__}()"


class Actual365Fixed(DayCounter):
    name = "ACT/365"

    def year_fraction(self, d1: dt.date, d2: dt.date) -> float:
        return self.day_count(d1, d2) / 365.0


class Actual360(DayCounter):
    name = "ACT/360"

    def year_fraction(self, d1: dt.date, d2: dt.date) -> float:
        return self.day_count(d1, d2) / 360.0


class Thirty360(DayCounter):
    """US 30/360 (bond basis)."""

    name = "30/360"

    def day_count(self, d1: dt.date, d2: dt.date) -> int:
        D1 = min(30, d1.day)
        D2 = min(30, d2.day) if D1 == 30 else d2.day
        return (d2.year - d1.year) * 360 + (d2.month - d1.month) * 30 + (D2 - D1)

    def year_fraction(self, d1: dt.date, d2: dt.date) -> float:
        return self.day_count(d1, d2) / 360.0
