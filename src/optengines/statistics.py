"""Running statistics accumulator for Monte Carlo samples.

Keeps weighted sufficient statistics (sum w, sum wx, sum wx^2) so that
batches can be added incrementally without storing the samples.
``add_batch`` folds a whole numpy array in at once.
"""

from __future__ import annotations

import math
from typing import Iterable, Optional

import numpy as np

__all__ = ["Statistics"]


class Statistics:
    def __init__(self):
        self.reset()

    def reset(self) -> None:
        self._n = 0
        self._sum_w = 0.0
        self._sum_wx = 0.0
        self._sum_wx2 = 0.0
        self._min = math.inf
        self._max = -math.inf

    def add(self, value: float, weight: float = 1.0) -> None:
        if weight < 0.0:
            raise ValueError(f"negative weight ({weight}) not allowed")
        value = float(value)
        self._n += 1
        self._sum_w += weight
        self._sum_wx += weight * value
        self._sum_wx2 += weight * value * value
        self._min = min(self._min, value)
        self._max = max(self._max, value)

    def add_batch(self, values, weights=1.0) -> None:
        """Add an array of samples; ``weights`` is a scalar or matches ``values``."""
        x = np.asarray(values, dtype=float).ravel()
        if x.size == 0:
            return
        w = np.broadcast_to(np.asarray(weights, dtype=float), x.shape)
        if (w < 0.0).any():
            raise ValueError("negative weight not allowed")
        wx = w * x
        self._n += x.size
        self._sum_w += float(w.sum())
        self._sum_wx += float(wx.sum())
        self._sum_wx2 += float((wx * x).sum())
        self._min = min(self._min, float(x.min()))
        self._max = max(self._max, float(x.max()))

    def add_sequence(self, values: Iterable[float],
                     weights: Optional[Iterable[float]] = None) -> None:
        if weights is None:
            for v in values:
                self.add(v)
        else:
            for v, w in zip(values, weights, strict=True):
                self.add(v, w)

    @property
    def samples(self) -> int:
        return self._n

    @property
    def weight_sum(self) -> float:
        return self._sum_w

    def mean(self) -> float:
        if self._sum_w <= 0.0:
            raise ValueError("mean: no samples (or zero total weight)")
        return self._sum_wx / self._sum_w

    def variance(self) -> float:
        """Unbiased sample variance, n/(n-1) corrected."""
        if self._n < 2:
            raise ValueError("variance: sample number must be at least 2")
        m = self.mean()
        v = self._sum_wx2 / self._sum_w - m * m
        return max(0.0, v) * self._n / (self._n - 1)

    def standard_deviation(self) -> float:
        return math.sqrt(self.variance())

    def error_estimate(self) -> float:
        """Standard error of the mean."""
        return math.sqrt(self.variance() / self._n)

    def min(self) -> float:
        if self._n == 0:
            raise ValueError("min: no samples")
        return self._min

    def max(self) -> float:
        if self._n == 0:
            raise ValueError("max: no samples")
        return self._max
