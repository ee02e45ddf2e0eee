# processes.py
# Path generators for Monte Carlo pricing.
# A generator returns one Sample per call to next(), or a whole batch of paths
# per call to next_batch(n). The sampled Path keeps drift and diffusion
# increments apart so that a pricer can rebuild the antithetic path
# (drift - diffusion) without drawing again.

from __future__ import annotations
import numpy as np
from dataclasses import dataclass
from typing import Optional


__all__ = [
    "Path",
    "Sample",
    "GaussianPathGenerator",
]


def _rng(seed: Optional[int]):
    return np.random.default_rng(seed)


@dataclass(frozen=True)
class Path:
    """Log-increments of one path (or a batch), split into drift and diffusion.

    ``times`` and ``drift`` have shape ``(n_steps,)``; ``diffusion`` has shape
    ``(n_steps,)`` for a single path or ``(n_paths, n_steps)`` for a batch
    sharing the same deterministic drift.
    """
    times: np.ndarray
    drift: np.ndarray
    diffusion: np.ndarray

    def __len__(self):
        return len(self.times)

    @property
    def n_paths(self) -> int:
        return 1 if self.diffusion.ndim == 1 else self.diffusion.shape[0]

    def log_return(self, antithetic: bool = False):
        """Total log-return per path (mirrored diffusion if antithetic).

        A float for a single path, an array of shape ``(n_paths,)`` for a batch.
        """
        d = float(self.drift.sum())
        w = self.diffusion.sum(axis=-1)
        return d - w if antithetic else d + w


@dataclass(frozen=True)
class Sample:
    value: Path
    weight: float = 1.0


# -----------------------------
# Geometric Brownian Motion
# -----------------------------
class GaussianPathGenerator:
    """
    Gaussian log-increments for GBM under Q:
        drift_i     = mu * dt
        diffusion_i = sqrt(variance * dt) * Z_i,   Z_i ~ N(0, 1)
    with ``mu = r - q - 0.5*sigma^2`` and ``variance = sigma^2`` for
    Black-Scholes dynamics. The stream is reproducible for a given seed.
    """

    def __init__(self, drift: float, variance: float, time: float,
                 steps: int, seed: Optional[int] = None):
        if steps <= 0:
            raise ValueError("steps must be positive.")
        if time <= 0:
            raise ValueError("time must be positive.")
        if variance < 0:
            raise ValueError("variance must be non-negative.")

        self.seed = seed
        self._rng = _rng(seed)
        dt = time / steps
        self._times = dt * np.arange(1, steps + 1)
        self._drift = np.full(steps, drift * dt)
        self._vol = np.sqrt(variance * dt)
        self.steps = steps

    def next(self) -> Sample:
        Z = self._rng.standard_normal(self.steps)
        return Sample(Path(self._times, self._drift, self._vol * Z), 1.0)

    def next_batch(self, n: int) -> Sample:
        """Draw ``n`` paths at once; the weight applies to each of them."""
        if n <= 0:
            raise ValueError("n must be positive.")
        Z = self._rng.standard_normal((n, self.steps))
        return Sample(Path(self._times, self._drift, self._vol * Z), 1.0)

    def __iter__(self):
        return self

    def __next__(self) -> Sample:
        return self.next()
