"""Bump-and-reprice risk on pricing engines.

Provides spot Greeks via central finite differences that work with **any**
engine whose arguments carry an ``underlying`` field, including wrapped
engines such as :class:`~optengines.forward.ForwardEngine`. Useful to
check analytic or back-transformed Greeks.
"""

from __future__ import annotations

from .engines import PricingEngine

__all__ = [
    "numerical_greeks",
]


def numerical_greeks(
    engine: PricingEngine,
    *,
    bump_pct: float = 0.01,
) -> dict[str, float]:
    """Compute value, delta and gamma by bumping the underlying.

    Parameters
    ----------
    engine : PricingEngine
        Engine with fully set-up arguments.
    bump_pct : float
        Relative spot bump (default 0.01).

    Returns
    -------
    dict[str, float]
        Keys: ``value``, ``delta``, ``gamma``. The engine is left
        recalculated at the original underlying.
    """
    if bump_pct <= 0:
        raise ValueError(f"bump_pct must be positive, got {bump_pct}")

    args = engine.arguments
    S = args.underlying
    eps_S = bump_pct * S

    def _value_at(spot: float) -> float:
        args.underlying = spot
        engine.calculate()
        return engine.results.value

    try:
        P_up = _value_at(S + eps_S)
        P_dn = _value_at(S - eps_S)
    finally:
        args.underlying = S
    engine.calculate()
    P0 = engine.results.value

    delta = (P_up - P_dn) / (2.0 * eps_S)
    gamma = (P_up - 2.0 * P0 + P_dn) / (eps_S ** 2)

    return {
        "value": float(P0),
        "delta": float(delta),
        "gamma": float(gamma),
    }
