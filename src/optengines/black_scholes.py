"""Closed-form Black-Scholes prices and Greeks, and an engine built on them.

The formulas take a flat-parameter :class:`~optengines.core.OptionSpec`.
:class:`AnalyticEuropeanEngine` reduces the curves in its arguments to flat
equivalents at maturity and calls them. Zero strike or zero variance falls
back to :func:`intrinsic_greeks`.
"""

import logging
import math
from math import log, sqrt, exp
from typing import Literal, Dict

from scipy.stats import norm

from .core import OptionSpec, CALL, PUT, EUROPEAN, ConfigurationError
from .engines import GenericEngine, VanillaOptionArguments, VanillaOptionResults

__all__ = [
    "price",
    "greeks",
    "intrinsic_greeks",
    "AnalyticEuropeanEngine",
]

logger = logging.getLogger(__name__)

_N = norm.cdf
_n = norm.pdf


def _d1_d2(S0, K, T, r, q, sigma):
    if T <= 0 or sigma <= 0 or S0 <= 0 or K <= 0:
        raise ValueError("S0,K,T,sigma must be positive.")
    rt = sigma * sqrt(T)
    d1 = (log(S0 / K) + (r - q + 0.5 * sigma * sigma) * T) / rt
    d2 = d1 - rt
    return d1, d2


def price(opt: OptionSpec, kind: Literal["call","put"]=CALL) -> float:
    d1, d2 = _d1_d2(opt.S0, opt.K, opt.T, opt.r, opt.q, opt.sigma)
    disc_r = exp(-opt.r * opt.T)
    disc_q = exp(-opt.q * opt.T)
    if kind == CALL:
        return float(disc_q * opt.S0 * _N(d1) - disc_r * opt.K * _N(d2))
    elif kind == PUT:
        return float(disc_r * opt.K * _N(-d2) - disc_q * opt.S0 * _N(-d1))
    else:
        raise ValueError("kind must be 'call' or 'put'")


def greeks(opt: OptionSpec, kind: Literal["call","put"]=CALL) -> Dict[str, float]:
    """Returns greeks with sigma in absolute units (vega is dPrice/dSigma, not per 1%).

    Besides the usual five, ``dividend_rho`` is dPrice/dq and
    ``strike_sensitivity`` is dPrice/dK.
    """
    d1, d2 = _d1_d2(opt.S0, opt.K, opt.T, opt.r, opt.q, opt.sigma)
    n_d1   = float(_n(d1))
    disc_r = math.exp(-opt.r * opt.T)
    disc_q = math.exp(-opt.q * opt.T)
    srt    = opt.sigma * math.sqrt(opt.T)

    # Common
    gamma = disc_q * n_d1 / (opt.S0 * srt)
    vega  = opt.S0 * disc_q * n_d1 * math.sqrt(opt.T)

    if kind == CALL:
        N_d1, N_d2 = float(_N(d1)), float(_N(d2))
        delta = disc_q * N_d1
        theta = (-opt.S0 * disc_q * n_d1 * opt.sigma / (2*math.sqrt(opt.T))
                 - opt.r * opt.K * disc_r * N_d2
                 + opt.q * opt.S0 * disc_q * N_d1)
        rho   = opt.K * opt.T * disc_r * N_d2
        div_rho = -opt.T * opt.S0 * disc_q * N_d1
        dK    = -disc_r * N_d2
    elif kind == PUT:
        Nm_d1, Nm_d2 = float(_N(-d1)), float(_N(-d2))
        delta = -disc_q * Nm_d1
        theta = (-opt.S0 * disc_q * n_d1 * opt.sigma / (2*math.sqrt(opt.T))
                 + opt.r * opt.K * disc_r * Nm_d2
                 - opt.q * opt.S0 * disc_q * Nm_d1)
        rho   = -opt.K * opt.T * disc_r * Nm_d2
        div_rho = opt.T * opt.S0 * disc_q * Nm_d1
        dK    = disc_r * Nm_d2
    else:
        raise ValueError("kind must be 'call' or 'put'")

    return {"delta": delta, "gamma": gamma, "vega": vega, "theta": theta, "rho": rho,
            "dividend_rho": div_rho, "strike_sensitivity": dK}


def intrinsic_greeks(S0: float, K: float, T: float, r: float, q: float,
                     kind: Literal["call","put"]=CALL) -> Dict[str, float]:
    """Zero-variance limit: discounted intrinsic value on the forward.

    Used when the total variance to expiry is zero or the strike is zero,
    where the lognormal formulas are undefined. Gamma and vega vanish; the
    other Greeks are those of the forward contract if it finishes in the
    money and zero otherwise.
    """
    disc_r = math.exp(-r * T)
    disc_q = math.exp(-q * T)
    fwd_leg = S0 * disc_q
    strike_leg = K * disc_r
    if kind == CALL:
        sign = 1.0 if fwd_leg > strike_leg else 0.0
    elif kind == PUT:
        sign = -1.0 if strike_leg > fwd_leg else 0.0
    else:
        raise ValueError("kind must be 'call' or 'put'")

    return {
        "value": sign * (fwd_leg - strike_leg),
        "delta": sign * disc_q,
        "gamma": 0.0,
        "vega": 0.0,
        "theta": sign * (q * fwd_leg - r * strike_leg),
        "rho": sign * T * strike_leg,
        "dividend_rho": -sign * T * fwd_leg,
        "strike_sensitivity": -sign * disc_r,
    }


# ---------------------------------------------------------------------------
# Engine on curves
# ---------------------------------------------------------------------------
class AnalyticEuropeanEngine(GenericEngine[VanillaOptionArguments, VanillaOptionResults]):
    """Black-Scholes engine reading rates and vol off the arguments' curves.

    Flat equivalents are taken at the maturity: ``r`` and ``q`` from the
    discount factors, ``sigma`` from the Black variance at the strike.
    """

    def __init__(self):
        super().__init__(VanillaOptionArguments(), VanillaOptionResults())

    def calculate(self) -> None:
        args = self.arguments
        if args.exercise_type != EUROPEAN:
            raise ConfigurationError(
                f"AnalyticEuropeanEngine: not a European option ({args.exercise_type})"
            )
        T = args.maturity
        if T is None or T <= 0:
            raise ConfigurationError(f"AnalyticEuropeanEngine: non-positive maturity {T}")

        S, K = args.underlying, args.strike
        disc_r = args.risk_free_ts.discount(T)
        disc_q = args.dividend_ts.discount(T)
        r = -log(disc_r) / T
        q = -log(disc_q) / T
        res = self.results

        variance = 0.0 if K == 0.0 else args.vol_ts.black_variance(T, K)
        if K == 0.0 or variance == 0.0:
            # no diffusion left in the payoff: deterministic forward
            logger.debug("analytic european: intrinsic on the forward, K=%s variance=%s",
                         K, variance)
            g = intrinsic_greeks(S, K, T, r, q, args.type)
            res.value = g.pop("value")
            for key, v in g.items():
                setattr(res, key, v)
            return

        sigma = sqrt(variance / T)
        opt = OptionSpec(S0=S, K=K, T=T, r=r, sigma=sigma, q=q)
        logger.debug("analytic european: S=%s K=%s T=%s r=%.6f q=%.6f sigma=%.6f",
                     S, K, T, r, q, sigma)

        g = greeks(opt, args.type)
        res.value = price(opt, args.type)
        res.delta = g["delta"]
        res.gamma = g["gamma"]
        res.theta = g["theta"]
        res.vega = g["vega"]
        res.rho = g["rho"]
        res.dividend_rho = g["dividend_rho"]
        res.strike_sensitivity = g["strike_sensitivity"]
