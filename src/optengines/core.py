from __future__ import annotations
from dataclasses import dataclass


CALL = "call"
PUT  = "put"

EUROPEAN = "european"
AMERICAN = "american"
BERMUDAN = "bermudan"

OPTION_TYPES = (CALL, PUT)
EXERCISE_TYPES = (EUROPEAN, AMERICAN, BERMUDAN)


class ConfigurationError(ValueError):
    """Raised when an engine or an arguments record is set up inconsistently.

    Always fatal for the request that raised it: there is no price to fall
    back on.
    """


# ---------------------------------------------------------------------------
# Flat-parameter record for the closed-form formulas
# ---------------------------------------------------------------------------
@dataclass(frozen=True)
class OptionSpec:
    """Single-option container bundling instrument + flat market data.

    Engines build one of these from their curves before calling the
    closed-form helpers in :mod:`optengines.black_scholes`.
    """
    S0: float
    K: float
    T: float          # years
    r: float          # continuous risk-free
    sigma: float
    q: float = 0.0    # continuous dividend yield

    def __post_init__(self):
        if self.S0 <= 0:
            raise ValueError(f"S0 must be positive, got {self.S0}")
        if self.K <= 0:
            raise ValueError(f"K must be positive, got {self.K}")
        if self.T <= 0:
            raise ValueError(f"T must be positive, got {self.T}")
        if self.sigma <= 0:
            raise ValueError(f"sigma must be positive, got {self.sigma}")


def check_kind(kind: str) -> str:
    """Normalise an option type string, raising on anything but call/put."""
    if kind not in OPTION_TYPES:
        raise ValueError(f"kind must be 'call' or 'put', got {kind!r}")
    return kind
