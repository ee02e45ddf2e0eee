# optengines: pricing-engine adaptation framework
# Public API

# Core data model
from .core import (
    OptionSpec, CALL, PUT, EUROPEAN, AMERICAN, BERMUDAN, ConfigurationError,
)

# Market collaborators
from .daycount import DayCounter, Actual365Fixed, Actual360, Thirty360
from .termstructures import (
    YieldTermStructure, FlatForward, ZeroCurve, ImpliedTermStructure,
)
from .volatility import (
    BlackVolTermStructure, BlackConstantVol, BlackVarianceCurve,
    ImpliedVolTermStructure,
)

# Engine contract
from .engines import (
    Arguments, Results, VanillaOptionArguments, VanillaOptionResults,
    PricingEngine, GenericEngine,
)

# Closed form
from .black_scholes import price as bs_price, greeks as bs_greeks, AnalyticEuropeanEngine

# Forward-starting options
from .forward import (
    forward_arguments, ForwardOptionArguments, ForwardVariant, ForwardEngine,
)

# Monte Carlo composition
from .processes import Path, Sample, GaussianPathGenerator
from .statistics import Statistics
from .monte_carlo import (
    PathPricer, EuropeanPathPricer, DiscountedTerminalPathPricer,
    MonteCarloModel, McPricer, McEuropean,
)

# Risk
from .risk import numerical_greeks

__all__ = [
    # Core
    "OptionSpec", "CALL", "PUT", "EUROPEAN", "AMERICAN", "BERMUDAN",
    "ConfigurationError",
    # Market
    "DayCounter", "Actual365Fixed", "Actual360", "Thirty360",
    "YieldTermStructure", "FlatForward", "ZeroCurve", "ImpliedTermStructure",
    "BlackVolTermStructure", "BlackConstantVol", "BlackVarianceCurve",
    "ImpliedVolTermStructure",
    # Engines
    "Arguments", "Results", "VanillaOptionArguments", "VanillaOptionResults",
    "PricingEngine", "GenericEngine",
    "bs_price", "bs_greeks", "AnalyticEuropeanEngine",
    # Forward
    "forward_arguments", "ForwardOptionArguments", "ForwardVariant",
    "ForwardEngine",
    # Monte Carlo
    "Path", "Sample", "GaussianPathGenerator", "Statistics",
    "PathPricer", "EuropeanPathPricer", "DiscountedTerminalPathPricer",
    "MonteCarloModel", "McPricer", "McEuropean",
    # Risk
    "numerical_greeks",
]

__version__ = "0.1.0"
