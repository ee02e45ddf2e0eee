"""Tests for the forward and forward-performance engines.

Validation strategies:
- stub delegates with known outputs isolate the back-transform arithmetic
- a Black-Scholes delegate gives closed-form end-to-end checks
- bump-and-reprice delta checks the strike chain-rule term
"""

import math
import datetime as dt

import pytest
from optengines import (
    CALL, PUT, AMERICAN, Actual360, FlatForward, ZeroCurve, BlackConstantVol,
    ConfigurationError, GenericEngine, VanillaOptionArguments, VanillaOptionResults,
    ImpliedTermStructure, ImpliedVolTermStructure, AnalyticEuropeanEngine,
    ForwardEngine, ForwardVariant, OptionSpec, bs_price, numerical_greeks,
)

REF = dt.date(2024, 1, 1)
RESET = REF + dt.timedelta(days=180)   # 0.5y on ACT/360
S, Q, R, SIGMA, T = 100.0, 0.02, 0.05, 0.20, 1.0


class StubEngine(GenericEngine):
    """Delegate returning fixed numbers, recording what it was asked."""

    def __init__(self, value=None, **greeks):
        super().__init__(VanillaOptionArguments(), VanillaOptionResults())
        self.fixed = dict(value=value, delta=0.0, gamma=0.0, theta=0.0, vega=0.0,
                          rho=0.0, dividend_rho=0.0, strike_sensitivity=0.0)
        self.fixed.update(greeks)
        self.calls = 0
        self.resets = 0

    def reset(self):
        self.resets += 1
        super().reset()

    def calculate(self):
        self.calls += 1
        for k, v in self.fixed.items():
            setattr(self.results, k, v)
        if self.results.value is None:
            # identity pricer: plain underlying value
            self.results.value = self.arguments.underlying


class BareEngine(GenericEngine):
    def calculate(self):
        pass


class FailingEngine(GenericEngine):
    def __init__(self):
        super().__init__(VanillaOptionArguments(), VanillaOptionResults())

    def calculate(self):
        raise RuntimeError("delegate blew up")


def _fill(engine, *, moneyness=1.0, reset_date=RESET, kind=CALL,
          q=Q, r=R, underlying=S):
    args = engine.arguments
    args.type = kind
    args.underlying = underlying
    args.strike = 0.0
    args.dividend_ts = FlatForward(REF, q, Actual360())
    args.risk_free_ts = FlatForward(REF, r, Actual360())
    args.vol_ts = BlackConstantVol(REF, SIGMA, Actual360())
    args.maturity = T
    args.moneyness = moneyness
    args.reset_date = reset_date
    return engine


# ---------------------------------------------------------------------------
# Construction
# ---------------------------------------------------------------------------
class TestConstruction:
    def test_null_engine(self):
        with pytest.raises(ConfigurationError, match="null engine"):
            ForwardEngine(None)

    def test_wrong_arguments_shape(self):
        bad = BareEngine(object(), VanillaOptionResults())
        with pytest.raises(ConfigurationError, match="wrong engine type"):
            ForwardEngine(bad)

    def test_wrong_results_shape(self):
        bad = BareEngine(VanillaOptionArguments(), object())
        with pytest.raises(ConfigurationError, match="wrong engine type"):
            ForwardEngine(bad)

    def test_binds_delegate_records(self):
        stub = StubEngine()
        engine = ForwardEngine(stub)
        assert engine.original_engine is stub
        assert engine.variant is ForwardVariant.FORWARD
        assert engine.arguments is not stub.arguments
        assert isinstance(engine.results, VanillaOptionResults)

    def test_performance_factory(self):
        engine = ForwardEngine.performance(StubEngine())
        assert engine.variant is ForwardVariant.PERFORMANCE


# ---------------------------------------------------------------------------
# Projection onto the delegate
# ---------------------------------------------------------------------------
class TestProjection:
    def test_delegate_arguments(self):
        stub = StubEngine()
        engine = _fill(ForwardEngine(stub), moneyness=1.1)
        engine.calculate()
        original = stub.arguments
        assert original.type == CALL
        assert original.underlying == S
        assert original.strike == pytest.approx(110.0)
        assert original.maturity == T
        assert isinstance(original.dividend_ts, ImpliedTermStructure)
        assert isinstance(original.risk_free_ts, ImpliedTermStructure)
        assert isinstance(original.vol_ts, ImpliedVolTermStructure)
        assert original.dividend_ts.reference_date == RESET
        assert original.risk_free_ts.reference_date == RESET
        assert original.vol_ts.reference_date == RESET

    def test_exercise_copied(self):
        stub = StubEngine()
        engine = _fill(ForwardEngine(stub))
        engine.arguments.exercise_type = AMERICAN
        engine.arguments.stopping_times = [0.75, 1.0]
        engine.calculate()
        assert stub.arguments.exercise_type == AMERICAN
        assert stub.arguments.stopping_times == [0.75, 1.0]

    def test_forward_arguments_validated(self):
        engine = _fill(ForwardEngine(StubEngine()), moneyness=0.0)
        with pytest.raises(ConfigurationError, match="moneyness"):
            engine.calculate()

    def test_infinite_moneyness_never_reaches_delegate(self):
        stub = StubEngine()
        engine = _fill(ForwardEngine(stub), moneyness=math.inf)
        with pytest.raises(ConfigurationError, match="null moneyness"):
            engine.calculate()
        assert stub.calls == 0


# ---------------------------------------------------------------------------
# Forward back-transform
# ---------------------------------------------------------------------------
class TestForwardResults:
    def test_identity_delegate(self):
        """value = discQ * plain underlying value, all else consistent."""
        engine = _fill(ForwardEngine(StubEngine()))
        engine.calculate()
        disc_q = engine.arguments.dividend_ts.discount(RESET)
        res = engine.results
        assert res.value == disc_q * S
        assert res.delta == 0.0
        assert res.gamma == 0.0
        assert res.vega == 0.0
        assert res.dividend_rho == pytest.approx(-0.5 * res.value)

    @pytest.mark.parametrize("moneyness", [0.8, 1.0, 1.25])
    def test_delta_chain_rule(self, moneyness):
        stub = StubEngine(value=7.0, delta=0.6, strike_sensitivity=-0.4)
        engine = _fill(ForwardEngine(stub), moneyness=moneyness)
        engine.calculate()
        disc_q = math.exp(-Q * 0.5)
        expected = disc_q * (0.6 + moneyness * (-0.4))
        assert engine.results.delta == pytest.approx(expected, rel=1e-14)

    def test_remaining_greeks(self):
        stub = StubEngine(value=7.0, vega=30.0, rho=40.0, dividend_rho=-50.0, gamma=0.02)
        engine = _fill(ForwardEngine(stub))
        engine.calculate()
        disc_q = math.exp(-Q * 0.5)
        res = engine.results
        assert res.value == pytest.approx(disc_q * 7.0, rel=1e-14)
        assert res.gamma == 0.0
        assert res.theta == pytest.approx(Q * res.value, rel=1e-14)
        assert res.vega == pytest.approx(disc_q * 30.0, rel=1e-14)
        assert res.rho == pytest.approx(disc_q * 40.0, rel=1e-14)
        assert res.dividend_rho == pytest.approx(-0.5 * res.value + disc_q * -50.0, rel=1e-14)

    def test_delegate_reset_each_call(self):
        stub = StubEngine(value=1.0)
        engine = _fill(ForwardEngine(stub))
        engine.calculate()
        engine.calculate()
        assert stub.resets == 2
        assert stub.calls == 2

    def test_idempotent(self):
        engine = _fill(ForwardEngine(AnalyticEuropeanEngine()))
        engine.calculate()
        first = VanillaOptionResults(**vars(engine.results))
        engine.calculate()
        assert engine.results == first


# ---------------------------------------------------------------------------
# Performance back-transform
# ---------------------------------------------------------------------------
class TestPerformanceResults:
    def test_value_at_reference_date(self):
        """resetTime = 0: value = discR * delegate value, discR = P(reset)/S."""
        stub = StubEngine(value=12.0)
        engine = _fill(ForwardEngine.performance(stub), reset_date=REF)
        engine.calculate()
        disc_r = engine.arguments.risk_free_ts.discount(REF) / S
        assert engine.results.value == disc_r * 12.0
        assert engine.results.value == pytest.approx(0.12)

    def test_greeks(self):
        stub = StubEngine(value=12.0, delta=0.5, vega=30.0, rho=40.0, dividend_rho=-50.0)
        engine = _fill(ForwardEngine.performance(stub))
        engine.calculate()
        disc_r = math.exp(-R * 0.5) / S
        res = engine.results
        assert res.value == pytest.approx(disc_r * 12.0, rel=1e-14)
        assert res.delta == 0.0
        assert res.gamma == 0.0
        assert res.theta == pytest.approx(R * res.value, rel=1e-14)
        assert res.vega == pytest.approx(disc_r * 30.0, rel=1e-14)
        assert res.rho == pytest.approx(-0.5 * res.value + disc_r * 40.0, rel=1e-14)
        assert res.dividend_rho == pytest.approx(disc_r * -50.0, rel=1e-14)

    def test_no_delegate_reset(self):
        stub = StubEngine(value=1.0)
        engine = _fill(ForwardEngine.performance(stub))
        engine.calculate()
        engine.calculate()
        assert stub.resets == 0
        assert stub.calls == 2

    def test_converges_after_extra_call(self):
        engine = _fill(ForwardEngine.performance(AnalyticEuropeanEngine()))
        engine.calculate()
        engine.calculate()
        second = VanillaOptionResults(**vars(engine.results))
        engine.calculate()
        assert engine.results == second


# ---------------------------------------------------------------------------
# Errors from the delegate
# ---------------------------------------------------------------------------
class TestErrorPropagation:
    def test_delegate_calculate_error(self):
        engine = _fill(ForwardEngine(FailingEngine()))
        with pytest.raises(RuntimeError, match="delegate blew up"):
            engine.calculate()

    def test_delegate_validation_error(self):
        engine = _fill(ForwardEngine(StubEngine()))
        engine.arguments.exercise_type = AMERICAN
        engine.arguments.stopping_times = []
        with pytest.raises(ConfigurationError, match="stopping times"):
            engine.calculate()

    def test_delegate_engine_error(self):
        engine = _fill(ForwardEngine(AnalyticEuropeanEngine()))
        engine.arguments.exercise_type = AMERICAN
        engine.arguments.stopping_times = [1.0]
        with pytest.raises(ConfigurationError, match="not a European option"):
            engine.calculate()


# ---------------------------------------------------------------------------
# End to end with a Black-Scholes delegate
# ---------------------------------------------------------------------------
class TestEndToEnd:
    @pytest.fixture
    def engine(self):
        engine = _fill(ForwardEngine(AnalyticEuropeanEngine()))
        engine.calculate()
        return engine

    def test_value_closed_form(self, engine):
        # flat curves re-based at the reset date stay flat; the delegate
        # prices the copied maturity on them
        plain = bs_price(OptionSpec(S0=S, K=S, T=T, r=R, sigma=SIGMA, q=Q), CALL)
        assert engine.results.value == pytest.approx(math.exp(-Q * 0.5) * plain, rel=1e-10)

    def test_gamma_zero(self, engine):
        assert engine.results.gamma == 0.0

    def test_theta_from_dividend_zero_yield(self, engine):
        """theta = q(reset) * value, so it is positive for a positive yield."""
        res = engine.results
        assert res.theta == pytest.approx(Q * res.value, rel=1e-14)
        assert res.theta > 0

    def test_theta_sign_follows_zero_yield(self):
        engine = _fill(ForwardEngine(AnalyticEuropeanEngine()), q=-0.01)
        engine.calculate()
        assert engine.results.value > 0
        assert engine.results.theta < 0

    def test_delta_matches_bump_and_reprice(self, engine):
        fd = numerical_greeks(engine, bump_pct=0.01)
        assert fd["delta"] == pytest.approx(engine.results.delta, rel=1e-7)
        # price is linear in spot once the strike moves with it
        assert abs(fd["gamma"]) < 1e-8
        assert engine.arguments.underlying == S

    def test_delta_is_value_over_spot(self, engine):
        assert engine.results.delta == pytest.approx(engine.results.value / S, rel=1e-10)

    def test_zero_vol(self):
        engine = _fill(ForwardEngine(AnalyticEuropeanEngine()))
        engine.arguments.vol_ts = BlackConstantVol(REF, 0.0, Actual360())
        engine.calculate()
        intrinsic = S * math.exp(-Q * T) - S * math.exp(-R * T)
        assert engine.results.value == pytest.approx(math.exp(-Q * 0.5) * intrinsic, rel=1e-10)
        assert engine.results.vega == 0.0

    def test_put(self):
        engine = _fill(ForwardEngine(AnalyticEuropeanEngine()), kind=PUT, moneyness=0.9)
        engine.calculate()
        plain = bs_price(OptionSpec(S0=S, K=0.9 * S, T=T, r=R, sigma=SIGMA, q=Q), PUT)
        assert engine.results.value == pytest.approx(math.exp(-Q * 0.5) * plain, rel=1e-10)

    def test_performance_closed_form(self):
        engine = _fill(ForwardEngine.performance(AnalyticEuropeanEngine()))
        engine.calculate()
        plain = bs_price(OptionSpec(S0=S, K=S, T=T, r=R, sigma=SIGMA, q=Q), CALL)
        expected = math.exp(-R * 0.5) / S * plain
        assert engine.results.value == pytest.approx(expected, rel=1e-10)

    def test_term_structure_curves(self):
        """Non-flat curves: delegate sees the curves implied at the reset date."""
        engine = _fill(ForwardEngine(AnalyticEuropeanEngine()))
        engine.arguments.risk_free_ts = ZeroCurve(
            REF, [0.25, 1.0, 2.0], [0.03, 0.04, 0.05], Actual360())
        engine.calculate()
        implied = ImpliedTermStructure(engine.arguments.risk_free_ts, RESET, RESET)
        r_eq = -math.log(implied.discount(T)) / T
        plain = bs_price(OptionSpec(S0=S, K=S, T=T, r=r_eq, sigma=SIGMA, q=Q), CALL)
        assert engine.results.value == pytest.approx(math.exp(-Q * 0.5) * plain, rel=1e-9)
