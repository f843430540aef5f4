import math
import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[2]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from position_metrics.risk.metrics_engine import (  # noqa: E402
    InvalidConfigurationError,
    InvalidInputError,
    MetricField,
    MetricsEngineError,
    PositionMetrics,
    PositionType,
    TradeParameters,
    calculate_from,
    calculate_from_margin,
    calculate_from_one_r,
    calculate_from_position_size,
    calculate_from_quantity,
    calculate_from_risk,
    has_required_data,
    max_safe_leverage,
    position_type_from_target,
    risk_per_unit,
    stop_distance_pct,
)


def long_params(**overrides):
    values = {"entry_price": 100.0, "stop_loss": 95.0, "leverage": 10.0, "position_type": PositionType.LONG}
    values.update(overrides)
    return TradeParameters(**values)


def short_params(**overrides):
    values = {"entry_price": 100.0, "stop_loss": 104.0, "leverage": 5.0, "position_type": PositionType.SHORT}
    values.update(overrides)
    return TradeParameters(**values)


def assert_metrics_close(actual: PositionMetrics, expected: PositionMetrics):
    for field in MetricField:
        assert math.isclose(actual.value_of(field), expected.value_of(field), rel_tol=1e-9), field


def test_margin_scenario_long():
    result = calculate_from_margin(1000, long_params())
    assert math.isclose(result.position_size, 10000.0)
    assert math.isclose(result.quantity, 100.0)
    assert math.isclose(result.one_r, 500.0)
    assert result.margin == 1000


def test_position_size_entry_point():
    result = calculate_from_position_size(10000, long_params())
    assert math.isclose(result.margin, 1000.0)
    assert math.isclose(result.quantity, 100.0)
    assert math.isclose(result.one_r, 500.0)


def test_quantity_entry_point():
    result = calculate_from_quantity(2.5, long_params())
    assert math.isclose(result.position_size, 250.0)
    assert math.isclose(result.margin, 25.0)
    assert math.isclose(result.one_r, 12.5)


def test_one_r_entry_point_short():
    result = calculate_from_one_r(40, short_params())
    # risk per unit is 4 for a short stopped at 104
    assert math.isclose(result.quantity, 10.0)
    assert math.isclose(result.position_size, 1000.0)
    assert math.isclose(result.margin, 200.0)
    assert result.one_r == 40


def test_risk_per_unit_follows_direction():
    assert risk_per_unit(long_params()) == 5.0
    assert risk_per_unit(short_params()) == 4.0
    assert risk_per_unit(long_params(stop_loss=110.0)) == -10.0


@pytest.mark.parametrize("params", [long_params(), short_params(), long_params(leverage=125, entry_price=0.000321, stop_loss=0.0003)])
@pytest.mark.parametrize("source", list(MetricField))
def test_round_trip_through_every_entry_point(params, source):
    original = calculate_from(MetricField.MARGIN, 123.45, params)
    seeded = calculate_from(source, original.value_of(source), params)
    assert_metrics_close(seeded, original)
    for target in MetricField:
        again = calculate_from(target, seeded.value_of(target), params)
        assert_metrics_close(again, original)


@pytest.mark.parametrize("value", [0, -1, float("nan"), float("inf"), "abc", None])
def test_non_positive_or_non_numeric_input_rejected(value):
    with pytest.raises(InvalidInputError):
        calculate_from(MetricField.MARGIN, value, long_params())


def test_wrong_side_stop_is_invalid_configuration():
    with pytest.raises(InvalidConfigurationError):
        calculate_from_margin(1000, long_params(stop_loss=110.0))
    with pytest.raises(InvalidConfigurationError):
        calculate_from_one_r(50, short_params(stop_loss=90.0))


def test_configuration_checked_before_input():
    with pytest.raises(InvalidConfigurationError):
        calculate_from_quantity(-5, long_params(stop_loss=100.0))


@pytest.mark.parametrize(
    "overrides",
    [
        {"entry_price": 0.0},
        {"stop_loss": 0.0},
        {"stop_loss": 100.0},
        {"leverage": 0.0},
        {"leverage": -2.0},
    ],
)
def test_gate_failures(overrides):
    params = long_params(**overrides)
    assert has_required_data(params) is False
    with pytest.raises(InvalidConfigurationError):
        calculate_from_margin(100, params)


def test_errors_share_base_class():
    assert issubclass(InvalidInputError, MetricsEngineError)
    assert issubclass(InvalidConfigurationError, MetricsEngineError)
    assert has_required_data(None) is False


def test_calculate_from_risk_uses_percent_of_portfolio():
    result = calculate_from_risk(5000, 1, long_params())
    assert math.isclose(result.one_r, 50.0)
    assert math.isclose(result.quantity, 10.0)
    assert math.isclose(result.margin, 100.0)
    with pytest.raises(InvalidInputError):
        calculate_from_risk(0, 1, long_params())


def test_position_type_from_target():
    assert position_type_from_target(100, 120) is PositionType.LONG
    assert position_type_from_target(100, 80) is PositionType.SHORT
    assert position_type_from_target(100, 100) is None


def test_max_safe_leverage():
    assert math.isclose(stop_distance_pct(long_params()), 0.05)
    assert max_safe_leverage(long_params()) == 20
    assert max_safe_leverage(short_params()) == 25
    assert max_safe_leverage(long_params(stop_loss=100.0)) is None
