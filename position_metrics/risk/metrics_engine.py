"""Closed-form conversions between margin, notional, quantity and 1R.

Every entry point takes one authoritative value plus the trade parameters and
returns the full :class:`PositionMetrics` tuple. Nothing here rounds; rounding
belongs to whoever renders the numbers.
"""

import math
from dataclasses import asdict, dataclass
from enum import Enum
from typing import Callable, Dict, Optional


class PositionType(str, Enum):
    LONG = "LONG"
    SHORT = "SHORT"


class MetricField(str, Enum):
    MARGIN = "margin"
    POSITION_SIZE = "position_size"
    QUANTITY = "quantity"
    ONE_R = "one_r"


@dataclass(frozen=True)
class TradeParameters:
    entry_price: float
    stop_loss: float
    leverage: float
    position_type: PositionType


@dataclass(frozen=True)
class PositionMetrics:
    margin: float
    position_size: float
    quantity: float
    one_r: float

    def value_of(self, field: MetricField) -> float:
        return getattr(self, MetricField(field).value)

    def as_dict(self) -> Dict[str, float]:
        return asdict(self)


class MetricsEngineError(Exception):
    """Base class for conversions that cannot be computed."""


class InvalidInputError(MetricsEngineError):
    """Raised when the authoritative value is not a positive finite number."""


class InvalidConfigurationError(MetricsEngineError):
    """Raised when the trade parameters cannot produce a positive risk per unit."""


def parameter_problem(params: TradeParameters) -> Optional[str]:
    """Return why the parameters fail the sizing gate, or None when usable."""
    if not params.entry_price > 0:
        return "Entry price must be positive."
    if not params.stop_loss > 0:
        return "Stop loss must be positive."
    if params.entry_price == params.stop_loss:
        return "Stop loss equals entry price."
    if not params.leverage > 0:
        return "Leverage must be positive."
    return None


def has_required_data(params: Optional[TradeParameters]) -> bool:
    """True when the editor may show editable fields for these parameters."""
    return params is not None and parameter_problem(params) is None


def risk_per_unit(params: TradeParameters) -> float:
    """Price distance lost per unit if the stop is hit (negative if the stop is on the wrong side)."""
    if PositionType(params.position_type) is PositionType.LONG:
        return params.entry_price - params.stop_loss
    return params.stop_loss - params.entry_price


def validate_parameters(params: TradeParameters) -> float:
    """Check the parameters and return the strictly positive risk per unit."""
    problem = parameter_problem(params)
    if problem:
        raise InvalidConfigurationError(problem)
    risk = risk_per_unit(params)
    if not risk > 0:
        side = PositionType(params.position_type).value
        raise InvalidConfigurationError(
            f"Stop loss {params.stop_loss} is on the wrong side of entry {params.entry_price} for a {side} position."
        )
    return risk


def _require_positive(value: float, field: MetricField) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError) as exc:
        raise InvalidInputError(f"{field.value} must be a number.") from exc
    if not math.isfinite(number) or number <= 0:
        raise InvalidInputError(f"{field.value} must be greater than zero.")
    return number


def calculate_from_margin(margin: float, params: TradeParameters) -> PositionMetrics:
    risk = validate_parameters(params)
    margin = _require_positive(margin, MetricField.MARGIN)
    position_size = margin * params.leverage
    quantity = position_size / params.entry_price
    return PositionMetrics(
        margin=margin,
        position_size=position_size,
        quantity=quantity,
        one_r=quantity * risk,
    )


def calculate_from_position_size(position_size: float, params: TradeParameters) -> PositionMetrics:
    risk = validate_parameters(params)
    position_size = _require_positive(position_size, MetricField.POSITION_SIZE)
    quantity = position_size / params.entry_price
    return PositionMetrics(
        margin=position_size / params.leverage,
        position_size=position_size,
        quantity=quantity,
        one_r=quantity * risk,
    )


def calculate_from_quantity(quantity: float, params: TradeParameters) -> PositionMetrics:
    risk = validate_parameters(params)
    quantity = _require_positive(quantity, MetricField.QUANTITY)
    position_size = quantity * params.entry_price
    return PositionMetrics(
        margin=position_size / params.leverage,
        position_size=position_size,
        quantity=quantity,
        one_r=quantity * risk,
    )


def calculate_from_one_r(one_r: float, params: TradeParameters) -> PositionMetrics:
    risk = validate_parameters(params)
    one_r = _require_positive(one_r, MetricField.ONE_R)
    quantity = one_r / risk
    position_size = quantity * params.entry_price
    return PositionMetrics(
        margin=position_size / params.leverage,
        position_size=position_size,
        quantity=quantity,
        one_r=one_r,
    )


_CALCULATORS: Dict[MetricField, Callable[[float, TradeParameters], PositionMetrics]] = {
    MetricField.MARGIN: calculate_from_margin,
    MetricField.POSITION_SIZE: calculate_from_position_size,
    MetricField.QUANTITY: calculate_from_quantity,
    MetricField.ONE_R: calculate_from_one_r,
}


def calculate_from(field: MetricField, value: float, params: TradeParameters) -> PositionMetrics:
    """Dispatch to the conversion whose input is ``field``."""
    return _CALCULATORS[MetricField(field)](value, params)


def calculate_from_risk(portfolio: float, risk_pct: float, params: TradeParameters) -> PositionMetrics:
    """Size a position so that 1R equals ``risk_pct`` percent of ``portfolio``."""
    validate_parameters(params)
    if not (math.isfinite(portfolio) and portfolio > 0):
        raise InvalidInputError("portfolio must be greater than zero.")
    if not (math.isfinite(risk_pct) and risk_pct > 0):
        raise InvalidInputError("risk_pct must be greater than zero.")
    return calculate_from_one_r(portfolio * risk_pct / 100.0, params)


def position_type_from_target(entry_price: float, take_profit: float) -> Optional[PositionType]:
    """Infer direction from where the profit target sits relative to entry."""
    if take_profit > entry_price:
        return PositionType.LONG
    if take_profit < entry_price:
        return PositionType.SHORT
    return None


def stop_distance_pct(params: TradeParameters) -> float:
    """Stop distance as a fraction of entry price."""
    if not params.entry_price > 0:
        raise InvalidConfigurationError("Entry price must be positive.")
    return abs(risk_per_unit(params)) / params.entry_price


def max_safe_leverage(params: TradeParameters) -> Optional[int]:
    """Highest isolated-margin leverage that is not liquidated before the stop."""
    distance = stop_distance_pct(params)
    if distance == 0:
        return None
    return math.floor(1 / distance)
