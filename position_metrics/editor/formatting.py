import math
from typing import Dict, Optional

from position_metrics.risk.metrics_engine import MetricField, PositionMetrics

CURRENCY_DECIMALS = 2
QUANTITY_DECIMALS = 8


def decimals_for(
    field: MetricField,
    *,
    currency_decimals: int = CURRENCY_DECIMALS,
    quantity_decimals: int = QUANTITY_DECIMALS,
) -> int:
    """Quantity carries more precision than the currency-like fields."""
    if MetricField(field) is MetricField.QUANTITY:
        return quantity_decimals
    return currency_decimals


def format_metric(
    field: MetricField,
    value: float,
    *,
    currency_decimals: int = CURRENCY_DECIMALS,
    quantity_decimals: int = QUANTITY_DECIMALS,
) -> str:
    places = decimals_for(field, currency_decimals=currency_decimals, quantity_decimals=quantity_decimals)
    return f"{float(value):.{places}f}"


def format_metrics(
    metrics: PositionMetrics,
    *,
    currency_decimals: int = CURRENCY_DECIMALS,
    quantity_decimals: int = QUANTITY_DECIMALS,
) -> Dict[MetricField, str]:
    return {
        field: format_metric(
            field,
            metrics.value_of(field),
            currency_decimals=currency_decimals,
            quantity_decimals=quantity_decimals,
        )
        for field in MetricField
    }


def parse_metric_text(text: Optional[str]) -> Optional[float]:
    """
    Parse text typed into a metric field.

    Returns None for anything that is not a complete finite number, including
    the in-progress states a user passes through while typing ("", ".", "1e").
    """
    if text is None:
        return None
    cleaned = str(text).strip()
    if not cleaned:
        return None
    try:
        value = float(cleaned)
    except ValueError:
        return None
    if not math.isfinite(value):
        return None
    return value
