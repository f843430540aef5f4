from fastapi import APIRouter

from position_metrics.api.errors import engine_error_code, error_response
from position_metrics.core.config import get_settings
from position_metrics.core.logging import get_logger
from position_metrics.editor.formatting import format_metrics
from position_metrics.risk.metrics_engine import (
    MetricField,
    MetricsEngineError,
    PositionMetrics,
    TradeParameters,
    calculate_from,
    calculate_from_risk,
    max_safe_leverage,
    risk_per_unit,
)
from position_metrics.trading.schemas import (
    ConvertRequest,
    EditorConfigResponse,
    ErrorResponse,
    MetricsResponse,
    RiskSizingRequest,
)

router = APIRouter(prefix="/api/metrics", tags=["metrics"])

logger = get_logger(__name__)


def _build_response(metrics: PositionMetrics, params: TradeParameters) -> MetricsResponse:
    settings = get_settings()
    formatted = format_metrics(
        metrics,
        currency_decimals=settings.currency_decimals,
        quantity_decimals=settings.quantity_decimals,
    )
    return MetricsResponse(
        **metrics.as_dict(),
        risk_per_unit=risk_per_unit(params),
        max_leverage=max_safe_leverage(params),
        formatted={field.value: text for field, text in formatted.items()},
    )


@router.get("/config", response_model=EditorConfigResponse)
async def editor_config():
    """Precision and debounce settings so clients render fields the same way."""
    settings = get_settings()
    return EditorConfigResponse(
        debounce_ms=settings.editor_debounce_ms,
        currency_decimals=settings.currency_decimals,
        quantity_decimals=settings.quantity_decimals,
        fields=[field.value for field in MetricField],
    )


@router.post(
    "/convert",
    response_model=MetricsResponse,
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
async def convert(request: ConvertRequest):
    """Recompute all four metrics from one authoritative field."""
    params = request.to_parameters()
    try:
        metrics = calculate_from(request.field, request.value, params)
        return _build_response(metrics, params)
    except MetricsEngineError as exc:
        logger.warning(
            "metrics_convert_rejected",
            extra={"event": "metrics_convert_rejected", "field": request.field.value, "error": str(exc)},
        )
        return error_response(status_code=400, code=engine_error_code(exc), detail=str(exc))
    except Exception:
        logger.exception(
            "metrics_convert_failed",
            extra={"event": "metrics_convert_failed", "field": request.field.value},
        )
        return error_response(status_code=500, code="unexpected_error", detail="Unexpected error. Check server logs.")


@router.post(
    "/size-from-risk",
    response_model=MetricsResponse,
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
async def size_from_risk(request: RiskSizingRequest):
    """Seed the metrics so that 1R is a percentage of the portfolio."""
    params = request.to_parameters()
    try:
        metrics = calculate_from_risk(request.portfolio, request.risk_pct, params)
        return _build_response(metrics, params)
    except MetricsEngineError as exc:
        logger.warning(
            "metrics_size_from_risk_rejected",
            extra={"event": "metrics_size_from_risk_rejected", "risk_pct": request.risk_pct, "error": str(exc)},
        )
        return error_response(status_code=400, code=engine_error_code(exc), detail=str(exc))
    except Exception:
        logger.exception("metrics_size_from_risk_failed", extra={"event": "metrics_size_from_risk_failed"})
        return error_response(status_code=500, code="unexpected_error", detail="Unexpected error. Check server logs.")
