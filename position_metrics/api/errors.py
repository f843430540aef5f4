from typing import Any, Dict, Optional

from fastapi.responses import JSONResponse

from position_metrics.risk.metrics_engine import InvalidConfigurationError, MetricsEngineError


def error_response(
    *,
    status_code: int,
    code: str,
    detail: str,
    context: Optional[Dict[str, Any]] = None,
) -> JSONResponse:
    """Return a consistent error payload for API responses."""
    payload: Dict[str, Any] = {"error": code, "detail": detail}
    if context:
        payload["context"] = context
    return JSONResponse(status_code=status_code, content=payload)


def engine_error_code(exc: MetricsEngineError) -> str:
    if isinstance(exc, InvalidConfigurationError):
        return "invalid_configuration"
    return "invalid_input"
