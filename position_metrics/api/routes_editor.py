import asyncio
import contextlib
from typing import Any, Dict, Optional

from fastapi import APIRouter, WebSocket, WebSocketDisconnect
from pydantic import ValidationError

from position_metrics.core.config import get_settings
from position_metrics.core.logging import get_logger
from position_metrics.editor.session import EditSession
from position_metrics.risk.metrics_engine import PositionMetrics
from position_metrics.trading.schemas import (
    EditorEditMessage,
    EditorFlushMessage,
    EditorInitMessage,
    EditorMetricsMessage,
    EditorParamsMessage,
    MetricsModel,
    editor_message_adapter,
)

router = APIRouter(tags=["editor"])
logger = get_logger(__name__)


def _error(code: str, detail: str) -> Dict[str, Any]:
    return {"type": "error", "error": code, "detail": detail}


async def _drain(websocket: WebSocket, outbox: "asyncio.Queue[Dict[str, Any]]") -> None:
    while True:
        msg = await outbox.get()
        try:
            await websocket.send_json(msg)
        except WebSocketDisconnect:
            break
        except Exception as exc:
            logger.warning("editor_send_failed", extra={"event": "editor_send_failed", "error": str(exc)})
            break


@router.websocket("/ws/editor")
async def editor_stream(websocket: WebSocket) -> None:
    """Host one edit session per connection; commits are pushed back as they settle."""
    await websocket.accept()
    settings = get_settings()
    loop = asyncio.get_running_loop()
    outbox: "asyncio.Queue[Dict[str, Any]]" = asyncio.Queue()
    session: Optional[EditSession] = None

    def _state(**extra: Any) -> Dict[str, Any]:
        payload = session.snapshot() if session is not None else {}
        payload.update(extra)
        return {"type": "state", "payload": payload}

    def _on_change(metrics: PositionMetrics) -> None:
        outbox.put_nowait({"type": "commit", "payload": MetricsModel.from_metrics(metrics).model_dump()})
        outbox.put_nowait(_state())

    sender = asyncio.create_task(_drain(websocket, outbox))
    try:
        while True:
            try:
                raw = await websocket.receive_json()
            except ValueError:
                outbox.put_nowait(_error("invalid_json", "Messages must be JSON objects."))
                continue
            try:
                message = editor_message_adapter.validate_python(raw)
            except ValidationError as exc:
                outbox.put_nowait(_error("validation_error", str(exc)))
                continue

            if isinstance(message, EditorInitMessage):
                if session is not None:
                    session.close()
                session = EditSession(
                    message.parameters.to_parameters(),
                    message.metrics.to_metrics(),
                    _on_change,
                    scheduler=loop,
                    debounce=settings.editor_debounce_seconds,
                    label=message.label,
                    disabled=message.disabled,
                    currency_decimals=settings.currency_decimals,
                    quantity_decimals=settings.quantity_decimals,
                )
                outbox.put_nowait(_state())
                continue

            if session is None:
                outbox.put_nowait(_error("session_not_initialized", "Send an init message first."))
                continue

            if isinstance(message, EditorEditMessage):
                accepted = session.edit(message.field, message.text)
                outbox.put_nowait(_state(accepted=accepted))
            elif isinstance(message, EditorParamsMessage):
                session.update_parameters(message.parameters.to_parameters())
                outbox.put_nowait(_state())
            elif isinstance(message, EditorMetricsMessage):
                applied = session.push_metrics(message.metrics.to_metrics())
                outbox.put_nowait(_state(applied=applied))
            elif isinstance(message, EditorFlushMessage):
                # A successful flush already queued commit + state through _on_change.
                if session.flush() is None:
                    outbox.put_nowait(_state())
    except WebSocketDisconnect:
        logger.info("editor_disconnect", extra={"event": "editor_disconnect"})
    finally:
        if session is not None:
            session.close()
        sender.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await sender
