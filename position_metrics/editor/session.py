"""Debounced editing session for the four linked position metrics.

The session owns the text shown in each field and decides which field is
authoritative. A field edit makes that field the authority and (re)arms a
single debounce timer; when the timer fires the authority value is pushed
through the metrics engine and the other three fields are rewritten. Metrics
pushed by the host only replace the displayed text while no edit is in flight.
"""

import asyncio
from enum import Enum
from functools import partial
from types import MappingProxyType
from typing import Any, Callable, Dict, Mapping, Optional, Protocol

from position_metrics.core.logging import get_logger
from position_metrics.editor.formatting import (
    CURRENCY_DECIMALS,
    QUANTITY_DECIMALS,
    format_metric,
    format_metrics,
    parse_metric_text,
)
from position_metrics.risk.metrics_engine import (
    MetricField,
    MetricsEngineError,
    PositionMetrics,
    TradeParameters,
    calculate_from,
    has_required_data,
)

logger = get_logger(__name__)

DEFAULT_DEBOUNCE_SECONDS = 0.3


class SessionState(str, Enum):
    IDLE = "idle"
    EDITING = "editing"


class TimerHandle(Protocol):
    def cancel(self) -> Any:
        ...


class Scheduler(Protocol):
    def call_later(self, delay: float, callback: Callable[[], Any]) -> TimerHandle:
        ...


class EditSession:
    """One editor instance: display text, authority field and the debounce timer."""

    def __init__(
        self,
        parameters: TradeParameters,
        initial_metrics: PositionMetrics,
        on_change: Callable[[PositionMetrics], Any],
        *,
        scheduler: Optional[Scheduler] = None,
        debounce: float = DEFAULT_DEBOUNCE_SECONDS,
        label: Optional[str] = None,
        disabled: bool = False,
        currency_decimals: int = CURRENCY_DECIMALS,
        quantity_decimals: int = QUANTITY_DECIMALS,
    ) -> None:
        if debounce < 0:
            raise ValueError("debounce must not be negative")
        self._parameters = parameters
        self._on_change = on_change
        self._scheduler = scheduler
        self._debounce = debounce
        self._label = label
        self._disabled = bool(disabled)
        self._currency_decimals = currency_decimals
        self._quantity_decimals = quantity_decimals

        self._display: Dict[MetricField, str] = self._format_all(initial_metrics)
        self._authority: Optional[MetricField] = None
        self._last_edited: Optional[MetricField] = None
        self._pending: Optional[TimerHandle] = None
        # Bumped on every schedule/cancel so a timer that slipped past cancel() stays inert.
        self._generation = 0
        self._closed = False

    # ------------------------------------------------------------------ views

    @property
    def state(self) -> SessionState:
        return SessionState.EDITING if self._authority is not None else SessionState.IDLE

    @property
    def authority_field(self) -> Optional[MetricField]:
        return self._authority

    @property
    def last_edited(self) -> Optional[MetricField]:
        return self._last_edited

    @property
    def display_values(self) -> Mapping[MetricField, str]:
        return MappingProxyType(dict(self._display))

    @property
    def parameters(self) -> TradeParameters:
        return self._parameters

    @property
    def missing_data(self) -> bool:
        return not has_required_data(self._parameters)

    @property
    def disabled(self) -> bool:
        return self._disabled

    @property
    def label(self) -> Optional[str]:
        return self._label

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def has_pending_commit(self) -> bool:
        return self._pending is not None

    def snapshot(self) -> Dict[str, Any]:
        """Plain-dict view of the session for hosts that serialize it."""
        return {
            "state": self.state.value,
            "authority_field": self._authority.value if self._authority else None,
            "last_edited": self._last_edited.value if self._last_edited else None,
            "display_values": {field.value: text for field, text in self._display.items()},
            "missing_data": self.missing_data,
            "disabled": self._disabled,
            "label": self._label,
            "closed": self.closed,
            "pending_commit": self.has_pending_commit,
        }

    # ----------------------------------------------------------- entry points

    def edit(self, field: MetricField, raw_text: Optional[str]) -> bool:
        """Record keystroke-level text for ``field`` and restart the debounce window."""
        field = MetricField(field)
        if self._closed or self._disabled or self.missing_data:
            logger.debug(
                "metrics_edit_rejected",
                extra={
                    "event": "metrics_edit_rejected",
                    "field": field.value,
                    "closed": self.closed,
                    "disabled": self._disabled,
                    "missing_data": self.missing_data,
                },
            )
            return False
        # Resolve before touching state so a missing loop leaves the session idle.
        scheduler = self._scheduler or asyncio.get_running_loop()
        self._display[field] = "" if raw_text is None else str(raw_text)
        self._authority = field
        self._last_edited = field
        self._cancel_pending()
        self._pending = scheduler.call_later(self._debounce, partial(self._on_timer, self._generation))
        return True

    def flush(self) -> Optional[PositionMetrics]:
        """Commit the in-flight edit immediately instead of waiting for the timer."""
        if self._closed or self._authority is None:
            return None
        self._cancel_pending()
        return self._commit()

    def update_parameters(self, parameters: TradeParameters) -> None:
        """Replace the trade parameters; an in-flight edit commits against the new ones."""
        self._parameters = parameters
        if self.missing_data:
            logger.debug(
                "metrics_parameters_incomplete",
                extra={"event": "metrics_parameters_incomplete", "editing": self._authority is not None},
            )

    def push_metrics(self, metrics: PositionMetrics) -> bool:
        """Adopt host-supplied metrics as the new baseline, unless the user is mid-edit."""
        if self._closed:
            return False
        if self._authority is not None:
            logger.debug(
                "metrics_push_ignored",
                extra={"event": "metrics_push_ignored", "authority": self._authority.value},
            )
            return False
        self._display = self._format_all(metrics)
        return True

    def set_disabled(self, disabled: bool) -> None:
        """Toggle interactivity; disabling drops any edit still waiting to commit."""
        self._disabled = bool(disabled)
        if self._disabled and self._authority is not None:
            self._cancel_pending()
            self._authority = None

    def close(self) -> None:
        """Tear down the session; a pending commit is dropped."""
        self._cancel_pending()
        self._authority = None
        self._closed = True

    # -------------------------------------------------------------- internals

    def _cancel_pending(self) -> None:
        if self._pending is not None:
            self._pending.cancel()
            self._pending = None
        self._generation += 1

    def _on_timer(self, generation: int) -> None:
        if self._closed or generation != self._generation:
            return
        self._pending = None
        self._commit()

    def _skip(self, field: MetricField, reason: str) -> None:
        logger.debug(
            "metrics_commit_skipped",
            extra={"event": "metrics_commit_skipped", "field": field.value, "reason": reason},
        )

    def _commit(self) -> Optional[PositionMetrics]:
        field = self._authority
        if field is None:
            return None
        self._authority = None

        value = parse_metric_text(self._display[field])
        if value is None or value <= 0:
            self._skip(field, "invalid_input")
            return None
        if self.missing_data:
            self._skip(field, "missing_data")
            return None

        try:
            metrics = calculate_from(field, value, self._parameters)
        except MetricsEngineError as exc:
            self._skip(field, type(exc).__name__)
            return None
        except Exception:
            logger.exception(
                "metrics_commit_failed",
                extra={"event": "metrics_commit_failed", "field": field.value, "value": value},
            )
            return None

        for other in MetricField:
            if other is not field:
                self._display[other] = self._format(other, metrics.value_of(other))
        logger.debug(
            "metrics_committed",
            extra={"event": "metrics_committed", "field": field.value, **metrics.as_dict()},
        )
        self._on_change(metrics)
        return metrics

    def _format(self, field: MetricField, value: float) -> str:
        return format_metric(
            field,
            value,
            currency_decimals=self._currency_decimals,
            quantity_decimals=self._quantity_decimals,
        )

    def _format_all(self, metrics: PositionMetrics) -> Dict[MetricField, str]:
        return format_metrics(
            metrics,
            currency_decimals=self._currency_decimals,
            quantity_decimals=self._quantity_decimals,
        )
