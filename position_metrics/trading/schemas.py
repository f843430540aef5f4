from typing import Annotated, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, Field, TypeAdapter, field_validator

from position_metrics.risk.metrics_engine import (
    MetricField,
    PositionMetrics,
    PositionType,
    TradeParameters,
)


class TradeParametersModel(BaseModel):
    # Left unconstrained: non-positive or equal prices are a "missing data" state, not a bad request.
    entry_price: float
    stop_loss: float
    leverage: float
    position_type: PositionType

    @field_validator("position_type", mode="before")
    @classmethod
    def normalize_position_type(cls, value):
        if isinstance(value, str):
            return value.upper()
        return value

    def to_parameters(self) -> TradeParameters:
        return TradeParameters(
            entry_price=self.entry_price,
            stop_loss=self.stop_loss,
            leverage=self.leverage,
            position_type=self.position_type,
        )


class MetricsModel(BaseModel):
    margin: float = Field(0.0, ge=0)
    position_size: float = Field(0.0, ge=0)
    quantity: float = Field(0.0, ge=0)
    one_r: float = Field(0.0, ge=0)

    def to_metrics(self) -> PositionMetrics:
        return PositionMetrics(
            margin=self.margin,
            position_size=self.position_size,
            quantity=self.quantity,
            one_r=self.one_r,
        )

    @classmethod
    def from_metrics(cls, metrics: PositionMetrics) -> "MetricsModel":
        return cls(**metrics.as_dict())


class ConvertRequest(TradeParametersModel):
    field: MetricField
    value: float


class RiskSizingRequest(TradeParametersModel):
    portfolio: float = Field(..., gt=0)
    risk_pct: float = Field(..., gt=0, le=100)


class MetricsResponse(MetricsModel):
    risk_per_unit: float
    max_leverage: Optional[int] = None
    formatted: Dict[str, str] = {}


class EditorConfigResponse(BaseModel):
    debounce_ms: int
    currency_decimals: int
    quantity_decimals: int
    fields: List[str]


class ErrorResponse(BaseModel):
    error: str
    detail: str
    context: Optional[dict] = None


class EditorInitMessage(BaseModel):
    type: Literal["init"]
    parameters: TradeParametersModel
    metrics: MetricsModel = MetricsModel()
    label: Optional[str] = None
    disabled: bool = False


class EditorEditMessage(BaseModel):
    type: Literal["edit"]
    field: MetricField
    text: str = ""


class EditorParamsMessage(BaseModel):
    type: Literal["params"]
    parameters: TradeParametersModel


class EditorMetricsMessage(BaseModel):
    type: Literal["metrics"]
    metrics: MetricsModel


class EditorFlushMessage(BaseModel):
    type: Literal["flush"]


EditorMessage = Annotated[
    Union[
        EditorInitMessage,
        EditorEditMessage,
        EditorParamsMessage,
        EditorMetricsMessage,
        EditorFlushMessage,
    ],
    Field(discriminator="type"),
]

editor_message_adapter = TypeAdapter(EditorMessage)
