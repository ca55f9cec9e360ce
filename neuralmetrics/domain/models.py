import time
from datetime import datetime
from typing import Literal, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Wire format is camelCase; Python attributes stay snake_case."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Metric(CamelModel):
    """A single generated data point. Immutable once created."""

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, frozen=True
    )

    id: str
    timestamp: datetime
    revenue: float = Field(ge=0)
    active_users: int = Field(ge=0)
    engagement_rate: float = Field(ge=0, le=100)


class Summary(CamelModel):
    total_revenue: float = 0
    total_users: int = 0
    avg_engagement: float = 0
    revenue_change_pct: float = 0
    users_change_pct: float = 0
    engagement_change_pct: float = 0


class TimeRangeBounds(BaseModel):
    start: datetime
    end: datetime


class HistoryResponse(CamelModel):
    data: list[Metric]
    summary: Summary
    time_range: TimeRangeBounds


class ConnectionPayload(BaseModel):
    status: str


class ErrorPayload(BaseModel):
    message: str


def now_ms() -> int:
    return int(time.time() * 1000)


class StreamMessage(BaseModel):
    """Envelope of every data record on the push stream."""

    type: Literal["metric", "connection", "error"]
    data: Union[Metric, ConnectionPayload, ErrorPayload]
    timestamp: int = Field(default_factory=now_ms, description="Epoch-ms")

    @model_validator(mode="after")
    def _payload_matches_type(self) -> "StreamMessage":
        expected = {
            "metric": Metric,
            "connection": ConnectionPayload,
            "error": ErrorPayload,
        }[self.type]
        if not isinstance(self.data, expected):
            raise ValueError(f"payload does not match message type {self.type!r}")
        return self

    @classmethod
    def metric(cls, point: Metric) -> "StreamMessage":
        return cls(type="metric", data=point)

    @classmethod
    def connection(cls, status: str = "connected") -> "StreamMessage":
        return cls(type="connection", data=ConnectionPayload(status=status))

    @classmethod
    def error(cls, message: str) -> "StreamMessage":
        return cls(type="error", data=ErrorPayload(message=message))

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True)


class MetricCard(BaseModel):
    id: str
    title: str
    value: Union[float, str]
    change: float
    trend: Literal["up", "down", "neutral"]
    sparkline: list[float]


class TimeSeriesDatasets(BaseModel):
    revenue: list[float]
    users: list[int]
    engagement: list[float]


class TimeSeriesData(BaseModel):
    labels: list[str]
    datasets: TimeSeriesDatasets
