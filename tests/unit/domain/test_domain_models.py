import json

import pytest
from pydantic import ValidationError

from neuralmetrics.domain.models import (
    ConnectionPayload,
    HistoryResponse,
    Metric,
    StreamMessage,
    Summary,
    TimeRangeBounds,
)


def _metric_payload(**overrides):
    payload = {
        "id": "abc",
        "timestamp": "2024-03-13T10:00:00Z",
        "revenue": 1200,
        "activeUsers": 300,
        "engagementRate": 64.25,
    }
    payload.update(overrides)
    return payload


def test_metric_accepts_wire_names_and_dumps_them():
    metric = Metric.model_validate(_metric_payload())

    assert metric.active_users == 300
    assert metric.engagement_rate == 64.25
    dumped = metric.model_dump(by_alias=True, mode="json")
    assert set(dumped) == {
        "id",
        "timestamp",
        "revenue",
        "activeUsers",
        "engagementRate",
    }


def test_metric_is_immutable():
    metric = Metric.model_validate(_metric_payload())
    with pytest.raises(ValidationError):
        metric.revenue = 5  # type: ignore[misc]


@pytest.mark.parametrize(
    "override",
    [{"revenue": -1}, {"activeUsers": -3}, {"engagementRate": 101}],
)
def test_metric_rejects_out_of_range_values(override):
    with pytest.raises(ValidationError):
        Metric.model_validate(_metric_payload(**override))


def test_stream_message_json_shape(make_metric):
    message = StreamMessage.metric(make_metric())

    body = json.loads(message.to_json())

    assert body["type"] == "metric"
    assert isinstance(body["timestamp"], int)
    assert "activeUsers" in body["data"]


def test_connection_and_error_messages():
    assert StreamMessage.connection().data == ConnectionPayload(status="connected")
    assert json.loads(StreamMessage.error("boom").to_json())["data"] == {
        "message": "boom"
    }


def test_stream_message_rejects_payload_type_mismatch():
    with pytest.raises(ValidationError):
        StreamMessage.model_validate(
            {"type": "metric", "data": {"status": "connected"}, "timestamp": 1}
        )


def test_history_response_wire_shape(make_metric):
    point = make_metric()
    response = HistoryResponse(
        data=[point],
        summary=Summary(),
        time_range=TimeRangeBounds(start=point.timestamp, end=point.timestamp),
    )

    body = response.model_dump(by_alias=True, mode="json")

    assert set(body) == {"data", "summary", "timeRange"}
    assert set(body["timeRange"]) == {"start", "end"}
