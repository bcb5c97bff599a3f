"""
Tests for the Connector SDK entry point.

requests.post is mocked to return canned Plausible pages and the SDK Operations are replaced
with a mock, so the tests verify that update():
- upserts one row per hourly result
- checkpoints after every page
- keeps requesting pages until the window is drained
"""

from unittest.mock import Mock, call, patch

import pytest

import connector
from config import ConfigurationError

CONFIGURATION = {"api_key": "secret-key", "site_id": "example.com", "page_size": "2"}


def mock_response(payload=None, status_code=200, text=""):
    response = Mock()
    response.status_code = status_code
    response.ok = 200 <= status_code < 300
    response.json.return_value = payload
    response.text = text
    return response


def page(local_times, total_rows):
    return mock_response(
        {
            "results": [{"dimensions": [t], "metrics": [1, 1, 3, 0, 42]} for t in local_times],
            "meta": {"total_rows": total_rows},
        }
    )


@pytest.fixture
def mock_op():
    with patch("connector.op") as op:
        yield op


def test_schema():
    tables = connector.schema(CONFIGURATION)

    assert len(tables) == 1
    assert tables[0]["table"] == "plausible_timeseries"
    assert tables[0]["primary_key"] == ["timestamp"]


def test_update_drains_window_across_pages(mock_op):
    responses = [
        page(["2024-01-01 01:00", "2024-01-01 02:00"], total_rows=3),
        page(["2024-01-01 03:00"], total_rows=3),
    ]
    with patch("plausible_client.requests.post", side_effect=responses) as post:
        connector.update(configuration=CONFIGURATION, state={})

    offsets = [c.kwargs["json"]["pagination"]["offset"] for c in post.call_args_list]
    assert offsets == [0, 2]

    assert mock_op.upsert.call_count == 3
    for upsert_call in mock_op.upsert.call_args_list:
        assert upsert_call.kwargs["table"] == "plausible_timeseries"

    assert mock_op.checkpoint.call_args_list == [
        call({"lastOffset": 0}),
        call({"lastDateTime": "2024-01-01T02:00:00.000Z"}),
    ]


def test_update_resumes_from_state(mock_op):
    state = {"lastDateTime": "2024-01-01T02:00:00.000Z"}
    with patch("plausible_client.requests.post", return_value=page([], total_rows=0)) as post:
        connector.update(configuration=CONFIGURATION, state=state)

    sent = post.call_args.kwargs["json"]
    assert sent["date_range"][0] == "2024-01-01T02:00:00.000Z"
    assert sent["pagination"]["offset"] == 0
    mock_op.upsert.assert_not_called()
    mock_op.checkpoint.assert_called_once_with(state)


def test_update_wraps_upstream_errors(mock_op):
    with patch(
        "plausible_client.requests.post",
        return_value=mock_response(status_code=500, text="Internal error"),
    ):
        with pytest.raises(RuntimeError, match="status=500"):
            connector.update(configuration=CONFIGURATION, state={})

    mock_op.checkpoint.assert_not_called()


@pytest.mark.parametrize(
    "configuration",
    [
        {"site_id": "example.com"},
        {"api_key": "secret-key"},
        {"api_key": "secret-key", "site_id": "example.com", "reporting_timezone": "Mars/Base"},
        {"api_key": "secret-key", "site_id": "example.com", "page_size": "0"},
    ],
)
def test_validate_configuration_rejects_bad_values(configuration):
    with pytest.raises(ConfigurationError):
        connector.validate_configuration(configuration)
