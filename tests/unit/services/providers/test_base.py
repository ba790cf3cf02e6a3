"""Unit tests for provider base helpers.

Tests cover:
- AnalysisRequest validation
- JSON extraction from prose
- Schema validation results
- HTTP error mapping
- AgentProvider.run_stage
"""

from typing import Any

import httpx
import pytest

from mood_radar.core.exceptions import (
    ErrorKind,
    MalformedResponseError,
    ProviderUnreachableError,
    RequestValidationError,
)
from mood_radar.services.providers.base import (
    AgentProvider,
    AnalysisRequest,
    extract_json_array,
    extract_json_object,
    parse_json_body,
    post_json,
    validate_payload,
)
from mood_radar.services.providers.schemas import (
    ClassificationResponse,
    PlaybookStage,
    ScoringStage,
)


class TestAnalysisRequest:
    """Tests for AnalysisRequest."""

    def test_missing_fields(self):
        """Test blank and absent fields are reported."""
        request = AnalysisRequest(topic="ev", region="  ")

        assert request.missing_fields("topic", "region", "platform") == ["region", "platform"]

    def test_require_raises_validation_error(self):
        """Test require lists every missing field."""
        with pytest.raises(RequestValidationError) as exc_info:
            AnalysisRequest(topic="ev").require("topic", "region", "time_window")

        assert exc_info.value.fields == ["region", "time_window"]
        assert exc_info.value.kind == ErrorKind.VALIDATION
        assert str(exc_info.value) == "Missing region, time_window."

    def test_require_passes(self, sentiment_request):
        """Test a complete request."""
        sentiment_request.require("topic", "region", "time_window")

    def test_context_uses_wire_names(self, sentiment_request):
        """Test prompt context drops empty fields."""
        context = sentiment_request.context()

        assert context["timeWindow"] == "7 days"
        assert "platform" not in context

    def test_accepts_wire_names(self):
        """Test requests parse from camelCase payloads."""
        request = AnalysisRequest.model_validate({"topic": "ev", "timeWindow": "30 days"})

        assert request.time_window == "30 days"


class TestJsonExtraction:
    """Tests for lenient JSON extraction."""

    def test_array_in_prose(self):
        """Test an array wrapped in prose and fences."""
        text = 'Sure! Here you go:\n```json\n[{"title": "a"}]\n```\nHope it helps.'

        assert extract_json_array(text) == [{"title": "a"}]

    def test_array_absent(self):
        """Test text without an array."""
        assert extract_json_array("no data") is None
        assert extract_json_array("") is None

    def test_array_unparseable(self):
        """Test brackets around invalid JSON."""
        assert extract_json_array("[not, json]") is None

    def test_object_in_prose(self):
        """Test an object wrapped in prose."""
        assert extract_json_object('Result: {"items": []} done') == {"items": []}

    def test_object_span_must_parse(self):
        """Test two objects in one text do not parse as one."""
        assert extract_json_object('{"a": 1} and {"b": 2}') is None
        assert extract_json_object("[1, 2]") is None

    def test_parse_json_body(self):
        """Test raw JSON bodies and prose fallback."""
        assert parse_json_body('{"a": 1}') == {"a": 1}
        assert parse_json_body('[1, 2]') == [1, 2]
        assert parse_json_body('prefix {"a": 1} suffix') == {"a": 1}
        assert parse_json_body("nothing here") is None
        assert parse_json_body('""') is None


class TestValidatePayload:
    """Tests for validate_payload."""

    def test_success(self):
        """Test a valid classification payload."""
        result = validate_payload(
            ClassificationResponse,
            {
                "items": [
                    {
                        "index": 0,
                        "emotion": "joy",
                        "concern": "price",
                        "narrative": "launch",
                        "cluster": "launch",
                    }
                ]
            },
        )

        assert result.ok
        assert result.data.clusters is None
        assert result.violations == []

    def test_violations_name_fields(self):
        """Test violations enumerate the offending paths."""
        result = validate_payload(
            ClassificationResponse,
            {"items": [{"index": "zero", "emotion": "", "concern": "c", "narrative": "n"}]},
        )

        assert not result.ok
        assert result.data is None
        paths = [violation.split(":")[0] for violation in result.violations]
        assert "items.0.index" in paths
        assert "items.0.emotion" in paths
        assert "items.0.cluster" in paths

    def test_root_violation(self):
        """Test a wrongly-typed root payload."""
        result = validate_payload(ClassificationResponse, ["not", "an", "object"])

        assert not result.ok
        assert result.violations[0].startswith("<root>")

    def test_never_raises(self):
        """Test arbitrary input returns a failure instead of raising."""
        assert not validate_payload(ScoringStage, {"scored": [{"title": 1}]}).ok


class TestPostJson:
    """Tests for post_json error mapping."""

    @pytest.mark.asyncio
    async def test_success(self, mock_http_client, create_mock_response):
        """Test a 2xx response is returned."""
        response = create_mock_response(200, {"ok": True})
        mock_http_client.post.return_value = response

        result = await post_json(mock_http_client, "Svc", "https://svc.test", json={"a": 1})

        assert result is response
        mock_http_client.post.assert_called_once_with("https://svc.test", json={"a": 1})

    @pytest.mark.asyncio
    async def test_non_success_status(self, mock_http_client, create_mock_response):
        """Test non-2xx statuses are unreachable errors."""
        mock_http_client.post.return_value = create_mock_response(503, text="overloaded")

        with pytest.raises(ProviderUnreachableError) as exc_info:
            await post_json(mock_http_client, "Svc", "https://svc.test")

        assert exc_info.value.status_code == 503
        assert exc_info.value.context["response_body"] == "overloaded"

    @pytest.mark.asyncio
    async def test_timeout(self, mock_http_client):
        """Test timeouts are unreachable errors."""
        mock_http_client.post.side_effect = httpx.ReadTimeout("slow")

        with pytest.raises(ProviderUnreachableError, match="timed out"):
            await post_json(mock_http_client, "Svc", "https://svc.test")

    @pytest.mark.asyncio
    async def test_transport_error(self, mock_http_client):
        """Test connection errors are unreachable errors."""
        mock_http_client.post.side_effect = httpx.ConnectError("refused")

        with pytest.raises(ProviderUnreachableError) as exc_info:
            await post_json(mock_http_client, "Svc", "https://svc.test")

        assert exc_info.value.kind == ErrorKind.PROVIDER_UNREACHABLE
        assert exc_info.value.endpoint == "https://svc.test"


class FakeAgent(AgentProvider):
    """Agent returning a fixed result."""

    def __init__(self, result: Any) -> None:
        self.result = result

    async def run_goal(self, goal: str) -> Any:
        return self.result


class TestRunStage:
    """Tests for AgentProvider.run_stage."""

    @pytest.mark.asyncio
    async def test_valid_result(self):
        """Test a valid result is typed."""
        stage = await FakeAgent({"playbook": {"positioning": "p"}}).run_stage("goal", PlaybookStage)

        assert stage.playbook.positioning == "p"

    @pytest.mark.asyncio
    async def test_invalid_result_is_malformed(self):
        """Test schema violations raise MalformedResponseError."""
        with pytest.raises(MalformedResponseError) as exc_info:
            await FakeAgent({"scored": "nope"}).run_stage("goal", ScoringStage)

        assert exc_info.value.service == "FakeAgent"
        assert exc_info.value.violations
