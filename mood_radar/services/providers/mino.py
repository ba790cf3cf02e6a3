"""Mino classification and agent providers.

MinoClassificationProvider labels budgeted snippets with emotion, concern,
narrative and cluster. MinoAgentClient runs free-form goals for the
opportunity pipeline stages.

Both accept a raw JSON body or JSON wrapped in prose, and report
unparseable or schema-violating responses as malformed (distinct from
provider-unreachable).
"""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any

from mood_radar.config import BudgetConfig
from mood_radar.core.exceptions import (
    ConfigError,
    MalformedResponseError,
    RequestValidationError,
)
from mood_radar.core.logging import get_logger
from mood_radar.services.providers.base import (
    AgentProvider,
    AnalysisRequest,
    ClassificationProvider,
    ClassificationResult,
    parse_json_body,
    post_json,
    validate_payload,
)
from mood_radar.services.providers.schemas import ClassificationResponse
from mood_radar.services.signals.base import Signal

if TYPE_CHECKING:
    from mood_radar.infrastructure.http_client import HTTPClient

logger = get_logger(__name__)

CLASSIFIER_PROMPT = """You are a strict JSON classifier for public sentiment analysis.
Analyze the snippets and return ONLY JSON in this schema:
{
  "items": [
    {
      "index": number,
      "emotion": "string",
      "concern": "string",
      "narrative": "string",
      "cluster": "string"
    }
  ],
  "clusters": [
    {
      "label": "string",
      "size": number,
      "exampleHeadlines": ["string"]
    }
  ]
}
No markdown, no extra keys."""


def truncate(value: str, limit: int) -> str:
    """Cut value to limit characters, trimming the cut end."""
    if len(value) <= limit:
        return value
    return value[:limit].strip()


def apply_snippet_budget(signals: list[Signal], budget: BudgetConfig | None = None) -> list[Signal]:
    """Apply the classification snippet budget.

    Titles and snippets are capped individually. Signals are then included
    in order until the first one that would push the cumulative size past
    the total cap; that signal and every later one are excluded.

    Args:
        signals: Signals in order
        budget: Budget caps (uses defaults if not provided)

    Returns:
        Budgeted signals (a prefix of the input, with capped fields)
    """
    budget = budget or BudgetConfig()
    included: list[Signal] = []
    total = 0

    for signal in signals:
        capped = signal.model_copy(
            update={
                "title": truncate(signal.title, budget.max_title_chars),
                "snippet": truncate(signal.snippet, budget.max_snippet_chars),
            }
        )
        size = len(capped.title) + len(capped.snippet)
        if total + size > budget.max_total_chars:
            logger.debug(
                "Snippet budget reached",
                included=len(included),
                excluded=len(signals) - len(included),
                total_chars=total,
            )
            break
        total += size
        included.append(capped)

    return included


def build_classification_prompt(request: AnalysisRequest, signals: list[Signal]) -> str:
    """Build the classifier prompt with the request context and snippets."""
    snippets = [
        {"index": index, **signal.to_wire()} for index, signal in enumerate(signals)
    ]
    context = {**request.context(), "snippets": snippets}
    return f"{CLASSIFIER_PROMPT}\nInput:\n{json.dumps(context, ensure_ascii=False)}"


class MinoClassificationProvider(ClassificationProvider):
    """Mino JSON classifier client.

    Attributes:
        api_key: Mino API key
        api_url: Classifier endpoint URL
        model: Classifier model name
        http_client: Shared HTTP client from DI
        budget: Snippet budget
    """

    SERVICE = "Mino"

    def __init__(
        self,
        api_key: str,
        api_url: str,
        http_client: HTTPClient,
        model: str = "mino-latest",
        budget: BudgetConfig | None = None,
    ) -> None:
        """Initialize classification client.

        Args:
            api_key: Mino API key
            api_url: Classifier endpoint URL
            http_client: Shared HTTP client from DI
            model: Classifier model name
            budget: Snippet budget (uses defaults if not provided)
        """
        self.api_key = api_key
        self.api_url = api_url
        self.http_client = http_client
        self.model = model
        self.budget = budget or BudgetConfig()

    async def classify(
        self,
        request: AnalysisRequest,
        signals: list[Signal],
    ) -> ClassificationResult:
        """Classify budgeted signals.

        Args:
            request: Analysis request
            signals: Deduplicated signals

        Returns:
            ClassificationResult with items, optional clusters, and the
            signals that were actually sent

        Raises:
            RequestValidationError: If there are no signals, or none fit the budget
            ConfigError: If the API key or URL is not configured
            ProviderUnreachableError: On transport failure or non-2xx status
            MalformedResponseError: If the response is unparseable or violates the schema
        """
        if not signals:
            raise RequestValidationError("Missing snippets for reasoning.", fields=["snippets"])
        if not self.api_key or not self.api_url:
            raise ConfigError("Missing MINO_API_KEY or MINO_API_URL.", config_path="mino")

        budgeted = apply_snippet_budget(signals, self.budget)
        if not budgeted:
            raise RequestValidationError("Snippet budget exceeded.", fields=["snippets"])

        logger.info(
            "Classifying signals",
            topic=request.topic,
            signal_count=len(signals),
            budgeted_count=len(budgeted),
        )
        response = await post_json(
            self.http_client,
            self.SERVICE,
            self.api_url,
            headers={
                "Authorization": f"Bearer {self.api_key}",
                "Content-Type": "application/json",
            },
            json={
                "model": self.model,
                "prompt": build_classification_prompt(request, budgeted),
            },
        )

        raw = response.text
        parsed = parse_json_body(raw)
        if parsed is None:
            raise MalformedResponseError(self.SERVICE, "unable to parse response", raw=raw)

        result = validate_payload(ClassificationResponse, parsed)
        if not result.ok or result.data is None:
            logger.warning("Classification schema violated", violations=result.violations)
            raise MalformedResponseError(
                self.SERVICE,
                "classification failed schema validation",
                violations=result.violations,
                raw=raw,
            )

        data = result.data
        logger.info(
            "Signals classified",
            item_count=len(data.items),
            has_clusters=data.clusters is not None,
        )
        return ClassificationResult(
            items=data.to_items(),
            clusters=data.to_clusters(),
            signals=budgeted,
        )


class MinoAgentClient(AgentProvider):
    """Mino goal agent client.

    Attributes:
        api_key: Mino API key
        api_url: Agent endpoint URL
        agent_url: Target URL handed to the agent
        http_client: Shared HTTP client from DI
    """

    SERVICE = "Mino"
    COMPLETED = "COMPLETED"

    def __init__(
        self,
        api_key: str,
        api_url: str,
        http_client: HTTPClient,
        agent_url: str = "https://example.com",
    ) -> None:
        """Initialize agent client.

        Args:
            api_key: Mino API key
            api_url: Agent endpoint URL
            http_client: Shared HTTP client from DI
            agent_url: Target URL handed to the agent
        """
        self.api_key = api_key
        self.api_url = api_url
        self.http_client = http_client
        self.agent_url = agent_url

    @property
    def service_name(self) -> str:
        return self.SERVICE

    async def run_goal(self, goal: str) -> Any:
        """Run a goal and return the agent's result.

        Args:
            goal: Goal description with embedded input JSON

        Returns:
            resultJson, result, or the whole body, in that order

        Raises:
            ConfigError: If the API key or URL is not configured
            ProviderUnreachableError: On transport failure or non-2xx status
            MalformedResponseError: If the body is unparseable or the run did not complete
        """
        if not self.api_key or not self.api_url:
            raise ConfigError("Missing MINO_API_KEY or MINO_API_URL.", config_path="mino")

        response = await post_json(
            self.http_client,
            self.SERVICE,
            self.api_url,
            headers={
                "Content-Type": "application/json",
                "X-API-Key": self.api_key,
            },
            json={"url": self.agent_url, "goal": goal},
        )

        raw = response.text
        parsed = parse_json_body(raw)
        if parsed is None:
            raise MalformedResponseError(self.SERVICE, "unable to parse response", raw=raw)

        if not isinstance(parsed, dict):
            return parsed

        status = parsed.get("status")
        if status and status != self.COMPLETED:
            raise MalformedResponseError(
                self.SERVICE,
                f"agent status {status}",
                context={"status": status},
            )

        for key in ("resultJson", "result"):
            result = parsed.get(key)
            if result is None:
                continue
            # Some agent runs return the result as a JSON-encoded string
            if isinstance(result, str):
                decoded = parse_json_body(result)
                return decoded if decoded is not None else result
            return result
        return parsed


__all__ = [
    "CLASSIFIER_PROMPT",
    "MinoAgentClient",
    "MinoClassificationProvider",
    "apply_snippet_budget",
    "build_classification_prompt",
    "truncate",
]
