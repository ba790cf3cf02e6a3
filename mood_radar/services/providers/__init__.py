"""External analysis providers.

This package implements the clients for the collaborators the analysis
pipeline depends on:
- Retrieval: Perplexity chat-completions search
- Classification: Mino JSON classifier with snippet budget
- Agent: Mino goal agent for opportunity, scoring and playbook stages
"""

from mood_radar.services.providers.base import (
    AgentProvider,
    AnalysisRequest,
    ClassificationProvider,
    ClassificationResult,
    RetrievalProvider,
    SchemaResult,
    extract_json_array,
    extract_json_object,
    validate_payload,
)
from mood_radar.services.providers.mino import (
    MinoAgentClient,
    MinoClassificationProvider,
    apply_snippet_budget,
)
from mood_radar.services.providers.perplexity import PerplexityRetrievalProvider
from mood_radar.services.providers.schemas import (
    ClassificationResponse,
    OpportunityStage,
    PlaybookStage,
    ScoringStage,
)

__all__ = [
    # Base
    "AnalysisRequest",
    "RetrievalProvider",
    "ClassificationProvider",
    "ClassificationResult",
    "AgentProvider",
    "SchemaResult",
    "validate_payload",
    "extract_json_array",
    "extract_json_object",
    # Clients
    "PerplexityRetrievalProvider",
    "MinoClassificationProvider",
    "MinoAgentClient",
    "apply_snippet_budget",
    # Schemas
    "ClassificationResponse",
    "OpportunityStage",
    "ScoringStage",
    "PlaybookStage",
]
