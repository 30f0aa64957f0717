"""Inference service access and response parsing."""

from .llm_provider import LLMProvider, MockLLMProvider, OpenAIProvider, build_llm_provider
from .parsing import (
    ExtractionError,
    StageOutcome,
    parse_json_payload,
    parse_model,
    parse_model_list,
    run_stage,
    strip_json_wrapping,
)
from .schemas import (
    ClassificationOutput,
    CompanyMention,
    ExtractedPost,
    SummaryOutput,
    ValidationVerdict,
)

__all__ = [
    "ClassificationOutput",
    "CompanyMention",
    "ExtractedPost",
    "ExtractionError",
    "LLMProvider",
    "MockLLMProvider",
    "OpenAIProvider",
    "StageOutcome",
    "SummaryOutput",
    "ValidationVerdict",
    "build_llm_provider",
    "parse_json_payload",
    "parse_model",
    "parse_model_list",
    "run_stage",
    "strip_json_wrapping",
]
