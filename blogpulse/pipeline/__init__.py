"""Classification pipeline and run orchestration."""

from .classification import ClassificationPipeline
from .orchestrator import PipelineOrchestrator, PipelineStage
from .stages import Classifier, CompanyExtractor, CompanyValidator, Summarizer
from .state import InvalidTransitionError, PostState, PostWorkItem

__all__ = [
    "ClassificationPipeline",
    "Classifier",
    "CompanyExtractor",
    "CompanyValidator",
    "InvalidTransitionError",
    "PipelineOrchestrator",
    "PipelineStage",
    "PostState",
    "PostWorkItem",
    "Summarizer",
]
