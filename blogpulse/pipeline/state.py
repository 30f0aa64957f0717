"""Per-post state machine for the classification pipeline."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Set

from ..ingestion.models import RawPost
from ..inference.schemas import ClassificationOutput, SummaryOutput
from ..models import CompanyMatch, EnrichedPost
from ..resolution import Resolution


class PostState(str, Enum):
    """Pipeline states in processing order."""

    FETCHED = "fetched"
    CLASSIFIED = "classified"
    EXTRACTED = "extracted"
    RESOLVED = "resolved"
    VALIDATED = "validated"
    PERSISTED = "persisted"


TRANSITIONS: Dict[PostState, Set[PostState]] = {
    PostState.FETCHED: {PostState.CLASSIFIED},
    PostState.CLASSIFIED: {PostState.EXTRACTED},
    PostState.EXTRACTED: {PostState.RESOLVED},
    PostState.RESOLVED: {PostState.VALIDATED},
    # Validated -> Resolved is the in-place resolve/validate retry
    PostState.VALIDATED: {PostState.RESOLVED, PostState.PERSISTED},
    PostState.PERSISTED: set(),
}


class InvalidTransitionError(Exception):
    """Raised when a post skips or repeats a pipeline stage."""


@dataclass
class PostWorkItem:
    """A post moving through the pipeline, with every stage's output."""

    raw: RawPost
    body: str = ""
    state: PostState = PostState.FETCHED
    classification: Optional[ClassificationOutput] = None
    extracted: List[str] = field(default_factory=list)
    resolutions: List[Resolution] = field(default_factory=list)
    matches: List[CompanyMatch] = field(default_factory=list)
    summary: Optional[SummaryOutput] = None
    enriched: Optional[EnrichedPost] = None
    attempts: int = 0
    errors: List[str] = field(default_factory=list)

    @property
    def word_count(self) -> int:
        return len(self.body.split())

    def advance(self, state: PostState) -> None:
        """Move to the next state, rejecting illegal jumps."""
        if state not in TRANSITIONS[self.state]:
            raise InvalidTransitionError(f"{self.raw.link}: {self.state.value} -> {state.value}")
        self.state = state

    def degrade(self) -> None:
        """Skip the remaining stages so a failed post can still be persisted."""
        self.matches = []
        self.state = PostState.VALIDATED

    def record_error(self, stage: str, error: Optional[str]) -> None:
        if error:
            self.errors.append(f"{stage}: {error}")
