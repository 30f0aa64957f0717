"""Parsing of inference output into typed schemas.

Responses may arrive wrapped in code fences or prose. Anything that does not
validate raises ExtractionError, and the stage substitutes its default.
"""

import json
import re
from dataclasses import dataclass
from typing import Any, Callable, Generic, List, Optional, Type, TypeVar

from pydantic import BaseModel, ValidationError
from rich.console import Console

console = Console()

T = TypeVar("T")
M = TypeVar("M", bound=BaseModel)

_FENCE = re.compile(r"```(?:json|JSON)?\s*(.*?)```", re.DOTALL)


class ExtractionError(Exception):
    """Raised when an inference response cannot be parsed into its schema."""


@dataclass
class StageOutcome(Generic[T]):
    """Value produced by a pipeline stage, or its default plus the error."""

    value: T
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def strip_json_wrapping(text: str) -> str:
    """Remove markdown fences and prose around a JSON object or array."""
    if not text:
        return ""
    fenced = _FENCE.search(text)
    if fenced:
        text = fenced.group(1)
    text = text.strip()

    starts = [i for i in (text.find("{"), text.find("[")) if i != -1]
    if not starts:
        return text
    start = min(starts)
    closer = "}" if text[start] == "{" else "]"
    end = text.rfind(closer)
    if end < start:
        return text[start:]
    return text[start : end + 1]


def parse_json_payload(text: str) -> Any:
    """Decode the JSON inside an inference response."""
    cleaned = strip_json_wrapping(text)
    if not cleaned:
        raise ExtractionError("Empty response")
    try:
        return json.loads(cleaned)
    except json.JSONDecodeError as e:
        raise ExtractionError(f"Invalid JSON: {e}") from e


def parse_model(text: str, model: Type[M]) -> M:
    """Parse a response into a single schema object."""
    payload = parse_json_payload(text)
    if isinstance(payload, list) and len(payload) == 1:
        payload = payload[0]
    if not isinstance(payload, dict):
        raise ExtractionError(f"Expected a JSON object, got {type(payload).__name__}")
    try:
        return model.model_validate(payload)
    except ValidationError as e:
        raise ExtractionError(f"Schema mismatch: {e.error_count()} errors") from e


def parse_model_list(text: str, model: Type[M], key: Optional[str] = None) -> List[M]:
    """Parse a response into a list of schema objects.

    Accepts a bare array or an object holding the array under ``key``.
    Items that fail validation are dropped.
    """
    payload = parse_json_payload(text)
    if isinstance(payload, dict):
        if key and isinstance(payload.get(key), list):
            payload = payload[key]
        else:
            lists = [v for v in payload.values() if isinstance(v, list)]
            if len(lists) != 1:
                raise ExtractionError("Expected a JSON array")
            payload = lists[0]
    if not isinstance(payload, list):
        raise ExtractionError(f"Expected a JSON array, got {type(payload).__name__}")

    items: List[M] = []
    for raw in payload:
        try:
            items.append(model.model_validate(raw))
        except ValidationError:
            continue
    return items


def run_stage(name: str, call: Callable[[], T], default: Callable[[], T]) -> StageOutcome[T]:
    """Run a stage, substituting its default when inference fails."""
    try:
        return StageOutcome(call())
    except ExtractionError as e:
        console.print(f"[yellow]{name}: unparsable response ({e}), using default[/yellow]")
        return StageOutcome(default(), error=str(e))
    except Exception as e:
        console.print(f"[red]{name}: inference failed ({e}), using default[/red]")
        return StageOutcome(default(), error=f"{type(e).__name__}: {e}")
