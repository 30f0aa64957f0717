"""Shared fixtures."""

import pytest

from blogpulse.inference import MockLLMProvider
from blogpulse.inference.prompts import CLASSIFY_SYSTEM, EXTRACT_SYSTEM, SUMMARIZE_SYSTEM, VALIDATE_SYSTEM

from .helpers import FakePostStorage, FakeTrackingManager


@pytest.fixture
def conn():
    """Storage fakes ignore the connection."""
    return None


@pytest.fixture
def post_storage():
    return FakePostStorage()


@pytest.fixture
def tracking():
    return FakeTrackingManager()


@pytest.fixture
def routed_llm():
    """Build a MockLLMProvider answering per pipeline stage.

    ``replies`` maps a stage name (classify, extract, validate, summarize) to a
    string or to a list of strings consumed in order; missing stages answer "".
    """

    systems = {
        CLASSIFY_SYSTEM: "classify",
        EXTRACT_SYSTEM: "extract",
        VALIDATE_SYSTEM: "validate",
        SUMMARIZE_SYSTEM: "summarize",
    }

    def build(**replies):
        queues = {k: list(v) if isinstance(v, list) else v for k, v in replies.items()}

        def responder(prompt, system):
            stage = systems.get(system)
            reply = queues.get(stage, "")
            if isinstance(reply, list):
                return reply.pop(0) if len(reply) > 1 else reply[0]
            return reply

        return MockLLMProvider(responder=responder)

    return build
