"""LLM provider interface and implementations."""

import time
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, List, Optional, Tuple

import openai
from openai import OpenAI
from rich.console import Console
from tenacity import Retrying, retry_if_exception_type, stop_after_attempt, stop_after_delay, wait_exponential

console = Console()

TRANSIENT_ERRORS = (
    openai.APIConnectionError,
    openai.APITimeoutError,
    openai.RateLimitError,
    openai.InternalServerError,
)


class LLMProvider(ABC):
    """Abstract base class for LLM providers."""

    @abstractmethod
    def complete(
        self,
        prompt: str,
        system: Optional[str] = None,
        temperature: float = 0.0,
        max_tokens: int = 1000,
    ) -> str:
        """
        Run a single completion.

        Args:
            prompt: User message
            system: Optional system message
            temperature: Sampling temperature
            max_tokens: Completion token cap

        Returns:
            Raw completion text
        """
        pass

    @abstractmethod
    def get_usage_stats(self) -> Dict:
        """Get usage statistics."""
        pass


class OpenAIProvider(LLMProvider):
    """OpenAI implementation of LLM provider."""

    def __init__(
        self,
        api_key: str,
        model: str = "gpt-4o-mini",
        base_url: Optional[str] = None,
        timeout: float = 15.0,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        """
        Initialize OpenAI provider.

        Args:
            api_key: OpenAI API key
            model: Model name to use
            base_url: Custom base URL (for compatible endpoints)
            timeout: Budget in seconds for one completion, retries included
            sleep: Backoff sleep between retries
        """
        self.client = OpenAI(api_key=api_key, base_url=base_url, timeout=timeout, max_retries=0)
        self.timeout = timeout
        self.sleep = sleep
        self.model = model
        self.prompt_tokens = 0
        self.completion_tokens = 0
        self.api_calls = 0

        # Token cost estimates (per 1K tokens)
        self.cost_per_1k_tokens = {
            "gpt-4o": {"input": 0.0025, "output": 0.01},
            "gpt-4o-mini": {"input": 0.00015, "output": 0.0006},
            "gpt-4.1-mini": {"input": 0.0004, "output": 0.0016},
        }

    def complete(
        self,
        prompt: str,
        system: Optional[str] = None,
        temperature: float = 0.0,
        max_tokens: int = 1000,
    ) -> str:
        """Run a chat completion against OpenAI."""
        messages = []
        if system:
            messages.append({"role": "system", "content": system})
        messages.append({"role": "user", "content": prompt})

        deadline = time.monotonic() + self.timeout
        retrying = Retrying(
            retry=retry_if_exception_type(TRANSIENT_ERRORS),
            wait=wait_exponential(multiplier=0.5, max=4),
            stop=stop_after_attempt(3) | stop_after_delay(self.timeout),
            sleep=self.sleep,
            reraise=True,
        )
        for attempt in retrying:
            with attempt:
                # Each attempt only gets what is left of the overall budget
                remaining = max(deadline - time.monotonic(), 1.0)
                self.api_calls += 1
                response = self.client.chat.completions.create(
                    model=self.model,
                    messages=messages,
                    temperature=temperature,
                    max_tokens=max_tokens,
                    timeout=remaining,
                )

        if response.usage:
            self.prompt_tokens += response.usage.prompt_tokens
            self.completion_tokens += response.usage.completion_tokens

        return (response.choices[0].message.content or "").strip()

    def get_usage_stats(self) -> Dict:
        """Get usage statistics."""
        estimated_cost = 0.0
        rates = self.cost_per_1k_tokens.get(self.model)
        if rates:
            estimated_cost = (
                (self.prompt_tokens / 1000) * rates["input"]
                + (self.completion_tokens / 1000) * rates["output"]
            )

        return {
            "total_tokens": self.prompt_tokens + self.completion_tokens,
            "api_calls": self.api_calls,
            "estimated_cost": estimated_cost,
            "model": self.model,
        }


Responder = Callable[[str, Optional[str]], str]


class MockLLMProvider(LLMProvider):
    """Mock LLM provider for tests and key-less runs.

    Replies come from ``responder`` when given, else from the ``responses``
    queue, else an empty string (which every stage treats as unparsable).
    """

    def __init__(
        self,
        responses: Optional[List[str]] = None,
        responder: Optional[Responder] = None,
    ) -> None:
        """Initialize mock provider."""
        self.responses = list(responses or [])
        self.responder = responder
        self.calls: List[Tuple[Optional[str], str]] = []

    def complete(
        self,
        prompt: str,
        system: Optional[str] = None,
        temperature: float = 0.0,
        max_tokens: int = 1000,
    ) -> str:
        """Mock completion."""
        self.calls.append((system, prompt))
        if self.responder is not None:
            return self.responder(prompt, system)
        if self.responses:
            return self.responses.pop(0)
        return ""

    def get_usage_stats(self) -> Dict:
        """Get mock usage statistics."""
        return {
            "total_tokens": 0,
            "api_calls": len(self.calls),
            "estimated_cost": 0.0,
            "model": "mock",
        }


def build_llm_provider(llm_config: Dict[str, Any]) -> LLMProvider:
    """Create the configured provider, falling back to the mock without credentials."""
    if llm_config.get("provider") == "openai":
        api_key = llm_config.get("api_key")
        if not api_key:
            console.print("[yellow]Warning: No OpenAI API key found. Using mock LLM provider.[/yellow]")
            return MockLLMProvider()

        return OpenAIProvider(
            api_key=api_key,
            model=llm_config.get("model", "gpt-4o-mini"),
            base_url=llm_config.get("base_url"),
            timeout=llm_config.get("timeout", 15.0),
        )

    if llm_config.get("provider") != "mock":
        console.print("[yellow]Warning: Unknown LLM provider. Using mock provider.[/yellow]")
    return MockLLMProvider()
