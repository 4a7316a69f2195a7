"""Classification/generation capability consumed by the orchestration core."""

import json
import logging
import os
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Optional

from anthropic import AsyncAnthropic

logger = logging.getLogger(__name__)


class ClassificationError(Exception):
    """The capability returned no usable structured result."""


@dataclass
class FunctionCall:
    """A function selected by the capability.

    `args` is whatever the service returned: normally a mapping, but it may be
    a raw string or another malformed payload.
    """

    name: str
    args: Any = None


@dataclass
class CapabilityResponse:
    """Selected functions (possibly none or several) plus any free text."""

    selected_functions: list[FunctionCall] = field(default_factory=list)
    text: Optional[str] = None


@dataclass
class SamplingParams:
    """Sampling settings forwarded to the underlying model."""

    temperature: Optional[float] = None
    top_p: Optional[float] = None
    top_k: Optional[int] = None
    max_tokens: int = 1024
    require_function: bool = False


class ClassificationCapability(ABC):
    """Opaque prompt + function-schema service."""

    @abstractmethod
    async def call(
        self,
        prompt: str,
        function_schemas: list[dict],
        sampling: SamplingParams,
    ) -> CapabilityResponse:
        """Run one classification or generation round.

        Args:
            prompt: Full user prompt.
            function_schemas: Callable schemas ({"name", "description",
                "input_schema"}) the model may select from. Empty for plain
                text generation.
            sampling: Sampling settings.

        Returns:
            CapabilityResponse with zero or more selected functions.
        """
        pass


class AnthropicCapability(ClassificationCapability):
    """Capability backed by the Anthropic Messages API using tool use."""

    def __init__(
        self,
        model: str = "claude-3-5-haiku-20241022",
        client: Optional[AsyncAnthropic] = None,
    ) -> None:
        """Initialize the capability.

        Args:
            model: Model used for every call.
            client: Optional Anthropic client. Defaults to creating one from
                the ANTHROPIC_API_KEY env var on first use.
        """
        self.model = model
        self._client = client

    @property
    def client(self) -> AsyncAnthropic:
        """Lazy-load Anthropic client.

        Raises:
            ValueError: If ANTHROPIC_API_KEY environment variable is not set.
        """
        if self._client is None:
            api_key = os.environ.get("ANTHROPIC_API_KEY")
            if not api_key:
                raise ValueError("ANTHROPIC_API_KEY environment variable not set")
            self._client = AsyncAnthropic(api_key=api_key)
        return self._client

    def _build_request(
        self, prompt: str, function_schemas: list[dict], sampling: SamplingParams
    ) -> dict:
        request: dict[str, Any] = {
            "model": self.model,
            "max_tokens": sampling.max_tokens,
            "messages": [{"role": "user", "content": prompt}],
        }
        if sampling.temperature is not None:
            request["temperature"] = sampling.temperature
        if sampling.top_p is not None:
            request["top_p"] = sampling.top_p
        if sampling.top_k is not None:
            request["top_k"] = sampling.top_k
        if function_schemas:
            request["tools"] = function_schemas
            request["tool_choice"] = {"type": "any" if sampling.require_function else "auto"}
        return request

    async def call(
        self,
        prompt: str,
        function_schemas: list[dict],
        sampling: SamplingParams,
    ) -> CapabilityResponse:
        response = await self.client.messages.create(
            **self._build_request(prompt, function_schemas, sampling)
        )

        selected: list[FunctionCall] = []
        text_parts: list[str] = []
        for block in response.content:
            if block.type == "tool_use":
                selected.append(FunctionCall(name=block.name, args=block.input))
            elif block.type == "text":
                text_parts.append(block.text)

        logger.debug(
            f"Capability returned {len(selected)} function call(s), "
            f"stop_reason={getattr(response, 'stop_reason', None)}"
        )
        return CapabilityResponse(
            selected_functions=selected,
            text="".join(text_parts) if text_parts else None,
        )


def coerce_arguments(args: Any) -> Optional[dict]:
    """Return function-call arguments as a dict.

    JSON strings are parsed; anything that is not, or does not parse to, a
    mapping yields None.
    """
    if isinstance(args, dict):
        return args
    if isinstance(args, str):
        try:
            parsed = json.loads(args)
        except json.JSONDecodeError:
            return None
        return parsed if isinstance(parsed, dict) else None
    return None
