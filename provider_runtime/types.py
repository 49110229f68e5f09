"""Canonical request, response and model types shared across providers."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Any, ClassVar, Union


@dataclass(frozen=True)
class ProviderId:
    """Identifies a provider; well-known ones are class attributes."""

    name: str
    is_other: bool = False

    OPENAI: ClassVar[ProviderId]
    ANTHROPIC: ClassVar[ProviderId]
    OPENROUTER: ClassVar[ProviderId]

    @classmethod
    def other(cls, name: str) -> ProviderId:
        """A provider that is not one of the well-known ones."""
        return cls(name, True)

    def __str__(self) -> str:
        return f"Other({self.name})" if self.is_other else self.name


ProviderId.OPENAI = ProviderId("Openai")
ProviderId.ANTHROPIC = ProviderId("Anthropic")
ProviderId.OPENROUTER = ProviderId("Openrouter")


class MessageRole(enum.Enum):
    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"
    TOOL = "tool"


@dataclass
class ToolCall:
    id: str
    name: str
    arguments_json: Any


@dataclass
class TextPart:
    text: str


@dataclass
class ToolCallPart:
    tool_call: ToolCall


@dataclass
class TextResultContent:
    text: str


@dataclass
class JsonResultContent:
    value: Any


@dataclass
class PartsResultContent:
    parts: list[ContentPart]


ToolResultContent = Union[TextResultContent, JsonResultContent, PartsResultContent]


@dataclass
class ToolResult:
    tool_call_id: str
    content: ToolResultContent
    raw_provider_content: Any = None


@dataclass
class ToolResultPart:
    tool_result: ToolResult


ContentPart = Union[TextPart, ToolCallPart, ToolResultPart]


@dataclass
class Message:
    role: MessageRole
    content: list[ContentPart] = field(default_factory=list)


@dataclass
class ToolDefinition:
    name: str
    parameters_schema: Any
    description: str | None = None


class ToolChoice(enum.Enum):
    NONE = "none"
    AUTO = "auto"
    REQUIRED = "required"


@dataclass
class SpecificToolChoice:
    """Forces the model to call the named tool."""

    name: str


@dataclass(frozen=True)
class TextFormat:
    pass


@dataclass(frozen=True)
class JsonObjectFormat:
    pass


@dataclass
class JsonSchemaFormat:
    name: str
    schema: Any


ResponseFormat = Union[TextFormat, JsonObjectFormat, JsonSchemaFormat]


@dataclass
class ModelRef:
    model_id: str
    provider_hint: ProviderId | None = None


@dataclass
class ProviderRequest:
    model: ModelRef
    messages: list[Message] = field(default_factory=list)
    tools: list[ToolDefinition] = field(default_factory=list)
    tool_choice: ToolChoice | SpecificToolChoice = ToolChoice.AUTO
    response_format: ResponseFormat = field(default_factory=TextFormat)
    temperature: float | None = None
    top_p: float | None = None
    max_output_tokens: int | None = None
    stop: list[str] = field(default_factory=list)
    metadata: dict[str, str] = field(default_factory=dict)


@dataclass
class Usage:
    input_tokens: int | None = None
    output_tokens: int | None = None
    cached_input_tokens: int | None = None
    total_tokens: int | None = None


@dataclass
class AssistantOutput:
    content: list[ContentPart] = field(default_factory=list)
    structured_output: Any = None


class FinishReason(enum.Enum):
    STOP = "stop"
    LENGTH = "length"
    TOOL_CALLS = "tool_calls"
    CONTENT_FILTER = "content_filter"
    ERROR = "error"
    OTHER = "other"


@dataclass
class RuntimeWarning:  # noqa: A001 - canonical name for non-fatal runtime notices
    code: str
    message: str


class PricingSource(enum.Enum):
    CONFIGURED = "configured"
    PROVIDER_REPORTED = "provider_reported"


@dataclass
class CostBreakdown:
    currency: str
    input_cost: float
    output_cost: float
    total_cost: float
    pricing_source: PricingSource


@dataclass
class ProviderResponse:
    output: AssistantOutput
    provider: ProviderId
    model: str
    finish_reason: FinishReason
    usage: Usage = field(default_factory=Usage)
    cost: CostBreakdown | None = None
    raw_provider_response: Any = None
    warnings: list[RuntimeWarning] = field(default_factory=list)


@dataclass
class ModelInfo:
    provider: ProviderId
    model_id: str
    display_name: str | None = None
    context_window: int | None = None
    max_output_tokens: int | None = None
    supports_tools: bool = False
    supports_structured_output: bool = False


@dataclass
class AdapterContext:
    """Per-call settings such as transport credentials and extra headers."""

    metadata: dict[str, str] = field(default_factory=dict)