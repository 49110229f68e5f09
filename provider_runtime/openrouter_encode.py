"""Encoding of canonical requests into OpenRouter chat-completion bodies."""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from typing import Any

from provider_runtime.errors import ProtocolError
from provider_runtime.jsonutil import (
    canonicalize_json,
    is_valid_tool_name,
    openrouter_error,
    stable_json_string,
)
from provider_runtime.types import (
    ContentPart,
    JsonObjectFormat,
    JsonResultContent,
    JsonSchemaFormat,
    Message,
    MessageRole,
    PartsResultContent,
    ProviderId,
    ProviderRequest,
    RuntimeWarning,
    SpecificToolChoice,
    TextFormat,
    TextPart,
    TextResultContent,
    ToolCallPart,
    ToolChoice,
    ToolDefinition,
    ToolResult,
    ToolResultPart,
)

WARN_BOTH_TEMPERATURE_AND_TOP_P_SET = "both_temperature_and_top_p_set"
WARN_TOOL_RESULT_COERCED = "tool_result_coerced"
WARN_TOOL_RESULT_RAW_PROVIDER_CONTENT_IGNORED = "tool_result_raw_provider_content_ignored"

_TOOL_NAME_PATTERN = "^[A-Za-z0-9_-]{1,64}$"


@dataclass
class OpenRouterTranslateOptions:
    """OpenRouter-specific request options layered on top of a canonical request."""

    fallback_models: list[str] = field(default_factory=list)
    provider_preferences: Any = None
    plugins: list[Any] = field(default_factory=list)
    parallel_tool_calls: bool | None = None
    frequency_penalty: float | None = None
    presence_penalty: float | None = None
    logit_bias: Any = None
    logprobs: bool | None = None
    top_logprobs: int | None = None
    reasoning: Any = None
    seed: int | None = None
    user: str | None = None
    session_id: str | None = None
    trace: Any = None
    route: str | None = None
    max_tokens: int | None = None
    modalities: list[str] | None = None
    image_config: Any = None
    debug: Any = None
    stream_options: Any = None


@dataclass
class OpenRouterEncodedRequest:
    """An encoded request body together with the warnings raised while encoding."""

    body: dict[str, Any]
    warnings: list[RuntimeWarning] = field(default_factory=list)


def encode_openrouter_request(
    request: ProviderRequest, options: OpenRouterTranslateOptions
) -> OpenRouterEncodedRequest:
    """Encode a canonical request as an OpenRouter chat-completion body.

    Raises ProtocolError when the request or options cannot be expressed.
    """
    _validate_provider_hint(request)
    _validate_model_id(request)
    model_id = request.model.model_id
    _validate_stop(request, model_id)
    _validate_metadata(request, model_id)
    _validate_sampling_controls(request, model_id)

    warnings: list[RuntimeWarning] = []
    if request.temperature is not None and request.top_p is not None:
        warnings.append(
            RuntimeWarning(
                WARN_BOTH_TEMPERATURE_AND_TOP_P_SET,
                "OpenRouter recommends setting temperature or top_p, but not both",
            )
        )

    _validate_options(options, model_id)
    tools = [_map_tool_definition(tool, model_id) for tool in request.tools]
    tool_choice = _map_tool_choice(request, bool(tools))
    messages = _map_messages(request, bool(tools), warnings)
    response_format = _map_response_format(request)

    if not messages:
        raise openrouter_error(model_id, "empty messages")

    body: dict[str, Any] = {"model": model_id, "messages": messages, "stream": False}

    if options.fallback_models:
        del body["model"]
        body["models"] = [model_id, *options.fallback_models]

    if tools:
        body["tools"] = tools
    if tool_choice is not None:
        body["tool_choice"] = tool_choice
    if response_format is not None:
        body["response_format"] = response_format
    if request.temperature is not None:
        body["temperature"] = request.temperature
    if request.top_p is not None:
        body["top_p"] = request.top_p
    if options.frequency_penalty is not None:
        body["frequency_penalty"] = options.frequency_penalty
    if options.presence_penalty is not None:
        body["presence_penalty"] = options.presence_penalty
    if options.logit_bias is not None:
        body["logit_bias"] = copy.deepcopy(options.logit_bias)
    if options.logprobs is not None:
        body["logprobs"] = options.logprobs
    if options.top_logprobs is not None:
        body["top_logprobs"] = options.top_logprobs
    if options.reasoning is not None:
        body["reasoning"] = copy.deepcopy(options.reasoning)
    if request.max_output_tokens is not None:
        body["max_completion_tokens"] = request.max_output_tokens
    if options.max_tokens is not None:
        body["max_tokens"] = options.max_tokens
    if options.seed is not None:
        body["seed"] = options.seed
    if request.stop:
        body["stop"] = list(request.stop)
    if request.metadata:
        body["metadata"] = dict(sorted(request.metadata.items()))
    if options.parallel_tool_calls is not None:
        body["parallel_tool_calls"] = options.parallel_tool_calls
    if options.provider_preferences is not None:
        body["provider"] = copy.deepcopy(options.provider_preferences)
    if options.user is not None:
        body["user"] = options.user
    if options.session_id is not None:
        body["session_id"] = options.session_id
    if options.trace is not None:
        body["trace"] = copy.deepcopy(options.trace)
    if options.route is not None:
        body["route"] = options.route
    if options.modalities is not None:
        body["modalities"] = list(options.modalities)
    if options.image_config is not None:
        body["image_config"] = copy.deepcopy(options.image_config)
    if options.debug is not None:
        body["debug"] = copy.deepcopy(options.debug)
    if options.stream_options is not None:
        body["stream_options"] = copy.deepcopy(options.stream_options)
    if options.plugins:
        body["plugins"] = copy.deepcopy(options.plugins)

    return OpenRouterEncodedRequest(body=body, warnings=warnings)


def _validate_provider_hint(request: ProviderRequest) -> None:
    hint = request.model.provider_hint
    if hint is not None and hint != ProviderId.OPENROUTER:
        raise openrouter_error(
            request.model.model_id, f"provider_hint must be Openrouter, got {hint}"
        )


def _validate_model_id(request: ProviderRequest) -> None:
    if not request.model.model_id.strip():
        raise openrouter_error(None, "missing model_id")


def _validate_stop(request: ProviderRequest, model_id: str) -> None:
    if len(request.stop) > 4:
        raise openrouter_error(model_id, "stop supports at most 4 entries")


def _validate_metadata(request: ProviderRequest, model_id: str) -> None:
    if len(request.metadata) > 16:
        raise openrouter_error(model_id, "metadata supports at most 16 entries")
    for key, value in sorted(request.metadata.items()):
        if len(key) > 64:
            raise openrouter_error(model_id, f"metadata key exceeds 64 characters: {key}")
        if len(value) > 512:
            raise openrouter_error(
                model_id, f"metadata value exceeds 512 characters for key: {key}"
            )


def _validate_sampling_controls(request: ProviderRequest, model_id: str) -> None:
    temperature = request.temperature
    if temperature is not None and not 0.0 <= temperature <= 2.0:
        raise openrouter_error(
            model_id, f"temperature must be in [0.0, 2.0], got {temperature}"
        )
    top_p = request.top_p
    if top_p is not None and not 0.0 <= top_p <= 1.0:
        raise openrouter_error(model_id, f"top_p must be in [0.0, 1.0], got {top_p}")
    if request.max_output_tokens is not None and request.max_output_tokens < 1:
        raise openrouter_error(model_id, "max_output_tokens must be at least 1")


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _validate_options(options: OpenRouterTranslateOptions, model_id: str) -> None:
    if any(not fallback.strip() for fallback in options.fallback_models):
        raise openrouter_error(model_id, "fallback_models must not include empty model ids")

    if options.provider_preferences is not None and not isinstance(
        options.provider_preferences, dict
    ):
        raise openrouter_error(model_id, "provider preferences must be a JSON object")

    for index, plugin in enumerate(options.plugins):
        if not isinstance(plugin, dict):
            raise openrouter_error(model_id, f"plugin at index {index} must be a JSON object")

    for name in ("frequency_penalty", "presence_penalty"):
        penalty = getattr(options, name)
        if penalty is not None and not -2.0 <= penalty <= 2.0:
            raise openrouter_error(model_id, f"{name} must be in [-2.0, 2.0], got {penalty}")

    if options.logit_bias is not None:
        if not isinstance(options.logit_bias, dict):
            raise openrouter_error(model_id, "logit_bias must be a JSON object")
        for token, bias in options.logit_bias.items():
            if not _is_number(bias):
                raise openrouter_error(
                    model_id, f"logit_bias value for token '{token}' must be numeric"
                )

    top_logprobs = options.top_logprobs
    if top_logprobs is not None and not 0 <= top_logprobs <= 20:
        raise openrouter_error(model_id, f"top_logprobs must be in [0, 20], got {top_logprobs}")

    if options.reasoning is not None and not isinstance(options.reasoning, dict):
        raise openrouter_error(model_id, "reasoning must be a JSON object")

    if options.user is not None and not options.user.strip():
        raise openrouter_error(model_id, "user must be non-empty when provided")

    if options.session_id is not None:
        if not options.session_id.strip():
            raise openrouter_error(model_id, "session_id must be non-empty when provided")
        if len(options.session_id) > 128:
            raise openrouter_error(model_id, "session_id must be 128 characters or fewer")

    if options.trace is not None and not isinstance(options.trace, dict):
        raise openrouter_error(model_id, "trace must be a JSON object")

    if options.route is not None and options.route not in ("fallback", "sort"):
        raise openrouter_error(model_id, "route must be 'fallback' or 'sort' when provided")

    if options.max_tokens is not None and options.max_tokens < 1:
        raise openrouter_error(model_id, "max_tokens must be at least 1")

    if options.modalities is not None:
        if not options.modalities:
            raise openrouter_error(model_id, "modalities must be non-empty when provided")
        for modality in options.modalities:
            if modality != "text":
                raise openrouter_error(
                    model_id,
                    "modalities only supports 'text' in non-streaming canonical mode; "
                    f"got '{modality}'",
                )

    for name in ("image_config", "debug", "stream_options"):
        if getattr(options, name) is not None:
            raise openrouter_error(
                model_id, f"{name} is unsupported in non-streaming canonical mode"
            )


def _map_tool_definition(tool: ToolDefinition, model_id: str) -> dict[str, Any]:
    if not is_valid_tool_name(tool.name):
        raise openrouter_error(
            model_id, f"tool '{tool.name}' name must match {_TOOL_NAME_PATTERN}"
        )
    if not isinstance(tool.parameters_schema, dict):
        raise openrouter_error(
            model_id, f"tool '{tool.name}' parameters_schema must be a JSON object"
        )
    function: dict[str, Any] = {"name": tool.name}
    if tool.description is not None:
        function["description"] = tool.description
    function["parameters"] = copy.deepcopy(tool.parameters_schema)
    return {"type": "function", "function": function}


def _map_tool_choice(request: ProviderRequest, has_tools: bool) -> Any:
    choice = request.tool_choice
    model_id = request.model.model_id

    if not has_tools:
        if choice == ToolChoice.REQUIRED:
            raise openrouter_error(
                model_id, "tool_choice required requires at least one tool definition"
            )
        if isinstance(choice, SpecificToolChoice):
            raise openrouter_error(
                model_id, "tool_choice specific requires at least one tool definition"
            )
        return None

    if isinstance(choice, SpecificToolChoice):
        if not choice.name.strip():
            raise openrouter_error(model_id, "tool_choice specific requires non-empty name")
        if not any(tool.name == choice.name for tool in request.tools):
            raise openrouter_error(
                model_id, f"tool_choice specific references unknown tool: {choice.name}"
            )
        return {"type": "function", "function": {"name": choice.name}}

    return choice.value


def _map_response_format(request: ProviderRequest) -> dict[str, Any] | None:
    fmt = request.response_format
    model_id = request.model.model_id
    if isinstance(fmt, TextFormat):
        return None
    if isinstance(fmt, JsonObjectFormat):
        return {"type": "json_object"}
    if isinstance(fmt, JsonSchemaFormat):
        if not fmt.name.strip():
            raise openrouter_error(
                model_id, "json_schema response format requires non-empty name"
            )
        if len(fmt.name) > 64:
            raise openrouter_error(model_id, "json_schema name exceeds 64 characters")
        if not isinstance(fmt.schema, dict):
            raise openrouter_error(model_id, "json_schema schema must be a JSON object")
        return {
            "type": "json_schema",
            "json_schema": {
                "name": fmt.name,
                "schema": copy.deepcopy(fmt.schema),
                "strict": True,
            },
        }
    raise openrouter_error(model_id, f"unsupported response format: {fmt!r}")


def _map_messages(
    request: ProviderRequest, has_tools: bool, warnings: list[RuntimeWarning]
) -> list[dict[str, Any]]:
    model_id = request.model.model_id
    messages = [_map_message(message, model_id, warnings) for message in request.messages]
    if not has_tools and any(m.role == MessageRole.TOOL for m in request.messages):
        raise openrouter_error(model_id, "tool messages require at least one tool definition")
    return messages


def _map_message(
    message: Message, model_id: str, warnings: list[RuntimeWarning]
) -> dict[str, Any]:
    role = message.role
    if role in (MessageRole.SYSTEM, MessageRole.USER):
        text = _join_text_parts(message.content, model_id, role.value, allow_empty=True)
        return {"role": role.value, "content": text}
    if role == MessageRole.ASSISTANT:
        return _map_assistant_message(message.content, model_id)
    return _map_tool_message(message.content, model_id, warnings)


def _map_assistant_message(content: list[ContentPart], model_id: str) -> dict[str, Any]:
    text_parts: list[str] = []
    tool_calls: list[dict[str, Any]] = []

    for part in content:
        if isinstance(part, TextPart):
            text_parts.append(part.text)
        elif isinstance(part, ToolCallPart):
            call = part.tool_call
            if not call.id.strip():
                raise openrouter_error(model_id, "assistant tool_call id must be non-empty")
            if not call.name.strip():
                raise openrouter_error(model_id, "assistant tool_call name must be non-empty")
            if not is_valid_tool_name(call.name):
                raise openrouter_error(
                    model_id,
                    f"assistant tool_call '{call.name}' name must match {_TOOL_NAME_PATTERN}",
                )
            tool_calls.append(
                {
                    "id": call.id,
                    "type": "function",
                    "function": {
                        "name": call.name,
                        "arguments": stable_json_string(canonicalize_json(call.arguments_json)),
                    },
                }
            )
        else:
            raise openrouter_error(
                model_id, "tool_result content is only valid for tool role messages"
            )

    if not text_parts and not tool_calls:
        raise openrouter_error(model_id, "assistant messages must contain text or tool_calls")

    payload: dict[str, Any] = {
        "role": "assistant",
        "content": "\n".join(text_parts) if text_parts else None,
    }
    if tool_calls:
        payload["tool_calls"] = tool_calls
    return payload


def _map_tool_message(
    content: list[ContentPart], model_id: str, warnings: list[RuntimeWarning]
) -> dict[str, Any]:
    if len(content) != 1:
        raise openrouter_error(
            model_id, "tool role messages must contain exactly one tool_result part"
        )
    (part,) = content
    if not isinstance(part, ToolResultPart):
        raise openrouter_error(model_id, "tool role messages must contain tool_result content")
    result = part.tool_result
    if not result.tool_call_id.strip():
        raise openrouter_error(model_id, "tool_result tool_call_id must be non-empty")

    output = _coerce_tool_result_output(result, model_id, warnings)
    return {"role": "tool", "tool_call_id": result.tool_call_id, "content": output}


def _coerce_tool_result_output(
    result: ToolResult, model_id: str, warnings: list[RuntimeWarning]
) -> str:
    raw = result.raw_provider_content
    if raw is not None:
        if isinstance(raw, str):
            return raw
        warnings.append(
            RuntimeWarning(
                WARN_TOOL_RESULT_RAW_PROVIDER_CONTENT_IGNORED,
                "tool_result raw_provider_content ignored for OpenRouter because it is "
                "not a string",
            )
        )

    content = result.content
    if isinstance(content, TextResultContent):
        return content.text
    if isinstance(content, JsonResultContent):
        warnings.append(
            RuntimeWarning(
                WARN_TOOL_RESULT_COERCED,
                "tool_result JSON content coerced to string for OpenRouter tool message",
            )
        )
        return stable_json_string(canonicalize_json(content.value))
    if isinstance(content, PartsResultContent):
        warnings.append(
            RuntimeWarning(
                WARN_TOOL_RESULT_COERCED,
                "tool_result parts content coerced to newline-delimited string for "
                "OpenRouter tool message",
            )
        )
        return _join_text_parts(content.parts, model_id, "tool_result", allow_empty=False)
    raise openrouter_error(model_id, f"unsupported tool_result content: {content!r}")


def _join_text_parts(
    content: list[ContentPart], model_id: str, context: str, *, allow_empty: bool
) -> str:
    texts: list[str] = []
    for part in content:
        if not isinstance(part, TextPart):
            raise openrouter_error(model_id, f"{context} content must contain only text parts")
        texts.append(part.text)
    if not allow_empty and not texts:
        raise openrouter_error(
            model_id, f"{context} content must contain at least one text part"
        )
    return "\n".join(texts)


__all__ = [
    "OpenRouterEncodedRequest",
    "OpenRouterTranslateOptions",
    "ProtocolError",
    "encode_openrouter_request",
]