"""Decoding of OpenRouter chat-completion responses and model listings."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any

from provider_runtime.errors import ProtocolError
from provider_runtime.jsonutil import (
    number_to_u32,
    number_to_u64,
    openrouter_error,
    stable_json_string,
)
from provider_runtime.openrouter_encode import (
    OpenRouterEncodedRequest,
    OpenRouterTranslateOptions,
    encode_openrouter_request,
)
from provider_runtime.translator import ProviderTranslator
from provider_runtime.types import (
    AssistantOutput,
    ContentPart,
    FinishReason,
    ModelInfo,
    ProviderId,
    ProviderRequest,
    ProviderResponse,
    ResponseFormat,
    RuntimeWarning,
    TextFormat,
    TextPart,
    ToolCall,
    ToolCallPart,
    Usage,
)

WARN_TOOL_ARGUMENTS_INVALID_JSON = "tool_arguments_invalid_json"
WARN_USAGE_MISSING = "usage_missing"
WARN_USAGE_PARTIAL = "usage_partial"
WARN_STRUCTURED_OUTPUT_PARSE_FAILED = "structured_output_parse_failed"
WARN_UNKNOWN_FINISH_REASON = "unknown_finish_reason"
WARN_EMPTY_OUTPUT = "empty_output"

_UNKNOWN_MODEL = "<unknown-model>"
_U16_MAX = 0xFFFF

_FINISH_REASONS = {
    "stop": FinishReason.STOP,
    "length": FinishReason.LENGTH,
    "tool_calls": FinishReason.TOOL_CALLS,
    "content_filter": FinishReason.CONTENT_FILTER,
    "error": FinishReason.ERROR,
}


@dataclass
class OpenRouterDecodeEnvelope:
    """A raw response body paired with the response format that was requested."""

    body: Any
    requested_response_format: ResponseFormat = field(default_factory=TextFormat)


@dataclass(frozen=True)
class OpenRouterErrorEnvelope:
    """The error object OpenRouter returns in place of a completion."""

    message: str
    code: int | None = None


class OpenRouterTranslator(
    ProviderTranslator[OpenRouterEncodedRequest, OpenRouterDecodeEnvelope]
):
    """Translator between canonical types and OpenRouter chat-completion payloads."""

    def __init__(self, options: OpenRouterTranslateOptions | None = None) -> None:
        self.options = options if options is not None else OpenRouterTranslateOptions()

    def encode_request(self, request: ProviderRequest) -> OpenRouterEncodedRequest:
        return encode_openrouter_request(request, self.options)

    def decode_response(self, payload: OpenRouterDecodeEnvelope) -> ProviderResponse:
        return decode_openrouter_response(payload)


def _reject_constant(name: str) -> Any:
    raise ValueError(f"invalid JSON constant {name}")


def _parse_json(text: str) -> Any:
    return json.loads(text, parse_constant=_reject_constant)


def decode_openrouter_response(payload: OpenRouterDecodeEnvelope) -> ProviderResponse:
    """Decode an OpenRouter chat-completion body into a canonical response.

    Raises ProtocolError for error bodies and malformed payloads.
    """
    root = payload.body
    if not isinstance(root, dict):
        raise openrouter_error(None, "openrouter response payload must be a JSON object")

    envelope = _parse_error_value(root)
    if envelope is not None:
        raise openrouter_error(None, format_openrouter_error_message(envelope))

    model = root.get("model")
    if not isinstance(model, str):
        model = _UNKNOWN_MODEL

    choices = root.get("choices")
    if not isinstance(choices, list):
        raise openrouter_error(model, "openrouter response missing choices array")
    if not choices:
        raise openrouter_error(model, "openrouter response choices array must not be empty")

    choice = choices[0]
    if not isinstance(choice, dict):
        raise openrouter_error(model, "openrouter response choices[0] must be a JSON object")

    if "error" in choice:
        raise openrouter_error(
            model,
            "openrouter response choice contained error: "
            f"{stable_json_string(choice['error'])}",
        )

    finish_reason_raw = choice.get("finish_reason")
    if not isinstance(finish_reason_raw, str):
        finish_reason_raw = None
    if finish_reason_raw == "error":
        raise openrouter_error(model, "openrouter response finish_reason was error")

    message = choice.get("message")
    if not isinstance(message, dict):
        raise openrouter_error(model, "openrouter response missing choice message")

    role = message.get("role")
    if isinstance(role, str) and role != "assistant":
        raise openrouter_error(
            model, f"openrouter response message role must be assistant, got {role}"
        )

    warnings: list[RuntimeWarning] = []
    content: list[ContentPart] = []
    text_blocks: list[str] = []

    for text in _decode_message_content(message):
        text_blocks.append(text)
        content.append(TextPart(text))

    refusal = _decode_refusal(message)
    if refusal:
        text_blocks.append(refusal)
        content.append(TextPart(refusal))

    content.extend(_decode_tool_calls(message, warnings, model))

    if not content:
        warnings.append(
            RuntimeWarning(
                WARN_EMPTY_OUTPUT,
                "openrouter response contained no decodable output content",
            )
        )

    finish_reason = _map_finish_reason(finish_reason_raw, warnings)
    usage = _decode_usage(root, model, warnings)
    structured_output = _decode_structured_output(
        payload.requested_response_format, text_blocks, warnings
    )

    return ProviderResponse(
        output=AssistantOutput(content=content, structured_output=structured_output),
        provider=ProviderId.OPENROUTER,
        model=model,
        finish_reason=finish_reason,
        usage=usage,
        cost=None,
        raw_provider_response=None,
        warnings=warnings,
    )


def parse_openrouter_error_envelope(body: str) -> OpenRouterErrorEnvelope | None:
    """Parse an OpenRouter error body; None when it is not one."""
    try:
        payload = _parse_json(body)
    except ValueError:
        return None
    if not isinstance(payload, dict):
        return None
    return _parse_error_value(payload)


def format_openrouter_error_message(envelope: OpenRouterErrorEnvelope) -> str:
    """Render an error envelope as a single-line message."""
    if envelope.code is not None:
        return f"openrouter error: {envelope.message} [code={envelope.code}]"
    return f"openrouter error: {envelope.message}"


def decode_openrouter_models_list(payload: Any) -> list[ModelInfo]:
    """Decode the OpenRouter models listing, skipping repeated ids."""
    if not isinstance(payload, dict):
        raise openrouter_error(None, "openrouter models payload must be a JSON object")
    data = payload.get("data")
    if not isinstance(data, list):
        raise openrouter_error(None, "openrouter models payload missing data array")

    discovered: list[ModelInfo] = []
    seen: set[str] = set()

    for index, item in enumerate(data):
        if not isinstance(item, dict):
            raise openrouter_error(
                None,
                f"openrouter models payload contains non-object entry at index {index}",
            )
        raw_id = item.get("id")
        if not isinstance(raw_id, str):
            raise openrouter_error(
                None, f"openrouter models payload entry missing id at index {index}"
            )
        model_id = raw_id.strip()
        if not model_id:
            raise openrouter_error(
                None, f"openrouter models payload entry has empty id at index {index}"
            )
        if model_id in seen:
            continue
        seen.add(model_id)

        top = item.get("top_provider")
        top = top if isinstance(top, dict) else {}
        if "context_length" in top:
            context_window = number_to_u32(top["context_length"])
        else:
            context_window = number_to_u32(item.get("context_length"))
        max_output_tokens = number_to_u32(top.get("max_completion_tokens"))

        supports_tools, supports_structured_output = _decode_model_capabilities(item)
        name = item.get("name")

        discovered.append(
            ModelInfo(
                provider=ProviderId.OPENROUTER,
                model_id=model_id,
                display_name=name if isinstance(name, str) else None,
                context_window=context_window,
                max_output_tokens=max_output_tokens,
                supports_tools=supports_tools,
                supports_structured_output=supports_structured_output,
            )
        )

    return discovered


def _parse_error_value(root: dict[str, Any]) -> OpenRouterErrorEnvelope | None:
    error = root.get("error")
    if not isinstance(error, dict):
        return None
    message = error.get("message")
    if not isinstance(message, str):
        return None
    code = number_to_u64(error.get("code"))
    if code is not None and code > _U16_MAX:
        code = None
    return OpenRouterErrorEnvelope(message=message, code=code)


def _decode_message_content(message: dict[str, Any]) -> list[str]:
    if "content" not in message:
        return []
    value = message["content"]
    if value is None:
        return []
    if isinstance(value, str):
        return [value] if value else []
    if isinstance(value, list):
        texts: list[str] = []
        for item in value:
            if not isinstance(item, dict):
                raise openrouter_error(None, "assistant content array item must be an object")
            item_type = item.get("type")
            if not isinstance(item_type, str):
                item_type = "unknown"
            if item_type != "text":
                raise openrouter_error(
                    None,
                    f"assistant content item type '{item_type}' is unsupported in "
                    "canonical text mode",
                )
            text = item.get("text")
            if not isinstance(text, str):
                raise openrouter_error(None, "text content item missing text")
            texts.append(text)
        return texts
    raise openrouter_error(None, "assistant content must be string, array, or null")


def _decode_refusal(message: dict[str, Any]) -> str | None:
    refusal = message.get("refusal")
    if refusal is None:
        return None
    if not isinstance(refusal, str):
        raise openrouter_error(None, "assistant refusal must be a string or null")
    return refusal or None


def _decode_tool_calls(
    message: dict[str, Any], warnings: list[RuntimeWarning], model: str
) -> list[ToolCallPart]:
    if "tool_calls" not in message:
        return []
    calls = message["tool_calls"]
    if not isinstance(calls, list):
        raise openrouter_error(model, "tool_calls must be an array")

    parts: list[ToolCallPart] = []
    for call in calls:
        if not isinstance(call, dict):
            raise openrouter_error(model, "tool_call entry must be an object")
        call_id = call.get("id")
        if not isinstance(call_id, str):
            raise openrouter_error(model, "tool_call missing id")
        if not call_id.strip():
            raise openrouter_error(model, "tool_call id must be non-empty")

        call_type = call.get("type")
        if not isinstance(call_type, str):
            raise openrouter_error(model, "tool_call missing type")
        if call_type != "function":
            raise openrouter_error(model, f"tool_call type must be function, got {call_type}")

        function = call.get("function")
        if not isinstance(function, dict):
            raise openrouter_error(model, "tool_call missing function object")
        name = function.get("name")
        if not isinstance(name, str):
            raise openrouter_error(model, "tool_call function missing name")
        args_raw = function.get("arguments")
        if not isinstance(args_raw, str):
            raise openrouter_error(model, "tool_call function missing arguments")

        try:
            arguments = _parse_json(args_raw)
        except ValueError:
            warnings.append(
                RuntimeWarning(
                    WARN_TOOL_ARGUMENTS_INVALID_JSON,
                    "openrouter tool_call arguments were not valid JSON for "
                    f"call_id={call_id}",
                )
            )
            arguments = args_raw

        parts.append(ToolCallPart(ToolCall(id=call_id, name=name, arguments_json=arguments)))
    return parts


def _decode_usage(
    root: dict[str, Any], model: str, warnings: list[RuntimeWarning]
) -> Usage:
    if "usage" not in root:
        warnings.append(
            RuntimeWarning(WARN_USAGE_MISSING, "openrouter response usage was missing")
        )
        return Usage()
    value = root["usage"]
    if value is None:
        warnings.append(RuntimeWarning(WARN_USAGE_MISSING, "openrouter response usage was null"))
        return Usage()
    if not isinstance(value, dict):
        raise openrouter_error(model, "usage must be an object or null")

    details = value.get("prompt_tokens_details")
    cached = number_to_u64(details.get("cached_tokens")) if isinstance(details, dict) else None

    usage = Usage(
        input_tokens=number_to_u64(value.get("prompt_tokens")),
        output_tokens=number_to_u64(value.get("completion_tokens")),
        cached_input_tokens=cached,
        total_tokens=number_to_u64(value.get("total_tokens")),
    )
    if None in (usage.input_tokens, usage.output_tokens, usage.total_tokens):
        warnings.append(
            RuntimeWarning(WARN_USAGE_PARTIAL, "openrouter response usage was partial")
        )
    return usage


def _decode_structured_output(
    response_format: ResponseFormat,
    text_blocks: list[str],
    warnings: list[RuntimeWarning],
) -> Any:
    if isinstance(response_format, TextFormat) or not text_blocks:
        return None
    try:
        return _parse_json("\n".join(text_blocks))
    except ValueError as error:
        warnings.append(
            RuntimeWarning(
                WARN_STRUCTURED_OUTPUT_PARSE_FAILED,
                f"failed to parse structured output JSON: {error}",
            )
        )
        return None


def _map_finish_reason(
    finish_reason: str | None, warnings: list[RuntimeWarning]
) -> FinishReason:
    if finish_reason is None:
        return FinishReason.OTHER
    mapped = _FINISH_REASONS.get(finish_reason)
    if mapped is not None:
        return mapped
    warnings.append(
        RuntimeWarning(
            WARN_UNKNOWN_FINISH_REASON,
            f"openrouter finish_reason '{finish_reason}' mapped to Other",
        )
    )
    return FinishReason.OTHER


def _decode_model_capabilities(model_obj: dict[str, Any]) -> tuple[bool, bool]:
    parameters = model_obj.get("supported_parameters")
    if not isinstance(parameters, list):
        return True, True
    names = {param for param in parameters if isinstance(param, str)}
    supports_tools = "tools" in names
    supports_structured = bool(names & {"response_format", "structured_outputs"})
    return supports_tools, supports_structured


__all__ = [
    "OpenRouterDecodeEnvelope",
    "OpenRouterErrorEnvelope",
    "OpenRouterTranslator",
    "ProtocolError",
    "decode_openrouter_models_list",
    "decode_openrouter_response",
    "format_openrouter_error_message",
    "parse_openrouter_error_envelope",
]