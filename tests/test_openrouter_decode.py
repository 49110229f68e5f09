import pytest

from provider_runtime.errors import ProtocolError
from provider_runtime.openrouter_decode import (
    OpenRouterDecodeEnvelope,
    OpenRouterErrorEnvelope,
    OpenRouterTranslator,
    decode_openrouter_models_list,
    decode_openrouter_response,
    format_openrouter_error_message,
    parse_openrouter_error_envelope,
)
from provider_runtime.openrouter_encode import OpenRouterTranslateOptions
from provider_runtime.types import (
    FinishReason,
    JsonObjectFormat,
    Message,
    MessageRole,
    ModelRef,
    ProviderId,
    ProviderRequest,
    TextFormat,
    TextPart,
    ToolCallPart,
)

USAGE = {"prompt_tokens": 1, "completion_tokens": 1, "total_tokens": 2}


def completion(message, finish_reason="stop", usage=USAGE, **extra):
    body = {
        "id": "1",
        "object": "chat.completion",
        "created": 1,
        "model": "openai/gpt-4o-mini",
        "choices": [{"index": 0, "finish_reason": finish_reason, "message": message}],
    }
    if usage is not None:
        body["usage"] = usage
    body.update(extra)
    return body


def codes(response):
    return [warning.code for warning in response.warnings]


def test_decode_translator_category_contract():
    payload = OpenRouterDecodeEnvelope(
        body={
            "id": "chatcmpl_1",
            "object": "chat.completion",
            "created": 171,
            "model": "openai/gpt-4o-mini",
            "choices": [
                {
                    "index": 0,
                    "finish_reason": "tool_calls",
                    "message": {
                        "role": "assistant",
                        "content": '{"ok":true}',
                        "reasoning": "short rationale",
                        "tool_calls": [
                            {
                                "id": "call_1",
                                "type": "function",
                                "function": {
                                    "name": "lookup_weather",
                                    "arguments": '{"city":"SF"}',
                                },
                            }
                        ],
                    },
                }
            ],
            "usage": {
                "prompt_tokens": 12,
                "completion_tokens": 7,
                "total_tokens": 19,
                "prompt_tokens_details": {"cached_tokens": 2},
            },
        },
        requested_response_format=JsonObjectFormat(),
    )
    decoded = decode_openrouter_response(payload)

    assert decoded.provider == ProviderId.OPENROUTER
    assert decoded.model == "openai/gpt-4o-mini"
    assert decoded.finish_reason == FinishReason.TOOL_CALLS
    assert decoded.usage.input_tokens == 12
    assert decoded.usage.output_tokens == 7
    assert decoded.usage.total_tokens == 19
    assert decoded.usage.cached_input_tokens == 2
    assert decoded.output.structured_output == {"ok": True}
    assert len(decoded.output.content) == 2
    assert decoded.output.content[0] == TextPart('{"ok":true}')
    second = decoded.output.content[1]
    assert isinstance(second, ToolCallPart)
    assert second.tool_call.id == "call_1"
    assert second.tool_call.arguments_json == {"city": "SF"}


def test_decode_is_deterministic():
    payload = OpenRouterDecodeEnvelope(
        body=completion({"role": "assistant", "content": "done"}),
        requested_response_format=TextFormat(),
    )
    first = decode_openrouter_response(payload)
    second = decode_openrouter_response(payload)
    assert first.output.content == [TextPart("done")]
    assert first.finish_reason == FinishReason.STOP
    assert first.usage.total_tokens == 2
    assert first == second


def test_decode_top_level_error_is_protocol_error():
    payload = OpenRouterDecodeEnvelope(body={"error": {"code": 400, "message": "bad request"}})
    with pytest.raises(ProtocolError, match="openrouter error") as info:
        decode_openrouter_response(payload)
    assert "code=400" in str(info.value)


def test_decode_invalid_tool_arguments_warn_and_preserve_raw():
    message = {
        "role": "assistant",
        "content": None,
        "tool_calls": [
            {
                "id": "call_bad",
                "type": "function",
                "function": {"name": "lookup", "arguments": "{not-json"},
            }
        ],
    }
    decoded = decode_openrouter_response(
        OpenRouterDecodeEnvelope(body=completion(message, "tool_calls"))
    )
    assert "tool_arguments_invalid_json" in codes(decoded)
    part = decoded.output.content[0]
    assert isinstance(part, ToolCallPart)
    assert part.tool_call.arguments_json == "{not-json"


def test_decode_non_text_content_item_is_error():
    message = {
        "role": "assistant",
        "content": [{"type": "image_url", "image_url": {"url": "https://example.com/x.png"}}],
    }
    with pytest.raises(ProtocolError, match="unsupported"):
        decode_openrouter_response(OpenRouterDecodeEnvelope(body=completion(message)))


def test_decode_content_array_of_text_items():
    message = {
        "role": "assistant",
        "content": [{"type": "text", "text": "a"}, {"type": "text", "text": "b"}],
    }
    decoded = decode_openrouter_response(OpenRouterDecodeEnvelope(body=completion(message)))
    assert decoded.output.content == [TextPart("a"), TextPart("b")]


def test_decode_tool_call_type_must_be_function():
    message = {
        "role": "assistant",
        "content": None,
        "tool_calls": [
            {"id": "call_1", "type": "retrieval", "function": {"name": "lookup", "arguments": "{}"}}
        ],
    }
    with pytest.raises(ProtocolError, match="type must be function"):
        decode_openrouter_response(OpenRouterDecodeEnvelope(body=completion(message, "tool_calls")))


def test_decode_refusal_is_preserved_as_text_output():
    message = {"role": "assistant", "content": None, "refusal": "I cannot help with that."}
    decoded = decode_openrouter_response(
        OpenRouterDecodeEnvelope(body=completion(message, "content_filter"))
    )
    assert decoded.output.content[0] == TextPart("I cannot help with that.")
    assert decoded.finish_reason == FinishReason.CONTENT_FILTER


def test_decode_usage_missing_and_partial_warn():
    message = {"role": "assistant", "content": "ok"}
    missing = decode_openrouter_response(
        OpenRouterDecodeEnvelope(body=completion(message, usage=None))
    )
    assert "usage_missing" in codes(missing)

    partial = decode_openrouter_response(
        OpenRouterDecodeEnvelope(body=completion(message, usage={"prompt_tokens": 3}))
    )
    assert "usage_partial" in codes(partial)
    assert partial.usage.input_tokens == 3
    assert partial.usage.output_tokens is None


def test_decode_structured_output_parse_failure_warns():
    decoded = decode_openrouter_response(
        OpenRouterDecodeEnvelope(
            body=completion({"role": "assistant", "content": "not-json"}),
            requested_response_format=JsonObjectFormat(),
        )
    )
    assert decoded.output.structured_output is None
    assert "structured_output_parse_failed" in codes(decoded)


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("stop", FinishReason.STOP),
        ("length", FinishReason.LENGTH),
        ("tool_calls", FinishReason.TOOL_CALLS),
        ("content_filter", FinishReason.CONTENT_FILTER),
        ("new_reason", FinishReason.OTHER),
    ],
)
def test_decode_finish_reason_mapping_matrix(raw, expected):
    decoded = decode_openrouter_response(
        OpenRouterDecodeEnvelope(body=completion({"role": "assistant", "content": "ok"}, raw))
    )
    assert decoded.finish_reason == expected


def test_decode_unknown_finish_reason_warns():
    decoded = decode_openrouter_response(
        OpenRouterDecodeEnvelope(
            body=completion({"role": "assistant", "content": "ok"}, "new_reason")
        )
    )
    assert "unknown_finish_reason" in codes(decoded)


def test_decode_finish_reason_error_is_failure():
    with pytest.raises(ProtocolError, match="finish_reason was error"):
        decode_openrouter_response(
            OpenRouterDecodeEnvelope(body=completion({"role": "assistant", "content": ""}, "error"))
        )


def test_decode_empty_output_warns():
    decoded = decode_openrouter_response(
        OpenRouterDecodeEnvelope(
            body=completion(
                {"role": "assistant", "content": None},
                usage={"prompt_tokens": 1, "completion_tokens": 0, "total_tokens": 1},
            )
        )
    )
    assert decoded.output.content == []
    assert "empty_output" in codes(decoded)


def test_decode_rejects_non_assistant_role():
    with pytest.raises(ProtocolError, match="must be assistant"):
        decode_openrouter_response(
            OpenRouterDecodeEnvelope(body=completion({"role": "user", "content": "x"}))
        )


def test_decode_rejects_empty_choices_and_non_object_body():
    with pytest.raises(ProtocolError, match="must not be empty"):
        decode_openrouter_response(OpenRouterDecodeEnvelope(body={"choices": []}))
    with pytest.raises(ProtocolError, match="must be a JSON object"):
        decode_openrouter_response(OpenRouterDecodeEnvelope(body=[1, 2]))


def test_parse_openrouter_error_envelope_and_format():
    envelope = parse_openrouter_error_envelope(
        '{"error":{"message":"No cookie auth credentials found","code":401}}'
    )
    assert envelope == OpenRouterErrorEnvelope(
        message="No cookie auth credentials found", code=401
    )
    message = format_openrouter_error_message(envelope)
    assert "openrouter error" in message
    assert "code=401" in message


def test_parse_openrouter_error_envelope_rejects_other_bodies():
    assert parse_openrouter_error_envelope("not json") is None
    assert parse_openrouter_error_envelope('{"ok":true}') is None


def test_format_error_without_code():
    envelope = OpenRouterErrorEnvelope(message="boom")
    assert format_openrouter_error_message(envelope) == "openrouter error: boom"


def test_decode_openrouter_models_list_success_and_invalid_payload():
    models = decode_openrouter_models_list(
        {
            "data": [
                {
                    "id": "openai/gpt-4o-mini",
                    "name": "GPT-4o mini",
                    "context_length": 128000,
                    "top_provider": {"context_length": 128000, "max_completion_tokens": 4096},
                    "supported_parameters": ["temperature", "tools", "response_format"],
                },
                {
                    "id": "openai/gpt-4o-mini",
                    "name": "GPT-4o mini duplicate",
                    "supported_parameters": ["temperature"],
                },
                {
                    "id": "some/old-model",
                    "name": "Old model",
                    "supported_parameters": ["temperature"],
                },
            ]
        }
    )
    assert len(models) == 2
    assert models[0].model_id == "openai/gpt-4o-mini"
    assert models[0].display_name == "GPT-4o mini"
    assert models[0].context_window == 128000
    assert models[0].max_output_tokens == 4096
    assert models[0].supports_tools
    assert models[0].supports_structured_output
    assert models[1].model_id == "some/old-model"
    assert not models[1].supports_tools
    assert not models[1].supports_structured_output

    with pytest.raises(ProtocolError, match="missing data array"):
        decode_openrouter_models_list({"object": "list"})


def test_models_list_defaults_capabilities_and_rejects_empty_id():
    models = decode_openrouter_models_list({"data": [{"id": " x/y ", "context_length": 10}]})
    assert models[0].model_id == "x/y"
    assert models[0].context_window == 10
    assert models[0].supports_tools and models[0].supports_structured_output

    with pytest.raises(ProtocolError, match="empty id at index 0"):
        decode_openrouter_models_list({"data": [{"id": "  "}]})


def test_translator_encodes_and_decodes():
    translator = OpenRouterTranslator(OpenRouterTranslateOptions())
    request = ProviderRequest(
        model=ModelRef("openai/gpt-4o-mini", ProviderId.OPENROUTER),
        messages=[Message(MessageRole.USER, [TextPart("hello")])],
    )
    encoded = translator.encode_request(request)
    assert encoded.body["model"] == "openai/gpt-4o-mini"
    assert encoded.body["messages"] == [{"role": "user", "content": "hello"}]

    decoded = translator.decode_response(
        OpenRouterDecodeEnvelope(body=completion({"role": "assistant", "content": "done"}))
    )
    assert decoded.output.content == [TextPart("done")]


def test_translator_encode_rejects_provider_hint_mismatch():
    translator = OpenRouterTranslator()
    request = ProviderRequest(
        model=ModelRef("openai/gpt-4o-mini", ProviderId.OPENAI),
        messages=[Message(MessageRole.USER, [TextPart("hello")])],
    )
    with pytest.raises(ProtocolError, match="provider_hint must be Openrouter"):
        translator.encode_request(request)