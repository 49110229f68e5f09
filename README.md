# provider_runtime

Canonical request and response types for LLM providers, and a translator
between those types and the OpenRouter chat-completions protocol. It has no
dependencies outside the standard library.

## Install

```
pip install .
```

For running the tests:

```
pip install ".[test]"
pytest
```

## Canonical types

`provider_runtime.types` holds the provider-neutral model of a conversation:

- `ProviderRequest`, made of a `ModelRef` (model id and optional
  `ProviderId` hint), `Message`s with a `MessageRole`, `ToolDefinition`s, a
  tool choice (`ToolChoice.NONE`, `AUTO`, `REQUIRED` or
  `SpecificToolChoice(name)`), a response format (`TextFormat`,
  `JsonObjectFormat`, `JsonSchemaFormat`), sampling controls, stop sequences
  and metadata.
- Content parts: `TextPart`, `ToolCallPart` (holding a `ToolCall`) and
  `ToolResultPart` (holding a `ToolResult` whose content is
  `TextResultContent`, `JsonResultContent` or `PartsResultContent`).
- `ProviderResponse`, with `AssistantOutput`, `Usage`, `FinishReason`,
  an optional `CostBreakdown` (with a `PricingSource`) and a list of
  `RuntimeWarning`s.
- `ModelInfo` for entries of a model listing, and `AdapterContext` for
  per-call metadata.

`ProviderId` has the well-known values `ProviderId.OPENAI`,
`ProviderId.ANTHROPIC` and `ProviderId.OPENROUTER`; `ProviderId.other(name)`
names any other provider.

Any translator implements `provider_runtime.translator.ProviderTranslator`,
an abstract generic class with `encode_request(request)` and
`decode_response(payload)`.

## OpenRouter

Encoding a request:

```python
from provider_runtime.types import (
    Message, MessageRole, ModelRef, ProviderId, ProviderRequest, TextPart,
)
from provider_runtime.openrouter_encode import (
    OpenRouterTranslateOptions, encode_openrouter_request,
)

request = ProviderRequest(
    model=ModelRef(provider_hint=ProviderId.OPENROUTER, model_id="openai/gpt-4o-mini"),
    messages=[Message(role=MessageRole.USER, content=[TextPart(text="hello")])],
)
encoded = encode_openrouter_request(request, OpenRouterTranslateOptions())
print(encoded.body)      # JSON-ready dict for a chat-completions call
print(encoded.warnings)  # non-fatal notes, e.g. both temperature and top_p set
```

`OpenRouterTranslateOptions` carries the OpenRouter-specific settings:
fallback models, provider preferences, plugins, penalties, logit bias,
logprobs, reasoning, seed, user, session id, trace, route, `max_tokens` and
modalities. The encoder checks them (and the request's stop list, metadata,
sampling controls, tool names and message shapes) before building the body.
`image_config`, `debug`, `stream_options` and any modality other than
`"text"` are rejected.

Decoding a response:

```python
from provider_runtime.openrouter_decode import (
    OpenRouterDecodeEnvelope, decode_openrouter_response,
)
from provider_runtime.types import JsonObjectFormat

response = decode_openrouter_response(
    OpenRouterDecodeEnvelope(body=body, requested_response_format=JsonObjectFormat())
)
print(response.output.content, response.output.structured_output)
print(response.usage, response.finish_reason, response.warnings)
```

When a JSON response format was requested, the text output is parsed into
`structured_output`; a parse failure becomes a `structured_output_parse_failed`
warning. Missing or partial usage, unknown finish reasons, tool-call arguments
that are not valid JSON and empty output are also reported as warnings.

`OpenRouterTranslator(options)` bundles both directions behind the
`ProviderTranslator` interface. Model listings decode with
`decode_openrouter_models_list`, which skips repeated ids. Error bodies parse
with `parse_openrouter_error_envelope` into an `OpenRouterErrorEnvelope`, and
`format_openrouter_error_message` renders one as
`openrouter error: <message> [code=<code>]`.

## Errors

`provider_runtime.errors` defines `ProviderError` with the subclasses
`ProtocolError`, `SerializationError`, `TransportError` and `StatusError`
(which also carries `status_code`), and `ConfigError` with
`InvalidRetryPolicyError` and `InvalidTimeoutError`. Each carries the provider,
model and request id where known, and errors compare equal by value.

Invalid requests and malformed responses in the OpenRouter encoder and decoder
raise `ProtocolError`.

## What this package does not do

It does not send requests. There is no HTTP client, retry logic or
authentication here: the encoder produces a request body and the decoder
reads a response body, and moving them over the network is left to the caller.
There is also no provider routing, model catalog or pricing.