"""Error hierarchy raised by translators, transports and configuration checks."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from provider_runtime.types import ProviderId


class ProviderError(Exception):
    """A failure reported while talking to, or interpreting, a provider."""

    kind = "provider error"

    def __init__(
        self,
        provider: ProviderId,
        message: str,
        *,
        model: str | None = None,
        request_id: str | None = None,
    ) -> None:
        super().__init__(message)
        self.provider = provider
        self.model = model
        self.request_id = request_id
        self.message = message

    def _key(self) -> tuple[Any, ...]:
        return (self.provider, self.model, self.request_id, self.message)

    def __eq__(self, other: object) -> bool:
        if type(self) is not type(other):
            return NotImplemented
        return self._key() == other._key()  # type: ignore[attr-defined]

    def __hash__(self) -> int:
        return hash((type(self).__name__, *self._key()))

    def _context(self) -> str:
        parts = [f"provider={self.provider}"]
        if self.model is not None:
            parts.append(f"model={self.model}")
        if self.request_id is not None:
            parts.append(f"request_id={self.request_id}")
        return ", ".join(parts)

    def __str__(self) -> str:
        return f"{self.kind} ({self._context()}): {self.message}"

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(provider={self.provider!r}, model={self.model!r}, "
            f"request_id={self.request_id!r}, message={self.message!r})"
        )


class ProtocolError(ProviderError):
    """The request or response did not follow the provider's protocol."""

    kind = "protocol error"


class SerializationError(ProviderError):
    """A payload could not be serialized or deserialized."""

    kind = "serialization error"


class TransportError(ProviderError):
    """The request could not be delivered or no response was received."""

    kind = "transport error"


class StatusError(ProviderError):
    """The provider answered with a non-success HTTP status."""

    kind = "status error"

    def __init__(
        self,
        provider: ProviderId,
        status_code: int,
        message: str,
        *,
        model: str | None = None,
        request_id: str | None = None,
    ) -> None:
        super().__init__(provider, message, model=model, request_id=request_id)
        self.status_code = status_code

    def _key(self) -> tuple[Any, ...]:
        return (*super()._key(), self.status_code)

    def _context(self) -> str:
        return f"{super()._context()}, status={self.status_code}"

    def __repr__(self) -> str:
        return (
            f"StatusError(provider={self.provider!r}, status_code={self.status_code!r}, "
            f"model={self.model!r}, request_id={self.request_id!r}, "
            f"message={self.message!r})"
        )


class ConfigError(Exception):
    """Invalid runtime configuration."""

    def _key(self) -> tuple[Any, ...]:
        return tuple(self.args)

    def __eq__(self, other: object) -> bool:
        if type(self) is not type(other):
            return NotImplemented
        return self._key() == other._key()  # type: ignore[attr-defined]

    def __hash__(self) -> int:
        return hash((type(self).__name__, *self._key()))


class InvalidRetryPolicyError(ConfigError):
    """A retry policy failed validation."""

    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason

    def __str__(self) -> str:
        return f"invalid retry policy: {self.reason}"


class InvalidTimeoutError(ConfigError):
    """A timeout value is not usable."""

    def __init__(self, timeout_ms: int) -> None:
        super().__init__(timeout_ms)
        self.timeout_ms = timeout_ms

    def __str__(self) -> str:
        return f"invalid timeout: {self.timeout_ms}ms"