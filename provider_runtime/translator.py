"""Contract for translating canonical requests and responses to provider payloads."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Generic, TypeVar

from provider_runtime.types import ProviderRequest, ProviderResponse

RequestPayloadT = TypeVar("RequestPayloadT")
ResponsePayloadT = TypeVar("ResponsePayloadT")


class ProviderTranslator(ABC, Generic[RequestPayloadT, ResponsePayloadT]):
    """Maps canonical runtime types to a provider's protocol payloads and back."""

    @abstractmethod
    def encode_request(self, request: ProviderRequest) -> RequestPayloadT:
        """Encode a canonical request into the provider's request payload.

        Raises ProviderError when the request cannot be expressed.
        """

    @abstractmethod
    def decode_response(self, payload: ResponsePayloadT) -> ProviderResponse:
        """Decode a provider response payload into a canonical response.

        Raises ProviderError when the payload is malformed.
        """