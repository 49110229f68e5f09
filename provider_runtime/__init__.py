"""Provider-neutral LLM request and response types, error classes, and OpenRouter translation."""

__version__ = "0.1.0"