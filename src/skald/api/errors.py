"""
Exceptions raised by LLM provider adapters.
"""

from __future__ import annotations


class ProviderError(Exception):
    """Base class for provider faults."""


class ProviderAPIError(ProviderError):
    """A backend answered with a non-success HTTP status."""

    def __init__(self, provider: str, status_code: int, body: str = "") -> None:
        self.provider = provider
        self.status_code = status_code
        self.body = body
        detail = f": {body}" if body else ""
        super().__init__(f"{provider} API error {status_code}{detail}")


class ProviderNotAvailableError(ProviderError, ValueError):
    """No configured provider can serve the requested model.

    This is a configuration error: it is raised while wiring up a
    conversation, never in the middle of a turn.
    """

    def __init__(self, model: str) -> None:
        self.model = model
        super().__init__(f"No provider available for model {model}")
