"""
Error taxonomy shared by the text-completion client, extraction and classification.

ConfigurationError is fatal to the call that hit it; TransientServiceError and
MalformedResponseError are degraded to keyword heuristics by their callers;
AmbiguousInputError is turned into a clarification question at the boundary;
StorageError stops a write that would replace a file it failed to read.
"""

from __future__ import annotations

from typing import Optional


class AssistError(Exception):
    """Base class for every error raised by this package."""


class ConfigurationError(AssistError):
    def __init__(self, message: str, hint: str = "Check your provider settings."):
        super().__init__(message)
        self.hint = hint


class AuthMissingError(ConfigurationError):
    def __init__(self, provider: str, env_var: str):
        super().__init__(
            f"{provider} API key not configured",
            hint=f"Set {env_var} or switch LLM_PROVIDER to another provider.",
        )
        self.provider = provider
        self.env_var = env_var


class TransientServiceError(AssistError):
    """Network or service-side failure; callers fall back instead of retrying."""


class NetworkError(TransientServiceError):
    pass


class HttpError(TransientServiceError):
    def __init__(self, status_code: int, body: Optional[str] = None):
        super().__init__(f"HTTP error with status code: {status_code}")
        self.status_code = status_code
        self.body = body


class ApiError(TransientServiceError):
    def __init__(self, message: str):
        super().__init__(f"API error: {message}")
        self.message = message


class MalformedResponseError(AssistError):
    """The service answered with text nothing downstream could use."""


class MalformedPayloadError(MalformedResponseError):
    pass


class AmbiguousInputError(AssistError):
    def __init__(self, question: str):
        super().__init__(question)
        self.question = question


class StorageError(AssistError):
    """A backing file exists but could not be read; writing would overwrite it."""

    def __init__(self, path: str, reason: str):
        super().__init__(f"Could not read {path}: {reason}")
        self.path = path
        self.hint = f"Fix or move {path} aside and try again."
