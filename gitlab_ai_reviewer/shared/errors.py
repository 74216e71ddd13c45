class ConfigurationError(ValueError):
    """Raised when required application settings are missing or invalid."""


class GitLabAPIError(RuntimeError):
    """Raised when GitLab API requests fail or return invalid payloads."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class LLMInvocationError(RuntimeError):
    """Raised when LLM invocation fails or returns malformed output."""
