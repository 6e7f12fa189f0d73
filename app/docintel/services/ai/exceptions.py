"""
Shared exceptions for AI service modules.
"""


class AIServiceError(Exception):
    """Raised when AI service operations fail."""

    pass


class MissingConfigurationError(AIServiceError):
    """Raised when the API key or endpoint URL is not configured."""

    pass


class AuthenticationFailure(AIServiceError):
    """Raised on HTTP 401/403. Never retried."""

    def __init__(self, status_code: int, reason: str = ""):
        self.status_code = status_code
        self.reason = reason
        super().__init__(
            f"Authentication failed: {status_code} {reason}".rstrip()
            + ". Please check your API key."
        )


class ProbeExhausted(AIServiceError):
    """Raised when every deployment/API version combination failed."""

    def __init__(self, attempts: int, last_error: str | None):
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(
            "All deployment/API version combinations failed. "
            f"Last error: {last_error or 'no attempts made'}"
        )
