"""Exception taxonomy for Legitly.

Only ``ParseError`` ever escapes the analyzer. Source errors are raised inside
predictor/trust-source implementations and converted into unavailable
``SourceResult`` records by their base classes.
"""


class LegitlyError(Exception):
    """Base exception for Legitly errors."""

    pass


class ParseError(LegitlyError):
    """URL could not be parsed or uses an unsupported scheme."""

    def __init__(self, url: str, message: str = "Invalid URL"):
        self.url = url
        self.message = message
        super().__init__(f"{message}: {url!r}")


class SourceError(LegitlyError):
    """A predictor or trust source could not produce a verdict."""

    retryable = False

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class ConfigurationError(SourceError):
    """Source disabled or missing credentials."""

    def __init__(self, message: str = "not configured"):
        super().__init__(message)


class QuotaExceededError(SourceError):
    """Daily call budget exhausted (local or remote)."""

    retryable = True

    def __init__(self, message: str = "rate limit exceeded", retry_after: int | None = None):
        self.retry_after = retry_after
        super().__init__(message)


class AuthenticationError(SourceError):
    """Credentials rejected by the remote service."""

    def __init__(self, message: str = "invalid API key"):
        super().__init__(message)


class APIError(SourceError):
    """Remote service returned an unexpected status."""

    def __init__(self, status_code: int, message: str = "", response_body: str = ""):
        self.status_code = status_code
        self.response_body = response_body
        super().__init__(f"API error {status_code}" + (f": {message}" if message else ""))

    @property
    def retryable(self) -> bool:  # type: ignore[override]
        return self.status_code >= 500


class NetworkError(SourceError):
    """Transport failure or timeout."""

    retryable = True

    def __init__(self, message: str = "network error"):
        super().__init__(message)


def error_for_status(status: int, body: str = "") -> SourceError:
    """Map a non-2xx HTTP status onto the source error taxonomy."""
    if status in (401, 403):
        return AuthenticationError()
    if status == 429:
        return QuotaExceededError("remote quota exceeded")
    return APIError(status, response_body=body[:200])
