"""Custom exception hierarchy for musicFavorites.

All application exceptions inherit from :class:`MusicFavoritesError`, which
carries an optional ``provider_name`` (which external service failed, e.g.
"musicbrainz", "mongodb") and an optional short ``code`` that is surfaced to
API clients so support requests can be matched to log lines.

    MusicFavoritesError  (base -- catch-all for any musicFavorites error)
    +-- ServiceUnavailableError  (SVC_xxx: cache layer unusable, retry later)
    +-- CacheError               (DB_xxx: document store operation failed)
    |   +-- CacheTimeoutError    (store call did not settle in time)
    +-- UpstreamError            (MusicBrainz / Bandsintown call failed)
    +-- ValidationError          (bad input shape, never touches cache/upstream)
    +-- ConfigurationError       (startup / missing config)

Client-facing messages deliberately carry no internals; the code suffix is
the only thing that ties them back to a specific failure site.
"""

_UNAVAILABLE_MESSAGE = "Service temporarily unavailable. Please try again later."


def unavailable_message(code: str) -> str:
    """Return the standard client-facing message for *code*."""
    return f"{_UNAVAILABLE_MESSAGE} (Error: {code})"


class MusicFavoritesError(Exception):
    """Base exception for all musicFavorites errors.

    The ``__str__`` method prefixes the provider name in brackets for
    structured log output, e.g. ``[mongodb] Database not connected``.
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        provider_name: str | None = None,
        code: str | None = None,
    ) -> None:
        self._message = message
        self._provider_name = provider_name
        self._code = code
        super().__init__(self._message)

    @property
    def message(self) -> str:
        return self._message

    @property
    def provider_name(self) -> str | None:
        return self._provider_name

    @property
    def code(self) -> str | None:
        return self._code

    def __str__(self) -> str:
        if self._provider_name:
            return f"[{self._provider_name}] {self._message}"
        return self._message


# ---------------------------------------------------------------------------
# Cache layer errors
# ---------------------------------------------------------------------------


class ServiceUnavailableError(MusicFavoritesError):
    """Raised when the cache layer cannot be trusted for the current request.

    ``SVC_001`` means the explicit health check failed; ``SVC_002`` means a
    bulk cache read failed.  Both are retryable from the client's side.
    """

    def __init__(self, code: str, provider_name: str | None = None) -> None:
        super().__init__(
            message=unavailable_message(code),
            provider_name=provider_name,
            code=code,
        )


class CacheError(MusicFavoritesError):
    """Raised when a document-store operation fails or is not acknowledged."""

    def __init__(
        self,
        message: str | None = None,
        provider_name: str | None = None,
        code: str | None = None,
    ) -> None:
        if message is None:
            message = unavailable_message(code) if code else "Cache operation failed"
        super().__init__(message=message, provider_name=provider_name, code=code)


class CacheTimeoutError(CacheError):
    """Raised by :func:`src.utils.concurrency.with_timeout` on expiry."""

    def __init__(self, message: str = "Database operation timeout") -> None:
        super().__init__(message=message)


# ---------------------------------------------------------------------------
# Upstream / input / configuration errors
# ---------------------------------------------------------------------------


class UpstreamError(MusicFavoritesError):
    """Raised when an upstream API (MusicBrainz, Bandsintown) call fails."""

    def __init__(
        self,
        message: str = "Upstream service request failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class ValidationError(MusicFavoritesError):
    """Raised for malformed input that must never reach the cache or upstream."""

    def __init__(self, message: str = "Invalid input") -> None:
        super().__init__(message=message)


class ConfigurationError(MusicFavoritesError):
    """Raised when configuration is invalid or missing at startup."""

    def __init__(
        self,
        message: str = "Invalid or missing configuration",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)
