"""Exception hierarchy for nexpose-api.

Every error raised by the library derives from NexposeError so callers can
catch one type. Nothing in the library retries: each error surfaces once to
the immediate caller.
"""

from __future__ import annotations


class NexposeError(Exception):
    """Base class for all nexpose-api errors."""


class ConfigurationError(NexposeError):
    """Raised at construction time for unusable setup.

    Examples: a missing template resource, invalid constructor arguments,
    or a TLS context that was never initialized.
    """


class VersionIncompatibilityError(NexposeError):
    """Raised before any network I/O when a request cannot target the session's API version."""


class TransportError(NexposeError):
    """Raised when the connection to the server fails (connect, timeout, I/O)."""


class ResponseParseError(NexposeError):
    """Raised when a response body is not well-formed XML or a value cannot be converted."""


class GeneratorParseError(ResponseParseError):
    """Raised when an element does not have the shape a Content Generator expects."""


class ApplicationFailure(NexposeError):
    """Raised when the server reports a Failure element.

    Carries both the XML that was sent and the XML that came back so the
    caller can diagnose the failure without re-running the request.
    """

    def __init__(
        self,
        message: str,
        request: str | None = None,
        response: str | None = None,
    ) -> None:
        super().__init__(message)
        self.request = request
        self.response = response

