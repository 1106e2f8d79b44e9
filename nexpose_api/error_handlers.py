"""Pluggable handling of server-reported failures.

When a response contains a ``Failure`` element the session calls its
ErrorHandler. The default raises ApplicationFailure; integrators can
install a handler that logs and lets the call return the response.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Protocol

from nexpose_api.errors import ApplicationFailure

if TYPE_CHECKING:
    from nexpose_api.response import APIResponse
    from nexpose_api.session import APISession
    from nexpose_api.templating import TemplateRequest

_logger = logging.getLogger(__name__)


class ErrorHandler(Protocol):
    def handle_error(
        self,
        request: TemplateRequest,
        response: APIResponse,
        session: APISession,
        message: str,
    ) -> None:
        """React to a Failure in *response*; raising aborts the call."""
        ...


class DefaultErrorHandler:
    """Always raises ApplicationFailure with both payloads attached."""

    def handle_error(
        self,
        request: TemplateRequest,
        response: APIResponse,
        session: APISession,
        message: str,
    ) -> None:
        raise ApplicationFailure(
            message,
            request=request.request_xml,
            response=response.response_xml,
        )


class LoggingErrorHandler:
    """Logs the failure at WARNING and lets the caller inspect the response."""

    def __init__(self, logger: logging.Logger | None = None) -> None:
        self._logger = logger or _logger

    def handle_error(
        self,
        request: TemplateRequest,
        response: APIResponse,
        session: APISession,
        message: str,
    ) -> None:
        self._logger.warning("%s [%s]", message, session.base_url)
