"""APISession - Sends template requests to the console and parses the replies.

A session owns the console URL, the configured API version, the
authentication token, and one HTTP client. ``send()`` is the single path
to the network:

1. Pick the API version for this request: the session's own version,
   lowered to the request's last supported version when the session is
   newer, or a VersionIncompatibilityError when the session is older than
   the request's first supported version. No I/O happens on rejection.
2. Inject the session token unless the request carries its own.
3. Expand the template and POST it as ``text/xml`` to
   ``{base_url}/api/{version}/{protocol}``.
4. Parse the reply and hand any ``Failure`` element to the error handler.

A session is not safe to share between threads: ``send()`` rewrites the
endpoint URL for the duration of a downgraded call. Use one session per
thread.
"""

from __future__ import annotations

import logging
import ssl
from typing import Any, Callable, TypeVar

import httpx
from lxml import etree

from nexpose_api import tls
from nexpose_api.api_requests import (
    AssetGroupDeleteRequest,
    AssetGroupListingRequest,
    EngineActivityRequest,
    EngineDeleteRequest,
    EngineListingRequest,
    EngineSaveRequest,
    LoginRequest,
    LogoutRequest,
    MultiTenantUserListingRequest,
    RawXMLRequest,
    ReportAdhocGenerateRequest,
    ReportGenerateRequest,
    ReportListingRequest,
    RoleListingRequest,
    ScanStatisticsRequest,
    ScanStatusRequest,
    ScanStopRequest,
    SiloListingRequest,
    SiteConfigRequest,
    SiteDeleteRequest,
    SiteDeviceListingRequest,
    SiteListingRequest,
    SiteSaveRequest,
    SiteScanHistoryRequest,
    SiteScanRequest,
    TicketListingRequest,
    UserDeleteRequest,
    UserListingRequest,
    UserSaveRequest,
)
from nexpose_api.error_handlers import DefaultErrorHandler, ErrorHandler
from nexpose_api.errors import ConfigurationError, TransportError, VersionIncompatibilityError
from nexpose_api.generators import ContentGenerator
from nexpose_api.models import (
    AssetGroupSummary,
    DeviceSummary,
    EngineSummary,
    MultiTenantUserSummary,
    ReportConfigSummary,
    RoleSummary,
    ScanSummary,
    SessionConfig,
    SiloSummary,
    SiteSummary,
    TicketSummary,
    UserSummary,
)
from nexpose_api.response import APIResponse, split_multipart
from nexpose_api.templating import TemplateRequest
from nexpose_api.versions import APIVersion

_logger = logging.getLogger(__name__)

DEFAULT_CONNECT_TIMEOUT = 20.0

T = TypeVar("T")


class APISession:
    """Client session for one console.

    Usage:
        tls.init()
        with APISession("https://console:3780", "admin", "secret", "1.2") as session:
            session.login()
            for site in session.list_sites():
                print(site.name)
            session.logout()
    """

    def __init__(
        self,
        base_url: str,
        username: str | None = None,
        password: str | None = None,
        api_version: APIVersion | str = APIVersion.V1_1,
        protocol: str = "xml",
        *,
        silo_id: str | None = None,
        error_handler: ErrorHandler | None = None,
        ssl_context: ssl.SSLContext | None = None,
        connect_timeout: float = DEFAULT_CONNECT_TIMEOUT,
        read_timeout: float | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        """Initialize the session.

        Args:
            base_url: Console URL, e.g. ``https://console:3780``.
            username: Login user name.
            password: Login password.
            api_version: Version to target; "1.0" is served as "1.1".
            protocol: Final path segment of the API endpoint.
            silo_id: Silo to log into when ``login()`` is not given one.
            error_handler: Called for server-reported failures. Defaults to
                DefaultErrorHandler, which raises.
            ssl_context: TLS context. Defaults to the process-wide context
                from ``tls.init()``.
            connect_timeout: Seconds allowed for establishing the connection.
            read_timeout: Seconds allowed between bytes of the reply. None
                waits indefinitely.
            transport: httpx transport override (tests use MockTransport).

        Raises:
            ConfigurationError: If the URL, version, or protocol is unusable,
                or TLS was never initialized and no context was given.
        """
        if not base_url or not base_url.startswith(("https://", "http://")):
            raise ConfigurationError(f"Invalid console URL '{base_url}'")
        if not protocol or "/" in protocol:
            raise ConfigurationError(f"Invalid API protocol '{protocol}'")
        self._base_url = base_url.rstrip("/")
        self._username = username
        self._password = password
        self._protocol = protocol
        self._silo_id = silo_id
        self._api_version = APIVersion.parse(api_version).normalized()
        self._api_url = self._build_url(self._api_version)
        self._token: str | None = None
        self._error_handler: ErrorHandler = error_handler or DefaultErrorHandler()
        self._last_listing_response: APIResponse | None = None

        verify = ssl_context if ssl_context is not None else tls.get_context()
        self._client = httpx.Client(
            verify=verify,
            timeout=httpx.Timeout(connect=connect_timeout, read=read_timeout, write=None, pool=None),
            headers={"Content-Type": "text/xml"},
            transport=transport,
        )

    @classmethod
    def from_config(
        cls,
        config: SessionConfig,
        *,
        error_handler: ErrorHandler | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> APISession:
        """Build a session from a SessionConfig.

        Initializes the process-wide TLS context from the config when the
        application has not done so already.

        Raises:
            ConfigurationError: If the TLS context was already initialized
                with different verification settings than the config asks for.
        """
        tls.init(
            verify=config.verify_ssl,
            ca_bundle=config.ca_bundle,
            insecure=not config.verify_ssl,
        )
        return cls(
            config.base_url,
            config.username,
            config.password,
            config.api_version,
            config.protocol,
            silo_id=config.silo_id,
            error_handler=error_handler,
            connect_timeout=config.connect_timeout,
            read_timeout=config.read_timeout,
            transport=transport,
        )

    def __enter__(self) -> APISession:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: Any,
    ) -> None:
        self.close()

    def close(self) -> None:
        """Close the HTTP client. The token is not invalidated on the server."""
        self._client.close()

    # -------------------------------------------------------------------------
    # State
    # -------------------------------------------------------------------------

    @property
    def base_url(self) -> str:
        return self._base_url

    @property
    def api_version(self) -> APIVersion:
        return self._api_version

    @property
    def api_url(self) -> str:
        """Endpoint of the call in flight, otherwise the configured endpoint."""
        return self._api_url

    @property
    def token(self) -> str | None:
        return self._token

    @property
    def is_authenticated(self) -> bool:
        return self._token is not None

    @property
    def last_listing_response(self) -> APIResponse | None:
        """Raw response of the most recent ``list_*`` call."""
        return self._last_listing_response

    @property
    def error_handler(self) -> ErrorHandler:
        return self._error_handler

    def set_error_handler(self, handler: ErrorHandler) -> None:
        self._error_handler = handler

    def clear_error_handler(self) -> None:
        """Restore the raising default."""
        self._error_handler = DefaultErrorHandler()

    # -------------------------------------------------------------------------
    # Sending
    # -------------------------------------------------------------------------

    def _build_url(self, version: APIVersion) -> str:
        return f"{self._base_url}/api/{version.value}/{self._protocol}"

    def _negotiate_version(self, request: TemplateRequest) -> APIVersion:
        """Version to target for *request*.

        Raises:
            VersionIncompatibilityError: If the session's version is older
                than the request's first supported version.
        """
        versions = request.versions
        if self._api_version < versions.first:
            raise VersionIncompatibilityError(
                f"{request.name} requires API version {versions.first.value} or later, "
                f"but the session is configured for {self._api_version.value}"
            )
        if self._api_version > versions.last:
            target = versions.last.normalized()
            _logger.debug(
                "Downgrading %s from API %s to %s",
                request.name, self._api_version.value, target.value,
            )
            return target
        return self._api_version

    def _authorize(self, request: TemplateRequest) -> None:
        if request.force_session_token:
            request.set("session-id", self._token)
        elif not request.is_set("session-id") and self._token is not None:
            request.set("session-id", self._token)

    def _post(self, url: str, body: str) -> httpx.Response:
        content = body.encode("utf-8")
        _logger.debug("POST %s (%d bytes)", url, len(content))
        try:
            http_response = self._client.post(url, content=content)
        except httpx.TimeoutException as e:
            raise TransportError(f"Request to {url} timed out: {e}") from e
        except httpx.ConnectError as e:
            raise TransportError(f"Connection to {url} failed: {e}") from e
        except httpx.RequestError as e:
            raise TransportError(f"Request to {url} failed: {e}") from e
        if http_response.status_code >= 400:
            raise TransportError(
                f"Server returned HTTP {http_response.status_code} for {url}"
            )
        _logger.debug("Received %d bytes from %s", len(http_response.content), url)
        return http_response

    def _transmit(self, request: TemplateRequest) -> tuple[str, httpx.Response]:
        """Negotiate, authorize, serialize and POST one request.

        Returns the request body and the HTTP reply.
        """
        version = self._negotiate_version(request)
        self._authorize(request)
        body = request.to_xml()

        configured_url = self._api_url
        self._api_url = self._build_url(version)
        try:
            _logger.debug("Sending %s to %s", request.name, self._api_url)
            http_response = self._post(self._api_url, body)
        finally:
            self._api_url = configured_url
        return body, http_response

    def _exchange(self, request: TemplateRequest) -> APIResponse:
        body, http_response = self._transmit(request)
        return APIResponse(http_response.content, request_xml=body)

    def _route_failure(self, request: TemplateRequest, response: APIResponse) -> None:
        if response.has_failure():
            self._error_handler.handle_error(
                request,
                response,
                self,
                f"{request.name} failed: {response.failure_message()}",
            )

    def send(self, request: TemplateRequest) -> APIResponse:
        """Send *request* and return the parsed response.

        A response containing a ``Failure`` element is passed to the error
        handler before being returned; the default handler raises.

        Raises:
            VersionIncompatibilityError: Before any I/O, if the request
                cannot target the session's API version.
            TransportError: If the connection or HTTP exchange fails.
            ResponseParseError: If the reply is not well-formed XML.
            ApplicationFailure: From the default error handler.
        """
        response = self._exchange(request)
        self._route_failure(request, response)
        return response

    def send_raw_xml(self, raw_xml: str, version: APIVersion | str) -> APIResponse:
        """Send caller-written XML pinned to *version*.

        A ``$(session-id)`` placeholder in the text receives the session
        token. Failures are not routed to the error handler; inspect the
        returned response.
        """
        return self._exchange(RawXMLRequest(raw_xml, version))

    # -------------------------------------------------------------------------
    # Authentication
    # -------------------------------------------------------------------------

    def login(self, sync_id: str | None = None, silo_id: str | None = None) -> APIResponse:
        """Log in and keep the returned session token.

        Args:
            sync_id: Caller-chosen id echoed back by the server.
            silo_id: Silo to log into; defaults to the session's silo.

        Raises:
            ConfigurationError: If the session has no username.
            ApplicationFailure: From the default handler when login fails.
        """
        if not self._username:
            raise ConfigurationError("Cannot log in without a username")
        request = LoginRequest(
            sync_id=sync_id,
            user_id=self._username,
            password=self._password,
            silo_id=silo_id or self._silo_id,
        )
        response = self.send(request)
        self._token = response.grab("/LoginResponse/@session-id") or None
        if self._token is not None:
            _logger.info("Logged in to %s as %s", self._base_url, self._username)
        return response

    def logout(self, sync_id: str | None = None) -> APIResponse:
        """Log out. The local token is cleared even when the call fails."""
        try:
            response = self.send(LogoutRequest(sync_id=sync_id))
        finally:
            self._token = None
        _logger.info("Logged out of %s", self._base_url)
        return response

    # -------------------------------------------------------------------------
    # Typed operations
    # -------------------------------------------------------------------------

    def _listing(
        self,
        request: TemplateRequest,
        path: str,
        factory: Callable[[etree._Element], T],
    ) -> list[T]:
        response = self.send(request)
        self._last_listing_response = response
        return [factory(node) for node in response.grab_nodes(path)]

    def list_sites(self, sync_id: str | None = None) -> list[SiteSummary]:
        return self._listing(
            SiteListingRequest(sync_id=sync_id),
            "/SiteListingResponse/SiteSummary",
            SiteSummary.from_element,
        )

    def list_asset_groups(self, sync_id: str | None = None) -> list[AssetGroupSummary]:
        return self._listing(
            AssetGroupListingRequest(sync_id=sync_id),
            "/AssetGroupListingResponse/AssetGroupSummary",
            AssetGroupSummary.from_element,
        )

    def list_users(self, sync_id: str | None = None) -> list[UserSummary]:
        return self._listing(
            UserListingRequest(sync_id=sync_id),
            "/UserListingResponse/UserSummary",
            UserSummary.from_element,
        )

    def list_engines(self, sync_id: str | None = None) -> list[EngineSummary]:
        return self._listing(
            EngineListingRequest(sync_id=sync_id),
            "/EngineListingResponse/EngineSummary",
            EngineSummary.from_element,
        )

    def list_tickets(
        self, filters: Any = None, sync_id: str | None = None
    ) -> list[TicketSummary]:
        return self._listing(
            TicketListingRequest(sync_id=sync_id, filters=filters),
            "/TicketListingResponse/TicketSummary",
            TicketSummary.from_element,
        )

    def list_roles(self, sync_id: str | None = None) -> list[RoleSummary]:
        return self._listing(
            RoleListingRequest(sync_id=sync_id),
            "/RoleListingResponse/RoleSummary",
            RoleSummary.from_element,
        )

    def list_multi_tenant_users(
        self, sync_id: str | None = None
    ) -> list[MultiTenantUserSummary]:
        return self._listing(
            MultiTenantUserListingRequest(sync_id=sync_id),
            "/MultiTenantUserListingResponse/MultiTenantUserSummaries/MultiTenantUserSummary",
            MultiTenantUserSummary.from_element,
        )

    def list_silos(self, sync_id: str | None = None) -> list[SiloSummary]:
        return self._listing(
            SiloListingRequest(sync_id=sync_id),
            "/SiloListingResponse/SiloSummaries/SiloSummary",
            SiloSummary.from_element,
        )

    def list_reports(self, sync_id: str | None = None) -> list[ReportConfigSummary]:
        return self._listing(
            ReportListingRequest(sync_id=sync_id),
            "/ReportListingResponse/ReportConfigSummary",
            ReportConfigSummary.from_element,
        )

    def list_site_devices(
        self, site_id: int | None = None, sync_id: str | None = None
    ) -> list[DeviceSummary]:
        return self._listing(
            SiteDeviceListingRequest(sync_id=sync_id, site_id=site_id),
            "/SiteDeviceListingResponse/SiteDevices/device",
            DeviceSummary.from_element,
        )

    def site_scan_history(self, site_id: int, sync_id: str | None = None) -> list[ScanSummary]:
        return self._listing(
            SiteScanHistoryRequest(sync_id=sync_id, site_id=site_id),
            "/SiteScanHistoryResponse/ScanSummary",
            ScanSummary.from_element,
        )

    def scan_statistics(self, scan_id: int, sync_id: str | None = None) -> ScanSummary | None:
        response = self.send(ScanStatisticsRequest(sync_id=sync_id, scan_id=scan_id))
        node = response.grab_node("/ScanStatisticsResponse/ScanSummary")
        return ScanSummary.from_element(node) if node is not None else None

    def scan_status(self, scan_id: int, sync_id: str | None = None) -> str | None:
        response = self.send(ScanStatusRequest(sync_id=sync_id, scan_id=scan_id))
        return response.grab("/ScanStatusResponse/@status")

    def stop_scan(self, scan_id: int, sync_id: str | None = None) -> APIResponse:
        return self.send(ScanStopRequest(sync_id=sync_id, scan_id=scan_id))

    def scan_site(self, site_id: int, sync_id: str | None = None) -> int | None:
        """Start a scan of *site_id*; returns the new scan id."""
        response = self.send(SiteScanRequest(sync_id=sync_id, site_id=site_id))
        if response.grab_node("/SiteScanResponse/Scan") is None:
            return None
        return response.grab_int("/SiteScanResponse/Scan/@scan-id")

    def site_config(self, site_id: int, sync_id: str | None = None) -> APIResponse:
        return self.send(SiteConfigRequest(sync_id=sync_id, site_id=site_id))

    def save_site(self, sync_id: str | None = None, **values: Any) -> int:
        """Create or update a site (see SiteSaveRequest); returns its id."""
        response = self.send(SiteSaveRequest(sync_id=sync_id, **values))
        return response.grab_int("/SiteSaveResponse/@site-id")

    def delete_site(self, site_id: int, sync_id: str | None = None) -> APIResponse:
        return self.send(SiteDeleteRequest(sync_id=sync_id, site_id=site_id))

    def delete_asset_group(self, group_id: int, sync_id: str | None = None) -> APIResponse:
        return self.send(AssetGroupDeleteRequest(sync_id=sync_id, group_id=group_id))

    def engine_activity(self, engine_id: int, sync_id: str | None = None) -> list[ScanSummary]:
        response = self.send(EngineActivityRequest(sync_id=sync_id, engine_id=engine_id))
        return [
            ScanSummary.from_element(node)
            for node in response.grab_nodes("/EngineActivityResponse/ScanSummary")
        ]

    def save_engine(self, sync_id: str | None = None, **values: Any) -> int:
        """Create or update an engine (see EngineSaveRequest); returns its id."""
        response = self.send(EngineSaveRequest(sync_id=sync_id, **values))
        return response.grab_int("/EngineSaveResponse/EngineConfig/@id")

    def delete_engine(self, engine_id: int, sync_id: str | None = None) -> APIResponse:
        return self.send(EngineDeleteRequest(sync_id=sync_id, engine_id=engine_id))

    def save_user(self, sync_id: str | None = None, **values: Any) -> int:
        """Create or update a user (see UserSaveRequest); returns its id."""
        response = self.send(UserSaveRequest(sync_id=sync_id, **values))
        return response.grab_int("/UserSaveResponse/@id")

    def delete_user(self, user_id: int, sync_id: str | None = None) -> APIResponse:
        return self.send(UserDeleteRequest(sync_id=sync_id, user_id=user_id))

    def generate_report(self, report_id: int, sync_id: str | None = None) -> APIResponse:
        return self.send(ReportGenerateRequest(sync_id=sync_id, report_id=report_id))

    def generate_adhoc_report(
        self,
        report_format: str,
        template_id: str,
        filters: ContentGenerator | None = None,
        compare_to: str | None = None,
        sync_id: str | None = None,
    ) -> tuple[APIResponse, bytes]:
        """Generate a report without saving a configuration for it.

        The console answers with a multipart reply: the response XML, then
        the report itself. A failure comes back as plain XML and goes to the
        error handler like any other.

        Returns:
            The parsed response and the report bytes (empty on failure).
        """
        request = ReportAdhocGenerateRequest(
            sync_id=sync_id,
            format=report_format,
            template_id=template_id,
            compare_to=compare_to,
            filters=filters,
        )
        body, http_response = self._transmit(request)
        xml, report = split_multipart(
            http_response.headers.get("Content-Type", ""), http_response.content
        )
        response = APIResponse(xml, request_xml=body)
        self._route_failure(request, response)
        return response, report

    def __repr__(self) -> str:
        state = "authenticated" if self._token else "unauthenticated"
        return f"APISession({self._base_url!r}, api_version={self._api_version.value}, {state})"
