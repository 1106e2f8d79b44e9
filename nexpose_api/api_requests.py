"""Request definitions for the XML control API.

Every operation is a template plus a parameter map plus the window of API
versions the server accepts it under. Subclasses of APIRequest declare
the keyword arguments they take and the template placeholder each one
fills; the template resource is ``templates/<ClassName>.xml``.

Usage:
    request = SiteDeleteRequest(site_id=4)
    response = session.send(request)
"""

from __future__ import annotations

from typing import Any, ClassVar, Mapping

from nexpose_api.errors import ConfigurationError
from nexpose_api.generators import ContentGenerator, TemplateIDGenerator
from nexpose_api.templating import TemplateRequest
from nexpose_api.versions import APIVersion, VersionRange

V1_0_TO_1_1 = VersionRange(APIVersion.V1_0, APIVersion.V1_1)
V1_2_ONLY = VersionRange(APIVersion.V1_2, APIVersion.V1_2)


class APIRequest(TemplateRequest):
    """Template request whose parameters are declared on the class.

    ``params`` maps constructor keyword to template placeholder. Every
    declared placeholder is bound (to ``None`` when the caller omits it,
    which renders empty). ``required`` keywords must be non-empty.
    """

    params: ClassVar[Mapping[str, str]] = {}
    required: ClassVar[tuple[str, ...]] = ()
    defaults: ClassVar[Mapping[str, Any]] = {}

    def __init__(
        self,
        session_id: str | None = None,
        sync_id: str | None = None,
        **values: Any,
    ) -> None:
        unknown = sorted(set(values) - set(self.params))
        if unknown:
            raise ConfigurationError(
                f"{type(self).__name__} got unexpected argument(s): {', '.join(unknown)}"
            )
        missing = [name for name in self.required if values.get(name) in (None, "")]
        if missing:
            raise ConfigurationError(
                f"{type(self).__name__} requires argument(s): {', '.join(missing)}"
            )
        super().__init__(session_id, sync_id)
        for keyword, placeholder in self.params.items():
            self.set(placeholder, values.get(keyword, self.defaults.get(keyword)))


class RawXMLRequest(TemplateRequest):
    """Caller-written XML sent as-is, pinned to a single API version.

    The text is used as the template, so a ``$(session-id)`` placeholder in
    it receives the session token. The session always overwrites that
    token with its own, even when the caller set one.
    """

    force_session_token = True

    def __init__(self, raw_xml: str, version: APIVersion | str) -> None:
        if not raw_xml or not raw_xml.strip():
            raise ConfigurationError("RawXMLRequest requires a non-empty XML body")
        pinned = APIVersion.parse(version)
        super().__init__(template=raw_xml)
        self.versions = VersionRange(pinned, pinned)


# =============================================================================
# Session
# =============================================================================


class LoginRequest(APIRequest):
    params = {"user_id": "username", "password": "password", "silo_id": "siloId"}
    required = ("user_id",)


class LogoutRequest(APIRequest):
    pass


# =============================================================================
# Sites
# =============================================================================


class SiteListingRequest(APIRequest):
    pass


class SiteConfigRequest(APIRequest):
    params = {"site_id": "siteId"}
    required = ("site_id",)


class SiteSaveRequest(APIRequest):
    """Create (``site_id=-1``) or update a site.

    ``hosts``/``ranges``/``credentials``/``alerts`` take generators from
    ``nexpose_api.generators``.
    """

    params = {
        "site_id": "siteId",
        "name": "siteName",
        "description": "siteDescription",
        "risk_factor": "siteRiskFactor",
        "hosts": "siteHostsHostGenerator",
        "ranges": "siteHostsRangeGenerator",
        "credentials": "credentialsGenerator",
        "alerts": "alertsGenerator",
        "scan_config_name": "siteScanConfigName",
        "scan_config_version": "siteScanConfigConfigVersion",
        "scan_config_id": "siteScanConfigConfigId",
        "scan_template_id": "siteScanConfigTemplateId",
        "engine_id": "siteScanConfigEngineID",
        "schedule_enabled": "scheduleEnabled",
        "schedule_incremental": "scheduleIncremental",
        "schedule_type": "scheduleType",
        "schedule_interval": "scheduleInterval",
        "schedule_start": "scheduleStart",
        "schedule_max_duration": "scheduleMaxDuration",
        "schedule_not_valid_after": "scheduleNotValidAfter",
    }
    required = ("name",)
    defaults = {"site_id": -1, "risk_factor": 1.0, "scan_config_version": 3}


class SiteDeleteRequest(APIRequest):
    params = {"site_id": "siteId"}
    required = ("site_id",)


class SiteScanRequest(APIRequest):
    params = {"site_id": "siteId"}
    required = ("site_id",)


class SiteScanHistoryRequest(APIRequest):
    params = {"site_id": "siteId"}
    required = ("site_id",)


class SiteDeviceListingRequest(APIRequest):
    """Devices of one site, or of every site when ``site_id`` is omitted."""

    params = {"site_id": "siteId"}


class SiteDevicesScanRequest(APIRequest):
    params = {"site_id": "siteId", "devices": "devicesGenerator", "hosts": "hostsGenerator"}
    required = ("site_id",)


# =============================================================================
# Asset groups
# =============================================================================


class AssetGroupListingRequest(APIRequest):
    pass


class AssetGroupConfigRequest(APIRequest):
    params = {"group_id": "groupId"}
    required = ("group_id",)


class AssetGroupSaveRequest(APIRequest):
    params = {
        "group_id": "groupId",
        "name": "groupName",
        "description": "groupDescription",
        "devices": "devicesGenerator",
    }
    required = ("name",)
    defaults = {"group_id": -1}


class AssetGroupDeleteRequest(APIRequest):
    params = {"group_id": "groupId"}
    required = ("group_id",)


# =============================================================================
# Engines and engine pools
# =============================================================================


class EngineListingRequest(APIRequest):
    pass


class EngineActivityRequest(APIRequest):
    params = {"engine_id": "engineId"}
    required = ("engine_id",)


class EngineConfigRequest(APIRequest):
    params = {"engine_id": "engineId"}
    required = ("engine_id",)


class EngineSaveRequest(APIRequest):
    params = {
        "engine_id": "engineConfigId",
        "name": "engineConfigName",
        "address": "engineConfigAddress",
        "port": "engineConfigPort",
        "priority": "engineConfigPriority",
        "scope": "engineConfigScope",
        "sites": "sitesGenerator",
    }
    required = ("name", "address")
    defaults = {"engine_id": -1, "port": 40814, "priority": "normal", "scope": "silo"}


class EngineDeleteRequest(APIRequest):
    params = {"engine_id": "engineId"}
    required = ("engine_id",)


class EnginePoolListingRequest(APIRequest):
    versions = V1_2_ONLY


class EnginePoolDetailsRequest(APIRequest):
    versions = V1_2_ONLY
    params = {"name": "enginePoolName", "scope": "enginePoolScope"}
    required = ("name",)
    defaults = {"scope": "silo"}


class EnginePoolCreateRequest(APIRequest):
    versions = V1_2_ONLY
    params = {"name": "enginePoolName", "scope": "enginePoolScope", "engines": "enginesGenerator"}
    required = ("name",)
    defaults = {"scope": "silo"}


class EnginePoolUpdateRequest(APIRequest):
    versions = V1_2_ONLY
    params = {
        "pool_id": "enginePoolID",
        "name": "enginePoolName",
        "scope": "enginePoolScope",
        "engines": "enginesGenerator",
    }
    required = ("pool_id", "name")
    defaults = {"scope": "silo"}


class EnginePoolDeleteRequest(APIRequest):
    versions = V1_2_ONLY
    params = {"name": "enginePoolName", "scope": "enginePoolScope"}
    required = ("name",)
    defaults = {"scope": "silo"}


# =============================================================================
# Scans
# =============================================================================


class ScanStatusRequest(APIRequest):
    params = {"scan_id": "scanId"}
    required = ("scan_id",)


class ScanStatisticsRequest(APIRequest):
    params = {"scan_id": "scanId"}
    required = ("scan_id",)


class ScanStopRequest(APIRequest):
    params = {"scan_id": "scanId"}
    required = ("scan_id",)


class ScanPauseRequest(APIRequest):
    params = {"scan_id": "scanId"}
    required = ("scan_id",)


class ScanResumeRequest(APIRequest):
    params = {"scan_id": "scanId"}
    required = ("scan_id",)


class ScanActivityRequest(APIRequest):
    pass


# =============================================================================
# Users
# =============================================================================


class UserListingRequest(APIRequest):
    pass


class UserConfigRequest(APIRequest):
    params = {"user_id": "userId"}
    required = ("user_id",)


class UserSaveRequest(APIRequest):
    """Create (``user_id=-1``) or update a user.

    ``sites``/``groups`` are only read by the server when ``all_sites`` /
    ``all_groups`` are false.
    """

    params = {
        "user_id": "id",
        "name": "name",
        "full_name": "fullname",
        "email": "email",
        "password": "password",
        "role_name": "roleName",
        "auth_source_id": "authSrcId",
        "enabled": "enabled",
        "all_sites": "allSites",
        "all_groups": "allGroups",
        "sites": "sitesGenerator",
        "groups": "groupsGenerator",
    }
    required = ("name",)
    defaults = {"user_id": -1, "enabled": True, "all_sites": False, "all_groups": False}


class UserDeleteRequest(APIRequest):
    params = {"user_id": "userId"}
    required = ("user_id",)


# =============================================================================
# Tickets
# =============================================================================


class TicketListingRequest(APIRequest):
    versions = V1_2_ONLY
    params = {"filters": "filtersGenerator"}


class TicketDetailsRequest(APIRequest):
    versions = V1_2_ONLY
    params = {"tickets": "ticketsGenerator"}
    required = ("tickets",)


class TicketCreateRequest(APIRequest):
    versions = V1_2_ONLY
    params = {
        "name": "ticketName",
        "priority": "ticketPriority",
        "device_id": "ticketDevice",
        "assigned_to": "ticketAssignedTo",
        "vulnerabilities": "vulnerabilitiesGenerator",
        "comments": "commentsGenerator",
    }
    required = ("name", "device_id", "assigned_to")
    defaults = {"priority": "normal"}


class TicketDeleteRequest(APIRequest):
    versions = V1_2_ONLY
    params = {"tickets": "ticketsGenerator"}
    required = ("tickets",)


# =============================================================================
# Reports
# =============================================================================


class ReportListingRequest(APIRequest):
    pass


class ReportConfigRequest(APIRequest):
    params = {"report_config_id": "reportcfgId"}
    required = ("report_config_id",)


class ReportSaveRequest(APIRequest):
    """Create (``report_id=-1``) or update a report configuration.

    A plain ``template_id`` is wrapped in a TemplateIDGenerator, so an
    omitted template leaves the ``template-id`` attribute out entirely.
    """

    params = {
        "report_id": "id",
        "name": "name",
        "template_id": "templateIDGenerator",
        "format": "format",
        "owner": "owner",
        "timezone": "timezone",
        "description": "description",
        "generate_now": "generate-now",
        "filters": "filtersGenerator",
        "baseline": "baselineGenerator",
        "generate": "generateGenerator",
        "delivery": "deliveryGenerator",
        "db_export": "dbExportGenerator",
    }
    required = ("name", "format")
    defaults = {"report_id": -1, "generate_now": False}

    def __init__(
        self,
        session_id: str | None = None,
        sync_id: str | None = None,
        **values: Any,
    ) -> None:
        template_id = values.get("template_id")
        if template_id is not None and not isinstance(template_id, ContentGenerator):
            values["template_id"] = TemplateIDGenerator(template_id)
        super().__init__(session_id, sync_id, **values)


class ReportGenerateRequest(APIRequest):
    params = {"report_id": "reportId"}
    required = ("report_id",)


class ReportDeleteRequest(APIRequest):
    """Delete one generated report, or a configuration with all its reports."""

    params = {"report_id": "reportId", "report_config_id": "reportcfgId"}


class ReportHistoryRequest(APIRequest):
    params = {"report_config_id": "reportcfgId"}
    required = ("report_config_id",)


class ReportAdhocGenerateRequest(APIRequest):
    """Generate a report from an unsaved configuration.

    The console answers with a multipart reply holding the response XML
    and the report; see ``APISession.generate_adhoc_report``.
    """

    params = {
        "format": "reportFormat",
        "template_id": "reportTemplateId",
        "compare_to": "compareTo",
        "filters": "filtersGenerator",
    }
    required = ("format", "template_id")


class ReportTemplateSaveRequest(APIRequest):
    params = {
        "template_id": "reportTemplateId",
        "name": "reportTemplateName",
        "scope": "reportTemplateScope",
        "description": "description",
        "show_device_names": "showDeviceNames",
        "sections": "reportSectionsGenerator",
    }
    required = ("template_id", "name")
    defaults = {"scope": "silo", "show_device_names": False}


# =============================================================================
# Roles
# =============================================================================

# (keyword, placeholder) for each permission flag of a role
ROLE_PERMISSIONS: tuple[tuple[str, str], ...] = (
    ("create_reports", "createReportEnabled"),
    ("configure_global_settings", "configureGlobalSettingsEnabled"),
    ("manage_sites", "manageSitesEnabled"),
    ("manage_asset_groups", "manageAssetGroupsEnabled"),
    ("manage_scan_templates", "manageScanTemplatesEnabled"),
    ("manage_report_templates", "manageReportTemplatesEnabled"),
    ("manage_scan_engines", "manageScanEnginesEnabled"),
    ("submit_vuln_exceptions", "submitVulnExceptionsEnabled"),
    ("approve_vuln_exceptions", "approveVulnExceptionsEnabled"),
    ("delete_vuln_exceptions", "deleteVulnExceptionsEnabled"),
    ("add_users_to_site", "addUsersToSiteEnabled"),
    ("add_users_to_group", "addUsersToGroupEnabled"),
    ("create_tickets", "createTicketEnabled"),
    ("close_tickets", "closeTicketEnabled"),
    ("ticket_assignee", "ticketAssigneeEnabled"),
    ("view_asset_data", "viewAssetDataEnabled"),
    ("configure_site_settings", "configureSiteSettingsEnabled"),
    ("configure_targets", "configureTargetsEnabled"),
    ("configure_engines", "configureEnginesEnabled"),
    ("configure_scan_templates", "configureScanTemplatesEnabled"),
    ("configure_alerts", "configureAlertsEnabled"),
    ("configure_credentials", "configureCredentialsEnabled"),
    ("configure_schedule_scans", "configureScheduleScansEnabled"),
    ("manual_scans", "manualScansEnabled"),
    ("purge_data", "purgeDataEnabled"),
    ("view_group_asset_data", "viewGroupAssetDataEnabled"),
    ("configure_assets", "configureAssetsEnabled"),
)

_ROLE_FIELDS = {
    "name": "roleName",
    "full_name": "roleFullName",
    "description": "roleDescription",
    "enabled": "roleEnabled",
    "scope": "scope",
}


class RoleListingRequest(APIRequest):
    versions = V1_2_ONLY


class RoleDetailsRequest(APIRequest):
    versions = V1_2_ONLY
    params = {"roles": "rolesGenerator"}
    required = ("roles",)


class RoleCreateRequest(APIRequest):
    versions = V1_2_ONLY
    params = {**_ROLE_FIELDS, **dict(ROLE_PERMISSIONS)}
    required = ("name",)
    defaults = {"enabled": True, "scope": "silo", **{k: False for k, _ in ROLE_PERMISSIONS}}


class RoleUpdateRequest(APIRequest):
    versions = V1_2_ONLY
    params = {"role_id": "roleID", **_ROLE_FIELDS, **dict(ROLE_PERMISSIONS)}
    required = ("role_id", "name")
    defaults = {"enabled": True, "scope": "silo", **{k: False for k, _ in ROLE_PERMISSIONS}}


class RoleDeleteRequest(APIRequest):
    versions = V1_2_ONLY
    params = {"name": "roleName", "scope": "scope"}
    required = ("name",)
    defaults = {"scope": "silo"}


# =============================================================================
# Silos and silo profiles
# =============================================================================

_SILO_FIELDS = {
    "silo_id": "id",
    "name": "name",
    "description": "description",
    "silo_profile_id": "silo-profile-id",
    "max_assets": "maxAssets",
    "max_users": "maxUsers",
    "db_id": "db-id",
    "merchant": "merchantGenerator",
    "organization": "organizationGenerator",
    "storage_user_id": "storageUserID",
    "storage_dbms": "storageDBMS",
    "storage_realm": "storageRealm",
    "storage_password": "storagePassword",
    "storage_url": "storageURL",
    "storage_properties": "storagePropertiesGenerator",
}


class SiloListingRequest(APIRequest):
    versions = V1_2_ONLY


class SiloConfigRequest(APIRequest):
    versions = V1_2_ONLY
    params = {"silo_id": "id"}
    required = ("silo_id",)


class SiloCreateRequest(APIRequest):
    versions = V1_2_ONLY
    params = _SILO_FIELDS
    required = ("silo_id", "name", "silo_profile_id")


class SiloUpdateRequest(APIRequest):
    versions = V1_2_ONLY
    params = _SILO_FIELDS
    required = ("silo_id", "name", "silo_profile_id")


class SiloDeleteRequest(APIRequest):
    versions = V1_2_ONLY
    params = {"silo_id": "id"}
    required = ("silo_id",)


class SiloProfileListingRequest(APIRequest):
    versions = V1_2_ONLY


class SiloProfileConfigRequest(APIRequest):
    versions = V1_2_ONLY
    params = {"silo_profile_id": "siloProfileId"}
    required = ("silo_profile_id",)


class SiloProfileUpdateRequest(APIRequest):
    """Update a silo profile.

    The ``all_*`` flags grant every item of a kind; the matching
    generators list individual items when a flag is off.
    """

    versions = V1_2_ONLY
    params = {
        "silo_profile_id": "id",
        "name": "name",
        "description": "description",
        "all_global_report_templates": "hasGlobalReportTemplates",
        "all_global_engines": "hasGlobalEngines",
        "all_global_scan_templates": "hasGlobalScanTemplates",
        "all_licensed_modules": "hasLicensedModules",
        "global_report_templates": "globalReportTemplate",
        "global_scan_engines": "globalScanEngine",
        "global_scan_templates": "globalScanTemplate",
        "licensed_modules": "licensedModule",
    }
    required = ("silo_profile_id", "name")
    defaults = {
        "all_global_report_templates": False,
        "all_global_engines": False,
        "all_global_scan_templates": False,
        "all_licensed_modules": False,
    }


class SiloProfileDeleteRequest(APIRequest):
    versions = V1_2_ONLY
    params = {"silo_profile_id": "siloProfileId"}
    required = ("silo_profile_id",)


# =============================================================================
# Multi-tenant users
# =============================================================================

_MULTI_TENANT_USER_FIELDS = {
    "user_name": "user-name",
    "full_name": "full-name",
    "email": "email",
    "password": "password",
    "auth_source_id": "authSrcId",
    "enabled": "enabled",
    "superuser": "superuser",
    "silo_access": "siloAccessGenerator",
}


class MultiTenantUserListingRequest(APIRequest):
    versions = V1_2_ONLY


class MultiTenantUserConfigRequest(APIRequest):
    versions = V1_2_ONLY
    params = {"user_id": "userId"}
    required = ("user_id",)


class MultiTenantUserCreateRequest(APIRequest):
    versions = V1_2_ONLY
    params = _MULTI_TENANT_USER_FIELDS
    required = ("user_name",)
    defaults = {"enabled": True, "superuser": False}


class MultiTenantUserUpdateRequest(APIRequest):
    versions = V1_2_ONLY
    params = {"user_id": "id", **_MULTI_TENANT_USER_FIELDS}
    required = ("user_id", "user_name")
    defaults = {"enabled": True, "superuser": False}


class MultiTenantUserDeleteRequest(APIRequest):
    versions = V1_2_ONLY
    params = {"user_id": "userId"}
    required = ("user_id",)
