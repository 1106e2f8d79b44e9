"""Tests for request definitions and their packaged templates.

Tests cover:
- Every request's template declares exactly the placeholders its class binds
- Every template is well-formed once expanded
- Argument checking (unknown and missing arguments)
- Defaults and version windows of representative requests
"""

import pytest

from nexpose_api import api_requests
from nexpose_api.api_requests import (
    ROLE_PERMISSIONS,
    APIRequest,
    EngineSaveRequest,
    LoginRequest,
    RawXMLRequest,
    ReportAdhocGenerateRequest,
    ReportSaveRequest,
    ReportTemplateSaveRequest,
    RoleCreateRequest,
    SiloProfileUpdateRequest,
    SiteDeleteRequest,
    SiteSaveRequest,
    TicketListingRequest,
    UserSaveRequest,
)
from nexpose_api.errors import ConfigurationError
from nexpose_api.generators import (
    Alert,
    AlertsGenerator,
    BaselineGenerator,
    DBExport,
    DBExportGenerator,
    SysLogAlert,
    TemplateIDGenerator,
    credentials_generator,
    global_report_templates_generator,
    global_scan_engines_generator,
    hosts_generator,
    ranges_generator,
    report_sections_generator,
    ticket_filters_generator,
    user_sites_generator,
)
from nexpose_api.templating import expand_variables, load_template, placeholders
from nexpose_api.versions import APIVersion, VersionRange
from nexpose_api.xml_utils import parse_xml

REQUEST_CLASSES = sorted(APIRequest.__subclasses__(), key=lambda cls: cls.__name__)
SESSION_PLACEHOLDERS = {"session-id", "sync-id"}


def _ids(classes: list[type]) -> list[str]:
    return [cls.__name__ for cls in classes]


class TestTemplates:
    def test_every_request_class_is_collected(self) -> None:
        assert len(REQUEST_CLASSES) >= 60
        assert api_requests.SiteListingRequest in REQUEST_CLASSES

    @pytest.mark.parametrize("cls", REQUEST_CLASSES, ids=_ids(REQUEST_CLASSES))
    def test_placeholders_match_declared_params(self, cls: type[APIRequest]) -> None:
        declared = set(placeholders(load_template(cls.__name__))) - SESSION_PLACEHOLDERS
        assert declared == set(cls.params.values())

    @pytest.mark.parametrize("cls", REQUEST_CLASSES, ids=_ids(REQUEST_CLASSES))
    def test_template_is_well_formed_when_empty(self, cls: type[APIRequest]) -> None:
        root = parse_xml(expand_variables(load_template(cls.__name__), {}))
        assert root.tag == cls.__name__

    @pytest.mark.parametrize("cls", REQUEST_CLASSES, ids=_ids(REQUEST_CLASSES))
    def test_every_request_carries_sync_id(self, cls: type[APIRequest]) -> None:
        assert "sync-id" in placeholders(load_template(cls.__name__))

    @pytest.mark.parametrize("cls", REQUEST_CLASSES, ids=_ids(REQUEST_CLASSES))
    def test_required_and_defaults_are_declared_params(self, cls: type[APIRequest]) -> None:
        assert set(cls.required) <= set(cls.params)
        assert set(cls.defaults) <= set(cls.params)

    def test_login_has_no_session_id(self) -> None:
        assert "session-id" not in placeholders(load_template("LoginRequest"))


class TestArguments:
    def test_unknown_argument_raises(self) -> None:
        with pytest.raises(ConfigurationError, match="unexpected argument.*site"):
            SiteDeleteRequest(site=4)

    def test_missing_required_argument_raises(self) -> None:
        with pytest.raises(ConfigurationError, match="requires argument.*site_id"):
            SiteDeleteRequest()

    def test_empty_string_counts_as_missing(self) -> None:
        with pytest.raises(ConfigurationError, match="user_id"):
            LoginRequest(user_id="", password="x")

    def test_every_declared_placeholder_is_bound(self) -> None:
        request = LoginRequest(user_id="admin")
        assert request.is_set("password")
        assert request.get("password") is None
        assert request.to_xml() == '<LoginRequest sync-id="" user-id="admin" password="" silo-id=""/>\n'

    def test_values_are_escaped(self) -> None:
        request = SiteDeleteRequest(session_id="tok", sync_id="s&1", site_id=4)
        assert request.to_xml().strip() == (
            '<SiteDeleteRequest session-id="tok" sync-id="s&amp;1" site-id="4"/>'
        )


class TestDefaults:
    def test_engine_save(self) -> None:
        root = parse_xml(EngineSaveRequest(name="Local", address="127.0.0.1").to_xml())
        config = root.find("EngineConfig")
        assert config.get("id") == "-1"
        assert config.get("port") == "40814"
        assert config.get("priority") == "normal"
        assert config.get("scope") == "silo"

    def test_user_save(self) -> None:
        root = parse_xml(UserSaveRequest(name="jdoe", sites=user_sites_generator([3])).to_xml())
        config = root.find("UserConfig")
        assert config.get("id") == "-1"
        assert config.get("enabled") == "1"
        assert config.get("allSites") == "0"
        assert config.find("Sites/site").get("id") == "3"

    def test_role_permissions_default_off(self) -> None:
        assert len(ROLE_PERMISSIONS) == 27
        root = parse_xml(RoleCreateRequest(name="auditor", view_asset_data=True).to_xml())
        assert root.find(".//ViewAssetData").get("enabled") == "1"
        assert root.find(".//CreateReports").get("enabled") == "0"
        assert root.find("Role").get("enabled") == "1"

    def test_site_save_with_generators(self) -> None:
        credentials = credentials_generator().add(service="ssh", userid="root", password="p<w")
        request = SiteSaveRequest(
            name="Lab & DMZ",
            hosts=hosts_generator(["web.lab"]),
            ranges=ranges_generator([("10.0.0.1", "10.0.0.254")]),
            credentials=credentials,
            alerts=AlertsGenerator([Alert(name="log", enabled=1, payload=SysLogAlert("syslog", 514))]),
        )
        root = parse_xml(request.to_xml())
        site = root.find("Site")
        assert site.get("id") == "-1"
        assert site.get("name") == "Lab & DMZ"
        assert site.get("riskfactor") == "1.0"
        assert site.find("Hosts/host").text == "web.lab"
        assert site.find("Hosts/range").get("to") == "10.0.0.254"
        assert site.find("Credentials/adminCredentials").get("password") == "p<w"
        assert site.find("Alerting/Alert/sysLogAlert").get("port") == "514"
        assert site.find("ScanConfig").get("configVersion") == "3"

    def test_report_save_template_id(self) -> None:
        request = ReportSaveRequest(name="Weekly", template_id="audit-report", format="pdf")
        config = parse_xml(request.to_xml()).find("ReportConfig")
        assert config.get("template-id") == "audit-report"
        assert config.get("id") == "-1"

    def test_report_save_without_template_omits_attribute(self) -> None:
        request = ReportSaveRequest(name="Weekly", format="pdf")
        assert "template-id" not in request.to_xml()

    def test_report_save_with_db_export_and_baseline(self) -> None:
        request = ReportSaveRequest(
            name="Export",
            format="db",
            template_id=TemplateIDGenerator("export"),
            baseline=BaselineGenerator("first"),
            db_export=DBExportGenerator(DBExport("sqlserver", "sa", "pw", params={"dbName": "nx"})),
        )
        config = parse_xml(request.to_xml()).find("ReportConfig")
        assert config.get("template-id") == "export"
        assert config.find("Baseline").get("compareTo") == "first"
        assert config.find("DBExport/credentials").get("userid") == "sa"
        assert config.find("DBExport/param").text == "nx"

    def test_report_template_save(self) -> None:
        request = ReportTemplateSaveRequest(
            template_id="custom-audit",
            name="Custom audit",
            sections=report_sections_generator(["ExecutiveSummary", "VulnerabilityDetailListing"]),
        )
        template = parse_xml(request.to_xml()).find("ReportTemplate")
        assert template.get("scope") == "silo"
        assert template.find("Settings/showDeviceNames").get("enabled") == "0"
        assert [s.get("name") for s in template.findall("ReportSections/ReportSection")] == [
            "ExecutiveSummary",
            "VulnerabilityDetailListing",
        ]

    def test_report_adhoc_generate(self) -> None:
        request = ReportAdhocGenerateRequest(format="csv", template_id="basic-vulnerability-check-results")
        config = parse_xml(request.to_xml()).find("AdhocReportConfig")
        assert config.get("format") == "csv"
        assert config.get("template-id") == "basic-vulnerability-check-results"

    def test_silo_profile_update(self) -> None:
        request = SiloProfileUpdateRequest(
            silo_profile_id="default",
            name="Default",
            all_licensed_modules=True,
            global_report_templates=global_report_templates_generator(["audit-report"]),
            global_scan_engines=global_scan_engines_generator(["Local scan engine"]),
        )
        config = parse_xml(request.to_xml()).find("SiloProfileConfig")
        assert config.get("all-licensed-modules") == "1"
        assert config.get("all-global-engines") == "0"
        assert config.find("GlobalReportTemplates/GlobalReportTemplate").get("name") == "audit-report"
        assert config.find("GlobalScanEngines/GlobalScanEngine").get("name") == "Local scan engine"
        assert config.find("LicensedModules") is None


class TestVersions:
    def test_default_window(self) -> None:
        assert SiteSaveRequest.versions == VersionRange(APIVersion.V1_0, APIVersion.V1_1)

    def test_version_1_2_only(self) -> None:
        assert TicketListingRequest.versions == VersionRange(APIVersion.V1_2, APIVersion.V1_2)
        request = TicketListingRequest(filters=ticket_filters_generator().add(type="state", value="O"))
        assert '<Filter type="state" value="O"/>' in request.to_xml()

    def test_silo_profile_update_is_version_1_2_only(self) -> None:
        assert SiloProfileUpdateRequest.versions == VersionRange(APIVersion.V1_2, APIVersion.V1_2)

    def test_report_template_requests_use_default_window(self) -> None:
        assert ReportAdhocGenerateRequest.versions == VersionRange(APIVersion.V1_0, APIVersion.V1_1)
        assert ReportTemplateSaveRequest.versions == VersionRange(APIVersion.V1_0, APIVersion.V1_1)


class TestRawXMLRequest:
    def test_pins_version(self) -> None:
        request = RawXMLRequest('<SiteListingRequest session-id="$(session-id)"/>', "1.2")
        assert request.versions == VersionRange(APIVersion.V1_2, APIVersion.V1_2)
        assert request.force_session_token is True

    def test_rejects_empty_body(self) -> None:
        with pytest.raises(ConfigurationError, match="non-empty"):
            RawXMLRequest("  ", APIVersion.V1_1)

    def test_rejects_unknown_version(self) -> None:
        with pytest.raises(ConfigurationError, match="Unsupported API version"):
            RawXMLRequest("<X/>", "3.0")
