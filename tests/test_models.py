"""Tests for result and configuration models."""

import pytest
from pydantic import ValidationError

from nexpose_api.errors import ResponseParseError
from nexpose_api.models import (
    EngineSummary,
    MultiTenantUserSummary,
    ReportConfigSummary,
    RoleSummary,
    ScanSummary,
    ServersConfig,
    SessionConfig,
    SiloSummary,
    SiteSummary,
    UserSummary,
)
from nexpose_api.versions import APIVersion
from nexpose_api.xml_utils import parse_xml


class TestSiteSummary:
    def test_from_element(self) -> None:
        site = SiteSummary.from_element(
            parse_xml('<SiteSummary id="3" name="Lab" description="d" riskfactor="1.5" riskscore="20"/>')
        )
        assert site == SiteSummary(id=3, name="Lab", description="d", risk_factor=1.5, risk_score=20.0)

    def test_missing_attributes_take_defaults(self) -> None:
        site = SiteSummary.from_element(parse_xml('<SiteSummary id="3"/>'))
        assert site.risk_factor == 0.0
        assert site.name == ""

    def test_malformed_id_raises(self) -> None:
        with pytest.raises(ResponseParseError):
            SiteSummary.from_element(parse_xml('<SiteSummary id="abc"/>'))


class TestOtherSummaries:
    def test_engine(self) -> None:
        engine = EngineSummary.from_element(
            parse_xml('<EngineSummary id="2" name="Local" address="127.0.0.1" port="40814" status="active" scope="silo"/>')
        )
        assert engine.port == 40814
        assert engine.status == "active"

    def test_user(self) -> None:
        user = UserSummary.from_element(
            parse_xml('<UserSummary id="5" userName="jdoe" fullName="J Doe" administrator="1" disabled="0" siteCount="2"/>')
        )
        assert user.user_name == "jdoe"
        assert user.administrator is True
        assert user.site_count == 2

    def test_role_enabled_true_spelling(self) -> None:
        role = RoleSummary.from_element(parse_xml('<RoleSummary id="1" name="ro" enabled="true"/>'))
        assert role.enabled is True

    def test_multi_tenant_user(self) -> None:
        user = MultiTenantUserSummary.from_element(
            parse_xml('<MultiTenantUserSummary id="9" user-name="mt" silo-count="3" superuser="1"/>')
        )
        assert user.user_name == "mt"
        assert user.silo_count == 3
        assert user.superuser is True

    def test_silo_id_is_a_string(self) -> None:
        silo = SiloSummary.from_element(parse_xml('<SiloSummary id="tenant-a" silo-profile-id="p1"/>'))
        assert silo.id == "tenant-a"
        assert silo.silo_profile_id == "p1"

    def test_report_config(self) -> None:
        report = ReportConfigSummary.from_element(
            parse_xml('<ReportConfigSummary cfg-id="7" template-id="audit-report" report-URI="/r/7.pdf"/>')
        )
        assert report.id == 7
        assert report.report_uri == "/r/7.pdf"


class TestScanSummary:
    def test_nested_counts(self) -> None:
        element = parse_xml(
            '<ScanSummary scan-id="11" site-id="1" engine-id="3" status="finished" '
            'startTime="20240101T000000" endTime="20240101T010000">'
            '<tasks active="0" completed="4" pending="0"/>'
            '<nodes live="10" dead="2" filtered="0" unresolved="1" other="0"/>'
            '<vulnerabilities status="vuln-exploit" severity="9" count="3"/>'
            '<vulnerabilities status="not-vuln" count="40"/>'
            "</ScanSummary>"
        )
        scan = ScanSummary.from_element(element)
        assert scan.scan_id == 11
        assert scan.tasks.completed == 4
        assert scan.nodes.live == 10
        assert [(v.status, v.severity, v.count) for v in scan.vulnerabilities] == [
            ("vuln-exploit", 9, 3),
            ("not-vuln", 0, 40),
        ]

    def test_missing_children_default(self) -> None:
        scan = ScanSummary.from_element(parse_xml('<ScanSummary scan-id="1"/>'))
        assert scan.tasks.active == 0
        assert scan.nodes.dead == 0
        assert scan.vulnerabilities == []


class TestSessionConfig:
    def test_defaults(self) -> None:
        config = SessionConfig(base_url="https://nx:3780/")
        assert config.base_url == "https://nx:3780"
        assert config.api_version == APIVersion.V1_1
        assert config.verify_ssl is True
        assert config.read_timeout is None

    def test_float_api_version(self) -> None:
        assert SessionConfig(base_url="https://nx", api_version=1.2).api_version == APIVersion.V1_2

    def test_rejects_non_http_url(self) -> None:
        with pytest.raises(ValidationError, match="base_url"):
            SessionConfig(base_url="ftp://nx")

    def test_rejects_unknown_fields(self) -> None:
        with pytest.raises(ValidationError):
            SessionConfig(base_url="https://nx", passwd="x")

    def test_rejects_non_positive_timeouts(self) -> None:
        with pytest.raises(ValidationError, match="connect_timeout"):
            SessionConfig(base_url="https://nx", connect_timeout=0)
        with pytest.raises(ValidationError, match="read_timeout"):
            SessionConfig(base_url="https://nx", read_timeout=-1)


class TestServersConfig:
    def test_default_must_exist(self) -> None:
        with pytest.raises(ValidationError, match="default server 'prod'"):
            ServersConfig(servers={"lab": {"base_url": "https://lab"}}, default="prod")

    def test_valid(self) -> None:
        config = ServersConfig(servers={"lab": {"base_url": "https://lab"}}, default="lab")
        assert config.servers["lab"].base_url == "https://lab"
