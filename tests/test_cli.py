"""Tests for the CLI entry point.

Tests cover:
- Argument parsing for every subcommand
- Subcommand behavior against a mocked session
- Error reporting and exit codes
"""

from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from nexpose_api.cli import (
    DeleteUserArgs,
    EngineStatusArgs,
    ListEnginesArgs,
    ListSitesArgs,
    RawArgs,
    SiteScanHistoryArgs,
    build_parser,
    main,
    parse_args,
)
from nexpose_api.errors import ApplicationFailure, TransportError
from nexpose_api.models import EngineSummary, NodeCounts, ScanSummary, SiteSummary, UserSummary
from nexpose_api.response import APIResponse
from nexpose_api.versions import APIVersion


@pytest.fixture
def session() -> MagicMock:
    """A mocked APISession returned by _open_session."""
    mock = MagicMock()
    mock.__enter__.return_value = mock
    return mock


@pytest.fixture
def open_session(session: MagicMock):
    with patch("nexpose_api.cli._open_session", return_value=session) as opener:
        yield opener


class TestParseArgs:
    def test_list_sites(self) -> None:
        args = parse_args(["list-sites", "--config", "servers.yaml"])
        assert isinstance(args, ListSitesArgs)
        assert args.config == Path("servers.yaml")
        assert args.server is None
        assert args.verbose == 0

    def test_list_engines(self) -> None:
        args = parse_args(["list-engines", "--config", "c.yaml", "--server", "lab"])
        assert isinstance(args, ListEnginesArgs)
        assert args.server == "lab"

    def test_engine_status_verbose(self) -> None:
        args = parse_args(["engine-status", "--config", "c.yaml", "-vv"])
        assert isinstance(args, EngineStatusArgs)
        assert args.verbose == 2

    def test_site_scan_history(self) -> None:
        args = parse_args(["site-scan-history", "--config", "c.yaml", "--site-id", "4"])
        assert isinstance(args, SiteScanHistoryArgs)
        assert args.site_id == 4

    def test_delete_user_strips_whitespace(self) -> None:
        args = parse_args(["delete-user", "--config", "c.yaml", "  jdoe "])
        assert isinstance(args, DeleteUserArgs)
        assert args.user == "jdoe"

    def test_raw_defaults_to_1_1(self) -> None:
        args = parse_args(["raw", "--config", "c.yaml", "request.xml"])
        assert isinstance(args, RawArgs)
        assert args.file == Path("request.xml")
        assert args.api_version is APIVersion.V1_1

    def test_raw_api_version(self) -> None:
        args = parse_args(["raw", "--config", "c.yaml", "request.xml", "--api-version", "1.2"])
        assert args.api_version is APIVersion.V1_2

    def test_raw_rejects_unknown_version(self) -> None:
        with pytest.raises(SystemExit):
            parse_args(["raw", "--config", "c.yaml", "request.xml", "--api-version", "9"])

    def test_config_is_required(self) -> None:
        with pytest.raises(SystemExit):
            parse_args(["list-sites"])

    def test_no_command(self) -> None:
        with pytest.raises(SystemExit):
            parse_args([])

    def test_site_id_must_be_integer(self) -> None:
        with pytest.raises(SystemExit):
            parse_args(["site-scan-history", "--config", "c.yaml", "--site-id", "abc"])

    def test_parser_prog_name(self) -> None:
        assert build_parser().prog == "nexpose-api"


class TestListSites:
    def test_prints_sites_and_total(self, session, open_session, capsys) -> None:
        session.list_sites.return_value = [
            SiteSummary(id=1, name="Lab", risk_factor=1.0, risk_score=310.5),
            SiteSummary(id=2, name="DMZ", risk_factor=2.0, risk_score=0.0),
        ]

        exit_code = main(["list-sites", "--config", "c.yaml"])

        assert exit_code == 0
        out = capsys.readouterr().out
        assert "1\tLab\trisk=310.5\tfactor=1.00" in out
        assert "Total: 2 sites" in out
        session.login.assert_called_once()
        session.logout.assert_called_once()

    def test_logs_out_when_operation_fails(self, session, open_session, capsys) -> None:
        session.list_sites.side_effect = ApplicationFailure("SiteListingRequest failed: Denied")

        exit_code = main(["list-sites", "--config", "c.yaml"])

        assert exit_code == 1
        session.logout.assert_called_once()
        assert "Error: SiteListingRequest failed: Denied" in capsys.readouterr().err

    def test_login_failure(self, session, open_session, capsys) -> None:
        session.login.side_effect = TransportError("Connection to https://x failed")
        assert main(["list-sites", "--config", "c.yaml"]) == 1
        session.list_sites.assert_not_called()
        assert "Connection to https://x failed" in capsys.readouterr().err

    def test_missing_config_file(self, tmp_path: Path, capsys) -> None:
        exit_code = main(["list-sites", "--config", str(tmp_path / "nope.yaml")])
        assert exit_code == 1
        assert "Config file not found" in capsys.readouterr().err


class TestEngines:
    def test_list_engines(self, session, open_session, capsys) -> None:
        session.list_engines.return_value = [
            EngineSummary(id=3, name="Local", address="127.0.0.1", port=40814, status="active", scope="silo"),
        ]
        assert main(["list-engines", "--config", "c.yaml"]) == 0
        assert "127.0.0.1:40814" in capsys.readouterr().out

    def test_engine_status_all_active(self, session, open_session, capsys) -> None:
        session.list_engines.return_value = [
            EngineSummary(id=3, name="Local", address="127.0.0.1", status="Active"),
        ]
        assert main(["engine-status", "--config", "c.yaml"]) == 0
        assert "Local (127.0.0.1): Active" in capsys.readouterr().out

    def test_engine_status_inactive(self, session, open_session, capsys) -> None:
        session.list_engines.return_value = [
            EngineSummary(id=3, name="Local", address="127.0.0.1", status="active"),
            EngineSummary(id=4, name="Remote", address="10.0.0.8", status=""),
        ]
        assert main(["engine-status", "--config", "c.yaml"]) == 1
        captured = capsys.readouterr()
        assert "Remote (10.0.0.8): unknown" in captured.out
        assert "1 of 2 engines are not active" in captured.err


class TestSiteScanHistory:
    def test_prints_scans(self, session, open_session, capsys) -> None:
        session.site_scan_history.return_value = [
            ScanSummary(scan_id=11, status="finished", start_time="T0", end_time="T1", nodes=NodeCounts(live=7)),
        ]
        assert main(["site-scan-history", "--config", "c.yaml", "--site-id", "1"]) == 0
        session.site_scan_history.assert_called_once_with(1)
        out = capsys.readouterr().out
        assert "11\tfinished\tT0 - T1\tlive=7" in out
        assert "Total: 1 scans" in out


class TestDeleteUser:
    USERS = [
        UserSummary(id=5, user_name="jdoe", full_name="Jane Doe"),
        UserSummary(id=6, user_name="rroe", full_name="Richard Roe"),
    ]

    def test_by_id(self, session, open_session) -> None:
        assert main(["delete-user", "--config", "c.yaml", "42"]) == 0
        session.delete_user.assert_called_once_with(42)
        session.list_users.assert_not_called()

    def test_by_user_name_case_insensitive(self, session, open_session) -> None:
        session.list_users.return_value = self.USERS
        assert main(["delete-user", "--config", "c.yaml", "JDOE"]) == 0
        session.delete_user.assert_called_once_with(5)

    def test_by_full_name(self, session, open_session) -> None:
        session.list_users.return_value = self.USERS
        assert main(["delete-user", "--config", "c.yaml", "richard roe"]) == 0
        session.delete_user.assert_called_once_with(6)

    def test_not_found(self, session, open_session, capsys) -> None:
        session.list_users.return_value = self.USERS
        assert main(["delete-user", "--config", "c.yaml", "nobody"]) == 1
        session.delete_user.assert_not_called()
        assert "Could not find user: nobody" in capsys.readouterr().err


class TestRaw:
    def test_sends_file_and_prints_reply(self, session, open_session, tmp_path: Path, capsys) -> None:
        request_file = tmp_path / "request.xml"
        request_file.write_text('<SiteListingRequest session-id="$(session-id)"/>', encoding="utf-8")
        session.send_raw_xml.return_value = APIResponse('<SiteListingResponse success="1"/>')

        exit_code = main(["raw", "--config", "c.yaml", str(request_file), "--api-version", "1.2"])

        assert exit_code == 0
        session.send_raw_xml.assert_called_once_with(
            '<SiteListingRequest session-id="$(session-id)"/>', APIVersion.V1_2
        )
        assert '<SiteListingResponse success="1"/>' in capsys.readouterr().out

    def test_failure_reply_exits_1(self, session, open_session, tmp_path: Path) -> None:
        request_file = tmp_path / "request.xml"
        request_file.write_text("<EngineSaveRequest/>", encoding="utf-8")
        session.send_raw_xml.return_value = APIResponse(
            '<EngineSaveResponse success="0"><Failure message="no"/></EngineSaveResponse>'
        )
        assert main(["raw", "--config", "c.yaml", str(request_file)]) == 1

    def test_unreadable_file(self, open_session, tmp_path: Path, capsys) -> None:
        exit_code = main(["raw", "--config", "c.yaml", str(tmp_path / "missing.xml")])
        assert exit_code == 1
        open_session.assert_not_called()
        assert "Error reading" in capsys.readouterr().err


class TestConfiguredSession:
    def test_opens_session_from_config(self, tmp_path: Path, capsys) -> None:
        config = tmp_path / "servers.yaml"
        config.write_text(
            "servers:\n  lab:\n    base_url: https://lab:3780\n    username: admin\n    password: pw\n",
            encoding="utf-8",
        )
        session = MagicMock()
        session.__enter__.return_value = session
        session.list_sites.return_value = []

        with patch("nexpose_api.cli.APISession.from_config", return_value=session) as from_config:
            assert main(["list-sites", "--config", str(config)]) == 0

        server_config = from_config.call_args.args[0]
        assert server_config.base_url == "https://lab:3780"
        assert "Total: 0 sites" in capsys.readouterr().out
