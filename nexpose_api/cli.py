"""CLI entry point for nexpose-api.

Every subcommand loads a server from the config file, logs in, runs one
operation, and logs out.
"""

from __future__ import annotations

import argparse
import logging
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Callable

from nexpose_api.config_loader import load_config, select_server
from nexpose_api.errors import NexposeError
from nexpose_api.session import APISession
from nexpose_api.versions import APIVersion


@dataclass
class ServerArgs:
    """Arguments shared by every subcommand."""

    config: Path
    server: str | None
    verbose: int


@dataclass
class ListSitesArgs(ServerArgs):
    pass


@dataclass
class ListEnginesArgs(ServerArgs):
    pass


@dataclass
class EngineStatusArgs(ServerArgs):
    """Parsed arguments for engine-status mode."""


@dataclass
class SiteScanHistoryArgs(ServerArgs):
    site_id: int


@dataclass
class DeleteUserArgs(ServerArgs):
    user: str


@dataclass
class RawArgs(ServerArgs):
    file: Path
    api_version: APIVersion


def api_version(value: str) -> APIVersion:
    """Parse an API version argument.

    Raises:
        argparse.ArgumentTypeError: If the version is not supported.
    """
    try:
        return APIVersion.parse(value)
    except NexposeError as e:
        raise argparse.ArgumentTypeError(str(e))


def _add_server_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--config",
        type=Path,
        required=True,
        help="Path to server configuration file (YAML)",
    )
    parser.add_argument(
        "--server",
        type=str,
        default=None,
        help="Server name in the config (defaults to the config's default server)",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help="Log progress (-v) or protocol details (-vv) to stderr",
    )


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser with one subcommand per operation."""
    parser = argparse.ArgumentParser(
        prog="nexpose-api",
        description="Command line client for the Nexpose XML API.",
    )

    subparsers = parser.add_subparsers(dest="command", required=True, help="Operation")

    list_sites_parser = subparsers.add_parser("list-sites", help="List sites with their risk scores")
    _add_server_arguments(list_sites_parser)

    list_engines_parser = subparsers.add_parser("list-engines", help="List scan engines")
    _add_server_arguments(list_engines_parser)

    engine_status_parser = subparsers.add_parser(
        "engine-status",
        help="Show every engine's status; exits 1 if any engine is not active",
    )
    _add_server_arguments(engine_status_parser)

    history_parser = subparsers.add_parser(
        "site-scan-history", help="List past scans of a site"
    )
    _add_server_arguments(history_parser)
    history_parser.add_argument(
        "--site-id",
        type=int,
        required=True,
        dest="site_id",
        help="Id of the site",
    )

    delete_user_parser = subparsers.add_parser(
        "delete-user", help="Delete a user by id, user name, or full name"
    )
    _add_server_arguments(delete_user_parser)
    delete_user_parser.add_argument("user", type=str, help="User id, user name, or full name")

    raw_parser = subparsers.add_parser(
        "raw",
        help="Send an XML file as-is; $(session-id) in it receives the session token",
    )
    _add_server_arguments(raw_parser)
    raw_parser.add_argument("file", type=Path, help="XML request body")
    raw_parser.add_argument(
        "--api-version",
        type=api_version,
        default=APIVersion.V1_1,
        dest="api_version",
        help="API version the request is written for (default: 1.1)",
    )

    return parser


def parse_args(
    args: list[str] | None = None,
) -> ListSitesArgs | ListEnginesArgs | EngineStatusArgs | SiteScanHistoryArgs | DeleteUserArgs | RawArgs:
    """Parse command-line arguments and return typed args dataclass.

    Args:
        args: Command-line arguments to parse. If None, uses sys.argv[1:].

    Raises:
        SystemExit: If arguments are invalid (argparse behavior).
    """
    parser = build_parser()
    namespace = parser.parse_args(args)
    common = {
        "config": namespace.config,
        "server": namespace.server,
        "verbose": namespace.verbose,
    }

    if namespace.command == "list-sites":
        return ListSitesArgs(**common)
    elif namespace.command == "list-engines":
        return ListEnginesArgs(**common)
    elif namespace.command == "engine-status":
        return EngineStatusArgs(**common)
    elif namespace.command == "site-scan-history":
        return SiteScanHistoryArgs(**common, site_id=namespace.site_id)
    elif namespace.command == "delete-user":
        return DeleteUserArgs(**common, user=namespace.user.strip())
    elif namespace.command == "raw":
        return RawArgs(**common, file=namespace.file, api_version=namespace.api_version)
    else:
        # Should not happen with required=True on subparsers
        parser.error(f"Unknown command: {namespace.command}")


def _configure_logging(verbose: int) -> None:
    if verbose >= 2:
        level = logging.DEBUG
    elif verbose == 1:
        level = logging.INFO
    else:
        level = logging.WARNING
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")


def main(args: list[str] | None = None) -> int:
    """Main entry point."""
    try:
        parsed = parse_args(args)
        _configure_logging(parsed.verbose)

        if isinstance(parsed, ListSitesArgs):
            return _with_session(parsed, run_list_sites)
        elif isinstance(parsed, ListEnginesArgs):
            return _with_session(parsed, run_list_engines)
        elif isinstance(parsed, EngineStatusArgs):
            return _with_session(parsed, run_engine_status)
        elif isinstance(parsed, SiteScanHistoryArgs):
            return _with_session(parsed, lambda s: run_site_scan_history(s, parsed.site_id))
        elif isinstance(parsed, DeleteUserArgs):
            return _with_session(parsed, lambda s: run_delete_user(s, parsed.user))
        else:
            return run_raw(parsed)

    except KeyboardInterrupt:
        print("\nInterrupted", file=sys.stderr)
        return 1


def _open_session(args: ServerArgs) -> APISession:
    config = select_server(load_config(args.config), args.server)
    return APISession.from_config(config)


def _with_session(args: ServerArgs, action: Callable[[APISession], int]) -> int:
    """Log in, run *action*, log out. Any NexposeError becomes exit code 1."""
    try:
        with _open_session(args) as session:
            session.login()
            try:
                return action(session)
            finally:
                session.logout()
    except NexposeError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def run_list_sites(session: APISession) -> int:
    sites = session.list_sites()
    for site in sites:
        print(f"{site.id}\t{site.name}\trisk={site.risk_score:.1f}\tfactor={site.risk_factor:.2f}")
    print(f"\nTotal: {len(sites)} sites")
    return 0


def run_list_engines(session: APISession) -> int:
    engines = session.list_engines()
    for engine in engines:
        print(f"{engine.id}\t{engine.name}\t{engine.address}:{engine.port}\t{engine.scope}")
    print(f"\nTotal: {len(engines)} engines")
    return 0


def run_engine_status(session: APISession) -> int:
    """Print each engine's status; returns 1 when any engine is not active."""
    engines = session.list_engines()
    inactive = 0
    for engine in engines:
        status = engine.status or "unknown"
        if status.lower() != "active":
            inactive += 1
        print(f"{engine.name} ({engine.address}): {status}")
    if inactive:
        print(f"\n{inactive} of {len(engines)} engines are not active", file=sys.stderr)
        return 1
    return 0


def run_site_scan_history(session: APISession, site_id: int) -> int:
    scans = session.site_scan_history(site_id)
    for scan in scans:
        print(
            f"{scan.scan_id}\t{scan.status}\t{scan.start_time} - {scan.end_time}\t"
            f"live={scan.nodes.live}"
        )
    print(f"\nTotal: {len(scans)} scans")
    return 0


def run_delete_user(session: APISession, user: str) -> int:
    """Delete by numeric id, otherwise by case-insensitive user name or full name."""
    if user.isdigit():
        session.delete_user(int(user))
        print(f"Deleted user with id {user}")
        return 0

    wanted = user.lower()
    for summary in session.list_users():
        if wanted in (summary.user_name.lower(), summary.full_name.lower()):
            session.delete_user(summary.id)
            print(f"Deleted user {summary.user_name} (id {summary.id})")
            return 0

    print(f"Could not find user: {user}", file=sys.stderr)
    return 1


def run_raw(args: RawArgs) -> int:
    try:
        raw_xml = args.file.read_text(encoding="utf-8")
    except OSError as e:
        print(f"Error reading {args.file}: {e}", file=sys.stderr)
        return 1

    def send(session: APISession) -> int:
        response = session.send_raw_xml(raw_xml, args.api_version)
        print(response.response_xml)
        return 0 if not response.has_failure() else 1

    return _with_session(args, send)


if __name__ == "__main__":
    sys.exit(main())
