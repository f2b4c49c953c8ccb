"""
Command line wrapper: msg-grants {view,add,remove}.

Exit codes: 0 on success (NoOp included), otherwise the raised error's exit_code
(2 invalid argument, 3 ambiguous grant, 4 transient, 5 auth, 1 anything else).
"""

import argparse
import json
import logging
import sys
from typing import List, Optional

from dotenv import load_dotenv

from msg_grants.config import load_settings, log_level
from msg_grants.engine import GrantRequest, run
from msg_grants.errors import AuthenticationError, AuthorizationError, GrantError
from msg_grants.models import ConsentType, Operation
from msg_grants.protocol import DirectorySession
from msg_grants.session import session_from_settings

logger = logging.getLogger(__name__)


def _common_arguments(parser: argparse.ArgumentParser, with_scopes: bool) -> None:
    client = parser.add_mutually_exclusive_group(required=True)
    client.add_argument("--client-id", help="Object id of the client service principal")
    client.add_argument("--client-app-id", help="Application (client) id of the client")

    resource = parser.add_mutually_exclusive_group(required=True)
    resource.add_argument("--resource-id", help="Object id of the resource service principal")
    resource.add_argument("--resource-app-id", help="Application id of the resource (e.g. Graph)")

    parser.add_argument(
        "--consent-type",
        type=ConsentType,
        default=ConsentType.ALL_PRINCIPALS,
        choices=list(ConsentType),
        metavar="{AllPrincipals,Principal}",
        help="AllPrincipals (admin consent, default) or Principal (one user)",
    )
    parser.add_argument("--principal-id", help="User object id; required for Principal consent")
    parser.add_argument("--json", action="store_true", help="Print the result as JSON")
    parser.add_argument("-v", "--verbose", action="count", default=0, help="-v info, -vv debug")
    if with_scopes:
        parser.add_argument(
            "scopes",
            nargs="+",
            help="Scopes, space and/or comma separated (User.Read Mail.Read or User.Read,Mail.Read)",
        )
        parser.add_argument(
            "--dry-run", action="store_true", help="Report the change without applying it"
        )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="msg-grants",
        description="View and edit delegated OAuth2 permission grants of a service principal.",
    )
    sub = parser.add_subparsers(dest="command", required=True)
    _common_arguments(sub.add_parser("view", help="Show current grants"), with_scopes=False)
    _common_arguments(sub.add_parser("add", help="Add scopes to a grant"), with_scopes=True)
    _common_arguments(sub.add_parser("remove", help="Remove scopes from a grant"), with_scopes=True)
    return parser


def _configure_logging(verbosity: int) -> None:
    if verbosity >= 2:
        level = logging.DEBUG
    elif verbosity == 1:
        level = logging.INFO
    else:
        level = getattr(logging, log_level(), logging.WARNING)
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    # httpx logs every request at INFO, including full URLs.
    logging.getLogger("httpx").setLevel(max(level, logging.WARNING))


def request_from_args(args: argparse.Namespace) -> GrantRequest:
    return GrantRequest(
        operation=Operation(args.command),
        consent_type=args.consent_type,
        client_sp_id=args.client_id,
        client_app_id=args.client_app_id,
        resource_id=args.resource_id,
        resource_app_id=args.resource_app_id,
        principal_id=args.principal_id,
        scopes=getattr(args, "scopes", None),
        dry_run=getattr(args, "dry_run", False),
    )


def main(argv: Optional[List[str]] = None, session: Optional[DirectorySession] = None) -> int:
    """Parse argv, run the request and print the outcome. Returns the exit code."""
    load_dotenv()
    args = build_parser().parse_args(argv)
    _configure_logging(args.verbose)

    request = request_from_args(args)
    owns_session = session is None
    if owns_session:
        session = session_from_settings(load_settings())
    try:
        result = run(session, request)
    except GrantError as e:
        print(f"Error [{e.code}]: {e}", file=sys.stderr)
        if isinstance(e, AuthorizationError):
            print(e.hint, file=sys.stderr)
        elif isinstance(e, AuthenticationError):
            print("Set GRAPH_ACCESS_TOKEN or the AZURE_* app registration variables.", file=sys.stderr)
        if e.retryable:
            print("This failure is transient; re-run the command to retry.", file=sys.stderr)
        return e.exit_code
    finally:
        if owns_session:
            session.close()

    if args.json:
        print(json.dumps(result.to_dict(), indent=2))
    else:
        print(result.summary())
    return 0


def entrypoint() -> None:
    sys.exit(main())
