"""Bulk-create Keycloak users from the command line.

Runs the same import as POST /users/bulk-create, either over the built-in
people list or over a CSV file (--file).
"""
from __future__ import annotations
import argparse
import logging
import os
import signal
import sys
import threading
from pathlib import Path

SCRIPT_DIR = Path(__file__).parent
PROJECT_ROOT = SCRIPT_DIR.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from app.config.settings import KeycloakOptions, USERNAME_FIELD_CHOICES
from app.core.bulk_import import bulk_import
from app.core.keycloak import KeycloakClient, KeycloakError, UserService
from app.core.people import PEOPLE, load_people_csv


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Bulk-create Keycloak users with a temporary password")
    parser.add_argument("--kc-url", default=os.environ.get("KEYCLOAK_URL", "http://localhost:8080"))
    parser.add_argument("--admin-realm", default=os.environ.get("KEYCLOAK_ADMIN_REALM", "master"))
    parser.add_argument("--realm", default=os.environ.get("KEYCLOAK_REALM", "demo"))
    parser.add_argument("--admin-client-id", default=os.environ.get("KEYCLOAK_ADMIN_CLIENT_ID", "admin-cli"))
    parser.add_argument("--admin-user", default=os.environ.get("KEYCLOAK_ADMIN", "admin"))
    parser.add_argument("--admin-pass", default=os.environ.get("KEYCLOAK_ADMIN_PASSWORD"))
    parser.add_argument("--username-field", choices=USERNAME_FIELD_CHOICES,
                        default=os.environ.get("BULK_USERNAME_FIELD", "email"))
    parser.add_argument("--required-action", dest="required_actions", action="append",
                        help="Required action to set (repeatable, default: UPDATE_PASSWORD)")
    parser.add_argument("--file", help="CSV file with name,last_name,email,national_id columns")
    parser.add_argument("--continue-on-error", action="store_true",
                        help="Record per-user failures instead of aborting the batch")
    parser.add_argument("-v", "--verbose", action="store_true")
    return parser


def main(argv=None) -> int:
    """Command-line entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s [%(name)s] %(message)s",
        stream=sys.stderr,
    )

    if not args.admin_pass:
        parser.error("Missing admin password (--admin-pass or KEYCLOAK_ADMIN_PASSWORD)")

    try:
        options = KeycloakOptions(
            base_url=args.kc_url,
            admin_realm=args.admin_realm,
            realm=args.realm,
            admin_client_id=args.admin_client_id,
            admin_username=args.admin_user,
            admin_password=args.admin_pass,
            username_field=args.username_field,
            required_actions=frozenset(args.required_actions or ["UPDATE_PASSWORD"]),
        )
    except ValueError as e:
        print(f"[bulk-import] Error: {e}", file=sys.stderr)
        return 2

    try:
        people = load_people_csv(args.file) if args.file else list(PEOPLE)
    except (OSError, ValueError) as e:
        print(f"[bulk-import] Error: {e}", file=sys.stderr)
        return 2

    # Ctrl-C stops before the next person; the running HTTP call completes
    cancel = threading.Event()
    previous_handler = signal.signal(signal.SIGINT, lambda signum, frame: cancel.set())

    service = UserService(KeycloakClient.from_options(options), options.realm)
    try:
        summary = bulk_import(
            service,
            people,
            username_field=options.username_field,
            required_actions=options.required_actions,
            cancel_event=cancel,
            stop_on_error=not args.continue_on_error,
        )
    except KeycloakError as e:
        print(f"[bulk-import] Error: {e}", file=sys.stderr)
        return 1
    finally:
        signal.signal(signal.SIGINT, previous_handler)

    for result in summary.results:
        if result.ok:
            state = "created" if result.created else "existing"
            print(f"{result.username}\t{state}\t{result.user_id}")
        else:
            print(f"{result.username}\tfailed\t{result.error}", file=sys.stderr)
    print(f"[bulk-import] imported={summary.imported} skipped={summary.skipped} failed={summary.failed}",
          file=sys.stderr)

    if summary.cancelled:
        return 130
    return 1 if summary.failed else 0


if __name__ == "__main__":
    sys.exit(main())
