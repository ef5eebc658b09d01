"""Operator CLI: organization bootstrap and audit verification.

Founding an organization is the only way a ``creator`` profile comes into
existence; the HTTP API never mints one.
"""
from __future__ import annotations
import argparse
import getpass
import os
import sys
from pathlib import Path

SCRIPT_DIR = Path(__file__).parent
PROJECT_ROOT = SCRIPT_DIR.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from orgaccess.core import audit
from orgaccess.core.errors import RollbackFailure, ServiceError
from orgaccess.core.provisioning_service import found_organization
from orgaccess.api import service_context
from orgaccess.db import db
from orgaccess.flask_app import create_app


def _found_org(app, args) -> int:
    password = args.password or os.environ.get("ORGCTL_CREATOR_PASSWORD") or getpass.getpass("Creator password: ")
    with app.app_context():
        try:
            organization, creator = found_organization(
                service_context(),
                args.name,
                args.slug,
                args.email,
                password,
                args.full_name,
            )
        except RollbackFailure as e:
            print(f"[found-org] Error: {e} (orphaned account {e.orphaned_account_id})", file=sys.stderr)
            return 2
        except ServiceError as e:
            print(f"[found-org] Error: {e}", file=sys.stderr)
            return 1
        print(f"Organization {organization.slug} ({organization.id}) created")
        print(f"Creator {creator.email} ({creator.id})")
    return 0


def _verify_audit(app) -> int:
    with app.app_context():
        cfg = app.config["APP_CONFIG"]
        if not cfg.audit_log_signing_key:
            print("[verify-audit] AUDIT_LOG_SIGNING_KEY is not configured", file=sys.stderr)
            return 1
        total, valid = audit.verify_signatures(db.session, cfg.audit_log_signing_key)

    print(f"Total events: {total}")
    print(f"Valid signatures: {valid}")
    if total != valid:
        print(f"Invalid/unsigned: {total - valid}", file=sys.stderr)
        return 1
    return 0


def main(argv=None) -> int:
    """Command-line entry point."""
    parser = argparse.ArgumentParser(description="Organization access operator CLI")
    sub = parser.add_subparsers(dest="cmd")

    fo = sub.add_parser("found-org", help="Create an organization and its creator account")
    fo.add_argument("--name", required=True)
    fo.add_argument("--slug", required=True)
    fo.add_argument("--email", required=True)
    fo.add_argument("--full-name", required=True)
    fo.add_argument("--password", help="Defaults to $ORGCTL_CREATOR_PASSWORD, else prompts")

    sub.add_parser("verify-audit", help="Verify HMAC signatures of the activity log")

    args = parser.parse_args(argv)

    if not args.cmd:
        parser.print_help()
        return 0

    app = create_app()
    if args.cmd == "found-org":
        return _found_org(app, args)
    return _verify_audit(app)


if __name__ == "__main__":
    sys.exit(main())
