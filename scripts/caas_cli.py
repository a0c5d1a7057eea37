"""Command-line access to Cordys LDAP objects and SAML artifacts.

This module serves as a CLI wrapper around caas.core.cordys services.
"""
from __future__ import annotations
import argparse
import logging
import sys
from pathlib import Path

SCRIPT_DIR = Path(__file__).parent
PROJECT_ROOT = SCRIPT_DIR.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from caas.config import load_settings
from caas.core.cordys import CaasSession, CaasError, LdapObject
from caas.core.cordys.saml import mask_token


def _describe(obj) -> str:
    if not isinstance(obj, LdapObject):
        return f"system\t{obj.dn}\tparent=-"
    return f"{obj.kind.value}\t{obj.dn}\tparent={obj.parent.dn}"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Cordys administration helper")
    parser.add_argument("--config", default=None, help="YAML file with the system catalog")
    parser.add_argument("--system", default=None, help="System to use (default: configured default)")
    parser.add_argument("--verbose", "-v", action="store_true")

    sub = parser.add_subparsers(dest="cmd")

    sr = sub.add_parser("resolve", help="show the object at a DN and its parent")
    sr.add_argument("--dn", required=True)

    so = sub.add_parser("organization", help="show the organization an object belongs to")
    so.add_argument("--dn", required=True)

    sub.add_parser("artifact", help="show the current SAML artifact")

    return parser


def main(argv: list[str] | None = None) -> int:
    """Command-line entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.cmd:
        parser.print_help()
        return 0

    try:
        settings = load_settings(args.config)
    except RuntimeError as e:
        print(f"[settings] Error: {e}", file=sys.stderr)
        return 1

    level = logging.DEBUG if args.verbose else getattr(logging, settings.log_level, logging.INFO)
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s %(message)s", stream=sys.stderr)

    session = CaasSession(settings)

    try:
        if args.cmd == "resolve":
            obj = session.resolve(args.dn, args.system)
            print(_describe(obj) if obj is not None else f"not found: {args.dn}")
        elif args.cmd == "organization":
            org = session.organization_of(args.dn, args.system)
            print(org.dn if org is not None else f"not found: {args.dn}")
        elif args.cmd == "artifact":
            artifact = session.current_artifact(args.system)
            print(f"artifact={mask_token(artifact.token)}")
            print(f"issued_at={artifact.issued_at.isoformat()}")
            print(f"expires_at={artifact.expires_at.isoformat()}")
    except (CaasError, ValueError) as e:
        print(f"[{args.cmd}] Error: {e}", file=sys.stderr)
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
