# Main Entry Point - Command Line
#
# Thin argparse layer over VaultService. Each invocation is its own session:
# when a password is configured, commands that touch profiles prompt for it
# (getpass) and unlock the vault first. Results are printed as JSON; the
# exit status is 1 when the operation failed.

import argparse
import getpass
import json
import sys

from . import __version__
from .core import EventSeverity, EventType, OperationResult, get_audit_logger
from .vault.service import VaultService
from .vault.store import SERVICES

# Commands that need the session unlocked on a protected vault
_NEEDS_UNLOCK = {"save", "switch", "export", "import"}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="account-vault",
        description="Store, switch and inspect claude / codex CLI accounts",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"Account Vault v{__version__}",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("status", help="Show whether a vault password is configured")
    sub.add_parser("list", help="List stored accounts")
    sub.add_parser("current", help="Show the accounts the CLIs are using now")
    sub.add_parser("usage", help="Show usage for the active accounts")

    for command, help_text in (
        ("save", "Store the active account under NAME"),
        ("switch", "Make stored account NAME the active one"),
        ("delete", "Remove stored account NAME"),
    ):
        p = sub.add_parser(command, help=help_text)
        p.add_argument("service", choices=SERVICES)
        p.add_argument("name")

    password = sub.add_parser("password", help="Manage the vault password")
    password.add_argument("action", choices=("setup", "change"))

    export = sub.add_parser("export", help="Export every stored account to a file")
    export.add_argument("path")

    imp = sub.add_parser("import", help="Import accounts from an export file")
    imp.add_argument("path")

    return parser


def _prompt_new_password(label: str) -> str:
    first = getpass.getpass(f"{label}: ")
    second = getpass.getpass(f"Confirm {label.lower()}: ")
    if first != second:
        print("Passwords do not match", file=sys.stderr)
        sys.exit(1)
    return first


def _unlock(service: VaultService) -> OperationResult:
    if not service.passwords.is_configured():
        return OperationResult.ok()
    return service.verify_password(getpass.getpass("Vault password: "))


def run(args: argparse.Namespace, service: VaultService) -> OperationResult:
    """Dispatch one parsed command."""
    if args.command == "status":
        return service.password_status()

    if args.command == "password":
        if args.action == "setup":
            return service.setup_password(_prompt_new_password("New password"))
        old = getpass.getpass("Current password: ")
        return service.change_password(old, _prompt_new_password("New password"))

    if args.command in _NEEDS_UNLOCK:
        unlocked = _unlock(service)
        if not unlocked.success:
            return unlocked

    if args.command == "list":
        return service.list_accounts()
    if args.command == "current":
        return service.current_accounts()
    if args.command == "usage":
        return service.usage_stats()
    if args.command == "save":
        return service.save_account(args.service, args.name)
    if args.command == "switch":
        return service.switch_account(args.service, args.name)
    if args.command == "delete":
        return service.delete_account(args.service, args.name)
    if args.command == "export":
        return service.export_accounts(args.path)
    if args.command == "import":
        return service.import_accounts(args.path)

    return OperationResult.fail(f"Unknown command: {args.command}", "ValidationError")


def main(argv=None):
    """Main entry point for account-vault."""
    args = build_parser().parse_args(argv)

    get_audit_logger().log_event(
        event_type=EventType.SYSTEM_START,
        severity=EventSeverity.INFO,
        message="Account Vault starting",
        details={"version": __version__, "command": args.command},
    )

    service = VaultService()
    try:
        result = run(args, service)
    except KeyboardInterrupt:
        print("\nCancelled", file=sys.stderr)
        sys.exit(1)
    finally:
        service.session.lock()

    print(json.dumps(result.to_dict(), indent=2))
    if not result.success:
        sys.exit(1)


if __name__ == "__main__":
    main()
