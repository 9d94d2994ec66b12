"""Command-line entry point for NexusMail."""

from __future__ import annotations

import argparse
import json
import os
import sys
from pathlib import Path
from typing import Any

from nexus_mail.core import AppSettings, configure_logging, load_app_settings
from nexus_mail.core.models import ConnectionRequest, ProtocolKind
from nexus_mail.providers import build_providers
from nexus_mail.services import EmailHandler, OperationResult
from nexus_mail.storage import SqliteMailRepository

CREDENTIAL_ENV_VAR = "NEXUS_MAIL_CREDENTIAL"
DEFAULT_USER = "local"


def build_parser() -> argparse.ArgumentParser:
    """Create and configure the CLI argument parser."""
    parser = argparse.ArgumentParser(description="NexusMail account sync service")
    parser.add_argument(
        "--env-file",
        type=Path,
        default=None,
        help="Path to a .env file containing configuration overrides.",
    )
    parser.add_argument(
        "command",
        nargs="?",
        default="info",
        choices=["info", "serve", "test", "link", "accounts", "sync", "send"],
        help="Operation to execute.",
    )
    parser.add_argument(
        "--user",
        default=DEFAULT_USER,
        help=f"User id that owns the accounts (default: {DEFAULT_USER}).",
    )
    parser.add_argument(
        "--protocol",
        choices=[kind.value for kind in ProtocolKind],
        default=ProtocolKind.IMAP_SMTP.value,
        help="Protocol kind for the test and link commands.",
    )
    parser.add_argument("--address", help="Mailbox address for test and link.")
    parser.add_argument(
        "--credential",
        default=None,
        help=f"Password or API key; falls back to ${CREDENTIAL_ENV_VAR}.",
    )
    parser.add_argument("--host", default=None, help="Explicit IMAP host override.")
    parser.add_argument("--port", type=int, default=None, help="Explicit IMAP port.")
    parser.add_argument("--account", default=None, help="Account id for sync and send.")
    parser.add_argument(
        "--silent",
        action="store_true",
        help="Do not mark the account as syncing while the sync runs.",
    )
    parser.add_argument("--to", default=None, help="Recipient for the send command.")
    parser.add_argument("--subject", default="", help="Subject for the send command.")
    parser.add_argument("--body", default="", help="Plain-text body for the send command.")
    parser.add_argument(
        "--bind-host",
        default="127.0.0.1",
        help="Interface for the serve command (default: 127.0.0.1).",
    )
    parser.add_argument(
        "--bind-port",
        type=int,
        default=8000,
        help="Port for the serve command (default: 8000).",
    )
    return parser


def execute(args: argparse.Namespace, settings: AppSettings) -> int:
    """Execute the requested CLI command and return a process exit code."""
    command = args.command
    if command == "info":
        print("NexusMail is ready. Link an account with the 'link' command.")
        print(f"Database path: {settings.storage.db_path}")
        print(f"Messages fetched per sync: {settings.sync.fetch_limit}")
        return 0
    if command == "serve":
        return _serve(settings, host=args.bind_host, port=args.bind_port)

    with SqliteMailRepository(settings.storage) as repository:
        handler = EmailHandler(repository, build_providers(settings), settings)
        if command in {"test", "link"}:
            request = _connection_request(args)
            if request is None:
                print("--address and a credential are required.", file=sys.stderr)
                return 2
            if command == "test":
                result = handler.test(request)
            else:
                result = handler.create_account(args.user, request)
        elif command == "accounts":
            result = handler.list_accounts(args.user)
        else:
            if not args.account:
                print("--account is required.", file=sys.stderr)
                return 2
            if command == "sync":
                result = handler.sync(args.user, args.account, silent=args.silent)
            else:
                result = handler.send(
                    args.user, args.account, args.to or "", args.subject, args.body
                )
    return _report(result)


def main() -> None:
    """CLI entry point."""
    parser = build_parser()
    args = parser.parse_args()

    settings = load_app_settings(env_file=args.env_file)
    configure_logging(settings.logging)
    sys.exit(execute(args, settings))


def _connection_request(args: argparse.Namespace) -> ConnectionRequest | None:
    credential = args.credential or os.environ.get(CREDENTIAL_ENV_VAR)
    if not args.address or not credential:
        return None
    return ConnectionRequest(
        protocol=ProtocolKind(args.protocol),
        address=args.address,
        credential=credential,
        host=args.host,
        port=args.port,
    )


def _report(result: OperationResult) -> int:
    payload: dict[str, Any] = result.to_payload()
    print(json.dumps(payload, indent=2))
    return 0 if result.success else 1


def _serve(settings: AppSettings, *, host: str, port: int) -> int:
    """Run the HTTP API under uvicorn."""
    import uvicorn

    from nexus_mail.web.app import create_app

    uvicorn.run(create_app(settings), host=host, port=port, log_config=None)
    return 0


if __name__ == "__main__":
    main()
