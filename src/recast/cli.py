"""Command-line interface for Recast."""

import argparse
import asyncio
import logging
import sys

import uvicorn

from .config import settings
from .billing import CreditLedger


def main():
    """Main entry point for the CLI."""
    parser = argparse.ArgumentParser(
        description="Recast - Streaming text rewrite pipeline"
    )
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Server command
    server_parser = subparsers.add_parser("serve", help="Start the web server")
    server_parser.add_argument(
        "--host", default=settings.host, help=f"Host to bind to (default: {settings.host})"
    )
    server_parser.add_argument(
        "--port", type=int, default=settings.port, help=f"Port to bind to (default: {settings.port})"
    )
    server_parser.add_argument(
        "--reload", action="store_true", help="Enable auto-reload for development"
    )

    # Account administration
    accounts_parser = subparsers.add_parser("accounts", help="Manage credit ledger accounts")
    accounts_sub = accounts_parser.add_subparsers(dest="accounts_command")

    create_parser = accounts_sub.add_parser("create", help="Create an account")
    create_parser.add_argument("account_id")
    create_parser.add_argument(
        "--credits", type=int, default=settings.default_credits,
        help=f"Initial credits (default: {settings.default_credits})",
    )
    create_parser.add_argument("--api-key", help="API key to register for the account")

    grant_parser = accounts_sub.add_parser("grant", help="Add credits to an account")
    grant_parser.add_argument("account_id")
    grant_parser.add_argument("credits", type=int)

    balance_parser = accounts_sub.add_parser("balance", help="Show an account's balance")
    balance_parser.add_argument("account_id")

    reset_parser = accounts_sub.add_parser("reset-credits", help="Set every account's balance")
    reset_parser.add_argument(
        "--credits", type=int, default=500, help="Balance to set (default: 500)"
    )

    args = parser.parse_args()

    if args.command == "serve":
        run_server(args.host, args.port, args.reload)
    elif args.command == "accounts" and args.accounts_command:
        sys.exit(asyncio.run(run_accounts(args)))
    elif args.command == "accounts":
        accounts_parser.print_help()
        sys.exit(1)
    else:
        parser.print_help()
        sys.exit(1)


def run_server(host: str, port: int, reload: bool):
    """Run the web server."""
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    uvicorn.run(
        "recast.api:create_app",
        host=host,
        port=port,
        reload=reload,
        factory=True,
    )


async def run_accounts(args, ledger: CreditLedger = None) -> int:
    """Run an account administration command; returns the exit code."""
    ledger = ledger or CreditLedger(
        settings.database_path, busy_timeout=settings.ledger_busy_timeout_seconds
    )
    await ledger.initialize()

    try:
        if args.accounts_command == "create":
            account = await ledger.create_account(args.account_id, args.credits)
            if args.api_key:
                await ledger.register_api_key(args.api_key, account.id)
            print(f"Created account {account.id} with {account.credits} credits")

        elif args.accounts_command == "grant":
            balance = await ledger.grant(args.account_id, args.credits)
            print(f"Account {args.account_id} balance: {balance}")

        elif args.accounts_command == "balance":
            balance = await ledger.get_balance(args.account_id)
            if balance is None:
                print(f"Account not found: {args.account_id}")
                return 1
            print(f"Account {args.account_id} balance: {balance}")

        elif args.accounts_command == "reset-credits":
            updated = await ledger.reset_all_credits(args.credits)
            print(f"Reset {updated} account(s) to {args.credits} credits")

    except Exception as e:
        print(f"Error: {e}")
        return 1

    return 0


if __name__ == "__main__":
    main()
