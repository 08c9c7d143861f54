"""Command line interface: run the server, issue tokens, watch live lists."""

import argparse
import asyncio
import json
import sys
from datetime import timedelta

import aiohttp

from coach_realtime.adapters.auth import TokenService
from coach_realtime.adapters.client import (
    AiohttpConnector,
    ApiError,
    ClientConnectionManager,
    LiveCollection,
    PracticeApiClient,
    ReconciliationStore,
)
from coach_realtime.adapters.config import AppConfig, ClientConfig
from coach_realtime.domain.models import Conversation, EntityType, Invoice, Session, SharedEntity
from coach_realtime.main import configure_logging
from coach_realtime.main import main as serve

COLLECTIONS: dict[str, tuple[EntityType, type[SharedEntity]]] = {
    "sessions": (EntityType.SESSION, Session),
    "invoices": (EntityType.INVOICE, Invoice),
    "conversations": (EntityType.CONVERSATION, Conversation),
}


def issue_token(user_id: str, ttl_hours: float | None = None) -> str:
    """Issue an access token signed with the server's JWT secret."""
    config = AppConfig()
    tokens = TokenService(
        config.jwt_secret, algorithm=config.jwt_algorithm, ttl_hours=config.token_ttl_hours
    )
    ttl = timedelta(hours=ttl_hours) if ttl_hours is not None else None
    return tokens.issue(user_id, ttl=ttl)


def print_items(collection: str, items: list[SharedEntity]) -> None:
    """Print the current state of a live list."""
    print(f"--- {len(items)} {collection} ---")
    for item in items:
        print(json.dumps(item.to_json(), ensure_ascii=False))
    sys.stdout.flush()


async def watch(user_id: str, collection: str, token: str) -> None:
    """Mount a live list and print it every time it changes, until interrupted."""
    entity_type, model = COLLECTIONS[collection]
    config = ClientConfig()

    async with aiohttp.ClientSession() as session:
        api = PracticeApiClient(session, config, token)
        manager = ClientConnectionManager(AiohttpConnector(session, config), config)
        live = LiveCollection(
            manager,
            api.fetcher_for(entity_type),
            ReconciliationStore(entity_type, model),
            on_change=lambda items: print_items(collection, items),
        )

        await manager.set_identity(user_id, token)
        try:
            await live.mount()
            # Runs until the process is interrupted
            await asyncio.Event().wait()
        finally:
            live.unmount()
            await manager.close()


async def main() -> None:
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Coach realtime server and client tools",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Run the server (configured from the environment / .env)
  coach-realtime serve

  # Issue a development token for a user
  coach-realtime token coach-1

  # Print the live session list of a user as it changes
  coach-realtime watch coach-1 --collection sessions
        """,
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to execute")

    subparsers.add_parser("serve", help="Run the HTTP and websocket server")

    token_parser = subparsers.add_parser("token", help="Issue an access token")
    token_parser.add_argument("user_id", help="User ID to put in the token subject")
    token_parser.add_argument("--ttl-hours", type=float, help="Token lifetime in hours")

    watch_parser = subparsers.add_parser("watch", help="Watch a live list of one user")
    watch_parser.add_argument("user_id", help="User ID to connect as")
    watch_parser.add_argument(
        "--collection",
        choices=sorted(COLLECTIONS),
        default="sessions",
        help="Which list to watch",
    )
    watch_parser.add_argument(
        "--token",
        help="Access token (default: issue one with the local JWT_SECRET)",
    )

    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        sys.exit(1)

    try:
        if args.command == "serve":
            await serve()

        elif args.command == "token":
            print(issue_token(args.user_id, args.ttl_hours))

        elif args.command == "watch":
            configure_logging("INFO")
            token = args.token or issue_token(args.user_id)
            await watch(args.user_id, args.collection, token)

    except KeyboardInterrupt:
        print("\nInterrupted.", file=sys.stderr)
        sys.exit(1)
    except ApiError as e:
        print(f"Error: {e} ({e.detail})", file=sys.stderr)
        sys.exit(1)


def cli_main() -> None:
    """Synchronous entry point for the CLI command."""
    asyncio.run(main())
