"""
mamoji.__main__ — Operator CLI for ``python -m mamoji``
========================================================

Wiring:
1. Load .env (DATABASE_URL).
2. Load config.yaml.
3. Create the SQLAlchemy engine and ensure tables exist.
4. Open the shared HTTP client and build the :class:`CatalogService`.
5. Run one command, then close the client and dispose of the engine.

Commands::

    python -m mamoji register example.social
    python -m mamoji sync example.social
    python -m mamoji servers
    python -m mamoji author chalk@chalk.moe
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys

from dotenv import load_dotenv

from mamoji.config import load_config
from mamoji.database.engine import create_db_engine, init_db
from mamoji.federation.client import build_client
from mamoji.services.catalog_service import CatalogService

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s │ %(levelname)-8s │ %(name)s │ %(message)s",
    datefmt="%H:%M:%S",
)
logger = logging.getLogger("mamoji")


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="mamoji", description="Federated emoji directory")
    parser.add_argument("--config", default=None, help="Path to config.yaml")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("register", help="Discover a server and pull its emoji")
    p.add_argument("host")

    p = sub.add_parser("sync", help="Return a server's catalog (refreshing if stale)")
    p.add_argument("host")
    p.add_argument("--force", action="store_true", help="Skip the freshness window")

    sub.add_parser("servers", help="List registered servers")

    p = sub.add_parser("author", help="Resolve a federated handle")
    p.add_argument("handle")
    return parser


async def _run(args: argparse.Namespace) -> int:
    cfg = load_config(args.config)
    engine = create_db_engine()
    init_db(engine)

    async with build_client(cfg) as client:
        service = CatalogService(
            engine,
            client,
            freshness_window=cfg.freshness_window,
            download_concurrency=cfg.download_concurrency,
        )
        try:
            if args.command == "register":
                result = await service.register(args.host)
                payload, error = result.to_dict(), result.error
            elif args.command == "sync":
                result = await service.sync(args.host, force=args.force)
                payload, error = result.to_dict(), result.error
            elif args.command == "servers":
                payload, error = await service.list_servers(), None
            else:
                result = await service.resolve_author(args.handle)
                payload, error = result.author, result.error
        finally:
            engine.dispose()

    if error is not None:
        logger.error("%s", error.message)
        print(json.dumps(error.to_dict(), ensure_ascii=False, indent=2))
        return 1
    print(json.dumps(payload, ensure_ascii=False, indent=2))
    return 0


def main(argv: list[str] | None = None) -> None:
    load_dotenv()
    args = _build_parser().parse_args(argv)
    sys.exit(asyncio.run(_run(args)))


if __name__ == "__main__":
    main()
