"""
Main entry point for the legal research aggregator.
"""

import argparse
import asyncio
import json
from typing import Any

from legal_research.storage.database import close_database, get_database
from legal_research.utils.config import ensure_directories, get_settings
from legal_research.utils.logging import configure_logging, get_logger


async def initialize() -> None:
    """Initialize the application."""
    ensure_directories()

    settings = get_settings()
    configure_logging(
        log_level=settings.general.log_level,
        json_format=True,
    )

    logger = get_logger(__name__)
    logger.info(
        "Legal research initializing",
        version=settings.general.version,
        log_level=settings.general.log_level,
    )

    await get_database()

    logger.info("Legal research initialized successfully")


async def shutdown() -> None:
    """Shutdown the application."""
    logger = get_logger(__name__)
    logger.info("Legal research shutting down")

    await close_database()

    logger.info("Legal research shutdown complete")


def _print_json(data: Any) -> None:
    print(json.dumps(data, indent=2, ensure_ascii=False))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="legal-research",
        description="Legal research aggregator - cases, articles, citations and judges",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("init", help="Create data directories and the database schema")

    search = subparsers.add_parser("search", help="Search every configured source")
    search.add_argument("--query", "-q", required=True, help="Search query")
    search.add_argument("--filter", "-f", default=None, help="Filters, e.g. court:scotus,year:1966")
    search.add_argument("--page", type=int, default=1)
    search.add_argument("--limit", type=int, default=None)

    case = subparsers.add_parser("case", help="Fetch one record by id (e.g. cl-12345)")
    case.add_argument("--id", required=True, dest="record_id")

    citations = subparsers.add_parser("citations", help="Show the citation network of a record")
    citations.add_argument("--id", required=True, dest="record_id")
    citations.add_argument("--direction", choices=["both", "cited", "citing"], default="both")
    citations.add_argument("--depth", type=int, default=1)

    judge = subparsers.add_parser("judge", help="Look a judge up by name")
    judge.add_argument("--name", required=True)

    return parser


async def run_command(args: argparse.Namespace) -> int:
    """Run one CLI command against a freshly wired service.

    Returns:
        Process exit code.
    """
    from legal_research.research.service import LegalResearchService

    if args.command == "init":
        print("Legal research initialized successfully.")
        return 0

    settings = get_settings()
    service = await LegalResearchService.create(settings, db=await get_database())
    try:
        if args.command == "search":
            limit = args.limit if args.limit is not None else settings.search.default_limit
            page = await service.search(args.query, args.filter, page=args.page, limit=limit)
            _print_json(page.to_dict())

        elif args.command == "case":
            record = await service.fetch_one(args.record_id)
            if record is None:
                print(f"Error: record not found: {args.record_id}")
                return 1
            _print_json(record.model_dump(mode="json"))

        elif args.command == "citations":
            network = await service.get_network(
                args.record_id, direction=args.direction, depth=args.depth
            )
            _print_json(network.model_dump(mode="json"))

        elif args.command == "judge":
            judge = await service.get_judge(args.name)
            if judge is None:
                print(f"Error: judge not found: {args.name}")
                return 1
            _print_json(judge.model_dump(mode="json"))

    except ValueError as e:
        print(f"Error: {e}")
        return 2
    finally:
        await service.close()

    return 0


def main() -> None:
    """Main entry point."""
    args = build_parser().parse_args()

    async def async_main() -> int:
        await initialize()
        try:
            return await run_command(args)
        finally:
            await shutdown()

    raise SystemExit(asyncio.run(async_main()))


if __name__ == "__main__":
    main()
