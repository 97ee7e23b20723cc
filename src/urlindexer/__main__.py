"""Command line access to a URL index database.

    urlindexer index https://domain.com/api?a=b --id r1 --category saved
    urlindexer query api --category saved --detailed
    urlindexer delete r1 r2
    urlindexer clear [--category history]
    urlindexer count
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from collections.abc import Sequence

import structlog

from urlindexer.config import Settings
from urlindexer.errors import UrlIndexerError
from urlindexer.indexer import UrlIndexer
from urlindexer.logging_config import configure_logging
from urlindexer.models.records import OwnerRecord

log = structlog.get_logger()


def build_argument_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="urlindexer",
        description="Index and search request URLs.",
    )
    parser.add_argument("--db-path", help="Index database path (overrides configuration)")
    subparsers = parser.add_subparsers(dest="command", required=True)

    index = subparsers.add_parser("index", help="Index one URL for a record")
    index.add_argument("url")
    index.add_argument("--id", required=True, dest="owner_id", help="Record id")
    index.add_argument("--category", required=True, help="Record category, e.g. saved")

    query = subparsers.add_parser("query", help="Search indexed URLs")
    query.add_argument("text")
    query.add_argument("--category", help="Only return records of this category")
    query.add_argument(
        "--detailed",
        action="store_true",
        help="Match anywhere in the full URL (slower)",
    )

    delete = subparsers.add_parser("delete", help="Remove index entries of records")
    delete.add_argument("owner_ids", nargs="+", metavar="ID")

    clear = subparsers.add_parser("clear", help="Remove index entries")
    clear.add_argument("--category", help="Only remove entries of this category")

    subparsers.add_parser("count", help="Print the number of index entries")
    return parser


async def _run(indexer: UrlIndexer, args: argparse.Namespace) -> object:
    if args.command == "index":
        record = OwnerRecord(id=args.owner_id, url=args.url, category=args.category)
        result = await indexer.index([record])
        return result.model_dump()
    if args.command == "query":
        return await indexer.query(args.text, category=args.category, detailed=args.detailed)
    if args.command == "delete":
        return {"removed": await indexer.delete_indexed_data(args.owner_ids)}
    if args.command == "clear":
        if args.category:
            return {"removed": await indexer.delete_indexed_type(args.category)}
        return {"removed": await indexer.clear_indexed_data()}
    return {"entries": await indexer.store.count()}


async def _main_async(settings: Settings, args: argparse.Namespace) -> object:
    async with UrlIndexer.from_settings(settings) as indexer:
        return await _run(indexer, args)


def main(argv: Sequence[str] | None = None) -> int:
    args = build_argument_parser().parse_args(argv)
    settings = Settings()
    if args.db_path:
        store = settings.store.model_copy(update={"db_path": args.db_path})
        settings = settings.model_copy(update={"store": store})
    configure_logging(settings.logging)

    try:
        output = asyncio.run(_main_async(settings, args))
    except UrlIndexerError as exc:
        log.error("command_failed", command=args.command, code=exc.code.value)
        print(json.dumps(exc.to_dict()), file=sys.stderr)
        return 1
    print(json.dumps(output, indent=2, sort_keys=True))
    return 0


if __name__ == "__main__":
    sys.exit(main())
