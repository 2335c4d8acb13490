from __future__ import annotations

import argparse
import logging
import sys
from signal import SIGINT, signal
from typing import TYPE_CHECKING

from dotenv import load_dotenv

from indexport.app import run
from indexport.config import (
    DEFAULT_CHUNK_SIZE,
    ConfigurationError,
    DatabaseConfig,
    IndexingOptions,
    configure_logging,
    get_search_engine_config,
    get_site_config,
)
from indexport.domain.errors import NothingToIndexError

if TYPE_CHECKING:
    from collections.abc import Sequence
    from types import FrameType

    from indexport.app import Services

log = logging.getLogger(__name__)

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="indexport",
        description="Index database entities into Elasticsearch",
    )
    parser.add_argument("bundle", help="Entity bundle to index, for example 'report'")
    parser.add_argument(
        "-e",
        "--elasticsearch",
        type=str,
        help="Elasticsearch URL (defaults to ELASTICSEARCH_URL or http://127.0.0.1:9200)",
    )
    parser.add_argument(
        "--database-uri",
        type=str,
        help="SQLAlchemy URI of the source database (defaults to DATABASE_URI / MYSQL_*)",
    )
    parser.add_argument("-b", "--base-index-name", type=str, help="Base index name")
    parser.add_argument("-t", "--tag", type=str, help="Tag appended to the index name")
    parser.add_argument("-w", "--website", type=str, help="Website URL used to build links")
    parser.add_argument(
        "-l",
        "--limit",
        type=int,
        default=0,
        help="Maximum number of entities to index, 0 for all (default: %(default)s)",
    )
    parser.add_argument(
        "-o",
        "--offset",
        type=int,
        default=0,
        help="Id of the entity to start from, 0 for the most recent (default: %(default)s)",
    )
    parser.add_argument(
        "-f",
        "--filter",
        dest="filter_expression",
        type=str,
        default="",
        help="Filter expression, for example 'status:published+country:12,34'",
    )
    parser.add_argument(
        "-c",
        "--chunk-size",
        type=int,
        default=DEFAULT_CHUNK_SIZE,
        help="Number of entities processed per chunk (default: %(default)s)",
    )
    parser.add_argument(
        "-i",
        "--id",
        dest="item_id",
        type=int,
        default=0,
        help="Index or remove a single entity",
    )
    parser.add_argument(
        "-r",
        "--remove",
        action="store_true",
        help="Remove the entity, index or alias instead of creating it",
    )
    parser.add_argument(
        "-a",
        "--alias",
        action="store_true",
        help="Point the index alias to the index after indexing",
    )
    parser.add_argument(
        "-A",
        "--alias-only",
        action="store_true",
        help="Only set or remove the index alias",
    )
    parser.add_argument(
        "-s",
        "--simulate",
        action="store_true",
        help="Only report how many entities would be indexed",
    )
    parser.add_argument("--replicas", type=int, help="Number of index replicas")
    parser.add_argument("--shards", type=int, help="Number of index shards")
    parser.add_argument(
        "--log-level",
        type=str.upper,
        choices=_LOG_LEVELS,
        default="INFO",
        help="Logging verbosity (default: %(default)s)",
    )
    return parser.parse_args(list(argv))


def _build_options(args: argparse.Namespace) -> IndexingOptions:
    return IndexingOptions(
        bundle=args.bundle,
        limit=args.limit,
        offset=args.offset,
        chunk_size=args.chunk_size,
        filter_expression=args.filter_expression,
        item_id=args.item_id,
        remove=args.remove,
        alias=args.alias,
        alias_only=args.alias_only,
        simulate=args.simulate,
    )


def _build_services(args: argparse.Namespace) -> Services:
    services: Services = {
        "search_config": get_search_engine_config(
            url=args.elasticsearch,
            base_index_name=args.base_index_name,
            tag=args.tag,
            shards=args.shards,
            replicas=args.replicas,
        ),
        "site": get_site_config(website=args.website),
    }
    if args.database_uri:
        services["database"] = DatabaseConfig(uri=args.database_uri)
    return services


def main(argv: Sequence[str] | None = None) -> None:
    """Main application entry point."""
    args_list = list(argv) if argv is not None else list(sys.argv[1:])
    parsed_args = _parse_args(args_list)
    configure_logging(level=getattr(logging, parsed_args.log_level))

    try:
        options = _build_options(parsed_args)
        services = _build_services(parsed_args)
    except (ConfigurationError, ValueError):
        log.exception("CLI validation error")
        sys.exit(2)

    try:
        run(options, **services)
    except NothingToIndexError as exc:
        log.error("%s", exc)  # noqa: TRY400
        sys.exit(1)
    except ConfigurationError:
        log.exception("Configuration error")
        sys.exit(2)
    except Exception:
        log.exception("Fatal error during indexing")
        sys.exit(1)


def sigint_handler(_signal_received: int, _frame: FrameType | None) -> None:
    """Handle SIGINT (Ctrl+C) gracefully."""
    log.info("Closed by user (Ctrl+C)")
    sys.exit(0)


def entrypoint() -> None:
    """Console script entry point: load `.env`, trap Ctrl+C and run."""
    load_dotenv()
    signal(SIGINT, sigint_handler)
    main()


if __name__ == "__main__":
    entrypoint()
