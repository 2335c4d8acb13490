"""Application entry points wiring configuration and adapters to the indexer."""

from __future__ import annotations

from contextlib import ExitStack, contextmanager
from logging import getLogger
from typing import TYPE_CHECKING, TypedDict, Unpack

from indexport.adapters.elasticsearch import ElasticsearchClient
from indexport.adapters.html import MarkdownRenderer
from indexport.adapters.sqlalchemy import SqlAlchemyEntityStore, create_source_engine
from indexport.config import (
    DEFAULT_CHUNK_SIZE,
    get_database_config,
    get_search_engine_config,
    get_site_config,
)
from indexport.domain.bundles import default_registry
from indexport.domain.indexing import Indexer, IndexingResult
from indexport.domain.processing import Processor
from indexport.domain.references import ReferenceCache

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator

    from indexport.config import DatabaseConfig, IndexingOptions, SearchEngineConfig, SiteConfig
    from indexport.domain.bundles import BundleRegistry
    from indexport.domain.ports import EntitySource, SearchIndex
    from indexport.domain.types import Document, EntityId

type RunOutcome = IndexingResult | int | bool | None

log = getLogger(__name__)


class Services(TypedDict, total=False):
    search_config: SearchEngineConfig
    site: SiteConfig
    database: DatabaseConfig
    source: EntitySource
    search_index: SearchIndex
    registry: BundleRegistry
    post_process_item: Callable[[Document], None]


@contextmanager
def open_indexer(**services: Unpack[Services]) -> Iterator[Indexer]:
    """Yield an :class:`Indexer` wired to the configured adapters.

    Adapters passed in ``services`` replace the defaults; otherwise a database
    connection and a search engine client are held for the duration of the block.
    """

    search_config = services.get("search_config") or get_search_engine_config()
    processor = Processor(
        site=services.get("site") or get_site_config(),
        references=ReferenceCache(),
        renderer=MarkdownRenderer(),
        post_process_item=services.get("post_process_item"),
    )
    registry = services.get("registry") or default_registry()
    with ExitStack() as stack:
        search_index = services.get("search_index") or stack.enter_context(
            ElasticsearchClient(search_config)
        )

        source = services.get("source")
        if source is not None:
            yield Indexer(registry, source, search_index, processor, search_config)
            return

        database = services.get("database") or get_database_config()
        engine = create_source_engine(database.uri)
        stack.callback(engine.dispose)
        store = stack.enter_context(SqlAlchemyEntityStore(engine))
        yield Indexer(registry, store, search_index, processor, search_config)


def index(
    bundle: str,
    *,
    offset: int = 0,
    limit: int = 0,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    filter_expression: str = "",
    **services: Unpack[Services],
) -> IndexingResult:
    """Index entities of ``bundle`` from newest to oldest."""

    with open_indexer(**services) as indexer:
        result = indexer.index(
            bundle,
            offset=offset,
            limit=limit,
            chunk_size=chunk_size,
            filter_expression=filter_expression,
        )
    log.info(
        "Finished indexing %s: processed=%s, limit=%s, cursor=%s",
        bundle,
        result.processed,
        result.limit,
        result.cursor,
    )
    return result


def count(
    bundle: str,
    *,
    offset: int = 0,
    limit: int = 0,
    filter_expression: str = "",
    **services: Unpack[Services],
) -> int:
    with open_indexer(**services) as indexer:
        total = indexer.count(
            bundle, offset=offset, limit=limit, filter_expression=filter_expression
        )
    log.info("Simulation: %s %s entities would be indexed", total, bundle)
    return total


def index_item(bundle: str, item_id: EntityId, **services: Unpack[Services]) -> bool:
    with open_indexer(**services) as indexer:
        return indexer.index_item(bundle, item_id)


def remove_item(bundle: str, item_id: EntityId, **services: Unpack[Services]) -> bool:
    with open_indexer(**services) as indexer:
        return indexer.remove_item(bundle, item_id)


def remove_index(bundle: str, **services: Unpack[Services]) -> bool:
    with open_indexer(**services) as indexer:
        return indexer.remove_index(bundle)


def set_alias(bundle: str, *, remove: bool = False, **services: Unpack[Services]) -> None:
    with open_indexer(**services) as indexer:
        indexer.set_alias(bundle, remove=remove)


def run(options: IndexingOptions, **services: Unpack[Services]) -> RunOutcome:
    """Execute the operation selected by ``options``.

    A non-zero ``item_id`` targets a single entity, ``alias_only`` only touches the
    alias, ``simulate`` counts instead of indexing. ``remove`` flips each of these
    into its removal counterpart, and ``alias`` also updates the alias after a
    bulk run or index removal.
    """

    with open_indexer(**services) as indexer:
        bundle = options.bundle
        if options.item_id:
            if options.remove:
                return indexer.remove_item(bundle, options.item_id)
            return indexer.index_item(bundle, options.item_id)

        if options.alias_only:
            indexer.set_alias(bundle, remove=options.remove)
            return None

        if options.simulate:
            total = indexer.count(
                bundle,
                offset=options.offset,
                limit=options.limit,
                filter_expression=options.filter_expression,
            )
            log.info("Simulation: %s %s entities would be indexed", total, bundle)
            return total

        outcome: RunOutcome
        if options.remove:
            if options.alias:
                indexer.set_alias(bundle, remove=True)
            outcome = indexer.remove_index(bundle)
        else:
            outcome = indexer.index(
                bundle,
                offset=options.offset,
                limit=options.limit,
                chunk_size=options.chunk_size,
                filter_expression=options.filter_expression,
            )
            if options.alias:
                indexer.set_alias(bundle)
        return outcome
