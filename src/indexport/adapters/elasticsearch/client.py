"""HTTP client writing documents, indices and aliases to Elasticsearch."""

from __future__ import annotations

import asyncio
import gzip
import json
from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError

from indexport.adapters.http_resilience import ResilientClient
from indexport.config.search import SearchEngineConfig

from .schema import BulkItemResult, BulkResponse, ErrorResponse
from .settings import index_body

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Collection, Mapping, Sequence
    from types import TracebackType

    import httpx

    from indexport.config.http_resilience import ResilienceConfig
    from indexport.domain.ports import SearchIndex
    from indexport.domain.types import Document, EntityId

log = getLogger(__name__)

_ALIAS_NOT_FOUND = "aliases_not_found_exception"
_INDEX_EXISTS = "resource_already_exists_exception"


def _default_client_factory(config: ResilienceConfig) -> ResilientClient:
    return ResilientClient(config)


class SearchEngineError(RuntimeError):
    """Raised when Elasticsearch rejects a request."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        error_type: str | None = None,
        reason: str | None = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.error_type = error_type
        self.reason = reason


class BulkIndexError(SearchEngineError):
    """Raised when some documents of a bulk request were not indexed."""

    def __init__(self, message: str, *, failures: Sequence[BulkItemResult]) -> None:
        first = failures[0].error if failures else None
        super().__init__(
            message,
            status_code=failures[0].status if failures else None,
            error_type=first.type if first else None,
            reason=first.reason if first else None,
        )
        self.failures = list(failures)


def _error_from_response(response: httpx.Response) -> SearchEngineError:
    error_type: str | None = None
    reason: str | None = None
    message = "Unknown error"
    try:
        cause = ErrorResponse.model_validate(response.json()).cause
    except (ValueError, ValidationError):
        cause = None
    if cause is not None:
        error_type = cause.type
        reason = cause.reason
        message = "".join(part.capitalize() for part in cause.type.split("_"))
        if cause.reason:
            message += f" [reason: {cause.reason}]"
        if cause.index:
            message += f" [index: {cause.index}]"
    return SearchEngineError(
        message,
        status_code=response.status_code,
        error_type=error_type,
        reason=reason,
    )


def _missing_index(name: str, exc: SearchEngineError) -> SearchEngineError:
    return SearchEngineError(
        f'Index "{name}" does not exist.',
        status_code=exc.status_code,
        error_type=exc.error_type,
        reason=exc.reason,
    )


def _gzip_json(payload: object) -> bytes:
    return gzip.compress((json.dumps(payload) + "\n").encode("utf-8"))


def _bulk_payload(name: str, documents: Sequence[tuple[EntityId, Document]]) -> bytes:
    lines: list[str] = []
    for document_id, document in documents:
        lines.append(json.dumps({"index": {"_index": name, "_id": str(document_id)}}))
        lines.append(json.dumps(document))
    return gzip.compress(("\n".join(lines) + "\n").encode("utf-8"))


@dataclass(slots=True)
class ElasticsearchClient:
    """:class:`SearchIndex` speaking the Elasticsearch REST API.

    Request bodies are gzip compressed. Calls share one event loop and one
    :class:`ResilientClient`, opened on first use, so retries and the configured rate
    limit span the whole run. Use the client as a context manager or call
    :meth:`close` when done.
    """

    config: SearchEngineConfig = field(default_factory=SearchEngineConfig)
    client_factory: Callable[[ResilienceConfig], ResilientClient] = field(
        default=_default_client_factory
    )
    _runner: asyncio.Runner | None = field(default=None, init=False, repr=False)
    _client: ResilientClient | None = field(default=None, init=False, repr=False)

    def __enter__(self) -> ElasticsearchClient:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    def close(self) -> None:
        if self._runner is None:
            return
        try:
            if self._client is not None:
                self._runner.run(self._client.aclose())
        finally:
            self._client = None
            self._runner.close()
            self._runner = None

    # Indices.

    def index_exists(self, name: str) -> bool:
        return self._run(lambda client: self._index_exists(client, name))

    def create_index_if_missing(
        self,
        name: str,
        schema: Mapping[str, Any],
        *,
        shards: int,
        replicas: int,
    ) -> bool:
        async def operation(client: ResilientClient) -> bool:
            if await self._index_exists(client, name):
                return False
            body = index_body(dict(schema), shards=shards, replicas=replicas)
            try:
                await self._request(client, "PUT", name, body=body)
            except SearchEngineError as exc:
                if exc.error_type == _INDEX_EXISTS:
                    return False
                raise
            return True

        return self._run(operation)

    def delete_index(self, name: str) -> bool:
        return self._run(lambda client: self._delete(client, name))

    # Documents.

    def bulk_upsert(self, name: str, documents: Sequence[tuple[EntityId, Document]]) -> None:
        if not documents:
            return

        async def operation(client: ResilientClient) -> None:
            response = await self._request(
                client,
                "POST",
                f"{name}/_bulk",
                content=_bulk_payload(name, documents),
                content_type="application/x-ndjson",
                timeout=self.config.bulk_timeout_seconds,
            )
            result = BulkResponse.model_validate(response.json())
            if result.errors:
                failures = result.failures()
                log.error("Bulk indexing into %s failed for %s documents", name, len(failures))
                raise BulkIndexError(
                    f"Bulk indexing into {name} failed for {len(failures)} documents",
                    failures=failures,
                )
            log.debug(
                "Bulk indexed %s documents into %s in %sms", len(documents), name, result.took
            )

        self._run(operation)

    def delete_document(self, name: str, document_id: EntityId) -> bool:
        return self._run(lambda client: self._delete(client, f"{name}/_doc/{document_id}"))

    # Aliases.

    def add_alias(self, name: str, alias: str) -> None:
        """Point ``alias`` at ``name`` only, detaching it from any other index."""

        add = {"add": {"index": name, "alias": alias}}

        async def operation(client: ResilientClient) -> None:
            actions = [{"remove": {"index": "*", "alias": alias}}, add]
            try:
                await self._request(client, "POST", "_aliases", body={"actions": actions})
            except SearchEngineError as exc:
                if exc.status_code != 404:
                    raise
                if exc.error_type != _ALIAS_NOT_FOUND:
                    raise _missing_index(name, exc) from exc
                # First time the alias is set: nothing to detach.
                try:
                    await self._request(client, "POST", "_aliases", body={"actions": [add]})
                except SearchEngineError as retry_exc:
                    if retry_exc.status_code == 404:
                        raise _missing_index(name, retry_exc) from retry_exc
                    raise

        self._run(operation)

    def remove_alias(self, name: str, alias: str) -> bool:
        async def operation(client: ResilientClient) -> bool:
            actions = [{"remove": {"index": name, "alias": alias}}]
            try:
                await self._request(client, "POST", "_aliases", body={"actions": actions})
            except SearchEngineError as exc:
                if exc.status_code == 404:
                    return False
                raise
            return True

        return self._run(operation)

    # Transport.

    def _url(self, path: str) -> str:
        return f"{self.config.url.rstrip('/')}/{path.lstrip('/')}"

    def _run[T](self, operation: Callable[[ResilientClient], Awaitable[T]]) -> T:
        if self._runner is None:
            self._runner = asyncio.Runner()
        return self._runner.run(self._call(operation))

    async def _call[T](self, operation: Callable[[ResilientClient], Awaitable[T]]) -> T:
        if self._client is None:
            self._client = self.client_factory(self.config.resilience)
        return await operation(self._client)

    async def _index_exists(self, client: ResilientClient, name: str) -> bool:
        response = await self._request(client, "HEAD", name, allowed_statuses={404})
        return response.status_code != 404

    async def _delete(self, client: ResilientClient, path: str) -> bool:
        response = await self._request(client, "DELETE", path, allowed_statuses={404})
        return response.status_code != 404

    async def _request(
        self,
        client: ResilientClient,
        method: str,
        path: str,
        *,
        body: object | None = None,
        content: bytes | None = None,
        content_type: str = "application/json",
        timeout: float | None = None,
        allowed_statuses: Collection[int] = (),
    ) -> httpx.Response:
        headers: dict[str, str] = {}
        if body is not None:
            content = _gzip_json(body)
        if content is not None:
            headers["Content-Type"] = content_type
            headers["Content-Encoding"] = "gzip"

        response = await client.request(
            method,
            self._url(path),
            content=content,
            headers=headers,
            timeout=timeout if timeout is not None else self.config.resilience.timeout_seconds,
        )
        if response.status_code in allowed_statuses:
            return response
        if response.is_error:
            error = _error_from_response(response)
            log.debug("%s %s failed: %s", method, path, error)
            raise error
        return response


if TYPE_CHECKING:
    _index_check: SearchIndex = ElasticsearchClient()
