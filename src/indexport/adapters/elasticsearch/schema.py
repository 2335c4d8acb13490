"""Pydantic models describing the Elasticsearch responses the client reads."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class ElasticsearchBaseModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class ErrorCause(ElasticsearchBaseModel):
    type: str = "unknown_error"
    reason: str | None = None
    index: str | None = None


class ErrorResponse(ElasticsearchBaseModel):
    error: ErrorCause | str
    status: int | None = None

    @property
    def cause(self) -> ErrorCause:
        if isinstance(self.error, ErrorCause):
            return self.error
        return ErrorCause(reason=self.error)


class BulkItemResult(ElasticsearchBaseModel):
    id: str | None = Field(default=None, alias="_id")
    index: str | None = Field(default=None, alias="_index")
    status: int
    error: ErrorCause | None = None


class BulkResponse(ElasticsearchBaseModel):
    took: int = 0
    errors: bool = False
    items: list[dict[str, BulkItemResult]] = Field(default_factory=list)

    def failures(self) -> list[BulkItemResult]:
        return [
            result
            for item in self.items
            for result in item.values()
            if result.error is not None
        ]
