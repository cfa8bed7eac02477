from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field, field_validator

# about a century either way; keeps deadlines inside datetime range
MAX_TTL_SECONDS = 100 * 365 * 24 * 3600


class SetEntry(BaseModel):
    key: str = ""
    value: Any = None
    ttl: int = Field(default=0, ge=-MAX_TTL_SECONDS, le=MAX_TTL_SECONDS)


class KeyValue(BaseModel):
    key: str
    value: Any


class DeleteRequest(BaseModel):
    key: str = ""


class MessageResponse(BaseModel):
    message: str


class MetricResponse(BaseModel):
    metric: str
    count: int


class ErrorResponse(BaseModel):
    error: str


class SnapshotDocument(BaseModel):
    fake_database: dict[str, Any] = Field(default_factory=dict)
    fake_database_ttl: dict[str, datetime] = Field(default_factory=dict)
    metrics: dict[str, int] = Field(default_factory=dict)

    @field_validator("fake_database", "fake_database_ttl", "metrics", mode="before")
    @classmethod
    def null_as_empty(cls, value: Any) -> Any:
        return {} if value is None else value
