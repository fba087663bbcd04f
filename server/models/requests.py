from typing import Any

from pydantic import BaseModel, Field

from shared.models.query import Filter


class CountRequest(BaseModel):
    filters: list[Filter] = Field(default_factory=list)


class SumRequest(BaseModel):
    filters: list[Filter] = Field(default_factory=list)
    field: str


class SyncListRequest(BaseModel):
    filters: list[Filter] = Field(default_factory=list)
    field: str
    value: Any = None
