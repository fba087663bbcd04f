"""Pydantic models describing list/filter/aggregate requests against a model collection."""

from enum import Enum
from typing import Generic, TypeVar

from pydantic import BaseModel, Field

T = TypeVar("T")


class Operator(str, Enum):
    """Comparison operators a Filter may use. Values are passed to the backend verbatim."""

    LESS = "<"
    LESS_EQUAL = "<="
    EQUAL = "=="
    GREATER = ">"
    GREATER_EQUAL = ">="
    NOT_EQUAL = "!="
    ARRAY_CONTAINS = "array-contains"


class ValueType(str, Enum):
    """Declares how the string value of a Filter is coerced before it reaches the backend."""

    STRING = "string"
    BOOLEAN = "boolean"
    NUMBER = "number"
    TIMESTAMP = "timestamp"


class Filter(BaseModel):
    """A single field/operator/value predicate.

    The value always travels as a string. Its ``type`` tag decides the coercion;
    any tag other than boolean/number/timestamp is treated as a plain string.
    """

    field: str
    operator: Operator = Operator.EQUAL
    type: ValueType | str = ValueType.STRING
    value: str = ""


class Order(BaseModel):
    """A sort key. The first listed order is the primary key."""

    field: str
    descending: bool = False


class Payload(BaseModel):
    """Paging, filtering and ordering request for a collection listing.

    ``page`` is a zero-based page index; the offset is ``page * page_size``.
    ``search`` is accepted but not used when building the query.
    """

    page: int = 0
    page_size: int = 0
    search: str = ""
    filters: list[Filter] = Field(default_factory=list)
    orders: list[Order] = Field(default_factory=list)


class ResultList(BaseModel, Generic[T]):
    """One page of results.

    Attributes:
        count: Total number of documents matching the filters, before ordering and paging.
        data:  The decoded documents of the requested page only.
    """

    count: int = 0
    data: list[T] = Field(default_factory=list)
