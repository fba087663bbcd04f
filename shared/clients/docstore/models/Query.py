"""Backend-neutral query description handed to a document store client."""

from typing import Any

from pydantic import BaseModel, ConfigDict

from shared.models.query import Operator


class QueryPredicate(BaseModel):
    """A single already-coerced comparison."""

    model_config = ConfigDict(frozen=True)

    field: str
    operator: Operator
    value: Any = None


class QueryOrder(BaseModel):
    model_config = ConfigDict(frozen=True)

    field: str
    descending: bool = False


class DocumentQuery(BaseModel):
    """Immutable query against one collection.

    Every refinement returns a new query and leaves the original untouched,
    so a base query can be reused for count and fetch.

    Attributes:
        collection: Collection the query runs against.
        predicates: Conjunctive (AND) list of comparisons.
        orders:     Sort keys, primary first.
        limit:      Maximum number of documents, None for no limit.
        offset:     Number of leading documents to skip, None for none.
    """

    model_config = ConfigDict(frozen=True)

    collection: str
    predicates: tuple[QueryPredicate, ...] = ()
    orders: tuple[QueryOrder, ...] = ()
    limit: int | None = None
    offset: int | None = None

    def where(self, field: str, operator: Operator, value: Any) -> "DocumentQuery":
        predicate = QueryPredicate(field=field, operator=operator, value=value)
        return self.model_copy(update={"predicates": self.predicates + (predicate,)})

    def order_by(self, field: str, descending: bool = False) -> "DocumentQuery":
        order = QueryOrder(field=field, descending=descending)
        return self.model_copy(update={"orders": self.orders + (order,)})

    def with_limit(self, limit: int) -> "DocumentQuery":
        return self.model_copy(update={"limit": limit})

    def with_offset(self, offset: int) -> "DocumentQuery":
        return self.model_copy(update={"offset": offset})
