"""Test doubles shared by the test modules."""

import itertools
import operator
from typing import Any

from pydantic import Field

from shared.clients.ClientInterface import ClientRequestError
from shared.clients.docstore.DocStoreClientInterface import DocStoreClientInterface
from shared.clients.docstore.models.Query import DocumentQuery, QueryPredicate
from shared.clients.docstore.models.Snapshot import DocumentSnapshot
from shared.models.config import EnvConfig
from shared.models.query import Operator
from shared.models.record import Record

_COMPARATORS = {
    Operator.LESS: operator.lt,
    Operator.LESS_EQUAL: operator.le,
    Operator.EQUAL: operator.eq,
    Operator.GREATER: operator.gt,
    Operator.GREATER_EQUAL: operator.ge,
    Operator.NOT_EQUAL: operator.ne,
}


class Customer(Record):
    name: str = Field(default="", min_length=2)
    tags: list[str] = []
    balance: float = 0.0
    active: bool = True

    @classmethod
    def collection_name(cls) -> str:
        return "customers"

    def search_terms(self) -> list[str]:
        return [self.name, *self.tags]


class InMemoryDocStoreClient(DocStoreClientInterface):
    """Document store client keeping documents in a dict and recording every backend call."""

    def __init__(self, helper_config):
        super().__init__(helper_config=helper_config)
        self.collections: dict[str, dict[str, dict[str, Any]]] = {}
        self.calls: list[tuple] = []
        self.failing: set[str] = set()
        self._ids = itertools.count(1)

    def seed(self, collection: str, document_id: str, data: dict[str, Any]) -> None:
        self.collections.setdefault(collection, {})[document_id] = dict(data)

    def _maybe_fail(self, op: str) -> None:
        self.calls.append((op,))
        if op in self.failing:
            raise ClientRequestError(url=f"memory://{op}", status_code=503, detail="unavailable")

    ################ CLIENT CONTRACT ##################
    def _get_engine_name(self) -> str:
        return "Memory"

    def _get_required_config(self) -> list[EnvConfig]:
        return []

    def _get_auth_header(self) -> dict:
        return {}

    def _get_base_url(self) -> str:
        return "memory://"

    def _get_endpoint_healthcheck(self) -> str:
        return ""

    def _get_endpoint_document(self, collection: str, document_id: str) -> str:
        return f"/{collection}/{document_id}"

    def _get_endpoint_run_query(self) -> str:
        return "/query"

    def _get_endpoint_count(self) -> str:
        return "/count"

    def _get_endpoint_commit(self) -> str:
        return "/commit"

    def get_query_payload(self, query: DocumentQuery) -> dict:
        return query.model_dump()

    def get_count_payload(self, query: DocumentQuery) -> dict:
        return query.model_dump()

    def get_set_payload(self, data: dict[str, Any]) -> dict:
        return data

    def get_merge_commit_payload(self, document_paths: list[str], changes: dict[str, Any]) -> dict:
        return {"paths": document_paths, "changes": changes}

    def extract_document(self, raw_response: dict) -> DocumentSnapshot:
        return DocumentSnapshot(**raw_response)

    def extract_query_documents(self, raw_response: Any) -> list[DocumentSnapshot]:
        return [self.extract_document(item) for item in raw_response]

    def extract_count(self, raw_response: Any) -> int:
        return int(raw_response)

    def new_document_id(self, collection: str) -> str:
        return f"{collection}-{next(self._ids)}"

    ################ IN-MEMORY BACKEND ##################
    async def do_healthcheck(self):
        self._maybe_fail("healthcheck")

    def _matches(self, data: dict[str, Any], predicate: QueryPredicate) -> bool:
        if predicate.field not in data:
            return False
        current = data[predicate.field]
        if predicate.operator == Operator.ARRAY_CONTAINS:
            return isinstance(current, list) and predicate.value in current
        try:
            return _COMPARATORS[predicate.operator](current, predicate.value)
        except TypeError:
            return False

    def _select(self, query: DocumentQuery) -> list[DocumentSnapshot]:
        docs = self.collections.get(query.collection, {})
        hits = [
            DocumentSnapshot(id=doc_id, path=f"{query.collection}/{doc_id}", data=dict(data))
            for doc_id, data in docs.items()
            if all(self._matches(data, p) for p in query.predicates)
        ]
        for order in reversed(query.orders):
            hits.sort(key=lambda s: s.data.get(order.field), reverse=order.descending)
        start = query.offset or 0
        end = start + query.limit if query.limit is not None else None
        return hits[start:end]

    async def do_get_document(self, collection: str, document_id: str) -> DocumentSnapshot | None:
        self._maybe_fail("get")
        data = self.collections.get(collection, {}).get(document_id)
        if data is None:
            return None
        return DocumentSnapshot(id=document_id, path=f"{collection}/{document_id}", data=dict(data))

    async def do_run_query(self, query: DocumentQuery) -> list[DocumentSnapshot]:
        self._maybe_fail("query")
        self.calls[-1] = ("query", query)
        return self._select(query)

    async def do_count(self, query: DocumentQuery) -> int:
        self._maybe_fail("count")
        self.calls[-1] = ("count", query)
        return len(self._select(query.model_copy(update={"orders": (), "limit": None, "offset": None})))

    async def do_set_document(self, collection: str, document_id: str, data: dict[str, Any]) -> None:
        self._maybe_fail("set")
        self.seed(collection, document_id, data)

    async def do_delete_document(self, collection: str, document_id: str) -> None:
        self._maybe_fail("delete")
        self.collections.get(collection, {}).pop(document_id, None)

    async def do_commit_merge(self, document_paths: list[str], changes: dict[str, Any]) -> None:
        self._maybe_fail("commit")
        for path in document_paths:
            collection, document_id = path.split("/", 1)
            self.collections[collection][document_id].update(changes)

    def ops(self) -> list[str]:
        return [call[0] for call in self.calls]
