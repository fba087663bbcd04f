"""Storage service.

Generic data access for every Model type: point lookups, listing with
filters/orders/paging, counting, summing, full-document writes and
conditional bulk field updates, all against one document store client.

Failure contract per operation:
  get                 → zero value of the model on not-found, backend or decode failure
  count / sum / list  → backend failures logged, empty/zero results returned
  sync / delete       → backend failures propagated to the caller
  sync_list           → backend failures logged, never raised
"""

from typing import Any, TypeVar

import httpx
from pydantic import ValidationError

from shared.clients.ClientInterface import ClientRequestError
from shared.clients.docstore.DocStoreClientInterface import DocStoreClientInterface
from shared.clients.docstore.models.Query import DocumentQuery
from shared.clients.docstore.models.Snapshot import DocumentSnapshot
from shared.helper.HelperConfig import HelperConfig
from shared.helper.query_builder import apply_filters, apply_orders, parse_float, CoercionError
from shared.helper.search_index import searchify
from shared.models.query import Filter, Payload, ResultList
from shared.models.record import Model, RAW_INDEX_FIELD

T = TypeVar("T", bound=Model)

# failures of a single backend call
BACKEND_ERRORS = (ClientRequestError, httpx.HTTPError)


class StorageService:
    """Runs the generic storage operations for any Model type against one document store client."""

    def __init__(self, helper_config: HelperConfig, docstore_client: DocStoreClientInterface) -> None:
        self.logging = helper_config.get_logger()
        self._docstore = docstore_client

    ##########################################
    ################ READ ####################
    ##########################################

    async def get(self, model: type[T], document_id: str) -> T:
        """Fetch one entity by identifier.

        Args:
            model (type[T]): The model class.
            document_id (str): The identifier within the model's collection.

        Returns:
            T: The entity, or model.empty() if it does not exist or cannot be read.
        """
        collection = model.collection_name()
        try:
            snapshot = await self._docstore.do_get_document(collection, document_id)
        except BACKEND_ERRORS as e:
            self.logging.error("Failed to fetch %s/%s: %s", collection, document_id, e)
            return model.empty()
        if snapshot is None:
            self.logging.info("Document %s/%s not found.", collection, document_id)
            return model.empty()

        entity = self._decode(model, snapshot)
        return entity if entity is not None else model.empty()

    def new_id(self, model: type[Model]) -> str:
        """Allocate a fresh identifier in the model's collection. Nothing is written."""
        return self._docstore.new_document_id(model.collection_name())

    async def count(self, model: type[Model], filters: list[Filter] | None = None) -> int:
        """Count matching entities with a server-side aggregation.

        Args:
            model (type[Model]): The model class.
            filters (list[Filter] | None): Filters; uncoercible ones are skipped.

        Returns:
            int: Number of matches, 0 on backend failure.
        """
        return await self._count(self._build_query(model, filters))

    async def sum(self, model: type[Model], filters: list[Filter] | None, field: str) -> float:
        """Sum a field over all matching entities.

        Each raw value is stringified and parsed as a float; values that do not
        parse (missing, text, lists, …) are skipped.

        Args:
            model (type[Model]): The model class.
            filters (list[Filter] | None): Filters; uncoercible ones are skipped.
            field (str): Top-level document field to sum.

        Returns:
            float: The sum, 0.0 when nothing matches or the backend fails.
        """
        snapshots = await self._fetch(self._build_query(model, filters))
        total = 0.0
        for snapshot in snapshots:
            try:
                total += parse_float(self._stringify(snapshot.data.get(field)))
            except CoercionError:
                continue
        return total

    ##########################################
    ################ WRITE ###################
    ##########################################

    async def sync(self, entity: Model) -> None:
        """Create or replace an entity, refreshing its search index first.

        Args:
            entity (Model): The entity to persist.

        Raises:
            ClientRequestError: If the backend rejects the write.
            httpx.HTTPError: If the backend cannot be reached.
        """
        index = searchify(entity.search_terms())
        if RAW_INDEX_FIELD in type(entity).model_fields:
            setattr(entity, RAW_INDEX_FIELD, index)

        data = entity.model_dump()
        data[RAW_INDEX_FIELD] = index
        await self._docstore.do_set_document(entity.collection_name(), entity.document_id(), data)
        self.logging.debug("Synced %s/%s with %d index entries", entity.collection_name(), entity.document_id(), len(index))

    async def delete(self, entity: Model) -> None:
        """Delete an entity's document.

        Raises:
            ClientRequestError: If the backend rejects the delete.
            httpx.HTTPError: If the backend cannot be reached.
        """
        await self._docstore.do_delete_document(entity.collection_name(), entity.document_id())

    async def sync_list(self, model: type[Model], filters: list[Filter] | None, field: str, value: Any) -> None:
        """Merge {field: value} into every matching entity with one atomic commit.

        Nothing is committed when no entity matches. Failures are logged only.

        Args:
            model (type[Model]): The model class.
            filters (list[Filter] | None): Filters; uncoercible ones are skipped.
            field (str): Field to set.
            value (Any): Value to set.
        """
        query = self._build_query(model, filters)
        snapshots = await self._fetch(query)
        if not snapshots:
            return

        try:
            await self._docstore.do_commit_merge([s.path for s in snapshots], {field: value})
        except BACKEND_ERRORS as e:
            self.logging.error("An error has occurred while updating '%s' on %d %s documents: %s", field, len(snapshots), query.collection, e)
            return
        self.logging.info("Updated '%s' on %d %s documents.", field, len(snapshots), query.collection)

    ##########################################
    ############### HELPERS ##################
    ##########################################

    def _build_query(self, model: type[Model], filters: list[Filter] | None) -> DocumentQuery:
        return apply_filters(DocumentQuery(collection=model.collection_name()), filters)

    async def _count(self, query: DocumentQuery) -> int:
        try:
            return await self._docstore.do_count(query)
        except BACKEND_ERRORS as e:
            self.logging.error("Failed to count %s documents: %s", query.collection, e)
            return 0

    async def _fetch(self, query: DocumentQuery) -> list[DocumentSnapshot]:
        try:
            return await self._docstore.do_run_query(query)
        except BACKEND_ERRORS as e:
            self.logging.error("Failed to query %s documents: %s", query.collection, e)
            return []

    def _decode(self, model: type[T], snapshot: DocumentSnapshot) -> T | None:
        try:
            return model.model_validate(snapshot.data)
        except ValidationError as e:
            self.logging.warning("Skipping undecodable document %s: %s", snapshot.path or snapshot.id, e)
            return None

    def _stringify(self, value: Any) -> str:
        if value is None:
            return ""
        if isinstance(value, bool):
            return str(value).lower()
        return str(value)

    ##########################################
    ############### LISTING ##################
    ##########################################

    async def list(self, model: type[T], payload: Payload) -> ResultList[T]:
        """List one page of entities.

        The count covers all matches before ordering and paging. A zero count
        returns immediately without fetching. Documents that fail to decode are
        dropped from the page while the count stays as computed.

        Args:
            model (type[T]): The model class.
            payload (Payload): Filters, orders and zero-based paging.

        Returns:
            ResultList[T]: Total count and the requested page.
        """
        query = self._build_query(model, payload.filters)
        count = await self._count(query)
        if count == 0:
            return ResultList[model](count=0, data=[])

        query = apply_orders(query, payload.orders)
        if payload.page_size > 0:
            query = query.with_limit(payload.page_size)
        if payload.page > 0:
            query = query.with_offset(payload.page * payload.page_size)

        snapshots = await self._fetch(query)
        data = [entity for entity in (self._decode(model, s) for s in snapshots) if entity is not None]
        return ResultList[model](count=count, data=data)

