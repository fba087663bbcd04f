from abc import abstractmethod
from typing import Any

from shared.clients.ClientInterface import ClientInterface, ClientRequestError
from shared.clients.docstore.models.Query import DocumentQuery
from shared.clients.docstore.models.Snapshot import DocumentSnapshot
from shared.helper.HelperConfig import HelperConfig


class DocStoreClientInterface(ClientInterface):
    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_client_type(self) -> str:
        """
        Returns the type of the client. E.g. "docstore"
        """
        return "docstore"

    @abstractmethod
    def new_document_id(self, collection: str) -> str:
        """
        Allocates a fresh document identifier in the backend's ID space for the given collection.
        No document is written.

        Args:
            collection (str): The collection the identifier is meant for.

        Returns:
            str: An identifier that does not collide with existing documents.
        """
        pass

    ################ ENDPOINTS ##################
    @abstractmethod
    def _get_endpoint_document(self, collection: str, document_id: str) -> str:
        """
        Returns the endpoint path of a single document.

        Args:
            collection (str): The collection name.
            document_id (str): The document identifier.

        Returns:
            str: The endpoint path (e.g. "/documents/customers/abc")
        """
        pass

    @abstractmethod
    def _get_endpoint_run_query(self) -> str:
        """
        Returns the endpoint path for structured queries.
        """
        pass

    @abstractmethod
    def _get_endpoint_count(self) -> str:
        """
        Returns the endpoint path for aggregate count queries.
        """
        pass

    @abstractmethod
    def _get_endpoint_commit(self) -> str:
        """
        Returns the endpoint path for atomic batched writes.
        """
        pass

    def _get_method_set_document(self) -> str:
        """
        Returns the HTTP method that replaces a whole document, creating it if missing.
        """
        return "PUT"

    ##########################################
    ########### PAYLOAD BUILDER ##############
    ##########################################

    @abstractmethod
    def get_query_payload(self, query: DocumentQuery) -> dict:
        """
        Builds the backend-specific request payload for a query.

        Args:
            query (DocumentQuery): The query with predicates, orders, limit and offset.

        Returns:
            dict: The payload for the query request.
        """
        pass

    @abstractmethod
    def get_count_payload(self, query: DocumentQuery) -> dict:
        """
        Builds the backend-specific request payload for an aggregate count.
        Orders, limit and offset of the query are ignored.

        Args:
            query (DocumentQuery): The query whose matches are counted.

        Returns:
            dict: The payload for the count request.
        """
        pass

    @abstractmethod
    def get_set_payload(self, data: dict[str, Any]) -> dict:
        """
        Builds the backend-specific request payload that replaces a document's content.

        Args:
            data (dict[str, Any]): The full document content as Python values.

        Returns:
            dict: The payload for the set request.
        """
        pass

    @abstractmethod
    def get_merge_commit_payload(self, document_paths: list[str], changes: dict[str, Any]) -> dict:
        """
        Builds the backend-specific payload for one atomic commit that merges the same
        field changes into every listed document.

        Args:
            document_paths (list[str]): Fully qualified references of the documents (DocumentSnapshot.path).
            changes (dict[str, Any]): Field/value pairs to merge.

        Returns:
            dict: The payload for the commit request.
        """
        pass

    ##########################################
    ########### RESPONSE PARSER ##############
    ##########################################

    @abstractmethod
    def extract_document(self, raw_response: dict) -> DocumentSnapshot:
        """
        Parses a single document response.

        Args:
            raw_response (dict): The raw JSON document.

        Returns:
            DocumentSnapshot: The document with decoded field values.
        """
        pass

    @abstractmethod
    def extract_query_documents(self, raw_response: Any) -> list[DocumentSnapshot]:
        """
        Parses a query response into documents, in backend order.
        """
        pass

    @abstractmethod
    def extract_count(self, raw_response: Any) -> int:
        """
        Parses an aggregate count response.
        """
        pass

    ##########################################
    ############### REQUESTS #################
    ##########################################

    async def do_get_document(self, collection: str, document_id: str) -> DocumentSnapshot | None:
        """Fetch one document.

        Args:
            collection (str): The collection name.
            document_id (str): The document identifier.

        Returns:
            DocumentSnapshot | None: The document, or None if it does not exist.

        Raises:
            ClientRequestError: On any other non-2xx status.
        """
        resp = await self.do_request(method="GET", endpoint=self._get_endpoint_document(collection, document_id))
        if resp.status_code == 404:
            return None
        if resp.status_code >= 300:
            raise ClientRequestError(url=str(resp.request.url), status_code=resp.status_code, detail=resp.text)
        return self.extract_document(resp.json())

    async def do_run_query(self, query: DocumentQuery) -> list[DocumentSnapshot]:
        """Run a query and return the matching documents.

        Args:
            query (DocumentQuery): The query to run.

        Returns:
            list[DocumentSnapshot]: The matching documents in query order.
        """
        resp = await self.do_request(
            method="POST",
            json=self.get_query_payload(query),
            endpoint=self._get_endpoint_run_query(),
            raise_on_error=True,
        )
        documents = self.extract_query_documents(resp.json())
        self.logging.debug("Query on %s collection '%s' returned %d documents", self.get_engine_name(), query.collection, len(documents))
        return documents

    async def do_count(self, query: DocumentQuery) -> int:
        """Count the documents matching a query with a server-side aggregation.

        Args:
            query (DocumentQuery): The query whose matches are counted.

        Returns:
            int: Total number of matching documents.
        """
        resp = await self.do_request(
            method="POST",
            json=self.get_count_payload(query),
            endpoint=self._get_endpoint_count(),
            raise_on_error=True,
        )
        return self.extract_count(resp.json())

    async def do_set_document(self, collection: str, document_id: str, data: dict[str, Any]) -> None:
        """Create or fully replace a document.

        Args:
            collection (str): The collection name.
            document_id (str): The document identifier.
            data (dict[str, Any]): The full document content.
        """
        await self.do_request(
            method=self._get_method_set_document(),
            json=self.get_set_payload(data),
            endpoint=self._get_endpoint_document(collection, document_id),
            raise_on_error=True,
        )

    async def do_delete_document(self, collection: str, document_id: str) -> None:
        """Delete a document.

        Args:
            collection (str): The collection name.
            document_id (str): The document identifier.
        """
        await self.do_request(
            method="DELETE",
            endpoint=self._get_endpoint_document(collection, document_id),
            raise_on_error=True,
        )

    async def do_commit_merge(self, document_paths: list[str], changes: dict[str, Any]) -> None:
        """Merge the same field changes into several documents in one atomic commit.

        Args:
            document_paths (list[str]): Fully qualified references of the documents.
            changes (dict[str, Any]): Field/value pairs to merge.
        """
        await self.do_request(
            method="POST",
            json=self.get_merge_commit_payload(document_paths, changes),
            endpoint=self._get_endpoint_commit(),
            raise_on_error=True,
        )
