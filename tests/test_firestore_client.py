import json
from datetime import datetime, time, timezone
from decimal import Decimal
from enum import Enum
from uuid import UUID

import httpx
import pytest

from services.storage.StorageService import StorageService
from shared.clients.ClientInterface import ClientRequestError
from shared.clients.docstore.firestore.DocStoreClientFirestore import (
    AUTO_ID_LENGTH,
    DocStoreClientFirestore,
    decode_fields,
    encode_field_path,
    encode_value,
)
from shared.clients.docstore.models.Query import DocumentQuery
from shared.models.query import Operator
from shared.models.record import Record

DOCS = "projects/demo-project/databases/(default)/documents"


class Recorder:
    """Mock transport handler answering from a queue and keeping every request."""

    def __init__(self, *responses: httpx.Response):
        self.responses = list(responses)
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.responses.pop(0) if self.responses else httpx.Response(200, json={})

    def body(self, index: int = -1) -> dict:
        return json.loads(self.requests[index].content)


@pytest.fixture
def firestore(helper_config):
    return DocStoreClientFirestore(helper_config=helper_config)


async def _booted(client, recorder):
    await client.boot(transport=httpx.MockTransport(recorder))
    return client


def test_encode_value_types():
    assert encode_value(None) == {"nullValue": None}
    assert encode_value(True) == {"booleanValue": True}
    assert encode_value(7) == {"integerValue": "7"}
    assert encode_value(1.5) == {"doubleValue": 1.5}
    assert encode_value(datetime(2024, 2, 29, tzinfo=timezone.utc)) == {"timestampValue": "2024-02-29T00:00:00Z"}
    assert encode_value(["a", 1]) == {"arrayValue": {"values": [{"stringValue": "a"}, {"integerValue": "1"}]}}
    assert encode_value({"k": "v"}) == {"mapValue": {"fields": {"k": {"stringValue": "v"}}}}
    with pytest.raises(TypeError):
        encode_value(object())


def test_decode_fields():
    fields = {
        "name": {"stringValue": "Ana"},
        "age": {"integerValue": "42"},
        "score": {"doubleValue": 9.5},
        "active": {"booleanValue": False},
        "nothing": {"nullValue": None},
        "created": {"timestampValue": "2024-01-02T03:04:05.123456Z"},
        "tags": {"arrayValue": {}},
        "address": {"mapValue": {"fields": {"city": {"stringValue": "Lisboa"}}}},
    }

    assert decode_fields(fields) == {
        "name": "Ana",
        "age": 42,
        "score": 9.5,
        "active": False,
        "nothing": None,
        "created": datetime(2024, 1, 2, 3, 4, 5, 123456, tzinfo=timezone.utc),
        "tags": [],
        "address": {"city": "Lisboa"},
    }


def test_new_document_id_shape(firestore):
    first, second = firestore.new_document_id("customers"), firestore.new_document_id("customers")
    assert len(first) == AUTO_ID_LENGTH
    assert first.isalnum()
    assert first != second


def test_missing_project_id_fails_configuration(docstore_env, helper_config):
    docstore_env.delenv("DOCSTORE_FIRESTORE_PROJECT_ID")
    with pytest.raises(ValueError):
        DocStoreClientFirestore(helper_config=helper_config)


def test_query_payload_shape(firestore):
    query = (
        DocumentQuery(collection="customers")
        .where("active", Operator.EQUAL, True)
        .where("balance", Operator.GREATER_EQUAL, 10.0)
        .order_by("name")
        .order_by("balance", descending=True)
        .with_limit(2)
        .with_offset(4)
    )

    structured = firestore.get_query_payload(query)["structuredQuery"]

    assert structured["from"] == [{"collectionId": "customers"}]
    assert structured["where"]["compositeFilter"]["op"] == "AND"
    assert structured["where"]["compositeFilter"]["filters"][1] == {
        "fieldFilter": {"field": {"fieldPath": "balance"}, "op": "GREATER_THAN_OR_EQUAL", "value": {"doubleValue": 10.0}}
    }
    assert structured["orderBy"] == [
        {"field": {"fieldPath": "name"}, "direction": "ASCENDING"},
        {"field": {"fieldPath": "balance"}, "direction": "DESCENDING"},
    ]
    assert (structured["limit"], structured["offset"]) == (2, 4)


def test_count_payload_ignores_orders_and_paging(firestore):
    query = DocumentQuery(collection="customers").where("raw_index", Operator.ARRAY_CONTAINS, "an").order_by("name").with_limit(5)

    aggregation = firestore.get_count_payload(query)["structuredAggregationQuery"]

    assert aggregation["aggregations"] == [{"alias": "count", "count": {}}]
    assert aggregation["structuredQuery"] == {
        "from": [{"collectionId": "customers"}],
        "where": {"fieldFilter": {"field": {"fieldPath": "raw_index"}, "op": "ARRAY_CONTAINS", "value": {"stringValue": "an"}}},
    }


@pytest.mark.asyncio
async def test_get_document_sends_bearer_token_and_decodes(firestore):
    recorder = Recorder(
        httpx.Response(200, json={"name": f"{DOCS}/customers/c1", "fields": {"name": {"stringValue": "Ana"}}, "updateTime": "2024-05-01T10:00:00Z"})
    )
    client = await _booted(firestore, recorder)

    snapshot = await client.do_get_document("customers", "c1")

    request = recorder.requests[0]
    assert request.method == "GET"
    assert request.url == f"http://firestore.test/v1/{DOCS}/customers/c1"
    assert request.headers["Authorization"] == "Bearer secret-token"
    assert (snapshot.id, snapshot.path, snapshot.data) == ("c1", f"{DOCS}/customers/c1", {"name": "Ana"})
    assert snapshot.update_time == datetime(2024, 5, 1, 10, tzinfo=timezone.utc)
    await client.close()


@pytest.mark.asyncio
async def test_get_document_not_found_and_errors(firestore):
    recorder = Recorder(httpx.Response(404, json={"error": {"code": 404}}), httpx.Response(500, text="boom"))
    client = await _booted(firestore, recorder)

    assert await client.do_get_document("customers", "missing") is None
    with pytest.raises(ClientRequestError) as exc_info:
        await client.do_get_document("customers", "c1")
    assert exc_info.value.status_code == 500
    await client.close()


@pytest.mark.asyncio
async def test_run_query_skips_progress_entries(firestore):
    recorder = Recorder(
        httpx.Response(
            200,
            json=[
                {"readTime": "2024-05-01T10:00:00Z"},
                {"document": {"name": f"{DOCS}/customers/c1", "fields": {"balance": {"integerValue": "3"}}}},
                {"document": {"name": f"{DOCS}/customers/c2", "fields": {}}},
            ],
        )
    )
    client = await _booted(firestore, recorder)

    snapshots = await client.do_run_query(DocumentQuery(collection="customers"))

    assert recorder.requests[0].url.path.endswith("/documents:runQuery")
    assert [s.id for s in snapshots] == ["c1", "c2"]
    assert snapshots[0].data == {"balance": 3}
    await client.close()


@pytest.mark.asyncio
async def test_count_reads_aggregate_result(firestore):
    recorder = Recorder(httpx.Response(200, json=[{"result": {"aggregateFields": {"count": {"integerValue": "17"}}}, "readTime": "x"}]))
    client = await _booted(firestore, recorder)

    assert await client.do_count(DocumentQuery(collection="customers")) == 17
    assert recorder.requests[0].url.path.endswith("/documents:runAggregationQuery")
    await client.close()


@pytest.mark.asyncio
async def test_set_document_replaces_with_patch(firestore):
    recorder = Recorder(httpx.Response(200, json={}))
    client = await _booted(firestore, recorder)

    await client.do_set_document("customers", "c1", {"name": "Ana", "raw_index": ["ana"]})

    request = recorder.requests[0]
    assert request.method == "PATCH"
    assert "updateMask" not in str(request.url)
    assert recorder.body() == {
        "fields": {"name": {"stringValue": "Ana"}, "raw_index": {"arrayValue": {"values": [{"stringValue": "ana"}]}}}
    }
    await client.close()


@pytest.mark.asyncio
async def test_set_and_delete_raise_on_error(firestore):
    recorder = Recorder(httpx.Response(403, text="denied"), httpx.Response(503, text="down"))
    client = await _booted(firestore, recorder)

    with pytest.raises(ClientRequestError):
        await client.do_set_document("customers", "c1", {"name": "Ana"})
    with pytest.raises(ClientRequestError):
        await client.do_delete_document("customers", "c1")
    assert recorder.requests[1].method == "DELETE"
    await client.close()


@pytest.mark.asyncio
async def test_commit_merge_uses_update_mask_per_document(firestore):
    recorder = Recorder(httpx.Response(200, json={"writeResults": [{}, {}]}))
    client = await _booted(firestore, recorder)

    await client.do_commit_merge([f"{DOCS}/customers/c1", f"{DOCS}/customers/c2"], {"active": False})

    writes = recorder.body()["writes"]
    assert recorder.requests[0].url.path.endswith("/documents:commit")
    assert [w["update"]["name"] for w in writes] == [f"{DOCS}/customers/c1", f"{DOCS}/customers/c2"]
    assert all(w["update"]["fields"] == {"active": {"booleanValue": False}} for w in writes)
    assert all(w["updateMask"] == {"fieldPaths": ["active"]} for w in writes)
    await client.close()


@pytest.mark.asyncio
async def test_request_before_boot_fails(firestore):
    with pytest.raises(Exception, match="boot"):
        await firestore.do_count(DocumentQuery(collection="customers"))


def test_field_paths_quote_non_identifier_segments():
    assert encode_field_path("address.city") == "address.city"
    assert encode_field_path("is-active") == "`is-active`"
    assert encode_field_path("meta.first name.x1") == "meta.`first name`.x1"
    assert encode_field_path("odd`name") == "`odd\\`name`"


def test_filters_and_orders_use_quoted_field_paths(firestore):
    query = DocumentQuery(collection="customers").where("is-active", Operator.EQUAL, True).order_by("first-name")

    structured = firestore.get_query_payload(query)["structuredQuery"]

    assert structured["where"]["fieldFilter"]["field"] == {"fieldPath": "`is-active`"}
    assert structured["orderBy"][0]["field"] == {"fieldPath": "`first-name`"}


def test_commit_merge_treats_each_key_as_one_field(firestore):
    payload = firestore.get_merge_commit_payload([f"{DOCS}/customers/c1"], {"address.city": "Porto", "active": False})

    write = payload["writes"][0]
    assert set(write["update"]["fields"]) == {"address.city", "active"}
    assert write["updateMask"] == {"fieldPaths": ["`address.city`", "active"]}


class Plan(str, Enum):
    FREE = "free"
    PRO = "pro"


class Priority(Enum):
    LOW = 1
    HIGH = 2


class Invoice(Record):
    ref: UUID = UUID("12345678-1234-5678-1234-567812345678")
    total: Decimal = Decimal("19.90")
    plan: Plan = Plan.PRO
    priority: Priority = Priority.HIGH
    labels: set[str] = {"paid"}
    due_at: time = time(9, 30)

    @classmethod
    def collection_name(cls) -> str:
        return "invoices"

    def search_terms(self) -> list[str]:
        return []


def test_encode_value_common_model_types():
    assert encode_value(UUID("12345678-1234-5678-1234-567812345678")) == {"stringValue": "12345678-1234-5678-1234-567812345678"}
    assert encode_value(Decimal("2.5")) == {"doubleValue": 2.5}
    assert encode_value(Plan.FREE) == {"stringValue": "free"}
    assert encode_value(Priority.LOW) == {"integerValue": "1"}
    assert encode_value(frozenset({"a"})) == {"arrayValue": {"values": [{"stringValue": "a"}]}}
    assert encode_value(time(9, 30)) == {"stringValue": "09:30:00"}


@pytest.mark.asyncio
async def test_sync_writes_models_with_uuid_decimal_and_enum_fields(firestore, helper_config):
    recorder = Recorder(httpx.Response(200, json={}))
    client = await _booted(firestore, recorder)
    storage = StorageService(helper_config=helper_config, docstore_client=client)

    await storage.sync(Invoice(id="i1"))

    fields = recorder.body()["fields"]
    assert fields["ref"] == {"stringValue": "12345678-1234-5678-1234-567812345678"}
    assert fields["total"] == {"doubleValue": 19.9}
    assert fields["plan"] == {"stringValue": "pro"}
    assert fields["priority"] == {"integerValue": "2"}
    assert fields["labels"] == {"arrayValue": {"values": [{"stringValue": "paid"}]}}
    assert recorder.requests[0].url.path.endswith("/documents/invoices/i1")
    await client.close()
