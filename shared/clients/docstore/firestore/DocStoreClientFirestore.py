import base64
import re
import secrets
import string
from datetime import date, datetime, time, timezone
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID

from shared.clients.docstore.DocStoreClientInterface import DocStoreClientInterface
from shared.clients.docstore.models.Query import DocumentQuery, QueryPredicate
from shared.clients.docstore.models.Snapshot import DocumentSnapshot
from shared.helper.HelperConfig import HelperConfig
from shared.models.config import EnvConfig
from shared.models.query import Operator

AUTO_ID_LENGTH = 20
AUTO_ID_ALPHABET = string.ascii_letters + string.digits

_OPERATORS: dict[Operator, str] = {
    Operator.LESS: "LESS_THAN",
    Operator.LESS_EQUAL: "LESS_THAN_OR_EQUAL",
    Operator.EQUAL: "EQUAL",
    Operator.GREATER: "GREATER_THAN",
    Operator.GREATER_EQUAL: "GREATER_THAN_OR_EQUAL",
    Operator.NOT_EQUAL: "NOT_EQUAL",
    Operator.ARRAY_CONTAINS: "ARRAY_CONTAINS",
}

# segments matching this need no backtick quoting in a field path
_SIMPLE_SEGMENT = re.compile(r"[A-Za-z_][A-Za-z_0-9]*")


def quote_field_segment(segment: str) -> str:
    if _SIMPLE_SEGMENT.fullmatch(segment):
        return segment
    escaped = segment.replace("\\", "\\\\").replace("`", "\\`")
    return f"`{escaped}`"


def encode_field_path(field: str) -> str:
    """Encode a dotted field name ("address.city") as a Firestore field path, quoting segments like "is-active"."""
    return ".".join(quote_field_segment(segment) for segment in field.split("."))


def _format_timestamp(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


def encode_value(value: Any) -> dict:
    """Encode a Python value as a Firestore REST typed value.

    Args:
        value (Any): None, bool, int, float, Decimal, str, UUID, Enum, bytes, datetime, date,
            time, list/tuple/set or dict.

    Returns:
        dict: The typed value, e.g. {"integerValue": "3"}.

    Raises:
        TypeError: If the value has no Firestore representation.
    """
    if value is None:
        return {"nullValue": None}
    # enums store their value, str and int enums included
    if isinstance(value, Enum):
        return encode_value(value.value)
    # bool before int, bool is an int subclass
    if isinstance(value, bool):
        return {"booleanValue": value}
    if isinstance(value, int):
        return {"integerValue": str(value)}
    if isinstance(value, float):
        return {"doubleValue": value}
    if isinstance(value, Decimal):
        return {"doubleValue": float(value)}
    if isinstance(value, str):
        return {"stringValue": value}
    if isinstance(value, UUID):
        return {"stringValue": str(value)}
    if isinstance(value, time):
        return {"stringValue": value.isoformat()}
    if isinstance(value, datetime):
        return {"timestampValue": _format_timestamp(value)}
    if isinstance(value, date):
        return {"timestampValue": _format_timestamp(datetime.combine(value, time.min, tzinfo=timezone.utc))}
    if isinstance(value, bytes):
        return {"bytesValue": base64.b64encode(value).decode("ascii")}
    if isinstance(value, (list, tuple, set, frozenset)):
        return {"arrayValue": {"values": [encode_value(item) for item in value]}}
    if isinstance(value, dict):
        return {"mapValue": {"fields": encode_fields(value)}}
    raise TypeError(f"Cannot encode value of type {type(value).__name__} for Firestore.")


def encode_fields(data: dict[str, Any]) -> dict:
    return {str(key): encode_value(value) for key, value in data.items()}


def decode_value(typed: dict) -> Any:
    """Decode a Firestore REST typed value into a Python value.

    Args:
        typed (dict): A typed value such as {"stringValue": "abc"}.

    Returns:
        Any: The Python value. Unknown value kinds decode to None.
    """
    if "nullValue" in typed:
        return None
    if "booleanValue" in typed:
        return bool(typed["booleanValue"])
    if "integerValue" in typed:
        return int(typed["integerValue"])
    if "doubleValue" in typed:
        return float(typed["doubleValue"])
    if "stringValue" in typed:
        return typed["stringValue"]
    if "timestampValue" in typed:
        return datetime.fromisoformat(typed["timestampValue"].replace("Z", "+00:00"))
    if "bytesValue" in typed:
        return base64.b64decode(typed["bytesValue"])
    if "referenceValue" in typed:
        return typed["referenceValue"]
    if "geoPointValue" in typed:
        return dict(typed["geoPointValue"])
    if "arrayValue" in typed:
        return [decode_value(item) for item in typed["arrayValue"].get("values", [])]
    if "mapValue" in typed:
        return decode_fields(typed["mapValue"].get("fields", {}))
    return None


def decode_fields(fields: dict) -> dict[str, Any]:
    return {key: decode_value(value) for key, value in fields.items()}


class DocStoreClientFirestore(DocStoreClientInterface):
    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)
        self._base_url = self.get_config_val("BASE_URL", default="https://firestore.googleapis.com/v1", val_type="string")
        self._access_token = self.get_config_val("ACCESS_TOKEN", default="", val_type="string")
        self._project_id = self.get_config_val("PROJECT_ID", default=None, val_type="string")
        self._database = self.get_config_val("DATABASE", default="(default)", val_type="string")

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_engine_name(self) -> str:
        return "Firestore"

    def get_database_path(self) -> str:
        return f"projects/{self._project_id}/databases/{self._database}"

    def get_documents_root(self) -> str:
        return f"{self.get_database_path()}/documents"

    def new_document_id(self, collection: str) -> str:
        # same shape as the auto-IDs of the official Firestore SDKs
        return "".join(secrets.choice(AUTO_ID_ALPHABET) for _ in range(AUTO_ID_LENGTH))

    ################ CONFIG ##################
    def _get_required_config(self) -> list[EnvConfig]:
        return [
            EnvConfig(env_key="BASE_URL", val_type="string", default="https://firestore.googleapis.com/v1"),
            EnvConfig(env_key="ACCESS_TOKEN", val_type="string", default=""),
            EnvConfig(env_key="PROJECT_ID", val_type="string", default=None),
            EnvConfig(env_key="DATABASE", val_type="string", default="(default)"),
        ]

    ################ AUTH ##################
    def _get_auth_header(self) -> dict:
        if self._access_token:
            return {"Authorization": f"Bearer {self._access_token}"}
        else:
            return {}

    ################ ENDPOINTS ##################
    def _get_base_url(self) -> str:
        return self._base_url

    def _get_endpoint_healthcheck(self) -> str:
        return f"/{self.get_database_path()}"

    def _get_endpoint_document(self, collection: str, document_id: str) -> str:
        return f"/{self.get_documents_root()}/{collection}/{document_id}"

    def _get_endpoint_run_query(self) -> str:
        return f"/{self.get_documents_root()}:runQuery"

    def _get_endpoint_count(self) -> str:
        return f"/{self.get_documents_root()}:runAggregationQuery"

    def _get_endpoint_commit(self) -> str:
        return f"/{self.get_documents_root()}:commit"

    def _get_method_set_document(self) -> str:
        # PATCH without an update mask replaces the whole document
        return "PATCH"

    ##########################################
    ########### PAYLOAD BUILDER ##############
    ##########################################

    def _build_field_filter(self, predicate: QueryPredicate) -> dict:
        return {
            "fieldFilter": {
                "field": {"fieldPath": encode_field_path(predicate.field)},
                "op": _OPERATORS[predicate.operator],
                "value": encode_value(predicate.value),
            }
        }

    def _build_where(self, query: DocumentQuery) -> dict | None:
        filters = [self._build_field_filter(p) for p in query.predicates]
        if not filters:
            return None
        if len(filters) == 1:
            return filters[0]
        return {"compositeFilter": {"op": "AND", "filters": filters}}

    def _build_structured_query(self, query: DocumentQuery, with_paging: bool = True) -> dict:
        structured: dict = {"from": [{"collectionId": query.collection}]}
        where = self._build_where(query)
        if where is not None:
            structured["where"] = where
        if not with_paging:
            return structured
        if query.orders:
            structured["orderBy"] = [
                {"field": {"fieldPath": encode_field_path(o.field)}, "direction": "DESCENDING" if o.descending else "ASCENDING"}
                for o in query.orders
            ]
        if query.limit is not None:
            structured["limit"] = query.limit
        if query.offset is not None:
            structured["offset"] = query.offset
        return structured

    def get_query_payload(self, query: DocumentQuery) -> dict:
        return {"structuredQuery": self._build_structured_query(query)}

    def get_count_payload(self, query: DocumentQuery) -> dict:
        return {
            "structuredAggregationQuery": {
                "structuredQuery": self._build_structured_query(query, with_paging=False),
                "aggregations": [{"alias": "count", "count": {}}],
            }
        }

    def get_set_payload(self, data: dict[str, Any]) -> dict:
        return {"fields": encode_fields(data)}

    def get_merge_commit_payload(self, document_paths: list[str], changes: dict[str, Any]) -> dict:
        # each key is one top-level field, "address.city" included, as the mask quotes it whole
        return {
            "writes": [
                {
                    "update": {"name": path, "fields": encode_fields(changes)},
                    "updateMask": {"fieldPaths": [quote_field_segment(key) for key in changes]},
                }
                for path in document_paths
            ]
        }

    ##########################################
    ########### RESPONSE PARSER ##############
    ##########################################

    def extract_document(self, raw_response: dict) -> DocumentSnapshot:
        name = raw_response.get("name", "")
        update_time = raw_response.get("updateTime")
        return DocumentSnapshot(
            id=name.rsplit("/", 1)[-1],
            path=name,
            data=decode_fields(raw_response.get("fields", {})),
            update_time=datetime.fromisoformat(update_time.replace("Z", "+00:00")) if update_time else None,
        )

    def extract_query_documents(self, raw_response: Any) -> list[DocumentSnapshot]:
        # runQuery streams one entry per result; entries without "document" only carry progress info
        return [self.extract_document(entry["document"]) for entry in raw_response if "document" in entry]

    def extract_count(self, raw_response: Any) -> int:
        for entry in raw_response:
            fields = entry.get("result", {}).get("aggregateFields", {})
            if "count" in fields:
                return int(decode_value(fields["count"]) or 0)
        return 0
