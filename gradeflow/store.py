"""
Prefix-addressable record store.

Every entity lives under a string key whose first segment names its type
(``course:``, ``submission:``, ...). Writes are upserts, atomic per key only;
``scan_prefix`` returns records in no particular order and callers sort.
"""
from __future__ import annotations

import copy
import logging
import secrets
import string
import threading
import time
from decimal import Decimal
from typing import Any, Dict, List, Optional, Protocol

from boto3.dynamodb.conditions import Attr
from botocore.exceptions import BotoCoreError, ClientError

from .aws_clients import dynamodb_resource
from .config import Settings
from .errors import UpstreamFailure

logger = logging.getLogger(__name__)

Record = Dict[str, Any]

KEY_ATTRIBUTE = "pk"
_ID_ALPHABET = string.ascii_lowercase + string.digits


def new_record_id(prefix: str) -> str:
    """Return a fresh key such as ``course:1700000000000-k3j9x0a1b``."""
    suffix = "".join(secrets.choice(_ID_ALPHABET) for _ in range(9))
    return f"{prefix}:{int(time.time() * 1000)}-{suffix}"


class RecordStore(Protocol):
    """Interface every record store backend implements."""

    def put(self, key: str, record: Record) -> None:
        ...

    def get(self, key: str) -> Optional[Record]:
        ...

    def scan_prefix(self, prefix: str) -> List[Record]:
        ...


class InMemoryRecordStore:
    """Process-local store backed by a dict. Used for development and tests."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._records: Dict[str, Record] = {}

    def put(self, key: str, record: Record) -> None:
        with self._lock:
            self._records[key] = copy.deepcopy(record)

    def get(self, key: str) -> Optional[Record]:
        with self._lock:
            record = self._records.get(key)
            return copy.deepcopy(record) if record is not None else None

    def scan_prefix(self, prefix: str) -> List[Record]:
        with self._lock:
            return [
                copy.deepcopy(record)
                for key, record in self._records.items()
                if key.startswith(prefix)
            ]


def _to_dynamo(value: Any) -> Any:
    if isinstance(value, bool) or value is None:
        return value
    if isinstance(value, float):
        return Decimal(str(value))
    if isinstance(value, dict):
        return {k: _to_dynamo(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_to_dynamo(v) for v in value]
    return value


def _from_dynamo(value: Any) -> Any:
    if isinstance(value, Decimal):
        return int(value) if value == value.to_integral_value() else float(value)
    if isinstance(value, dict):
        return {k: _from_dynamo(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_from_dynamo(v) for v in value]
    return value


class DynamoRecordStore:
    """
    Single-table DynamoDB backend.

    The table's partition key is the string attribute ``pk``; the record's own
    fields are stored beside it. ``scan_prefix`` is a paginated Scan filtered
    with ``begins_with``, which is adequate for the low record counts of a
    single institution.
    """

    def __init__(self, table) -> None:
        self._table = table

    @classmethod
    def from_settings(cls, settings: Settings) -> "DynamoRecordStore":
        return cls(dynamodb_resource(settings).Table(settings.records_table))

    def put(self, key: str, record: Record) -> None:
        item = _to_dynamo({k: v for k, v in record.items() if v is not None})
        item[KEY_ATTRIBUTE] = key
        try:
            self._table.put_item(Item=item)
        except (ClientError, BotoCoreError) as e:
            logger.error(f"Error writing record {key}: {e}")
            raise UpstreamFailure("Record store write failed") from e

    def get(self, key: str) -> Optional[Record]:
        try:
            response = self._table.get_item(Key={KEY_ATTRIBUTE: key})
        except (ClientError, BotoCoreError) as e:
            logger.error(f"Error reading record {key}: {e}")
            raise UpstreamFailure("Record store read failed") from e
        if "Item" not in response:
            return None
        item = _from_dynamo(response["Item"])
        item.pop(KEY_ATTRIBUTE, None)
        return item

    def scan_prefix(self, prefix: str) -> List[Record]:
        records: List[Record] = []
        scan_kwargs: Dict[str, Any] = {"FilterExpression": Attr(KEY_ATTRIBUTE).begins_with(prefix)}
        try:
            while True:
                response = self._table.scan(**scan_kwargs)
                for item in response.get("Items", []):
                    item = _from_dynamo(item)
                    item.pop(KEY_ATTRIBUTE, None)
                    records.append(item)
                last_key = response.get("LastEvaluatedKey")
                if not last_key:
                    break
                scan_kwargs["ExclusiveStartKey"] = last_key
        except (ClientError, BotoCoreError) as e:
            logger.error(f"Error scanning prefix {prefix!r}: {e}")
            raise UpstreamFailure("Record store scan failed") from e
        return records


def build_record_store(settings: Settings) -> RecordStore:
    if settings.record_store_backend == "dynamodb":
        logger.info(f"Initializing DynamoDB record store (table={settings.records_table})")
        return DynamoRecordStore.from_settings(settings)
    logger.info("Initializing in-memory record store")
    return InMemoryRecordStore()
