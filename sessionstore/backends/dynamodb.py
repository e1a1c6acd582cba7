"""DynamoDB document backend for production deployments."""

from __future__ import annotations

import time
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any

import aioboto3
from boto3.dynamodb.types import Binary
from botocore.exceptions import ClientError

from ..options import DEFAULT_MAX_AGE
from ..records import TTL_FIELD, SessionRecord, new_session_id
from .base import IndexSpec

_ATTR_NAMES = {
    "#id": "_id",
    "#data": "data",
    "#modified": "modified_at",
    "#expires": "expires_at",
    "#ttl": TTL_FIELD,
}


def _to_epoch(dt: datetime) -> Decimal:
    return Decimal(str(round(dt.timestamp(), 3)))


def _from_epoch(value: Any) -> datetime:
    return datetime.fromtimestamp(float(value), tz=timezone.utc)


def _to_dynamo(value: Any) -> Any:
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
    if isinstance(value, Binary):
        return value.value
    if isinstance(value, dict):
        return {k: _from_dynamo(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_from_dynamo(v) for v in value]
    return value


class DynamoDBDocumentBackend:
    """Document backend using AWS DynamoDB.

    Table schema:
        Partition key: _id (S)
        Attributes: data (M), modified_at (N), expires_at (N), ttl (N)

    DynamoDB TTL deletes an item once its TTL attribute, an epoch
    timestamp, is in the past. The record's ``ttl`` anchor is therefore
    stored as ``anchor + expire_after_seconds`` and translated back on read.
    TTL deletion can lag by hours, so expired items are treated as missing
    and deleted when they are looked up.
    """

    def __init__(
        self,
        table_name: str = "sessions",
        expire_after_seconds: int = DEFAULT_MAX_AGE,
        endpoint_url: str = "",
        region_name: str = "us-west-2",
    ) -> None:
        self._table_name = table_name
        self._expire_after = expire_after_seconds
        self._session = aioboto3.Session()
        self._endpoint_url = endpoint_url or None
        self._region_name = region_name

    def _resource(self):
        return self._session.resource(
            "dynamodb",
            endpoint_url=self._endpoint_url,
            region_name=self._region_name,
        )

    def _client(self):
        return self._session.client(
            "dynamodb",
            endpoint_url=self._endpoint_url,
            region_name=self._region_name,
        )

    def _to_item(self, session_id: str, record: SessionRecord) -> dict[str, Any]:
        return {
            "_id": session_id,
            "data": _to_dynamo(record.data),
            "modified_at": _to_epoch(record.modified_at),
            "expires_at": _to_epoch(record.expires_at),
            TTL_FIELD: _to_epoch(record.ttl) + self._expire_after,
        }

    def _from_item(self, item: dict[str, Any]) -> SessionRecord:
        ttl = item.get(TTL_FIELD)
        return SessionRecord(
            id=item["_id"],
            data=_from_dynamo(item.get("data") or {}),
            modified_at=_from_epoch(item["modified_at"]) if "modified_at" in item else None,
            expires_at=_from_epoch(item["expires_at"]) if "expires_at" in item else None,
            ttl=_from_epoch(ttl - self._expire_after) if ttl is not None else None,
        )

    async def find_one(self, session_id: str) -> SessionRecord | None:
        async with self._resource() as dynamodb:
            table = await dynamodb.Table(self._table_name)
            response = await table.get_item(Key={"_id": session_id}, ConsistentRead=True)

        item = response.get("Item")
        if item is None:
            return None

        expire_at = item.get(TTL_FIELD)
        if expire_at is not None and float(expire_at) <= time.time():
            await self.delete_one(session_id)
            return None

        return self._from_item(item)

    async def insert_one(self, record: SessionRecord) -> str:
        session_id = new_session_id()
        async with self._resource() as dynamodb:
            table = await dynamodb.Table(self._table_name)
            await table.put_item(
                Item=self._to_item(session_id, record),
                ConditionExpression="attribute_not_exists(#id)",
                ExpressionAttributeNames={"#id": "_id"},
            )
        return session_id

    async def update_one(self, session_id: str, record: SessionRecord) -> int:
        item = self._to_item(session_id, record)
        async with self._resource() as dynamodb:
            table = await dynamodb.Table(self._table_name)
            try:
                await table.update_item(
                    Key={"_id": session_id},
                    UpdateExpression=(
                        "SET #data = :data, #modified = :modified, "
                        "#expires = :expires, #ttl = :ttl"
                    ),
                    ConditionExpression="attribute_exists(#id)",
                    ExpressionAttributeNames=_ATTR_NAMES,
                    ExpressionAttributeValues={
                        ":data": item["data"],
                        ":modified": item["modified_at"],
                        ":expires": item["expires_at"],
                        ":ttl": item[TTL_FIELD],
                    },
                )
            except ClientError as e:
                if e.response.get("Error", {}).get("Code") == "ConditionalCheckFailedException":
                    return 0
                raise
        return 1

    async def delete_one(self, session_id: str) -> int:
        async with self._resource() as dynamodb:
            table = await dynamodb.Table(self._table_name)
            response = await table.delete_item(Key={"_id": session_id}, ReturnValues="ALL_OLD")
        return 1 if response.get("Attributes") else 0

    async def list_indexes(self) -> list[IndexSpec]:
        async with self._client() as client:
            response = await client.describe_time_to_live(TableName=self._table_name)

        indexes = [IndexSpec(key="_id")]
        desc = response.get("TimeToLiveDescription", {})
        if desc.get("TimeToLiveStatus") in ("ENABLED", "ENABLING") and desc.get("AttributeName"):
            indexes.append(
                IndexSpec(
                    key=desc["AttributeName"],
                    expire_after_seconds=self._expire_after,
                    sparse=True,
                )
            )
        return indexes

    async def create_index(self, spec: IndexSpec) -> None:
        if spec.expire_after_seconds is None:
            raise ValueError("DynamoDB tables only support TTL indexes")
        self._expire_after = spec.expire_after_seconds
        async with self._client() as client:
            await client.update_time_to_live(
                TableName=self._table_name,
                TimeToLiveSpecification={"Enabled": True, "AttributeName": spec.key},
            )
