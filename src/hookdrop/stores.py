"""
Key-value metadata tables for file and webhook records.

Items are plain dictionaries with camelCase attribute names, addressed by a partition key
and a sort key, as in DynamoDB. ``DynamoDbMetadataStore`` is used in deployments;
``SqlMetadataStore`` keeps the same tables in a relational database for local runs.
"""

import abc
import logging
from copy import deepcopy
from typing import TYPE_CHECKING, Any

from typing_extensions import override

from boto3.dynamodb.conditions import Attr, Key
from botocore.exceptions import ClientError
from sqlalchemy import JSON, Column
from sqlalchemy.engine import Engine
from sqlalchemy.pool import StaticPool
from sqlmodel import Field, Session, SQLModel, create_engine, select

from .exceptions import RecordNotFoundError, StoreError
from .models.config import MetadataOptions
from .transfer import init_dynamodb_resource

if TYPE_CHECKING:
    from types_boto3_dynamodb.service_resource import Table

log = logging.getLogger(__name__)

Item = dict[str, Any]


class MetadataStore(metaclass=abc.ABCMeta):
    """A table of items addressed by ``(partition_key, sort_key)``."""

    def __init__(self, partition_key: str, sort_key: str):
        self.partition_key = partition_key
        self.sort_key = sort_key

    def key_of(self, item: Item) -> Item:
        try:
            return {self.partition_key: item[self.partition_key], self.sort_key: item[self.sort_key]}
        except KeyError as e:
            raise StoreError(f"Item lacks key attribute {e}") from e

    @abc.abstractmethod
    def put(self, item: Item):
        """Insert or replace an item."""
        raise NotImplementedError()

    @abc.abstractmethod
    def get(self, key: Item) -> Item | None:
        """Return the item with the given key, or ``None``."""
        raise NotImplementedError()

    @abc.abstractmethod
    def update(self, key: Item, fields: Item) -> Item:
        """
        Set attributes of an existing item.

        :return: the updated item
        :raises RecordNotFoundError: if no item has the given key
        """
        raise NotImplementedError()

    @abc.abstractmethod
    def delete(self, key: Item) -> bool:
        """Delete an item. Returns whether it existed."""
        raise NotImplementedError()

    @abc.abstractmethod
    def query(self, partition_value: str, filters: Item | None = None) -> list[Item]:
        """
        All items of one partition whose attributes equal ``filters``, sort key descending.
        """
        raise NotImplementedError()

    @abc.abstractmethod
    def scan(self, filters: Item, limit: int | None = None) -> list[Item]:
        """Items of any partition whose attributes equal ``filters``."""
        raise NotImplementedError()


def _condition(filters: Item | None):
    condition = None
    for name, value in (filters or {}).items():
        clause = Attr(name).eq(value)
        condition = clause if condition is None else condition & clause
    return condition


class DynamoDbMetadataStore(MetadataStore):
    """Metadata table backed by a DynamoDB table resource."""

    def __init__(self, table: "Table", partition_key: str, sort_key: str):
        super().__init__(partition_key, sort_key)
        self._table = table

    @override
    def put(self, item: Item):
        self._table.put_item(Item=item)

    @override
    def get(self, key: Item) -> Item | None:
        return self._table.get_item(Key=key).get("Item")

    @override
    def update(self, key: Item, fields: Item) -> Item:
        names = {f"#f{i}": name for i, name in enumerate(fields)}
        values = {f":v{i}": value for i, value in enumerate(fields.values())}
        assignments = ", ".join(f"#f{i} = :v{i}" for i in range(len(fields)))
        try:
            response = self._table.update_item(
                Key=key,
                UpdateExpression=f"SET {assignments}",
                ConditionExpression=Attr(self.partition_key).exists(),
                ExpressionAttributeNames=names,
                ExpressionAttributeValues=values,
                ReturnValues="ALL_NEW",
            )
        except ClientError as e:
            if e.response.get("Error", {}).get("Code") == "ConditionalCheckFailedException":
                raise RecordNotFoundError(key) from e
            raise
        return response["Attributes"]

    @override
    def delete(self, key: Item) -> bool:
        response = self._table.delete_item(Key=key, ReturnValues="ALL_OLD")
        return bool(response.get("Attributes"))

    @override
    def query(self, partition_value: str, filters: Item | None = None) -> list[Item]:
        params: dict[str, Any] = {
            "KeyConditionExpression": Key(self.partition_key).eq(partition_value),
            "ScanIndexForward": False,
        }
        if (condition := _condition(filters)) is not None:
            params["FilterExpression"] = condition

        items: list[Item] = []
        while True:
            response = self._table.query(**params)
            items.extend(response.get("Items", []))
            if "LastEvaluatedKey" not in response:
                return items
            params["ExclusiveStartKey"] = response["LastEvaluatedKey"]

    @override
    def scan(self, filters: Item, limit: int | None = None) -> list[Item]:
        params: dict[str, Any] = {}
        if (condition := _condition(filters)) is not None:
            params["FilterExpression"] = condition

        items: list[Item] = []
        while True:
            response = self._table.scan(**params)
            items.extend(response.get("Items", []))
            if limit is not None and len(items) >= limit:
                return items[:limit]
            if "LastEvaluatedKey" not in response:
                return items
            params["ExclusiveStartKey"] = response["LastEvaluatedKey"]


class MetadataItem(SQLModel, table=True):
    __tablename__ = "metadata_items"

    table_name: str = Field(primary_key=True)
    partition_value: str = Field(primary_key=True)
    sort_value: str = Field(primary_key=True)
    data: dict = Field(default_factory=dict, sa_column=Column(JSON, nullable=False))


def init_sql_engine(database_url: str) -> Engine:
    """Create an engine for ``SqlMetadataStore`` and make sure its table exists."""
    engine_args: dict[str, Any] = {}
    if database_url.startswith("sqlite"):
        engine_args["connect_args"] = {"check_same_thread": False}
        # in-memory databases vanish with their connection
        if database_url in ("sqlite://", "sqlite:///:memory:"):
            engine_args["poolclass"] = StaticPool
    engine = create_engine(database_url, **engine_args)
    SQLModel.metadata.create_all(engine)
    return engine


class SqlMetadataStore(MetadataStore):
    """Metadata table stored as JSON documents in a relational database."""

    def __init__(self, engine: Engine, table_name: str, partition_key: str, sort_key: str):
        super().__init__(partition_key, sort_key)
        self._engine = engine
        self._table_name = table_name

    def _get_row(self, session: Session, key: Item) -> MetadataItem | None:
        return session.get(MetadataItem, (self._table_name, key[self.partition_key], key[self.sort_key]))

    @staticmethod
    def _matches(item: Item, filters: Item | None) -> bool:
        return all(item.get(name) == value for name, value in (filters or {}).items())

    @override
    def put(self, item: Item):
        key = self.key_of(item)
        with Session(self._engine) as session:
            row = self._get_row(session, key)
            if row is None:
                row = MetadataItem(
                    table_name=self._table_name,
                    partition_value=key[self.partition_key],
                    sort_value=key[self.sort_key],
                )
            row.data = deepcopy(item)
            session.add(row)
            session.commit()

    @override
    def get(self, key: Item) -> Item | None:
        with Session(self._engine) as session:
            row = self._get_row(session, key)
            return deepcopy(row.data) if row is not None else None

    @override
    def update(self, key: Item, fields: Item) -> Item:
        with Session(self._engine) as session:
            row = self._get_row(session, key)
            if row is None:
                raise RecordNotFoundError(key)
            # reassign so the JSON column is flagged as modified
            row.data = {**row.data, **deepcopy(fields)}
            session.add(row)
            session.commit()
            return deepcopy(row.data)

    @override
    def delete(self, key: Item) -> bool:
        with Session(self._engine) as session:
            row = self._get_row(session, key)
            if row is None:
                return False
            session.delete(row)
            session.commit()
            return True

    @override
    def query(self, partition_value: str, filters: Item | None = None) -> list[Item]:
        statement = (
            select(MetadataItem)
            .where(MetadataItem.table_name == self._table_name)
            .where(MetadataItem.partition_value == partition_value)
            .order_by(MetadataItem.sort_value.desc())  # type: ignore[attr-defined]
        )
        with Session(self._engine) as session:
            rows = session.exec(statement).all()
            return [deepcopy(row.data) for row in rows if self._matches(row.data, filters)]

    @override
    def scan(self, filters: Item, limit: int | None = None) -> list[Item]:
        statement = select(MetadataItem).where(MetadataItem.table_name == self._table_name)
        with Session(self._engine) as session:
            matches = [deepcopy(row.data) for row in session.exec(statement) if self._matches(row.data, filters)]
        return matches[:limit] if limit is not None else matches


def init_metadata_stores(options: MetadataOptions) -> tuple[MetadataStore, MetadataStore]:
    """
    Open the file and webhook tables of the configured backend.

    :return: ``(files, webhooks)``
    """
    if options.backend == "sql":
        engine = init_sql_engine(options.database_url)
        files: MetadataStore = SqlMetadataStore(engine, options.files_table, "userId", "fileId")
        webhooks: MetadataStore = SqlMetadataStore(engine, options.webhooks_table, "userId", "webhookId")
    else:
        dynamodb = init_dynamodb_resource(options)
        files = DynamoDbMetadataStore(dynamodb.Table(options.files_table), "userId", "fileId")
        webhooks = DynamoDbMetadataStore(dynamodb.Table(options.webhooks_table), "userId", "webhookId")
    log.info(f"Using {options.backend} metadata tables {options.files_table} and {options.webhooks_table}")
    return files, webhooks
