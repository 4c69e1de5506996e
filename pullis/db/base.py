"""
Generic CRUD store over a single table.

Each concrete store binds a table name to a pydantic model. Column names
used in queries are checked against the model's fields, so they can be
interpolated into SQL safely; values always go through query parameters.
"""

import json
import logging
import uuid
from enum import Enum
from typing import Any, Dict, Generic, List, Optional, Tuple, Type, TypeVar

import aiomysql
from pydantic import BaseModel

from pullis.db.database import Database


logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)

# Columns maintained by the database itself
_MANAGED_COLUMNS = {"id", "created_at", "updated_at"}


class BaseStore(Generic[ModelT]):
    """CRUD operations shared by all table stores."""

    table_name: str = ""
    model: Type[ModelT]
    json_columns: Tuple[str, ...] = ()

    def __init__(self, database: Database):
        self._database = database

    # ========== Query helpers ==========

    def _check_columns(self, columns) -> None:
        unknown = set(columns) - set(self.model.model_fields)
        if unknown:
            raise ValueError(f"Unknown column(s) for {self.table_name}: {sorted(unknown)}")

    def _encode(self, data: Dict[str, Any]) -> Dict[str, Any]:
        encoded = {}
        for column, value in data.items():
            if column in self.json_columns and value is not None:
                value = json.dumps(value)
            elif isinstance(value, Enum):
                value = value.value
            encoded[column] = value
        return encoded

    def _where(self, conditions: Dict[str, Any]) -> Tuple[str, List[Any]]:
        self._check_columns(conditions)
        clauses = [f"{column} = %s" for column in conditions]
        return " AND ".join(clauses), list(self._encode(conditions).values())

    def _row_to_model(self, row: Dict[str, Any]) -> ModelT:
        data = dict(row)
        for column in self.json_columns:
            if isinstance(data.get(column), (str, bytes)):
                data[column] = json.loads(data[column])
        if "id" in data:
            data["id"] = str(data["id"])
        return self.model(**data)

    async def _fetch_one(self, query: str, params: List[Any]) -> Optional[ModelT]:
        async with self._database.connection() as conn:
            async with conn.cursor(aiomysql.DictCursor) as cursor:
                await cursor.execute(query, params)
                row = await cursor.fetchone()

        return self._row_to_model(row) if row else None

    async def _fetch_all(self, query: str, params: List[Any]) -> List[ModelT]:
        async with self._database.connection() as conn:
            async with conn.cursor(aiomysql.DictCursor) as cursor:
                await cursor.execute(query, params)
                rows = await cursor.fetchall()

        return [self._row_to_model(row) for row in rows]

    async def _execute(self, query: str, params: List[Any]) -> int:
        async with self._database.connection() as conn:
            async with conn.cursor() as cursor:
                await cursor.execute(query, params)
                affected = cursor.rowcount
            await conn.commit()

        return affected

    # ========== CRUD ==========

    async def find_by_id(self, record_id: str) -> Optional[ModelT]:
        return await self._fetch_one(
            f"SELECT * FROM {self.table_name} WHERE id = %s",
            [record_id]
        )

    async def find_one_by(self, **conditions: Any) -> Optional[ModelT]:
        where, params = self._where(conditions)
        return await self._fetch_one(
            f"SELECT * FROM {self.table_name} WHERE {where} LIMIT 1",
            params
        )

    async def find_all_by(self, **conditions: Any) -> List[ModelT]:
        where, params = self._where(conditions)
        return await self._fetch_all(
            f"SELECT * FROM {self.table_name} WHERE {where} ORDER BY created_at",
            params
        )

    async def list_all(self) -> List[ModelT]:
        return await self._fetch_all(
            f"SELECT * FROM {self.table_name} ORDER BY created_at DESC",
            []
        )

    async def create(self, data: Dict[str, Any]) -> ModelT:
        """
        Insert a new row and return it as stored.

        Args:
            data: Column values, excluding id and timestamps

        Returns:
            The created model
        """
        data = {k: v for k, v in data.items() if k not in _MANAGED_COLUMNS}
        self._check_columns(data)

        record_id = str(uuid.uuid4())
        encoded = self._encode(data)
        columns = ["id", *encoded]
        placeholders = ", ".join(["%s"] * len(columns))

        async with self._database.connection() as conn:
            async with conn.cursor(aiomysql.DictCursor) as cursor:
                await cursor.execute(
                    f"INSERT INTO {self.table_name} ({', '.join(columns)}) VALUES ({placeholders})",
                    [record_id, *encoded.values()]
                )
                await cursor.execute(
                    f"SELECT * FROM {self.table_name} WHERE id = %s",
                    [record_id]
                )
                row = await cursor.fetchone()
            await conn.commit()

        logger.debug(f"Created {self.table_name} row {record_id}")
        return self._row_to_model(row)

    async def update(self, record_id: str, data: Dict[str, Any]) -> Optional[ModelT]:
        """
        Update columns of an existing row.

        Args:
            record_id: Row id
            data: Column values to change

        Returns:
            The updated model, or None if the row does not exist
        """
        data = {k: v for k, v in data.items() if k not in _MANAGED_COLUMNS}
        if not data:
            return await self.find_by_id(record_id)

        self._check_columns(data)
        encoded = self._encode(data)
        assignments = ", ".join(f"{column} = %s" for column in encoded)

        async with self._database.connection() as conn:
            async with conn.cursor(aiomysql.DictCursor) as cursor:
                await cursor.execute(
                    f"UPDATE {self.table_name} SET {assignments} WHERE id = %s",
                    [*encoded.values(), record_id]
                )
                await cursor.execute(
                    f"SELECT * FROM {self.table_name} WHERE id = %s",
                    [record_id]
                )
                row = await cursor.fetchone()
            await conn.commit()

        return self._row_to_model(row) if row else None

    async def delete(self, record_id: str) -> int:
        deleted = await self._execute(
            f"DELETE FROM {self.table_name} WHERE id = %s",
            [record_id]
        )
        logger.debug(f"Deleted {deleted} {self.table_name} row(s) with id {record_id}")
        return deleted

    async def exists(self, **conditions: Any) -> bool:
        return await self.find_one_by(**conditions) is not None
