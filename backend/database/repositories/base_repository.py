"""
Base Repository with common database operations
"""
import json
import asyncpg
import time
import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional, List, Any, Dict, Tuple
from ..connection import get_db, dict_from_row
from utils.debug import log_db_query

logger = logging.getLogger(__name__)


def utc_now() -> datetime:
    """Naive UTC timestamp for PostgreSQL TIMESTAMP columns"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def parse_rowcount(result: Optional[str]) -> int:
    """Parse rowcount from an asyncpg status string (e.g. "DELETE 3")"""
    if not result:
        return 0
    try:
        return int(result.split()[-1])
    except ValueError:
        return 0


class BaseRepository:
    """
    Base class for all repositories with common CRUD operations.

    Every operation accepts an optional `conn`; when given, the statement runs
    on that connection (e.g. inside a transaction) instead of a pooled one.
    """

    JSON_FIELDS: List[str] = []

    def __init__(self, table_name: str):
        self.table_name = table_name

    def _quote_identifier(self, identifier: str) -> str:
        """Quote a column identifier for PostgreSQL"""
        return '"' + identifier.replace('"', '""') + '"'

    async def _get_db(self) -> asyncpg.Pool:
        return await get_db()

    @asynccontextmanager
    async def _connection(self, conn=None):
        """Use the caller's connection, or acquire one from the pool"""
        if conn is not None:
            yield conn
            return
        pool = await self._get_db()
        async with pool.acquire() as acquired:
            yield acquired

    def _serialize_json_fields(self, data: dict, json_fields: Optional[List[str]] = None) -> dict:
        """Serialize JSON fields to strings"""
        result = data.copy()
        for field in json_fields if json_fields is not None else self.JSON_FIELDS:
            if field in result and result[field] is not None:
                if not isinstance(result[field], str):
                    result[field] = json.dumps(result[field])
        return result

    def _deserialize_json_fields(self, data: Optional[dict], json_fields: Optional[List[str]] = None) -> Optional[dict]:
        """Deserialize JSON strings to objects"""
        if data is None:
            return None
        result = data.copy()
        for field in json_fields if json_fields is not None else self.JSON_FIELDS:
            if field in result and isinstance(result[field], str):
                try:
                    result[field] = json.loads(result[field])
                except json.JSONDecodeError:
                    pass
        return result

    def _convert_datetime_strings(self, data: dict) -> dict:
        """Convert ISO datetime strings and aware datetimes to naive UTC for asyncpg.

        PostgreSQL TIMESTAMP columns (without timezone) expect naive datetime objects.
        """
        result = data.copy()
        for key, value in result.items():
            if isinstance(value, str) and len(value) >= 19:
                # Format: 2026-01-19T16:33:22.599811+00:00 or 2026-01-19T16:33:22
                if 'T' in value and value[4] == '-' and value[7] == '-':
                    try:
                        dt = datetime.fromisoformat(value.replace('Z', '+00:00'))
                        if dt.tzinfo is not None:
                            dt = dt.astimezone(timezone.utc).replace(tzinfo=None)
                        result[key] = dt
                    except (ValueError, TypeError):
                        pass
            elif isinstance(value, datetime) and value.tzinfo is not None:
                result[key] = value.astimezone(timezone.utc).replace(tzinfo=None)
        return result

    def _build_where(self, conditions: Dict[str, Any], start: int = 1) -> Tuple[str, List[Any]]:
        """Build a parameterized AND clause; supports $in and $ne operators"""
        clauses = []
        values: List[Any] = []
        param = start

        for key, value in conditions.items():
            quoted_key = self._quote_identifier(key)
            if isinstance(value, dict):
                for op, op_value in value.items():
                    if op == "$in":
                        if not op_value:
                            clauses.append("FALSE")
                            continue
                        placeholders = ",".join(f"${param + i}" for i in range(len(op_value)))
                        clauses.append(f"{quoted_key} IN ({placeholders})")
                        values.extend(op_value)
                        param += len(op_value)
                    elif op == "$ne":
                        clauses.append(f"{quoted_key} != ${param}")
                        values.append(op_value)
                        param += 1
                    else:
                        raise ValueError(f"Unsupported operator: {op}")
            else:
                clauses.append(f"{quoted_key} = ${param}")
                values.append(value)
                param += 1

        return " AND ".join(clauses), values

    def _process_row(self, row, exclude_fields: Optional[List[str]] = None) -> Optional[dict]:
        result = dict_from_row(row)
        if result is None:
            return None
        for field in exclude_fields or []:
            result.pop(field, None)
        return self._deserialize_json_fields(result)

    async def find_one(
        self,
        conditions: Dict[str, Any],
        exclude_fields: Optional[List[str]] = None,
        conn=None
    ) -> Optional[dict]:
        """Find a single record matching conditions"""
        start_time = time.time()
        where_sql, values = self._build_where(conditions)
        query = f"SELECT * FROM {self.table_name} WHERE {where_sql} LIMIT 1"

        try:
            async with self._connection(conn) as c:
                row = await c.fetchrow(query, *values)
        except Exception as e:
            log_db_query("SELECT", self.table_name, (time.time() - start_time) * 1000, error=str(e))
            raise

        log_db_query("SELECT", self.table_name, (time.time() - start_time) * 1000,
                     rows_affected=1 if row else 0, query_params=conditions)
        return self._process_row(row, exclude_fields)

    async def find_many(
        self,
        conditions: Optional[Dict[str, Any]] = None,
        exclude_fields: Optional[List[str]] = None,
        order_by: Optional[str] = None,
        order_dir: str = "ASC",
        limit: Optional[int] = None,
        conn=None
    ) -> List[dict]:
        """Find multiple records matching conditions"""
        start_time = time.time()
        query = f"SELECT * FROM {self.table_name}"
        values: List[Any] = []

        if conditions:
            where_sql, values = self._build_where(conditions)
            query += f" WHERE {where_sql}"

        if order_by:
            direction = "DESC" if order_dir.upper() == "DESC" else "ASC"
            query += f" ORDER BY {self._quote_identifier(order_by)} {direction}"

        if limit:
            query += f" LIMIT {int(limit)}"

        try:
            async with self._connection(conn) as c:
                rows = await c.fetch(query, *values)
        except Exception as e:
            log_db_query("SELECT_MANY", self.table_name, (time.time() - start_time) * 1000, error=str(e))
            raise

        log_db_query("SELECT_MANY", self.table_name, (time.time() - start_time) * 1000,
                     rows_affected=len(rows), query_params=conditions)
        return [self._process_row(row, exclude_fields) for row in rows]

    async def insert(self, data: dict, conn=None) -> dict:
        """Insert a new record and return the stored row"""
        start_time = time.time()
        data = self._serialize_json_fields(self._convert_datetime_strings(data))

        columns = ", ".join(self._quote_identifier(k) for k in data.keys())
        placeholders = ", ".join(f"${i + 1}" for i in range(len(data)))
        query = f"INSERT INTO {self.table_name} ({columns}) VALUES ({placeholders}) RETURNING *"

        try:
            async with self._connection(conn) as c:
                row = await c.fetchrow(query, *data.values())
        except Exception as e:
            log_db_query("INSERT", self.table_name, (time.time() - start_time) * 1000, error=str(e))
            raise

        log_db_query("INSERT", self.table_name, (time.time() - start_time) * 1000,
                     rows_affected=1, query_params={"id": data.get("id")})
        return self._process_row(row)

    async def update(self, conditions: Dict[str, Any], data: dict, conn=None) -> Optional[dict]:
        """Update records matching conditions; returns the first updated row or None"""
        start_time = time.time()
        data = self._serialize_json_fields(self._convert_datetime_strings(data))

        set_clauses = [f"{self._quote_identifier(k)} = ${i + 1}" for i, k in enumerate(data.keys())]
        where_sql, where_values = self._build_where(conditions, start=len(data) + 1)
        query = f"UPDATE {self.table_name} SET {', '.join(set_clauses)} WHERE {where_sql} RETURNING *"

        try:
            async with self._connection(conn) as c:
                rows = await c.fetch(query, *data.values(), *where_values)
        except Exception as e:
            log_db_query("UPDATE", self.table_name, (time.time() - start_time) * 1000, error=str(e))
            raise

        log_db_query("UPDATE", self.table_name, (time.time() - start_time) * 1000,
                     rows_affected=len(rows), query_params=conditions)
        return self._process_row(rows[0]) if rows else None

    async def delete(self, conditions: Dict[str, Any], conn=None) -> int:
        """Delete records matching conditions; returns the number removed"""
        start_time = time.time()
        where_sql, values = self._build_where(conditions)
        query = f"DELETE FROM {self.table_name} WHERE {where_sql}"

        try:
            async with self._connection(conn) as c:
                result = await c.execute(query, *values)
        except Exception as e:
            log_db_query("DELETE", self.table_name, (time.time() - start_time) * 1000, error=str(e))
            raise

        rowcount = parse_rowcount(result)
        log_db_query("DELETE", self.table_name, (time.time() - start_time) * 1000,
                     rows_affected=rowcount, query_params=conditions)
        return rowcount
