"""
In-memory store and auth provider for tests and local development.

Behaves like the hosted backend as far as the core can observe:
- every call yields to the event loop before touching data
- identity emails are unique (case-insensitive)
- embeds follow the outer / inner join semantics of the REST backend
- ordering falls back to insertion order for equal sort keys

Failure injection (`fail_on`) makes calls against one collection raise,
which is how partial-provisioning scenarios are reproduced.
"""

from __future__ import annotations

import asyncio
import copy
import logging
from datetime import datetime, timezone
from typing import Any, Optional
from uuid import uuid4

from .base import Embed, Filter, FilterOp, Order, Query, QueryResult, StoreError

logger = logging.getLogger(__name__)

AUTH_COLLECTION = "auth.users"


def _as_datetime(value: Any) -> Any:
    if isinstance(value, str):
        value = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _coerce_pair(left: Any, right: Any) -> tuple[Any, Any]:
    pair = (left, right)
    if any(isinstance(v, datetime) for v in pair) and all(isinstance(v, (datetime, str)) for v in pair):
        return _as_datetime(left), _as_datetime(right)
    return left, right


def _matches(row: dict[str, Any], flt: Filter) -> bool:
    value = row.get(flt.field)
    if value is None:
        return False
    value, expected = _coerce_pair(value, flt.value)
    if flt.op == FilterOp.EQ:
        return value == expected
    if flt.op == FilterOp.GTE:
        return value >= expected
    if flt.op == FilterOp.LTE:
        return value <= expected
    return False


def _project(row: dict[str, Any], fields: tuple[str, ...]) -> dict[str, Any]:
    if not fields or "*" in fields:
        return copy.deepcopy(row)
    return {name: copy.deepcopy(row.get(name)) for name in fields}


def _sort_key(row: dict[str, Any], order: Order) -> tuple:
    key = []
    for name in (order.field, order.tie_break):
        if name is None:
            continue
        value = row.get(name)
        # nulls sort last ascending and first descending, as in the REST backend
        key.append((True, "") if value is None else (False, value))
    return tuple(key)


class InMemoryStore:
    """Data store and auth provider backed by plain dicts.

    Attributes:
        writes: Collection name of every successful write, in order
    """

    def __init__(self) -> None:
        self._collections: dict[str, list[dict[str, Any]]] = {}
        self._identities: dict[str, dict[str, Any]] = {}
        self._failures: dict[str, StoreError] = {}
        self._lock = asyncio.Lock()
        self.writes: list[str] = []

    # ------------------------------------------------------------------
    # Test helpers
    # ------------------------------------------------------------------
    def seed(self, collection: str, rows: list[dict[str, Any]]) -> None:
        table = self._collections.setdefault(collection, [])
        for row in rows:
            record = dict(row)
            record.setdefault("id", str(uuid4()))
            table.append(record)

    def rows(self, collection: str) -> list[dict[str, Any]]:
        if collection == AUTH_COLLECTION:
            return [copy.deepcopy(identity) for identity in self._identities.values()]
        return copy.deepcopy(self._collections.get(collection, []))

    def fail_on(self, collection: str, message: str = "simulated failure", code: Optional[str] = None) -> None:
        self._failures[collection] = StoreError(message, code=code, collection=collection)

    def clear_failures(self) -> None:
        self._failures.clear()

    def _check_failure(self, collection: str) -> None:
        error = self._failures.get(collection)
        if error is not None:
            raise error

    # ------------------------------------------------------------------
    # AuthProvider
    # ------------------------------------------------------------------
    async def create_credential(
        self,
        email: str,
        password: str,
        confirmed: bool,
        metadata: dict[str, Any],
    ) -> str:
        await asyncio.sleep(0)
        self._check_failure(AUTH_COLLECTION)
        if len(password) < 6:
            raise StoreError("Password should be at least 6 characters", code="weak_password", collection=AUTH_COLLECTION)

        async with self._lock:
            normalized = email.strip().lower()
            if any(identity["email"] == normalized for identity in self._identities.values()):
                raise StoreError("User already registered", code="user_already_exists", collection=AUTH_COLLECTION)

            identity_id = str(uuid4())
            self._identities[identity_id] = {
                "id": identity_id,
                "email": normalized,
                "email_confirmed": confirmed,
                "user_metadata": dict(metadata),
                "created_at": datetime.now(timezone.utc),
            }
            self.writes.append(AUTH_COLLECTION)
        return identity_id

    # ------------------------------------------------------------------
    # DataStore
    # ------------------------------------------------------------------
    async def create_record(self, collection: str, fields: dict[str, Any]) -> str:
        await asyncio.sleep(0)
        self._check_failure(collection)

        async with self._lock:
            table = self._collections.setdefault(collection, [])
            record = dict(fields)
            record.setdefault("id", str(uuid4()))
            record.setdefault("created_at", datetime.now(timezone.utc))
            if any(row["id"] == record["id"] for row in table):
                raise StoreError(
                    f'duplicate key value violates unique constraint "{collection}_pkey"',
                    code="23505",
                    collection=collection,
                )
            table.append(record)
            self.writes.append(collection)
        return record["id"]

    async def upsert_record(self, collection: str, fields: dict[str, Any], on_conflict: str) -> str:
        await asyncio.sleep(0)
        self._check_failure(collection)

        async with self._lock:
            table = self._collections.setdefault(collection, [])
            for row in table:
                if row.get(on_conflict) == fields.get(on_conflict):
                    row.update(fields)
                    self.writes.append(collection)
                    return row["id"]
            record = dict(fields)
            record.setdefault("id", str(uuid4()))
            table.append(record)
            self.writes.append(collection)
        return record["id"]

    async def query_records(self, query: Query) -> QueryResult:
        await asyncio.sleep(0)
        self._check_failure(query.collection)
        for embed in query.embeds:
            self._check_failure(embed.collection)

        selected = self._select(query.collection, query.fields, query.filters, query.embeds)
        total = len(selected)
        if query.order is not None:
            selected = sorted(selected, key=lambda pair: _sort_key(pair[0], query.order), reverse=query.order.descending)

        end = None if query.limit is None else query.offset + query.limit
        rows = [projected for _, projected in selected[query.offset:end]]
        logger.debug("query %s matched %d rows, returning %d", query.collection, total, len(rows))
        return QueryResult(rows=rows, total_count=total if query.count else None)

    def _select(
        self,
        collection: str,
        fields: tuple[str, ...],
        filters: list[Filter],
        embeds: tuple[Embed, ...],
    ) -> list[tuple[dict[str, Any], dict[str, Any]]]:
        own = [flt for flt in filters if len(flt.path) == 1]
        selected = []
        for row in self._collections.get(collection, []):
            if not all(_matches(row, flt) for flt in own):
                continue

            projected = _project(row, fields)
            keep = True
            for embed in embeds:
                nested = [
                    Filter(".".join(flt.path[1:]), flt.op, flt.value)
                    for flt in filters
                    if len(flt.path) > 1 and flt.path[0] == embed.name
                ]
                local_value = row.get(embed.local_key)
                children = []
                if local_value is not None:
                    children = [
                        child
                        for raw, child in self._select(embed.collection, embed.fields, nested, embed.embeds)
                        if raw.get(embed.foreign_key) == local_value
                    ]
                if embed.many:
                    projected[embed.name] = children
                else:
                    projected[embed.name] = children[0] if children else None
                if embed.inner and not children:
                    keep = False

            if keep:
                selected.append((row, projected))
        return selected


__all__ = ["AUTH_COLLECTION", "InMemoryStore"]
