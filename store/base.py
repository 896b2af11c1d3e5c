"""
Remote data-access interface shared by provisioning and the ledger.

Every operation is a coroutine and every call is a suspension point.
Failures are raised as StoreError; nothing here retries.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional, Protocol


class StoreError(Exception):
    """A remote read or write failed.

    Attributes:
        message: Error text as reported by the store
        code: Store-specific error code, when one is available
        collection: Collection the failing call addressed
    """

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        collection: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code or "STORE_ERROR"
        self.collection = collection


class FilterOp(str, Enum):
    EQ = "eq"
    GTE = "gte"
    LTE = "lte"


@dataclass(frozen=True)
class Filter:
    field: str
    op: FilterOp
    value: Any

    @property
    def path(self) -> list[str]:
        return self.field.split(".")


@dataclass(frozen=True)
class Order:
    field: str
    descending: bool = False
    tie_break: Optional[str] = None


@dataclass(frozen=True)
class Embed:
    """A nested join resolved alongside each row.

    `local_key` is read from the parent row and matched against
    `foreign_key` on `collection`. With `many` the embed is a list,
    otherwise the first match or None. With `inner`, parent rows whose
    embed resolves to nothing are dropped.
    """

    name: str
    collection: str
    local_key: str
    foreign_key: str
    fields: tuple[str, ...] = ()
    embeds: tuple["Embed", ...] = ()
    many: bool = False
    inner: bool = False


@dataclass
class Query:
    collection: str
    fields: tuple[str, ...] = ("*",)
    filters: list[Filter] = field(default_factory=list)
    embeds: tuple[Embed, ...] = ()
    order: Optional[Order] = None
    offset: int = 0
    limit: Optional[int] = None
    count: bool = False

    def where(self, field_name: str, op: FilterOp, value: Any) -> "Query":
        self.filters.append(Filter(field_name, op, value))
        return self


@dataclass
class QueryResult:
    rows: list[dict[str, Any]]
    total_count: Optional[int] = None


class DataStore(Protocol):
    async def create_record(self, collection: str, fields: dict[str, Any]) -> str:
        ...

    async def upsert_record(self, collection: str, fields: dict[str, Any], on_conflict: str) -> str:
        ...

    async def query_records(self, query: Query) -> QueryResult:
        ...


class AuthProvider(Protocol):
    async def create_credential(
        self,
        email: str,
        password: str,
        confirmed: bool,
        metadata: dict[str, Any],
    ) -> str:
        ...
