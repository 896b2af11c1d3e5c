"""
Data access for the marketplace core

This package provides:
- The async DataStore / AuthProvider interface and its Query model
- An in-memory backend for tests and local development
- A REST backend for the hosted database and auth service
"""

from typing import Optional

from .base import (
    AuthProvider,
    DataStore,
    Embed,
    Filter,
    FilterOp,
    Order,
    Query,
    QueryResult,
    StoreError,
)
from .memory import InMemoryStore
from .rest import RestStore


def build_store(
    backend: str,
    url: Optional[str] = None,
    service_key: Optional[str] = None,
    timeout: float = 10.0,
):
    """Create the store named by `backend` ("memory" or "rest")."""
    if backend == "memory":
        return InMemoryStore()
    if backend == "rest":
        return RestStore(url or "", service_key or "", timeout=timeout)
    raise ValueError(f"Unknown store backend '{backend}'")


__all__ = [
    "AuthProvider",
    "DataStore",
    "Embed",
    "Filter",
    "FilterOp",
    "Order",
    "Query",
    "QueryResult",
    "StoreError",
    "InMemoryStore",
    "RestStore",
    "build_store",
]
