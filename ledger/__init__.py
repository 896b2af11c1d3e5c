"""
Ledger read side for the marketplace

This module provides:
- Balance rollup per account category (restaurants, couriers, clients, platform)
- Zero-sum check over all ledger accounts, reported as a monitoring signal
- Paginated, filterable transaction log joined with owner display names
"""

from .models import (
    AccountType,
    BalanceBucket,
    BalanceSummary,
    TransactionFilters,
    TransactionRow,
    TransactionPage,
)
from .service import (
    LedgerAggregator,
    LedgerServiceError,
    InvalidPaginationError,
    TransactionFetchError,
)

__all__ = [
    "AccountType",
    "BalanceBucket",
    "BalanceSummary",
    "TransactionFilters",
    "TransactionRow",
    "TransactionPage",
    "LedgerAggregator",
    "LedgerServiceError",
    "InvalidPaginationError",
    "TransactionFetchError",
]
