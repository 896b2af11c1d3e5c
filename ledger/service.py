import logging
import math
from decimal import Decimal, InvalidOperation
from typing import Any, Optional

from pydantic import ValidationError

from store import DataStore, Embed, FilterOp, Order, Query, StoreError

from .models import (
    BUCKET_BY_ACCOUNT_TYPE,
    BalanceSummary,
    TransactionFilters,
    TransactionPage,
    TransactionRow,
)

logger = logging.getLogger(__name__)

ACCOUNTS = "accounts"
TRANSACTIONS = "account_transactions"

DEFAULT_PAGE_SIZE = 20


class LedgerServiceError(Exception):
    pass


class InvalidPaginationError(LedgerServiceError, ValueError):
    pass


class TransactionFetchError(LedgerServiceError):
    pass


def coerce_balance(value: Any) -> Decimal:
    """Balance as a Decimal; anything missing or non-numeric counts as zero."""
    if value is None or isinstance(value, bool):
        return Decimal("0")
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, ValueError):
        return Decimal("0")
    return amount if amount.is_finite() else Decimal("0")


def owner_embed(inner: bool) -> Embed:
    """Account join with its owning user and that user's restaurant."""
    return Embed(
        name="account",
        collection=ACCOUNTS,
        local_key="account_id",
        foreign_key="id",
        fields=("account_type",),
        inner=inner,
        embeds=(
            Embed(
                name="user",
                collection="users",
                local_key="user_id",
                foreign_key="id",
                fields=("name", "email"),
                embeds=(
                    Embed(
                        name="restaurant",
                        collection="restaurants",
                        local_key="id",
                        foreign_key="user_id",
                        fields=("name",),
                        many=True,
                    ),
                ),
            ),
        ),
    )


class LedgerAggregator:
    """Read-only financial summaries over ledger accounts and transactions."""

    def __init__(
        self,
        store: DataStore,
        zero_sum_tolerance: Decimal = Decimal("1"),
        tie_break: Optional[str] = None,
    ):
        self.store = store
        self.zero_sum_tolerance = zero_sum_tolerance
        self.tie_break = tie_break

    async def get_balance_summary(self) -> BalanceSummary:
        try:
            result = await self.store.query_records(Query(ACCOUNTS, fields=("account_type", "balance")))
        except StoreError as e:
            logger.error("Error fetching account balances: %s", e.message)
            return BalanceSummary()

        totals = {bucket: Decimal("0") for bucket in BUCKET_BY_ACCOUNT_TYPE.values()}
        for account in result.rows:
            bucket = BUCKET_BY_ACCOUNT_TYPE.get(account.get("account_type"))
            if bucket is None:
                continue
            totals[bucket] += coerce_balance(account.get("balance"))

        summary = BalanceSummary(**{bucket.value: amount for bucket, amount in totals.items()})
        if not summary.is_zero_sum(self.zero_sum_tolerance):
            logger.warning("Ledger accounts do not sum to zero: system total %s", summary.system_total)
        return summary

    async def list_transactions(
        self,
        page: int = 1,
        page_size: int = DEFAULT_PAGE_SIZE,
        filters: Optional[TransactionFilters] = None,
    ) -> TransactionPage:
        if page < 1:
            raise InvalidPaginationError(f"page must be >= 1, got {page}")
        if page_size < 1:
            raise InvalidPaginationError(f"page_size must be > 0, got {page_size}")

        filters = filters or TransactionFilters()
        query = Query(
            TRANSACTIONS,
            embeds=(owner_embed(inner=filters.account_type is not None),),
            order=Order("created_at", descending=True, tie_break=self.tie_break),
            offset=(page - 1) * page_size,
            limit=page_size,
            count=True,
        )
        if filters.type is not None:
            query.where("type", FilterOp.EQ, filters.type)
        if filters.start_date is not None:
            query.where("created_at", FilterOp.GTE, filters.start_date)
        if filters.end_date is not None:
            query.where("created_at", FilterOp.LTE, filters.end_date)
        if filters.account_type is not None:
            query.where("account.account_type", FilterOp.EQ, filters.account_type)

        try:
            result = await self.store.query_records(query)
        except StoreError as e:
            logger.error("Error fetching transactions: %s", e.message)
            raise TransactionFetchError("Failed to fetch transactions") from e

        try:
            rows = [TransactionRow(**row) for row in result.rows]
        except ValidationError as e:
            logger.error("Malformed transaction rows: %s", e)
            raise TransactionFetchError("Failed to fetch transactions") from e

        count = result.total_count or 0
        return TransactionPage(
            rows=rows,
            total_count=count,
            total_pages=math.ceil(count / page_size),
            page=page,
            page_size=page_size,
        )
