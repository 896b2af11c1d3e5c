from datetime import datetime
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, Query, Request, status

from .models import BalanceSummary, TransactionFilters, TransactionPage
from .service import LedgerAggregator, TransactionFetchError

router = APIRouter(prefix="/admin", tags=["Ledger"])


def get_aggregator(request: Request) -> LedgerAggregator:
    return request.app.state.ledger


@router.get("/balance", response_model=BalanceSummary)
async def get_balance(aggregator: LedgerAggregator = Depends(get_aggregator)) -> BalanceSummary:
    return await aggregator.get_balance_summary()


@router.get("/transactions", response_model=TransactionPage)
async def list_transactions(
    request: Request,
    page: int = Query(1, ge=1),
    page_size: Optional[int] = Query(None, ge=1),
    type: Optional[str] = None,
    account_type: Optional[str] = None,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    aggregator: LedgerAggregator = Depends(get_aggregator),
) -> TransactionPage:
    settings = request.app.state.settings
    page_size = min(page_size or settings.default_page_size, settings.max_page_size)
    filters = TransactionFilters(
        type=type, account_type=account_type, start_date=start_date, end_date=end_date,
    )
    try:
        return await aggregator.list_transactions(page, page_size, filters)
    except TransactionFetchError as e:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(e))
