import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from mangum import Mangum

from ledger.api import router as ledger_router
from ledger.service import LedgerAggregator
from provisioning.api import router as provisioning_router
from provisioning.onboarding import OnboardingService
from provisioning.service import ProvisioningSequencer
from store import RestStore, build_store

from .config import Settings

logger = logging.getLogger(__name__)


def configure_logging(level: str) -> None:
    root_logger = logging.getLogger()
    if not root_logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s"))
        root_logger.addHandler(handler)
    root_logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    logging.getLogger("httpx").setLevel(logging.WARNING)


def log_invalidation(listings: list[str]) -> None:
    logger.info("Invalidating cached listings: %s", ", ".join(listings))


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    yield
    if isinstance(app.state.store, RestStore):
        await app.state.store.aclose()


def create_app(settings: Optional[Settings] = None, store=None) -> FastAPI:
    settings = settings or Settings()
    if store is None:
        store = build_store(
            settings.store_backend,
            url=settings.store_url,
            service_key=settings.store_service_key,
            timeout=settings.store_timeout,
        )

    app = FastAPI(
        title="Marketplace Accounts API",
        description="Account provisioning and ledger balances for the delivery marketplace",
        version="1.0.0",
        root_path=settings.root_path,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.settings = settings
    app.state.store = store
    app.state.ledger = LedgerAggregator(
        store,
        zero_sum_tolerance=settings.zero_sum_tolerance,
        tie_break=settings.transaction_tie_break,
    )
    app.state.provisioning = ProvisioningSequencer(
        store,
        store,
        on_invalidate=log_invalidation,
        commission_bps=settings.commission_bps,
        default_vehicle_type=settings.default_vehicle_type,
    )
    app.state.onboarding = OnboardingService(store)

    app.include_router(provisioning_router)
    app.include_router(ledger_router)

    @app.get("/health", tags=["System"])
    async def health_check():
        return {"status": "healthy", "service": "marketplace-accounts", "store": settings.store_backend}

    return app


_settings = Settings()
configure_logging(_settings.log_level)
app = create_app(_settings)
handler = Mangum(app)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
