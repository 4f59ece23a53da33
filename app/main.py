from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api.v1.balances.router import router as balances_router
from app.api.v1.fee_structures.router import router as fee_structures_router
from app.api.v1.mpesa.client import StkPushClient
from app.api.v1.mpesa.router import router as mpesa_router
from app.api.v1.payments.router import router as payments_router
from app.core.config import Settings, get_settings
from app.core.logging import configure_logging
from app.db.session import build_engine, build_sessionmaker


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    await app.state.stk_client.aclose()
    await app.state.engine.dispose()


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or get_settings()
    configure_logging(settings.log_level)

    app = FastAPI(title="School Fee Ledger", lifespan=lifespan)

    # Process-wide resources, built once and reached through app.state
    app.state.settings = settings
    app.state.engine = build_engine(settings.database_url)
    app.state.sessionmaker = build_sessionmaker(app.state.engine)
    app.state.stk_client = StkPushClient.from_settings(settings)

    # CORS: allow frontend to call this API
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Routers
    app.include_router(fee_structures_router)
    app.include_router(payments_router)
    app.include_router(balances_router)
    app.include_router(mpesa_router)

    return app
