"""
# `ledger/main.py` - Application entry point

- `create_app()` builds the FastAPI instance: CORS, error handlers, the orders router.
- The pooled SQLAlchemy engine, the session factory and the rate resolver are created
  once per process and kept on `app.state`; tests inject their own engine / rate client.
- The lifespan handler creates the tables when `db_create_tables` is on and disposes the pool on shutdown.
"""
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from sqlalchemy.engine import Engine

from ledger.config import Settings, settings as default_settings
from ledger.core.errors import LedgerError, StorageError
from ledger.database import build_engine, build_session_factory, create_tables
from ledger.integrations.rate_provider import ExchangeRateClient
from ledger.routers import orders as orders_router
from ledger.services.rates import RateResolver

logger = logging.getLogger("ledger")


def _configure_logging(settings: Settings) -> None:
    level = logging.DEBUG if settings.debug else getattr(logging, settings.log_level.upper(), logging.INFO)
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")


async def _ledger_error_handler(request: Request, exc: LedgerError):
    body = {"error": exc.message}
    if exc.details:
        body["details"] = exc.details
    if isinstance(exc, StorageError):
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.details or exc.message)
    return JSONResponse(status_code=exc.status_code, content=body)


async def _request_validation_handler(request: Request, exc: RequestValidationError):
    # Same error shape as ValidationError, instead of FastAPI's 422 detail list
    return JSONResponse(status_code=400, content={"error": "Invalid request", "details": jsonable_encoder(exc.errors())})


def create_app(
    settings: Optional[Settings] = None,
    engine: Optional[Engine] = None,
    rate_client: Optional[ExchangeRateClient] = None,
) -> FastAPI:
    settings = settings or default_settings

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        _configure_logging(settings)
        if app.state.engine is None:
            app.state.engine = build_engine(settings)
            app.state.session_factory = build_session_factory(app.state.engine)
        if settings.db_create_tables:
            create_tables(app.state.engine)
        yield
        app.state.engine.dispose()

    # Initialize FastAPI app
    app = FastAPI(
        title="Order Ledger API",
        description="Purchase orders, exchange rates and shipment trackings.",
        version="1.0.0",
        redirect_slashes=False,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.engine = engine
    app.state.session_factory = build_session_factory(engine) if engine is not None else None
    app.state.rate_resolver = RateResolver.from_settings(settings, client=rate_client)

    # Configure CORS (browser front end)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(LedgerError, _ledger_error_handler)
    app.add_exception_handler(RequestValidationError, _request_validation_handler)

    app.include_router(orders_router.router)

    @app.get("/", response_class=PlainTextResponse)
    def root():
        return "Order ledger server running"

    return app


app = create_app()

# Run the app directly with uvicorn (for development)
if __name__ == "__main__":
    import uvicorn
    uvicorn.run("ledger.main:app", host="0.0.0.0", port=8000, reload=True)
