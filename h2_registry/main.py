import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException

from .access.routes import router as roles_router
from .contract import HydrogenCreditContract
from .core.database.db import get_db_client
from .core.database.events import EventStoreMirror, get_esdb_client
from .core.error_handling import (
    general_exception_handler,
    http_exception_handler,
    ledger_exception_handler,
    validation_exception_handler,
)
from .core.errors import LedgerError
from .core.models.base import LoggingLevelRequest
from .core.observations import ObservationBus
from .credit.routes import ledger_router
from .credit.routes import router as credits_router
from .logging_config import logger, set_logger_and_children_level
from .settings import settings

tags_metadata = [
    {
        "name": "Roles",
        "description": """Appointment of Country, State and City Admins, approval of Producers,
                        and registration of Buyers and Auditors.""",
    },
    {
        "name": "Credits",
        "description": """Certification-gated minting, transfer and retirement of hydrogen credits,
                        each representing one kilogram of certified green hydrogen.""",
    },
    {
        "name": "Ledger",
        "description": "Ledger-wide circuit breaker, statistics and certification checks.",
    },
]

origins = [
    "http://localhost:3000",
    "http://localhost:5173",
    "http://127.0.0.1:3000",
]
origins.extend(settings.cors_origins)


def build_contract_from_settings() -> HydrogenCreditContract:
    if not settings.MAIN_ADMIN_ADDRESS:
        raise ValueError("MAIN_ADMIN_ADDRESS must be set to initialise the ledger")

    observation_bus = ObservationBus()
    if settings.ESDB_ENABLED:
        observation_bus.subscribe(EventStoreMirror(get_esdb_client()))
        logger.info(f"Mirroring observations to EventStoreDB stream {settings.ESDB_STREAM_NAME}")

    return HydrogenCreditContract(
        engine=get_db_client().engine,
        main_admin=settings.MAIN_ADMIN_ADDRESS,
        observation_bus=observation_bus,
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    logger.info("Starting up application...")
    if getattr(app.state, "contract", None) is None:
        app.state.contract = build_contract_from_settings()
    yield
    logger.info("Shutting down application...")


def create_app(contract: HydrogenCreditContract | None = None) -> FastAPI:
    app = FastAPI(
        title="Hydrogen Credit Registry",
        description="Certification-gated issuance and trading of green hydrogen credits.",
        version="1.0.0",
        openapi_tags=tags_metadata,
        lifespan=lifespan,
    )
    app.state.contract = contract

    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(RequestValidationError, validation_exception_handler)  # type: ignore
    app.add_exception_handler(HTTPException, http_exception_handler)  # type: ignore
    app.add_exception_handler(LedgerError, ledger_exception_handler)  # type: ignore
    app.add_exception_handler(Exception, general_exception_handler)

    app.include_router(roles_router, prefix="/roles")
    app.include_router(credits_router, prefix="/credits")
    app.include_router(ledger_router, prefix="/ledger")

    @app.post("/change_log_level", tags=["Ledger"])
    async def change_log_level_endpoint(request: LoggingLevelRequest):
        """Change the logging level at runtime for the application and server loggers."""
        numeric_level = getattr(logging, request.level.value)

        loggers_to_update = [
            logger,
            logging.getLogger("uvicorn"),
            logging.getLogger("uvicorn.access"),
        ]
        for logger_instance in loggers_to_update:
            set_logger_and_children_level(logger_instance, numeric_level)

        return {
            logger_instance.name: logging.getLevelName(logger_instance.getEffectiveLevel())
            for logger_instance in loggers_to_update
        }

    return app


def main():
    import uvicorn

    uvicorn.run(create_app(), host="0.0.0.0", port=8000)


if __name__ == "__main__":
    main()
