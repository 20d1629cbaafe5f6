"""FastAPI entrypoint for the ledger API."""

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from .api.routers import entries, health
from .config import load_settings
from .infra.logging import configure_logging, get_logger

logger = get_logger(__name__)


def create_app() -> FastAPI:
    """Instantiate the FastAPI app and register routers."""

    settings = load_settings()
    configure_logging(settings.logging)
    application = FastAPI(title="Ledger API", version="0.1.0")
    application.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.allowed_origins),
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    application.add_exception_handler(SQLAlchemyError, _database_error_handler)
    for router in (
        health.router,
        entries.router,
    ):
        application.include_router(router)
    logger.info(
        "app_created",
        extra={"environment": settings.environment},
    )
    return application


async def _database_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.error(
        "database_error",
        exc_info=exc,
        extra={"method": request.method, "path": request.url.path},
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "detail": {
                "error_code": "LEDGER-INTERNAL",
                "message": "Internal server error",
            }
        },
    )


app = create_app()
