"""FastAPI application factory and setup."""

import time
import uuid
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import JSONResponse

from src.catalog.api.http.app_data import ApplicationDependencies
from src.catalog.api.http.routers import health
from src.catalog.api.http.routers.service import product
from src.catalog.api.utils.app_startup import configure_logging
from src.catalog.core.exceptions import (
    CorruptData,
    NotFound,
    StoreUnavailable,
    ValidationFailed,
)
from src.catalog.core.validation import group_errors
from src.catalog.entities.service.product import ProductRepository
from src.catalog.runtime.context import get_config

__all__ = ["app", "create_app"]


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)
        response.headers.setdefault("X-Content-Type-Options", "nosniff")
        response.headers.setdefault("X-Frame-Options", "DENY")
        response.headers.setdefault(
            "Referrer-Policy", "strict-origin-when-cross-origin"
        )
        if get_config().app.environment == "production":
            response.headers.setdefault(
                "Strict-Transport-Security",
                "max-age=31536000; includeSubDomains; preload",
            )
        return response


@asynccontextmanager
async def lifespan(app: FastAPI):
    deps: ApplicationDependencies = app.state.app_dependencies
    storage = deps.product_repository.storage
    logger.info(
        "Starting catalog in {} environment with store {}",
        get_config().app.environment,
        storage.location,
    )
    if not storage.is_available():
        logger.error("Record store {} is not readable", storage.location)
    try:
        yield
    finally:
        logger.info("Shutting down catalog")


async def log_requests(request: Request, call_next):
    request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
    base_ctx = {
        "request_id": request_id,
        "method": request.method,
        "path": request.url.path,
        "client_ip": request.client.host if request.client else "unknown",
    }

    start = time.perf_counter()
    with logger.contextualize(**base_ctx):
        try:
            logger.info("request.start")
            response = await call_next(request)

            duration_ms = (time.perf_counter() - start) * 1000
            logger.bind(
                status_code=response.status_code,
                duration_ms=round(duration_ms, 1),
            ).info("request.end")

            response.headers.setdefault("X-Request-ID", request_id)
            return response

        except Exception as exc:
            duration_ms = (time.perf_counter() - start) * 1000
            logger.bind(
                status_code=500,
                duration_ms=round(duration_ms, 1),
                error_type=type(exc).__name__,
            ).exception("request.error")
            return JSONResponse(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                content={"errors": ["Internal Server Error"], "request_id": request_id},
                headers={"X-Request-ID": request_id},
            )


async def record_not_found(request: Request, exc: NotFound) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_404_NOT_FOUND,
        content={"errors": ["Record not found"]},
    )


async def record_invalid(request: Request, exc: ValidationFailed) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={"errors": group_errors(exc.errors)},
    )


async def store_unavailable(request: Request, exc: StoreUnavailable) -> JSONResponse:
    logger.error("Record store unavailable: {}", exc)
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"errors": ["Record store unavailable"]},
    )


async def corrupt_data(request: Request, exc: CorruptData) -> JSONResponse:
    logger.error("Record store is corrupt: {}", exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"errors": ["Record store is corrupt"]},
    )


def create_app(repository: ProductRepository | None = None) -> FastAPI:
    """Build the API around ``repository`` (by default the configured YAML store)."""
    config = get_config()
    if repository is None:
        repository = ProductRepository.from_config(config.store)

    app = FastAPI(
        title="Product Catalog",
        lifespan=lifespan,
        docs_url=None if config.app.environment == "production" else "/docs",
        redoc_url=None if config.app.environment == "production" else "/redoc",
    )
    app.state.app_dependencies = ApplicationDependencies(product_repository=repository)

    if config.app.environment == "production" and "*" in config.app.cors.origins:
        raise RuntimeError(
            "CORS misconfigured: cannot use '*' with allow_credentials=True in production"
        )

    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.app.cors.origins,
        allow_credentials=config.app.cors.allow_credentials,
        allow_methods=config.app.cors.allow_methods,
        allow_headers=config.app.cors.allow_headers,
    )
    app.middleware("http")(log_requests)

    app.add_exception_handler(NotFound, record_not_found)
    app.add_exception_handler(ValidationFailed, record_invalid)
    app.add_exception_handler(StoreUnavailable, store_unavailable)
    app.add_exception_handler(CorruptData, corrupt_data)

    app.include_router(health.router)
    app.include_router(product.router)
    return app


configure_logging()
app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        app,
        host=get_config().app.host,
        port=get_config().app.port,
        access_log=False,  # request logging middleware covers access logs
    )
