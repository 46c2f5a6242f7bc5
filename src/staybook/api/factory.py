"""FastAPI application factory."""

from fastapi import FastAPI, Request, Response

from staybook.observability.correlation import (
    CORRELATION_ID_HEADER,
    ensure_correlation_id,
    reset_correlation_id,
    set_correlation_id,
)

from .routes import folio, health, stays


def create_app() -> FastAPI:
    """Create the staybook API with correlation-id middleware."""
    app = FastAPI(
        title="Staybook",
        docs_url=None,
        redoc_url=None,
    )

    @app.middleware("http")
    async def correlation_id_middleware(request: Request, call_next) -> Response:
        cid = ensure_correlation_id(request.headers.get(CORRELATION_ID_HEADER))
        token = set_correlation_id(cid)
        try:
            response = await call_next(request)
            response.headers[CORRELATION_ID_HEADER] = cid
            return response
        finally:
            reset_correlation_id(token)

    app.include_router(health.router)
    app.include_router(stays.router)
    app.include_router(folio.router)

    return app
