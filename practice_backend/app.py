"""
FastAPI application entry point for the practice tracker backend.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from practice_backend.config import Settings, get_settings
from practice_backend.errors import PracticeError
from practice_backend.routes import health_router, router

logger = logging.getLogger(__name__)


def _error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code, content={"success": False, "error": message}
    )


def _format_validation_errors(exc: RequestValidationError) -> str:
    messages = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
        messages.append(f"{location}: {error.get('msg')}" if location else error.get("msg"))
    return "; ".join(messages) or "Invalid request"


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(PracticeError)
    async def practice_error_handler(request: Request, exc: PracticeError):
        if exc.status_code >= 500:
            logger.error("%s on %s: %s", type(exc).__name__, request.url.path, exc.message)
        return _error_response(exc.status_code, exc.message)

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        return _error_response(400, _format_validation_errors(exc))

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        if exc.status_code == 404:
            return _error_response(404, "Endpoint not found")
        return _error_response(exc.status_code, str(exc.detail))


def register_error_middleware(app: FastAPI) -> None:
    """
    Turn unexpected exceptions into the 500 envelope.

    Must be registered before CORSMiddleware so the response still passes
    through it and carries the allowed-origin headers.
    """

    @app.middleware("http")
    async def catch_unhandled_errors(request: Request, call_next):
        try:
            return await call_next(request)
        except Exception as exc:
            logger.exception("Server error on %s", request.url.path)
            settings: Settings = request.app.state.settings
            message = str(exc) if settings.is_development else "Internal server error"
            return _error_response(500, message)


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or get_settings()
    logging.basicConfig(level=settings.log_level.upper())

    app = FastAPI(title="Practice Tracker Backend", version="0.1.0")
    app.state.settings = settings
    app.dependency_overrides[get_settings] = lambda: settings

    register_error_middleware(app)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.frontend_url],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.include_router(health_router)
    app.include_router(router, prefix=settings.api_prefix)
    register_exception_handlers(app)
    return app


app = create_app()


def main() -> None:
    import uvicorn

    settings = get_settings()
    logger.info("Practice tracker backend running on port %s", settings.port)
    logger.info("Environment: %s", settings.environment)
    logger.info("Frontend URL: %s", settings.frontend_url)
    uvicorn.run(app, host=settings.host, port=settings.port)


if __name__ == "__main__":
    main()
