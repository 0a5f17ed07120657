import logging
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from linguabundle.api.router import api_router
from linguabundle.core.config import get_settings
from linguabundle.core.errors import LinguaBundleError, NotFoundError

logger = logging.getLogger(__name__)


def _configure_logging(level_name: str) -> None:
    """Ensure application logs propagate with the requested verbosity."""
    level = getattr(logging, level_name.upper(), logging.WARNING)
    root_logger = logging.getLogger()
    if not root_logger.handlers:
        logging.basicConfig(
            level=level,
            format="%(asctime)s %(levelname)s %(name)s - %(message)s",
        )
    root_logger.setLevel(level)


async def _handle_domain_error(request: Request, exc: LinguaBundleError) -> JSONResponse:
    if isinstance(exc, NotFoundError):
        logger.debug("%s %s -> 404: %s", request.method, request.url.path, exc.message)
    elif exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    else:
        logger.warning("%s %s rejected: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


def create_app() -> FastAPI:
    settings = get_settings()
    _configure_logging(settings.log_level)

    app = FastAPI(
        title=settings.app_name,
        debug=settings.debug,
        version="0.1.0",
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allow_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(LinguaBundleError, _handle_domain_error)

    app.include_router(api_router, prefix="/api")

    if settings.static_dir and Path(settings.static_dir).is_dir():
        app.mount("/", StaticFiles(directory=settings.static_dir, html=True), name="static")
    else:

        @app.get("/", tags=["health"])
        async def root() -> dict[str, str]:
            return {"service": settings.app_name, "environment": settings.app_env}

    return app
