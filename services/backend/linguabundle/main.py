import uvicorn

from linguabundle.core.app import create_app
from linguabundle.core.config import get_settings

app = create_app()


def run() -> None:
    """Serve the bundle API (`/api/translations`, `/api/generate-translation`) on API_HOST:API_PORT."""
    settings = get_settings()
    uvicorn.run(
        "linguabundle.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.debug,
    )


if __name__ == "__main__":
    run()
