from fastapi import APIRouter

from linguabundle.api.routes import bundles, generation, health, translations

api_router = APIRouter()

api_router.include_router(health.router, tags=["health"])
api_router.include_router(generation.router, tags=["generation"])
api_router.include_router(bundles.router, prefix="/bundles", tags=["bundles"])
api_router.include_router(translations.router, prefix="/translations", tags=["translations"])
