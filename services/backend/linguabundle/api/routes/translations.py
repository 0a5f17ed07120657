from typing import Any

from fastapi import APIRouter, Body, Depends, status

from linguabundle.api.deps import get_bundle_store
from linguabundle.integrations.bundle_store import BundleStore
from linguabundle.schemas.translation import BundleSavedResponse

router = APIRouter()


@router.get(
    "/{bundle_path:path}",
    summary="Return the stored bundle at the given store-relative path.",
)
async def read_bundle(
    bundle_path: str,
    store: BundleStore = Depends(get_bundle_store),
) -> dict[str, Any]:
    return await store.fetch(bundle_path)


@router.post(
    "/{bundle_path:path}",
    response_model=BundleSavedResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Persist a bundle, creating missing namespace levels.",
)
async def save_bundle(
    bundle_path: str,
    bundle: dict[str, Any] = Body(...),
    store: BundleStore = Depends(get_bundle_store),
) -> BundleSavedResponse:
    await store.put(bundle_path, bundle)
    return BundleSavedResponse(message="File saved successfully.", path=bundle_path)
