"""
API key management router
"""

from fastapi import APIRouter, Depends, HTTPException, status

from ...security.keys import ApiKeyManager
from ..dependencies import get_api_key_manager, get_current_user
from ..models import ApiKeyListResponse, ApiKeyRequest, ApiKeyResponse

router = APIRouter()


@router.post("", response_model=ApiKeyResponse, status_code=status.HTTP_201_CREATED)
async def store_api_key(
    body: ApiKeyRequest,
    user_id: str = Depends(get_current_user),
    manager: ApiKeyManager = Depends(get_api_key_manager),
):
    """
    Store a provider API key for the caller

    The key is encrypted before it is persisted and is never returned.
    """
    await manager.store_key(user_id, body.provider, body.api_key)
    return ApiKeyResponse(provider=body.provider.strip(), stored=True)


@router.get("", response_model=ApiKeyListResponse)
async def list_api_keys(
    user_id: str = Depends(get_current_user),
    manager: ApiKeyManager = Depends(get_api_key_manager),
):
    return ApiKeyListResponse(providers=await manager.list_providers(user_id))


@router.delete("/{provider}", response_model=ApiKeyResponse)
async def delete_api_key(
    provider: str,
    user_id: str = Depends(get_current_user),
    manager: ApiKeyManager = Depends(get_api_key_manager),
):
    if not await manager.delete_key(user_id, provider):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"No API key stored for provider {provider}",
        )
    return ApiKeyResponse(provider=provider, stored=False)
