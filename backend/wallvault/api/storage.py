"""
Image proxy for private bucket objects.
Reads through a presigned GET and serves the bytes with long-lived caching.
"""
from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import Response

from wallvault.storage.exceptions import StorageError
from wallvault.storage.r2_client import R2Client, get_r2_client

router = APIRouter()

CACHE_CONTROL = "public, max-age=31536000"


@router.get("/proxy")
async def proxy_object(
    key: str = Query(..., min_length=1, description="Object key in the bucket"),
    r2_client: R2Client = Depends(get_r2_client)
):
    """Serve an object from R2 (keys are immutable, so responses cache for a year)."""
    if key.startswith("/") or ".." in key.split("/"):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid object key")

    try:
        data, content_type = await r2_client.get_object(key)
    except StorageError as e:
        if e.status_code == 404:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Object not found")
        raise

    return Response(
        content=data,
        media_type=content_type,
        headers={"Cache-Control": CACHE_CONTROL},
    )
