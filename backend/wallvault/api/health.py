"""
Health check endpoint.
Verifies database and Redis connectivity and reports whether R2 is configured.
"""
import logging

import redis.asyncio as aioredis
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from wallvault.config import settings
from wallvault.database import get_db
from wallvault.storage.exceptions import StorageConfigError

logger = logging.getLogger(__name__)

router = APIRouter()


async def check_redis() -> str:
    client = aioredis.from_url(settings.redis_url, socket_connect_timeout=2)
    try:
        await client.ping()
        return "connected"
    finally:
        await client.aclose()


@router.get("")
async def health_check(db: AsyncSession = Depends(get_db)):
    """
    Health check endpoint.
    Returns status of database and Redis connections. Missing R2
    configuration is reported but does not make the API unhealthy.
    """
    health_status = {
        "status": "healthy",
        "database": "unknown",
        "redis": "unknown",
        "storage": "unknown",
    }

    # Check database
    try:
        await db.execute(text("SELECT 1"))
        health_status["database"] = "connected"
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        health_status["database"] = f"error: {str(e)}"
        health_status["status"] = "unhealthy"

    # Check Redis
    try:
        health_status["redis"] = await check_redis()
    except Exception as e:
        logger.error(f"Redis health check failed: {e}")
        health_status["redis"] = f"error: {str(e)}"
        health_status["status"] = "unhealthy"

    # Check R2 configuration (no network call)
    try:
        settings.signing_credentials()
        health_status["storage"] = "configured"
    except StorageConfigError as e:
        health_status["storage"] = str(e)

    if health_status["status"] == "unhealthy":
        raise HTTPException(status_code=503, detail=health_status)

    return health_status
