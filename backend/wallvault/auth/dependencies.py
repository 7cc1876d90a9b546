"""
FastAPI dependencies for authentication.
Provides get_current_user and role guards backed by provider JWTs.
"""
import logging
from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession

from wallvault.database import get_db
from wallvault.models.user import User
from wallvault.auth.jwt import verify_access_token

logger = logging.getLogger(__name__)

# HTTPBearer scheme for extracting Authorization header
security = HTTPBearer()
optional_security = HTTPBearer(auto_error=False)


async def _user_from_token(token: str, db: AsyncSession) -> User:
    try:
        claims = verify_access_token(token)
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Invalid token: {str(e)}",
            headers={"WWW-Authenticate": "Bearer"},
        )
    except RuntimeError as e:
        # Token verification is not configured on this deployment
        logger.error(f"Cannot verify access tokens: {e}")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Authentication is not configured",
        )

    user_id = claims.get("sub")
    if not user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token: missing sub"
        )

    user = await db.get(User, user_id)
    if not user:
        # Profile rows are created on first authenticated request
        user = User(id=user_id, email=claims.get("email"))
        db.add(user)
        await db.commit()
        await db.refresh(user)
        logger.info(f"Created profile for user {user_id}")

    return user


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: AsyncSession = Depends(get_db)
) -> User:
    """
    FastAPI dependency that verifies the provider JWT and returns User.

    Flow:
    1. Extract Bearer token from Authorization header
    2. Verify signature, expiry and audience
    3. Lookup user by the "sub" claim, creating the profile if missing

    Raises:
        HTTPException 401: If token is missing, invalid, or expired
        HTTPException 503: If no JWT secret is configured
    """
    token = credentials.credentials

    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing authentication token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return await _user_from_token(token, db)


async def get_optional_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(optional_security),
    db: AsyncSession = Depends(get_db)
) -> Optional[User]:
    """Like get_current_user, but anonymous requests yield None."""
    if credentials is None or not credentials.credentials:
        return None
    return await _user_from_token(credentials.credentials, db)


async def require_admin(user: User = Depends(get_current_user)) -> User:
    """Reject non-admin users with 403."""
    if not user.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required"
        )
    return user


async def require_creator(user: User = Depends(get_current_user)) -> User:
    """Reject users without upload rights with 403."""
    if not user.can_upload:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Creator access required"
        )
    return user
