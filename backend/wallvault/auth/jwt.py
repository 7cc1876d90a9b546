"""
Access token verification for the auth provider.
Tokens are HS256 JWTs signed with the project's JWT secret.
"""
import logging

import jwt

from wallvault.config import settings

logger = logging.getLogger(__name__)


def verify_access_token(token: str) -> dict:
    """
    Verify a provider access token and return its claims.

    Args:
        token: Bearer JWT from the Authorization header

    Returns:
        Decoded claims dict with sub, email, etc.

    Raises:
        RuntimeError: If no JWT secret is configured
        ValueError: If the token is invalid, expired, or for another audience
    """
    if not settings.supabase_jwt_secret:
        raise RuntimeError("SUPABASE_JWT_SECRET must be set to verify access tokens")

    try:
        # Validates signature, expiration and audience
        return jwt.decode(
            token,
            settings.supabase_jwt_secret,
            algorithms=["HS256"],
            audience=settings.supabase_jwt_audience,
        )
    except jwt.ExpiredSignatureError:
        raise ValueError("Token expired")
    except jwt.InvalidTokenError as e:
        raise ValueError(f"Token verification failed: {str(e)}")
