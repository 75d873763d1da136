"""
Authentication service.
Decodes Supabase JWTs and resolves the current user's profile.
"""

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
import jwt

from app.config import settings
from app.dependencies import get_db
from app.domain.models import UserProfile
from app.ports.database_port import DatabasePort

_bearer_scheme = HTTPBearer()

# Audience Supabase stamps on tokens for signed-in users
SUPABASE_AUDIENCE = "authenticated"


def decode_user_id(token: str, secret: str) -> str:
    """
    Verify a Supabase access token (HS256, project JWT secret) and return
    its `sub` claim. Expiry is enforced with a 30-second leeway for clock
    drift; `iat` is not checked.
    """
    try:
        payload = jwt.decode(
            token,
            secret,
            algorithms=["HS256"],
            audience=SUPABASE_AUDIENCE,
            options={"verify_iat": False},
            leeway=30,
        )
    except jwt.ExpiredSignatureError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token has expired",
        )
    except jwt.InvalidTokenError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Invalid token: {e}",
        )

    user_id = payload.get("sub")
    if not user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token missing user ID (sub claim)",
        )
    return user_id


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(_bearer_scheme),
    db: DatabasePort = Depends(get_db),
) -> UserProfile:
    """
    FastAPI dependency: verify the bearer token locally, then load the
    profile row the job pipeline filters on.
    """
    user_id = decode_user_id(credentials.credentials, settings.supabase_jwt_secret)

    row = await db.get_user_profile(user_id)
    if not row:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User profile not found",
        )

    # Nullable list columns fall back to the model defaults
    return UserProfile(**{k: v for k, v in row.items() if v is not None})
