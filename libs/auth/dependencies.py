from datetime import timedelta
from typing import Annotated

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from pydantic import ValidationError

from libs.auth.models import AuthUser, Role
from libs.common.config import get_settings
from libs.common.datetime_utils import utc_now

settings = get_settings()
security = HTTPBearer()

_SERVICE_TOKEN_TTL = timedelta(minutes=5)


def _service_role_jwt(calling_service: str) -> str:
    """Mint a short-lived token identifying an internal caller."""
    now = utc_now()
    claims = {
        "sub": f"service:{calling_service}",
        "role": Role.SERVICE.value,
        "iat": int(now.timestamp()),
        "exp": int((now + _SERVICE_TOKEN_TTL).timestamp()),
    }
    return jwt.encode(
        claims, settings.AUTH_JWT_SECRET, algorithm=settings.AUTH_JWT_ALGORITHM
    )


async def get_current_user(
    token: Annotated[HTTPAuthorizationCredentials, Depends(security)]
) -> AuthUser:
    """
    Validate the bearer JWT and return the authenticated user.
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    try:
        payload = jwt.decode(
            token.credentials,
            settings.AUTH_JWT_SECRET,
            algorithms=[settings.AUTH_JWT_ALGORITHM],
            options={"verify_aud": False},
        )
        return AuthUser(**payload)
    except (JWTError, ValidationError):
        raise credentials_exception


async def require_admin(
    current_user: Annotated[AuthUser, Depends(get_current_user)]
) -> AuthUser:
    """Ensure the caller carries the admin role."""
    if not current_user.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin privileges required",
        )
    return current_user
