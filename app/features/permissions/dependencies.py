"""
FastAPI dependencies for the permission ledger routes.
"""
from typing import Annotated
import jwt
from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from app.core.config import Settings
from app.features.permissions.service import PermissionService


security = HTTPBearer(auto_error=False)


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_permission_service(request: Request) -> PermissionService:
    """The service built at startup; see `app.main.create_app`."""
    return request.app.state.permission_service


def decode_creator_token(token: str, settings: Settings) -> dict:
    """
    Decode the caller's JWT and return its payload.

    The signature is checked only when a JWT secret is configured; otherwise
    the token was already authenticated upstream and is trusted as-is.

    Raises:
        HTTPException: If token is invalid or expired
    """
    try:
        if settings.jwt_secret:
            return jwt.decode(token, settings.jwt_secret, algorithms=["HS256"])
        return jwt.decode(
            token,
            options={"verify_signature": False, "verify_exp": True}
        )
    except jwt.ExpiredSignatureError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token has expired",
            headers={"WWW-Authenticate": "Bearer"},
        )
    except jwt.InvalidTokenError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Invalid token: {str(e)}",
            headers={"WWW-Authenticate": "Bearer"},
        )


async def get_creator(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> str:
    """
    The authenticated caller issuing the request.

    Usage:
        @router.post("/give")
        async def give(creator: str = Depends(get_creator)):
            ...
    """
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )

    payload = decode_creator_token(credentials.credentials, settings)
    creator = payload.get(settings.creator_claim)
    if not isinstance(creator, str) or not creator.strip():
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token payload",
        )
    return creator


def get_authorization_header(request) -> str:
    """
    Extract authorization header for rate limiting.
    Used with slowapi Limiter.
    """
    auth = request.headers.get("Authorization", "")
    return auth or "anonymous"
