"""
Permission ledger API routes.

Every route answers with the `OperationResponse` envelope and mirrors its
`status_code` as the HTTP status. Routes are rate limited per Authorization
header; `/` and `/health` are not.
"""
from fastapi import APIRouter, Depends, Request
from slowapi import Limiter
from starlette.responses import JSONResponse

from app.features.permissions.dependencies import get_creator, get_permission_service
from app.features.permissions.schemas import (
    GiveRequest,
    HasRequest,
    ListRequest,
    LoseRequest,
    OperationResponse,
)
from app.features.permissions.service import OperationResult, PermissionService


def _respond(result: OperationResult) -> JSONResponse:
    return JSONResponse(status_code=result.status_code, content=result.to_dict())


def create_router(limiter: Limiter, rate_limit: str) -> APIRouter:
    """
    Build the ledger router with `rate_limit` applied to every route.

    Usage:
        limiter = Limiter(key_func=get_authorization_header)
        app.state.limiter = limiter
        app.include_router(create_router(limiter, "120/minute"), prefix="/permissions")
    """
    router = APIRouter()

    @router.post("/give", response_model=OperationResponse)
    @limiter.limit(rate_limit)
    async def give(
        request: Request,
        body: GiveRequest,
        creator: str = Depends(get_creator),
        permission_service: PermissionService = Depends(get_permission_service),
    ):
        """Grant permissions not held yet. 409 when there is nothing new to grant."""
        result = await permission_service.give(body.identity, body.service, creator, body.permissions, body.data)
        return _respond(result)

    @router.delete("/lose", response_model=OperationResponse)
    @limiter.limit(rate_limit)
    async def lose(
        request: Request,
        body: LoseRequest,
        creator: str = Depends(get_creator),
        permission_service: PermissionService = Depends(get_permission_service),
    ):
        """Revoke permissions; unknown permissions are ignored."""
        result = await permission_service.lose(body.identity, body.service, creator, body.permissions)
        return _respond(result)

    @router.post("/has", response_model=OperationResponse)
    @limiter.limit(rate_limit)
    async def has(
        request: Request,
        body: HasRequest,
        creator: str = Depends(get_creator),
        permission_service: PermissionService = Depends(get_permission_service),
    ):
        """Check whether the identity holds every listed permission."""
        result = await permission_service.has(body.identity, body.service, creator, body.permissions)
        return _respond(result)

    @router.post("/get", response_model=OperationResponse)
    @limiter.limit(rate_limit)
    async def get_by_identity_and_service(
        request: Request,
        body: ListRequest,
        creator: str = Depends(get_creator),
        permission_service: PermissionService = Depends(get_permission_service),
    ):
        """List the permissions the caller granted to an identity in a service."""
        result = await permission_service.list_permissions(body.identity, body.service, creator)
        return _respond(result)

    return router
