"""
Operation boundary for the permission ledger.

Wraps the reconciler and query engine so every operation returns an
`OperationResult` (status code, reason, data) and never raises.
"""
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional, Sequence

from app.features.permissions.errors import GrantRequestError, StoreError
from app.features.permissions.queries import QueryEngine
from app.features.permissions.reconciler import AlreadyGranted, GrantReconciler
from app.features.permissions.store import GrantStore
from app.utils import get_logger


log = get_logger(__name__)

PERMISSIONS_GIVEN = "PERMISSIONS_GIVEN"
PERMISSIONS_ALREADY_GIVEN = "PERMISSIONS_ALREADY_GIVEN"
PERMISSIONS_LOST = "PERMISSIONS_LOST"
PERMISSIONS_FOUND = "PERMISSIONS_FOUND"
INTERNAL_ERROR = "INTERNAL_ERROR"


@dataclass
class OperationResult:
    status_code: int
    status_reason: str
    data: Any = None
    meta: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {
            "status_code": self.status_code,
            "status_reason": self.status_reason,
            "data": self.data,
        }
        if self.meta is not None:
            body["meta"] = self.meta
        return body


def _failure(operation: str, exc: Exception) -> OperationResult:
    if isinstance(exc, StoreError):
        log.error("%s failed in the grant store: %s", operation, exc)
    else:
        log.exception("%s failed unexpectedly", operation)
    return OperationResult(status_code=500, status_reason=INTERNAL_ERROR)


def _rejected(operation: str, exc: GrantRequestError) -> OperationResult:
    log.info("Rejected %s: %s", operation, exc)
    return OperationResult(status_code=422, status_reason=exc.status_reason, data=exc.detail())


class PermissionService:
    """
    The four ledger operations over an injected grant store.

    Usage:
        service = PermissionService(SqlAlchemyGrantStore(database.sessions))
        result = await service.give(1, "billing", "alice", ["invoices:read"])
    """

    def __init__(self, store: GrantStore, strict_templates: bool = False):
        self.store = store
        self.reconciler = GrantReconciler(store, strict_templates=strict_templates)
        self.queries = QueryEngine(store)

    async def give(
        self,
        identity: int,
        service: str,
        creator: str,
        permissions: Sequence[str],
        data: Optional[Mapping[str, Any]] = None,
    ) -> OperationResult:
        try:
            outcome = await self.reconciler.give(identity, service, creator, permissions, data)
        except GrantRequestError as e:
            return _rejected("give", e)
        except Exception as e:
            return _failure("give", e)

        if isinstance(outcome, AlreadyGranted):
            return OperationResult(
                status_code=409,
                status_reason=PERMISSIONS_ALREADY_GIVEN,
                data={"permissions": outcome.permissions},
            )
        return OperationResult(
            status_code=200,
            status_reason=PERMISSIONS_GIVEN,
            data={"permissions": outcome.permissions},
        )

    async def lose(self, identity: int, service: str, creator: str, permissions: Sequence[str]) -> OperationResult:
        try:
            revoked = await self.reconciler.lose(identity, service, creator, permissions)
        except GrantRequestError as e:
            return _rejected("lose", e)
        except Exception as e:
            return _failure("lose", e)
        return OperationResult(
            status_code=200,
            status_reason=PERMISSIONS_LOST,
            data={"permissions": revoked.permissions},
        )

    async def has(self, identity: int, service: str, creator: str, permissions: Sequence[str]) -> OperationResult:
        try:
            check = await self.queries.has(identity, service, creator, permissions)
        except GrantRequestError as e:
            return _rejected("has", e)
        except Exception as e:
            return _failure("has", e)
        return OperationResult(
            status_code=200,
            status_reason=PERMISSIONS_FOUND,
            data={
                "has": check.overall,
                "permissions": [{"permission": item.permission, "has": item.has} for item in check.permissions],
            },
        )

    async def list_permissions(self, identity: int, service: str, creator: str) -> OperationResult:
        try:
            permissions = await self.queries.list_permissions(identity, service, creator)
        except GrantRequestError as e:
            return _rejected("list", e)
        except Exception as e:
            return _failure("list", e)
        return OperationResult(
            status_code=200,
            status_reason=PERMISSIONS_FOUND,
            data={"permissions": permissions},
            meta={"total": len(permissions)},
        )
