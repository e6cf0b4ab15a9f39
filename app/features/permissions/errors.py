"""
Exceptions raised by the permission ledger.

`AlreadyGranted` is an outcome of `give`, not an error: see
`reconciler.AlreadyGranted`.
"""
from typing import Any, Dict, List


class PermissionLedgerError(Exception):
    """Base error for the ledger."""


class StoreError(PermissionLedgerError):
    """The persistence backend failed (connectivity, constraint, driver error)."""


class DuplicateGrantError(StoreError):
    """
    An insert hit the (identity, service, permission, created_by) unique constraint.

    Raised when a concurrent `give` inserted the same grant first.
    """


class GrantRequestError(PermissionLedgerError):
    """A request the ledger can't store; reported to the caller as a 422."""

    status_reason = "INVALID_GRANT_REQUEST"

    def detail(self) -> Dict[str, Any]:
        return {}


class TemplateKeyError(GrantRequestError):
    """A permission template references keys that are missing from the data mapping."""

    status_reason = "PERMISSION_TEMPLATE_UNRESOLVED"

    def __init__(self, permission: str, missing: List[str]):
        super().__init__(f"Missing template values {missing} for {permission!r}")
        self.permission = permission
        self.missing = missing

    def detail(self) -> Dict[str, Any]:
        return {"permission": self.permission, "missing": self.missing}


class IdentityOutOfRangeError(GrantRequestError):
    status_reason = "IDENTITY_OUT_OF_RANGE"

    def __init__(self, identity: int, maximum: int):
        super().__init__(f"Identity {identity} is outside 1..{maximum}")
        self.identity = identity
        self.maximum = maximum

    def detail(self) -> Dict[str, Any]:
        return {"identity": self.identity, "maximum": self.maximum}


class PermissionTooLongError(GrantRequestError):
    """A permission, after template expansion, is longer than the column holds."""

    status_reason = "PERMISSION_TOO_LONG"

    def __init__(self, permission: str, limit: int):
        super().__init__(f"Permission is {len(permission)} characters, limit is {limit}")
        self.permission = permission
        self.limit = limit

    def detail(self) -> Dict[str, Any]:
        return {"permission": self.permission, "limit": self.limit}
