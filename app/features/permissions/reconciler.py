"""
Grant reconciler: idempotent `give` and `lose`.

`give` only inserts the permissions an identity doesn't already hold, so
repeating a request is harmless. Races between concurrent gives are settled
by the store's unique constraint: the loser re-reads and recomputes.
"""
from dataclasses import dataclass
from typing import Any, List, Mapping, Optional, Sequence, Union

from app.features.permissions.errors import (
    DuplicateGrantError,
    IdentityOutOfRangeError,
    PermissionTooLongError,
    StoreError,
)
from app.features.permissions.models import MAX_IDENTITY, MAX_PERMISSION_LENGTH
from app.features.permissions.store import GrantStore
from app.features.permissions.templates import expand
from app.utils import get_logger


log = get_logger(__name__)

# How many times give recomputes its diff after losing an insert race
GIVE_ATTEMPTS = 3


def normalize_creator(creator: str) -> str:
    return creator.strip().lower()


def check_identity(identity: int) -> None:
    if not 1 <= identity <= MAX_IDENTITY:
        raise IdentityOutOfRangeError(identity, MAX_IDENTITY)


@dataclass(frozen=True)
class Granted:
    """Newly inserted permissions only."""
    permissions: List[str]


@dataclass(frozen=True)
class AlreadyGranted:
    """Nothing new to insert; carries the requested (expanded) permissions."""
    permissions: List[str]


@dataclass(frozen=True)
class Revoked:
    permissions: List[str]


GiveOutcome = Union[Granted, AlreadyGranted]


def missing_permissions(requested: Sequence[str], existing: Sequence[str]) -> List[str]:
    """Requested permissions not in `existing`, de-duplicated, in request order."""
    held = set(existing)
    return [permission for permission in dict.fromkeys(requested) if permission not in held]


class GrantReconciler:
    def __init__(self, store: GrantStore, strict_templates: bool = False):
        self.store = store
        self.strict_templates = strict_templates

    async def give(
        self,
        identity: int,
        service: str,
        creator: str,
        requested_permissions: Sequence[str],
        data: Optional[Mapping[str, Any]] = None,
    ) -> GiveOutcome:
        """
        Grant the requested permissions that aren't held yet.

        Templates are expanded with `data` first, e.g. `@admin:{user}:api.v1.admin`
        with `{"user": 1}` is stored as `@admin:1:api.v1.admin`.

        Returns:
            Granted with the newly inserted subset, or AlreadyGranted when
            every requested permission was already held

        Raises:
            TemplateKeyError: strict templates and a placeholder has no value
            IdentityOutOfRangeError: identity doesn't fit the ledger
            PermissionTooLongError: an expanded permission is too long to store
            StoreError: the store failed, or the insert race kept recurring
        """
        check_identity(identity)
        created_by = normalize_creator(creator)
        data = data or {}
        permissions = [expand(permission, data, strict=self.strict_templates) for permission in requested_permissions]
        for permission in permissions:
            if len(permission) > MAX_PERMISSION_LENGTH:
                raise PermissionTooLongError(permission, MAX_PERMISSION_LENGTH)

        for attempt in range(1, GIVE_ATTEMPTS + 1):
            existing = await self.store.find_grants(identity, service, created_by)
            to_grant = missing_permissions(permissions, existing)

            if not to_grant:
                log.debug("Identity %s already holds %s in %s from %s", identity, permissions, service, created_by)
                return AlreadyGranted(permissions=permissions)

            try:
                await self.store.insert_grants(identity, service, created_by, to_grant)
            except DuplicateGrantError:
                log.info(
                    "Concurrent give for identity=%s service=%s created_by=%s, recomputing (attempt %s/%s)",
                    identity, service, created_by, attempt, GIVE_ATTEMPTS,
                )
                continue

            log.info("Gave %s to identity %s in %s from %s", to_grant, identity, service, created_by)
            return Granted(permissions=to_grant)

        raise StoreError(f"Could not settle concurrent gives for identity {identity} in {service}")

    async def lose(
        self,
        identity: int,
        service: str,
        creator: str,
        permissions: Sequence[str],
    ) -> Revoked:
        """
        Revoke permissions. Permissions that aren't held are ignored.

        The result always echoes the requested list, whatever was actually removed.
        """
        check_identity(identity)
        created_by = normalize_creator(creator)
        removed = await self.store.delete_grants(identity, service, created_by, permissions)
        log.info("Identity %s lost %s of %s in %s from %s", identity, removed, list(permissions), service, created_by)
        return Revoked(permissions=list(permissions))
