"""
Permission grant model.

Each row is the fact "identity X was given permission P by creator C on
behalf of service S". Rows are inserted by `give`, deleted by `lose`, and
never updated otherwise.
"""
from sqlalchemy import BigInteger, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column
import ulid

from app.core.database.base import Base, TimestampMixin

# Largest identity a BIGINT column holds
MAX_IDENTITY = 2**63 - 1
MAX_PERMISSION_LENGTH = 512


def generate_ulid() -> str:
    """Generate a new ULID string."""
    return ulid.new().str


class PermissionGrant(Base, TimestampMixin):
    """
    A single permission held by an identity.

    No foreign keys: identity and service are opaque to the ledger.
    The unique constraint is what keeps concurrent gives from duplicating a grant.
    """
    __tablename__ = "permissions"

    # Primary key using ULID
    id: Mapped[str] = mapped_column(String(26), primary_key=True, default=generate_ulid)

    identity: Mapped[int] = mapped_column(BigInteger, nullable=False)
    # Service name who created the grant and is responsible for it
    service: Mapped[str] = mapped_column(String(255), nullable=False)
    # Fully expanded, e.g. "@admin:42:api.v1.admin"
    permission: Mapped[str] = mapped_column(String(MAX_PERMISSION_LENGTH), nullable=False)
    # Trimmed, lowercase
    created_by: Mapped[str] = mapped_column(String(255), nullable=False)

    __table_args__ = (
        UniqueConstraint("identity", "service", "permission", "created_by", name="uq_permission_grant"),
        Index("ix_permissions_scope", "identity", "service", "created_by"),
    )

    def __repr__(self) -> str:
        return (
            f"<PermissionGrant(identity={self.identity}, service={self.service!r}, "
            f"permission={self.permission!r}, created_by={self.created_by!r})>"
        )
