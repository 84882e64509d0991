import uuid
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy import (
    Column, String, Boolean, ForeignKey, Table, TIMESTAMP, func, UniqueConstraint
)
from sqlalchemy.orm import relationship
from shared.core.database import AuthBase


user_org_roles = Table(
    "user_org_roles",
    AuthBase.metadata,
    Column(
        "user_org_id",
        UUID(as_uuid=True),
        ForeignKey("user_organizations.id", ondelete="CASCADE"),
        primary_key=True
    ),
    Column(
        "role_id",
        UUID(as_uuid=True),
        ForeignKey("roles.id", ondelete="CASCADE"),
        primary_key=True
    )
)


class UserOrganization(AuthBase):
    __tablename__ = "user_organizations"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(UUID(as_uuid=True), ForeignKey(
        "users.id"), nullable=False)
    org_id = Column(UUID(as_uuid=True), ForeignKey(
        "orgs.id"), nullable=False)
    status = Column(String(16), nullable=False, default="active")
    joined_at = Column(TIMESTAMP(timezone=True), server_default=func.now())
    is_deleted = Column(Boolean, default=False, nullable=False)

    user = relationship("Users", back_populates="organizations")
    roles = relationship(
        "Roles",
        secondary=user_org_roles,
        back_populates="user_orgs"
    )

    __table_args__ = (
        # prevent duplicate user-org mapping
        UniqueConstraint(
            "user_id",
            "org_id",
            name="uq_user_org",
        ),
    )
