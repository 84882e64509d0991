import uuid
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy import TIMESTAMP, Column, String, Text, Boolean, UniqueConstraint, func
from sqlalchemy.orm import relationship
from shared.core.database import AuthBase


class Roles(AuthBase):
    __tablename__ = "roles"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    org_id = Column(UUID(as_uuid=True), nullable=True)  # NULL = system role shared by all orgs
    code = Column(String(64), nullable=False)  # LEGAL_HEAD, FINANCE_MANAGER ...
    name = Column(String(64), nullable=False)
    description = Column(Text, nullable=True)
    is_deleted = Column(Boolean, default=False, nullable=False)
    created_at = Column(TIMESTAMP(timezone=True), server_default=func.now())
    updated_at = Column(TIMESTAMP(timezone=True),
                        server_default=func.now(), onupdate=func.now())

    policies = relationship("RolePolicy", back_populates="role",
                            cascade="all, delete-orphan")
    user_orgs = relationship(
        "UserOrganization",
        secondary="user_org_roles",
        back_populates="roles"
    )

    __table_args__ = (
        UniqueConstraint("org_id", "code", name="uq_role_org_code"),
    )
