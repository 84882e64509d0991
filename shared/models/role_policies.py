import uuid
from sqlalchemy import Column, ForeignKey, String, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
from shared.core.database import AuthBase


class RolePolicy(AuthBase):
    __tablename__ = "role_policies"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    org_id = Column(UUID(as_uuid=True), nullable=True)
    role_id = Column(UUID(as_uuid=True), ForeignKey(
        "roles.id", ondelete="CASCADE"), nullable=False)

    # permission code is "<resource>:<action>", e.g. approval:legal + act
    resource = Column(String(64), nullable=False)
    action = Column(String(32), nullable=False)

    role = relationship("Roles", back_populates="policies")

    __table_args__ = (
        UniqueConstraint("role_id", "resource", "action",
                         name="uq_role_policy"),
    )
