import uuid
from datetime import datetime, timezone
from sqlalchemy import JSON, Column, Date, DateTime, Enum, ForeignKey, Index, Text, text
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import relationship

from shared.core.database import Base
from ...enum.contract_enum import ApprovalStatus, ApprovalType


def utcnow():
    return datetime.now(timezone.utc)


class ContractApproval(Base):
    __tablename__ = "contract_approvals"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    contract_id = Column(UUID(as_uuid=True), ForeignKey(
        "contracts.id", ondelete="CASCADE"), nullable=False)
    type = Column(Enum(ApprovalType, native_enum=False,
                       values_callable=lambda x: [e.value for e in x]), nullable=False)
    status = Column(Enum(ApprovalStatus, native_enum=False,
                         values_callable=lambda x: [e.value for e in x]),
                    nullable=False, default=ApprovalStatus.PENDING)
    actor_id = Column(UUID(as_uuid=True), nullable=True)  # responsible user, set on assign or resolve
    requested_by = Column(UUID(as_uuid=True), nullable=True)
    due_date = Column(Date, nullable=True)
    comment = Column(Text, nullable=True)
    approval_metadata = Column(
        "metadata", JSON().with_variant(JSONB, "postgresql"), nullable=True)
    acted_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    contract = relationship("Contract", back_populates="approvals")

    __table_args__ = (
        Index("ix_contract_approvals_contract_status", "contract_id", "status"),
        # at most one PENDING approval per contract and type
        Index(
            "uq_contract_approvals_one_pending",
            "contract_id",
            "type",
            unique=True,
            postgresql_where=text("status = 'PENDING'"),
            sqlite_where=text("status = 'PENDING'"),
        ),
    )
