import uuid
from sqlalchemy import (
    JSON, Boolean, Column, Date, DateTime, Enum, Integer, Numeric, String, Text, func
)
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import relationship

from shared.core.database import Base
from ...enum.contract_enum import ContractStatus

JsonType = JSON().with_variant(JSONB, "postgresql")


class Contract(Base):
    __tablename__ = "contracts"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    org_id = Column(UUID(as_uuid=True), nullable=False, index=True)
    reference = Column(String(32), unique=True, nullable=False)
    title = Column(String(200), nullable=False)
    status = Column(
        Enum(ContractStatus, native_enum=False,
             values_callable=lambda x: [e.value for e in x]),
        nullable=False, default=ContractStatus.DRAFT, index=True)
    template_id = Column(UUID(as_uuid=True), nullable=True)
    created_by = Column(UUID(as_uuid=True), nullable=False)

    content = Column(Text)
    annexure_data = Column(JsonType)
    field_data = Column(JsonType)

    counterparty_name = Column(String(200))
    counterparty_email = Column(String(200))
    start_date = Column(Date)
    end_date = Column(Date)
    amount = Column(Numeric(14, 2))

    cancel_reason = Column(Text)
    signed_at = Column(DateTime(timezone=True))
    is_deleted = Column(Boolean, default=False, nullable=False)

    version = Column(Integer, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True),
                        server_default=func.now(), onupdate=func.now())

    approvals = relationship(
        "ContractApproval",
        back_populates="contract",
        cascade="all, delete-orphan",
        order_by="ContractApproval.created_at",
    )

    __mapper_args__ = {"version_id_col": version}
