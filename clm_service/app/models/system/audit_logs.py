import uuid
from datetime import datetime, timezone
from sqlalchemy import JSON, Column, DateTime, String, event
from sqlalchemy.dialects.postgresql import JSONB, UUID

from shared.core.database import Base

JsonType = JSON().with_variant(JSONB, "postgresql")


class AuditLog(Base):
    __tablename__ = "audit_logs"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    org_id = Column(UUID(as_uuid=True), nullable=True, index=True)
    contract_id = Column(UUID(as_uuid=True), nullable=True, index=True)
    user_id = Column(UUID(as_uuid=True), nullable=True)  # NULL for system jobs
    action = Column(String(64), nullable=False, index=True)
    module = Column(String(32), nullable=False)
    target_type = Column(String(32), nullable=False)
    target_id = Column(String(64), nullable=True)
    old_value = Column(JsonType)
    new_value = Column(JsonType)
    audit_metadata = Column("metadata", JsonType)
    created_at = Column(DateTime(timezone=True),
                        default=lambda: datetime.now(timezone.utc), index=True)


@event.listens_for(AuditLog, "before_update")
def prevent_audit_update(mapper, connection, target):
    raise ValueError("Audit log entries are append-only")
