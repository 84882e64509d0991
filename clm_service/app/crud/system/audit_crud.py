import logging
import threading
from collections import deque
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Optional
from uuid import UUID

from fastapi import BackgroundTasks
from sqlalchemy.orm import Session

from shared.core.config import settings
from shared.core.database import clm_session_scope
from shared.core.schemas import AuthContext
from shared.helpers.app_errors import ContractNotFound, Unauthorized
from shared.utils.enums import PermissionCode
from ...models.contracts.contracts import Contract
from ...models.system.audit_logs import AuditLog
from ...schemas.system.audit_logs_schemas import (
    AuditEntry, AuditLogListResponse, AuditLogOut, AuditLogRequest
)

logger = logging.getLogger(__name__)

MAX_RETRY_QUEUE = 1000

# entries whose write failed; drained by the scheduler
_retry_queue = deque(maxlen=MAX_RETRY_QUEUE)
_queue_lock = threading.Lock()


def sanitize_metadata(value: Any, depth: int = 0) -> Any:
    """Bound the size of values stored in audit JSON columns."""
    if depth > settings.AUDIT_METADATA_MAX_DEPTH:
        return "[MAX_DEPTH_EXCEEDED]"

    if value is None or isinstance(value, (bool, int, float)):
        return value

    if isinstance(value, Enum):
        return value.value

    if isinstance(value, (UUID, Decimal)):
        return str(value)

    if isinstance(value, (datetime, date)):
        return value.isoformat()

    if isinstance(value, str):
        limit = settings.AUDIT_METADATA_MAX_STRING
        if len(value) > limit:
            return value[:limit] + "...[TRUNCATED]"
        return value

    if isinstance(value, (list, tuple, set)):
        items = list(value)
        limit = settings.AUDIT_METADATA_MAX_ITEMS
        sanitized = [sanitize_metadata(v, depth + 1) for v in items[:limit]]
        if len(items) > limit:
            sanitized.append(f"[{len(items) - limit} MORE ITEMS TRUNCATED]")
        return sanitized

    if isinstance(value, dict):
        keys = list(value.keys())
        limit = settings.AUDIT_METADATA_MAX_KEYS
        sanitized = {str(k): sanitize_metadata(value[k], depth + 1)
                     for k in keys[:limit]}
        if len(keys) > limit:
            sanitized["__TRUNCATED__"] = f"{len(keys) - limit} more fields omitted"
        return sanitized

    return str(value)


def _to_model(entry: AuditEntry) -> AuditLog:
    return AuditLog(
        org_id=entry.org_id,
        contract_id=entry.contract_id,
        user_id=entry.user_id,
        action=entry.action.value,
        module=entry.module.value,
        target_type=entry.target_type,
        target_id=entry.target_id,
        old_value=sanitize_metadata(entry.old_value),
        new_value=sanitize_metadata(entry.new_value),
        audit_metadata=sanitize_metadata(entry.metadata),
    )


def record(entry: AuditEntry) -> bool:
    """Append one audit entry. Never raises: failures are logged and queued for retry."""
    try:
        with clm_session_scope() as db:
            db.add(_to_model(entry))
        return True
    except Exception:
        logger.exception("Failed to write audit entry %s for %s %s",
                         entry.action.value, entry.target_type, entry.target_id)
        with _queue_lock:
            _retry_queue.append(entry)
        return False


def schedule(background_tasks: Optional[BackgroundTasks], entry: AuditEntry):
    """Record after the response when running inside a request."""
    if background_tasks is not None:
        background_tasks.add_task(record, entry)
    else:
        record(entry)


def pending_count() -> int:
    with _queue_lock:
        return len(_retry_queue)


def retry_pending() -> int:
    with _queue_lock:
        entries = list(_retry_queue)
        _retry_queue.clear()

    written = 0
    for entry in entries:
        if record(entry):
            written += 1

    if entries:
        logger.info("Audit retry: %s of %s queued entries written",
                    written, len(entries))
    return written


def get_contract_audit_logs(db: Session, contract_id: UUID, ctx: AuthContext):
    if not ctx.can(PermissionCode.CONTRACT_HISTORY, PermissionCode.SYSTEM_AUDIT):
        raise Unauthorized("Missing required permission: contract:history")

    exists = db.query(Contract.id).filter(
        Contract.id == contract_id,
        Contract.org_id == ctx.org_id
    ).first()
    if not exists:
        raise ContractNotFound()

    logs = (
        db.query(AuditLog)
        .filter(AuditLog.contract_id == contract_id)
        .order_by(AuditLog.created_at.desc())
        .all()
    )
    return [AuditLogOut.model_validate(log) for log in logs]


def get_org_audit_logs(db: Session, ctx: AuthContext, params: AuditLogRequest) -> AuditLogListResponse:
    if not ctx.can(PermissionCode.SYSTEM_AUDIT):
        raise Unauthorized("Missing required permission: system:audit")

    query = db.query(AuditLog).filter(AuditLog.org_id == ctx.org_id)

    if params.module:
        query = query.filter(AuditLog.module == params.module.value)
    if params.action:
        query = query.filter(AuditLog.action == params.action.value)
    if params.user_id:
        query = query.filter(AuditLog.user_id == params.user_id)
    if params.contract_id:
        query = query.filter(AuditLog.contract_id == params.contract_id)
    if params.from_date:
        query = query.filter(AuditLog.created_at >= params.from_date)
    if params.to_date:
        query = query.filter(AuditLog.created_at <= params.to_date)

    total = query.count()
    logs = (
        query.order_by(AuditLog.created_at.desc())
        .offset(params.skip or 0)
        .limit(params.limit or 50)
        .all()
    )

    return AuditLogListResponse(
        logs=[AuditLogOut.model_validate(log) for log in logs],
        total=total
    )
