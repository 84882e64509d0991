from enum import Enum


class ContractStatus(str, Enum):
    DRAFT = "DRAFT"
    SENT_TO_LEGAL = "SENT_TO_LEGAL"
    SENT_TO_FINANCE = "SENT_TO_FINANCE"
    PENDING_LEGAL_HEAD = "PENDING_LEGAL_HEAD"
    LEGAL_APPROVED = "LEGAL_APPROVED"
    APPROVED_LEGAL_HEAD = "APPROVED_LEGAL_HEAD"
    FINANCE_REVIEWED = "FINANCE_REVIEWED"
    APPROVED = "APPROVED"
    SENT_TO_COUNTERPARTY = "SENT_TO_COUNTERPARTY"
    COUNTERSIGNED = "COUNTERSIGNED"
    ACTIVE = "ACTIVE"
    EXPIRED = "EXPIRED"
    TERMINATED = "TERMINATED"
    REJECTED = "REJECTED"
    CANCELLED = "CANCELLED"


class ContractAction(str, Enum):
    SUBMIT = "submit"
    ESCALATE = "escalate"
    APPROVE_LEGAL = "approve_legal"
    REJECT_LEGAL = "reject_legal"
    REQUEST_FINANCE = "request_finance"
    APPROVE_FINANCE = "approve_finance"
    REJECT_FINANCE = "reject_finance"
    FINALIZE = "finalize"
    SEND = "send"
    COUNTERSIGN = "countersign"
    ACTIVATE = "activate"
    UPLOAD_FINAL = "upload_final"
    CANCEL = "cancel"
    TERMINATE = "terminate"
    EXPIRE = "expire"


class ApprovalType(str, Enum):
    LEGAL = "LEGAL"
    FINANCE = "FINANCE"


class ApprovalStatus(str, Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    ESCALATED = "ESCALATED"    # superseded by an escalation
    CANCELLED = "CANCELLED"    # contract left review before resolution


class AuditModule(str, Enum):
    CONTRACTS = "contracts"
    APPROVALS = "approvals"
    SYSTEM = "system"


class AuditAction(str, Enum):
    CONTRACT_CREATED = "CONTRACT_CREATED"
    CONTRACT_UPDATED = "CONTRACT_UPDATED"
    CONTRACT_DELETED = "CONTRACT_DELETED"
    CONTRACT_SUBMITTED = "CONTRACT_SUBMITTED"
    CONTRACT_APPROVED = "CONTRACT_APPROVED"
    CONTRACT_REJECTED = "CONTRACT_REJECTED"
    CONTRACT_FINANCE_REQUESTED = "CONTRACT_FINANCE_REQUESTED"
    CONTRACT_FINALIZED = "CONTRACT_FINALIZED"
    CONTRACT_SENT = "CONTRACT_SENT"
    CONTRACT_COUNTERSIGNED = "CONTRACT_COUNTERSIGNED"
    CONTRACT_ACTIVATED = "CONTRACT_ACTIVATED"
    CONTRACT_DOCUMENT_UPLOADED = "CONTRACT_DOCUMENT_UPLOADED"
    CONTRACT_CANCELLED = "CONTRACT_CANCELLED"
    CONTRACT_TERMINATED = "CONTRACT_TERMINATED"
    CONTRACT_EXPIRED = "CONTRACT_EXPIRED"
    CONTRACT_ESCALATED_TO_LEGAL_HEAD = "CONTRACT_ESCALATED_TO_LEGAL_HEAD"
