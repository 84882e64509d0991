from shared.utils.app_status_code import AppStatusCode


class WorkflowError(Exception):
    """Domain error raised by workflow operations. Never retried automatically."""
    http_status = 400
    status_code = AppStatusCode.OPERATION_FAILED
    retryable = False

    def __init__(self, message: str = None):
        super().__init__(message or self.default_message())
        self.message = str(self)

    @classmethod
    def default_message(cls) -> str:
        return cls.__name__

    @property
    def error(self) -> str:
        return type(self).__name__


class Unauthorized(WorkflowError):
    http_status = 403
    status_code = AppStatusCode.UNAUTHORIZED_ACTION

    @classmethod
    def default_message(cls):
        return "Not authorized to perform this action"


class ContractNotFound(WorkflowError):
    http_status = 404
    status_code = AppStatusCode.CONTRACT_NOT_FOUND

    @classmethod
    def default_message(cls):
        return "Contract not found"


class ApprovalNotFound(WorkflowError):
    http_status = 404
    status_code = AppStatusCode.APPROVAL_NOT_FOUND

    @classmethod
    def default_message(cls):
        return "Approval not found"


class InvalidTransition(WorkflowError):
    http_status = 409
    status_code = AppStatusCode.INVALID_STATUS_TRANSITION

    @classmethod
    def default_message(cls):
        return "Action is not allowed in the current contract status"


class NotPending(WorkflowError):
    http_status = 409
    status_code = AppStatusCode.APPROVAL_NOT_PENDING

    @classmethod
    def default_message(cls):
        return "Approval has already been processed"


class DuplicatePending(WorkflowError):
    http_status = 409
    status_code = AppStatusCode.APPROVAL_ALREADY_PENDING

    @classmethod
    def default_message(cls):
        return "A pending approval of this type already exists"


class StaleState(WorkflowError):
    http_status = 409
    status_code = AppStatusCode.STALE_STATE

    @classmethod
    def default_message(cls):
        return "Contract was modified by another request, reload and retry"


class NoEligibleApprover(WorkflowError):
    http_status = 422
    status_code = AppStatusCode.NO_ELIGIBLE_APPROVER

    @classmethod
    def default_message(cls):
        return "No eligible approver found in the organization"
