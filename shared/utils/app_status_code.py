class AppStatusCode:
    # Success
    DATA_RETRIEVED_SUCCESSFULLY = "100"
    OPERATION_SUCCESSFUL = "101"
    CREATED_SUCCESSFULLY = "102"
    UPDATED_SUCCESSFULLY = "103"

    # Authentication
    AUTHENTICATION_TOKEN_INVALID = "201"
    AUTHENTICATION_TOKEN_EXPIRED = "202"
    AUTHENTICATION_USER_INVALID = "203"
    AUTHENTICATION_USER_INACTIVE = "204"
    AUTHENTICATION_ORG_MISSING = "205"

    # Validation
    INVALID_INPUT = "301"
    REQUIRED_VALIDATION_ERROR = "302"
    DATA_CONFLICT = "303"

    # Authorization
    UNAUTHORIZED_ACTION = "401"

    # Workflow
    CONTRACT_NOT_FOUND = "501"
    APPROVAL_NOT_FOUND = "502"
    INVALID_STATUS_TRANSITION = "503"
    APPROVAL_NOT_PENDING = "504"
    APPROVAL_ALREADY_PENDING = "505"
    NO_ELIGIBLE_APPROVER = "506"
    STALE_STATE = "507"

    # Infrastructure
    OPERATION_FAILED = "900"
    SERVICE_UNAVAILABLE = "901"
