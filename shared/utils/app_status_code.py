class AppStatusCode:
    """Application level status codes carried in every response envelope."""

    # Success
    OPERATION_SUCCESSFUL = "1000"
    DATA_RETRIEVED_SUCCESSFULLY = "1001"
    CREATED_SUCCESSFULLY = "1002"
    UPDATED_SUCCESSFULLY = "1003"

    # Generic failures
    OPERATION_FAILED = "2000"
    INVALID_INPUT = "2001"
    REQUIRED_VALIDATION_ERROR = "2002"

    # Organization lookup / uniqueness
    ORGANIZATION_NOT_FOUND = "3000"
    ORGANIZATION_ALREADY_EXISTS = "3001"
    ORGANIZATION_CODE_CONFLICT = "3002"

    # Verification workflow
    OTP_EXPIRED = "4000"
    OTP_INVALID = "4001"
    VERIFICATION_OUT_OF_ORDER = "4002"

    # Login
    AUTHENTICATION_USER_INVALID = "5000"
    AUTHENTICATION_CREDENTIALS_INVALID = "5001"
    AUTHENTICATION_USER_NOT_VERIFIED = "5002"

    # Artifacts / external collaborators
    ARTIFACT_NOT_FOUND = "6000"
    ARTIFACT_UPLOAD_FAILED = "6001"
    EXTERNAL_DEPENDENCY_FAILED = "6002"
