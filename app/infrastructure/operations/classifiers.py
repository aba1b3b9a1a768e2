"""Error classifier for AWS SDK exceptions.

Converts botocore exceptions into OperationResult objects so DynamoDB and
SQS callers branch on status instead of parsing error codes.

Usage:
    from infrastructure.operations.classifiers import classify_aws_error

    try:
        response = client.put_item(**kwargs)
    except (ClientError, BotoCoreError) as exc:
        return classify_aws_error(exc)
"""

from botocore.exceptions import ClientError

from infrastructure.operations.result import OperationResult
from infrastructure.operations.status import OperationStatus

THROTTLING_ERROR_CODES = frozenset(
    {
        "Throttling",
        "ThrottlingException",
        "RequestLimitExceeded",
        "ProvisionedThroughputExceededException",
        "AWS.SimpleQueueService.RequestThrottled",
    }
)

NOT_FOUND_ERROR_CODES = frozenset(
    {
        "ResourceNotFoundException",
        "QueueDoesNotExist",
        "AWS.SimpleQueueService.NonExistentQueue",
    }
)

VALIDATION_ERROR_CODES = frozenset(
    {
        "ValidationException",
        "InvalidParameterException",
        "InvalidParameterValue",
        "BadRequestException",
        "ReceiptHandleIsInvalid",
        "MessageTooLong",
    }
)


def classify_aws_error(exc: Exception) -> OperationResult:
    """Classify AWS SDK errors into OperationResult.

    Error Code Mapping:
    - ConditionalCheckFailedException: PRECONDITION_FAILED
    - Throttling codes: TRANSIENT_ERROR with retry_after
    - AccessDenied codes: UNAUTHORIZED
    - Not found codes: NOT_FOUND
    - Validation codes: PERMANENT_ERROR
    - Other ClientError: TRANSIENT_ERROR (AWS convention)
    - Non-ClientError (connection, timeout): TRANSIENT_ERROR

    Args:
        exc: Exception raised by boto3/botocore

    Returns:
        OperationResult with status, message and error_code
    """
    if not isinstance(exc, ClientError):
        return OperationResult.transient_error(
            f"AWS connection error: {type(exc).__name__}: {str(exc)}",
            error_code="CONNECTION_ERROR",
        )

    error_info = exc.response.get("Error", {}) if exc.response else {}
    error_code = error_info.get("Code", "Unknown")
    error_message = error_info.get("Message", str(exc))

    if error_code == "ConditionalCheckFailedException":
        return OperationResult.precondition_failed(
            error_message or "Conditional check failed",
            error_code="CONDITIONAL_CHECK_FAILED",
        )

    if error_code in THROTTLING_ERROR_CODES:
        return OperationResult.error(
            OperationStatus.TRANSIENT_ERROR,
            "AWS API throttled",
            error_code="RATE_LIMITED",
            retry_after=60,
        )

    if error_code in ("AccessDeniedException", "AccessDenied", "UnauthorizedOperation"):
        return OperationResult.error(
            OperationStatus.UNAUTHORIZED,
            "AWS API access denied",
            error_code="FORBIDDEN",
        )

    if error_code in NOT_FOUND_ERROR_CODES:
        return OperationResult.error(
            OperationStatus.NOT_FOUND,
            f"AWS resource not found: {error_code}",
            error_code="NOT_FOUND",
        )

    if error_code in VALIDATION_ERROR_CODES:
        return OperationResult.permanent_error(
            f"AWS validation error: {error_code}: {error_message}",
            error_code="INVALID_REQUEST",
        )

    # Unknown AWS errors are treated as transient
    return OperationResult.transient_error(
        f"AWS client error: {error_code}",
        error_code="AWS_CLIENT_ERROR",
    )
