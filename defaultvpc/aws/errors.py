"""Classification of botocore errors into the deletion error taxonomy."""

from __future__ import annotations

from enum import Enum

from botocore.exceptions import (
    BotoCoreError,
    ClientError,
    ConnectionClosedError,
    ConnectTimeoutError,
    EndpointConnectionError,
    ReadTimeoutError,
)

from defaultvpc.exceptions import (
    DefaultVpcDeletionError,
    DependencyViolationError,
    InvalidConfigurationError,
    PermissionDeniedError,
    TransientError,
)


class ErrorKind(Enum):
    """How a failed API call should be treated."""

    NOT_FOUND = "not-found"
    TRANSIENT = "transient"
    DEPENDENCY_VIOLATION = "dependency-violation"
    PERMISSION_DENIED = "permission-denied"
    INVALID_CONFIGURATION = "invalid-configuration"
    FATAL = "fatal"


NOT_FOUND_CODES = frozenset(
    {
        "InvalidVpcID.NotFound",
        "InvalidSubnetID.NotFound",
        "InvalidRouteTableID.NotFound",
        "InvalidAssociationID.NotFound",
        "InvalidNetworkAclID.NotFound",
        "InvalidInternetGatewayID.NotFound",
        "Gateway.NotAttached",
    }
)

TRANSIENT_CODES = frozenset(
    {
        "Throttling",
        "ThrottlingException",
        "RequestLimitExceeded",
        "RequestThrottled",
        "TooManyRequestsException",
        "ServiceUnavailable",
        "Unavailable",
        "InternalError",
        "InternalFailure",
        "RequestTimeout",
        "RequestTimeoutException",
    }
)

DEPENDENCY_VIOLATION_CODES = frozenset({"DependencyViolation"})

PERMISSION_DENIED_CODES = frozenset(
    {
        "UnauthorizedOperation",
        "AccessDenied",
        "AccessDeniedException",
        "AuthFailure",
        "OptInRequired",
        "InvalidClientTokenId",
        "ExpiredToken",
    }
)

INVALID_CONFIGURATION_CODES = frozenset(
    {
        "InvalidParameter",
        "InvalidParameterValue",
        "InvalidParameterCombination",
        "MissingParameter",
    }
)

TRANSIENT_BOTOCORE_ERRORS = (
    EndpointConnectionError,
    ConnectTimeoutError,
    ReadTimeoutError,
    ConnectionClosedError,
)


def error_code(exc: Exception) -> str:
    """Return the AWS error code of a botocore error, or the exception class name."""
    if isinstance(exc, ClientError):
        return exc.response.get("Error", {}).get("Code", "Unknown")
    return type(exc).__name__


def error_message(exc: Exception) -> str:
    """Return the human-readable message of a botocore error."""
    if isinstance(exc, ClientError):
        return exc.response.get("Error", {}).get("Message", str(exc))
    return str(exc)


def classify_error(exc: Exception) -> ErrorKind:
    """Classify a botocore exception.

    Args:
        exc: ClientError or BotoCoreError raised by a boto3 call

    Returns:
        ErrorKind describing whether the call may be retried
    """
    if isinstance(exc, ClientError):
        code = error_code(exc)
        if code in NOT_FOUND_CODES:
            return ErrorKind.NOT_FOUND
        if code in DEPENDENCY_VIOLATION_CODES:
            return ErrorKind.DEPENDENCY_VIOLATION
        if code in TRANSIENT_CODES:
            return ErrorKind.TRANSIENT
        if code in PERMISSION_DENIED_CODES:
            return ErrorKind.PERMISSION_DENIED
        if code in INVALID_CONFIGURATION_CODES:
            return ErrorKind.INVALID_CONFIGURATION

        status = exc.response.get("ResponseMetadata", {}).get("HTTPStatusCode", 0)
        if status >= 500:
            return ErrorKind.TRANSIENT
        return ErrorKind.FATAL

    if isinstance(exc, TRANSIENT_BOTOCORE_ERRORS):
        return ErrorKind.TRANSIENT

    if isinstance(exc, BotoCoreError):
        return ErrorKind.FATAL

    raise TypeError(f"Not a botocore error: {type(exc).__name__}")


def is_retryable(kind: ErrorKind) -> bool:
    """Whether an error of this kind is worth another attempt."""
    return kind in (ErrorKind.TRANSIENT, ErrorKind.DEPENDENCY_VIOLATION)


_EXCEPTIONS = {
    ErrorKind.TRANSIENT: TransientError,
    ErrorKind.DEPENDENCY_VIOLATION: DependencyViolationError,
    ErrorKind.PERMISSION_DENIED: PermissionDeniedError,
    ErrorKind.INVALID_CONFIGURATION: InvalidConfigurationError,
}


def to_exception(exc: Exception, context: str = "") -> DefaultVpcDeletionError:
    """Convert a botocore exception into the matching typed exception.

    Args:
        exc: botocore exception
        context: Short description of the failed call, prefixed to the message

    Returns:
        DefaultVpcDeletionError subclass instance (not raised)
    """
    kind = classify_error(exc)
    exception_class = _EXCEPTIONS.get(kind, DefaultVpcDeletionError)
    message = f"{error_code(exc)}: {error_message(exc)}"
    if context:
        message = f"{context}: {message}"
    return exception_class(message, details=kind.value)
