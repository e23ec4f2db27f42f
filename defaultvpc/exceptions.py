"""Exception hierarchy for default VPC deletion.

Locator and configuration errors propagate as these types. Per-resource
deletion errors are captured on DeletionRecord objects instead and only
surface through PartialFailureError once a run has finished.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from defaultvpc.models.deletion_operation import DeletionOperation
    from defaultvpc.models.deletion_record import DeletionRecord


class DefaultVpcDeletionError(Exception):
    """Base exception for all default VPC deletion errors."""

    def __init__(self, message: str, details: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.details = details


class DefaultVpcNotFoundError(DefaultVpcDeletionError):
    """Raised when a region has no default VPC.

    Callers treat this as "nothing to do": a previous run may already have
    deleted it.
    """

    def __init__(self, region: str):
        super().__init__(f"No default VPC found in {region}")
        self.region = region


class TransientError(DefaultVpcDeletionError):
    """Raised for throttling, timeouts and other retryable API failures."""

    pass


class DependencyViolationError(DefaultVpcDeletionError):
    """Raised when EC2 rejects a delete because a dependent still exists."""

    pass


class PermissionDeniedError(DefaultVpcDeletionError):
    """Raised when the credentials are not allowed to perform a call."""

    pass


class InvalidConfigurationError(DefaultVpcDeletionError):
    """Raised when configuration or request parameters are invalid."""

    pass


class PartialFailureError(DefaultVpcDeletionError):
    """Raised when one or more resources could not be deleted.

    Attributes:
        failures: Records of every resource that ended in FAILED status
        operation: The complete operation result, including successes
    """

    def __init__(self, failures: list[DeletionRecord], operation: Optional[DeletionOperation] = None):
        lines = [
            f"{record.resource_type} {record.resource_id}: {record.error_code} - {record.error_message}"
            for record in failures
        ]
        message = f"Failed to delete {len(failures)} resource(s)"
        if operation is not None and operation.vpc_id:
            message += f" in default VPC {operation.vpc_id} ({operation.region})"
        super().__init__(message, details="\n".join(lines))
        self.failures = failures
        self.operation = operation

    def __str__(self) -> str:
        if self.details:
            return f"{self.message}:\n{self.details}"
        return self.message
