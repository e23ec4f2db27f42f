"""Deletion record model.

Individual resource deletion attempt with result and metadata.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional


class DeletionStatus(Enum):
    """Individual resource deletion status."""

    PENDING = "pending"
    REQUESTED = "requested"
    DELETED = "deleted"
    ALREADY_ABSENT = "already-absent"
    FAILED = "failed"
    SKIPPED = "skipped"


ALLOWED_TRANSITIONS = {
    DeletionStatus.PENDING: {DeletionStatus.REQUESTED, DeletionStatus.SKIPPED},
    DeletionStatus.REQUESTED: {DeletionStatus.DELETED, DeletionStatus.ALREADY_ABSENT, DeletionStatus.FAILED},
    DeletionStatus.DELETED: set(),
    DeletionStatus.ALREADY_ABSENT: set(),
    DeletionStatus.FAILED: set(),
    DeletionStatus.SKIPPED: set(),
}

TERMINAL_STATUSES = frozenset(
    {DeletionStatus.DELETED, DeletionStatus.ALREADY_ABSENT, DeletionStatus.FAILED, DeletionStatus.SKIPPED}
)

SUCCESS_STATUSES = frozenset({DeletionStatus.DELETED, DeletionStatus.ALREADY_ABSENT})


@dataclass
class DeletionRecord:
    """Deletion record entity.

    Tracks the outcome for a single resource within a DeletionOperation. Each
    record is owned by one worker at a time, so it is mutated without locks.

    State transitions:
        pending → requested → deleted
        pending → requested → already-absent (delete reported not found)
        pending → requested → failed (retries exhausted or non-retryable error)
        pending → skipped (main/default object, or VPC blocked by failures)

    Validation rules:
        - status=failed: requires error_code
        - status=skipped: requires skip_reason
        - status=deleted/already-absent: no error_code

    Attributes:
        record_id: Unique identifier for this record
        operation_id: Parent operation identifier
        resource_id: Resource identifier
        resource_type: Resource type (e.g., "AWS::EC2::Subnet")
        region: AWS region
        status: Current status
        batch_index: Plan batch the resource belongs to (None for the VPC)
        attempts: Number of API calls issued
        error_code: AWS error code of the last failure (optional)
        error_message: Human-readable error of the last failure (optional)
        skip_reason: Why the resource was not attempted (optional)
        timestamp: When the record was created (UTC)
        requested_at: When the first delete call was issued (optional)
        completed_at: When a terminal state was reached (optional)
    """

    record_id: str
    operation_id: str
    resource_id: str
    resource_type: str
    region: str
    status: DeletionStatus = DeletionStatus.PENDING
    batch_index: Optional[int] = None
    attempts: int = 0
    error_code: Optional[str] = None
    error_message: Optional[str] = None
    skip_reason: Optional[str] = None
    timestamp: datetime = field(default_factory=datetime.utcnow)
    requested_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    @property
    def is_success(self) -> bool:
        return self.status in SUCCESS_STATUSES

    def transition(self, status: DeletionStatus) -> None:
        """Move the record to a new status.

        Raises:
            ValueError: If the transition is not allowed
        """
        if status not in ALLOWED_TRANSITIONS[self.status]:
            raise ValueError(f"Invalid transition for {self.resource_id}: {self.status.value} -> {status.value}")

        self.status = status
        if status == DeletionStatus.REQUESTED:
            self.requested_at = datetime.utcnow()
        elif status in TERMINAL_STATUSES:
            self.completed_at = datetime.utcnow()

    def mark_requested(self) -> None:
        self.transition(DeletionStatus.REQUESTED)

    def mark_deleted(self) -> None:
        self.transition(DeletionStatus.DELETED)

    def mark_already_absent(self) -> None:
        self.transition(DeletionStatus.ALREADY_ABSENT)

    def mark_failed(self, error_code: str, error_message: str) -> None:
        self.error_code = error_code
        self.error_message = error_message
        self.transition(DeletionStatus.FAILED)

    def mark_skipped(self, reason: str) -> None:
        self.skip_reason = reason
        self.transition(DeletionStatus.SKIPPED)

    def validate(self) -> bool:
        """Validate record invariants.

        Returns:
            True if validation passes

        Raises:
            ValueError: If any validation rule fails
        """
        if self.status == DeletionStatus.FAILED:
            if not self.error_code:
                raise ValueError("Failed status requires error_code")
        elif self.status == DeletionStatus.SKIPPED:
            if not self.skip_reason:
                raise ValueError("Skipped status requires skip_reason")
        elif self.status in SUCCESS_STATUSES:
            if self.error_code:
                raise ValueError(f"{self.status.value} status cannot have an error code")

        if self.attempts < 0:
            raise ValueError("Attempts cannot be negative")

        if self.completed_at and self.requested_at and self.completed_at < self.requested_at:
            raise ValueError("Completion time before request time")

        return True
