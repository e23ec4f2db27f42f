"""Deletion operation model.

Represents a complete default VPC deletion run with metadata and per-resource records.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional

from defaultvpc.models.deletion_record import DeletionRecord, DeletionStatus
from defaultvpc.models.target import VPC_RESOURCE_TYPE


class OperationMode(Enum):
    """Operation execution mode."""

    DRY_RUN = "dry-run"
    EXECUTE = "execute"


class OperationStatus(Enum):
    """Operation execution status with state transitions."""

    PLANNED = "planned"
    EXECUTING = "executing"
    COMPLETED = "completed"
    PARTIAL = "partial"
    FAILED = "failed"
    NOTHING_TO_DO = "nothing-to-do"


@dataclass
class DeletionOperation:
    """Deletion operation entity.

    State transitions:
        planned → executing → completed (every resource deleted or already absent)
        planned → executing → partial (some resources failed)
        planned → executing → failed (nothing could be deleted)
        nothing-to-do (region has no default VPC)

    Attributes:
        operation_id: Unique identifier for the operation
        region: AWS region
        timestamp: When the operation was initiated (UTC)
        mode: dry-run or execute
        status: Current execution status
        vpc_id: Default VPC identifier (None when the region has none)
        records: Per-resource deletion records, VPC record last
        aws_profile: AWS profile used for credentials (optional)
        started_at: When execution started (optional, execute mode only)
        completed_at: When execution completed (optional)
        duration_seconds: Total execution duration (optional)
    """

    operation_id: str
    region: str
    timestamp: datetime
    mode: OperationMode
    status: OperationStatus
    vpc_id: Optional[str] = None
    records: list[DeletionRecord] = field(default_factory=list)
    aws_profile: Optional[str] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    duration_seconds: Optional[float] = None

    def _count(self, status: DeletionStatus) -> int:
        return sum(1 for record in self.records if record.status == status)

    @property
    def total_resources(self) -> int:
        return len(self.records)

    @property
    def deleted_count(self) -> int:
        return self._count(DeletionStatus.DELETED)

    @property
    def already_absent_count(self) -> int:
        return self._count(DeletionStatus.ALREADY_ABSENT)

    @property
    def failed_count(self) -> int:
        return self._count(DeletionStatus.FAILED)

    @property
    def skipped_count(self) -> int:
        return self._count(DeletionStatus.SKIPPED)

    @property
    def pending_count(self) -> int:
        return self._count(DeletionStatus.PENDING)

    @property
    def failed_records(self) -> list[DeletionRecord]:
        return [record for record in self.records if record.status == DeletionStatus.FAILED]

    @property
    def vpc_record(self) -> Optional[DeletionRecord]:
        for record in self.records:
            if record.resource_type == VPC_RESOURCE_TYPE:
                return record
        return None

    @property
    def succeeded(self) -> bool:
        """True if the VPC is confirmed gone and no child resource failed.

        A region without a default VPC counts as success.
        """
        if self.status == OperationStatus.NOTHING_TO_DO:
            return True

        vpc_record = self.vpc_record
        if vpc_record is None or not vpc_record.is_success:
            return False

        return all(record.is_success or record.status == DeletionStatus.SKIPPED for record in self.records)

    def finalize_status(self) -> OperationStatus:
        """Derive the final status from the records and store it."""
        if self.succeeded:
            self.status = OperationStatus.COMPLETED
        elif self.deleted_count > 0:
            self.status = OperationStatus.PARTIAL
        else:
            self.status = OperationStatus.FAILED
        return self.status

    def validate(self) -> bool:
        """Validate operation invariants.

        Validation rules:
            - no record is left in requested state
            - completed_at must be after started_at
            - dry-run mode must have planned or nothing-to-do status
            - every record must belong to this operation

        Returns:
            True if validation passes

        Raises:
            ValueError: If any validation rule fails
        """
        counted = (
            self.deleted_count
            + self.already_absent_count
            + self.failed_count
            + self.skipped_count
            + self.pending_count
        )
        if counted != self.total_resources:
            raise ValueError("Records still in requested state")

        if self.completed_at and self.started_at:
            if self.completed_at < self.started_at:
                raise ValueError("Completion time before start time")

        if self.mode == OperationMode.DRY_RUN and self.status not in (
            OperationStatus.PLANNED,
            OperationStatus.NOTHING_TO_DO,
        ):
            raise ValueError("Dry-run mode must have planned status")

        for record in self.records:
            if record.operation_id != self.operation_id:
                raise ValueError(f"Record {record.record_id} belongs to another operation")

        return True
