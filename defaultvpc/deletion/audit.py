"""Audit storage for deletion operations.

Optional YAML record of each run, for compliance and troubleshooting. Nothing
here is read back by the deletion workflow itself.
"""

from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import Any, Optional

import yaml

from defaultvpc.models.deletion_operation import DeletionOperation
from defaultvpc.models.deletion_record import DeletionRecord


def _isoformat(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() + "Z" if value else None


class AuditStorage:
    """Audit log storage and retrieval.

    Stores deletion operation audit logs as YAML files organized by year/month.

    Storage structure:
        ~/.defaultvpc/audit-logs/
            2025/
                11/
                    operation-op_123.yaml

    Attributes:
        storage_dir: Base directory for audit logs
    """

    def __init__(self, storage_dir: Optional[str] = None) -> None:
        """Initialize audit storage.

        Args:
            storage_dir: Base directory for audit logs (default: ~/.defaultvpc/audit-logs)
        """
        if storage_dir is None:
            storage_dir = str(Path.home() / ".defaultvpc" / "audit-logs")

        self.storage_dir = Path(storage_dir)
        self.storage_dir.mkdir(parents=True, exist_ok=True)

    def log_operation(self, operation: DeletionOperation) -> Path:
        """Write an operation and all of its records to a YAML file.

        Overwrites an existing log with the same operation ID.

        Args:
            operation: Finished deletion operation

        Returns:
            Path of the written audit file
        """
        year_month_dir = self.storage_dir / str(operation.timestamp.year) / f"{operation.timestamp.month:02d}"
        year_month_dir.mkdir(parents=True, exist_ok=True)

        audit_data = {
            "metadata": {
                "version": "1.0",
                "log_type": "default_vpc_deletion",
                "created_at": _isoformat(datetime.utcnow()),
            },
            "operation": {
                "operation_id": operation.operation_id,
                "region": operation.region,
                "vpc_id": operation.vpc_id,
                "timestamp": _isoformat(operation.timestamp),
                "aws_profile": operation.aws_profile,
                "mode": operation.mode.value,
                "status": operation.status.value,
                "total_resources": operation.total_resources,
                "deleted_count": operation.deleted_count,
                "already_absent_count": operation.already_absent_count,
                "failed_count": operation.failed_count,
                "skipped_count": operation.skipped_count,
                "started_at": _isoformat(operation.started_at),
                "completed_at": _isoformat(operation.completed_at),
                "duration_seconds": operation.duration_seconds,
            },
            "records": [self._record_to_dict(record) for record in operation.records],
        }

        audit_file = year_month_dir / f"operation-{operation.operation_id}.yaml"
        with open(audit_file, "w") as f:
            yaml.safe_dump(audit_data, f, default_flow_style=False, sort_keys=False)
        return audit_file

    def get_operation(self, operation_id: str) -> Optional[dict[str, Any]]:
        """Retrieve operation audit log by ID.

        Returns:
            Audit log dictionary if found, None otherwise
        """
        for audit_file in self.storage_dir.glob(f"*/*/operation-{operation_id}.yaml"):
            with open(audit_file, "r") as f:
                return yaml.safe_load(f)

        return None

    def query_operations(
        self,
        since: Optional[datetime] = None,
        until: Optional[datetime] = None,
        region: Optional[str] = None,
    ) -> list[dict[str, Any]]:
        """Query operations within a date range.

        Args:
            since: Start date (inclusive), None for all
            until: End date (inclusive), None for all
            region: Only operations for this region (optional)

        Returns:
            List of operation audit logs matching criteria, oldest first
        """
        results = []

        for audit_file in sorted(self.storage_dir.glob("*/*/operation-*.yaml")):
            with open(audit_file, "r") as f:
                audit_data = yaml.safe_load(f)

            timestamp = datetime.fromisoformat(audit_data["operation"]["timestamp"].rstrip("Z"))
            if since and timestamp < since:
                continue
            if until and timestamp > until:
                continue
            if region and audit_data["operation"]["region"] != region:
                continue

            results.append(audit_data)

        results.sort(key=lambda data: data["operation"]["timestamp"])
        return results

    def _record_to_dict(self, record: DeletionRecord) -> dict[str, Any]:
        return {
            "record_id": record.record_id,
            "resource_id": record.resource_id,
            "resource_type": record.resource_type,
            "region": record.region,
            "status": record.status.value,
            "batch_index": record.batch_index,
            "attempts": record.attempts,
            "error_code": record.error_code,
            "error_message": record.error_message,
            "skip_reason": record.skip_reason,
            "timestamp": _isoformat(record.timestamp),
            "requested_at": _isoformat(record.requested_at),
            "completed_at": _isoformat(record.completed_at),
        }
