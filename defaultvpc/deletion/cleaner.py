"""Default VPC cleaner.

Main orchestrator for default VPC deletion with preview and execution modes.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime
from typing import Any, Optional

from defaultvpc.aws.client import create_boto_client
from defaultvpc.deletion.audit import AuditStorage
from defaultvpc.deletion.executor import DEFAULT_MAX_WORKERS, DeletionExecutor, records_for_plan
from defaultvpc.deletion.locator import ResourceLocator
from defaultvpc.deletion.planner import DeletionPlanner
from defaultvpc.deletion.retry import RetryPolicy
from defaultvpc.exceptions import DefaultVpcNotFoundError, PartialFailureError
from defaultvpc.models.deletion_operation import DeletionOperation, OperationMode, OperationStatus
from defaultvpc.models.deletion_plan import DeletionPlan

logger = logging.getLogger(__name__)


class DefaultVpcCleaner:
    """Default VPC cleaner orchestrator.

    Composes locator, planner and executor for one region. Every run starts
    from live EC2 state; nothing is cached between runs, so a run after a
    partial failure simply picks up whatever is left.

    Attributes:
        region: AWS region
        locator: Resource locator
        planner: Deletion planner
        executor: Deletion executor
        audit_storage: Audit storage for operation logs (optional)
        last_plan: Plan computed by the most recent preview/execute call
    """

    def __init__(
        self,
        client: Any,
        region: str,
        retry_policy: Optional[RetryPolicy] = None,
        max_workers: int = DEFAULT_MAX_WORKERS,
        continue_on_failure: bool = True,
        audit_storage: Optional[AuditStorage] = None,
        aws_profile: Optional[str] = None,
    ) -> None:
        """Initialize default VPC cleaner.

        Args:
            client: boto3 EC2 client for the region
            region: AWS region
            retry_policy: Backoff policy shared by every call (default: RetryPolicy())
            max_workers: Worker pool size per batch
            continue_on_failure: Keep running later child batches after a failure
            audit_storage: Write an audit log per executed operation (optional)
            aws_profile: AWS profile name, recorded on the operation (optional)
        """
        retry_policy = retry_policy or RetryPolicy()
        self.region = region
        self.aws_profile = aws_profile
        self.locator = ResourceLocator(client, region, retry_policy)
        self.planner = DeletionPlanner()
        self.executor = DeletionExecutor(
            client,
            retry_policy=retry_policy,
            max_workers=max_workers,
            continue_on_failure=continue_on_failure,
        )
        self.audit_storage = audit_storage
        self.last_plan: Optional[DeletionPlan] = None

    def preview(self) -> DeletionOperation:
        """Compute what would be deleted (dry-run mode).

        Returns:
            DeletionOperation in planned status (or nothing-to-do) with PENDING
            records for planned deletions and SKIPPED records for main/default objects
        """
        operation = self._new_operation(OperationMode.DRY_RUN)

        plan = self._plan()
        if plan is None:
            operation.status = OperationStatus.NOTHING_TO_DO
            return operation

        operation.vpc_id = plan.target.vpc_id
        operation.records = records_for_plan(plan, operation.operation_id)
        return operation

    def execute(self, confirmed: bool = False) -> DeletionOperation:
        """Delete the default VPC and its children (execution mode).

        Args:
            confirmed: Must be True to proceed with deletion

        Returns:
            DeletionOperation with execution results

        Raises:
            ValueError: If not confirmed
            PermissionDeniedError: If discovery is not authorized
            DefaultVpcDeletionError: For other fatal discovery errors
        """
        if not confirmed:
            raise ValueError("Deletion requires explicit confirmation. Set confirmed=True or use --confirm flag.")

        operation = self._new_operation(OperationMode.EXECUTE)
        operation.started_at = datetime.utcnow()

        plan = self._plan()
        if plan is None:
            operation.status = OperationStatus.NOTHING_TO_DO
        else:
            operation.vpc_id = plan.target.vpc_id
            operation.records = records_for_plan(plan, operation.operation_id)
            self.executor.execute(plan, operation)

        operation.completed_at = datetime.utcnow()
        operation.duration_seconds = (operation.completed_at - operation.started_at).total_seconds()
        logger.info(
            f"Operation {operation.operation_id} {operation.status.value}: "
            f"{operation.deleted_count} deleted, {operation.already_absent_count} already absent, "
            f"{operation.failed_count} failed, {operation.skipped_count} skipped"
        )

        if self.audit_storage is not None:
            audit_file = self.audit_storage.log_operation(operation)
            logger.debug(f"Audit log written to {audit_file}")

        return operation

    def _plan(self) -> Optional[DeletionPlan]:
        try:
            target, children = self.locator.locate()
        except DefaultVpcNotFoundError:
            logger.info(f"No default VPC in {self.region}, nothing to do")
            self.last_plan = None
            return None

        self.last_plan = self.planner.plan(target, children)
        return self.last_plan

    def _new_operation(self, mode: OperationMode) -> DeletionOperation:
        return DeletionOperation(
            operation_id=f"op_{uuid.uuid4()}",
            region=self.region,
            timestamp=datetime.utcnow(),
            mode=mode,
            status=OperationStatus.PLANNED,
            aws_profile=self.aws_profile,
        )


def delete_default_vpc(
    region: str,
    aws_profile: Optional[str] = None,
    retry_policy: Optional[RetryPolicy] = None,
    max_workers: int = DEFAULT_MAX_WORKERS,
    continue_on_failure: bool = True,
    audit_storage: Optional[AuditStorage] = None,
    client: Any = None,
) -> Optional[str]:
    """Delete the default VPC of a region together with everything that depends on it.

    Safe to call repeatedly: resources that are already gone count as deleted,
    and a region without a default VPC is a successful no-op. Re-running after a
    PartialFailureError is the recovery path.

    Args:
        region: AWS region
        aws_profile: AWS profile name (optional)
        retry_policy: Backoff policy (default: 5 attempts, 1s base, 30s cap)
        max_workers: Worker pool size per batch
        continue_on_failure: Keep running later child batches after a failure
        audit_storage: Write an audit log for the run (optional)
        client: Pre-built EC2 client (optional, built from region/profile otherwise)

    Returns:
        The deleted VPC ID, or None if the region had no default VPC

    Raises:
        PartialFailureError: If any resource could not be deleted
        PermissionDeniedError: If discovery is not authorized
        DefaultVpcDeletionError: For other fatal errors
    """
    if client is None:
        client = create_boto_client(service_name="ec2", region_name=region, profile_name=aws_profile)

    cleaner = DefaultVpcCleaner(
        client,
        region,
        retry_policy=retry_policy,
        max_workers=max_workers,
        continue_on_failure=continue_on_failure,
        audit_storage=audit_storage,
        aws_profile=aws_profile,
    )
    operation = cleaner.execute(confirmed=True)

    if operation.status == OperationStatus.NOTHING_TO_DO:
        return None

    if not operation.succeeded:
        raise PartialFailureError(operation.failed_records, operation)

    return operation.vpc_id
