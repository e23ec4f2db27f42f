"""Deletion executor.

Walks a DeletionPlan batch by batch through a bounded worker pool, then
deletes the VPC and confirms it is gone.
"""

from __future__ import annotations

import logging
import uuid
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Any, Optional

from botocore.exceptions import BotoCoreError, ClientError

from defaultvpc.aws.errors import ErrorKind, classify_error, error_code
from defaultvpc.deletion.deleter import ResourceDeleter
from defaultvpc.deletion.retry import RetryPolicy
from defaultvpc.models.deletion_operation import DeletionOperation, OperationStatus
from defaultvpc.models.deletion_plan import Batch, DeletionPlan
from defaultvpc.models.deletion_record import DeletionRecord
from defaultvpc.models.target import VPC_RESOURCE_TYPE

logger = logging.getLogger(__name__)

DEFAULT_MAX_WORKERS = 4

BLOCKED_REASON = "Blocked by failed dependents"
NOT_ATTEMPTED_REASON = "Not attempted after an earlier batch failed"


def records_for_plan(plan: DeletionPlan, operation_id: str) -> list[DeletionRecord]:
    """Create one record per planned resource, skipped object and the VPC.

    Batch members start PENDING, main/default objects are SKIPPED and the VPC
    record comes last.
    """
    region = plan.target.region
    records = []

    for batch in plan:
        for member in batch:
            records.append(
                DeletionRecord(
                    record_id=f"rec_{uuid.uuid4()}",
                    operation_id=operation_id,
                    resource_id=member.resource_id,
                    resource_type=member.kind.value,
                    region=region,
                    batch_index=batch.index,
                )
            )

    for child in plan.skipped:
        record = DeletionRecord(
            record_id=f"rec_{uuid.uuid4()}",
            operation_id=operation_id,
            resource_id=child.resource_id,
            resource_type=child.kind.value,
            region=region,
        )
        record.mark_skipped(child.skip_reason)
        records.append(record)

    records.append(
        DeletionRecord(
            record_id=f"rec_{uuid.uuid4()}",
            operation_id=operation_id,
            resource_id=plan.target.vpc_id,
            resource_type=VPC_RESOURCE_TYPE,
            region=region,
        )
    )
    return records


class DeletionExecutor:
    """Batch-by-batch deletion executor.

    Members of a batch run concurrently on at most ``max_workers`` threads and
    the batch fully drains before the next one starts, so no call ever spans
    two batches. A failed member does not stop its siblings. Any failure blocks
    the VPC deletion; with ``continue_on_failure`` the remaining child batches
    still run so the operator gets the complete picture in one pass.

    Attributes:
        client: boto3 EC2 client (shared by workers)
        retry_policy: Backoff policy for every call
        max_workers: Worker pool size per batch
        continue_on_failure: Keep running later child batches after a failure
        deleter: Per-resource deleter
    """

    def __init__(
        self,
        client: Any,
        retry_policy: Optional[RetryPolicy] = None,
        max_workers: int = DEFAULT_MAX_WORKERS,
        continue_on_failure: bool = True,
        deleter: Optional[ResourceDeleter] = None,
    ) -> None:
        if max_workers < 1:
            raise ValueError(f"max_workers must be at least 1, got {max_workers}")

        self.client = client
        self.retry_policy = retry_policy or RetryPolicy()
        self.max_workers = max_workers
        self.continue_on_failure = continue_on_failure
        self.deleter = deleter or ResourceDeleter(client, self.retry_policy)

    def execute(self, plan: DeletionPlan, operation: DeletionOperation) -> DeletionOperation:
        """Execute a deletion plan.

        Args:
            plan: Plan computed by DeletionPlanner
            operation: Operation whose records were built with records_for_plan

        Returns:
            The operation with every record in a terminal state and its final status set
        """
        operation.status = OperationStatus.EXECUTING
        records = {(record.resource_type, record.resource_id): record for record in operation.records}
        vpc_id = plan.target.vpc_id
        failed_batches = []

        for batch in plan:
            batch_records = [records[(member.kind.value, member.resource_id)] for member in batch]

            if failed_batches and not self.continue_on_failure:
                for record in batch_records:
                    record.mark_skipped(NOT_ATTEMPTED_REASON)
                continue

            failed = self._run_batch(batch, batch_records, vpc_id)
            if failed:
                failed_batches.append(batch.kind)

        vpc_record = records[(VPC_RESOURCE_TYPE, vpc_id)]
        if failed_batches:
            logger.warning(
                f"Not deleting VPC {vpc_id}: failures in {', '.join(kind.label for kind in failed_batches)}"
            )
            vpc_record.mark_skipped(BLOCKED_REASON)
        else:
            logger.info(f"Deleting VPC {vpc_id}")
            self.deleter.delete_resource(vpc_record, vpc_id, confirm_absent=self.wait_until_absent)

        operation.finalize_status()
        return operation

    def _run_batch(self, batch: Batch, records: list[DeletionRecord], vpc_id: str) -> int:
        """Run one batch to completion.

        Returns:
            Number of members that ended in FAILED status
        """
        if batch.is_empty:
            logger.debug(f"Batch {batch.index + 1} ({batch.kind.label}): nothing to delete")
            return 0

        logger.info(f"Batch {batch.index + 1} ({batch.kind.label}): deleting {len(batch)} resource(s)")

        with ThreadPoolExecutor(max_workers=min(self.max_workers, len(records))) as executor:
            futures = {executor.submit(self.deleter.delete_resource, record, vpc_id): record for record in records}

            for future in as_completed(futures):
                future.result()

        failed = sum(1 for record in records if not record.is_success)
        if failed:
            logger.warning(f"Batch {batch.index + 1} ({batch.kind.label}): {failed} of {len(records)} failed")
        return failed

    def wait_until_absent(self, vpc_id: str) -> bool:
        """Poll until EC2 no longer reports the VPC.

        The delete call can return before the VPC is fully gone, so success is
        only reported once a describe call stops returning it.

        Returns:
            True once the VPC is absent, False if it is still visible after the
            retry policy's attempt ceiling
        """
        for attempt in range(1, self.retry_policy.max_attempts + 1):
            try:
                response = self.client.describe_vpcs(VpcIds=[vpc_id])
                if not response.get("Vpcs"):
                    return True
                state = response["Vpcs"][0].get("State", "unknown")
                logger.debug(f"VPC {vpc_id} still visible (state: {state})")

            except (ClientError, BotoCoreError) as e:
                if classify_error(e) == ErrorKind.NOT_FOUND:
                    return True
                logger.debug(f"Could not confirm deletion of {vpc_id}: {error_code(e)}")

            if self.retry_policy.should_retry(attempt):
                self.retry_policy.wait(attempt)

        return False
