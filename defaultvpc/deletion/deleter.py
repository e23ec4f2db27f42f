"""Default VPC resource deletion strategies.

Maps resource types to their EC2 delete/detach calls with retry logic and
not-found handling.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Optional

from botocore.exceptions import BotoCoreError, ClientError

from defaultvpc.aws.errors import ErrorKind, classify_error, error_code, error_message, is_retryable
from defaultvpc.deletion.retry import RetryPolicy
from defaultvpc.models.child_resource import OWNER_TAG_KEY, ResourceKind
from defaultvpc.models.deletion_record import DeletionRecord
from defaultvpc.models.target import VPC_RESOURCE_TYPE

logger = logging.getLogger(__name__)

CONVERGENCE_TIMEOUT = "ConvergenceTimeout"


class ResourceDeleter:
    """Deletes a single resource, driving its record to a terminal state.

    Errors are never raised: they end up on the record. A not-found answer
    means a previous run (or EC2 itself) already removed the resource, which is
    what makes repeated and resumed runs converge.
    """

    # Deletion method mapping: resource_type -> (method, id_field)
    DELETION_METHODS = {
        ResourceKind.INTERNET_GATEWAY_ATTACHMENT.value: ("detach_internet_gateway", "InternetGatewayId"),
        ResourceKind.INTERNET_GATEWAY.value: ("delete_internet_gateway", "InternetGatewayId"),
        ResourceKind.SUBNET.value: ("delete_subnet", "SubnetId"),
        ResourceKind.ROUTE_TABLE_ASSOCIATION.value: ("disassociate_route_table", "AssociationId"),
        ResourceKind.ROUTE_TABLE.value: ("delete_route_table", "RouteTableId"),
        ResourceKind.NETWORK_ACL.value: ("delete_network_acl", "NetworkAclId"),
        VPC_RESOURCE_TYPE: ("delete_vpc", "VpcId"),
    }

    def __init__(self, client: Any, retry_policy: Optional[RetryPolicy] = None) -> None:
        """Initialize resource deleter.

        Args:
            client: boto3 EC2 client
            retry_policy: Backoff policy for dependency violations and transient errors
        """
        self.client = client
        self.retry_policy = retry_policy or RetryPolicy()

    def delete_resource(
        self,
        record: DeletionRecord,
        vpc_id: str,
        confirm_absent: Optional[Callable[[str], bool]] = None,
    ) -> DeletionRecord:
        """Delete the resource a record describes.

        Args:
            record: Pending record for the resource
            vpc_id: Parent VPC (needed to detach internet gateways)
            confirm_absent: Called with the resource ID after an acknowledged
                delete; a False result marks the record FAILED

        Returns:
            The same record, in DELETED, ALREADY_ABSENT or FAILED status

        Raises:
            ValueError: If the resource type has no deletion method
        """
        if record.resource_type not in self.DELETION_METHODS:
            raise ValueError(f"Unsupported resource type: {record.resource_type}")

        method, id_field = self.DELETION_METHODS[record.resource_type]
        params = self._build_deletion_params(record.resource_type, id_field, record.resource_id, vpc_id)

        record.mark_requested()
        attempt = 0
        while True:
            attempt += 1
            record.attempts = attempt
            try:
                self._attempt_deletion(record.resource_type, method, params)

            except (ClientError, BotoCoreError) as e:
                kind = classify_error(e)
                code = error_code(e)

                if kind == ErrorKind.NOT_FOUND:
                    logger.info(f"{record.resource_type} {record.resource_id} already deleted ({code})")
                    record.mark_already_absent()
                    return record

                if is_retryable(kind) and self.retry_policy.should_retry(attempt):
                    delay = self.retry_policy.wait(attempt)
                    logger.debug(
                        f"{code} for {record.resource_id}, retried after {delay:.1f}s "
                        f"(attempt {attempt + 1}/{self.retry_policy.max_attempts})"
                    )
                    continue

                message = error_message(e)
                if is_retryable(kind):
                    message = f"{message} (gave up after {attempt} attempts)"
                logger.warning(f"Failed to delete {record.resource_type} {record.resource_id}: {code} - {message}")
                record.mark_failed(code, message)
                return record

            except Exception as e:
                message = f"Unexpected error: {str(e)}"
                logger.error(f"Failed to delete {record.resource_type} {record.resource_id}: {message}")
                record.mark_failed(type(e).__name__, message)
                return record

            if confirm_absent is not None and not confirm_absent(record.resource_id):
                message = f"{record.resource_id} still present after delete was acknowledged"
                logger.warning(message)
                record.mark_failed(CONVERGENCE_TIMEOUT, message)
                return record

            logger.info(f"Successfully deleted {record.resource_type}: {record.resource_id}")
            record.mark_deleted()
            return record

    def _attempt_deletion(self, resource_type: str, method: str, params: dict[str, Any]) -> None:
        """Issue a single delete call; botocore errors propagate to the retry loop.

        A gateway is tagged with its VPC before it is detached, so a later run
        still finds it when this run stops between the detach and the delete.
        """
        if resource_type == ResourceKind.INTERNET_GATEWAY_ATTACHMENT.value:
            self.client.create_tags(
                Resources=[params["InternetGatewayId"]],
                Tags=[{"Key": OWNER_TAG_KEY, "Value": params["VpcId"]}],
            )

        deletion_method = getattr(self.client, method)
        deletion_method(**params)

    def _build_deletion_params(
        self,
        resource_type: str,
        id_field: str,
        resource_id: str,
        vpc_id: str,
    ) -> dict[str, Any]:
        """Build deletion parameters for boto3 call.

        Args:
            resource_type: Resource type
            id_field: Parameter name for resource ID
            resource_id: Resource identifier
            vpc_id: Parent VPC identifier

        Returns:
            Dictionary of parameters for boto3 method call
        """
        # Detaching needs both sides of the attachment
        if resource_type == ResourceKind.INTERNET_GATEWAY_ATTACHMENT.value:
            return {id_field: resource_id, "VpcId": vpc_id}

        return {id_field: resource_id}
