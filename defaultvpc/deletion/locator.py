"""Resource locator.

Finds a region's default VPC and enumerates its child resources by kind.
Read-only: only paginated ``Describe*`` calls are issued.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Optional

from botocore.exceptions import BotoCoreError, ClientError

from defaultvpc.aws.errors import ErrorKind, classify_error, to_exception
from defaultvpc.aws.filters import build_attribute_filter_list, tag_filters_from_map
from defaultvpc.deletion.retry import RetryPolicy
from defaultvpc.exceptions import DefaultVpcNotFoundError
from defaultvpc.models.child_resource import DEFAULT_TAG, MAIN_TAG, OWNER_TAG_KEY, ChildResource, ResourceKind
from defaultvpc.models.target import TargetResource

logger = logging.getLogger(__name__)

DETACHED_STATES = frozenset({"detaching", "detached"})
DISASSOCIATED_STATES = frozenset({"disassociating", "disassociated"})

# Listings that also match resources carrying the owner tag of the VPC
OWNER_TAGGED_LISTINGS = frozenset({"describe_internet_gateways"})


class ResourceLocator:
    """Default VPC and child resource discovery.

    Every listing is fully paginated before it is considered complete: a
    truncated listing would leave dependents behind and turn a clean run into a
    DependencyViolation on the VPC delete. A transient error restarts the
    listing from its first page, with backoff.

    Attributes:
        client: boto3 EC2 client
        region: AWS region the client points at
        retry_policy: Backoff policy for transient listing errors
    """

    def __init__(self, client: Any, region: str, retry_policy: Optional[RetryPolicy] = None) -> None:
        self.client = client
        self.region = region
        self.retry_policy = retry_policy or RetryPolicy()

        # describe method -> (parent filter name, result key, parser)
        self.listings: dict[str, tuple[str, str, Callable[[dict, str], list[ChildResource]]]] = {
            "describe_internet_gateways": ("attachment.vpc-id", "InternetGateways", self._parse_internet_gateway),
            "describe_subnets": ("vpc-id", "Subnets", self._parse_subnet),
            "describe_route_tables": ("vpc-id", "RouteTables", self._parse_route_table),
            "describe_network_acls": ("vpc-id", "NetworkAcls", self._parse_network_acl),
        }

    def locate(self) -> tuple[TargetResource, list[ChildResource]]:
        """Find the default VPC and all of its children.

        Returns:
            Tuple of (target VPC, child resources)

        Raises:
            DefaultVpcNotFoundError: If the region has no default VPC
            PermissionDeniedError: If a describe call is not authorized
            DefaultVpcDeletionError: For other non-transient failures
        """
        target = self.find_default_vpc()
        children = self.discover_children(target.vpc_id)
        return target, children

    def find_default_vpc(self) -> TargetResource:
        """Look up the default VPC of the region.

        Raises:
            DefaultVpcNotFoundError: If the region has no default VPC
        """
        vpcs = self._list_all(
            "describe_vpcs",
            "Vpcs",
            build_attribute_filter_list({"isDefault": "true"}),
        )
        vpcs = [vpc for vpc in vpcs if vpc.get("IsDefault", True)]

        if not vpcs:
            raise DefaultVpcNotFoundError(self.region)

        vpc = vpcs[0]
        logger.info(f"Found default VPC {vpc['VpcId']} in {self.region}")
        return TargetResource(
            vpc_id=vpc["VpcId"],
            region=self.region,
            exists=True,
            cidr_block=vpc.get("CidrBlock"),
            owner_id=vpc.get("OwnerId"),
        )

    def discover_children(self, vpc_id: str) -> list[ChildResource]:
        """Enumerate every child resource of a VPC.

        Args:
            vpc_id: Parent VPC identifier

        Gateways are listed twice: by attachment, and by the owner tag that
        detaching adds. The second listing picks up a gateway a previous run
        detached but failed to delete.

        Returns:
            Child resources across all kinds, deduplicated
        """
        children: dict[tuple[ResourceKind, str], ChildResource] = {}

        for method, (filter_name, result_key, parser) in self.listings.items():
            filter_sets = [build_attribute_filter_list({filter_name: vpc_id})]
            if method in OWNER_TAGGED_LISTINGS:
                filter_sets.append(tag_filters_from_map({OWNER_TAG_KEY: vpc_id}))

            for filters in filter_sets:
                for item in self._list_all(method, result_key, filters):
                    for child in parser(item, vpc_id):
                        children[(child.kind, child.resource_id)] = child

        result = list(children.values())
        counts = {kind.label: sum(1 for c in result if c.kind == kind) for kind in ResourceKind}
        logger.info(f"Discovered {len(result)} child resources of {vpc_id}: {counts}")
        return result

    def _list_all(self, method: str, result_key: str, filters: list[dict]) -> list[dict]:
        """Drain a paginated describe call.

        Args:
            method: boto3 describe method name
            result_key: Response key holding the items
            filters: EC2 filters

        Returns:
            Items from every page
        """
        attempt = 1
        while True:
            try:
                items: list[dict] = []
                paginator = self.client.get_paginator(method)
                page_count = 0
                for page in paginator.paginate(Filters=filters):
                    page_count += 1
                    items.extend(page.get(result_key, []))
                logger.debug(f"{method}: {len(items)} items across {page_count} page(s) in {self.region}")
                return items

            except (ClientError, BotoCoreError) as e:
                kind = classify_error(e)
                if kind == ErrorKind.TRANSIENT and self.retry_policy.should_retry(attempt):
                    delay = self.retry_policy.wait(attempt)
                    logger.debug(
                        f"Transient error on {method}, restarting listing after {delay:.1f}s "
                        f"(attempt {attempt + 1}/{self.retry_policy.max_attempts})"
                    )
                    attempt += 1
                    continue
                raise to_exception(e, context=f"{method} in {self.region}") from e

    def _parse_internet_gateway(self, igw: dict, vpc_id: str) -> list[ChildResource]:
        igw_id = igw["InternetGatewayId"]
        attached_elsewhere = [
            attachment["VpcId"]
            for attachment in igw.get("Attachments", [])
            if attachment.get("VpcId") != vpc_id and attachment.get("State") not in DETACHED_STATES
        ]
        if attached_elsewhere:
            logger.debug(f"Ignoring gateway {igw_id}: now attached to {', '.join(attached_elsewhere)}")
            return []

        children = [ChildResource(kind=ResourceKind.INTERNET_GATEWAY, resource_id=igw_id, vpc_id=vpc_id)]

        for attachment in igw.get("Attachments", []):
            if attachment.get("VpcId") != vpc_id or attachment.get("State") in DETACHED_STATES:
                continue
            children.append(
                ChildResource(
                    kind=ResourceKind.INTERNET_GATEWAY_ATTACHMENT,
                    resource_id=igw_id,
                    vpc_id=vpc_id,
                    attributes={"state": attachment.get("State")},
                )
            )
        return children

    def _parse_subnet(self, subnet: dict, vpc_id: str) -> list[ChildResource]:
        return [
            ChildResource(
                kind=ResourceKind.SUBNET,
                resource_id=subnet["SubnetId"],
                vpc_id=vpc_id,
                attributes={
                    "availability_zone": subnet.get("AvailabilityZone"),
                    "cidr_block": subnet.get("CidrBlock"),
                },
            )
        ]

    def _parse_route_table(self, route_table: dict, vpc_id: str) -> list[ChildResource]:
        route_table_id = route_table["RouteTableId"]
        associations = [
            association
            for association in route_table.get("Associations", [])
            if association.get("AssociationState", {}).get("State", "associated") not in DISASSOCIATED_STATES
        ]
        is_main = any(association.get("Main", False) for association in associations)

        children = [
            ChildResource(
                kind=ResourceKind.ROUTE_TABLE,
                resource_id=route_table_id,
                vpc_id=vpc_id,
                dependency_tags=frozenset({MAIN_TAG}) if is_main else frozenset(),
            )
        ]

        for association in associations:
            children.append(
                ChildResource(
                    kind=ResourceKind.ROUTE_TABLE_ASSOCIATION,
                    resource_id=association["RouteTableAssociationId"],
                    vpc_id=vpc_id,
                    dependency_tags=frozenset({MAIN_TAG}) if association.get("Main", False) else frozenset(),
                    attributes={
                        "route_table_id": route_table_id,
                        "subnet_id": association.get("SubnetId"),
                        "gateway_id": association.get("GatewayId"),
                    },
                )
            )
        return children

    def _parse_network_acl(self, acl: dict, vpc_id: str) -> list[ChildResource]:
        return [
            ChildResource(
                kind=ResourceKind.NETWORK_ACL,
                resource_id=acl["NetworkAclId"],
                vpc_id=vpc_id,
                dependency_tags=frozenset({DEFAULT_TAG}) if acl.get("IsDefault", False) else frozenset(),
            )
        ]
