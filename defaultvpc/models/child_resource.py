"""Child resource model.

A resource scoped to, and referentially dependent on, the default VPC.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

MAIN_TAG = "main"
DEFAULT_TAG = "default"

# EC2 tag put on an internet gateway before it is detached from its VPC
OWNER_TAG_KEY = "defaultvpc:vpc-id"


class ResourceKind(Enum):
    """Closed set of default VPC child resource kinds."""

    SUBNET = "AWS::EC2::Subnet"
    ROUTE_TABLE = "AWS::EC2::RouteTable"
    ROUTE_TABLE_ASSOCIATION = "AWS::EC2::SubnetRouteTableAssociation"
    NETWORK_ACL = "AWS::EC2::NetworkAcl"
    INTERNET_GATEWAY = "AWS::EC2::InternetGateway"
    INTERNET_GATEWAY_ATTACHMENT = "AWS::EC2::VPCGatewayAttachment"

    @property
    def label(self) -> str:
        """Short human-readable name (e.g., "route table association")."""
        return self.name.lower().replace("_", " ")


@dataclass(frozen=True)
class ChildResource:
    """Child resource entity.

    Discovered fresh on every run and never persisted. Main and default
    sub-objects (main route table, its main association, default network ACL)
    carry a dependency tag; EC2 removes them together with the VPC and refuses
    to delete them on their own.

    Attributes:
        kind: Resource kind
        resource_id: Identifier used by the delete call (for gateway attachments,
            the internet gateway ID)
        vpc_id: Parent VPC identifier (lookup reference only)
        dependency_tags: Markers such as "main" or "default"
        attributes: Extra identifiers (e.g., route_table_id of an association)
    """

    kind: ResourceKind
    resource_id: str
    vpc_id: str
    dependency_tags: frozenset[str] = field(default_factory=frozenset)
    attributes: dict[str, Any] = field(default_factory=dict, compare=False, hash=False)

    @property
    def is_skippable(self) -> bool:
        """True for main/default sub-objects that must never be deleted directly."""
        return bool(self.dependency_tags & {MAIN_TAG, DEFAULT_TAG})

    @property
    def skip_reason(self) -> str:
        if MAIN_TAG in self.dependency_tags:
            return f"Main {self.kind.label} is removed with the VPC"
        if DEFAULT_TAG in self.dependency_tags:
            return f"Default {self.kind.label} is removed with the VPC"
        return ""
