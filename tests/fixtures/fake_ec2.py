"""In-memory fake of the EC2 client surface used by default VPC deletion.

Models just enough EC2 behavior to exercise the workflow end to end:
paginated and filtered describe calls, not-found errors for missing
resources, dependency violations for resources that still have dependents,
injectable failures and a thread-safe call log.
"""

from __future__ import annotations

import copy
import itertools
import threading
from typing import Any, Optional

from botocore.exceptions import ClientError

ACCOUNT_ID = "123456789012"


def client_error(code: str, operation: str = "Operation", message: Optional[str] = None, status: int = 400):
    """Build a botocore ClientError the way boto3 raises it."""
    return ClientError(
        {
            "Error": {"Code": code, "Message": message or f"Simulated {code}"},
            "ResponseMetadata": {"HTTPStatusCode": status},
        },
        operation,
    )


def _operation_name(method: str) -> str:
    return "".join(part.title() for part in method.split("_"))


class FakePaginator:
    """Paginator over one fake describe call."""

    def __init__(self, ec2: "FakeEC2", method: str) -> None:
        self.ec2 = ec2
        self.method = method

    def paginate(self, Filters: Optional[list[dict]] = None, **kwargs: Any):
        items, result_key = self.ec2._describe(self.method, Filters or [])
        page_size = self.ec2.page_size
        pages = [items[i : i + page_size] for i in range(0, len(items), page_size)] or [[]]

        for number, page in enumerate(pages):
            self.ec2._record(self.method, {"Filters": Filters, "Page": number})
            self.ec2._maybe_fail(self.method, None)
            response: dict[str, Any] = {result_key: page}
            if number < len(pages) - 1:
                response["NextToken"] = f"token-{number + 1}"
            yield response


class FakeEC2:
    """Stateful fake EC2 client.

    Attributes:
        page_size: Items per describe page
        linger_polls: describe_vpcs(VpcIds=...) calls that still return a VPC after it was deleted
        calls: Ordered log of (method, params) tuples
    """

    def __init__(self, page_size: int = 100, linger_polls: int = 0) -> None:
        self.page_size = page_size
        self.linger_polls = linger_polls
        self.calls: list[tuple[str, dict]] = []
        self.vpcs: dict[str, dict] = {}
        self.subnets: dict[str, dict] = {}
        self.route_tables: dict[str, dict] = {}
        self.network_acls: dict[str, dict] = {}
        self.internet_gateways: dict[str, dict] = {}
        self._failures: dict[tuple[str, Optional[str]], list[str]] = {}
        self._sticky_failures: dict[tuple[str, Optional[str]], str] = {}
        self._lingering: dict[str, int] = {}
        self._lock = threading.RLock()
        self._ids = itertools.count(1)

    # ------------------------------------------------------------------
    # Setup helpers
    # ------------------------------------------------------------------

    def _new_id(self, prefix: str) -> str:
        return f"{prefix}-{next(self._ids):08x}"

    def add_vpc(self, is_default: bool = True, cidr_block: str = "172.31.0.0/16") -> str:
        """Create a VPC with its main route table and default network ACL."""
        vpc_id = self._new_id("vpc")
        self.vpcs[vpc_id] = {
            "VpcId": vpc_id,
            "IsDefault": is_default,
            "CidrBlock": cidr_block,
            "OwnerId": ACCOUNT_ID,
            "State": "available",
        }
        main_rtb = self._new_id("rtb")
        self.route_tables[main_rtb] = {
            "RouteTableId": main_rtb,
            "VpcId": vpc_id,
            "Associations": [
                {
                    "RouteTableAssociationId": self._new_id("rtbassoc"),
                    "RouteTableId": main_rtb,
                    "Main": True,
                    "AssociationState": {"State": "associated"},
                }
            ],
        }
        default_acl = self._new_id("acl")
        self.network_acls[default_acl] = {"NetworkAclId": default_acl, "VpcId": vpc_id, "IsDefault": True}
        return vpc_id

    def add_subnet(self, vpc_id: str, availability_zone: str = "us-east-1a") -> str:
        subnet_id = self._new_id("subnet")
        self.subnets[subnet_id] = {
            "SubnetId": subnet_id,
            "VpcId": vpc_id,
            "AvailabilityZone": availability_zone,
            "CidrBlock": "172.31.0.0/20",
        }
        return subnet_id

    def add_route_table(self, vpc_id: str, subnet_ids: tuple[str, ...] = ()) -> str:
        rtb_id = self._new_id("rtb")
        self.route_tables[rtb_id] = {"RouteTableId": rtb_id, "VpcId": vpc_id, "Associations": []}
        for subnet_id in subnet_ids:
            self.associate(rtb_id, subnet_id)
        return rtb_id

    def associate(self, rtb_id: str, subnet_id: str) -> str:
        association_id = self._new_id("rtbassoc")
        self.route_tables[rtb_id]["Associations"].append(
            {
                "RouteTableAssociationId": association_id,
                "RouteTableId": rtb_id,
                "SubnetId": subnet_id,
                "Main": False,
                "AssociationState": {"State": "associated"},
            }
        )
        return association_id

    def add_network_acl(self, vpc_id: str) -> str:
        acl_id = self._new_id("acl")
        self.network_acls[acl_id] = {"NetworkAclId": acl_id, "VpcId": vpc_id, "IsDefault": False}
        return acl_id

    def add_internet_gateway(self, vpc_id: Optional[str] = None) -> str:
        igw_id = self._new_id("igw")
        attachments = [{"VpcId": vpc_id, "State": "available"}] if vpc_id else []
        self.internet_gateways[igw_id] = {"InternetGatewayId": igw_id, "Attachments": attachments, "Tags": []}
        return igw_id

    def main_route_table(self, vpc_id: str) -> str:
        for rtb in self.route_tables.values():
            if rtb["VpcId"] == vpc_id and any(a.get("Main") for a in rtb["Associations"]):
                return rtb["RouteTableId"]
        raise KeyError(vpc_id)

    def default_network_acl(self, vpc_id: str) -> str:
        for acl in self.network_acls.values():
            if acl["VpcId"] == vpc_id and acl["IsDefault"]:
                return acl["NetworkAclId"]
        raise KeyError(vpc_id)

    def fail(self, method: str, resource_id: Optional[str], code: str, times: Optional[int] = 1) -> None:
        """Make a call fail with an error code.

        Args:
            method: Client method name
            resource_id: Resource the failure applies to (None for describe calls)
            code: AWS error code to raise
            times: Number of failures before the call succeeds again (None: always)
        """
        key = (method, resource_id)
        if times is None:
            self._sticky_failures[key] = code
        else:
            self._failures.setdefault(key, []).extend([code] * times)

    def clear_failures(self) -> None:
        with self._lock:
            self._failures.clear()
            self._sticky_failures.clear()

    # ------------------------------------------------------------------
    # Call log
    # ------------------------------------------------------------------

    def _record(self, method: str, params: dict) -> None:
        with self._lock:
            self.calls.append((method, dict(params)))

    def _maybe_fail(self, method: str, resource_id: Optional[str]) -> None:
        key = (method, resource_id)
        with self._lock:
            code = self._sticky_failures.get(key)
            if code is None and self._failures.get(key):
                code = self._failures[key].pop(0)
        if code is not None:
            status = 500 if code in ("InternalError", "ServiceUnavailable") else 400
            raise client_error(code, _operation_name(method), status=status)

    def call_names(self) -> list[str]:
        return [method for method, _ in self.calls]

    def mutating_calls(self) -> list[tuple[str, dict]]:
        return [(method, params) for method, params in self.calls if not method.startswith("describe_")]

    def touched_ids(self) -> set[str]:
        """Every resource ID passed to a mutating call."""
        ids = set()
        for _, params in self.mutating_calls():
            ids.update(value for value in params.values() if isinstance(value, str))
        return ids

    # ------------------------------------------------------------------
    # Describe
    # ------------------------------------------------------------------

    def get_paginator(self, method: str) -> FakePaginator:
        if method not in ("describe_vpcs", "describe_subnets", "describe_route_tables",
                          "describe_network_acls", "describe_internet_gateways"):
            raise ValueError(f"No paginator for {method}")
        return FakePaginator(self, method)

    def _describe(self, method: str, filters: list[dict]) -> tuple[list[dict], str]:
        with self._lock:
            if method == "describe_vpcs":
                items, key = list(self.vpcs.values()), "Vpcs"
            elif method == "describe_subnets":
                items, key = list(self.subnets.values()), "Subnets"
            elif method == "describe_route_tables":
                items, key = list(self.route_tables.values()), "RouteTables"
            elif method == "describe_network_acls":
                items, key = list(self.network_acls.values()), "NetworkAcls"
            else:
                items, key = list(self.internet_gateways.values()), "InternetGateways"

            matched = [item for item in items if all(self._matches(item, f) for f in filters)]
            return copy.deepcopy(matched), key

    @staticmethod
    def _matches(item: dict, filter_: dict) -> bool:
        name, values = filter_["Name"], filter_["Values"]
        if name == "isDefault":
            return str(item.get("IsDefault", False)).lower() in values
        if name == "vpc-id":
            return item.get("VpcId") in values
        if name == "attachment.vpc-id":
            return any(a.get("VpcId") in values for a in item.get("Attachments", []))
        if name.startswith("tag:"):
            key = name[len("tag:") :]
            return any(t["Key"] == key and t["Value"] in values for t in item.get("Tags", []))
        raise ValueError(f"Unsupported filter: {name}")

    def describe_vpcs(self, VpcIds: Optional[list[str]] = None, **kwargs: Any) -> dict:
        self._record("describe_vpcs", {"VpcIds": VpcIds})
        self._maybe_fail("describe_vpcs", None)
        with self._lock:
            vpcs = []
            for vpc_id in VpcIds or list(self.vpcs):
                if vpc_id in self.vpcs:
                    vpcs.append(copy.deepcopy(self.vpcs[vpc_id]))
                elif self._lingering.get(vpc_id, 0) > 0:
                    self._lingering[vpc_id] -= 1
                    vpcs.append({"VpcId": vpc_id, "State": "pending"})
                else:
                    raise client_error("InvalidVpcID.NotFound", "DescribeVpcs")
            return {"Vpcs": vpcs}

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def create_tags(self, Resources: list[str], Tags: list[dict]) -> dict:
        self._record("create_tags", {"Resources": Resources, "Tags": Tags})
        for resource_id in Resources:
            self._maybe_fail("create_tags", resource_id)
        with self._lock:
            for resource_id in Resources:
                igw = self.internet_gateways.get(resource_id)
                if igw is None:
                    raise client_error("InvalidInternetGatewayID.NotFound", "CreateTags")
                keys = {tag["Key"] for tag in Tags}
                igw["Tags"] = [t for t in igw["Tags"] if t["Key"] not in keys] + [dict(t) for t in Tags]
        return {}

    def detach_internet_gateway(self, InternetGatewayId: str, VpcId: str) -> dict:
        self._record("detach_internet_gateway", {"InternetGatewayId": InternetGatewayId, "VpcId": VpcId})
        self._maybe_fail("detach_internet_gateway", InternetGatewayId)
        with self._lock:
            igw = self.internet_gateways.get(InternetGatewayId)
            if igw is None:
                raise client_error("InvalidInternetGatewayID.NotFound", "DetachInternetGateway")
            attached = [a for a in igw["Attachments"] if a["VpcId"] == VpcId]
            if not attached:
                raise client_error("Gateway.NotAttached", "DetachInternetGateway")
            igw["Attachments"] = [a for a in igw["Attachments"] if a["VpcId"] != VpcId]
        return {}

    def delete_internet_gateway(self, InternetGatewayId: str) -> dict:
        self._record("delete_internet_gateway", {"InternetGatewayId": InternetGatewayId})
        self._maybe_fail("delete_internet_gateway", InternetGatewayId)
        with self._lock:
            igw = self.internet_gateways.get(InternetGatewayId)
            if igw is None:
                raise client_error("InvalidInternetGatewayID.NotFound", "DeleteInternetGateway")
            if igw["Attachments"]:
                raise client_error("DependencyViolation", "DeleteInternetGateway")
            del self.internet_gateways[InternetGatewayId]
        return {}

    def delete_subnet(self, SubnetId: str) -> dict:
        self._record("delete_subnet", {"SubnetId": SubnetId})
        self._maybe_fail("delete_subnet", SubnetId)
        with self._lock:
            if SubnetId not in self.subnets:
                raise client_error("InvalidSubnetID.NotFound", "DeleteSubnet")
            del self.subnets[SubnetId]
            # EC2 drops the subnet's route table association with it
            for rtb in self.route_tables.values():
                rtb["Associations"] = [a for a in rtb["Associations"] if a.get("SubnetId") != SubnetId]
        return {}

    def disassociate_route_table(self, AssociationId: str) -> dict:
        self._record("disassociate_route_table", {"AssociationId": AssociationId})
        self._maybe_fail("disassociate_route_table", AssociationId)
        with self._lock:
            for rtb in self.route_tables.values():
                for association in rtb["Associations"]:
                    if association["RouteTableAssociationId"] != AssociationId:
                        continue
                    if association.get("Main"):
                        raise client_error("InvalidParameterValue", "DisassociateRouteTable")
                    rtb["Associations"].remove(association)
                    return {}
        raise client_error("InvalidAssociationID.NotFound", "DisassociateRouteTable")

    def delete_route_table(self, RouteTableId: str) -> dict:
        self._record("delete_route_table", {"RouteTableId": RouteTableId})
        self._maybe_fail("delete_route_table", RouteTableId)
        with self._lock:
            rtb = self.route_tables.get(RouteTableId)
            if rtb is None:
                raise client_error("InvalidRouteTableID.NotFound", "DeleteRouteTable")
            if rtb["Associations"]:
                raise client_error("DependencyViolation", "DeleteRouteTable")
            del self.route_tables[RouteTableId]
        return {}

    def delete_network_acl(self, NetworkAclId: str) -> dict:
        self._record("delete_network_acl", {"NetworkAclId": NetworkAclId})
        self._maybe_fail("delete_network_acl", NetworkAclId)
        with self._lock:
            acl = self.network_acls.get(NetworkAclId)
            if acl is None:
                raise client_error("InvalidNetworkAclID.NotFound", "DeleteNetworkAcl")
            if acl["IsDefault"]:
                raise client_error("InvalidParameterValue", "DeleteNetworkAcl")
            del self.network_acls[NetworkAclId]
        return {}

    def delete_vpc(self, VpcId: str) -> dict:
        self._record("delete_vpc", {"VpcId": VpcId})
        self._maybe_fail("delete_vpc", VpcId)
        with self._lock:
            if VpcId not in self.vpcs:
                raise client_error("InvalidVpcID.NotFound", "DeleteVpc")

            blocking = (
                [s for s in self.subnets.values() if s["VpcId"] == VpcId]
                + [
                    r
                    for r in self.route_tables.values()
                    if r["VpcId"] == VpcId and not any(a.get("Main") for a in r["Associations"])
                ]
                + [a for a in self.network_acls.values() if a["VpcId"] == VpcId and not a["IsDefault"]]
                + [
                    g
                    for g in self.internet_gateways.values()
                    if any(a["VpcId"] == VpcId for a in g["Attachments"])
                ]
            )
            if blocking:
                raise client_error("DependencyViolation", "DeleteVpc")

            del self.vpcs[VpcId]
            self.route_tables = {k: v for k, v in self.route_tables.items() if v["VpcId"] != VpcId}
            self.network_acls = {k: v for k, v in self.network_acls.items() if v["VpcId"] != VpcId}
            if self.linger_polls:
                self._lingering[VpcId] = self.linger_polls
        return {}


def build_default_vpc(
    ec2: FakeEC2,
    subnets: int = 3,
    route_tables: int = 2,
    network_acls: int = 1,
    internet_gateway: bool = True,
) -> dict[str, Any]:
    """Populate a fake with a default VPC and children.

    Each extra route table is associated with one subnet (while subnets last).

    Returns:
        Dict of created IDs keyed by kind
    """
    vpc_id = ec2.add_vpc(is_default=True)
    subnet_ids = [ec2.add_subnet(vpc_id, availability_zone=f"us-east-1{'abcdef'[i % 6]}") for i in range(subnets)]

    rtb_ids = []
    association_ids = []
    for i in range(route_tables):
        rtb_id = ec2.add_route_table(vpc_id)
        rtb_ids.append(rtb_id)
        if i < len(subnet_ids):
            association_ids.append(ec2.associate(rtb_id, subnet_ids[i]))

    acl_ids = [ec2.add_network_acl(vpc_id) for _ in range(network_acls)]
    igw_id = ec2.add_internet_gateway(vpc_id) if internet_gateway else None

    return {
        "vpc": vpc_id,
        "subnets": subnet_ids,
        "route_tables": rtb_ids,
        "associations": association_ids,
        "network_acls": acl_ids,
        "internet_gateway": igw_id,
        "main_route_table": ec2.main_route_table(vpc_id),
        "default_network_acl": ec2.default_network_acl(vpc_id),
    }
