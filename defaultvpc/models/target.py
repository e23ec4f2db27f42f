"""Target resource model: the default VPC itself."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

VPC_RESOURCE_TYPE = "AWS::EC2::VPC"


@dataclass(frozen=True)
class TargetResource:
    """Default VPC entity.

    Created by lookup at the start of a run and deleted remotely on success.

    Attributes:
        vpc_id: VPC identifier
        region: AWS region
        exists: Whether the VPC was present when looked up
        cidr_block: Primary IPv4 CIDR block (optional)
        owner_id: Owning AWS account ID (optional)
    """

    vpc_id: str
    region: str
    exists: bool = True
    cidr_block: Optional[str] = None
    owner_id: Optional[str] = None
