"""Dependency-ordered deletion planner."""

from __future__ import annotations

import logging
from typing import Iterable

from defaultvpc.models.child_resource import ChildResource, ResourceKind
from defaultvpc.models.deletion_plan import Batch, DeletionPlan
from defaultvpc.models.target import TargetResource

logger = logging.getLogger(__name__)

# Fixed by EC2's referential constraints. The VPC itself follows the last batch.
DELETION_ORDER: tuple[ResourceKind, ...] = (
    ResourceKind.INTERNET_GATEWAY_ATTACHMENT,
    ResourceKind.INTERNET_GATEWAY,
    ResourceKind.SUBNET,
    ResourceKind.ROUTE_TABLE_ASSOCIATION,
    ResourceKind.ROUTE_TABLE,
    ResourceKind.NETWORK_ACL,
)


class DeletionPlanner:
    """Arranges discovered child resources into ordered deletion batches.

    Planning is a pure function of its inputs. Every kind gets a batch, even
    when empty, so the executor walks the same sequence of steps on every run.
    Main/default sub-objects are moved to ``plan.skipped`` instead of being
    attempted: EC2 rejects deleting them permanently, and retrying that
    rejection would look exactly like a real failure.
    """

    def __init__(self, order: tuple[ResourceKind, ...] = DELETION_ORDER) -> None:
        if set(order) != set(ResourceKind) or len(order) != len(ResourceKind):
            raise ValueError("Deletion order must list every resource kind exactly once")
        self.order = order

    def plan(self, target: TargetResource, children: Iterable[ChildResource]) -> DeletionPlan:
        """Compute the deletion plan.

        Args:
            target: Default VPC the children belong to
            children: Discovered child resources

        Returns:
            DeletionPlan with one batch per kind in dependency order
        """
        by_kind: dict[ResourceKind, dict[str, ChildResource]] = {kind: {} for kind in self.order}
        skipped: dict[tuple[ResourceKind, str], ChildResource] = {}

        for child in children:
            if child.vpc_id != target.vpc_id:
                logger.debug(f"Ignoring {child.kind.label} {child.resource_id} of VPC {child.vpc_id}")
                continue
            if child.is_skippable:
                skipped[(child.kind, child.resource_id)] = child
                continue
            by_kind[child.kind][child.resource_id] = child

        batches = tuple(
            Batch(
                index=index,
                kind=kind,
                members=tuple(by_kind[kind][resource_id] for resource_id in sorted(by_kind[kind])),
            )
            for index, kind in enumerate(self.order)
        )

        plan = DeletionPlan(
            target=target,
            batches=batches,
            skipped=tuple(skipped[key] for key in sorted(skipped, key=lambda k: (k[0].name, k[1]))),
        )
        plan.validate()

        logger.debug(
            f"Planned {plan.total_resources} deletions in {len(batches)} batches for {target.vpc_id}, "
            f"{len(plan.skipped)} main/default objects skipped"
        )
        return plan
