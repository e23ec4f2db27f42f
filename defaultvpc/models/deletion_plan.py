"""Deletion plan model.

Ordered batches of same-kind child resources.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterator

from defaultvpc.models.child_resource import ChildResource, ResourceKind
from defaultvpc.models.target import TargetResource


@dataclass(frozen=True)
class Batch:
    """Same-kind resources that may be deleted concurrently.

    Attributes:
        index: Position in the plan (0-based)
        kind: Kind shared by every member
        members: Resources in the batch (may be empty)
    """

    index: int
    kind: ResourceKind
    members: tuple[ChildResource, ...] = ()

    def __len__(self) -> int:
        return len(self.members)

    def __iter__(self) -> Iterator[ChildResource]:
        return iter(self.members)

    @property
    def is_empty(self) -> bool:
        return not self.members

    @property
    def resource_ids(self) -> list[str]:
        return [member.resource_id for member in self.members]


@dataclass(frozen=True)
class DeletionPlan:
    """Deletion plan entity.

    Invariants:
        - one batch per kind, in dependency order
        - every member of a batch has the batch's kind
        - skipped (main/default) resources never appear in a batch

    Attributes:
        target: The default VPC, deleted after every batch has drained
        batches: Ordered batches
        skipped: Main/default sub-objects left for EC2 to remove with the VPC
    """

    target: TargetResource
    batches: tuple[Batch, ...]
    skipped: tuple[ChildResource, ...] = field(default=())

    def __iter__(self) -> Iterator[Batch]:
        return iter(self.batches)

    @property
    def total_resources(self) -> int:
        """Number of child resources that will be deleted (excludes skipped and the VPC)."""
        return sum(len(batch) for batch in self.batches)

    def validate(self) -> bool:
        """Validate plan invariants.

        Returns:
            True if validation passes

        Raises:
            ValueError: If any validation rule fails
        """
        for position, batch in enumerate(self.batches):
            if batch.index != position:
                raise ValueError(f"Batch {batch.kind.name} has index {batch.index}, expected {position}")
            for member in batch:
                if member.kind != batch.kind:
                    raise ValueError(f"{member.resource_id} is a {member.kind.name}, not {batch.kind.name}")
                if member.is_skippable:
                    raise ValueError(f"{member.resource_id} is a main/default object and cannot be deleted")

        kinds = [batch.kind for batch in self.batches]
        if len(kinds) != len(set(kinds)):
            raise ValueError("Each kind may appear in only one batch")

        return True
