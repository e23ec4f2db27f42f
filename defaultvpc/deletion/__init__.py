"""Default VPC deletion module.

This module deletes a region's default VPC together with everything that
depends on it, in dependency order and idempotently.

Classes:
    DefaultVpcCleaner: Main orchestrator for preview and execute operations
    ResourceLocator: Default VPC and child resource discovery
    DeletionPlanner: Dependency-ordered batch planning
    DeletionExecutor: Batch execution with bounded concurrency
    ResourceDeleter: Per-resource delete calls with retry
    RetryPolicy: Capped exponential backoff with jitter
    AuditStorage: Audit log storage and retrieval
"""

from __future__ import annotations

__all__ = [
    "DefaultVpcCleaner",
    "ResourceLocator",
    "DeletionPlanner",
    "DeletionExecutor",
    "ResourceDeleter",
    "RetryPolicy",
    "AuditStorage",
    "delete_default_vpc",
]

from defaultvpc.deletion.audit import AuditStorage
from defaultvpc.deletion.cleaner import DefaultVpcCleaner, delete_default_vpc
from defaultvpc.deletion.deleter import ResourceDeleter
from defaultvpc.deletion.executor import DeletionExecutor
from defaultvpc.deletion.locator import ResourceLocator
from defaultvpc.deletion.planner import DeletionPlanner
from defaultvpc.deletion.retry import RetryPolicy
