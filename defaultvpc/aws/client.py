"""boto3 client factory."""

from __future__ import annotations

import logging
from typing import Any, Optional

import boto3
from botocore.config import Config as BotoConfig

from defaultvpc import __version__

logger = logging.getLogger(__name__)

# botocore's own retries stay small; throttling and eventual consistency are
# handled by RetryPolicy so that attempts are visible in deletion records.
BOTO_CONFIG = BotoConfig(
    retries={"max_attempts": 2, "mode": "standard"},
    user_agent_extra=f"defaultvpc/{__version__}",
)


def create_boto_client(
    service_name: str,
    region_name: str,
    profile_name: Optional[str] = None,
) -> Any:
    """Create a boto3 client for a service in a region.

    Args:
        service_name: AWS service name (e.g., "ec2")
        region_name: AWS region
        profile_name: AWS profile name (optional, default credential chain otherwise)

    Returns:
        boto3 client
    """
    session = boto3.Session(profile_name=profile_name) if profile_name else boto3.Session()
    logger.debug(f"Creating {service_name} client for {region_name} (profile: {profile_name or 'default'})")
    return session.client(service_name, region_name=region_name, config=BOTO_CONFIG)
