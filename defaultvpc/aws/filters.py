"""Builders for the ``Filters`` argument of EC2 ``Describe*`` calls.

All helpers return the boto3 shape ``[{"Name": ..., "Values": [...]}]``.
"""

from __future__ import annotations

from typing import Any, Iterable, Optional

AWS_TAG_PREFIX = "aws:"


def build_attribute_filter_list(attrs: dict[str, str]) -> list[dict[str, Any]]:
    """Build exact-match filters for a flat map of scalar attributes.

    Keys are EC2 filter names (e.g. ``vpc-id``, ``isDefault``). Attributes with
    empty values are left unconstrained and produce no filter. Serializing
    non-string values is the caller's job.

    Args:
        attrs: Filter name to value

    Returns:
        List of filters, sorted by name
    """
    return [{"Name": name, "Values": [value]} for name, value in sorted(attrs.items()) if value != ""]


def build_tag_filter_list(tags: Iterable[dict[str, str]]) -> list[dict[str, Any]]:
    """Build ``tag:<key>`` filters from EC2 tag dicts (``{"Key": ..., "Value": ...}``)."""
    return [{"Name": f"tag:{tag['Key']}", "Values": [tag["Value"]]} for tag in tags]


def tag_filters_from_map(m: dict[str, Any]) -> Optional[list[dict[str, Any]]]:
    """Build exact tag-match filters from a tag map, ignoring ``aws:`` system tags.

    Returns:
        List of filters, or None for an empty map
    """
    if not m:
        return None

    tags = [{"Key": key, "Value": str(value)} for key, value in m.items() if not key.startswith(AWS_TAG_PREFIX)]
    return build_tag_filter_list(tags)
