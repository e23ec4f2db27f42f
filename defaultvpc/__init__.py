"""Default VPC deletion - dependency-ordered teardown of a region's default VPC."""

__version__ = "0.1.0"
