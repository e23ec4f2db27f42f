"""Data models for default VPC deletion."""
