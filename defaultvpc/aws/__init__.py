"""AWS client, error classification and EC2 filter helpers."""
