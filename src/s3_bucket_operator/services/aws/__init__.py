"""boto3-backed S3 provider, models and endpoint derivation."""
