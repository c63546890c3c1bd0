"""Kubernetes operator that reconciles S3 buckets."""

__version__ = "0.1.0"
