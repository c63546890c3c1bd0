"""Builders turning CRD specs into configurations and providers."""
