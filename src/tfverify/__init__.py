"""Verify that a live AWS environment matches its Terraform state."""

__version__ = "0.1.0"
