"""Declared-state models, extraction and acquisition."""

from tfverify.state.extractor import StateTreeExtractor
from tfverify.state.models import (
    KNOWN_SERVICE_SUFFIXES,
    SERVICE_GROUPS,
    ResourceCounts,
    ServiceResourceCounts,
)
from tfverify.state.reader import TerraformStateReader

__all__ = [
    "KNOWN_SERVICE_SUFFIXES",
    "SERVICE_GROUPS",
    "ResourceCounts",
    "ServiceResourceCounts",
    "StateTreeExtractor",
    "TerraformStateReader",
]
