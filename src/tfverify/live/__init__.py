"""Live AWS resource counting."""

from tfverify.live.fetcher import LiveResourceFetcher
from tfverify.live.runner import AWSCLIRunner, AWSCommandRunner

__all__ = [
    "AWSCLIRunner",
    "AWSCommandRunner",
    "LiveResourceFetcher",
]
