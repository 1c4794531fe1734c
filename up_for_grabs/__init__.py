"""
Up For Grabs: cached issue counts for curated open-source projects.
"""

from up_for_grabs.cache import (
    CacheEntry,
    CacheStore,
    InMemoryCacheStore,
    JsonFileCacheStore,
)
from up_for_grabs.counts import AtLeast, Exact, IssueCount
from up_for_grabs.errors import IssueCountError, OriginError, RateLimitedError
from up_for_grabs.issue_count import (
    FetchState,
    IssueCountFetcher,
    RateLimitGuard,
    fetch_issue_count,
)

__all__ = [
    "AtLeast",
    "CacheEntry",
    "CacheStore",
    "Exact",
    "FetchState",
    "InMemoryCacheStore",
    "IssueCount",
    "IssueCountError",
    "IssueCountFetcher",
    "JsonFileCacheStore",
    "OriginError",
    "RateLimitGuard",
    "RateLimitedError",
    "fetch_issue_count",
]
