"""
Fetch the number of open issues carrying a label, backed by a cache.

Each lookup makes at most one request to the GitHub REST API. Cached counts
younger than the freshness window are returned without touching the network;
older entries are revalidated with their ETag so an unchanged issue list costs
a 304 instead of a full response.
"""

from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from urllib.parse import unquote

import httpx

from up_for_grabs.cache import CacheEntry, CacheStore, JsonFileCacheStore
from up_for_grabs.config import (
    get_freshness_window,
    get_github_api_base,
    get_github_token,
)
from up_for_grabs.counts import Exact, IssueCount, infer_issue_count
from up_for_grabs.errors import OriginError, RateLimitedError
from up_for_grabs.http_client import _get_async_http_client


class FetchState(str, Enum):
    """Decision points reached while resolving one lookup."""

    CACHE_FRESH = "cache_fresh"
    CACHE_STALE_CONDITIONAL = "cache_stale_conditional"
    CACHE_STALE_UNCONDITIONAL = "cache_stale_unconditional"
    RESPONSE_OK = "response_ok"
    RESPONSE_NOT_MODIFIED = "response_not_modified"
    RESPONSE_RATE_LIMITED = "response_rate_limited"
    RESPONSE_ERROR = "response_error"


@dataclass(frozen=True)
class RateLimitState:
    """Rate limit headers of a single response."""

    remaining: int | None
    reset_at: datetime | None

    @classmethod
    def from_headers(cls, headers: httpx.Headers) -> "RateLimitState":
        remaining = _parse_int(headers.get("X-RateLimit-Remaining"))
        reset_epoch = _parse_int(headers.get("X-RateLimit-Reset"))
        reset_at = None
        if reset_epoch is not None:
            try:
                reset_at = datetime.fromtimestamp(reset_epoch, tz=timezone.utc)
            except (OverflowError, OSError, ValueError):
                reset_at = None
        return cls(remaining=remaining, reset_at=reset_at)

    @property
    def exhausted(self) -> bool:
        return self.remaining == 0 and self.reset_at is not None


@dataclass(frozen=True)
class FetchResult:
    """Resolved count plus the states visited to obtain it."""

    count: IssueCount
    states: tuple[FetchState, ...]

    @property
    def from_network(self) -> bool:
        return FetchState.CACHE_FRESH not in self.states


def _parse_int(value: str | None) -> int | None:
    if value is None:
        return None
    try:
        return int(value.strip())
    except ValueError:
        return None


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _error_message(response: httpx.Response) -> str:
    """Prefer the ``message`` field of a JSON error body, else the reason phrase."""
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict) and isinstance(body.get("message"), str):
        return body["message"]
    return response.reason_phrase or f"HTTP {response.status_code}"


class IssueCountFetcher:
    """Resolve issue counts for projects, consulting a cache store first."""

    def __init__(
        self,
        store: CacheStore,
        client: httpx.AsyncClient | None = None,
        freshness_window: float | None = None,
        api_base: str | None = None,
        token: str | None = None,
        clock: Callable[[], datetime] | None = None,
    ):
        """
        Args:
            store: Cache store consulted and updated by every lookup.
            client: HTTP client. Defaults to the shared pooled client.
            freshness_window: Maximum cache age in seconds. Defaults to the
                configured window (24 hours).
            api_base: GitHub REST API base URL.
            token: GitHub token. Defaults to GITHUB_TOKEN; requests are
                anonymous when no token is available.
            clock: Returns the current timezone-aware time.
        """
        self.store = store
        self.client = client
        self.freshness_window = (
            freshness_window if freshness_window is not None else get_freshness_window()
        )
        self.api_base = (api_base or get_github_api_base()).rstrip("/")
        self.token = token if token is not None else get_github_token()
        self.clock = clock or _utc_now

    def issues_url(self, project_id: str) -> str:
        return f"{self.api_base}/repos/{project_id}/issues"

    def _build_headers(self, etag: str | None) -> dict[str, str]:
        headers = {"Accept": "application/vnd.github+json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        # Add ETag support for conditional requests
        if etag:
            headers["If-None-Match"] = etag
        return headers

    async def get(self, project_id: str, label: str) -> IssueCount:
        """
        Return the number of open issues of ``project_id`` labelled ``label``.

        Args:
            project_id: Repository in ``owner/repo`` form.
            label: Issue label. Percent-encoded labels (``"help%20wanted"``)
                are decoded first, so both forms query the same label.

        Returns:
            Exact count, or AtLeast when the issues span several pages.

        Raises:
            RateLimitedError: GitHub reported no remaining quota. Do not retry
                before ``reset_at``.
            OriginError: GitHub answered with any other unusable response.
            httpx.RequestError: The request could not be sent.
        """
        result = await self.fetch(project_id, label)
        return result.count

    async def fetch(self, project_id: str, label: str) -> FetchResult:
        """Like get(), but also report which states the lookup went through."""
        states: list[FetchState] = []
        cached = self.store.read(project_id)

        if cached is not None and cached.is_fresh(self.freshness_window, self.clock()):
            states.append(FetchState.CACHE_FRESH)
            return FetchResult(cached.count, tuple(states))

        etag = cached.etag if cached is not None else None
        states.append(
            FetchState.CACHE_STALE_CONDITIONAL
            if etag
            else FetchState.CACHE_STALE_UNCONDITIONAL
        )

        client = self.client or await _get_async_http_client()
        response = await client.get(
            self.issues_url(project_id),
            params={"labels": unquote(label)},
            headers=self._build_headers(etag),
        )

        if response.status_code == 304:
            states.append(FetchState.RESPONSE_NOT_MODIFIED)
            count = cached.count if cached is not None else Exact(0)
            return FetchResult(count, tuple(states))

        if response.status_code == 403:
            rate_limit = RateLimitState.from_headers(response.headers)
            if rate_limit.exhausted:
                raise RateLimitedError(rate_limit.reset_at)

        if response.status_code != 200:
            raise OriginError(_error_message(response), response.status_code)

        try:
            items = response.json()
        except ValueError:
            items = None
        if not isinstance(items, list):
            raise OriginError("Unexpected response body", response.status_code)

        states.append(FetchState.RESPONSE_OK)
        count = infer_issue_count(len(items), response.headers.get("Link"))
        self.store.write(
            project_id,
            CacheEntry(count=count, date=self.clock(), etag=response.headers.get("ETag")),
        )
        return FetchResult(count, tuple(states))


class RateLimitGuard:
    """
    Stop issuing lookups once GitHub reports an exhausted rate limit.

    Wraps a fetcher; after a RateLimitedError every call fails immediately
    with the same reset time until that time has passed.
    """

    def __init__(
        self,
        fetcher: IssueCountFetcher,
        clock: Callable[[], datetime] | None = None,
    ):
        self.fetcher = fetcher
        self.clock = clock or fetcher.clock
        self.reset_at: datetime | None = None

    @property
    def blocked(self) -> bool:
        return self.reset_at is not None and self.clock() < self.reset_at

    async def get(self, project_id: str, label: str) -> IssueCount:
        if self.blocked:
            raise RateLimitedError(self.reset_at)
        try:
            return await self.fetcher.get(project_id, label)
        except RateLimitedError as e:
            self.reset_at = e.reset_at
            raise


async def fetch_issue_count(
    project_id: str,
    label: str,
    store: CacheStore | None = None,
    client: httpx.AsyncClient | None = None,
) -> int | str:
    """
    Return the issue count of a project in display form.

    Args:
        project_id: Repository in ``owner/repo`` form.
        label: Issue label, plain or percent-encoded ("help wanted" or
            "help%20wanted").
        store: Cache store. Defaults to the on-disk cache.
        client: HTTP client. Defaults to the shared pooled client.

    Returns:
        An exact integer, or a string such as ``"180+"`` for a lower bound.
    """
    fetcher = IssueCountFetcher(store or JsonFileCacheStore(), client=client)
    count = await fetcher.get(project_id, label)
    return count.to_display()
