"""Errors raised while fetching issue counts."""

from datetime import datetime


class IssueCountError(Exception):
    """Base class for issue count failures."""


class RateLimitedError(IssueCountError):
    """GitHub reported an exhausted rate limit.

    Callers must not retry before ``reset_at``.
    """

    def __init__(self, reset_at: datetime):
        self.reset_at = reset_at
        local_time = reset_at.astimezone().strftime("%H:%M:%S")
        super().__init__(f"GitHub rate limit met. Reset at {local_time}")


class OriginError(IssueCountError):
    """GitHub answered with a response that carries no usable issue list."""

    def __init__(self, message: str, status_code: int | None = None):
        self.message = message
        self.status_code = status_code
        super().__init__(f"Could not get issue count from GitHub: {message}")
