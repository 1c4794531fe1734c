"""
Issue count values and inference from GitHub pagination metadata.

GitHub pages issue listings; only the first page is ever requested. When the
``Link`` header advertises a last page, the exact count is unknown and a lower
bound is reported instead.
"""

import re
from dataclasses import dataclass

import httpx

# GitHub's default page size for REST listings
DEFAULT_PAGE_SIZE = 30

_LINK_PATTERN = re.compile(r"<(?P<url>[^>]*)>(?P<params>[^,]*)")
_REL_PATTERN = re.compile(r"""rel\s*=\s*"?(?P<rel>[^";]+)"?""")


@dataclass(frozen=True)
class Exact:
    """An exact issue count."""

    value: int

    def to_display(self) -> int | str:
        return self.value

    def __str__(self) -> str:
        return str(self.value)


@dataclass(frozen=True)
class AtLeast:
    """A lower bound on the issue count, rendered as ``"<n>+"``."""

    value: int

    def to_display(self) -> int | str:
        return f"{self.value}+"

    def __str__(self) -> str:
        return f"{self.value}+"


IssueCount = Exact | AtLeast


def parse_issue_count(value: int | str) -> IssueCount:
    """
    Read an issue count back from its persisted form.

    Args:
        value: A non-negative integer or an estimate string such as ``"180+"``.

    Returns:
        Exact or AtLeast count.

    Raises:
        ValueError: If the value is neither form.
    """
    if isinstance(value, bool):
        raise ValueError(f"Invalid issue count: {value!r}")
    if isinstance(value, int):
        if value < 0:
            raise ValueError(f"Invalid issue count: {value!r}")
        return Exact(value)
    if isinstance(value, str):
        text = value.strip()
        if text.endswith("+") and text[:-1].isdigit():
            return AtLeast(int(text[:-1]))
        if text.isdigit():
            return Exact(int(text))
    raise ValueError(f"Invalid issue count: {value!r}")


def parse_last_page(link_header: str | None) -> int | None:
    """
    Extract the page number of the ``rel="last"`` entry of a Link header.

    Args:
        link_header: Raw ``Link`` header value, e.g.
            ``<https://api.github.com/...&page=7>; rel="last"``.

    Returns:
        The last page number, or None when the header is missing, has no
        ``last`` entry, or the entry carries no numeric ``page`` parameter.
    """
    if not link_header:
        return None

    for match in _LINK_PATTERN.finditer(link_header):
        rels = []
        for param in match.group("params").split(";"):
            rel_match = _REL_PATTERN.search(param.strip())
            if rel_match:
                rels.extend(rel_match.group("rel").split())
        if "last" not in rels:
            continue

        try:
            page = httpx.URL(match.group("url")).params.get("page")
        except httpx.InvalidURL:
            return None
        if page is None or not page.isdigit():
            return None
        return int(page)

    return None


def infer_issue_count(
    page_size: int,
    link_header: str | None,
    default_page_size: int = DEFAULT_PAGE_SIZE,
) -> IssueCount:
    """
    Infer the issue count from the first page of results.

    With a last page ``L`` and ``N`` items per page the true count lies in
    ``((L-1)*N, L*N]``, so ``(L-1)*N`` is reported as a lower bound.

    Args:
        page_size: Number of items on the returned page.
        link_header: Raw ``Link`` header, if any.
        default_page_size: Items per page assumed when the page is empty.

    Returns:
        Exact count when everything fits on one page, AtLeast otherwise.
    """
    last_page = parse_last_page(link_header)
    if last_page is None or last_page < 2:
        return Exact(page_size)

    per_page = page_size or default_page_size
    return AtLeast((last_page - 1) * per_page)
