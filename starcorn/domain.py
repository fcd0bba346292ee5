"""
Domain models for starcorn.

This module provides clean domain objects that isolate fetching and
categorization from the shape of the GitHub REST API, implementing an
anti-corruption layer between the two.
"""

import math
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from pydantic import ValidationError

from .models import StarredRepoPayload

MAX_USERNAME_LENGTH = 39

_USERNAME_RE = re.compile(r"^[a-zA-Z0-9-]+$")
_LAST_PAGE_RE = re.compile(r'<[^>]*[?&]page=(\d+)[^>]*>;\s*rel="last"')


@dataclass(frozen=True)
class Repository:
    """Immutable snapshot of one starred repository."""

    id: int
    name: str
    full_name: str
    url: str
    stars: int
    owner: str
    owner_avatar_url: str = ""
    description: Optional[str] = None
    language: Optional[str] = None
    topics: Tuple[str, ...] = ()
    updated_at: Optional[datetime] = None
    fork: bool = False
    private: bool = False

    @property
    def lower_topics(self) -> frozenset:
        """Topics normalized for case-insensitive matching."""
        return frozenset(topic.lower() for topic in self.topics)

    def __post_init__(self):
        """Validate repository data after initialization."""
        if self.id <= 0:
            raise ValueError("Repository ID must be positive")
        if not self.name or not self.owner:
            raise ValueError("Repository name and owner are required")
        if self.stars < 0:
            raise ValueError("Star count cannot be negative")


@dataclass(frozen=True)
class FetchProgress:
    """Snapshot of retrieval state, reported after every integrated page."""

    current_page: int
    total_pages: int
    fetched_count: int
    estimated_total: int


@dataclass(frozen=True)
class RateLimitInfo:
    """Quota state parsed from the latest response."""

    remaining: int
    limit: int
    reset_at: datetime

    @property
    def is_low(self) -> bool:
        """True when less than a fifth of the quota is left."""
        if self.limit <= 0:
            return True
        return self.remaining / self.limit < 0.2

    def minutes_until_reset(self, now: Optional[datetime] = None) -> int:
        now = now or datetime.now(timezone.utc)
        seconds = (self.reset_at - now).total_seconds()
        return max(0, math.ceil(seconds / 60))


@dataclass(frozen=True)
class FetchResult:
    """Terminal result of one retrieval run."""

    repos: List[Repository] = field(default_factory=list)
    is_partial: bool = False
    error: Optional[str] = None
    requires_token: bool = False
    estimated_total: Optional[int] = None
    rate_limit: Optional[RateLimitInfo] = None

    @property
    def is_complete(self) -> bool:
        return not self.is_partial and self.error is None

    @property
    def total_stars(self) -> int:
        """Sum of stargazers across fetched repositories."""
        return sum(repo.stars for repo in self.repos)


class ApiError(Exception):
    """Base exception for API-related errors."""

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.status = status


class RateLimitError(ApiError):
    """Exception raised when the GitHub API quota is exhausted."""

    pass


class AuthenticationError(ApiError):
    """Exception raised when GitHub rejects the supplied token."""

    pass


class UserNotFoundError(ApiError):
    """Exception raised when the requested user does not exist."""

    pass


class AccessDeniedError(ApiError):
    """Exception raised on a 403 that is not caused by quota exhaustion."""

    pass


class FetchCancelledError(Exception):
    """Exception raised when the caller cancels a retrieval run."""

    pass


def validate_username(username: str) -> Optional[str]:
    """Return a user-facing error message, or None if the username is valid."""
    if not username.strip():
        return "Please enter a username"
    if username.startswith("-"):
        return "Username cannot start with a hyphen"
    if not _USERNAME_RE.match(username):
        return "Username can only contain letters, numbers, and hyphens"
    if len(username) > MAX_USERNAME_LENGTH:
        return "Username is too long"
    return None


def parse_link_header(link_header: Optional[str]) -> int:
    """
    Extract the last page number from a ``Link`` pagination header.

    A missing header, or one without a ``rel="last"`` entry, means the
    response is the only page.
    """
    if not link_header:
        return 1
    for link in link_header.split(","):
        match = _LAST_PAGE_RE.search(link)
        if match:
            return int(match.group(1))
    return 1


def parse_rate_limit_headers(headers: Mapping[str, str]) -> Optional[RateLimitInfo]:
    """Build a RateLimitInfo from the X-RateLimit-* headers, if all are present."""
    try:
        remaining = int(headers["X-RateLimit-Remaining"])
        limit = int(headers["X-RateLimit-Limit"])
        reset = int(headers["X-RateLimit-Reset"])
    except (KeyError, TypeError, ValueError):
        return None
    return RateLimitInfo(
        remaining=remaining,
        limit=limit,
        reset_at=datetime.fromtimestamp(reset, tz=timezone.utc),
    )


def transform_github_response(api_response: Dict[str, Any]) -> Repository:
    """
    Transform a GitHub REST repository object into a domain Repository.

    This function implements the anti-corruption layer by converting
    external API format into our internal domain model.
    """
    try:
        payload = StarredRepoPayload.model_validate(api_response)
        return Repository(
            id=payload.id,
            name=payload.name,
            full_name=payload.full_name,
            url=payload.html_url,
            stars=payload.stargazers_count,
            owner=payload.owner.login,
            owner_avatar_url=payload.owner.avatar_url,
            description=payload.description,
            language=payload.language,
            topics=tuple(payload.topics),
            updated_at=payload.updated_at,
            fork=payload.fork,
            private=payload.private,
        )
    except (ValidationError, ValueError, TypeError) as e:
        raise ValueError(f"Invalid GitHub API response format: {e}") from e


def public_repositories(page_data: Iterable[Dict[str, Any]]) -> List[Repository]:
    """Convert one page of API objects, dropping private repositories."""
    repos = (transform_github_response(item) for item in page_data)
    return [repo for repo in repos if not repo.private]
