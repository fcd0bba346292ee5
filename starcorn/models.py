"""
Wire models for the GitHub REST API.

These Pydantic models describe the JSON objects returned by the
``/users/{username}/starred`` and ``/rate_limit`` endpoints. They only
validate and normalize the payload; the domain layer converts them into
immutable domain objects.
"""

from datetime import datetime, timezone
from typing import List, Optional

from dateutil import parser as date_parser
from pydantic import BaseModel, Field, field_validator


class OwnerPayload(BaseModel):
    """The ``owner`` object embedded in a repository payload."""

    login: str
    avatar_url: str = ""


class StarredRepoPayload(BaseModel):
    """
    Represents one starred repository as returned by the REST API.

    Only the fields the application uses are declared; everything else in
    the payload is ignored.
    """

    id: int                                   # GitHub's unique repository ID
    name: str                                 # Repository name (e.g., "react")
    full_name: str                            # "owner/name"
    description: Optional[str] = None
    html_url: str
    stargazers_count: int = Field(0, ge=0)
    language: Optional[str] = None
    topics: List[str] = Field(default_factory=list)
    owner: OwnerPayload
    updated_at: Optional[datetime] = None
    fork: bool = False
    private: bool = False

    @field_validator("updated_at", mode="before")
    @classmethod
    def parse_datetime(cls, v):
        """
        Parse GitHub timestamps into timezone-naive UTC datetimes.
        """
        if isinstance(v, str):
            dt = date_parser.parse(v)
            if dt.tzinfo:
                return dt.astimezone(timezone.utc).replace(tzinfo=None)
            return dt
        return v

    @field_validator("topics", mode="before")
    @classmethod
    def default_topics(cls, v):
        return v or []


class RateLimitResource(BaseModel):
    """Quota counters for one resource in the ``/rate_limit`` response."""

    limit: int
    remaining: int
    reset: int  # Unix epoch seconds


class RateLimitPayload(BaseModel):
    """Body of ``GET /rate_limit``; ``rate`` covers the core REST quota."""

    rate: RateLimitResource
