"""
pytest configuration for starcorn tests.

This file configures:
1. Test markers for different test types
2. Factories for repositories and API payloads
3. Mock aiohttp responses shaped like the GitHub REST API
"""

import pytest
from unittest.mock import AsyncMock

from starcorn.domain import Repository


def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line("markers", "unit: mark test as a unit test")
    config.addinivalue_line("markers", "integration: mark test as an integration test")
    config.addinivalue_line("markers", "slow: mark test as slow running")


@pytest.fixture
def make_repo():
    """Factory fixture building domain repositories with sensible defaults."""

    def _make(id=1, name="repo", description=None, topics=(), **kwargs):
        owner = kwargs.pop("owner", "octocat")
        return Repository(
            id=id,
            name=name,
            full_name=kwargs.pop("full_name", f"{owner}/{name}"),
            url=kwargs.pop("url", f"https://github.com/{owner}/{name}"),
            stars=kwargs.pop("stars", 10),
            owner=owner,
            description=description,
            topics=tuple(topics),
            **kwargs,
        )

    return _make


@pytest.fixture
def repo_payload():
    """Factory fixture building one starred-repository JSON object."""

    def _payload(id=1, name=None, private=False, **overrides):
        name = name or f"repo-{id}"
        data = {
            "id": id,
            "name": name,
            "full_name": f"octocat/{name}",
            "description": f"Description of {name}",
            "html_url": f"https://github.com/octocat/{name}",
            "stargazers_count": 42,
            "language": "Python",
            "topics": ["cli"],
            "owner": {
                "login": "octocat",
                "avatar_url": "https://avatars.githubusercontent.com/u/1",
            },
            "updated_at": "2024-03-01T12:00:00Z",
            "fork": False,
            "private": private,
        }
        data.update(overrides)
        return data

    return _payload


@pytest.fixture
def make_page(repo_payload):
    """Factory fixture building a full page of payloads with unique IDs."""

    def _page(page, size=30, private_ids=()):
        start = (page - 1) * size + 1
        return [
            repo_payload(id=i, private=i in private_ids)
            for i in range(start, start + size)
        ]

    return _page


def rate_limit_headers(remaining=4999, limit=5000, reset=1893456000):
    return {
        "X-RateLimit-Remaining": str(remaining),
        "X-RateLimit-Limit": str(limit),
        "X-RateLimit-Reset": str(reset),
    }


def link_header(last_page):
    base = "https://api.github.com/user/1/starred?per_page=30"
    return (
        f'<{base}&page=2>; rel="next", '
        f'<{base}&page={last_page}>; rel="last"'
    )


@pytest.fixture
def make_response():
    """
    Factory fixture building an async context manager that yields a mocked
    aiohttp response, as returned by ``session.get``.
    """

    def _response(status=200, body=None, last_page=None, remaining=4999, headers=None):
        mock_response = AsyncMock()
        mock_response.status = status
        mock_response.json = AsyncMock(return_value=body if body is not None else [])

        response_headers = rate_limit_headers(remaining=remaining)
        if last_page is not None:
            response_headers["Link"] = link_header(last_page)
        if headers is not None:
            response_headers = headers
        mock_response.headers = response_headers

        mock_context = AsyncMock()
        mock_context.__aenter__ = AsyncMock(return_value=mock_response)
        mock_context.__aexit__ = AsyncMock(return_value=None)
        return mock_context

    return _response
