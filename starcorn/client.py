import aiohttp
import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, List, Optional
from urllib.parse import quote
from tenacity import (
    retry,
    stop_after_attempt,
    wait_exponential,
    retry_if_exception_type,
    before_sleep_log,
)

from .config import settings
from .domain import (
    Repository,
    FetchProgress,
    FetchResult,
    RateLimitInfo,
    parse_link_header,
    parse_rate_limit_headers,
    public_repositories,
    validate_username,
    ApiError,
    RateLimitError,
    AuthenticationError,
    UserNotFoundError,
    AccessDeniedError,
    FetchCancelledError,
)
from .models import RateLimitPayload

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[FetchProgress], Any]

USER_NOT_FOUND_MESSAGE = "Oops! We couldn't find that user. Double-check the username?"
ACCESS_DENIED_MESSAGE = "Access denied. The user's stars may be private."
BAD_TOKEN_MESSAGE = "GitHub rejected the token. Check that it is valid and has not expired."


@dataclass
class _FetchState:
    """Accumulator owned by a single fetch_starred run."""

    repos: List[Repository] = field(default_factory=list)
    current_page: int = 0
    total_pages: int = 1
    estimated_total: Optional[int] = None
    rate_limit: Optional[RateLimitInfo] = None

    @property
    def fetched_count(self) -> int:
        return len(self.repos)

    def progress(self) -> FetchProgress:
        return FetchProgress(
            current_page=self.current_page,
            total_pages=self.total_pages,
            fetched_count=self.fetched_count,
            estimated_total=self.estimated_total or 0,
        )

    def result(
        self,
        is_partial: bool = False,
        error: Optional[str] = None,
        requires_token: bool = False,
    ) -> FetchResult:
        return FetchResult(
            repos=list(self.repos),
            is_partial=is_partial,
            error=error,
            requires_token=requires_token,
            estimated_total=self.estimated_total,
            rate_limit=self.rate_limit,
        )


class GitHubClient:
    """
    GitHub REST client that walks a user's starred repositories.

    Pages are requested strictly one at a time. Every expected failure
    (unknown user, quota exhaustion, access restriction, transport loss,
    cancellation) is reduced to a FetchResult instead of an exception, so
    callers always get whatever data was gathered before the failure.
    """

    def __init__(self, token: Optional[str] = settings.github_token):
        self.base_url = settings.github_api_url.rstrip("/")
        self.per_page = settings.per_page
        self.headers = {
            "Accept": "application/vnd.github.v3+json",
            "User-Agent": settings.user_agent,
        }
        if token:
            self.headers["Authorization"] = f"Bearer {token}"
        self.has_token = bool(token)
        self._connector = None
        self._session = None
        logger.info(
            f"✅ GitHub client initialized "
            f"({'authenticated' if self.has_token else 'unauthenticated'})"
        )

    async def __aenter__(self):
        """Async context manager entry."""
        self._connector = aiohttp.TCPConnector(
            limit=10,
            keepalive_timeout=30,
            enable_cleanup_closed=True,
        )
        self._session = aiohttp.ClientSession(
            connector=self._connector,
            headers=self.headers,
            timeout=aiohttp.ClientTimeout(total=settings.request_timeout),
        )
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        if self._session:
            await self._session.close()
        if self._connector:
            await self._connector.close()

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=10),
        retry=retry_if_exception_type((aiohttp.ClientError, asyncio.TimeoutError)),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )
    async def check_rate_limit(self) -> RateLimitInfo:
        """
        Probe the current quota via ``GET /rate_limit``.

        The probe does not count against the quota, so transient transport
        errors are retried with exponential backoff.
        """
        if not self._session:
            raise RuntimeError("Client must be used as async context manager")

        async with self._session.get(f"{self.base_url}/rate_limit") as resp:
            if resp.status == 401:
                raise AuthenticationError(BAD_TOKEN_MESSAGE, status=401)
            if resp.status != 200:
                raise ApiError(f"GitHub API error: {resp.status}", status=resp.status)
            data = await resp.json()

        rate = RateLimitPayload.model_validate(data).rate
        info = RateLimitInfo(
            remaining=rate.remaining,
            limit=rate.limit,
            reset_at=datetime.fromtimestamp(rate.reset, tz=timezone.utc),
        )
        logger.info(f"🚦 Rate limit remaining: {info.remaining}/{info.limit}")
        return info

    async def fetch_starred(
        self,
        username: str,
        on_progress: Optional[ProgressCallback] = None,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> FetchResult:
        """
        Fetch every public repository starred by ``username``.

        ``on_progress`` is called synchronously after each page is
        integrated. ``cancel_event`` is checked before each page request
        and also aborts a request that is still in flight.
        """
        validation_error = validate_username(username)
        if validation_error:
            logger.warning(f"⚠️ Refusing to fetch invalid username: {validation_error}")
            return FetchResult(error=validation_error)

        logger.info(f"🚀 Fetching stars for {username}")
        state = _FetchState()
        page = 1

        try:
            while page <= state.total_pages:
                if cancel_event is not None and cancel_event.is_set():
                    raise FetchCancelledError()

                repos = await self._fetch_page_or_cancel(
                    username, page, state, cancel_event
                )
                state.repos.extend(repos)
                state.current_page = page
                logger.info(
                    f"📄 Page {page}/{state.total_pages}: "
                    f"{len(repos)} public repositories ({state.fetched_count} total)"
                )
                if on_progress is not None:
                    on_progress(state.progress())

                if page == 1 and self._needs_token(state):
                    logger.warning(
                        f"⚠️ ~{state.estimated_total} stars without a token, "
                        f"stopping after page 1"
                    )
                    return state.result(
                        is_partial=True,
                        error=(
                            f"This user has ~{state.estimated_total} stars. "
                            f"Add a token to fetch them all."
                        ),
                        requires_token=True,
                    )
                page += 1

        except FetchCancelledError:
            logger.warning(f"🛑 Fetch cancelled after {state.fetched_count} stars")
            return state.result(
                is_partial=True,
                error=_with_count("Fetch cancelled.", state, "Fetch cancelled."),
            )
        except UserNotFoundError:
            logger.warning(f"⚠️ User not found: {username}")
            return state.result(error=USER_NOT_FOUND_MESSAGE)
        except AuthenticationError:
            logger.warning("⚠️ GitHub rejected the supplied token")
            return state.result(
                is_partial=bool(state.repos),
                error=BAD_TOKEN_MESSAGE,
                requires_token=True,
            )
        except RateLimitError:
            logger.warning(f"⏱️ Rate limit exhausted on page {page}")
            if page == 1:
                message = "Rate limit exceeded. Add a GitHub token to continue, or wait a bit."
            else:
                message = (
                    f"Rate limit hit after {state.fetched_count} stars. "
                    f"Add a token to continue."
                )
            return state.result(
                is_partial=bool(state.repos), error=message, requires_token=True
            )
        except AccessDeniedError:
            logger.warning(f"⚠️ Access denied on page {page}")
            return state.result(
                is_partial=bool(state.repos), error=ACCESS_DENIED_MESSAGE
            )
        except ApiError as e:
            logger.error(f"❌ Error on page {page}: {e}")
            if state.repos:
                message = (
                    f"Error on page {page}. "
                    f"Showing {state.fetched_count} stars fetched so far."
                )
            else:
                message = f"Error on page {page}: {e}"
            return state.result(is_partial=bool(state.repos), error=message)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.warning(f"🔁 Network error on page {page}: {e!r}")
            return state.result(
                is_partial=bool(state.repos),
                error=_with_count(
                    "Connection lost.",
                    state,
                    "Connection lost. Check your internet and try again.",
                ),
            )

        logger.info(
            f"🎉 Fetched {state.fetched_count} starred repositories "
            f"across {state.total_pages} page(s)"
        )
        return state.result()

    def _needs_token(self, state: _FetchState) -> bool:
        return (
            state.total_pages > 1
            and not self.has_token
            and (state.estimated_total or 0) > settings.unauthenticated_star_limit
        )

    async def _fetch_page_or_cancel(
        self,
        username: str,
        page: int,
        state: _FetchState,
        cancel_event: Optional[asyncio.Event],
    ) -> List[Repository]:
        """Run one page request, abandoning it if ``cancel_event`` fires first."""
        if cancel_event is None:
            return await self._fetch_page(username, page, state)

        request = asyncio.ensure_future(self._fetch_page(username, page, state))
        cancelled = asyncio.ensure_future(cancel_event.wait())
        try:
            done, _ = await asyncio.wait(
                {request, cancelled}, return_when=asyncio.FIRST_COMPLETED
            )
        finally:
            cancelled.cancel()
            if not request.done():
                request.cancel()

        if request in done:
            return request.result()
        await asyncio.gather(request, return_exceptions=True)
        raise FetchCancelledError()

    async def _fetch_page(
        self, username: str, page: int, state: _FetchState
    ) -> List[Repository]:
        """
        Request one page of starred repositories.

        Updates the rate-limit snapshot from every response and, on the
        first page, the total page count. Raises a domain exception for
        every non-success status.
        """
        if not self._session:
            raise RuntimeError("Client must be used as async context manager")

        url = f"{self.base_url}/users/{quote(username)}/starred"
        params = {"per_page": self.per_page, "page": page}

        async with self._session.get(url, params=params) as resp:
            rate_limit = parse_rate_limit_headers(resp.headers)
            if rate_limit is not None:
                state.rate_limit = rate_limit
                logger.debug(
                    f"🚦 Rate limit remaining: {rate_limit.remaining}/{rate_limit.limit}"
                )

            if resp.status == 401:
                raise AuthenticationError(BAD_TOKEN_MESSAGE, status=401)
            if resp.status == 404 and page == 1:
                raise UserNotFoundError(USER_NOT_FOUND_MESSAGE, status=404)
            quota_exhausted = resp.headers.get("X-RateLimit-Remaining") == "0"
            if resp.status == 429 or (resp.status == 403 and quota_exhausted):
                raise RateLimitError("Rate limit exceeded", status=resp.status)
            if resp.status == 403:
                raise AccessDeniedError(ACCESS_DENIED_MESSAGE, status=resp.status)
            if resp.status != 200:
                raise ApiError(f"GitHub API error: {resp.status}", status=resp.status)

            if page == 1:
                state.total_pages = parse_link_header(resp.headers.get("Link"))
                state.estimated_total = state.total_pages * self.per_page

            try:
                data = await resp.json()
            except (aiohttp.ContentTypeError, ValueError) as e:
                raise ApiError("Unexpected response body", status=resp.status) from e

        if not isinstance(data, list):
            raise ApiError("Unexpected response body", status=200)
        try:
            return public_repositories(data)
        except ValueError as e:
            raise ApiError(str(e), status=200) from e


def _with_count(prefix: str, state: _FetchState, empty_message: str) -> str:
    if state.repos:
        return f"{prefix} Showing {state.fetched_count} stars fetched so far."
    return empty_message


async def fetch_starred(
    username: str,
    token: Optional[str],
    on_progress: Optional[ProgressCallback] = None,
    cancel_event: Optional[asyncio.Event] = None,
) -> FetchResult:
    """Fetch ``username``'s stars with a short-lived client."""
    async with GitHubClient(token=token) as client:
        return await client.fetch_starred(username, on_progress, cancel_event)
