"""
Strava API client with rate limiting and async support.

This module provides an async HTTP client for the two Strava endpoints the
duel needs: the OAuth token endpoint (refresh grant) and the athlete
activity listing, paginated one calendar year at a time.
"""

import asyncio
import time
from collections import deque
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

import aiohttp

from .models import ActivityRecord, TokenError, TokenResponse, is_qualifying_ride, parse_token_response
from ..utils.config import StravaConfig, STRAVA_API_BASE_URL, STRAVA_TOKEN_URL
from ..utils.logging_config import get_logger, PerformanceTimer
from ..utils.error_handling import (
    APIError, RateLimitError, AuthenticationError, FetchPageFailedError,
    UnexpectedPayloadError, ValidationError
)

logger = get_logger(__name__)

PAGE_SIZE = 200


def year_bounds(year: int) -> Tuple[int, int]:
    """Return (after, before) unix timestamps for local Jan 1 00:00:00 and Dec 31 23:59:59."""
    after = int(datetime(year, 1, 1).timestamp())
    before = int(datetime(year, 12, 31, 23, 59, 59).timestamp())
    return after, before


class StravaAPIClient:
    """
    Async Strava API client with rate limiting.

    Handles Strava's rate limits (100 requests per 15 minutes) and can either
    own its aiohttp session (async context manager) or borrow one from the
    caller so both duel participants share a connection pool.
    """

    def __init__(
        self,
        access_token: Optional[str] = None,
        strava_config: Optional[StravaConfig] = None,
        session: Optional[aiohttp.ClientSession] = None
    ):
        """
        Initialize the Strava API client.

        Args:
            access_token: Bearer token for the athlete, if already known
            strava_config: Client credentials and endpoint URLs
            session: Existing aiohttp session to reuse
        """
        self.access_token = access_token
        self.strava_config = strava_config
        self.base_url = strava_config.api_base_url if strava_config else STRAVA_API_BASE_URL
        self.token_url = strava_config.token_url if strava_config else STRAVA_TOKEN_URL
        self.session = session
        self._owns_session = False

        # Rate limiting (100 requests per 15 minutes)
        self.rate_limit_requests = 100
        self.rate_limit_window = 900
        self.request_times: deque = deque()

    async def __aenter__(self) -> 'StravaAPIClient':
        if self.session is None:
            self.session = aiohttp.ClientSession()
            self._owns_session = True
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        if self.session and self._owns_session:
            await self.session.close()
            self.session = None
            self._owns_session = False

    def _get_headers(self) -> Dict[str, str]:
        return {
            'Authorization': f'Bearer {self.access_token}',
            'Content-Type': 'application/json'
        }

    async def _check_rate_limit(self) -> None:
        """
        Check and enforce rate limiting.

        Strava allows 100 requests per 15 minutes. Request times are tracked in
        a sliding window and we sleep when the window is full.
        """
        current_time = time.time()

        while self.request_times and current_time - self.request_times[0] > self.rate_limit_window:
            self.request_times.popleft()

        if len(self.request_times) >= self.rate_limit_requests:
            sleep_time = self.rate_limit_window - (current_time - self.request_times[0])
            if sleep_time > 0:
                logger.warning(f"Rate limit reached, sleeping for {sleep_time:.1f} seconds")
                await asyncio.sleep(sleep_time)

        self.request_times.append(current_time)

    async def _make_request(
        self,
        method: str,
        endpoint: str,
        params: Optional[Dict[str, Any]] = None,
        data: Optional[Dict[str, Any]] = None
    ) -> Any:
        """
        Make an HTTP request to the Strava API.

        Args:
            method: HTTP method (GET or POST)
            endpoint: API endpoint (e.g., '/athlete/activities')
            params: Query parameters
            data: JSON request body

        Returns:
            Decoded JSON response

        Raises:
            APIError: On transport failures and non-success status codes
        """
        if not self.session:
            raise APIError("Client session not initialized. Use async context manager.")

        await self._check_rate_limit()

        url = f"{self.base_url}{endpoint}"
        headers = self._get_headers()

        try:
            if method.upper() == 'GET':
                async with self.session.get(url, headers=headers, params=params) as response:
                    return await self._handle_response(response, endpoint)
            elif method.upper() == 'POST':
                async with self.session.post(url, headers=headers, json=data) as response:
                    return await self._handle_response(response, endpoint)
            else:
                raise ValueError(f"Unsupported HTTP method: {method}")

        except APIError:
            raise
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.error(f"Request failed for {method} {endpoint}: {e}")
            raise APIError(f"Request failed for {method} {endpoint}", endpoint=endpoint, original_error=e)

    async def _handle_response(self, response: aiohttp.ClientResponse, endpoint: str) -> Any:
        """
        Map a response to decoded JSON or to the matching APIError.

        Args:
            response: aiohttp response object
            endpoint: Endpoint used for error context

        Returns:
            JSON response data
        """
        if response.status in (200, 201):
            try:
                return await response.json()
            except (aiohttp.ContentTypeError, ValueError) as e:
                raise UnexpectedPayloadError(f"Response from {endpoint} is not JSON: {e}", endpoint=endpoint)
        elif response.status == 401:
            raise AuthenticationError("Authentication failed - invalid or expired token")
        elif response.status == 403:
            raise APIError("Access forbidden - insufficient permissions", status_code=403, endpoint=endpoint)
        elif response.status == 429:
            logger.warning("Rate limited by Strava API")
            raise RateLimitError("API rate limit exceeded", retry_after=900)
        else:
            raise APIError(f"HTTP error {response.status}", status_code=response.status, endpoint=endpoint)

    async def get_activities(
        self,
        per_page: int = PAGE_SIZE,
        page: int = 1,
        before: Optional[int] = None,
        after: Optional[int] = None
    ) -> List[Dict[str, Any]]:
        """
        Get one page of activities for the athlete.

        Args:
            per_page: Number of activities per page (max 200)
            page: Page number, starting at 1
            before: Unix timestamp to get activities before
            after: Unix timestamp to get activities after

        Returns:
            List of raw activity objects

        Raises:
            APIError: If the request fails
            UnexpectedPayloadError: If the response is not a list
        """
        params = {
            'per_page': min(per_page, PAGE_SIZE),
            'page': page
        }

        if before:
            params['before'] = before
        if after:
            params['after'] = after

        result = await self._make_request('GET', '/athlete/activities', params=params)

        if not isinstance(result, list):
            raise UnexpectedPayloadError(
                f"Expected a list of activities, got {type(result).__name__}",
                endpoint='/athlete/activities'
            )

        return result

    async def fetch_year_activities(self, year: int) -> List[ActivityRecord]:
        """
        Fetch every qualifying ride that started within ``year``.

        Pages of 200 are requested in order until a page comes back empty or
        short. If a page request fails, pagination stops and the rides
        accumulated from earlier pages are returned; the failure is logged
        and never retried.

        Args:
            year: Calendar year to fetch

        Returns:
            ActivityRecords in the order Strava returned them
        """
        if not self.access_token:
            logger.info(f"No access token available, skipping activity fetch for {year}")
            return []

        after, before = year_bounds(year)
        rides: List[ActivityRecord] = []
        page = 1

        with PerformanceTimer(f"Fetch {year} activities"):
            while True:
                try:
                    page_items = await self.get_activities(
                        per_page=PAGE_SIZE,
                        page=page,
                        before=before,
                        after=after
                    )
                except APIError as e:
                    failure = FetchPageFailedError(page, original_error=e)
                    logger.warning(f"{failure}; keeping {len(rides)} rides from earlier pages")
                    break

                if not page_items:
                    break

                rides.extend(self._project_rides(page_items))

                if len(page_items) < PAGE_SIZE:
                    break

                page += 1

        logger.info(f"Fetched {len(rides)} rides for {year} across {page} page(s)")
        return rides

    @staticmethod
    def _project_rides(page_items: List[Any]) -> List[ActivityRecord]:
        rides = []
        for item in page_items:
            if not isinstance(item, dict) or not is_qualifying_ride(item):
                continue
            try:
                rides.append(ActivityRecord.from_strava_api(item))
            except ValidationError as e:
                logger.warning(f"Skipping activity {item.get('id', 'unknown')}: {e}")
        return rides

    async def refresh_access_token(self, refresh_token: str) -> TokenResponse:
        """
        Exchange a refresh token for a new token triple.

        Args:
            refresh_token: Stored refresh token for the athlete

        Returns:
            TokenGrant on success, TokenError when Strava rejects the request
            or answers with an unexpected payload

        Raises:
            APIError: On transport failures
        """
        if not self.session:
            raise APIError("Client session not initialized")
        if not self.strava_config:
            raise APIError("Strava client credentials are not configured")

        data = {
            'client_id': self.strava_config.client_id,
            'client_secret': self.strava_config.client_secret,
            'refresh_token': refresh_token,
            'grant_type': 'refresh_token'
        }

        await self._check_rate_limit()

        try:
            async with self.session.post(self.token_url, json=data) as response:
                try:
                    payload = await response.json()
                except (aiohttp.ContentTypeError, ValueError):
                    payload = None

                if response.status != 200:
                    message = payload.get('message') if isinstance(payload, dict) else None
                    return TokenError(message=message or f"Token refresh failed with status {response.status}",
                                      errors=payload.get('errors', []) if isinstance(payload, dict) else [])

                return parse_token_response(payload)

        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise APIError("Error refreshing token", endpoint=self.token_url, original_error=e)



async def fetch_year_activities(
    access_token: Optional[str],
    year: int,
    session: Optional[aiohttp.ClientSession] = None,
    strava_config: Optional[StravaConfig] = None
) -> List[ActivityRecord]:
    """Fetch one athlete's rides for ``year``; ``None`` as token yields an empty list."""
    if not access_token:
        return []

    async with StravaAPIClient(access_token, strava_config=strava_config, session=session) as client:
        return await client.fetch_year_activities(year)
