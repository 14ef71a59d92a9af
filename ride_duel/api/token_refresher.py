"""
Access token refresh policy.

Strava access tokens live for six hours. Before fetching activities we make
sure the stored token is still valid for at least five more minutes, and
refresh it otherwise.
"""

import time
from typing import Optional

from .models import CredentialRecord, TokenGrant
from .strava_client import StravaAPIClient
from ..utils.logging_config import get_logger
from ..utils.error_handling import APIError, DatabaseError, RefreshFailedError

logger = get_logger(__name__)

EXPIRY_MARGIN_SECONDS = 300


class TokenRefresher:
    """Returns a usable access token for an athlete, refreshing it when needed."""

    def __init__(self, store, client: StravaAPIClient):
        """
        Args:
            store: Credential store with ``set(athlete_id, record)``
            client: Strava client with an open session and client credentials
        """
        self.store = store
        self.client = client

    async def ensure_valid_token(self, athlete_id: str, record: CredentialRecord) -> Optional[str]:
        """
        Return a valid access token for ``athlete_id``.

        A token expiring more than five minutes from now is returned as is.
        Otherwise the refresh token is exchanged and the new credentials are
        written to the store once. Returns ``None`` if the refresh fails; the
        store is left untouched in that case.
        """
        if not record.expires_within(time.time(), EXPIRY_MARGIN_SECONDS):
            return record.access_token

        logger.info(f"Access token for athlete {athlete_id} expires at {record.expires_at}, refreshing")

        try:
            grant = await self._refresh(athlete_id, record)
        except RefreshFailedError as e:
            logger.warning(str(e))
            return None

        new_record = grant.to_record()
        try:
            saved = self.store.set(athlete_id, new_record)
        except DatabaseError as e:
            logger.error(f"Refreshed token for athlete {athlete_id} could not be saved: {e}")
            saved = False

        if not saved:
            logger.warning(f"Using refreshed token for athlete {athlete_id} without persisting it")

        logger.info(f"Refreshed access token for athlete {athlete_id}, valid until {grant.expires_at}")
        return grant.access_token

    async def _refresh(self, athlete_id: str, record: CredentialRecord) -> TokenGrant:
        try:
            response = await self.client.refresh_access_token(record.refresh_token)
        except APIError as e:
            raise RefreshFailedError(athlete_id, "token endpoint unreachable", original_error=e)

        if not isinstance(response, TokenGrant):
            raise RefreshFailedError(athlete_id, response.message)

        return response
