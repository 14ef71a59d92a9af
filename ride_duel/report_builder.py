"""
Duel report assembly.

Runs the refresh -> fetch -> rollup pipeline for both players concurrently
and merges the results into the payload served to the dashboard.
"""

import asyncio
from datetime import date
from typing import Optional

import aiohttp

from .api.models import (
    AthleteProfile, CredentialRecord, DuelReport, IncompleteReport, ParticipantReport, ReportResult
)
from .api.strava_client import StravaAPIClient, fetch_year_activities
from .api.token_refresher import TokenRefresher
from .aggregation.rollups import build_cumulative, build_monthly, total_km
from .utils.config import StravaConfig
from .utils.logging_config import get_logger, PerformanceTimer
from .utils.error_handling import CredentialMissingError

logger = get_logger(__name__)


class DuelReportBuilder:
    """Builds the two-player report for a year."""

    def __init__(self, strava_config: StravaConfig, store):
        """
        Args:
            strava_config: Client credentials and endpoints
            store: Credential store (see ``CredentialStore``)
        """
        self.strava_config = strava_config
        self.store = store

    async def build(self, year: int, today: Optional[date] = None) -> ReportResult:
        """Build the report for whoever holds the two player slots."""
        player1_id, player2_id = self.store.get_slots()

        if not player1_id or not player2_id:
            connected = sum(1 for athlete_id in (player1_id, player2_id)
                            if athlete_id and self.store.get(athlete_id) is not None)
            logger.info(f"Report for {year} incomplete: {connected} player(s) connected")
            return IncompleteReport(connected_count=connected)

        return await self.build_for(player1_id, player2_id, year, today=today)

    async def build_for(self, first_id: str, second_id: str, year: int,
                        today: Optional[date] = None) -> ReportResult:
        """
        Build the report for two given athletes, first athlete first.

        Returns an IncompleteReport if either athlete has no stored credentials.
        """
        records = []
        for athlete_id in (first_id, second_id):
            try:
                records.append(self._load_record(athlete_id))
            except CredentialMissingError as e:
                logger.info(f"{e.message}, report for {year} is incomplete")

        if len(records) < 2:
            return IncompleteReport(connected_count=len(records))

        with PerformanceTimer(f"Build {year} duel report"):
            async with aiohttp.ClientSession() as session:
                players = await asyncio.gather(
                    self._build_participant(first_id, records[0], year, session, today),
                    self._build_participant(second_id, records[1], year, session, today)
                )

        return DuelReport(year=year, players=list(players))

    def _load_record(self, athlete_id: str) -> CredentialRecord:
        record = self.store.get(athlete_id)
        if record is None:
            raise CredentialMissingError(athlete_id)
        return record

    async def _build_participant(self, athlete_id: str, record: CredentialRecord, year: int,
                                 session: aiohttp.ClientSession,
                                 today: Optional[date] = None) -> ParticipantReport:
        profile = self.store.get_profile(athlete_id) or AthleteProfile(athlete_id=athlete_id)

        client = StravaAPIClient(strava_config=self.strava_config, session=session)
        access_token = await TokenRefresher(self.store, client).ensure_valid_token(athlete_id, record)

        if access_token is None:
            logger.warning(f"No valid token for athlete {athlete_id}, reporting zero activities")

        activities = await fetch_year_activities(access_token, year, session=session,
                                                 strava_config=self.strava_config)

        return ParticipantReport(
            athlete_id=athlete_id,
            name=profile.name,
            profile=profile.profile,
            total_km=total_km(activities),
            cumulative=build_cumulative(activities, year, today=today),
            monthly=build_monthly(activities),
            activities=activities
        )

