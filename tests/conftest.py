"""
Shared fixtures for unit and integration tests.
"""

import time
from typing import Dict, List, Optional, Tuple

import pytest

from ride_duel.api.models import AthleteProfile, CredentialRecord, SlotStatus
from ride_duel.utils.config import Config, DatabaseConfig, ReportConfig, StravaConfig


class FakeCredentialStore:
    """In-memory stand-in for CredentialStore used by tests."""

    def __init__(self):
        self.records: Dict[str, CredentialRecord] = {}
        self.profiles: Dict[str, AthleteProfile] = {}
        self.slots: Dict[int, str] = {}
        self.set_calls: List[Tuple[str, CredentialRecord]] = []

    def add_athlete(self, athlete_id: str, name: str, record: CredentialRecord, slot: Optional[int] = None):
        self.records[athlete_id] = record
        self.profiles[athlete_id] = AthleteProfile(athlete_id=athlete_id, name=name,
                                                   profile=f"https://example.com/{athlete_id}.jpg")
        if slot:
            self.slots[slot] = athlete_id

    def get(self, athlete_id):
        return self.records.get(athlete_id)

    def set(self, athlete_id, record):
        self.set_calls.append((athlete_id, record))
        self.records[athlete_id] = record
        return True

    def get_profile(self, athlete_id):
        return self.profiles.get(athlete_id)

    def get_slots(self):
        return self.slots.get(1), self.slots.get(2)

    def get_slot_statuses(self):
        return [SlotStatus(slot=slot, name=self.profiles[athlete_id].name, profile=self.profiles[athlete_id].profile)
                for slot, athlete_id in sorted(self.slots.items())]

    def test_connection(self):
        return True


def ride(date: str, km: float, name: str = "Morning Ride", activity_type: str = "Ride",
         sport_type: Optional[str] = None) -> dict:
    """Raw Strava summary activity."""
    return {
        "id": abs(hash((date, km, name))) % 10 ** 10,
        "name": name,
        "type": activity_type,
        "sport_type": sport_type or activity_type,
        "start_date": f"{date}T07:00:00Z",
        "start_date_local": f"{date}T08:00:00Z",
        "distance": km * 1000
    }


@pytest.fixture
def fake_store():
    return FakeCredentialStore()


@pytest.fixture
def valid_record():
    return CredentialRecord(
        access_token="valid_access_token",
        refresh_token="valid_refresh_token",
        expires_at=int(time.time()) + 10000
    )


@pytest.fixture
def strava_config():
    return StravaConfig(client_id="12345", client_secret="test_client_secret")


@pytest.fixture
def test_config(strava_config):
    return Config(
        strava=strava_config,
        database=DatabaseConfig(
            host="localhost",
            port=3306,
            user="test_user",
            password="test_password",
            database="test_ride_duel"
        ),
        report=ReportConfig(cache_ttl=900, timeout_seconds=5)
    )


@pytest.fixture
def make_ride():
    return ride
