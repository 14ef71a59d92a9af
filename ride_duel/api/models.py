"""
Data models for Strava API responses and duel reports.

This module provides dataclass-based models for the credentials we hold per
athlete, the minimal activity records we keep from Strava, and the report
payload served to the dashboard.
"""

import math
from dataclasses import dataclass, field
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, List, Union

from ..utils.error_handling import ValidationError, validate_required_fields

QUALIFYING_TYPES = frozenset({'Ride', 'VirtualRide'})
QUALIFYING_SPORT_TYPES = frozenset({'Ride'})

CENT = Decimal('0.01')


def round_km(km: float) -> float:
    """Round to 2 decimals with exact ties going up (10.125 -> 10.13)."""
    return float(Decimal(km).quantize(CENT, rounding=ROUND_HALF_UP))


@dataclass(frozen=True)
class CredentialRecord:
    """OAuth tokens for one athlete."""
    access_token: str
    refresh_token: str
    expires_at: int  # unix seconds

    def expires_within(self, now: float, margin: int = 300) -> bool:
        """True if the access token is expired or expires within ``margin`` seconds."""
        return not self.expires_at > now + margin


@dataclass(frozen=True)
class AthleteProfile:
    """Display details stored next to an athlete's credentials."""
    athlete_id: str
    name: str = ''
    profile: str = ''


@dataclass(frozen=True)
class TokenGrant:
    """Successful response from the token endpoint."""
    access_token: str
    refresh_token: str
    expires_at: int

    def to_record(self) -> CredentialRecord:
        return CredentialRecord(
            access_token=self.access_token,
            refresh_token=self.refresh_token,
            expires_at=self.expires_at
        )


@dataclass(frozen=True)
class TokenError:
    """Error-shaped response from the token endpoint."""
    message: str
    errors: List[Any] = field(default_factory=list)


TokenResponse = Union[TokenGrant, TokenError]


def parse_token_response(data: Any) -> TokenResponse:
    """
    Classify a token endpoint payload.

    Strava answers a failed refresh with ``{"message": ..., "errors": [...]}``
    and a successful one with the new token triple. Anything without a usable
    ``access_token`` is reported as a ``TokenError``.
    """
    if not isinstance(data, dict):
        return TokenError(message=f"Token response is not an object: {type(data).__name__}")

    try:
        validate_required_fields(data, ['access_token', 'refresh_token', 'expires_at'], context="token response")
        expires_at = int(data['expires_at'])
    except ValidationError as e:
        return TokenError(message=data.get('message') or e.message, errors=data.get('errors') or [])
    except (ValueError, TypeError):
        return TokenError(message=f"Invalid expires_at in token response: {data.get('expires_at')!r}")

    if not isinstance(data['access_token'], str) or not data['access_token']:
        return TokenError(message="Token response has an empty access_token")

    return TokenGrant(
        access_token=data['access_token'],
        refresh_token=str(data['refresh_token']),
        expires_at=expires_at
    )


def is_qualifying_ride(data: Dict[str, Any]) -> bool:
    """Check whether a raw Strava activity counts as a ride."""
    activity_type = data.get('type')
    sport_type = data.get('sport_type')
    return (isinstance(activity_type, str) and activity_type in QUALIFYING_TYPES) or \
        (isinstance(sport_type, str) and sport_type in QUALIFYING_SPORT_TYPES)


@dataclass(frozen=True)
class ActivityRecord:
    """A qualifying ride reduced to what the dashboard needs."""
    date: str  # YYYY-MM-DD, local to the activity
    distance_km: float
    label: str

    @classmethod
    def from_strava_api(cls, data: Dict[str, Any]) -> 'ActivityRecord':
        """
        Create an ActivityRecord from a Strava summary activity.

        Args:
            data: Raw API response item

        Returns:
            ActivityRecord with the local start day and distance in km

        Raises:
            ValidationError: If the payload lacks a start date or distance
        """
        validate_required_fields(data, ['start_date_local', 'distance'], context="activity")

        start_date_local = str(data['start_date_local'])
        date = start_date_local.split('T')[0]
        if len(date) != 10:
            raise ValidationError(f"Invalid start_date_local: {start_date_local}", field='start_date_local',
                                  value=start_date_local)

        try:
            distance_m = float(data['distance'])
        except (ValueError, TypeError):
            raise ValidationError("Distance must be numeric", field='distance', value=data['distance'])
        if not math.isfinite(distance_m):
            raise ValidationError("Distance must be finite", field='distance', value=data['distance'])

        return cls(
            date=date,
            distance_km=round_km(max(distance_m, 0.0) / 1000),
            label=data.get('name') or ''
        )

    def to_dict(self) -> Dict[str, Any]:
        return {'date': self.date, 'km': self.distance_km, 'name': self.label}


@dataclass(frozen=True)
class DailyTotal:
    date: str
    cumulative_km: float

    def to_dict(self) -> Dict[str, Any]:
        return {'date': self.date, 'km': self.cumulative_km}


@dataclass(frozen=True)
class MonthlyTotal:
    month: str  # YYYY-MM
    total_km: float

    def to_dict(self) -> Dict[str, Any]:
        return {'month': self.month, 'km': self.total_km}


@dataclass
class ParticipantReport:
    """Leaderboard entry and chart series for one athlete."""
    athlete_id: str
    name: str
    profile: str
    total_km: float
    cumulative: List[DailyTotal]
    monthly: List[MonthlyTotal]
    activities: List[ActivityRecord]

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.athlete_id,
            'name': self.name,
            'profile': self.profile,
            'totalKm': self.total_km,
            'cumulative': [point.to_dict() for point in self.cumulative],
            'monthly': [month.to_dict() for month in self.monthly],
            'activities': [activity.to_dict() for activity in self.activities]
        }


@dataclass
class DuelReport:
    """Report for two connected athletes."""
    year: int
    players: List[ParticipantReport]
    status: str = 'ready'

    def to_dict(self) -> Dict[str, Any]:
        return {
            'status': self.status,
            'year': self.year,
            'players': [player.to_dict() for player in self.players]
        }


@dataclass
class IncompleteReport:
    """Returned while fewer than two athletes are connected."""
    connected_count: int
    status: str = 'incomplete'

    def to_dict(self) -> Dict[str, Any]:
        return {
            'status': self.status,
            'connectedCount': self.connected_count,
            'players': []
        }


ReportResult = Union[DuelReport, IncompleteReport]


@dataclass(frozen=True)
class SlotStatus:
    """One filled player slot, as shown on the connect screen."""
    slot: int
    name: str
    profile: str

    def to_dict(self) -> Dict[str, Any]:
        return {'name': self.name, 'profile': self.profile, 'slot': self.slot}
