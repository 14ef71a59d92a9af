"""
MySQL-backed credential store.

Holds each connected athlete's OAuth tokens and display details, and the
two-row player slot table that decides who is player 1 and player 2.

Expected tables:

    athletes(athlete_id VARCHAR(32) PRIMARY KEY, name, profile,
             access_token, refresh_token, expires_at BIGINT, updated_at)
    player_slots(slot TINYINT PRIMARY KEY, athlete_id VARCHAR(32) UNIQUE)
"""

from contextlib import contextmanager
from typing import Any, List, Optional, Tuple

import mysql.connector
from mysql.connector import Error

from ..api.models import AthleteProfile, CredentialRecord, SlotStatus
from ..utils.config import DatabaseConfig
from ..utils.logging_config import get_logger
from ..utils.error_handling import DatabaseError, handle_errors

logger = get_logger(__name__)

SLOTS = (1, 2)


class CredentialStore:
    """
    Reads and writes athlete credentials and slot assignments.

    Every call opens its own short-lived connection with autocommit, so each
    statement is atomic on its own row.
    """

    def __init__(self, config: DatabaseConfig):
        """
        Initialize the credential store.

        Args:
            config: Database configuration
        """
        self.config = config
        self._connection_config = {
            'host': config.host,
            'port': config.port,
            'user': config.user,
            'password': config.password,
            'database': config.database,
            'charset': 'utf8mb4',
            'autocommit': True,
            'use_pure': True,
            'raise_on_warnings': False
        }

    def get_connection(self) -> mysql.connector.MySQLConnection:
        """
        Get a database connection.

        Raises:
            DatabaseError: If connection fails
        """
        try:
            return mysql.connector.connect(**self._connection_config)
        except Error as e:
            raise DatabaseError(f"Database connection failed: {e}", operation="connect", original_error=e)

    @contextmanager
    def get_cursor(self):
        """
        Context manager for database operations.

        Yields:
            Database cursor with automatic cleanup
        """
        connection = None
        cursor = None
        try:
            connection = self.get_connection()
            cursor = connection.cursor(buffered=True)
            yield cursor
        finally:
            if cursor:
                try:
                    cursor.close()
                except Error as e:
                    logger.debug(f"Error closing cursor: {e}")
            if connection:
                try:
                    connection.close()
                except Error as e:
                    logger.debug(f"Error closing connection: {e}")

    def execute_query(
        self,
        query: str,
        params: Optional[Tuple] = None,
        fetch_one: bool = False,
        fetch_all: bool = False
    ) -> Any:
        """
        Execute a query with automatic connection management.

        Args:
            query: SQL query string
            params: Query parameters
            fetch_one: Whether to fetch one result
            fetch_all: Whether to fetch all results

        Returns:
            Query result or row count
        """
        with self.get_cursor() as cursor:
            cursor.execute(query, params or ())

            if fetch_one:
                return cursor.fetchone()
            elif fetch_all:
                return cursor.fetchall()
            else:
                return cursor.rowcount

    @handle_errors(default_return=False, log_errors=True)
    def test_connection(self) -> bool:
        """Return True if the database answers a trivial query."""
        try:
            return self.execute_query('SELECT 1', fetch_one=True) is not None
        except Error as e:
            raise DatabaseError(f"Database connection test failed: {e}", operation="test_connection", original_error=e)

    def get(self, athlete_id: str) -> Optional[CredentialRecord]:
        """
        Get the stored credentials for an athlete.

        Returns:
            CredentialRecord, or None if the athlete has never connected
        """
        try:
            row = self.execute_query(
                "SELECT access_token, refresh_token, expires_at FROM athletes WHERE athlete_id = %s",
                params=(str(athlete_id),),
                fetch_one=True
            )
        except Error as e:
            raise DatabaseError(f"Error reading credentials: {e}", operation="get", original_error=e)

        if not row or not row[0] or not row[1]:
            return None

        return CredentialRecord(access_token=row[0], refresh_token=row[1], expires_at=int(row[2] or 0))

    def set(self, athlete_id: str, record: CredentialRecord) -> bool:
        """
        Overwrite the token triple for an athlete.

        Returns:
            True once the row has been written

        Raises:
            DatabaseError: If the write fails
        """
        try:
            self.execute_query(
                '''
                INSERT INTO athletes (athlete_id, access_token, refresh_token, expires_at, updated_at)
                VALUES (%s, %s, %s, %s, NOW())
                ON DUPLICATE KEY UPDATE
                    access_token = VALUES(access_token),
                    refresh_token = VALUES(refresh_token),
                    expires_at = VALUES(expires_at),
                    updated_at = NOW()
                ''',
                params=(str(athlete_id), record.access_token, record.refresh_token, record.expires_at)
            )
            return True
        except Error as e:
            raise DatabaseError(f"Error saving credentials: {e}", operation="set", original_error=e)

    def get_profile(self, athlete_id: str) -> Optional[AthleteProfile]:
        """Get the display name and avatar URL for an athlete."""
        try:
            row = self.execute_query(
                "SELECT name, profile FROM athletes WHERE athlete_id = %s",
                params=(str(athlete_id),),
                fetch_one=True
            )
        except Error as e:
            raise DatabaseError(f"Error reading athlete profile: {e}", operation="get_profile", original_error=e)

        if not row:
            return None

        return AthleteProfile(athlete_id=str(athlete_id), name=row[0] or '', profile=row[1] or '')

    def save_athlete(self, profile: AthleteProfile, record: CredentialRecord) -> bool:
        """Insert or update an athlete after they have authorized the app."""
        try:
            self.execute_query(
                '''
                INSERT INTO athletes (athlete_id, name, profile, access_token, refresh_token, expires_at, updated_at)
                VALUES (%s, %s, %s, %s, %s, %s, NOW())
                ON DUPLICATE KEY UPDATE
                    name = VALUES(name),
                    profile = VALUES(profile),
                    access_token = VALUES(access_token),
                    refresh_token = VALUES(refresh_token),
                    expires_at = VALUES(expires_at),
                    updated_at = NOW()
                ''',
                params=(profile.athlete_id, profile.name, profile.profile,
                        record.access_token, record.refresh_token, record.expires_at)
            )
            logger.info(f"Saved athlete {profile.athlete_id}")
            return True
        except Error as e:
            raise DatabaseError(f"Error saving athlete: {e}", operation="save_athlete", original_error=e)

    def get_slots(self) -> Tuple[Optional[str], Optional[str]]:
        """Return the athlete IDs holding slot 1 and slot 2 (None for an open slot)."""
        try:
            rows = self.execute_query(
                "SELECT slot, athlete_id FROM player_slots WHERE slot IN (%s, %s)",
                params=SLOTS,
                fetch_all=True
            )
        except Error as e:
            raise DatabaseError(f"Error reading player slots: {e}", operation="get_slots", original_error=e)

        assigned = {int(slot): str(athlete_id) for slot, athlete_id in rows or []}
        return assigned.get(1), assigned.get(2)

    def claim_slot(self, athlete_id: str) -> Optional[int]:
        """
        Assign the athlete to the first open slot.

        Each attempt is a single ``INSERT IGNORE``: the slot primary key lets
        only one writer take a slot, and the unique athlete column keeps one
        athlete from taking both. An athlete already holding a slot keeps it.

        Returns:
            The slot number held by the athlete, or None if both slots are taken
        """
        athlete_id = str(athlete_id)
        try:
            for slot in SLOTS:
                inserted = self.execute_query(
                    "INSERT IGNORE INTO player_slots (slot, athlete_id) VALUES (%s, %s)",
                    params=(slot, athlete_id)
                )
                if inserted:
                    logger.info(f"Athlete {athlete_id} claimed slot {slot}")
                    return slot

                row = self.execute_query(
                    "SELECT slot FROM player_slots WHERE athlete_id = %s",
                    params=(athlete_id,),
                    fetch_one=True
                )
                if row:
                    return int(row[0])
        except Error as e:
            raise DatabaseError(f"Error claiming player slot: {e}", operation="claim_slot", original_error=e)

        logger.warning(f"Both player slots are taken, athlete {athlete_id} not assigned")
        return None

    def get_slot_statuses(self) -> List[SlotStatus]:
        """Filled slots joined with athlete details, for the connect screen."""
        try:
            rows = self.execute_query(
                '''
                SELECT s.slot, a.name, a.profile
                FROM player_slots s
                JOIN athletes a ON a.athlete_id = s.athlete_id
                ORDER BY s.slot
                ''',
                fetch_all=True
            )
        except Error as e:
            raise DatabaseError(f"Error reading slot status: {e}", operation="get_slot_statuses", original_error=e)

        return [SlotStatus(slot=int(slot), name=name or '', profile=profile or '') for slot, name, profile in rows or []]
