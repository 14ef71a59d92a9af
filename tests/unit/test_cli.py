"""
Unit tests for the click command line interface.
"""

import json
import os
from unittest.mock import AsyncMock, Mock, patch

import pytest
from click.testing import CliRunner

from ride_duel.api.models import (
    ActivityRecord, DailyTotal, DuelReport, IncompleteReport, MonthlyTotal, ParticipantReport, SlotStatus
)
from ride_duel.main import cli
from ride_duel.utils.config import LoggingConfig
from ride_duel.utils.error_handling import ConfigurationError, DatabaseError


def participant(athlete_id, name, km):
    return ParticipantReport(
        athlete_id=athlete_id,
        name=name,
        profile="",
        total_km=km,
        cumulative=[DailyTotal("2024-01-01", km)],
        monthly=[MonthlyTotal("2024-01", km)],
        activities=[ActivityRecord("2024-01-01", km, "Ride")]
    )


class TestCli:
    """Test CLI commands"""

    @pytest.fixture(autouse=True)
    def setup(self, test_config):
        self.runner = CliRunner()
        self.store = Mock()
        with patch('ride_duel.main.load_dotenv'), \
                patch('ride_duel.main.setup_logging') as self.setup_logging, \
                patch('ride_duel.main.Config.from_env', return_value=test_config), \
                patch('ride_duel.main.CredentialStore', return_value=self.store):
            yield

    def test_config_error_exits(self):
        with patch('ride_duel.main.Config.from_env', side_effect=ConfigurationError("missing")):
            result = self.runner.invoke(cli, ['status'])

        assert result.exit_code == 1

    @patch('ride_duel.main.DuelReportBuilder')
    def test_report_leaderboard(self, mock_builder_class):
        mock_builder_class.return_value.build = AsyncMock(return_value=DuelReport(
            year=2024, players=[participant("111", "Jane Doe", 120.5), participant("222", "John Roe", 80.0)]
        ))

        result = self.runner.invoke(cli, ['report', '--year', '2024'])

        assert result.exit_code == 0
        assert "Ride Duel 2024" in result.output
        assert "🏆 Jane Doe: 120.50 km (1 rides)" in result.output
        assert "2024-01: 80.00 km" in result.output
        mock_builder_class.return_value.build.assert_awaited_once_with(2024)

    @patch('ride_duel.main.DuelReportBuilder')
    def test_report_json(self, mock_builder_class):
        mock_builder_class.return_value.build = AsyncMock(return_value=IncompleteReport(connected_count=1))

        result = self.runner.invoke(cli, ['report', '--year', '2024', '--json'])

        assert result.exit_code == 0
        assert json.loads(result.output) == {"status": "incomplete", "connectedCount": 1, "players": []}

    @patch('ride_duel.main.DuelReportBuilder')
    def test_report_incomplete(self, mock_builder_class):
        mock_builder_class.return_value.build = AsyncMock(return_value=IncompleteReport(connected_count=0))

        result = self.runner.invoke(cli, ['report', '--year', '2024'])

        assert result.exit_code == 0
        assert "0/2 connected" in result.output

    @patch('ride_duel.main.DuelReportBuilder')
    def test_report_failure(self, mock_builder_class):
        mock_builder_class.return_value.build = AsyncMock(side_effect=DatabaseError("down"))

        result = self.runner.invoke(cli, ['report', '--year', '2024'])

        assert result.exit_code == 1
        assert "Report failed" in result.output

    def test_status(self):
        self.store.test_connection.return_value = True
        self.store.get_slot_statuses.return_value = [SlotStatus(1, "Jane Doe", "")]

        result = self.runner.invoke(cli, ['status'])

        assert result.exit_code == 0
        assert "Players connected: 1/2" in result.output
        assert "Slot 1: Jane Doe" in result.output
        assert "12345" not in result.output

    def test_status_database_down(self):
        self.store.test_connection.return_value = False

        result = self.runner.invoke(cli, ['status'])

        assert result.exit_code == 1
        assert "Failed" in result.output

    def test_claim_slot(self):
        self.store.get.return_value = Mock()
        self.store.claim_slot.return_value = 2

        result = self.runner.invoke(cli, ['claim-slot', '222'])

        assert result.exit_code == 0
        assert "Athlete 222 is player 2" in result.output
        self.store.claim_slot.assert_called_once_with('222')

    def test_claim_slot_invalid_id(self):
        result = self.runner.invoke(cli, ['claim-slot', 'abc'])

        assert result.exit_code == 1
        self.store.claim_slot.assert_not_called()

    def test_claim_slot_unknown_athlete(self):
        self.store.get.return_value = None

        result = self.runner.invoke(cli, ['claim-slot', '222'])

        assert result.exit_code == 1
        assert "has not authorized" in result.output

    def test_claim_slot_full(self):
        self.store.get.return_value = Mock()
        self.store.claim_slot.return_value = None

        result = self.runner.invoke(cli, ['claim-slot', '333'])

        assert result.exit_code == 1
        assert "already taken" in result.output

    @patch('ride_duel.main.RideDuelServer')
    def test_serve(self, mock_server_class):
        result = self.runner.invoke(cli, ['serve', '--port', '8080'])

        assert result.exit_code == 0
        mock_server_class.return_value.run.assert_called_once_with(host='0.0.0.0', port=8080, debug=False)

    @patch('ride_duel.main.RideDuelServer')
    def test_log_level_option(self, mock_server_class):
        result = self.runner.invoke(cli, ['--log-level', 'DEBUG', 'serve'])

        assert result.exit_code == 0
        self.setup_logging.assert_called_once()
        assert self.setup_logging.call_args.args[0].level == 'DEBUG'

    @patch.dict(os.environ, {'LOG_LEVEL': 'warning', 'LOG_DIR': '/var/log/ride-duel'})
    @patch('ride_duel.main.RideDuelServer')
    def test_log_settings_from_environment(self, mock_server_class):
        result = self.runner.invoke(cli, ['serve'])

        assert result.exit_code == 0
        settings = self.setup_logging.call_args.args[0]
        assert isinstance(settings, LoggingConfig)
        assert (settings.level, settings.directory) == ('WARNING', '/var/log/ride-duel')

    @patch.dict(os.environ, {'LOG_BACKUP_COUNT': 'many'})
    def test_invalid_log_settings_exit(self):
        result = self.runner.invoke(cli, ['status'])

        assert result.exit_code == 1
        self.setup_logging.assert_not_called()
