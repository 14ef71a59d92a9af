#!/usr/bin/env python3
"""
HTTP API for the duel dashboard.

Serves the yearly duel report, the player connection status and a health
check for the frontend.
"""

import asyncio
import sys
from datetime import datetime, timezone
from typing import Optional

from dotenv import load_dotenv
from flask import Flask, request, jsonify

from .utils.config import Config, LoggingConfig
from .utils.cache import ReportCache
from .utils.logging_config import setup_logging, get_logger
from .utils.error_handling import ConfigurationError, DatabaseError
from .utils.security import create_security_headers
from .database.credential_store import CredentialStore
from .report_builder import DuelReportBuilder

REPORT_CACHE_CONTROL = 's-maxage=900, stale-while-revalidate=1800'


def parse_year(raw: Optional[str]) -> int:
    """Year from the query string, falling back to the current year."""
    try:
        year = int(raw)
    except (TypeError, ValueError):
        return datetime.now().year
    if year < 2000 or year > 9999:
        return datetime.now().year
    return year


class RideDuelServer:
    """Flask app wiring the report builder to HTTP routes"""

    def __init__(self, config: Config, store=None, builder: Optional[DuelReportBuilder] = None,
                 report_cache: Optional[ReportCache] = None):
        """
        Initialize the server.

        Args:
            config: Application configuration
            store: Credential store, defaults to the MySQL store
            builder: Report builder, defaults to one using ``store``
            report_cache: Cache for ready reports
        """
        self.config = config
        self.logger = get_logger(__name__)

        self.store = store or CredentialStore(config.database)
        self.builder = builder or DuelReportBuilder(config.strava, self.store)
        self.report_cache = report_cache or ReportCache(ttl=config.report.cache_ttl)

        self.app = Flask(__name__)
        self._setup_routes()

        self.logger.info("RideDuelServer initialized")

    @staticmethod
    def _secure(response):
        for header, value in create_security_headers().items():
            response.headers[header] = value
        return response

    def _setup_routes(self):
        """Setup Flask routes"""

        @self.app.route('/api/activities', methods=['GET'])
        def activities():
            """Duel report for ?year=YYYY"""
            year = parse_year(request.args.get('year'))

            try:
                report = self.report_cache.get_report(year)
                if report is None:
                    result = asyncio.run(asyncio.wait_for(
                        self.builder.build(year),
                        timeout=self.config.report.timeout_seconds
                    ))
                    report = result.to_dict()
                    self.report_cache.set_report(year, report)
                else:
                    self.logger.debug(f"Serving cached report for {year}")

                response = jsonify(report)
                response.headers['Cache-Control'] = REPORT_CACHE_CONTROL
                return self._secure(response)

            except Exception as e:
                self.logger.error(f"Activities error: {e}")
                response = jsonify({'error': 'Failed to fetch activities', 'details': str(e)})
                return self._secure(response), 500

        @self.app.route('/api/status', methods=['GET'])
        def status():
            """Which player slots are filled"""
            try:
                players = self.store.get_slot_statuses()
                response = jsonify({
                    'connectedCount': len(players),
                    'players': [player.to_dict() for player in players],
                    'ready': len(players) == 2
                })
                return self._secure(response)

            except DatabaseError as e:
                self.logger.error(f"Status error: {e}")
                return self._secure(jsonify({'error': 'Failed to get status'})), 500

        @self.app.route('/health', methods=['GET'])
        def health_check():
            """Health check endpoint"""
            db_status = self.store.test_connection()

            response = jsonify({
                'status': 'healthy' if db_status else 'unhealthy',
                'timestamp': datetime.now(timezone.utc).isoformat(),
                'database': 'connected' if db_status else 'disconnected'
            })
            return self._secure(response), 200 if db_status else 503

    def run(self, host: str = '0.0.0.0', port: int = 5000, debug: bool = False):
        """
        Run the development server.

        Args:
            host: Host to bind to
            port: Port to bind to
            debug: Enable debug mode
        """
        self.logger.info(f"Starting Ride Duel server on {host}:{port}")
        self.app.run(host=host, port=port, debug=debug)


def create_app():
    """Create Flask app for WSGI deployment"""
    load_dotenv()
    logger = get_logger(__name__)

    try:
        setup_logging(LoggingConfig.from_env())
        config = Config.from_env()
        logger.info("Configuration loaded for Ride Duel server")
        return RideDuelServer(config).app
    except ConfigurationError as e:
        logger.error(f"Configuration error: {e}")
        sys.exit(1)
