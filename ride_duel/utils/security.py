"""
Security utilities for the Ride Duel backend.

Input validation for athlete identifiers, secret masking for CLI output and
the security headers attached to every HTTP response.
"""

import re
from typing import Dict

from .logging_config import get_logger
from .error_handling import ValidationError

logger = get_logger(__name__)


class SecurityValidator:
    """
    Security validation utilities for input sanitization and validation.
    """

    ATHLETE_ID_PATTERN = re.compile(r'^\d{1,15}$')  # Reasonable range for athlete IDs

    @classmethod
    def validate_athlete_id(cls, athlete_id: str) -> bool:
        """
        Validate a Strava athlete ID given as a string of digits.

        Args:
            athlete_id: Athlete ID to validate

        Returns:
            True if valid, False otherwise
        """
        if not isinstance(athlete_id, str):
            return False
        return bool(cls.ATHLETE_ID_PATTERN.match(athlete_id)) and int(athlete_id) > 0

    @classmethod
    def sanitize_string(cls, value: str, max_length: int = 255) -> str:
        """
        Sanitize string input by removing control characters.

        Args:
            value: String to sanitize
            max_length: Maximum allowed length

        Returns:
            Sanitized string
        """
        if not isinstance(value, str):
            raise ValidationError("Value must be a string")

        sanitized = ''.join(char for char in value if ord(char) >= 32 or char in '\t\n\r')

        if len(sanitized) > max_length:
            sanitized = sanitized[:max_length]
            logger.warning(f"String truncated to {max_length} characters")

        return sanitized.strip()


def mask_secret(secret: str, visible_chars: int = 4) -> str:
    """
    Mask a secret for safe logging/display.

    Args:
        secret: Secret to mask
        visible_chars: Number of characters to show at the end

    Returns:
        Masked secret string
    """
    if not secret or len(secret) <= visible_chars:
        return "*" * 8

    return "*" * (len(secret) - visible_chars) + secret[-visible_chars:]


def create_security_headers() -> Dict[str, str]:
    """
    Create security headers for HTTP responses.

    Returns:
        Dictionary of security headers
    """
    return {
        'X-Content-Type-Options': 'nosniff',
        'X-Frame-Options': 'DENY',
        'Strict-Transport-Security': 'max-age=31536000; includeSubDomains',
        'Content-Security-Policy': "default-src 'self'",
        'Referrer-Policy': 'strict-origin-when-cross-origin'
    }
