"""
Configuration Validation Utilities

This module validates the values a CrptApi client is built from: the
endpoint URL and the numeric limits of the throttling window.
"""

import re
from urllib.parse import urlparse, urlunparse
from typing import Tuple, Optional
import logging


class EndpointValidator:
    """
    Validates and normalizes the endpoint URL documents are posted to.
    """

    def __init__(self):
        self.logger = logging.getLogger(__name__)

        # Patterns for common host formats
        self.domain_pattern = re.compile(
            r'^[a-zA-Z0-9]([a-zA-Z0-9\-]{0,61}[a-zA-Z0-9])?(\.[a-zA-Z0-9]([a-zA-Z0-9\-]{0,61}[a-zA-Z0-9])?)*$'
        )

    def validate_and_normalize(self, url: str) -> Tuple[bool, str, str]:
        """
        Validate and normalize an endpoint URL.

        Args:
            url: The URL to validate and normalize

        Returns:
            Tuple of (is_valid, normalized_url, error_message)
        """
        if not url or not isinstance(url, str):
            return False, "", "URL cannot be empty"

        url = url.strip()

        try:
            parsed = urlparse(url)

            # Endpoints must be absolute; a bare host is not accepted
            if not parsed.scheme:
                return False, "", "URL must include a scheme"
            if parsed.scheme not in ['http', 'https']:
                return False, "", "URL must use HTTP or HTTPS protocol"

            if not parsed.netloc:
                return False, "", "URL must have a valid domain"

            domain = parsed.netloc.lower()
            if '@' in domain:
                domain = domain.rsplit('@', 1)[1]
            if ':' in domain:
                host, port = domain.split(':', 1)
                if not port.isdigit():
                    return False, "", f"Invalid port: {port}"
                domain = host

            if not self.domain_pattern.match(domain):
                return False, "", "Invalid domain format"

            return True, self._normalize_url(parsed), ""

        except Exception as e:
            return False, "", f"URL validation error: {str(e)}"

    def _normalize_url(self, parsed_url) -> str:
        """Lowercase scheme and host, drop the fragment, keep path and query as given."""
        scheme = parsed_url.scheme.lower()
        netloc = parsed_url.netloc.lower()
        path = parsed_url.path or '/'
        return urlunparse((scheme, netloc, path, parsed_url.params, parsed_url.query, ''))


# Global validator instance
_validator_instance: Optional[EndpointValidator] = None


def get_validator() -> EndpointValidator:
    """Return the shared EndpointValidator instance."""
    global _validator_instance
    if _validator_instance is None:
        _validator_instance = EndpointValidator()
    return _validator_instance


def validate_endpoint(url: str) -> Tuple[bool, str, str]:
    """
    Validate and normalize an endpoint URL.

    Returns:
        Tuple of (is_valid, normalized_url, error_message)
    """
    return get_validator().validate_and_normalize(url)


def validate_request_limit(limit) -> Tuple[bool, str]:
    """
    Check that a request limit is a positive integer.

    Returns:
        Tuple of (is_valid, error_message)
    """
    # bool is an int subclass but never a meaningful limit
    if isinstance(limit, bool) or not isinstance(limit, int):
        return False, f"Request limit must be an integer, got {type(limit).__name__}"
    if limit <= 0:
        return False, f"Request limit must be positive, got {limit}"
    return True, ""


def validate_duration(duration) -> Tuple[bool, str]:
    """
    Check that a window duration is a positive number.

    Returns:
        Tuple of (is_valid, error_message)
    """
    if isinstance(duration, bool) or not isinstance(duration, (int, float)):
        return False, f"Duration must be a number, got {type(duration).__name__}"
    if duration <= 0:
        return False, f"Duration must be positive, got {duration}"
    return True, ""

