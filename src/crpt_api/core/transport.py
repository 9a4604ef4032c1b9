"""
HTTP transport for the document API.

Sends one request and hands back the status code and body. It never retries
and never interprets status codes; that is the dispatcher's job.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, Optional, Union

import requests

from .errors import TransportError

DEFAULT_USER_AGENT = 'crpt-api/1.0 (Document submission client)'


@dataclass
class TransportResponse:
    status_code: int
    body: str = ''
    headers: Dict[str, str] = field(default_factory=dict)


class RequestsTransport:
    """
    Transport backed by a ``requests.Session``.

    Connection errors, timeouts and other request failures are re-raised as
    TransportError; any HTTP response, whatever its status, is returned.
    """

    def __init__(self, timeout: Optional[float] = 30.0, user_agent: str = DEFAULT_USER_AGENT,
                 session: Optional[requests.Session] = None):
        """
        Args:
            timeout: seconds to wait for the connection and for the response
            user_agent: User-Agent header sent with every request
            session: existing session to reuse (e.g. one with a proxy configured)
        """
        self.timeout = timeout
        self.logger = logging.getLogger(__name__)
        self.session = session or requests.Session()
        self.session.headers.update({
            'User-Agent': user_agent,
            'Accept': 'application/json',
        })

    def send(self, method: str, uri: str, headers: Dict[str, str],
             body: Union[bytes, str, None] = None) -> TransportResponse:
        """
        Perform a single HTTP request.

        Raises:
            TransportError: if no response was received
        """
        self.logger.debug(f"{method} {uri}")
        try:
            response = self.session.request(method, uri, headers=headers, data=body, timeout=self.timeout)
        except requests.exceptions.Timeout as e:
            raise TransportError(f"Timed out after {self.timeout}s: {e}") from e
        except requests.exceptions.RequestException as e:
            raise TransportError(f"Request failed: {e}") from e

        return TransportResponse(
            status_code=response.status_code,
            body=response.text,
            headers=dict(response.headers),
        )

    def get_session_stats(self) -> Dict[str, object]:
        return {
            'timeout': self.timeout,
            'user_agent': self.session.headers.get('User-Agent'),
        }

    def close(self):
        """Close the HTTP session."""
        self.session.close()
        self.logger.debug("Transport session closed")
