"""
Mod Update Checker - HTTP Fetcher
Fetches update descriptors over HTTP(S) with requests.
"""

import logging
from typing import Optional

import requests

from fetchers.base import Fetcher
from updatecheck.errors import FetchError, FetchErrorKind

logger = logging.getLogger(__name__)

DEFAULT_USER_AGENT = "ModUpdateChecker/1.0"


class HttpFetcher(Fetcher):
    """Fetcher backed by a requests session."""

    def __init__(
        self,
        timeout: float = 10,
        user_agent: str = DEFAULT_USER_AGENT,
        session: Optional[requests.Session] = None,
    ):
        """
        Initialize the HTTP fetcher.
        
        Args:
            timeout: Seconds before a request is abandoned.
            user_agent: Value of the User-Agent header.
            session: Session to reuse; a new one is created if omitted.
        """
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers["User-Agent"] = user_agent

    @property
    def name(self) -> str:
        return "HTTP"

    def fetch_text(self, url: str) -> str:
        """Fetch `url`, classifying failures into FetchError kinds."""
        try:
            response = self.session.get(url, timeout=self.timeout)
            response.raise_for_status()
        except requests.Timeout as e:
            raise FetchError(FetchErrorKind.TIMEOUT, url, f"Timed out after {self.timeout}s") from e
        except requests.ConnectionError as e:
            raise FetchError(FetchErrorKind.CONNECTION, url, f"Connection failed: {e}") from e
        except requests.HTTPError as e:
            status = e.response.status_code if e.response is not None else None
            raise FetchError(
                FetchErrorKind.HTTP_STATUS, url, f"HTTP {status}", status_code=status
            ) from e
        except requests.RequestException as e:
            raise FetchError(FetchErrorKind.OTHER, url, str(e)) from e

        if response.encoding is None:
            response.encoding = "utf-8"
        text = response.text
        if not text or not text.strip():
            raise FetchError(FetchErrorKind.EMPTY_BODY, url, "Empty response body")

        logger.debug(f"Fetched {len(text)} chars from {url}")
        return text

    def close(self) -> None:
        self.session.close()
