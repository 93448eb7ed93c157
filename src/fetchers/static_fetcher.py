"""
Mod Update Checker - Static Fetcher
Serves canned responses; used by tests and offline hosts.
"""

import logging
import threading
from typing import Optional, Union

from fetchers.base import Fetcher
from updatecheck.errors import FetchError, FetchErrorKind

logger = logging.getLogger(__name__)

Response = Union[str, Exception]


class StaticFetcher(Fetcher):
    """Fetcher returning pre-registered bodies or raising pre-registered errors."""

    def __init__(self, responses: Optional[dict[str, Response]] = None):
        self._responses: dict[str, Response] = dict(responses or {})
        self._lock = threading.Lock()
        self.fetched_urls: list[str] = []

    @property
    def name(self) -> str:
        return "Static"

    def set_response(self, url: str, response: Response) -> None:
        """Set the body (or exception) served for `url`."""
        with self._lock:
            self._responses[url] = response

    def fetch_text(self, url: str) -> str:
        with self._lock:
            self.fetched_urls.append(url)
            response = self._responses.get(url)

        if response is None:
            raise FetchError(FetchErrorKind.HTTP_STATUS, url, "HTTP 404", status_code=404)
        if isinstance(response, Exception):
            raise response
        if not response.strip():
            raise FetchError(FetchErrorKind.EMPTY_BODY, url, "Empty response body")
        return response
