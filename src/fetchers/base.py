"""
Mod Update Checker - Fetcher Base
Abstract base class for descriptor fetchers.
"""

from abc import ABC, abstractmethod
import logging

logger = logging.getLogger(__name__)


class Fetcher(ABC):
    """
    Abstract base class for descriptor fetchers.
    
    A fetcher turns a check URL into response text. Each implementation
    handles a specific transport (HTTP, canned responses for tests, ...).
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Human-readable name of the fetcher (e.g., 'HTTP')."""
        pass

    @abstractmethod
    def fetch_text(self, url: str) -> str:
        """
        Fetch the body at `url` as text.
        
        Args:
            url: The check URL.
            
        Returns:
            Non-empty response body.
            
        Raises:
            FetchError: On timeout, connection failure, bad status or
                empty body.
        """
        pass

    def __call__(self, url: str) -> str:
        return self.fetch_text(url)
