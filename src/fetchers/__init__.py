"""
Mod Update Checker - Fetchers Package
"""

from fetchers.base import Fetcher
from fetchers.http_fetcher import HttpFetcher
from fetchers.static_fetcher import StaticFetcher

__all__ = [
    "Fetcher",
    "HttpFetcher",
    "StaticFetcher",
]
