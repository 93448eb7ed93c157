"""
Mod Update Checker - Update Resolver
Fetches a component's descriptor, parses it and decides whether the
remote version is newer than the registered one.
"""

import logging
from datetime import datetime
from typing import Callable, Optional
from urllib.parse import urlparse

from updatecheck.descriptor import parse_descriptor
from updatecheck.errors import FetchError, FetchErrorKind
from updatecheck.events import EventHook
from updatecheck.models import ComponentRecord, UpdateDescriptorSource, UpdateVerdict
from updatecheck.version import Comparison, compare_versions, normalize_version

logger = logging.getLogger(__name__)

# Raw-content host -> platform host
RAW_CONTENT_HOSTS = {
    "raw.githubusercontent.com": "github.com",
}
PLATFORM_HOSTS = {"github.com", "gitee.com"}

RELEASE_URL = "https://{host}/{user}/{repo}/releases/download/v{version}/{repo}.zip"


def derive_download_url(check_url: str, version: str) -> str:
    """
    Guess a release download URL from the check URL.
    
    https://raw.githubusercontent.com/User/Repo/main/version.json
    -> https://github.com/User/Repo/releases/download/v1.0.0/Repo.zip
    
    Args:
        check_url: URL the descriptor was fetched from
        version: Latest version (a leading "v" is not duplicated)
        
    Returns:
        Derived URL, or check_url unchanged if the host is not recognized
    """
    try:
        parsed = urlparse(check_url)
    except ValueError:
        return check_url

    host = (parsed.hostname or "").lower()
    segments = parsed.path.split("/")

    if host in RAW_CONTENT_HOSTS:
        platform = RAW_CONTENT_HOSTS[host]
        if len(segments) < 4:
            return check_url
    elif host in PLATFORM_HOSTS:
        platform = host
        if len(segments) < 3:
            return check_url
    else:
        return check_url

    user, repo = segments[1], segments[2]
    if not user or not repo:
        return check_url
    if repo.endswith(".git"):
        repo = repo[:-4]

    return RELEASE_URL.format(
        host=platform, user=user, repo=repo, version=version.lstrip("vV")
    )


class UpdateResolver:
    """
    Runs one update check: fetch -> parse -> compare -> verdict.
    
    Never raises for network or parsing problems; those end in a
    not-newer verdict and a log line.
    """

    def __init__(
        self,
        fetcher: Callable[[str], str],
        on_update_available: Optional[EventHook] = None,
    ):
        """
        Initialize the resolver.
        
        Args:
            fetcher: Callable returning the body at a URL, raising FetchError
            on_update_available: Hook emitted with (component_id, verdict)
                for every check that finds a newer version
        """
        self.fetcher = fetcher
        self.on_update_available = on_update_available

    def _not_newer(
        self,
        component: ComponentRecord,
        checked_at: datetime,
        latest: Optional[str] = None,
    ) -> UpdateVerdict:
        return UpdateVerdict(
            component_id=component.id,
            current_version=component.version,
            latest_version=latest,
            is_newer=False,
            checked_at=checked_at,
        )

    def _fetch(self, component_id: str, url: str) -> Optional[str]:
        try:
            return self.fetcher(url)
        except FetchError as e:
            if e.kind == FetchErrorKind.TIMEOUT:
                logger.warning(f"Update check timeout for {component_id}: {url}")
            elif e.kind == FetchErrorKind.EMPTY_BODY:
                logger.warning(f"Empty response for {component_id} from {url}")
            else:
                logger.error(f"Network error for {component_id} ({e.kind.value}): {e}")
        return None

    def resolve(
        self,
        component: ComponentRecord,
        source: UpdateDescriptorSource,
        checked_at: Optional[datetime] = None,
    ) -> UpdateVerdict:
        """Compute a verdict without recording it or notifying anyone."""
        checked_at = checked_at or datetime.now()

        if not source.check_url:
            logger.debug(f"No update check URL for {component.id}")
            return self._not_newer(component, checked_at)

        logger.info(f"Checking updates for {component.id} from {source.check_url}")
        body = self._fetch(component.id, source.check_url)
        if body is None:
            return self._not_newer(component, checked_at)

        descriptor = parse_descriptor(body)
        if not descriptor.found:
            logger.warning(f"Could not extract version for {component.id}")
            return self._not_newer(component, checked_at)

        latest = normalize_version(descriptor.version)
        current = normalize_version(component.version)
        logger.info(
            f"Version comparison for {component.id}: Current={current}, "
            f"Latest={latest} (via {descriptor.strategy})"
        )

        if compare_versions(latest, current) is not Comparison.NEWER:
            logger.info(f"{component.id} is up to date (v{current})")
            return self._not_newer(component, checked_at, latest)

        download_url = (
            descriptor.download_url
            or source.download_url
            or derive_download_url(source.check_url, latest)
        )
        logger.info(f"Update available for {component.id}: v{current} → v{latest}")
        return UpdateVerdict(
            component_id=component.id,
            current_version=component.version,
            latest_version=latest,
            is_newer=True,
            download_url=download_url,
            changelog=descriptor.changelog or source.changelog or "",
            checked_at=checked_at,
        )

    def check_for_update(
        self,
        component: ComponentRecord,
        source: UpdateDescriptorSource,
    ) -> UpdateVerdict:
        """
        Check one component and record the verdict on its source.
        
        Args:
            component: The registered component
            source: Its update source; the verdict is written back here
            
        Returns:
            The fresh UpdateVerdict
        """
        verdict = self.resolve(component, source)
        source.record(verdict)

        if verdict.is_newer and self.on_update_available is not None:
            self.on_update_available.emit(component.id, verdict)
        return verdict
