"""
Mod Update Checker - Component Registry
Tracks registered components, their update sources and cached verdicts,
and runs update checks on a worker pool.
"""

import itertools
import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import wait as wait_for_futures
from datetime import datetime
from functools import partial
from typing import Callable, Optional

from updatecheck.config import CORE_VERSION, CheckerSettings
from updatecheck.errors import InvalidVersionError, RegistrationError, RegistrationResult
from updatecheck.events import EventHook
from updatecheck.models import ComponentRecord, UpdateDescriptorSource, UpdateVerdict
from updatecheck.resolver import UpdateResolver
from updatecheck.version import is_compatible, is_newer, normalize_version

logger = logging.getLogger(__name__)


class Registry:
    """
    In-memory store of components and their update state.

    Create one per process (or per test) and pass it around. All map
    access goes through one lock; verdict write-back is additionally
    guarded per source, so readers never see a half-written verdict.
    At most one check per component is in flight at a time.
    """

    def __init__(
        self,
        fetcher: Callable[[str], str],
        settings: Optional[CheckerSettings] = None,
    ):
        """
        Initialize the registry.

        Args:
            fetcher: Callable returning the body at a check URL
                (e.g. a fetchers.HttpFetcher), raising FetchError on failure.
            settings: Runtime settings; defaults if omitted.
        """
        self.settings = settings or CheckerSettings()
        self.on_registered = EventHook("on_registered")
        self.on_update_available = EventHook("on_update_available")
        self.resolver = UpdateResolver(fetcher, self.on_update_available)

        self._components: dict[str, ComponentRecord] = {}
        self._sources: dict[str, UpdateDescriptorSource] = {}
        self._in_flight: dict[str, tuple[UpdateDescriptorSource, Future]] = {}
        # Latest unjoined finished check per component; older ones are dropped.
        self._finished: dict[str, tuple[int, Future]] = {}
        self._running: dict[Future, tuple[str, int]] = {}
        self._sequence = itertools.count()
        self._lock = threading.Lock()
        self._executor = ThreadPoolExecutor(
            max_workers=self.settings.max_workers,
            thread_name_prefix="update-check",
        )

    @property
    def core_version(self) -> str:
        return self.settings.core_version

    # -- Registration --------------------------------------------------

    def _add_component(self, component_id: str, version: str, required_core_version: str) -> None:
        if not self.settings.enable_api:
            raise RegistrationError(
                RegistrationResult.DISABLED,
                f"API is disabled. Component {component_id} registration ignored.",
            )
        with self._lock:
            if component_id in self._components:
                raise RegistrationError(
                    RegistrationResult.ALREADY_REGISTERED,
                    f"Component {component_id} is already registered",
                )
            if not is_compatible(required_core_version, self.core_version):
                raise RegistrationError(
                    RegistrationResult.INCOMPATIBLE,
                    f"Component {component_id} requires core version {required_core_version}, "
                    f"but current is {self.core_version}",
                )
            self._components[component_id] = ComponentRecord(id=component_id, version=version)

    def _register(
        self,
        component_id: str,
        version: str,
        required_core_version: str,
        auto_check: bool,
    ) -> RegistrationResult:
        try:
            self._add_component(component_id, version, required_core_version)
        except RegistrationError as e:
            logger.warning(str(e))
            return e.result

        logger.info(f"Component registered: {component_id} v{version}")
        self.on_registered.emit(component_id, version)

        source = self.get_update_info(component_id)
        if auto_check and self.settings.auto_check_updates and source and source.check_url:
            self.check_component(component_id)
        return RegistrationResult.SUCCESS

    def register(
        self,
        component_id: str,
        version: str,
        required_core_version: str = CORE_VERSION,
    ) -> RegistrationResult:
        """
        Register a component.

        Args:
            component_id: Unique component ID
            version: Declared component version
            required_core_version: Core version the component was built for;
                only the major component has to match

        Returns:
            RegistrationResult, truthy only on success
        """
        return self._register(component_id, version, required_core_version, auto_check=True)

    def register_with_update_source(
        self,
        component_id: str,
        version: str,
        check_url: Optional[str] = None,
        download_url: Optional[str] = None,
        changelog: str = "",
        required_core_version: str = CORE_VERSION,
    ) -> RegistrationResult:
        """
        Register a component and install its update source.

        The source is installed (replacing any previous one) when the
        registration succeeds or the component was already registered.
        A non-empty check_url schedules a check right away.

        Returns:
            The RegistrationResult of the registration itself
        """
        result = self._register(component_id, version, required_core_version, auto_check=False)
        if result not in (RegistrationResult.SUCCESS, RegistrationResult.ALREADY_REGISTERED):
            return result

        source = UpdateDescriptorSource(
            component_id=component_id,
            check_url=check_url or None,
            download_url=download_url or None,
            changelog=changelog or "",
        )
        with self._lock:
            self._sources[component_id] = source
        logger.info(f"Component {component_id} registered with update checking enabled")

        if check_url:
            self.check_component(component_id)
        return result

    def unregister(self, component_id: str) -> bool:
        """Remove a component. Its cached update source is kept."""
        with self._lock:
            removed = self._components.pop(component_id, None)
        if removed is None:
            return False
        logger.info(f"Component unregistered: {component_id}")
        return True

    def set_enabled(self, component_id: str, enabled: bool) -> bool:
        """Enable or disable update checks for a component."""
        with self._lock:
            component = self._components.get(component_id)
            if component is None:
                return False
            component.enabled = enabled
        logger.info(f"Component {component_id} {'enabled' if enabled else 'disabled'}")
        return True

    # -- Lookups -------------------------------------------------------

    def is_registered(self, component_id: str) -> bool:
        with self._lock:
            return component_id in self._components

    def get_component(self, component_id: str) -> Optional[ComponentRecord]:
        with self._lock:
            return self._components.get(component_id)

    def get_registered_components(self) -> list[ComponentRecord]:
        with self._lock:
            return list(self._components.values())

    def get_update_info(self, component_id: str) -> Optional[UpdateDescriptorSource]:
        with self._lock:
            return self._sources.get(component_id)

    def get_verdict(self, component_id: str) -> Optional[UpdateVerdict]:
        source = self.get_update_info(component_id)
        return source.current_verdict() if source else None

    def get_available_updates(self) -> list[UpdateVerdict]:
        """Cached verdicts that found a newer version."""
        with self._lock:
            sources = list(self._sources.values())

        updates = []
        for source in sources:
            verdict = source.current_verdict()
            if verdict is not None and verdict.is_newer:
                updates.append(verdict)
        return updates

    def set_update_info(
        self,
        component_id: str,
        latest_version: str,
        download_url: Optional[str],
        changelog: str = "",
    ) -> bool:
        """
        Record update info by hand, for components without a check URL.

        Whether it counts as an update is still decided by comparing
        against the registered version.

        Returns:
            False if the component is unknown or the version is empty
        """
        try:
            latest = normalize_version(latest_version, strict=True)
        except InvalidVersionError as e:
            logger.warning(f"Cannot set update info for {component_id}: {e}")
            return False

        with self._lock:
            component = self._components.get(component_id)
            if component is None:
                logger.warning(f"Cannot set update info: Component {component_id} is not registered")
                return False
            source = self._sources.setdefault(
                component_id, UpdateDescriptorSource(component_id=component_id)
            )

        verdict = UpdateVerdict(
            component_id=component_id,
            current_version=component.version,
            latest_version=latest,
            is_newer=is_newer(latest, normalize_version(component.version)),
            download_url=download_url or None,
            changelog=changelog or "",
            checked_at=datetime.now(),
        )
        source.record(verdict)

        if verdict.is_newer:
            self.on_update_available.emit(component_id, verdict)
        return True

    # -- Checks --------------------------------------------------------

    def _run_check(self, component: ComponentRecord, source: UpdateDescriptorSource) -> UpdateVerdict:
        try:
            return self.resolver.check_for_update(component, source)
        except Exception:
            logger.exception(f"Failed to check update for {component.id}")
            verdict = UpdateVerdict(
                component_id=component.id,
                current_version=component.version,
                latest_version=None,
                is_newer=False,
            )
            source.record(verdict)
            return verdict

    def _mark_finished(self, future: Future) -> None:
        # Caller holds the lock.
        entry = self._running.pop(future, None)
        if entry is None:
            return
        component_id, seq = entry
        previous = self._finished.get(component_id)
        if previous is None or previous[0] < seq:
            self._finished[component_id] = (seq, future)

    def _check_done(self, component_id: str, future: Future) -> None:
        with self._lock:
            self._mark_finished(future)
            entry = self._in_flight.get(component_id)
            if entry is not None and entry[1] is future:
                del self._in_flight[component_id]

    def check_component(self, component_id: str) -> Optional[Future]:
        """
        Schedule an update check for one component.

        Returns:
            Future resolving to the UpdateVerdict, the already running
            future if a check for the same source is in flight, or None if
            the component cannot be checked (unknown, disabled, or no
            check URL; a verdict set by hand is left alone)
        """
        with self._lock:
            component = self._components.get(component_id)
            source = self._sources.get(component_id)
            if component is None or source is None:
                logger.warning(f"No update info found for component: {component_id}")
                return None
            if not component.enabled:
                logger.debug(f"Skipping disabled component: {component_id}")
                return None
            if not source.check_url:
                logger.debug(f"No update check URL for {component_id}, keeping cached verdict")
                return None

            entry = self._in_flight.get(component_id)
            if entry is not None and entry[0] is source and not entry[1].done():
                logger.debug(f"Check already in flight for {component_id}")
                return entry[1]

            try:
                future = self._executor.submit(self._run_check, component, source)
            except RuntimeError as e:
                logger.error(f"Cannot schedule check for {component_id}: {e}")
                return None
            self._in_flight[component_id] = (source, future)
            self._running[future] = (component_id, next(self._sequence))

        future.add_done_callback(partial(self._check_done, component_id))
        return future

    def check_all(self) -> dict[str, Future]:
        """
        Check every registered, enabled component whose source has a check URL.

        Checks run concurrently and independently; one failing check does
        not affect the others.

        Returns:
            Dict mapping component ID to the Future of its check
        """
        with self._lock:
            ids = [
                c.id for c in self._components.values()
                if c.enabled and c.id in self._sources and self._sources[c.id].check_url
            ]

        futures = {}
        for component_id in ids:
            future = self.check_component(component_id)
            if future is not None:
                futures[component_id] = future
        logger.info(f"Scheduled update checks for {len(futures)} components")
        return futures

    def wait_all(self, timeout: Optional[float] = None) -> list[UpdateVerdict]:
        """
        Block until every scheduled check has finished.

        Args:
            timeout: Seconds to wait at most; None waits indefinitely.

        Returns:
            Latest verdict of each component whose check finished since
            the previous wait_all call
        """
        with self._lock:
            running = list(self._running)

        _, not_done = wait_for_futures(running, timeout=timeout)
        if not_done:
            logger.warning(f"{len(not_done)} update checks still running after {timeout}s")

        # Done callbacks may still be pending for futures that just finished.
        done = [f for f in running if f.done()]
        with self._lock:
            for future in done:
                self._mark_finished(future)
            finished, self._finished = self._finished, {}
        return [future.result() for _, future in finished.values()]

    def shutdown(self, wait: bool = True) -> None:
        """Stop the worker pool."""
        self._executor.shutdown(wait=wait)

    def __enter__(self) -> "Registry":
        return self

    def __exit__(self, *exc) -> None:
        self.shutdown()
