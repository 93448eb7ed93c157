"""
Mod Update Checker - Data Models
Component records, per-component update sources and check verdicts.
"""

import threading
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional


@dataclass
class ComponentRecord:
    """A registered component (mod)."""
    id: str                          # Unique identifier (e.g., "mod.sarcary")
    version: str                     # Declared version, raw
    enabled: bool = True
    registered_at: datetime = field(default_factory=datetime.now)


@dataclass(frozen=True)
class UpdateVerdict:
    """Outcome of one update check for one component."""
    component_id: str
    current_version: str             # Raw, as registered
    latest_version: Optional[str]    # Normalized; None if nothing could be extracted
    is_newer: bool
    download_url: Optional[str] = None
    changelog: str = ""
    checked_at: datetime = field(default_factory=datetime.now)

    @property
    def display_version(self) -> str:
        """Get formatted version string for display."""
        if self.latest_version and self.is_newer:
            return f"{self.current_version} → {self.latest_version}"
        return self.current_version

    def __str__(self) -> str:
        return f"{self.component_id}: {self.current_version} -> {self.latest_version}"


@dataclass
class UpdateDescriptorSource:
    """
    Per-component check configuration plus the cached verdict.
    
    `download_url` and `changelog` are the values given at registration;
    the resolved ones live on the verdict.
    """
    component_id: str
    check_url: Optional[str] = None
    download_url: Optional[str] = None
    changelog: str = ""
    last_check_time: Optional[datetime] = None
    verdict: Optional[UpdateVerdict] = None
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    def record(self, verdict: UpdateVerdict) -> None:
        """Replace the cached verdict and check time together."""
        with self._lock:
            self.verdict = verdict
            self.last_check_time = verdict.checked_at

    def current_verdict(self) -> Optional[UpdateVerdict]:
        with self._lock:
            return self.verdict

    @property
    def has_update(self) -> bool:
        verdict = self.current_verdict()
        return verdict is not None and verdict.is_newer
