"""
Mod Update Checker - Version Comparison Utility
Normalizes loosely formatted version strings and compares them.
"""

import logging
import re
from dataclasses import dataclass
from enum import Enum
from functools import total_ordering
from typing import Optional

from updatecheck.errors import InvalidVersionError

logger = logging.getLogger(__name__)

_NUMERIC = re.compile(r"[0-9]+")
_PREFIX = re.compile(r"^[\svV]+")

# Components a normalized version always has.
MIN_COMPONENTS = 3


class Comparison(Enum):
    """Result of comparing one version against another."""
    NEWER = 1
    EQUAL = 0
    OLDER = -1

    def inverse(self) -> "Comparison":
        return Comparison(-self.value)


def _strip_prefix(raw: Optional[str]) -> str:
    if not raw:
        return ""
    return _PREFIX.sub("", raw).strip()


def normalize_version(raw: Optional[str], strict: bool = False) -> str:
    """
    Normalize a version string for display and comparison.
    
    Handles formats like:
    - 1.2.3
    - v1.2.3 / V1.2
    - 2 (padded to 2.0.0)
    - 1.2.3-beta (kept as is, "3-beta" compares as 0)
    
    Args:
        raw: The version string to normalize
        strict: Raise instead of returning "0.0.0" for empty input
        
    Returns:
        Version string with at least three dot-separated components
        
    Raises:
        InvalidVersionError: If strict and nothing is left after stripping
    """
    version = _strip_prefix(raw)
    if not version:
        if strict:
            raise InvalidVersionError(f"Empty version string: {raw!r}")
        return "0.0.0"

    missing = MIN_COMPONENTS - len(version.split("."))
    if missing > 0:
        version += ".0" * missing
    return version


def _to_int(part: str) -> int:
    part = part.strip()
    if _NUMERIC.fullmatch(part):
        return int(part)
    logger.debug(f"Non-numeric version component {part!r} treated as 0")
    return 0


@total_ordering
@dataclass(frozen=True, eq=False)
class SemanticVersion:
    """
    Ordered sequence of non-negative integer components.
    
    Missing trailing components count as zero, so 1.2 == 1.2.0.
    """
    components: tuple[int, ...]

    @classmethod
    def parse(cls, raw: Optional[str]) -> "SemanticVersion":
        """Parse any string; components that are not plain digits become 0."""
        normalized = normalize_version(raw)
        return cls(tuple(_to_int(p) for p in normalized.split(".")))

    def padded(self, length: int) -> tuple[int, ...]:
        """Components zero-padded to at least `length` entries."""
        return self.components + (0,) * (length - len(self.components))

    def compare(self, other: "SemanticVersion") -> Comparison:
        length = max(len(self.components), len(other.components))
        for a, b in zip(self.padded(length), other.padded(length)):
            if a > b:
                return Comparison.NEWER
            if a < b:
                return Comparison.OLDER
        return Comparison.EQUAL

    def _significant(self) -> tuple[int, ...]:
        parts = list(self.components)
        while parts and parts[-1] == 0:
            parts.pop()
        return tuple(parts)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, SemanticVersion):
            return NotImplemented
        return self.compare(other) is Comparison.EQUAL

    def __lt__(self, other: "SemanticVersion") -> bool:
        if not isinstance(other, SemanticVersion):
            return NotImplemented
        return self.compare(other) is Comparison.OLDER

    def __hash__(self) -> int:
        return hash(self._significant())

    def __str__(self) -> str:
        return ".".join(str(c) for c in self.components)


def compare_versions(v1: Optional[str], v2: Optional[str]) -> Comparison:
    """
    Compare two version strings.
    
    Never raises: garbage input degrades to zeros.
    
    Args:
        v1: First version string
        v2: Second version string
        
    Returns:
        NEWER if v1 > v2, OLDER if v1 < v2, EQUAL otherwise
    """
    result = SemanticVersion.parse(v1).compare(SemanticVersion.parse(v2))
    logger.debug(f"Comparing versions: {v1!r} vs {v2!r} -> {result.name}")
    return result


def is_newer(new_version: Optional[str], current_version: Optional[str]) -> bool:
    """
    Check if new_version is newer than current_version.
    
    Args:
        new_version: The potentially newer version
        current_version: The current/installed version
        
    Returns:
        True if new_version > current_version
    """
    return compare_versions(new_version, current_version) is Comparison.NEWER


def major_component(version: Optional[str]) -> Optional[int]:
    """Leading numeric component, or None if it is not a plain number."""
    head = _strip_prefix(version).split(".")[0].strip()
    if _NUMERIC.fullmatch(head):
        return int(head)
    return None


def is_compatible(required: Optional[str], current: Optional[str]) -> bool:
    """
    Major-version-only compatibility gate.
    
    Minor and patch differences are accepted; an unreadable major on
    either side is not.
    """
    required_major = major_component(required)
    current_major = major_component(current)
    if required_major is None or current_major is None:
        return False
    return required_major == current_major
