"""
Mod Update Checker - Core Package
"""

from updatecheck.config import CheckerSettings, load_settings
from updatecheck.descriptor import ParsedDescriptor, parse_descriptor
from updatecheck.errors import (
    FetchError,
    FetchErrorKind,
    InvalidVersionError,
    RegistrationError,
    RegistrationResult,
    UpdateCheckError,
)
from updatecheck.events import EventHook, LogNotifier
from updatecheck.models import ComponentRecord, UpdateDescriptorSource, UpdateVerdict
from updatecheck.registry import Registry
from updatecheck.resolver import UpdateResolver, derive_download_url
from updatecheck.version import Comparison, SemanticVersion, compare_versions, normalize_version

__all__ = [
    "CheckerSettings",
    "load_settings",
    "ParsedDescriptor",
    "parse_descriptor",
    "FetchError",
    "FetchErrorKind",
    "InvalidVersionError",
    "RegistrationError",
    "RegistrationResult",
    "UpdateCheckError",
    "EventHook",
    "LogNotifier",
    "ComponentRecord",
    "UpdateDescriptorSource",
    "UpdateVerdict",
    "Registry",
    "UpdateResolver",
    "derive_download_url",
    "Comparison",
    "SemanticVersion",
    "compare_versions",
    "normalize_version",
]
