"""
Mod Update Checker - Descriptor Parser
Extracts a version, download URL and changelog from a remote descriptor.

Descriptors are usually JSON but are not guaranteed to be. Parsing runs an
ordered list of strategies, from strict to permissive, and never raises.
"""

import json
import logging
import re
from dataclasses import dataclass, replace
from typing import Callable, Optional

logger = logging.getLogger(__name__)

VERSION_KEYS = ("version",)
URL_KEYS = ("downloadurl", "download_url", "url")
CHANGELOG_KEYS = ("changelog", "change_log")

_QUOTES = ("'", '"')

_PAIR_PATTERN = re.compile(r"""^\s*(["']?)([^"':]+)\1\s*:\s*(.+)$""", re.DOTALL)
_BARE_VERSION = re.compile(r"v?(\d+\.\d+(?:\.\d+)?(?:\.\d+)?)", re.IGNORECASE)
_WHOLE_BODY_VERSION = re.compile(r"v?(\d+(?:\.\d+)*)", re.IGNORECASE)
_TAGGED_VERSION = re.compile(r"<version>([^<]+)</version>", re.IGNORECASE)


@dataclass(frozen=True)
class ParsedDescriptor:
    """Best-effort result of parsing a descriptor body."""
    version: Optional[str] = None
    download_url: Optional[str] = None
    changelog: Optional[str] = None
    strategy: Optional[str] = None   # Which strategy produced the version

    @property
    def found(self) -> bool:
        return self.version is not None

    def merged_with(self, other: "ParsedDescriptor") -> "ParsedDescriptor":
        """Fill fields still missing here from `other`; set fields win."""
        return replace(
            self,
            version=self.version or other.version,
            download_url=self.download_url or other.download_url,
            changelog=self.changelog or other.changelog,
            strategy=self.strategy or (other.strategy if other.version else None),
        )


@dataclass(frozen=True)
class Strategy:
    """A named parsing step."""
    name: str
    func: Callable[[str], Optional[ParsedDescriptor]]
    provides_metadata: bool = False

    def __call__(self, body: str) -> Optional[ParsedDescriptor]:
        try:
            return self.func(body)
        except Exception as e:
            logger.debug(f"Strategy {self.name} failed: {e}")
            return None


def _unquote(value: str) -> str:
    """Remove quotes wrapping the whole value."""
    value = value.strip()
    if len(value) >= 2 and value[0] == value[-1] and value[0] in _QUOTES:
        if value[0] == '"':
            try:
                decoded = json.loads(value)
                if isinstance(decoded, str):
                    return decoded
            except ValueError:
                pass
        return value[1:-1]
    return value


def split_top_level(text: str) -> list[str]:
    """
    Split on commas that are outside strings, braces and brackets.
    
    Args:
        text: Object body without its outer braces
        
    Returns:
        Non-empty, stripped segments
    """
    segments = []
    depth_brace = depth_bracket = 0
    quote: Optional[str] = None
    escaped = False
    start = 0

    for i, c in enumerate(text):
        if quote:
            if escaped:
                escaped = False
            elif c == "\\":
                escaped = True
            elif c == quote:
                quote = None
            continue

        if c in _QUOTES:
            quote = c
        elif c == "{":
            depth_brace += 1
        elif c == "}":
            depth_brace -= 1
        elif c == "[":
            depth_bracket += 1
        elif c == "]":
            depth_bracket -= 1
        elif c == "," and depth_brace == 0 and depth_bracket == 0:
            segments.append(text[start:i].strip())
            start = i + 1

    segments.append(text[start:].strip())
    return [s for s in segments if s]


def parse_key_values(body: str) -> dict[str, str]:
    """
    Lightweight scan of a JSON-like object into lower-cased keys.
    
    Nested objects and arrays are kept as raw text. Returns an empty dict
    if the body is not wrapped in braces.
    """
    body = body.strip()
    if not (body.startswith("{") and body.endswith("}")):
        return {}

    result = {}
    for pair in split_top_level(body[1:-1]):
        match = _PAIR_PATTERN.match(pair)
        if match:
            key = match.group(2).strip().lower()
            result[key] = _unquote(match.group(3))
    return result


def _first(fields: dict[str, str], keys: tuple[str, ...]) -> Optional[str]:
    for key in keys:
        value = fields.get(key)
        if value:
            return value
    return None


def _structured(body: str) -> Optional[ParsedDescriptor]:
    fields = parse_key_values(body)
    if not fields:
        return None
    return ParsedDescriptor(
        version=_first(fields, VERSION_KEYS),
        download_url=_first(fields, URL_KEYS),
        changelog=_first(fields, CHANGELOG_KEYS),
    )


def _labeled_pattern(key: str) -> re.Pattern:
    # "key": "x", 'key': 'x', key="x", key='x'
    return re.compile(
        r"""(?<![\w])(["']?)""" + key + r"""\1\s*[:=]\s*(["'])(.*?)(?<!\\)\2""",
        re.IGNORECASE | re.DOTALL,
    )


_LABELED_VERSION = _labeled_pattern("version")
_LABELED_URL = [_labeled_pattern(k) for k in ("downloadUrl", "download_url", "url")]
_LABELED_CHANGELOG = [_labeled_pattern(k) for k in ("changelog", "change_log")]


def _search_labeled(patterns: list[re.Pattern], body: str) -> Optional[str]:
    for pattern in patterns:
        match = pattern.search(body)
        if match and match.group(3).strip():
            return match.group(3).strip()
    return None


def _labeled(body: str) -> Optional[ParsedDescriptor]:
    result = ParsedDescriptor(
        version=_search_labeled([_LABELED_VERSION], body),
        download_url=_search_labeled(_LABELED_URL, body),
        changelog=_search_labeled(_LABELED_CHANGELOG, body),
    )
    if result.version or result.download_url or result.changelog:
        return result
    return None


def _bare_numeric(body: str) -> Optional[ParsedDescriptor]:
    match = _BARE_VERSION.search(body)
    if match:
        return ParsedDescriptor(version=match.group(1))
    return None


def _whole_body(body: str) -> Optional[ParsedDescriptor]:
    match = _WHOLE_BODY_VERSION.fullmatch(body)
    if match:
        return ParsedDescriptor(version=match.group(1))
    return None


def _tagged(body: str) -> Optional[ParsedDescriptor]:
    match = _TAGGED_VERSION.search(body)
    if match and match.group(1).strip():
        return ParsedDescriptor(version=match.group(1).strip())
    return None


STRATEGIES: list[Strategy] = [
    Strategy("structured", _structured, provides_metadata=True),
    Strategy("labeled", _labeled, provides_metadata=True),
    Strategy("bare_numeric", _bare_numeric),
    Strategy("whole_body", _whole_body),
    Strategy("tagged", _tagged),
]


def parse_descriptor(
    raw_body: Optional[str],
    strategies: Optional[list[Strategy]] = None,
) -> ParsedDescriptor:
    """
    Parse a descriptor body into version and metadata.
    
    The first strategy that yields a version wins. Strategies that can
    also yield metadata keep filling download URL and changelog after
    the version is known, without overwriting fields already set.
    
    Args:
        raw_body: Response body as text
        strategies: Override the default cascade
        
    Returns:
        ParsedDescriptor, with version None if nothing matched
    """
    body = (raw_body or "").strip()
    result = ParsedDescriptor()
    if not body:
        return result

    for strategy in strategies if strategies is not None else STRATEGIES:
        if result.found:
            if not strategy.provides_metadata:
                continue
            if result.download_url and result.changelog:
                break

        match = strategy(body)
        if match is None:
            continue

        if match.version and not result.found:
            match = replace(match, strategy=strategy.name)
            logger.debug(f"Found version {match.version!r} using {strategy.name}")
        result = result.merged_with(match)

    if not result.found:
        logger.debug("No version found in descriptor")
    return result
