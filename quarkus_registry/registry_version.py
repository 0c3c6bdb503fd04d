#!/usr/bin/env python3
"""
Version parsing and ordering for platform releases.

Two orders are provided:

* the sortable key (``00002.00001.00000.CR1``), a plain string whose
  lexicographic order follows the numeric components, used to lay out
  stream ids deterministically;
* the recency order, Maven-style qualifier ranking on top of the numeric
  components, used to pick recommended releases.
"""
import re
import logging
import functools
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

logger = logging.getLogger("quarkus.registry.version")

_TOKEN = re.compile(r"[^.\-]+")
_QUALIFIER_TOKEN = re.compile(r"[0-9]+|[^0-9.\-]+")

# Maven qualifier ranking; the empty string is the release itself.
_QUALIFIERS = ["alpha", "beta", "milestone", "rc", "snapshot", "", "sp"]
_RELEASE_INDEX = _QUALIFIERS.index("")
_ALIASES = {"ga": "", "final": "", "release": "", "cr": "rc"}
_SHORT_ALIASES = {"a": "alpha", "b": "beta", "m": "milestone"}

# Item ranks: pre-release qualifiers < release (or 0) < sp and unknown qualifiers < numbers
_NULL_ITEM = (1, 0, "")


def _cmp(a, b) -> int:
    return (a > b) - (a < b)


def _split(text: str) -> Tuple[List[int], str, Optional[str]]:
    """Numeric components, qualifier and the token that cut the numeric components short, if any."""
    numbers: List[int] = []
    for match in _TOKEN.finditer(text):
        token = match.group(0)
        if len(numbers) < 3 and token.isascii() and token.isdigit():
            numbers.append(int(token))
            continue
        bad = token if len(numbers) < 3 else None
        return numbers, text[match.start():], bad
    return numbers, "", None


def _number_item(value: int) -> Tuple[int, int, str]:
    return _NULL_ITEM if value == 0 else (3, value, "")


def _qualifier_item(token: str, followed_by_digit: bool) -> Tuple[int, int, str]:
    if token.isascii() and token.isdigit():
        return _number_item(int(token))
    if followed_by_digit:
        # 1.0a1 is 1.0-alpha-1
        token = _SHORT_ALIASES.get(token, token)
    token = _ALIASES.get(token, token)
    if token not in _QUALIFIERS:
        # Unknown qualifiers sort after all known ones, then alphabetically
        return (2, len(_QUALIFIERS), token)
    index = _QUALIFIERS.index(token)
    if index == _RELEASE_INDEX:
        return _NULL_ITEM
    return (0 if index < _RELEASE_INDEX else 2, index, "")


@functools.total_ordering
class ComparableVersion:
    """Maven-style comparable version.

    Major, minor and patch compare numerically first. The qualifier is then
    split into number and word items: release qualifiers (``final``, ``ga``,
    ``release``) and zeros count as absent, pre-release qualifiers rank below
    an absent item and anything else above it, so that
    ``2.1.0.CR1 < 2.1.0.Final < 2.1.0.Final-redhat-00001``.

    Items are compared pairwise with missing ones treated as absent, which
    keeps the order total across arbitrary strings.
    """

    def __init__(self, version: str):
        self.value = version
        numbers, qualifier, _ = _split("" if version is None else str(version).strip())
        numbers += [0] * (3 - len(numbers))

        items = [_number_item(n) for n in numbers]
        text = qualifier.lower()
        for match in _QUALIFIER_TOKEN.finditer(text):
            followed_by_digit = match.end() < len(text) and text[match.end()].isdigit()
            items.append(_qualifier_item(match.group(0), followed_by_digit))
        while items and items[-1] == _NULL_ITEM:
            items.pop()
        self.items = tuple(items)

    def _padded(self, length: int) -> tuple:
        return self.items + (_NULL_ITEM,) * (length - len(self.items))

    def compare_to(self, other: "ComparableVersion") -> int:
        length = max(len(self.items), len(other.items))
        return _cmp(self._padded(length), other._padded(length))

    def __eq__(self, other):
        if not isinstance(other, ComparableVersion):
            return NotImplemented
        return self.items == other.items

    def __lt__(self, other):
        if not isinstance(other, ComparableVersion):
            return NotImplemented
        return self.compare_to(other) < 0

    def __hash__(self):
        return hash(self.items)

    def __repr__(self):
        return f"ComparableVersion({self.value!r})"


@dataclass(frozen=True)
class VersionKey:
    """Numeric components and qualifier of a version string."""
    major: int
    minor: int
    patch: int
    qualifier: str = ""
    raw: Optional[str] = field(default=None, compare=False)

    def __str__(self) -> str:
        if self.raw:
            return self.raw
        base = f"{self.major}.{self.minor}.{self.patch}"
        return f"{base}.{self.qualifier}" if self.qualifier else base

    def to_sortable(self) -> str:
        qualifier = f".{self.qualifier}" if self.qualifier else ""
        return f"{self.major:05d}.{self.minor:05d}.{self.patch:05d}{qualifier}"

    @property
    def stream_id(self) -> str:
        return f"{self.major}.{self.minor}"

    @property
    def comparable(self) -> ComparableVersion:
        return ComparableVersion(str(self))


def parse_version(raw: str) -> VersionKey:
    """
    Parse a version string into its numeric components and qualifier.

    Up to three leading all-digit tokens (separated by ``.`` or ``-``) become
    major, minor and patch; missing ones are 0. Everything from the first
    other token to the end of the string is the qualifier, so that
    ``1.2.3.Final-redhat-00001`` keeps ``Final-redhat-00001`` rather than
    just ``Final``. Never raises.

    Args:
        raw: Version string, e.g. ``2.1.0.CR1``

    Returns:
        VersionKey: Parsed version
    """
    text = "" if raw is None else str(raw).strip()
    numbers, qualifier, bad = _split(text)
    if not numbers:
        logger.warning(f"Version '{raw}' has no numeric components, defaulting to 0.0.0")
    elif bad is not None:
        logger.warning(f"Non-numeric segment '{bad}' in version '{raw}', "
                       f"defaulting the remaining components to 0")

    numbers += [0] * (3 - len(numbers))
    return VersionKey(numbers[0], numbers[1], numbers[2], qualifier, raw=text or None)


def to_sortable(version: str) -> str:
    """Lexicographically sortable form, e.g. ``1.2.3.Final -> 00001.00002.00003.Final``."""
    return parse_version(version).to_sortable()


def to_stream_id(version: str) -> str:
    """Stream id (``major.minor``) a version belongs to."""
    return parse_version(version).stream_id


def compare_recency(left: str, right: str) -> int:
    """Compare two version strings under the qualifier-aware recency order."""
    return ComparableVersion(left).compare_to(ComparableVersion(right))


recency_key = functools.cmp_to_key(compare_recency)
