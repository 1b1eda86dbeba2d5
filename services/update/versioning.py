"""Helpers for parsing and comparing semantic release versions."""

from __future__ import annotations

import functools
import re
from typing import Tuple, Union

from packaging.version import Version

from services.update.models import VersionParseError


__all__ = [
    "SemanticVersion",
    "is_version_newer",
    "parse_release_tag",
    "parse_version",
]

_SEMVER_PATTERN = re.compile(
    r"^(?P<core>(?:0|[1-9]\d*)\.(?:0|[1-9]\d*)\.(?:0|[1-9]\d*))"
    r"(?:-(?P<pre>[0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*))?"
    r"(?:\+(?P<build>[0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*))?$"
)

_PrecedenceKey = Tuple[Version, int, Tuple[Tuple[int, Union[int, str]], ...]]


@functools.total_ordering
class SemanticVersion:
    """A semantic version that keeps its original spelling.

    Releases are ordered by their numeric core through
    :class:`packaging.version.Version`.  Pre-release identifiers follow semantic
    versioning precedence: numeric identifiers compare numerically and sort
    before alphanumeric ones, which compare in ASCII order, and a shorter list
    of identifiers sorts first when it is a prefix of a longer one.  A
    pre-release sorts before the plain release; build metadata is ignored.
    """

    __slots__ = ("_text", "_key")

    def __init__(self, text: str, key: _PrecedenceKey) -> None:
        self._text = text
        self._key = key

    def __str__(self) -> str:
        return self._text

    def __repr__(self) -> str:
        return f"SemanticVersion({self._text!r})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, SemanticVersion):
            return NotImplemented
        return self._key == other._key

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, SemanticVersion):
            return NotImplemented
        return self._key < other._key

    def __hash__(self) -> int:
        return hash(self._key)


def parse_version(text: str) -> SemanticVersion:
    """Parse ``text`` as a semantic version or raise :class:`VersionParseError`."""

    if not isinstance(text, str):
        raise VersionParseError(f"Version must be a string, got {type(text).__name__}")
    candidate = text.strip()
    match = _SEMVER_PATTERN.match(candidate)
    if match is None:
        raise VersionParseError(f"'{text}' is not a valid semantic version")

    core = Version(match.group("core"))
    prerelease = match.group("pre")
    if prerelease is None:
        key: _PrecedenceKey = (core, 1, ())
    else:
        key = (core, 0, _prerelease_identifiers(prerelease))
    return SemanticVersion(candidate, key)


def parse_release_tag(tag: str) -> SemanticVersion:
    """Parse a release tag, allowing a single leading ``v`` (``v0.3.1``)."""

    cleaned = str(tag or "").strip()
    if cleaned.startswith("v"):
        cleaned = cleaned[1:]
    return parse_version(cleaned)


def is_version_newer(current: SemanticVersion, candidate: SemanticVersion) -> bool:
    """Return ``True`` if ``candidate`` is strictly newer than ``current``."""

    return candidate > current


def _prerelease_identifiers(prerelease: str) -> Tuple[Tuple[int, Union[int, str]], ...]:
    identifiers = []
    for raw in prerelease.split("."):
        if raw.isdigit():
            identifiers.append((0, int(raw)))
        else:
            identifiers.append((1, raw))
    return tuple(identifiers)
