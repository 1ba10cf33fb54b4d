"""
Dotted numeric package versions.
"""

from __future__ import annotations

import functools
import re
from dataclasses import dataclass, field
from typing import Union

from packaging.version import Version as _ReleaseKey

from wpm.errors import ParseError

__all__ = [
    "Version",
    "compare",
    "to_version",
]

_VERSION_RE = re.compile(r"[0-9]+(?:\.[0-9]+)*")


@functools.total_ordering
@dataclass(frozen=True)
class Version:
    """
    An ordered sequence of non-negative integer components such as ``1.2.0``.

    Trailing zero components are dropped on construction, so ``1.2`` and
    ``1.2.0`` are the same value, hash equally and print as ``1.2``.
    """

    components: tuple[int, ...] = (0,)
    _key: _ReleaseKey = field(init=False, repr=False, compare=False, hash=False)

    def __post_init__(self):
        parts = tuple(self.components)
        if not parts:
            raise ParseError("A version needs at least one component")
        for part in parts:
            if isinstance(part, bool) or not isinstance(part, int) or part < 0:
                raise ParseError(f"Invalid version component: {part!r}")
        while len(parts) > 1 and parts[-1] == 0:
            parts = parts[:-1]
        object.__setattr__(self, "components", parts)
        object.__setattr__(self, "_key", _ReleaseKey(".".join(str(c) for c in parts)))

    @classmethod
    def parse(cls, text: str) -> "Version":
        if not isinstance(text, str):
            raise ParseError(f"Version must be a string, got {type(text).__name__}")
        raw = text.strip()
        if not raw:
            raise ParseError("Empty version string")
        if not _VERSION_RE.fullmatch(raw):
            raise ParseError(f"Invalid version string: {text!r}")
        return cls(tuple(int(piece) for piece in raw.split(".")))

    @classmethod
    def of(cls, *components: int) -> "Version":
        return cls(tuple(components))

    def compare(self, other: "Version") -> int:
        """Return -1, 0 or 1. Missing components count as zero."""
        if self._key == other._key:
            return 0
        return -1 if self._key < other._key else 1

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, Version):
            return NotImplemented
        return self.compare(other) < 0

    def __str__(self) -> str:
        return ".".join(str(c) for c in self.components)

    def __repr__(self) -> str:
        return f"Version('{self}')"


def to_version(value: Union[Version, str]) -> Version:
    """Accept a Version or its string form."""
    if isinstance(value, Version):
        return value
    return Version.parse(value)


def compare(a: Version, b: Version) -> int:
    return a.compare(b)
