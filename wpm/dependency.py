"""
Version-range constraints that one package version places on another package.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Union

from wpm.errors import ParseError
from wpm.version import Version, to_version

if TYPE_CHECKING:
    from wpm.package import PackageVersion


@dataclass(frozen=True)
class Dependency:
    """
    A package id plus a version range.

    The range notation used by catalogs is ``[1.0, 2.0)``: square brackets
    include the bound, round ones exclude it.
    """

    package_id: str
    min: Version
    max: Version
    min_inclusive: bool = True
    max_inclusive: bool = True

    def __post_init__(self):
        if not self.package_id:
            raise ParseError("A dependency needs a package id")
        object.__setattr__(self, "min", to_version(self.min))
        object.__setattr__(self, "max", to_version(self.max))
        if self.min > self.max:
            raise ParseError(
                f"Invalid range for {self.package_id}: {self.min} is greater than {self.max}"
            )

    @classmethod
    def parse(cls, package_id: str, versions: str) -> "Dependency":
        """Build a dependency from range notation like ``[1.2, 2)``."""
        text = versions.strip() if isinstance(versions, str) else ""
        if len(text) < 2 or text[0] not in "[(" or text[-1] not in "])":
            raise ParseError(f"Invalid version range for {package_id}: {versions!r}")

        bounds = text[1:-1].split(",")
        if len(bounds) != 2:
            raise ParseError(f"Invalid version range for {package_id}: {versions!r}")

        return cls(
            package_id=package_id,
            min=Version.parse(bounds[0]),
            max=Version.parse(bounds[1]),
            min_inclusive=text[0] == "[",
            max_inclusive=text[-1] == "]",
        )

    def matches(self, version: Union[Version, str]) -> bool:
        """Return True when ``version`` lies inside the range."""
        v = to_version(version)

        low = v.compare(self.min)
        if low < 0 or (low == 0 and not self.min_inclusive):
            return False

        high = v.compare(self.max)
        if high > 0 or (high == 0 and not self.max_inclusive):
            return False

        return True

    def matches_package_version(self, pv: "PackageVersion") -> bool:
        return pv.package_id == self.package_id and self.matches(pv.version)

    def versions_string(self) -> str:
        left = "[" if self.min_inclusive else "("
        right = "]" if self.max_inclusive else ")"
        return f"{left}{self.min}, {self.max}{right}"

    def __str__(self) -> str:
        return f"{self.package_id} {self.versions_string()}"
