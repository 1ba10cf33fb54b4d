"""
Catalog entries: packages and their installable versions.
"""

from __future__ import annotations

import fnmatch
import os
from dataclasses import dataclass, field
from typing import Optional

from wpm.dependency import Dependency
from wpm.version import Version, to_version


@dataclass(eq=False)
class License:
    """A software license. Packages refer to it by name."""

    name: str
    title: str = ""
    description: str = ""
    url: str = ""

    def __post_init__(self):
        if not self.name:
            raise ValueError("A license needs a name")
        if not self.title:
            self.title = self.name

    def update_metadata(self, other: "License") -> None:
        self.title = other.title
        self.description = other.description
        self.url = other.url

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, License):
            return NotImplemented
        return self.name == other.name

    def __hash__(self) -> int:
        return hash(self.name)

    def __str__(self) -> str:
        return self.title


@dataclass(eq=False)
class Package:
    """
    A distinct piece of software identified by a reverse-DNS id.

    ``license`` holds the name of a License in the same Repository, or "".
    """

    id: str
    title: str = ""
    description: str = ""
    url: str = ""
    icon_url: str = ""
    category: str = ""
    license: str = ""

    def __post_init__(self):
        if not self.id:
            raise ValueError("A package needs an id")
        if not self.title:
            self.title = self.id

    @property
    def short_name(self) -> str:
        """``Word`` for ``org.server.Word``."""
        return self.id.rsplit(".", 1)[-1]

    def update_metadata(self, other: "Package") -> None:
        self.title = other.title
        self.description = other.description
        self.url = other.url
        self.icon_url = other.icon_url
        self.category = other.category
        self.license = other.license

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Package):
            return NotImplemented
        return self.id == other.id

    def __hash__(self) -> int:
        return hash(self.id)

    def __str__(self) -> str:
        return self.title


@dataclass(frozen=True)
class DetectionRule:
    """
    Recognizes an existing installation of a package version by the files
    present in a directory. External detectors use it; the planner does not.
    """

    path_pattern: str
    required_files: tuple[str, ...] = ()

    def matches(self, install_path: str) -> bool:
        normalized = os.path.normcase(os.path.normpath(install_path))
        pattern = os.path.normcase(os.path.normpath(self.path_pattern))
        if not fnmatch.fnmatch(normalized, pattern):
            return False
        return all(
            os.path.exists(os.path.join(install_path, name))
            for name in self.required_files
        )


@dataclass(eq=False)
class PackageVersion:
    """
    One installable revision of a package.

    ``install_path``, ``external`` and ``locked`` belong to the Repository
    and change only under its write lock.
    """

    package_id: str
    version: Version
    dependencies: list[Dependency] = field(default_factory=list)
    detection_rule: Optional[DetectionRule] = None
    install_path: Optional[str] = None
    external: bool = False
    locked: bool = False

    def __post_init__(self):
        self.version = to_version(self.version)

    @property
    def key(self) -> tuple[str, Version]:
        return (self.package_id, self.version)

    @property
    def installed(self) -> bool:
        return self.install_path is not None

    def find_dependency_on(self, package_id: str) -> Optional[Dependency]:
        for dep in self.dependencies:
            if dep.package_id == package_id:
                return dep
        return None

    def depends_on(self, other: "PackageVersion") -> bool:
        """True if one of the dependencies is satisfied by ``other``."""
        return any(d.matches_package_version(other) for d in self.dependencies)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, PackageVersion):
            return NotImplemented
        return self.key == other.key

    def __hash__(self) -> int:
        return hash(self.key)

    def __str__(self) -> str:
        return f"{self.package_id} {self.version}"

    def __repr__(self) -> str:
        return f"PackageVersion({self.package_id!r}, {str(self.version)!r})"
