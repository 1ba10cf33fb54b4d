"""
Install and uninstall steps and helpers for ordered plans.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Iterable

from wpm.package import PackageVersion
from wpm.version import Version


class OperationKind(Enum):
    """What an operation does to its target"""

    INSTALL = "install"
    UNINSTALL = "uninstall"


@dataclass(frozen=True)
class InstallOperation:
    """One atomic step of a plan."""

    target: PackageVersion
    kind: OperationKind

    @classmethod
    def install_of(cls, pv: PackageVersion) -> "InstallOperation":
        return cls(target=pv, kind=OperationKind.INSTALL)

    @classmethod
    def uninstall_of(cls, pv: PackageVersion) -> "InstallOperation":
        return cls(target=pv, kind=OperationKind.UNINSTALL)

    @property
    def install(self) -> bool:
        return self.kind is OperationKind.INSTALL

    def is_applied(self) -> bool:
        """True when the target is already in the state this step produces."""
        return self.target.installed == self.install

    def __str__(self) -> str:
        return f"{self.kind.value} {self.target}"


def deduplicate(ops: Iterable[InstallOperation]) -> list[InstallOperation]:
    """Drop repeated identical operations, keeping the first occurrence."""
    seen: set[tuple[tuple[str, Version], OperationKind]] = set()
    result = []
    for op in ops:
        marker = (op.target.key, op.kind)
        if marker in seen:
            continue
        seen.add(marker)
        result.append(op)
    return result


def find_contradictions(ops: Iterable[InstallOperation]) -> list[tuple[str, Version]]:
    """Keys of package versions that are both installed and uninstalled."""
    installs: set[tuple[str, Version]] = set()
    uninstalls: set[tuple[str, Version]] = set()
    order: list[tuple[str, Version]] = []
    for op in ops:
        key = op.target.key
        (installs if op.install else uninstalls).add(key)
        if key not in order:
            order.append(key)
    return [key for key in order if key in installs and key in uninstalls]
