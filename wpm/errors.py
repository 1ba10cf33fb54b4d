"""
Error taxonomy for the package engine.

Planning errors are recoverable and user-facing: the Repository converts
them to messages at its public boundary. ``InternalPlanningError`` is fatal
and always propagates.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from wpm.operations import InstallOperation


class WpmError(Exception):
    """Base class for all engine errors."""


class ParseError(WpmError, ValueError):
    """Raised for malformed version or dependency input."""


class PlanningError(WpmError):
    """A plan could not be computed for the current catalog state."""


class UnresolvedDependencyError(PlanningError):
    """No catalog version satisfies a required dependency."""


class AvoidedPackageError(PlanningError):
    """The only way to satisfy a dependency touches a forbidden package."""


class SelfDependencyError(PlanningError):
    """A package depends on itself, directly or through other packages."""


class DependentPackagesLockedError(PlanningError):
    """An uninstallation would remove a locked or externally installed version."""


class InvalidArgumentError(PlanningError, ValueError):
    """The caller passed arguments that violate the planning contract."""


class InternalPlanningError(WpmError):
    """The planner produced an inconsistent result. Never recoverable."""


class ExecutionError(WpmError):
    """An operation executor failed while a plan was being applied."""

    def __init__(
        self,
        message: str,
        index: int = -1,
        operation: Optional["InstallOperation"] = None,
    ):
        super().__init__(message)
        self.index = index
        self.operation = operation
