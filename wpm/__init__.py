from importlib import metadata

from .dependency import Dependency
from .errors import (
    AvoidedPackageError,
    DependentPackagesLockedError,
    ExecutionError,
    InternalPlanningError,
    InvalidArgumentError,
    ParseError,
    PlanningError,
    SelfDependencyError,
    UnresolvedDependencyError,
    WpmError,
)
from .job import Job
from .operations import InstallOperation, OperationKind
from .package import License, Package, PackageVersion
from .repository import ProcessResult, Repository, get_default, reset_default
from .version import Version

try:
    __version__ = metadata.version("wpm-core")
except metadata.PackageNotFoundError:
    __version__ = "0.1.0"

__all__ = [
    "__version__",
    "AvoidedPackageError",
    "Dependency",
    "DependentPackagesLockedError",
    "ExecutionError",
    "InstallOperation",
    "InternalPlanningError",
    "InvalidArgumentError",
    "Job",
    "License",
    "OperationKind",
    "Package",
    "PackageVersion",
    "ParseError",
    "PlanningError",
    "ProcessResult",
    "Repository",
    "SelfDependencyError",
    "UnresolvedDependencyError",
    "Version",
    "WpmError",
    "get_default",
    "reset_default",
]
