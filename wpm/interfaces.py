"""
Boundaries to the collaborators the engine drives but does not implement:
catalog loaders, installation detectors, operation executors and the
persistent installed-state store.
"""

from abc import ABC, abstractmethod
from collections.abc import Iterable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional

from wpm.job import Job
from wpm.operations import InstallOperation
from wpm.package import PackageVersion
from wpm.version import Version

if TYPE_CHECKING:
    from wpm.repository import Repository


@dataclass(frozen=True)
class DetectedInstallation:
    """An existing installation found on the system."""

    package_id: str
    version: Version
    install_path: str


@dataclass(frozen=True)
class InstalledRecord:
    """One persisted installed-state entry."""

    package_id: str
    version: Version
    install_path: str
    external: bool = False


class CatalogLoader(ABC):
    """Feeds packages and versions from one catalog source."""

    @abstractmethod
    def load(self, repository: "Repository", job: Job) -> None:
        """Add records to ``repository``; report failures on ``job``."""
        pass


class Detector(ABC):
    """Finds software that is installed without this tool."""

    @abstractmethod
    def detect(self, job: Job) -> Iterable[DetectedInstallation]:
        pass


class OperationExecutor(ABC):
    """Performs one install or uninstall step on the system."""

    @abstractmethod
    def execute(self, operation: InstallOperation, job: Job) -> Optional[str]:
        """
        Run ``operation`` to completion.

        ``job`` is a sub-job of the plan. Calling ``job.cancel()`` also cancels
        the plan: the current operation still counts as done when this method
        returns normally, and no further operations are started.

        Returns:
            The install path for installs, None for uninstalls

        Raises:
            Exception: any failure; the engine records it and stops the plan
        """
        pass


class InstalledStateStore(ABC):
    """Persists which versions are installed and where."""

    @abstractmethod
    def save(self, pv: PackageVersion) -> None:
        """Called after every state change of ``pv``."""
        pass

    @abstractmethod
    def load(self) -> Iterable[InstalledRecord]:
        pass
