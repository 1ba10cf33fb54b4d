"""
The package catalog.

A Repository owns every Package and PackageVersion it holds, keeps the
lookup indices, runs detection refreshes and applies plans. All access goes
through one reader/writer lock: lookups and planning read, everything that
changes the catalog or installed state writes.

Status-changed events are queued per thread while the write lock is held and
delivered on the mutating thread once it releases the lock, so listeners may
call back into the Repository. Listeners can therefore be called from several
threads.
"""

import logging
import threading
from collections import deque
from collections.abc import Callable, Iterable
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Iterator, Optional, Union

from wpm.errors import ExecutionError, PlanningError
from wpm.interfaces import CatalogLoader, Detector, InstalledStateStore, OperationExecutor
from wpm.job import Job
from wpm.operations import InstallOperation
from wpm.package import License, Package, PackageVersion
from wpm.planner import InstallPlanner
from wpm.utils.rwlock import ReadWriteLock
from wpm.version import Version, to_version

logger = logging.getLogger(__name__)

VersionLike = Union[Version, str]


@dataclass(frozen=True)
class StatusChangedEvent:
    """State of a package version right after it changed."""

    package_version: PackageVersion
    install_path: Optional[str]
    external: bool
    locked: bool

    @property
    def installed(self) -> bool:
        return self.install_path is not None


StatusListener = Callable[[StatusChangedEvent], None]


@dataclass
class ProcessResult:
    """Outcome of applying a plan"""

    total: int
    completed: int = 0
    skipped: int = 0
    cancelled: bool = False
    failed_index: Optional[int] = None
    failed_operation: Optional[InstallOperation] = None
    error: str = ""
    changed: list[PackageVersion] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return not self.error and not self.cancelled

    def remaining(self, operations: list[InstallOperation]) -> list[InstallOperation]:
        """The operations that were not applied, in plan order."""
        return list(operations[self.completed:])

    def raise_for_error(self) -> None:
        if self.error:
            raise ExecutionError(self.error, self.failed_index, self.failed_operation)


class Repository:
    """
    Concurrency-safe in-memory catalog of packages and package versions.

    Args:
        state_store: persistence for installed state, called after each change
    """

    def __init__(self, state_store: Optional[InstalledStateStore] = None):
        self.lock = ReadWriteLock()
        self.state_store = state_store
        self.planner = InstallPlanner(self._versions_of)

        self._packages: dict[str, Package] = {}
        self._versions: dict[str, list[PackageVersion]] = {}
        self._by_key: dict[tuple[str, Version], PackageVersion] = {}
        self._licenses: dict[str, License] = {}

        self._listeners: list[StatusListener] = []
        self._listeners_lock = threading.Lock()
        self._pending = threading.local()

    # =========================================================================
    # LOCKING AND NOTIFICATION
    # =========================================================================

    @contextmanager
    def _writing(self) -> Iterator[None]:
        try:
            with self.lock.write_locked():
                yield
        finally:
            if not self.lock.is_write_locked():
                self._dispatch_events()

    def add_listener(self, listener: StatusListener) -> None:
        with self._listeners_lock:
            self._listeners.append(listener)

    def remove_listener(self, listener: StatusListener) -> None:
        with self._listeners_lock:
            if listener in self._listeners:
                self._listeners.remove(listener)

    def _pending_events(self) -> deque:
        events = getattr(self._pending, "events", None)
        if events is None:
            events = self._pending.events = deque()
        return events

    def fire_status_changed(self, pv: PackageVersion) -> None:
        """
        Queue a status-changed event for the calling thread and deliver it
        now unless this thread holds the write lock.
        """
        self._pending_events().append(
            StatusChangedEvent(
                package_version=pv,
                install_path=pv.install_path,
                external=pv.external,
                locked=pv.locked,
            )
        )
        if not self.lock.is_write_locked():
            self._dispatch_events()

    def _dispatch_events(self) -> None:
        """
        Deliver the events queued by the calling thread, oldest first.

        Events fired by a listener (directly or through a Repository change)
        are appended to the same queue and delivered by the running loop
        after the current event has reached every listener.
        """
        if getattr(self._pending, "dispatching", False):
            return
        events = self._pending_events()
        self._pending.dispatching = True
        try:
            while events:
                event = events.popleft()
                with self._listeners_lock:
                    listeners = list(self._listeners)
                for listener in listeners:
                    try:
                        listener(event)
                    except Exception:
                        logger.exception(f"Status listener failed for {event.package_version}")
        finally:
            self._pending.dispatching = False

    # =========================================================================
    # CATALOG MUTATION
    # =========================================================================

    def add_package(self, package: Package) -> Package:
        """Add a package, or refresh the metadata of the one with the same id."""
        with self._writing():
            existing = self._packages.get(package.id)
            if existing is not None:
                if existing is not package:
                    existing.update_metadata(package)
                return existing
            self._packages[package.id] = package
            self._versions.setdefault(package.id, [])
            return package

    def add_package_version(self, pv: PackageVersion) -> PackageVersion:
        """
        Add a package version.

        Re-adding a known (package, version) refreshes its dependencies and
        detection rule but keeps the stored object and its installed state.

        Returns:
            The version object held by the catalog
        """
        with self._writing():
            return self._add_package_version(pv)

    def _add_package_version(self, pv: PackageVersion) -> PackageVersion:
        if pv.package_id not in self._packages:
            logger.debug(f"Creating placeholder package {pv.package_id}")
            self._packages[pv.package_id] = Package(pv.package_id)

        existing = self._by_key.get(pv.key)
        if existing is not None:
            if existing is not pv:
                existing.dependencies = list(pv.dependencies)
                existing.detection_rule = pv.detection_rule
            return existing

        self._versions.setdefault(pv.package_id, []).append(pv)
        self._by_key[pv.key] = pv
        return pv

    def find_or_create_package_version(self, package_id: str, version: VersionLike) -> PackageVersion:
        with self._writing():
            return self._find_or_create(package_id, to_version(version))

    def _find_or_create(self, package_id: str, version: Version) -> PackageVersion:
        pv = self._by_key.get((package_id, version))
        if pv is None:
            pv = self._add_package_version(PackageVersion(package_id, version))
        return pv

    def clear_packages(self) -> None:
        """Remove all packages together with their versions."""
        with self._writing():
            self._packages.clear()
            self._versions.clear()
            self._by_key.clear()

    def clear_package_versions(self) -> None:
        with self._writing():
            for versions in self._versions.values():
                versions.clear()
            self._by_key.clear()

    def clear(self) -> None:
        """Remove all licenses, packages and package versions."""
        with self._writing():
            self._licenses.clear()
            self.clear_packages()

    def add_license(self, lic: License) -> License:
        """Add a license, or refresh the one with the same name."""
        with self._writing():
            existing = self._licenses.get(lic.name)
            if existing is not None:
                if existing is not lic:
                    existing.update_metadata(lic)
                return existing
            self._licenses[lic.name] = lic
            return lic

    def set_install_path(
        self,
        pv: PackageVersion,
        install_path: Optional[str],
        external: bool = False,
    ) -> None:
        """Record where ``pv`` is installed; None marks it not installed."""
        with self._writing():
            stored = self._add_package_version(pv)
            self._apply_state(stored, install_path, external)

    def lock_package_version(self, pv: PackageVersion) -> None:
        """Protect ``pv`` from being uninstalled, e.g. while it is running."""
        self._set_locked(pv, True)

    def unlock_package_version(self, pv: PackageVersion) -> None:
        self._set_locked(pv, False)

    def _set_locked(self, pv: PackageVersion, locked: bool) -> None:
        with self._writing():
            stored = self._add_package_version(pv)
            if stored.locked != locked:
                stored.locked = locked
                self.fire_status_changed(stored)

    def _apply_state(
        self,
        pv: PackageVersion,
        install_path: Optional[str],
        external: bool,
        persist: bool = True,
    ) -> bool:
        if install_path is None:
            external = False
        if pv.install_path == install_path and pv.external == external:
            return False

        pv.install_path = install_path
        pv.external = external
        if persist and self.state_store is not None:
            self.state_store.save(pv)
        self.fire_status_changed(pv)
        return True

    # =========================================================================
    # LOOKUPS
    # =========================================================================

    def _versions_of(self, package_id: str) -> list[PackageVersion]:
        return list(self._versions.get(package_id, ()))

    def _installed(self) -> list[PackageVersion]:
        return [pv for versions in self._versions.values() for pv in versions if pv.installed]

    @property
    def package_count(self) -> int:
        with self.lock.read_locked():
            return len(self._packages)

    @property
    def package_version_count(self) -> int:
        with self.lock.read_locked():
            return len(self._by_key)

    def get_packages(self) -> list[Package]:
        with self.lock.read_locked():
            return list(self._packages.values())

    def find_package(self, package_id: str) -> Optional[Package]:
        with self.lock.read_locked():
            return self._packages.get(package_id)

    def get_licenses(self) -> list[License]:
        with self.lock.read_locked():
            return list(self._licenses.values())

    def find_license(self, name: str) -> Optional[License]:
        """Find a license by name, e.g. ``org.gnu.GPLv3``."""
        with self.lock.read_locked():
            return self._licenses.get(name)

    def find_packages(self, name: str) -> list[Package]:
        """
        Find packages by full id (``org.server.Word``) or by short name
        (``Word``, case-insensitive).
        """
        with self.lock.read_locked():
            exact = self._packages.get(name)
            if exact is not None:
                return [exact]
            wanted = name.lower()
            return sorted(
                (p for p in self._packages.values() if p.short_name.lower() == wanted),
                key=lambda p: p.id,
            )

    def get_package_versions(self, package_id: str) -> list[PackageVersion]:
        with self.lock.read_locked():
            return self._versions_of(package_id)

    def find_package_version(self, package_id: str, version: VersionLike) -> Optional[PackageVersion]:
        key = (package_id, to_version(version))
        with self.lock.read_locked():
            return self._by_key.get(key)

    def find_newest_installable_package_version(self, package_id: str) -> Optional[PackageVersion]:
        with self.lock.read_locked():
            return self.planner.find_newest(package_id)

    def find_newest_installed_package_version(self, package_id: str) -> Optional[PackageVersion]:
        with self.lock.read_locked():
            installed = [pv for pv in self._versions_of(package_id) if pv.installed]
            return max(installed, key=lambda pv: pv.version) if installed else None

    def get_installed(self) -> list[PackageVersion]:
        with self.lock.read_locked():
            return self._installed()

    def find_locked_package_version(self) -> Optional[PackageVersion]:
        with self.lock.read_locked():
            for pv in self._by_key.values():
                if pv.locked:
                    return pv
            return None

    def count_updates(self) -> int:
        """Number of installed packages with a newer version in the catalog."""
        with self.lock.read_locked():
            count = 0
            for versions in self._versions.values():
                installed = [pv.version for pv in versions if pv.installed]
                if installed and max(pv.version for pv in versions) > max(installed):
                    count += 1
            return count

    # =========================================================================
    # PLANNING
    # =========================================================================

    def plan_installation(
        self,
        pv: PackageVersion,
        avoid: Iterable[Union[Package, str]] = (),
    ) -> tuple[list[InstallOperation], str]:
        """
        Plan the installation of ``pv`` against the current installed state.

        Returns:
            (operations, "") on success, ([], message) on failure
        """
        with self.lock.read_locked():
            target = self._by_key.get(pv.key)
            if target is None:
                return [], _unknown_version_message(pv)
            try:
                return self.planner.plan_installation(target, self._installed(), avoid), ""
            except PlanningError as e:
                logger.warning(f"Cannot plan installation of {target}: {e}")
                return [], str(e)

    def plan_uninstallation(self, pv: PackageVersion) -> tuple[list[InstallOperation], str]:
        with self.lock.read_locked():
            target = self._by_key.get(pv.key)
            if target is None:
                return [], _unknown_version_message(pv)
            try:
                return self.planner.plan_uninstallation(target, self._installed()), ""
            except PlanningError as e:
                logger.warning(f"Cannot plan uninstallation of {target}: {e}")
                return [], str(e)

    def plan_updates(self, packages: Iterable[Package]) -> tuple[list[InstallOperation], str]:
        """
        Plan updates of ``packages`` to their newest versions.

        An inconsistent plan raises InternalPlanningError instead of
        returning a message.
        """
        with self.lock.read_locked():
            try:
                return self.planner.plan_updates(packages, self._installed()), ""
            except PlanningError as e:
                logger.warning(f"Cannot plan updates: {e}")
                return [], str(e)

    # =========================================================================
    # JOBS
    # =========================================================================

    def process(
        self,
        job: Job,
        operations: list[InstallOperation],
        executor: OperationExecutor,
    ) -> ProcessResult:
        """
        Apply a plan one operation at a time, in order.

        Operations whose result is already in place are skipped, so the
        unapplied suffix of a failed plan can be passed in again. Execution
        stops at the first failure; nothing is rolled back. Cancellation is
        checked before each operation and never interrupts a running one.
        """
        result = ProcessResult(total=len(operations))
        if not operations:
            job.complete()
            return result

        part = 1.0 / len(operations)
        with self._writing():
            for index, op in enumerate(operations):
                if job.is_cancelled():
                    result.cancelled = True
                    logger.info(f"Processing cancelled after {result.completed} of {len(operations)} operations")
                    break

                pv = self._by_key.get(op.target.key)
                if pv is None:
                    result.failed_index = index
                    result.failed_operation = op
                    result.error = f"Failed to {op.kind.value} {op.target}: the package version is not in the repository"
                    job.set_error_message(result.error)
                    break

                step = InstallOperation(target=pv, kind=op.kind)
                if step.is_applied():
                    logger.debug(f"Skipping {op}: already applied")
                    result.completed += 1
                    result.skipped += 1
                    job.set_progress((index + 1) * part)
                    continue

                sub = job.create_sub_job(part, f"{op.kind.value.capitalize()} {pv}")
                error = self._execute(step, executor, sub)
                if error:
                    result.failed_index = index
                    result.failed_operation = op
                    result.error = error
                    job.set_error_message(error)
                    break

                result.completed += 1
                result.changed.append(pv)
                sub.complete()
                logger.info(f"Finished {op} ({index + 1}/{len(operations)})")

        if result.success:
            job.complete()
        return result

    def _execute(self, op: InstallOperation, executor: OperationExecutor, job: Job) -> str:
        pv = op.target
        if not op.install and pv.locked:
            return f"Failed to uninstall {pv}: the package version is locked"

        try:
            path = executor.execute(op, job)
        except Exception as e:
            logger.error(f"Failed to {op.kind.value} {pv}: {e}")
            return f"Failed to {op.kind.value} {pv}: {e}"

        if job.error_message:
            return f"Failed to {op.kind.value} {pv}: {job.error_message}"

        if op.install:
            if not path:
                return f"Failed to install {pv}: no installation path was reported"
            self._apply_state(pv, path, external=False)
        else:
            self._apply_state(pv, None, external=False)
        return ""

    def recognize(self, job: Job, detector: Detector) -> list[PackageVersion]:
        """
        Refresh externally installed versions from a detector.

        Unknown versions are added to the catalog. Versions installed by this
        tool are never changed. External versions the detector no longer
        reports are marked not installed.

        Returns:
            Versions whose state changed
        """
        changed: list[PackageVersion] = []
        with self._writing():
            facts = list(detector.detect(job.create_sub_job(0.5, "Detecting installed software")))
            if job.is_cancelled() or job.error_message:
                return changed

            reported = set()
            for i, fact in enumerate(facts):
                pv = self._find_or_create(fact.package_id, to_version(fact.version))
                reported.add(pv.key)
                if pv.installed and not pv.external:
                    logger.debug(f"{pv} is managed by this tool, ignoring detected path {fact.install_path}")
                elif self._apply_state(pv, fact.install_path, external=True):
                    changed.append(pv)
                job.set_progress(0.5 + 0.4 * (i + 1) / len(facts))

            for pv in list(self._by_key.values()):
                if pv.external and pv.installed and pv.key not in reported:
                    self._apply_state(pv, None, external=False)
                    changed.append(pv)

            logger.info(f"Detection found {len(facts)} installations, {len(changed)} changed")
            job.complete()
        return changed

    def refresh(self, job: Job, detector: Detector) -> list[PackageVersion]:
        """
        Re-read the installed state from the state store, then run detection.

        Returns:
            Versions whose state was changed by detection
        """
        with self._writing():
            self.read_installed_state()
            if job.is_cancelled():
                return []
            return self.recognize(job, detector)

    def read_installed_state(self) -> None:
        """Load installed paths from the state store."""
        if self.state_store is None:
            return
        with self._writing():
            records = list(self.state_store.load())
            for record in records:
                pv = self._find_or_create(record.package_id, to_version(record.version))
                self._apply_state(pv, record.install_path, record.external, persist=False)
            logger.info(f"Read {len(records)} installed package versions")

    def reload(self, job: Job, loaders: Iterable[CatalogLoader]) -> None:
        """
        Replace the catalog with the content of ``loaders`` and re-read the
        installed state. Stops at the first loader that reports an error.
        """
        loaders = list(loaders)
        with self._writing():
            self.clear()
            part = 0.9 / len(loaders) if loaders else 0.0
            for loader in loaders:
                if job.is_cancelled():
                    return
                loader.load(self, job.create_sub_job(part, "Loading repositories"))
                if job.error_message:
                    return
            self.read_installed_state()
            logger.info(
                f"Loaded {len(self._packages)} packages with {len(self._by_key)} versions"
            )
        job.complete()


def _unknown_version_message(pv: PackageVersion) -> str:
    return f"{pv} is not in the repository"


_default: Optional[Repository] = None
_default_lock = threading.Lock()


def get_default() -> Repository:
    """The process-wide repository, created on first use."""
    global _default
    with _default_lock:
        if _default is None:
            _default = Repository()
        return _default


def reset_default(repository: Optional[Repository] = None) -> Repository:
    """Replace the process-wide repository with ``repository`` or a new one."""
    global _default
    with _default_lock:
        _default = repository if repository is not None else Repository()
        return _default
