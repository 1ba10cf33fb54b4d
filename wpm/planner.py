"""
Install planning.

Computes ordered, cycle-free lists of install and uninstall operations over
the dependency graph of a catalog. Planning is pure: it reads the catalog
and a snapshot of the installed set and never changes either.

Three entry points:
    - plan_installation: everything needed to install one package version
    - plan_uninstallation: the reverse-dependency closure of one version
    - plan_updates: replace installed versions with the newest ones
"""

import logging
from collections.abc import Callable, Iterable, Iterator
from typing import Optional, Union

from wpm.dependency import Dependency
from wpm.errors import (
    AvoidedPackageError,
    DependentPackagesLockedError,
    InternalPlanningError,
    InvalidArgumentError,
    PlanningError,
    SelfDependencyError,
    UnresolvedDependencyError,
)
from wpm.operations import InstallOperation, deduplicate, find_contradictions
from wpm.package import Package, PackageVersion

logger = logging.getLogger(__name__)

CandidateSource = Callable[[str], Iterable[PackageVersion]]


class InstalledSet:
    """
    Working copy of the installed package versions used while planning.

    Keeps the caller's order so that the same input always yields the same
    plan.
    """

    def __init__(self, versions: Iterable[PackageVersion] = ()):
        self._by_key: dict = {}
        for pv in versions:
            self._by_key.setdefault(pv.key, pv)

    def copy(self) -> "InstalledSet":
        return InstalledSet(self._by_key.values())

    def add(self, pv: PackageVersion) -> None:
        self._by_key.setdefault(pv.key, pv)

    def remove(self, pv: PackageVersion) -> None:
        self._by_key.pop(pv.key, None)

    def of_package(self, package_id: str) -> list[PackageVersion]:
        return [pv for pv in self._by_key.values() if pv.package_id == package_id]

    def newest_of(self, package_id: str) -> Optional[PackageVersion]:
        versions = self.of_package(package_id)
        return max(versions, key=lambda pv: pv.version) if versions else None

    def count_matching(self, dep: Dependency) -> int:
        return sum(1 for pv in self.of_package(dep.package_id) if dep.matches(pv.version))

    def __contains__(self, pv: object) -> bool:
        return isinstance(pv, PackageVersion) and pv.key in self._by_key

    def __iter__(self) -> Iterator[PackageVersion]:
        return iter(list(self._by_key.values()))

    def __len__(self) -> int:
        return len(self._by_key)


def _package_ids(packages: Iterable[Union[Package, str]]) -> set[str]:
    return {p.id if isinstance(p, Package) else p for p in packages}


class InstallPlanner:
    """
    Plans installations against a catalog.

    Args:
        candidates: returns all catalog versions of a package id
    """

    def __init__(self, candidates: CandidateSource):
        self._candidates = candidates

    def find_best_match(self, dep: Dependency) -> Optional[PackageVersion]:
        """Newest catalog version that satisfies ``dep``."""
        best = None
        for pv in self._candidates(dep.package_id):
            if dep.matches(pv.version) and (best is None or pv.version > best.version):
                best = pv
        return best

    def find_newest(self, package_id: str) -> Optional[PackageVersion]:
        versions = list(self._candidates(package_id))
        return max(versions, key=lambda pv: pv.version) if versions else None

    # ------------------------------------------------------------------
    # Installation
    # ------------------------------------------------------------------

    def plan_installation(
        self,
        target: PackageVersion,
        installed: Iterable[PackageVersion],
        avoid: Iterable[Union[Package, str]] = (),
    ) -> list[InstallOperation]:
        """
        Plan everything needed to bring ``target`` into the installed state.

        Args:
            target: version to install
            installed: currently installed versions
            avoid: packages (or ids) that must not be installed as dependencies

        Returns:
            Install operations, every dependency before its dependents

        Raises:
            SelfDependencyError, UnresolvedDependencyError, AvoidedPackageError
        """
        ops: list[InstallOperation] = []
        self._plan_installation_into(target, InstalledSet(installed), _package_ids(avoid), ops)
        logger.debug(f"Installation plan for {target}: {[str(op) for op in ops]}")
        return ops

    def _plan_installation_into(
        self,
        target: PackageVersion,
        working: InstalledSet,
        avoided: set[str],
        ops: list[InstallOperation],
    ) -> None:
        if target in working:
            if target.find_dependency_on(target.package_id) is not None:
                raise SelfDependencyError(
                    f"Packages cannot depend on themselves: {target} depends on {target.package_id}"
                )
            return
        self._visit(target, working, avoided, ops, [target.package_id])

    def _visit(
        self,
        pv: PackageVersion,
        working: InstalledSet,
        avoided: set[str],
        ops: list[InstallOperation],
        path: list[str],
    ) -> None:
        for dep in pv.dependencies:
            if dep.package_id in path:
                chain = " -> ".join(path + [dep.package_id])
                raise SelfDependencyError(f"Packages cannot depend on themselves: {chain}")

            if any(other != pv and dep.matches(other.version)
                   for other in working.of_package(dep.package_id)):
                continue

            candidate = self.find_best_match(dep)
            if candidate is None:
                raise UnresolvedDependencyError(f"Unsatisfied dependency of {pv}: {dep}")
            if candidate.package_id in avoided:
                raise AvoidedPackageError(
                    f"{pv} requires {candidate}, but {candidate.package_id} must not be changed"
                )

            logger.debug(f"{pv}: {dep} resolved to {candidate}")
            path.append(candidate.package_id)
            self._visit(candidate, working, avoided, ops, path)
            path.pop()

        ops.append(InstallOperation.install_of(pv))
        working.add(pv)

    # ------------------------------------------------------------------
    # Uninstallation
    # ------------------------------------------------------------------

    def plan_uninstallation(
        self,
        target: PackageVersion,
        installed: Iterable[PackageVersion],
    ) -> list[InstallOperation]:
        """
        Plan the removal of ``target`` and of every installed version that
        would be left without a satisfied dependency.

        Returns:
            Uninstall operations, dependents before what they depend on

        Raises:
            DependentPackagesLockedError
        """
        ops: list[InstallOperation] = []
        self._plan_uninstallation_into(target, InstalledSet(installed), ops)
        logger.debug(f"Uninstallation plan for {target}: {[str(op) for op in ops]}")
        return ops

    def _plan_uninstallation_into(
        self,
        target: PackageVersion,
        working: InstalledSet,
        ops: list[InstallOperation],
    ) -> None:
        if target not in working:
            return
        if target.locked:
            raise DependentPackagesLockedError(f"{target} is locked and cannot be uninstalled")
        self._remove(target, target, working, ops, set())

    def _remove(
        self,
        root: PackageVersion,
        pv: PackageVersion,
        working: InstalledSet,
        ops: list[InstallOperation],
        in_progress: set,
    ) -> None:
        in_progress.add(pv.key)

        # nested calls shrink the working set, so scan until it is stable
        while True:
            before = len(working)
            for other in working:
                if other.key in in_progress or other not in working:
                    continue
                for dep in other.dependencies:
                    if dep.matches_package_version(pv) and working.count_matching(dep) <= 1:
                        if other.locked or other.external:
                            reason = "locked" if other.locked else "not installed by this tool"
                            raise DependentPackagesLockedError(
                                f"Cannot uninstall {root}: {other} depends on {pv} and is {reason}"
                            )
                        self._remove(root, other, working, ops, in_progress)
                        break
            if len(working) == before:
                break

        ops.append(InstallOperation.uninstall_of(pv))
        working.remove(pv)

    # ------------------------------------------------------------------
    # Updates
    # ------------------------------------------------------------------

    def plan_updates(
        self,
        packages: Iterable[Package],
        installed: Iterable[PackageVersion],
    ) -> list[InstallOperation]:
        """
        Plan updates of the given packages to their newest versions.

        Args:
            packages: packages to update, no duplicates allowed
            installed: currently installed versions

        Raises:
            InvalidArgumentError: duplicates or a package that is not installed
            PlanningError: any error from install or uninstall planning
            InternalPlanningError: the merged plan is contradictory
        """
        packages = list(packages)
        ids = [p.id for p in packages]
        duplicates = sorted({i for i in ids if ids.count(i) > 1})
        if duplicates:
            raise InvalidArgumentError(f"Duplicate packages in the update request: {', '.join(duplicates)}")

        working = InstalledSet(installed)
        newest: list[PackageVersion] = []
        newest_installed: list[PackageVersion] = []

        for p in packages:
            b = working.newest_of(p.id)
            if b is None:
                raise InvalidArgumentError(f"No installed version found for the package {p.title}")
            a = self.find_newest(p.id)
            if a is None or a.version <= b.version:
                logger.debug(f"{p.id}: newest version {b.version} is already installed")
                continue
            newest.append(a)
            newest_installed.append(b)

        ops: list[InstallOperation] = []
        used = [False] * len(newest)

        # Many packages cannot be installed side by side. Where replacing the
        # old version directly (uninstall, then install) touches nothing else,
        # that order is used.
        for i, (a, b) in enumerate(zip(newest, newest_installed)):
            trial = working.copy()
            trial_ops: list[InstallOperation] = []
            try:
                self._plan_uninstallation_into(b, trial, trial_ops)
                self._plan_installation_into(a, trial, set(), trial_ops)
            except PlanningError as e:
                logger.debug(f"Direct replacement of {b} by {a} not possible: {e}")
                continue
            if len(trial_ops) == 2:
                used[i] = True
                working = trial
                ops.extend(trial_ops)

        for i, a in enumerate(newest):
            if not used[i]:
                self._plan_installation_into(a, working, set(), ops)

        for i, b in enumerate(newest_installed):
            if not used[i]:
                self._plan_uninstallation_into(b, working, ops)

        ops = deduplicate(ops)
        contradictions = find_contradictions(ops)
        if contradictions:
            names = ", ".join(f"{pid} {v}" for pid, v in contradictions)
            raise InternalPlanningError(f"Update plan both installs and uninstalls: {names}")

        logger.debug(f"Update plan: {[str(op) for op in ops]}")
        return ops
