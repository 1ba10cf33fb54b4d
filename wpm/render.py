"""
Text rendering of dependency trees and plans.
"""

from io import StringIO
from typing import Optional

from rich.console import Console
from rich.markup import escape
from rich.tree import Tree

from wpm.dependency import Dependency
from wpm.operations import InstallOperation
from wpm.package import PackageVersion
from wpm.repository import Repository

INSTALLED = "✅"
MISSING = "❌"
AVAILABLE = "📥"
CYCLE = "⚠️"


def _choose(repository: Repository, dep: Dependency, only_installed: bool) -> Optional[PackageVersion]:
    """Highest installed match, or the newest installable one."""
    candidates = [pv for pv in repository.get_package_versions(dep.package_id) if dep.matches(pv.version)]
    installed = [pv for pv in candidates if pv.installed]
    if installed:
        return max(installed, key=lambda pv: pv.version)
    if only_installed or not candidates:
        return None
    return max(candidates, key=lambda pv: pv.version)


def _add_dependencies(
    repository: Repository,
    parent: Tree,
    pv: PackageVersion,
    only_installed: bool,
    path: list[str],
) -> None:
    for dep in pv.dependencies:
        chosen = _choose(repository, dep, only_installed)
        if chosen is None:
            parent.add(f"{MISSING} [red]{escape(str(dep))}[/red] [dim](unresolved)[/dim]")
            continue

        if chosen.package_id in path:
            parent.add(f"{CYCLE} [yellow]{escape(str(chosen))}[/yellow] [dim](cycle)[/dim]")
            continue

        if chosen.installed:
            label = f"{INSTALLED} [green]{escape(str(chosen))}[/green] [dim]{escape(chosen.install_path)}[/dim]"
        else:
            label = f"{AVAILABLE} {escape(str(chosen))} [dim italic](needs {escape(dep.versions_string())})[/dim italic]"

        branch = parent.add(label)
        path.append(chosen.package_id)
        _add_dependencies(repository, branch, chosen, only_installed, path)
        path.pop()


def render_dependency_tree(
    repository: Repository,
    pv: PackageVersion,
    only_installed: bool = False,
    width: int = 120,
) -> str:
    """
    Render the dependencies of ``pv`` as a tree.

    Args:
        repository: catalog used to resolve each dependency
        pv: root package version
        only_installed: only follow dependencies satisfied by installed versions
        width: console width

    Returns:
        Rendered tree without color codes
    """
    tree = Tree(f"📦 [bold blue]{escape(str(pv))}[/bold blue]")
    with repository.lock.read_locked():
        _add_dependencies(repository, tree, pv, only_installed, [pv.package_id])

    output = StringIO()
    console = Console(file=output, force_terminal=False, color_system=None, width=width)
    console.print(tree)
    return output.getvalue()


def describe_operations(ops: list[InstallOperation], repository: Optional[Repository] = None) -> str:
    """
    Plain-language summary of what a plan will do, uninstallations first.
    """
    if not ops:
        return "Nothing to do."

    def name(op: InstallOperation) -> str:
        pv = op.target
        if repository is not None:
            package = repository.find_package(pv.package_id)
            if package is not None and package.title != pv.package_id:
                return f"{package.title} {pv.version} ({pv.package_id})"
        return str(pv)

    uninstalls = [name(op) for op in ops if not op.install]
    installs = [name(op) for op in ops if op.install]

    lines = []
    if uninstalls:
        lines.append(f"The following {len(uninstalls)} package version(s) will be uninstalled:")
        lines.extend(f"  • {n}" for n in uninstalls)
    if installs:
        if lines:
            lines.append("")
        lines.append(f"The following {len(installs)} package version(s) will be installed:")
        lines.extend(f"  • {n}" for n in installs)
    return "\n".join(lines)
