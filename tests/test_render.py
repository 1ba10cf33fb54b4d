#!/usr/bin/env python3
"""
Tests for dependency tree and plan rendering
"""

import unittest

from wpm.dependency import Dependency
from wpm.operations import InstallOperation
from wpm.package import Package, PackageVersion
from wpm.render import describe_operations, render_dependency_tree
from wpm.repository import Repository


def make_pv(package_id, version, deps=()):
    return PackageVersion(package_id, version, dependencies=[Dependency.parse(d, r) for d, r in deps])


class TestDependencyTree(unittest.TestCase):
    """Test tree rendering"""

    def setUp(self):
        self.repo = Repository()
        self.repo.add_package(Package("org.example.Editor", title="Editor"))
        self.editor = self.repo.add_package_version(
            make_pv("org.example.Editor", "2.0", deps=[("org.example.Runtime", "[1, 2)"), ("org.example.Fonts", "[1, 1]")])
        )
        self.runtime = self.repo.add_package_version(make_pv("org.example.Runtime", "1.5"))

    def test_installed_and_missing_dependencies(self):
        self.repo.set_install_path(self.runtime, "C:\\Runtime")
        output = render_dependency_tree(self.repo, self.editor)

        self.assertIn("org.example.Editor 2", output)
        self.assertIn("org.example.Runtime 1.5", output)
        self.assertIn("C:\\Runtime", output)
        self.assertIn("org.example.Fonts [1, 1]", output)
        self.assertIn("(unresolved)", output)

    def test_available_dependency_shows_range(self):
        output = render_dependency_tree(self.repo, self.editor)
        self.assertIn("needs [1, 2)", output)

    def test_only_installed(self):
        output = render_dependency_tree(self.repo, self.editor, only_installed=True)
        self.assertNotIn("needs", output)
        self.assertIn("org.example.Runtime [1, 2)", output)

    def test_cycle_marked(self):
        self.repo.add_package_version(make_pv("org.example.Fonts", "1", deps=[("org.example.Editor", "[2, 2]")]))
        output = render_dependency_tree(self.repo, self.editor)
        self.assertIn("(cycle)", output)


class TestDescribeOperations(unittest.TestCase):
    """Test plan summaries"""

    def test_empty_plan(self):
        self.assertEqual(describe_operations([]), "Nothing to do.")

    def test_uninstalls_listed_first(self):
        old = make_pv("org.example.App", "1")
        new = make_pv("org.example.App", "2")
        text = describe_operations([InstallOperation.install_of(new), InstallOperation.uninstall_of(old)])

        lines = text.splitlines()
        self.assertEqual(lines[0], "The following 1 package version(s) will be uninstalled:")
        self.assertEqual(lines[1], "  • org.example.App 1")
        self.assertIn("The following 1 package version(s) will be installed:", lines)
        self.assertEqual(lines[-1], "  • org.example.App 2")

    def test_titles_from_repository(self):
        repo = Repository()
        repo.add_package(Package("org.example.App", title="Example App"))
        text = describe_operations([InstallOperation.install_of(make_pv("org.example.App", "2"))], repo)
        self.assertIn("Example App 2 (org.example.App)", text)


if __name__ == "__main__":
    unittest.main()
