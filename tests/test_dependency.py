#!/usr/bin/env python3
"""
Tests for version-range dependencies
"""

import unittest

import pytest

from wpm.dependency import Dependency
from wpm.errors import ParseError
from wpm.package import PackageVersion
from wpm.version import Version


class TestDependencyMatching(unittest.TestCase):
    """Test range membership"""

    def setUp(self):
        self.dep = Dependency.parse("org.example.Lib", "[1.2, 2)")

    def test_parse_bounds(self):
        self.assertEqual(self.dep.min, Version.of(1, 2))
        self.assertEqual(self.dep.max, Version.of(2))
        self.assertTrue(self.dep.min_inclusive)
        self.assertFalse(self.dep.max_inclusive)

    def test_inclusive_lower_bound(self):
        self.assertTrue(self.dep.matches("1.2"))
        self.assertTrue(self.dep.matches("1.2.0"))
        self.assertFalse(self.dep.matches("1.1.9"))

    def test_exclusive_upper_bound(self):
        self.assertTrue(self.dep.matches("1.99"))
        self.assertFalse(self.dep.matches("2"))
        self.assertFalse(self.dep.matches("2.0.0"))

    def test_exclusive_lower_bound(self):
        dep = Dependency.parse("a", "(1, 3]")
        self.assertFalse(dep.matches("1"))
        self.assertTrue(dep.matches("1.0.1"))
        self.assertTrue(dep.matches("3"))

    def test_matches_package_version_checks_package(self):
        self.assertTrue(self.dep.matches_package_version(PackageVersion("org.example.Lib", "1.5")))
        self.assertFalse(self.dep.matches_package_version(PackageVersion("org.example.Other", "1.5")))

    def test_string_forms(self):
        self.assertEqual(self.dep.versions_string(), "[1.2, 2)")
        self.assertEqual(str(self.dep), "org.example.Lib [1.2, 2)")
        again = Dependency.parse("org.example.Lib", self.dep.versions_string())
        self.assertEqual(again, self.dep)

    def test_constructor_accepts_strings(self):
        dep = Dependency("x", "1", "1.0")
        self.assertEqual(dep.min, dep.max)
        self.assertTrue(dep.matches("1"))


@pytest.mark.parametrize(
    "versions",
    ["", "1, 2", "[1, 2", "[1; 2]", "[1, 2, 3]", "[a, 2]", "[3, 2]"],
)
def test_invalid_ranges(versions):
    with pytest.raises(ParseError):
        Dependency.parse("org.example.Lib", versions)


def test_min_greater_than_max_rejected():
    with pytest.raises(ParseError):
        Dependency("p", Version.of(2), Version.of(1))


def test_empty_package_id_rejected():
    with pytest.raises(ParseError):
        Dependency("", Version.of(1), Version.of(2))


@pytest.mark.parametrize(
    "min_inclusive,max_inclusive",
    [(True, True), (True, False), (False, True), (False, False)],
)
def test_matches_agrees_with_bounds(min_inclusive, max_inclusive):
    dep = Dependency("p", Version.of(1), Version.of(2), min_inclusive, max_inclusive)
    for text in ["0.9", "1", "1.5", "2", "2.1"]:
        v = Version.parse(text)
        above = v > dep.min or (min_inclusive and v == dep.min)
        below = v < dep.max or (max_inclusive and v == dep.max)
        assert dep.matches(v) == (above and below)
