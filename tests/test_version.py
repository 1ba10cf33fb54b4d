#!/usr/bin/env python3
"""
Tests for dotted numeric versions
"""

import itertools
import unittest

import pytest

from wpm.errors import ParseError
from wpm.version import Version, compare, to_version


class TestVersionParsing(unittest.TestCase):
    """Test Version construction"""

    def test_parse_simple(self):
        v = Version.parse("1.2.3")
        self.assertEqual(v.components, (1, 2, 3))
        self.assertEqual(str(v), "1.2.3")

    def test_trailing_zeros_are_normalized(self):
        self.assertEqual(Version.parse("1.2.0").components, (1, 2))
        self.assertEqual(str(Version.parse("1.0.0")), "1")
        self.assertEqual(str(Version.parse("0.0")), "0")

    def test_whitespace_is_stripped(self):
        self.assertEqual(Version.parse("  2.5 "), Version.of(2, 5))

    def test_of_integers(self):
        self.assertEqual(Version.of(1, 0), Version.parse("1"))

    def test_to_version_accepts_both_forms(self):
        v = Version.of(3)
        self.assertIs(to_version(v), v)
        self.assertEqual(to_version("3.0"), v)


@pytest.mark.parametrize(
    "text", ["", "   ", "1.a", "1..2", "-1", "1.2b", "v1", "1,2", "١.٢", "1. 2", "1 .2", "1.2.", ".1", "1\n.2"]
)
def test_malformed_versions_raise_parse_error(text):
    with pytest.raises(ParseError):
        Version.parse(text)


def test_negative_component_rejected():
    with pytest.raises(ParseError):
        Version.of(1, -2)


def test_parse_error_is_value_error():
    with pytest.raises(ValueError):
        Version.parse("x")


class TestVersionOrdering(unittest.TestCase):
    """Test comparison and hashing"""

    def test_missing_components_are_zero(self):
        self.assertEqual(compare(Version.parse("1.2"), Version.parse("1.2.0")), 0)
        self.assertEqual(Version.parse("1.2"), Version.parse("1.2.0.0"))
        self.assertEqual(hash(Version.parse("1.2")), hash(Version.parse("1.2.0")))

    def test_component_wise(self):
        self.assertLess(Version.parse("1.2"), Version.parse("1.10"))
        self.assertGreater(Version.parse("2"), Version.parse("1.99.99"))
        self.assertLess(Version.parse("1.2"), Version.parse("1.2.1"))

    def test_compare_values(self):
        a, b = Version.parse("1.0"), Version.parse("1.1")
        self.assertEqual(compare(a, b), -1)
        self.assertEqual(compare(b, a), 1)
        self.assertEqual(a.compare(a), 0)

    def test_max_picks_newest(self):
        versions = [Version.parse(s) for s in ["1.9", "1.10", "1.2.5"]]
        self.assertEqual(max(versions), Version.parse("1.10"))

    def test_not_comparable_with_strings(self):
        with self.assertRaises(TypeError):
            Version.parse("1") < "2"


def test_compare_is_a_total_order():
    samples = [Version.parse(s) for s in ["0", "0.1", "1", "1.0.1", "1.2", "1.2.0", "1.10", "2"]]
    for a, b in itertools.product(samples, repeat=2):
        outcomes = [a < b, a == b, a > b]
        assert outcomes.count(True) == 1
        assert compare(a, b) == -compare(b, a)
    for a, b, c in itertools.product(samples, repeat=3):
        if a <= b and b <= c:
            assert a <= c
