"""Tests for version parsing, ordering and range satisfaction."""

import pytest

from versioning.models import (
    AnyVersion,
    Comparison,
    Intersection,
    MajorBound,
    NoVersion,
    Union,
    Wildcard,
    compare,
    satisfies,
)
from versioning.parser import VersionParseError, parse_dependency, parse_range, parse_version


def v(text):
    return parse_version(text)


class TestParseVersion:
    """Version text parsing and rendering."""

    def test_parse_and_render(self):
        assert v("1.2.0").components == (1, 2, 0)
        assert v("1.2.0").render() == "1.2.0"
        assert str(v(" 4.17 ")) == "4.17"

    def test_leading_zeros_render_canonically(self):
        assert v("01.002").render() == "1.2"

    @pytest.mark.parametrize("text", ["", "1.", ".1", "1..2", "v1.0", "1.0a", "-1", "1.2.*"])
    def test_rejects_malformed(self, text):
        with pytest.raises(VersionParseError):
            parse_version(text)

    def test_parse_error_is_value_error(self):
        with pytest.raises(ValueError):
            parse_version("abc")


class TestVersionOrdering:
    """Component-wise ordering with zero padding."""

    def test_padding_equality(self):
        assert v("1.0") == v("1.0.0")
        assert hash(v("1.0")) == hash(v("1.0.0"))
        assert compare(v("1.0"), v("1.0.0")) == 0

    def test_longer_prefix_sorts_by_component(self):
        assert v("1.2") > v("1.1.9")
        assert compare(v("1.1.9"), v("1.2")) == -1
        assert compare(v("2"), v("1.99.99")) == 1

    def test_numeric_not_lexical(self):
        assert v("1.10") > v("1.9")

    def test_sorting(self):
        versions = [v(t) for t in ["1.10", "1.2.1", "0.9", "1.2"]]
        assert [str(x) for x in sorted(versions)] == ["0.9", "1.2", "1.2.1", "1.10"]


class TestParseRange:
    """Range grammar."""

    def test_primitives(self):
        assert parse_range(">=1.2") == Comparison(">=", v("1.2"))
        assert parse_range("< 2") == Comparison("<", v("2"))
        assert parse_range("-any") == AnyVersion()
        assert parse_range("-none") == NoVersion()

    def test_intersection_binds_tighter_than_union(self):
        parsed = parse_range(">=1 && <2 || ==3.0")
        assert isinstance(parsed, Union)
        assert isinstance(parsed.left, Intersection)

    def test_parentheses(self):
        parsed = parse_range(">=1 && (<2 || >3)")
        assert isinstance(parsed, Intersection)
        assert isinstance(parsed.right, Union)

    def test_wildcards(self):
        assert parse_range("==1.2.*") == Wildcard(v("1.2"))
        assert parse_range("1.2.*") == Wildcard(v("1.2"))

    def test_major_bound(self):
        assert parse_range("^>=1.2.3") == MajorBound(v("1.2.3"))

    @pytest.mark.parametrize("text", ["", "   ", ">=", "1.2", ">=1 &&", "(>=1", ">=1)", "<1.*", ">= x"])
    def test_rejects_malformed(self, text):
        with pytest.raises(VersionParseError):
            parse_range(text)

    def test_render_reparses_equivalently(self):
        for text in [">=1 && <2 || ==3.0", ">=1 && (<2 || >3)", "^>=4.1", "==1.2.*", "-any"]:
            parsed = parse_range(text)
            assert parse_range(str(parsed)) == parsed


class TestSatisfies:
    """Range evaluation."""

    def test_lower_bound_is_monotone(self):
        r = parse_range(">=1.2")
        assert satisfies(v("1.2"), r)
        assert satisfies(v("1.2.0.1"), r)
        assert satisfies(v("3"), r)
        assert not satisfies(v("1.1.99"), r)
        assert not satisfies(v("0.9"), r)

    def test_wildcard_window(self):
        r = parse_range("==1.2.*")
        assert satisfies(v("1.2"), r)
        assert satisfies(v("1.2.0"), r)
        assert satisfies(v("1.2.99"), r)
        assert not satisfies(v("1.3.0"), r)
        assert not satisfies(v("1.1.9"), r)

    def test_major_bound_window(self):
        r = parse_range("^>=1.2.3")
        assert satisfies(v("1.2.3"), r)
        assert satisfies(v("1.2.9"), r)
        assert not satisfies(v("1.3"), r)
        assert not satisfies(v("1.2.2"), r)
        single = parse_range("^>=1")
        assert satisfies(v("1.0.5"), single)
        assert not satisfies(v("1.1"), single)

    def test_conjunction_and_disjunction(self):
        r = parse_range(">=1 && <2 || >=3")
        assert satisfies(v("1.5"), r)
        assert not satisfies(v("2.5"), r)
        assert satisfies(v("3.1"), r)

    def test_equality_pads(self):
        assert satisfies(v("1.0.0"), parse_range("==1.0"))

    def test_in_operator(self):
        assert v("1.5") in parse_range("<2")
        assert v("1.5") not in parse_range("-none")


class TestParseDependency:
    """Dependency text."""

    def test_name_and_range(self):
        dep = parse_dependency("base >=4 && <5")
        assert dep.name == "base"
        assert dep.range == parse_range(">=4 && <5")

    def test_no_range_means_any(self):
        dep = parse_dependency("text")
        assert dep.range == AnyVersion()
        assert str(dep) == "text"

    def test_no_space_before_operator(self):
        assert parse_dependency("aeson>=2.0").range == Comparison(">=", v("2.0"))

    def test_names_are_case_sensitive(self):
        assert parse_dependency("HUnit").name == "HUnit"
