import pytest

from dynacasbin.core.rbac.filter import build_pattern, filter_rules, matches_filter
from dynacasbin.models import CasbinRule

RECORDS = [
    CasbinRule.from_rule("p", ["alice", "data1", "read"]),
    CasbinRule.from_rule("p", ["bob", "data1", "read"]),
    CasbinRule.from_rule("p", ["bob", "data2", "write"]),
    CasbinRule.from_rule("p2", ["alice", "data1", "read"]),
    CasbinRule.from_rule("g", ["alice", "admin"]),
]


def rules(records):
    return [(r.ptype, *r.to_rule()) for r in records]


def test_build_pattern_places_values_at_index():
    assert build_pattern(1, ["data1", "read"]) == ["", "data1", "read", "", "", ""]


def test_build_pattern_ignores_values_past_last_field():
    assert build_pattern(4, ["x", "y", "z", "w"]) == ["", "", "", "", "x", "y"]


def test_build_pattern_ignores_values_before_first_field():
    assert build_pattern(-1, ["x", "y"]) == ["y", "", "", "", "", ""]


def test_filter_by_second_field():
    matched = filter_rules(RECORDS, "p", 1, ["data1"])

    assert rules(matched) == [("p", "alice", "data1", "read"), ("p", "bob", "data1", "read")]


def test_filter_by_third_field_only_matches_same_ptype():
    matched = filter_rules(RECORDS, "p", 2, ["read"])

    assert ("p2", "alice", "data1", "read") not in rules(matched)
    assert len(matched) == 2


def test_empty_value_is_a_wildcard():
    matched = filter_rules(RECORDS, "p", 0, ["bob", "", "write"])

    assert rules(matched) == [("p", "bob", "data2", "write")]


def test_no_values_matches_every_rule_of_ptype():
    assert len(filter_rules(RECORDS, "p", 0, [])) == 3


def test_no_match():
    assert filter_rules(RECORDS, "p", 0, ["carol"]) == []


@pytest.mark.parametrize(
    "field_index, values, expected",
    [
        (0, ["alice"], True),
        (0, ["alice", "data2"], False),
        (5, [""], True),
        (5, ["x"], False),
        (6, ["anything"], True),
    ],
)
def test_matches_filter(field_index, values, expected):
    record = CasbinRule.from_rule("p", ["alice", "data1", "read"])

    assert matches_filter(record, "p", field_index, values) is expected
