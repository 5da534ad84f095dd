from __future__ import annotations

import pytest

from pgnormalize import ConstantSpan, collect_constant_spans, sort_spans
from pgnormalize.spans import record_constants


class TestCollectConstantSpans:
    def test_single_constant(self, select_tree):
        spans = collect_constant_spans(select_tree(7))
        assert spans == [ConstantSpan(7)]
        assert spans[0].length is None
        assert not spans[0].resolved

    def test_traversal_order_not_sorted(self, select_tree):
        spans = collect_constant_spans(select_tree(20, 7, 13))
        assert [s.location for s in spans] == [20, 7, 13]

    def test_unknown_location_skipped(self, a_const):
        tree = [a_const(-1), a_const(4)]
        assert collect_constant_spans(tree) == [ConstantSpan(4)]

    def test_missing_location_skipped(self):
        tree = {"A_Const": {"isnull": True}}
        assert collect_constant_spans(tree) == []

    def test_nested_constants_found(self, a_const):
        tree = {
            "SelectStmt": {
                "whereClause": {
                    "BoolExpr": {
                        "args": [
                            {"A_Expr": {"lexpr": {"ColumnRef": {"location": 22}}, "rexpr": a_const(26)}},
                            {"A_Expr": {"lexpr": {"ColumnRef": {"location": 32}}, "rexpr": a_const(36)}},
                        ]
                    }
                }
            }
        }
        assert [s.location for s in collect_constant_spans(tree)] == [26, 36]

    def test_duplicate_locations_kept(self, a_const):
        tree = [a_const(9), {"TypeCast": {"arg": a_const(9)}}]
        assert [s.location for s in collect_constant_spans(tree)] == [9, 9]

    def test_constant_inside_constant_value(self):
        tree = {"A_Const": {"location": 3, "val": {"A_Const": {"location": 8}}}}
        assert [s.location for s in collect_constant_spans(tree)] == [3, 8]

    def test_no_constants(self):
        tree = [{"stmt": {"SelectStmt": {"targetList": [{"ResTarget": {"val": {"ColumnRef": {"location": 7}}}}]}}}]
        assert collect_constant_spans(tree) == []

    def test_scalar_tree(self):
        assert collect_constant_spans("SELECT") == []

    def test_tree_deeper_than_recursion_limit(self, a_const):
        deep: object = a_const(50)
        for _ in range(5000):
            deep = {"A_Indirection": {"arg": deep}}
        tree = [a_const(2), deep, a_const(90)]
        spans: list[ConstantSpan] = []
        assert record_constants(tree, spans) is True
        assert [s.location for s in spans] == [2, 50, 90]


class TestSubtreeFailureRecovery:
    def test_malformed_location_skips_only_that_subtree(self, a_const):
        tree = [a_const(4), {"A_Const": {"location": "seven"}}, a_const(12)]
        assert [s.location for s in collect_constant_spans(tree)] == [4, 12]

    def test_non_object_constant_body_skipped(self, a_const):
        tree = {"targetList": [{"A_Const": [1, 2]}, a_const(15)]}
        assert [s.location for s in collect_constant_spans(tree)] == [15]

    def test_boolean_location_rejected(self, a_const):
        tree = [{"A_Const": {"location": True}}, a_const(2)]
        assert [s.location for s in collect_constant_spans(tree)] == [2]

    def test_spans_before_failure_are_kept(self, a_const):
        # The failing node sits after a sibling that was already recorded.
        tree = {"args": [a_const(5), {"A_Const": {"location": 1.5}}]}
        assert [s.location for s in collect_constant_spans(tree)] == [5]

    def test_record_constants_reports_incomplete(self, a_const):
        spans: list[ConstantSpan] = []
        assert record_constants([a_const(1), {"A_Const": {"location": None}}], spans) is False
        assert spans == [ConstantSpan(1)]

    def test_record_constants_reports_complete(self, a_const):
        spans: list[ConstantSpan] = []
        assert record_constants([a_const(1), a_const(3)], spans) is True
        assert len(spans) == 2


class TestSortSpans:
    def test_sorts_ascending(self):
        spans = [ConstantSpan(30), ConstantSpan(4), ConstantSpan(17)]
        sort_spans(spans)
        assert [s.location for s in spans] == [4, 17, 30]

    def test_duplicates_adjacent(self):
        spans = [ConstantSpan(9), ConstantSpan(2), ConstantSpan(9)]
        sort_spans(spans)
        assert [s.location for s in spans] == [2, 9, 9]

    @pytest.mark.parametrize("spans", [[], [ConstantSpan(3)]])
    def test_short_lists_untouched(self, spans):
        before = list(spans)
        sort_spans(spans)
        assert spans == before
