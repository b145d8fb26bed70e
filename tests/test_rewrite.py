"""Tests for prefix selection and key rewriting."""

from __future__ import annotations

import pytest

from consulsync.models import Record, Selected, Skipped
from consulsync.rewrite import in_scope, plan_import, rewrite, select


def _rec(key: str, value: bytes = b"v") -> Record:
    return Record(key=key, value=value)


class TestSelect:
    """Tests for the from-prefix filter."""

    def test_empty_prefix_selects_everything(self):
        records = [_rec("a/b"), _rec("c"), _rec("/x")]
        assert select(records, "") == records

    def test_keeps_only_matching_keys_in_order(self):
        records = [_rec("serviceA/x"), _rec("serviceB/y"), _rec("serviceA/z")]
        assert [r.key for r in select(records, "serviceA/")] == ["serviceA/x", "serviceA/z"]

    def test_match_is_case_sensitive(self):
        assert not in_scope("ServiceA/x", "serviceA/")
        assert in_scope("serviceA/x", "serviceA/")

    def test_prefix_is_literal(self):
        assert not in_scope("serviceAB", "service.B")
        assert in_scope("service*/x", "service*")


class TestRewrite:
    """Tests for the per-record rewrite decision."""

    def test_no_prefixes_keeps_key(self):
        assert rewrite(_rec("a/b"), "", "") == Selected(source_key="a/b", destination_key="a/b")

    def test_strip_and_prepend(self):
        decision = rewrite(_rec("serviceA/db/host"), "serviceA/", "localA/")
        assert decision == Selected(source_key="serviceA/db/host", destination_key="localA/db/host")

    def test_strip_only(self):
        decision = rewrite(_rec("serviceA/db/host"), "serviceA/", "")
        assert isinstance(decision, Selected)
        assert decision.destination_key == "db/host"

    def test_prepend_only(self):
        decision = rewrite(_rec("a/b"), "", "team/")
        assert decision.destination_key == "team/a/b"

    def test_key_equal_to_from_prefix_is_skipped(self):
        decision = rewrite(_rec("serviceA/"), "serviceA/", "")
        assert isinstance(decision, Skipped)
        assert decision.source_key == "serviceA/"
        assert "empty" in decision.reason

    def test_key_equal_to_from_prefix_kept_with_to_prefix(self):
        decision = rewrite(_rec("serviceA/"), "serviceA/", "localA/")
        assert decision == Selected(source_key="serviceA/", destination_key="localA/")

    @pytest.mark.parametrize("to_prefix", ["/team/", "//team/", "///team/"])
    def test_all_leading_slashes_stripped_from_to_prefix(self, to_prefix):
        decision = rewrite(_rec("x"), "", to_prefix)
        assert decision.destination_key == "team/x"

    def test_leading_slash_stripped_from_remainder(self):
        decision = rewrite(_rec("serviceA//db"), "serviceA", "")
        assert decision.destination_key == "db"

    def test_leading_slash_stripped_from_plain_key(self):
        decision = rewrite(_rec("//abs/key"), "", "")
        assert decision.destination_key == "abs/key"

    def test_only_slashes_after_strip_is_skipped(self):
        decision = rewrite(_rec("serviceA//"), "serviceA/", "")
        assert isinstance(decision, Skipped)

    def test_slash_only_to_prefix_with_empty_remainder_is_skipped(self):
        decision = rewrite(_rec("serviceA/"), "serviceA/", "///")
        assert isinstance(decision, Skipped)

    def test_out_of_scope_record_is_skipped_not_rewritten(self):
        decision = rewrite(_rec("other/x"), "serviceA/", "localA/")
        assert isinstance(decision, Skipped)
        assert "outside" in decision.reason

    def test_is_pure(self):
        record = _rec("serviceA/db")
        first = rewrite(record, "serviceA/", "/localA/")
        second = rewrite(record, "serviceA/", "/localA/")
        assert first == second
        assert record.key == "serviceA/db"

    @pytest.mark.parametrize("key", ["a", "a/b", "/a", "//a/b/", "serviceA/", "x/"])
    @pytest.mark.parametrize("to_prefix", ["", "/", "new/", "//new/"])
    def test_empty_from_prefix_never_skips(self, key, to_prefix):
        assert isinstance(rewrite(_rec(key), "", to_prefix), Selected)

    @pytest.mark.parametrize("key", ["/a", "//b/c", "serviceA//x", "serviceA/y"])
    @pytest.mark.parametrize("from_prefix", ["", "serviceA", "serviceA/"])
    @pytest.mark.parametrize("to_prefix", ["", "/", "//team/", "team"])
    def test_no_destination_starts_with_slash(self, key, from_prefix, to_prefix):
        decision = rewrite(_rec(key), from_prefix, to_prefix)
        if isinstance(decision, Selected):
            assert decision.destination_key
            assert not decision.destination_key.startswith("/")


class TestPlanImport:
    """Tests for the select-then-rewrite pipeline."""

    def test_filters_before_rewriting(self):
        records = [_rec("serviceA/x"), _rec("other/y"), _rec("serviceA/")]
        plan = plan_import(records, "serviceA/", "")
        assert [r.key for r, _ in plan] == ["serviceA/x", "serviceA/"]
        assert isinstance(plan[0][1], Selected)
        assert isinstance(plan[1][1], Skipped)

    def test_new_namespace_for_every_record(self):
        records = [_rec("a/b", b"1"), _rec("c/d", b"2")]
        plan = plan_import(records, "", "/new/")
        assert [(r.value, d.destination_key) for r, d in plan] == [
            (b"1", "new/a/b"),
            (b"2", "new/c/d"),
        ]

    def test_duplicate_destinations_are_kept_in_order(self):
        plan = plan_import([_rec("x/k", b"1"), _rec("x//k", b"2")], "x/", "")
        assert [d.destination_key for _, d in plan] == ["k", "k"]
