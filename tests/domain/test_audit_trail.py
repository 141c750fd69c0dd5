"""
Audit trail primitives: reason enforcement, field diffs and append-only
histories.
"""

from datetime import date
from decimal import Decimal

import pytest

from catering_kernel.domain.audit import append_entry, diff_fields, make_entry, require_reason
from catering_kernel.domain.values import AuditAction, PricingModel
from catering_kernel.exceptions import MissingReasonError


class TestRequireReason:

    @pytest.mark.parametrize("reason", [None, "", " ", "\t\n"])
    def test_blank_rejected(self, reason):
        with pytest.raises(MissingReasonError) as exc_info:
            require_reason(reason, "delete a charge")
        assert exc_info.value.operation == "delete a charge"

    def test_returns_stripped(self):
        assert require_reason("  wrong amount ", "x") == "wrong amount"


class TestDiffFields:

    def test_only_changed_fields_in_order(self):
        changes = diff_fields(
            {"type": "Decoration", "amount": Decimal("100"), "notes": "a"},
            {"type": "Decoration", "amount": Decimal("150"), "notes": "b"},
            ("type", "amount", "notes"),
        )
        assert [c.field for c in changes] == ["amount", "notes"]

    def test_numbers_compare_by_value(self):
        assert diff_fields({"amount": Decimal("100.00")}, {"amount": 100}, ("amount",)) == ()

    def test_none_and_empty_string_equal(self):
        assert diff_fields({"notes": None}, {"notes": ""}, ("notes",)) == ()

    def test_enum_against_raw_value(self):
        assert diff_fields(
            {"pricing_model": PricingModel.FLAT}, {"pricing_model": "flat"}, ("pricing_model",)
        ) == ()

    def test_dates(self):
        (change,) = diff_fields(
            {"date": date(2024, 3, 1)}, {"date": date(2024, 3, 2)}, ("date",)
        )
        assert change.from_value == date(2024, 3, 1)

    def test_unlisted_fields_ignored(self):
        assert diff_fields({"x": 1}, {"x": 2}, ()) == ()


class TestAppendEntry:

    def test_appends_without_touching_prior(self, actor, deterministic_clock):
        first = make_entry(actor, deterministic_clock, AuditAction.CREATED, "Payment Added")
        deterministic_clock.advance(60)
        second = make_entry(actor, deterministic_clock, AuditAction.DELETED, "duplicate")

        history = append_entry((first,), second)
        assert history == (first, second)
        assert history[1].timestamp > history[0].timestamp

    def test_accepts_empty_history(self, actor, deterministic_clock):
        entry = make_entry(actor, deterministic_clock, AuditAction.CREATED, "x")
        assert append_entry((), entry) == (entry,)
