"""
Charge calculator formulas for the reserved charge types.

Amounts are derived from the charge inputs and the owning event's head
count and per-pax price, floored at zero.
"""

from decimal import Decimal

import pytest

from catering_kernel.domain.charge_calculator import (
    additional_pax_amount,
    cocktail_menu_amount,
    compute_charge_amount,
    hi_tea_menu_amount,
    live_counter_amount,
    recompute_charge,
    validate_charge_inputs,
)
from catering_kernel.domain.models import Charge
from catering_kernel.exceptions import InvalidChargeInputError


def _charge(charge_type, **fields):
    return Charge(id="c1", type=charge_type, amount=Decimal("0"), **fields)


class TestFormulas:
    """Each formula in isolation."""

    def test_live_counter_with_discount(self):
        assert live_counter_amount(Decimal("100"), 100, Decimal("1000")) == Decimal("9000")

    def test_live_counter_floors_at_zero(self):
        assert live_counter_amount(Decimal("10"), 5, Decimal("1000")) == Decimal("0")

    def test_cocktail_menu_adds_corkage(self):
        amount = cocktail_menu_amount(Decimal("250"), 40, Decimal("500"), Decimal("1200"))
        assert amount == Decimal("10700")

    def test_additional_pax_uses_event_rate(self):
        assert additional_pax_amount(20, Decimal("500"), Decimal("0")) == Decimal("10000")

    def test_hi_tea_is_price_minus_discount(self):
        assert hi_tea_menu_amount(Decimal("3000"), Decimal("250.50")) == Decimal("2749.50")

    def test_hi_tea_floors_at_zero(self):
        assert hi_tea_menu_amount(Decimal("100"), Decimal("150")) == Decimal("0")


class TestComputeChargeAmount:
    """Dispatch on charge type."""

    def test_live_counter_uses_event_pax(self):
        charge = _charge("Live Counter", price=Decimal("100"), live_counter_id="lc")
        assert compute_charge_amount(charge, 80, Decimal("500")) == Decimal("8000")

    def test_missing_optional_inputs_read_as_zero(self):
        charge = _charge("Cocktail Menu", price=Decimal("300"))
        assert compute_charge_amount(charge, 100, Decimal("500")) == Decimal("0")

    def test_additional_pax(self):
        charge = _charge("Additional PAX", additional_pax_count=3, discount_amount=Decimal("100"))
        assert compute_charge_amount(charge, 100, Decimal("450")) == Decimal("1250")

    def test_free_form_keeps_entered_amount(self):
        charge = Charge(id="c1", type="Decoration", amount=Decimal("7500"))
        assert compute_charge_amount(charge, 100, Decimal("500")) == Decimal("7500")


class TestValidateChargeInputs:
    """Malformed reserved-type inputs are rejected."""

    def test_negative_price_rejected(self):
        charge = _charge("Hi-Tea Menu", price=Decimal("-1"))
        with pytest.raises(InvalidChargeInputError) as exc_info:
            validate_charge_inputs(charge)
        assert exc_info.value.field == "price"

    def test_negative_head_count_rejected(self):
        charge = _charge("Cocktail Menu", price=Decimal("10"), cocktail_pax=-5)
        with pytest.raises(InvalidChargeInputError) as exc_info:
            validate_charge_inputs(charge)
        assert exc_info.value.field == "cocktail_pax"

    def test_live_counter_requires_counter(self):
        charge = _charge("Live Counter", price=Decimal("100"))
        with pytest.raises(InvalidChargeInputError) as exc_info:
            validate_charge_inputs(charge)
        assert exc_info.value.field == "live_counter_id"

    def test_discounted_additional_pax_requires_notes(self):
        charge = _charge("Additional PAX", additional_pax_count=5, discount_amount=Decimal("50"))
        with pytest.raises(InvalidChargeInputError) as exc_info:
            validate_charge_inputs(charge)
        assert exc_info.value.field == "notes"

    def test_discounted_additional_pax_with_notes_is_valid(self):
        charge = _charge(
            "Additional PAX", additional_pax_count=5,
            discount_amount=Decimal("50"), notes="Family rate",
        )
        validate_charge_inputs(charge)

    def test_free_form_charges_are_not_checked_here(self):
        validate_charge_inputs(Charge(id="c1", type="Transport", amount=Decimal("-5")))


class TestRecomputeCharge:

    def test_returns_same_object_when_amount_unchanged(self, make_event):
        event = make_event(pax=100)
        charge = _charge("Live Counter", price=Decimal("100"), live_counter_id="lc")
        charge = recompute_charge(charge, event)
        assert recompute_charge(charge, event) is charge

    def test_follows_event_pax(self, make_event):
        charge = Charge(
            id="c1", type="Live Counter", amount=Decimal("10000"),
            price=Decimal("100"), live_counter_id="lc",
        )
        recomputed = recompute_charge(charge, make_event(pax=120))
        assert recomputed.amount == Decimal("12000")
        assert charge.amount == Decimal("10000")
