"""
Charge Calculator -- Amount formulas for reserved charge types.

Responsibility:
    Derive a charge's ``amount`` from its type-specific inputs and the
    owning event's head count and per-pax price.  Free-form charges keep the
    amount the caller entered.

Architecture position:
    Kernel > Domain -- pure, deterministic, no side effects.

Formulas (all floored at zero):
    Live Counter    price * event_pax - discount
    Cocktail Menu   price * cocktail_pax - discount + corkage
    Additional PAX  additional_pax_count * event_per_pax_price - discount
    Hi-Tea Menu     price - discount

Failure modes:
    - InvalidChargeInputError for negative inputs, a Live Counter charge
      without a counter id, or a discounted Additional PAX charge without
      notes.
"""

from __future__ import annotations

from dataclasses import replace
from decimal import Decimal

from catering_kernel.domain.models import Charge, Event
from catering_kernel.domain.values import ZERO, ChargeType, to_money
from catering_kernel.exceptions import InvalidChargeInputError


def _floor_zero(value: Decimal) -> Decimal:
    return value if value > ZERO else ZERO


def live_counter_amount(price: Decimal, event_pax: int, discount_amount: Decimal) -> Decimal:
    return _floor_zero(price * event_pax - discount_amount)


def cocktail_menu_amount(
    price: Decimal,
    cocktail_pax: int,
    discount_amount: Decimal,
    corkage_charges: Decimal,
) -> Decimal:
    return _floor_zero(price * cocktail_pax - discount_amount + corkage_charges)


def additional_pax_amount(
    additional_pax_count: int,
    event_per_pax_price: Decimal,
    discount_amount: Decimal,
) -> Decimal:
    return _floor_zero(additional_pax_count * event_per_pax_price - discount_amount)


def hi_tea_menu_amount(price: Decimal, discount_amount: Decimal) -> Decimal:
    return _floor_zero(price - discount_amount)


def compute_charge_amount(
    charge: Charge,
    event_pax: int,
    event_per_pax_price: Decimal,
) -> Decimal:
    """Amount for ``charge`` given the owning event's figures.

    For free-form types this is the entered amount, unchanged.
    """
    price = to_money(charge.price, "price")
    discount = to_money(charge.discount_amount, "discount_amount")

    if charge.type == ChargeType.LIVE_COUNTER:
        return live_counter_amount(price, event_pax, discount)
    if charge.type == ChargeType.COCKTAIL_MENU:
        return cocktail_menu_amount(
            price,
            charge.cocktail_pax or 0,
            discount,
            to_money(charge.corkage_charges, "corkage_charges"),
        )
    if charge.type == ChargeType.ADDITIONAL_PAX:
        return additional_pax_amount(
            charge.additional_pax_count or 0, event_per_pax_price, discount
        )
    if charge.type == ChargeType.HI_TEA_MENU:
        return hi_tea_menu_amount(price, discount)
    return charge.amount


def validate_charge_inputs(charge: Charge) -> None:
    """Reject malformed reserved-type inputs.

    Free-form charges are only checked for amount positivity by the ledger.
    """
    if not charge.is_special:
        return

    for name in ("price", "discount_amount", "corkage_charges"):
        value = getattr(charge, name)
        if value is not None and value < ZERO:
            raise InvalidChargeInputError(charge.type, name, f"{name} cannot be negative")
    for name in ("cocktail_pax", "additional_pax_count"):
        value = getattr(charge, name)
        if value is not None and value < 0:
            raise InvalidChargeInputError(charge.type, name, f"{name} cannot be negative")

    if charge.type == ChargeType.LIVE_COUNTER and not charge.live_counter_id:
        raise InvalidChargeInputError(
            charge.type, "live_counter_id", "a live counter must be selected"
        )
    if (
        charge.type == ChargeType.ADDITIONAL_PAX
        and (charge.discount_amount or ZERO) > ZERO
        and not (charge.notes or "").strip()
    ):
        raise InvalidChargeInputError(
            charge.type, "notes", "notes are required when a discount is applied"
        )


def recompute_charge(charge: Charge, event: Event) -> Charge:
    """Return ``charge`` with its amount re-derived against ``event``."""
    if not charge.is_special:
        return charge
    amount = compute_charge_amount(charge, event.pax, event.per_pax_price)
    if amount == charge.amount:
        return charge
    return replace(charge, amount=amount)
