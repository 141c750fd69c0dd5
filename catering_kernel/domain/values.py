"""
Values -- Enumerations and money primitives shared by every domain module.

Responsibility:
    Names the closed vocabularies of the ledger (event state, menu status,
    pricing model, transaction type, audit action, permission level,
    reserved charge types) and provides the single sanctioned conversion
    from caller/store numerics to ``Decimal``.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.
    Imported by every other domain module. No outward dependencies except
    ``catering_kernel.exceptions``.

Invariants enforced:
    - Monetary amounts are ``Decimal`` (never float) once inside the kernel.
    - Reserved charge type names are spelled exactly once, here.
"""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import TypeVar

from catering_kernel.exceptions import ValidationError

ZERO = Decimal("0")

EnumT = TypeVar("EnumT", bound=Enum)


class EventState(str, Enum):
    """Commercial lifecycle stage of an event."""

    LEAD = "lead"
    CONFIRMED = "confirmed"
    LOST = "lost"
    CANCELLED = "cancelled"


TERMINAL_EVENT_STATES: frozenset[EventState] = frozenset({
    EventState.LOST,
    EventState.CANCELLED,
})


class MenuStatus(str, Enum):
    """Menu-selection lock. Independent axis from EventState."""

    DRAFT = "draft"
    FINALIZED = "finalized"


class PricingModel(str, Enum):
    """How the base cost of an event is computed."""

    VARIABLE = "variable"
    FLAT = "flat"
    MIX = "mix"


class TransactionType(str, Enum):
    INCOME = "income"
    EXPENSE = "expense"


class AuditAction(str, Enum):
    """Kinds of ledger mutation recorded in an audit trail."""

    CREATED = "created"
    UPDATED = "updated"
    DELETED = "deleted"


class PermissionLevel(str, Enum):
    """Access level for one functional scope."""

    NONE = "none"
    VIEW = "view"
    MODIFY = "modify"


class ClientStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"


class ChargeType(str, Enum):
    """Reserved charge types whose amount is formula-derived.

    Any other ``Charge.type`` string is a free-form charge with a directly
    entered amount.
    """

    LIVE_COUNTER = "Live Counter"
    COCKTAIL_MENU = "Cocktail Menu"
    HI_TEA_MENU = "Hi-Tea Menu"
    ADDITIONAL_PAX = "Additional PAX"


SPECIAL_CHARGE_TYPES: frozenset[str] = frozenset(t.value for t in ChargeType)

# Charge types that make a menu section visible; they are frozen together
# with the menu once it is finalized.
MENU_GATING_CHARGE_TYPES: frozenset[str] = frozenset({
    ChargeType.LIVE_COUNTER.value,
    ChargeType.COCKTAIL_MENU.value,
    ChargeType.HI_TEA_MENU.value,
})


def is_special_charge_type(charge_type: str) -> bool:
    """True if ``charge_type`` is one of the reserved formula-driven types."""
    return charge_type in SPECIAL_CHARGE_TYPES


def to_money(value: object, field: str = "amount") -> Decimal:
    """
    Convert a caller- or store-supplied numeric to ``Decimal``.

    ``None`` and empty strings read as zero, matching documents that omit
    absent fields. Floats go through ``str`` so that ``0.1`` becomes
    ``Decimal("0.1")`` rather than its binary expansion.

    Raises:
        ValidationError: If the value is not a finite number.
    """
    if value is None or value == "":
        return ZERO
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be numeric, got {value!r}", field=field)
    if isinstance(value, Decimal):
        result = value
    else:
        try:
            result = Decimal(str(value))
        except (InvalidOperation, ValueError) as e:
            raise ValidationError(
                f"{field} must be numeric, got {value!r}", field=field
            ) from e
    if not result.is_finite():
        raise ValidationError(f"{field} must be finite, got {value!r}", field=field)
    return result


def to_count(value: object, field: str) -> int:
    """Convert a head-count style value to ``int``.

    Raises:
        ValidationError: If the value is not a whole number.
    """
    if value is None or value == "":
        return 0
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be a whole number", field=field)
    if isinstance(value, int):
        return value
    amount = to_money(value, field)
    if amount != amount.to_integral_value():
        raise ValidationError(f"{field} must be a whole number, got {value!r}", field=field)
    return int(amount)


def to_enum(enum_cls: type[EnumT], value: object, field: str) -> EnumT:
    """Convert a caller- or store-supplied value to a member of ``enum_cls``.

    Raises:
        ValidationError: Blank, or not one of the enum's values.
    """
    if value is None or value == "":
        raise ValidationError(f"{field} is required", field=field)
    try:
        return enum_cls(value)
    except ValueError as e:
        allowed = ", ".join(str(m.value) for m in enum_cls)
        raise ValidationError(
            f"{field} has unknown value {value!r} (expected one of: {allowed})", field=field
        ) from e


def to_date(value: object, field: str) -> date:
    """Convert a ``date``, ``datetime`` or ISO string to a calendar date.

    ISO timestamps keep only their date part.

    Raises:
        ValidationError: Blank, or not an ISO date.
    """
    if value is None or value == "":
        raise ValidationError(f"{field} is required", field=field)
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        raise ValidationError(f"{field} must be a date, got {value!r}", field=field)
    try:
        return date.fromisoformat(value.strip()[:10])
    except ValueError as e:
        raise ValidationError(f"{field} is not an ISO date: {value!r}", field=field) from e
