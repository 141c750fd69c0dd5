"""
Ledger Entry Manager -- create / update / soft-delete for charges and
transactions.

Responsibility:
    Applies one ledger mutation to an Event (charges, payments, expenses)
    or a Client (advance payments) and records it in the entry's audit
    trail.  Reserved charge types take their amount from the charge
    calculator; the menu selections those charges gate are cleared when
    the charge goes away or points at another template.

Architecture position:
    Kernel > Domain -- pure command functions returning ``CommandResult``.

Invariants enforced:
    - REASON_ON_CHANGE: update/delete call ``audit.require_reason``.
    - AUDIT_APPEND_ONLY: each mutation appends exactly one entry; an update
      that changes no field is a no-op (no entry, no persist).
    - SOFT_DELETE_ONLY: delete sets ``is_deleted``; nothing is removed.
    - DERIVED_SPECIAL_AMOUNTS: reserved amounts ignore caller input.
    - TERMINAL_LOCK: ``lifecycle.assert_ledger_editable`` runs first.

Failure modes (all raised before any new aggregate is built):
    - AuthenticationError, PermissionDeniedError, EventLockedError
    - MissingReasonError, NonPositiveAmountError, MissingDiscriminatorError,
      InvalidChargeInputError, ValidationError
    - EntryNotFoundError: unknown id, or an entry already soft-deleted.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, replace
from datetime import date
from decimal import Decimal
from typing import Any, TypeVar

from catering_kernel.domain.audit import (
    ADVANCE_CREATED_REASON,
    CHARGE_CREATED_REASON,
    EXPENSE_CREATED_REASON,
    PAYMENT_CREATED_REASON,
    append_entry,
    diff_fields,
    make_entry,
    require_reason,
)
from catering_kernel.domain.charge_calculator import compute_charge_amount, validate_charge_inputs
from catering_kernel.domain.commands import (
    CLIENTS_COLLECTION,
    EVENTS_COLLECTION,
    CommandContext,
    CommandResult,
    persist,
)
from catering_kernel.domain.lifecycle import assert_ledger_editable
from catering_kernel.domain.menu import clear_live_counter, clear_sub_menu
from catering_kernel.domain.models import AuditEntry, Charge, Client, Event, Transaction
from catering_kernel.domain.permissions import (
    PermissionGate,
    PermissionScope,
    scope_for_transaction,
)
from catering_kernel.domain.values import (
    MENU_GATING_CHARGE_TYPES,
    ZERO,
    AuditAction,
    ChargeType,
    TransactionType,
    is_special_charge_type,
    to_count,
    to_date,
    to_enum,
    to_money,
)
from catering_kernel.exceptions import (
    EntryNotFoundError,
    MissingDiscriminatorError,
    NonPositiveAmountError,
    ValidationError,
)

CHARGE_DIFF_FIELDS = (
    "type",
    "amount",
    "notes",
    "price",
    "discount_amount",
    "live_counter_id",
    "menu_template_id",
    "cocktail_pax",
    "corkage_charges",
    "additional_pax_count",
)

TRANSACTION_DIFF_FIELDS = (
    "type",
    "amount",
    "date",
    "notes",
    "payment_mode",
    "category",
)

ADVANCE_FIELD_PREFIX = "advance."

E = TypeVar("E", Charge, Transaction)


# ---------------------------------------------------------------------------
# Inputs
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ChargeInput:
    """Caller-supplied charge data.

    ``amount`` is read only for free-form types.  Numbers may be given as
    ``Decimal``, ``int`` or numeric strings.
    """

    type: str
    amount: Any = None
    notes: str = ""
    price: Any = None
    discount_amount: Any = None
    live_counter_id: str | None = None
    menu_template_id: str | None = None
    cocktail_pax: Any = None
    corkage_charges: Any = None
    additional_pax_count: Any = None


@dataclass(frozen=True)
class TransactionInput:
    """Caller-supplied payment, expense or advance data.

    ``type`` may be the enum or its value; ``date`` may be a ``date`` or an
    ISO string.
    """

    type: TransactionType | str
    amount: Any
    date: date | str
    payment_mode: str | None = None
    category: str | None = None
    notes: str = ""


# ---------------------------------------------------------------------------
# View helpers
# ---------------------------------------------------------------------------


def list_entries(entries: Iterable[E], include_archived: bool = False) -> tuple[E, ...]:
    """Entries for display.  Soft-deleted ones only when ``include_archived``."""
    if include_archived:
        return tuple(entries)
    return tuple(e for e in entries if not e.is_deleted)


def entry_history(owner: Event | Client, entry_id: str) -> tuple[AuditEntry, ...]:
    """Audit trail of one charge or transaction, deleted entries included.

    Raises:
        EntryNotFoundError: No entry with this id on ``owner``.
    """
    candidates: tuple[Charge | Transaction, ...] = tuple(owner.transactions)
    if isinstance(owner, Event):
        candidates = tuple(owner.charges) + candidates
    for entry in candidates:
        if entry.id == entry_id:
            return entry.history
    raise EntryNotFoundError("entry", entry_id, owner.id)


# ---------------------------------------------------------------------------
# Internals
# ---------------------------------------------------------------------------


def _snapshot(entry: Charge | Transaction, fields: tuple[str, ...]) -> dict[str, Any]:
    return {name: getattr(entry, name) for name in fields}


def _replace_entry(entries: tuple[E, ...], updated: E) -> tuple[E, ...]:
    return tuple(updated if e.id == updated.id else e for e in entries)


def _live_charge(event: Event, charge_id: str) -> Charge:
    charge = event.find_charge(charge_id)
    if charge is None or charge.is_deleted:
        raise EntryNotFoundError("charge", charge_id, event.id)
    return charge


def _live_transaction(owner: Event | Client, transaction_id: str, kind: str) -> Transaction:
    txn = owner.find_transaction(transaction_id)
    if txn is None or txn.is_deleted:
        raise EntryNotFoundError(kind, transaction_id, owner.id)
    return txn


def _optional_money(value: Any, field: str) -> Decimal | None:
    return None if value is None else to_money(value, field)


def _optional_count(value: Any, field: str) -> int | None:
    return None if value is None else to_count(value, field)


def _build_charge(
    charge_id: str,
    data: ChargeInput,
    event: Event,
    history: tuple[AuditEntry, ...],
) -> Charge:
    charge_type = (data.type or "").strip()
    if not charge_type:
        raise ValidationError("Charge type is required", field="type")

    if is_special_charge_type(charge_type):
        charge = Charge(
            id=charge_id,
            type=charge_type,
            amount=ZERO,
            notes=data.notes or "",
            history=history,
            price=_optional_money(data.price, "price"),
            discount_amount=_optional_money(data.discount_amount, "discount_amount"),
            live_counter_id=data.live_counter_id or None,
            menu_template_id=data.menu_template_id or None,
            cocktail_pax=_optional_count(data.cocktail_pax, "cocktail_pax"),
            corkage_charges=_optional_money(data.corkage_charges, "corkage_charges"),
            additional_pax_count=_optional_count(data.additional_pax_count, "additional_pax_count"),
        )
        validate_charge_inputs(charge)
        return replace(
            charge, amount=compute_charge_amount(charge, event.pax, event.per_pax_price)
        )

    amount = to_money(data.amount, "amount")
    if amount <= ZERO:
        raise NonPositiveAmountError(amount, "Charge")
    return Charge(
        id=charge_id,
        type=charge_type,
        amount=amount,
        notes=data.notes or "",
        history=history,
    )


def _build_transaction(
    transaction_id: str,
    data: TransactionInput,
    history: tuple[AuditEntry, ...],
) -> Transaction:
    txn_type = to_enum(TransactionType, data.type, "type")
    amount = to_money(data.amount, "amount")
    if amount <= ZERO:
        kind = "Payment" if txn_type == TransactionType.INCOME else "Expense"
        raise NonPositiveAmountError(amount, kind)
    txn_date = to_date(data.date, "date")

    payment_mode = (data.payment_mode or "").strip() or None
    category = (data.category or "").strip() or None
    if txn_type == TransactionType.INCOME:
        if payment_mode is None:
            raise MissingDiscriminatorError(txn_type.value, "payment_mode")
        category = None
    else:
        if category is None:
            raise MissingDiscriminatorError(txn_type.value, "category")
        payment_mode = None

    return Transaction(
        id=transaction_id,
        type=txn_type,
        date=txn_date,
        amount=amount,
        payment_mode=payment_mode,
        category=category,
        notes=data.notes or "",
        history=history,
    )


def _backs_same_selection(charge: Charge, other: Charge) -> bool:
    if other.is_deleted or other.type != charge.type:
        return False
    if charge.type == ChargeType.LIVE_COUNTER:
        return other.live_counter_id == charge.live_counter_id
    return other.menu_template_id == charge.menu_template_id


def _release_menu(event: Event, before: Charge) -> Event:
    """Clear the selection ``before`` gated once no live charge still backs it.

    ``event`` already carries the updated or deleted charge.  A selection is
    backed by a live charge of the same type pointing at the same counter
    (Live Counter) or the same template (Cocktail/Hi-Tea).
    """
    if not before.gates_menu:
        return event
    if any(_backs_same_selection(before, other) for other in event.charges):
        return event
    if before.type == ChargeType.LIVE_COUNTER:
        return clear_live_counter(event, before.live_counter_id)
    return clear_sub_menu(event, before.type)


# ---------------------------------------------------------------------------
# Charges
# ---------------------------------------------------------------------------


def create_charge(event: Event, data: ChargeInput, ctx: CommandContext) -> CommandResult[Event]:
    """Add a charge with a single ``created`` audit entry."""
    actor = ctx.require_actor()
    PermissionGate.require_modify(ctx.permissions, PermissionScope.FINANCE_CHARGES)
    assert_ledger_editable(
        event, "add a charge", menu_gated=data.type in MENU_GATING_CHARGE_TYPES
    )

    charge = _build_charge(ctx.id_factory(), data, event, ())
    entry = make_entry(
        actor, ctx.clock, AuditAction.CREATED,
        CHARGE_CREATED_REASON.format(charge_type=charge.type),
    )
    charge = replace(charge, history=append_entry((), entry))
    updated = replace(event, charges=event.charges + (charge,))
    return CommandResult(updated, (persist(EVENTS_COLLECTION, event.id),))


def update_charge(
    event: Event,
    charge_id: str,
    data: ChargeInput,
    reason: str | None,
    ctx: CommandContext,
) -> CommandResult[Event]:
    """
    Replace a live charge's inputs.  Only fields that actually changed are
    recorded on the ``updated`` entry; if none changed the event comes back
    as is, with no effects.

    Re-pointing a Cocktail/Hi-Tea charge at another template clears that
    sub-menu, and changing a Live Counter's counter clears the old counter,
    unless another live charge still backs the old selection.
    """
    actor = ctx.require_actor()
    PermissionGate.require_modify(ctx.permissions, PermissionScope.FINANCE_CHARGES)
    reason = require_reason(reason, "update a charge")
    existing = _live_charge(event, charge_id)
    assert_ledger_editable(
        event,
        "update a charge",
        menu_gated=existing.gates_menu or data.type in MENU_GATING_CHARGE_TYPES,
    )

    rebuilt = _build_charge(existing.id, data, event, existing.history)
    changes = diff_fields(
        _snapshot(existing, CHARGE_DIFF_FIELDS),
        _snapshot(rebuilt, CHARGE_DIFF_FIELDS),
        CHARGE_DIFF_FIELDS,
    )
    if not changes:
        return CommandResult(event)
    entry = make_entry(actor, ctx.clock, AuditAction.UPDATED, reason, changes)
    rebuilt = replace(rebuilt, history=append_entry(existing.history, entry))

    updated = replace(event, charges=_replace_entry(event.charges, rebuilt))
    updated = _release_menu(updated, existing)
    return CommandResult(updated, (persist(EVENTS_COLLECTION, event.id),))


def delete_charge(
    event: Event,
    charge_id: str,
    reason: str | None,
    ctx: CommandContext,
) -> CommandResult[Event]:
    """Soft-delete a charge and release the menu selections only it gated."""
    actor = ctx.require_actor()
    PermissionGate.require_modify(ctx.permissions, PermissionScope.FINANCE_CHARGES)
    reason = require_reason(reason, "delete a charge")
    existing = _live_charge(event, charge_id)
    assert_ledger_editable(event, "delete a charge", menu_gated=existing.gates_menu)

    entry = make_entry(actor, ctx.clock, AuditAction.DELETED, reason)
    deleted = replace(existing, is_deleted=True, history=append_entry(existing.history, entry))
    updated = replace(event, charges=_replace_entry(event.charges, deleted))
    updated = _release_menu(updated, existing)
    return CommandResult(updated, (persist(EVENTS_COLLECTION, event.id),))


# ---------------------------------------------------------------------------
# Event transactions
# ---------------------------------------------------------------------------


def _created_reason(txn_type: TransactionType) -> str:
    if txn_type == TransactionType.INCOME:
        return PAYMENT_CREATED_REASON
    return EXPENSE_CREATED_REASON


def create_transaction(
    event: Event, data: TransactionInput, ctx: CommandContext
) -> CommandResult[Event]:
    """Record a payment (income) or expense on the event."""
    actor = ctx.require_actor()
    txn_type = to_enum(TransactionType, data.type, "type")
    PermissionGate.require_modify(ctx.permissions, scope_for_transaction(txn_type))
    assert_ledger_editable(event, f"add an {txn_type.value} transaction")

    txn = _build_transaction(ctx.id_factory(), data, ())
    entry = make_entry(actor, ctx.clock, AuditAction.CREATED, _created_reason(txn_type))
    txn = replace(txn, history=append_entry((), entry))
    updated = replace(event, transactions=event.transactions + (txn,))
    return CommandResult(updated, (persist(EVENTS_COLLECTION, event.id),))


def _require_transaction_scopes(
    ctx: CommandContext, existing: Transaction, new_type: TransactionType | None = None
) -> None:
    PermissionGate.require_modify(ctx.permissions, scope_for_transaction(existing.type))
    if new_type is not None and new_type != existing.type:
        PermissionGate.require_modify(ctx.permissions, scope_for_transaction(new_type))


def update_transaction(
    event: Event,
    transaction_id: str,
    data: TransactionInput,
    reason: str | None,
    ctx: CommandContext,
) -> CommandResult[Event]:
    actor = ctx.require_actor()
    existing = _live_transaction(event, transaction_id, "transaction")
    _require_transaction_scopes(ctx, existing, to_enum(TransactionType, data.type, "type"))
    reason = require_reason(reason, "update a transaction")
    assert_ledger_editable(event, "update a transaction")

    rebuilt = _build_transaction(existing.id, data, existing.history)
    changes = diff_fields(
        _snapshot(existing, TRANSACTION_DIFF_FIELDS),
        _snapshot(rebuilt, TRANSACTION_DIFF_FIELDS),
        TRANSACTION_DIFF_FIELDS,
    )
    if not changes:
        return CommandResult(event)
    entry = make_entry(actor, ctx.clock, AuditAction.UPDATED, reason, changes)
    rebuilt = replace(rebuilt, history=append_entry(existing.history, entry))
    updated = replace(event, transactions=_replace_entry(event.transactions, rebuilt))
    return CommandResult(updated, (persist(EVENTS_COLLECTION, event.id),))


def delete_transaction(
    event: Event,
    transaction_id: str,
    reason: str | None,
    ctx: CommandContext,
) -> CommandResult[Event]:
    actor = ctx.require_actor()
    existing = _live_transaction(event, transaction_id, "transaction")
    _require_transaction_scopes(ctx, existing)
    reason = require_reason(reason, "delete a transaction")
    assert_ledger_editable(event, "delete a transaction")

    entry = make_entry(actor, ctx.clock, AuditAction.DELETED, reason)
    deleted = replace(existing, is_deleted=True, history=append_entry(existing.history, entry))
    updated = replace(event, transactions=_replace_entry(event.transactions, deleted))
    return CommandResult(updated, (persist(EVENTS_COLLECTION, event.id),))


# ---------------------------------------------------------------------------
# Client advances
# ---------------------------------------------------------------------------


def _as_advance(data: TransactionInput) -> TransactionInput:
    if to_enum(TransactionType, data.type, "type") != TransactionType.INCOME:
        raise ValidationError("Client advances must be income", field="type")
    return data


def create_client_advance(
    client: Client, data: TransactionInput, ctx: CommandContext
) -> CommandResult[Client]:
    """Record an advance payment billed to the client directly."""
    actor = ctx.require_actor()
    PermissionGate.require_modify(ctx.permissions, PermissionScope.CLIENTS_AND_EVENTS)
    txn = _build_transaction(ctx.id_factory(), _as_advance(data), ())
    entry = make_entry(actor, ctx.clock, AuditAction.CREATED, ADVANCE_CREATED_REASON)
    txn = replace(txn, history=append_entry((), entry))
    updated = replace(client, transactions=client.transactions + (txn,))
    return CommandResult(updated, (persist(CLIENTS_COLLECTION, client.id),))


def update_client_advance(
    client: Client,
    transaction_id: str,
    data: TransactionInput,
    reason: str | None,
    ctx: CommandContext,
) -> CommandResult[Client]:
    """Edit an advance.  Change records are prefixed ``advance.``."""
    actor = ctx.require_actor()
    PermissionGate.require_modify(ctx.permissions, PermissionScope.CLIENTS_AND_EVENTS)
    reason = require_reason(reason, "update an advance payment")
    existing = _live_transaction(client, transaction_id, "advance")

    rebuilt = _build_transaction(existing.id, _as_advance(data), existing.history)
    changes = tuple(
        replace(change, field=f"{ADVANCE_FIELD_PREFIX}{change.field}")
        for change in diff_fields(
            _snapshot(existing, TRANSACTION_DIFF_FIELDS),
            _snapshot(rebuilt, TRANSACTION_DIFF_FIELDS),
            TRANSACTION_DIFF_FIELDS,
        )
    )
    if not changes:
        return CommandResult(client)
    entry = make_entry(actor, ctx.clock, AuditAction.UPDATED, reason, changes)
    rebuilt = replace(rebuilt, history=append_entry(existing.history, entry))
    updated = replace(client, transactions=_replace_entry(client.transactions, rebuilt))
    return CommandResult(updated, (persist(CLIENTS_COLLECTION, client.id),))


def delete_client_advance(
    client: Client,
    transaction_id: str,
    reason: str | None,
    ctx: CommandContext,
) -> CommandResult[Client]:
    actor = ctx.require_actor()
    PermissionGate.require_modify(ctx.permissions, PermissionScope.CLIENTS_AND_EVENTS)
    reason = require_reason(reason, "delete an advance payment")
    existing = _live_transaction(client, transaction_id, "advance")

    entry = make_entry(actor, ctx.clock, AuditAction.DELETED, reason)
    deleted = replace(existing, is_deleted=True, history=append_entry(existing.history, entry))
    updated = replace(client, transactions=_replace_entry(client.transactions, deleted))
    return CommandResult(updated, (persist(CLIENTS_COLLECTION, client.id),))
