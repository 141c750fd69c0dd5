"""
Event State Machine -- lifecycle transitions, menu lock and core figures.

Responsibility:
    Creates events, moves them through the commercial lifecycle, locks and
    reopens the menu, and edits the pricing core (model, pax, per-pax price,
    rent).  Every operation is a pure command returning a ``CommandResult``.

Architecture position:
    Kernel > Domain -- pure.  Lifecycle edges come from
    ``workflow.EVENT_LIFECYCLE``; lost reasons and competitors come from the
    ``CommandContext`` (loaded from configuration by the service layer).

Invariants enforced:
    - Lost and cancelled are terminal; they force ``status = finalized``.
    - Lost metadata is cleared on any transition that is not into lost.
    - Fields not applicable to the pricing model are zero.
    - State history and event history are append-only.

Failure modes:
    - AuthenticationError: no actor on the context.
    - PermissionDeniedError: missing clientsAndEvents / financeCore modify,
      or cancellation capability.
    - EventLockedError: mutation of a terminal event.
    - InvalidStateTransitionError, MissingReasonError,
      UnknownLostReasonError, MissingCompetitorError, NegativeValueError,
      ValidationError: rejected input.
"""

from __future__ import annotations

from dataclasses import replace
from datetime import date
from decimal import Decimal

from catering_kernel.domain.audit import append_entry, diff_fields, make_entry, require_reason
from catering_kernel.domain.charge_calculator import recompute_charge
from catering_kernel.domain.commands import (
    EVENTS_COLLECTION,
    CommandContext,
    CommandResult,
    audit_log,
    persist,
)
from catering_kernel.domain.models import Actor, Event, StateChangeEntry
from catering_kernel.domain.permissions import PermissionGate, PermissionScope
from catering_kernel.domain.values import (
    ZERO,
    AuditAction,
    EventState,
    MenuStatus,
    PricingModel,
    to_count,
    to_date,
    to_enum,
    to_money,
)
from catering_kernel.domain.workflow import EVENT_LIFECYCLE
from catering_kernel.exceptions import (
    EventLockedError,
    InvalidStateTransitionError,
    MissingCompetitorError,
    NegativeValueError,
    UnknownLostReasonError,
    ValidationError,
)

CORE_FIGURES_UPDATED_REASON = "Core figures updated"
RECALCULATED_REASON = "Recalculated after core figure change"

_CORE_FIELDS = ("pricing_model", "pax", "per_pax_price", "rent")


def assert_ledger_editable(event: Event, operation: str, *, menu_gated: bool = False) -> None:
    """
    Raise if ``event`` may not take a ledger or menu mutation.

    Terminal events lock everything.  A finalized menu additionally locks
    the charge types that gate menu sections (``menu_gated=True``).

    Raises:
        EventLockedError
    """
    if event.is_terminal or (menu_gated and event.is_menu_finalized):
        raise EventLockedError(
            event_id=event.id,
            state=event.state.value,
            status=event.status.value,
            operation=operation,
        )


def _check_non_negative(field: str, value: Decimal | int) -> None:
    if value < 0:
        raise NegativeValueError(field, value)


def _apply_pricing_exclusivity(
    model: PricingModel, per_pax_price: Decimal, rent: Decimal
) -> tuple[Decimal, Decimal]:
    if model == PricingModel.VARIABLE:
        return per_pax_price, ZERO
    if model == PricingModel.FLAT:
        return ZERO, rent
    return per_pax_price, rent


def create_event(
    ctx: CommandContext,
    *,
    client_id: str | None,
    event_type: str,
    start_date: date | str,
    end_date: date | str | None = None,
    location: str = "",
    session: str = "",
    pax: int = 0,
    event_id: str | None = None,
) -> CommandResult[Event]:
    """New event in ``lead``/``draft`` with its creation state entry.

    Dates may be given as ``date`` objects or ISO strings.
    """
    actor = ctx.require_actor()
    PermissionGate.require_modify(ctx.permissions, PermissionScope.CLIENTS_AND_EVENTS)

    if not event_type or not event_type.strip():
        raise ValidationError("event_type is required", field="event_type")
    start_date = to_date(start_date, "start_date")
    end_date = to_date(end_date, "end_date") if end_date else None
    if end_date is not None and end_date < start_date:
        raise ValidationError("end_date cannot be before start_date", field="end_date")
    pax = to_count(pax, "pax")
    _check_non_negative("pax", pax)

    now = ctx.clock.now()
    event = Event(
        id=event_id or ctx.id_factory(),
        client_id=client_id,
        event_type=event_type.strip(),
        start_date=start_date,
        end_date=end_date,
        location=location,
        session=session,
        created_at=now,
        pax=pax,
        state_history=(
            StateChangeEntry(
                timestamp=now,
                actor_id=actor.actor_id,
                actor_name=actor.actor_name,
                from_state=None,
                to_state=EventState.LEAD,
            ),
        ),
    )
    return CommandResult(
        event,
        (
            persist(EVENTS_COLLECTION, event.id),
            audit_log(actor, "CREATE_EVENT", f"Event '{event.event_type}' created",
                      event.id, client_id),
        ),
    )


def duplicate_event(event: Event, ctx: CommandContext) -> CommandResult[Event]:
    """
    Copy an event as a fresh lead.

    Event details, pricing core and the base menu (``item_ids``) carry over.
    The ledger, the charge-gated selections, histories and lost metadata do
    not: the copy starts its own audit trail.
    """
    actor = ctx.require_actor()
    PermissionGate.require_modify(ctx.permissions, PermissionScope.CLIENTS_AND_EVENTS)

    now = ctx.clock.now()
    copy = replace(
        event,
        id=ctx.id_factory(),
        created_at=now,
        state=EventState.LEAD,
        status=MenuStatus.DRAFT,
        charges=(),
        transactions=(),
        history=(),
        item_ids=dict(event.item_ids),
        live_counters={},
        cocktail_menu_items={},
        hi_tea_menu_items={},
        state_history=(
            StateChangeEntry(
                timestamp=now,
                actor_id=actor.actor_id,
                actor_name=actor.actor_name,
                from_state=None,
                to_state=EventState.LEAD,
                reason=f"Duplicated from {event.id}",
            ),
        ),
        lost_reason_code=None,
        lost_competitor_id=None,
        lost_notes=None,
        version=0,
    )
    return CommandResult(
        copy,
        (
            persist(EVENTS_COLLECTION, copy.id),
            audit_log(actor, "CREATE_EVENT",
                      f"Event '{copy.event_type}' duplicated from {event.id}",
                      copy.id, copy.client_id),
        ),
    )


def _compose_lost_reason(
    ctx: CommandContext,
    reason_code: str | None,
    competitor_id: str | None,
    notes: str | None,
) -> tuple[str, str | None]:
    """Return (composed reason, competitor id to store)."""
    if not reason_code:
        raise UnknownLostReasonError(None)
    rule = ctx.lost_reasons.get(reason_code)
    if rule is None:
        raise UnknownLostReasonError(reason_code)

    composed = rule.label
    stored_competitor = None
    if rule.requires_competitor:
        if not competitor_id:
            raise MissingCompetitorError(reason_code)
        competitor_name = ctx.competitors.get(competitor_id)
        if competitor_name is None:
            raise MissingCompetitorError(reason_code, competitor_id)
        composed = f"{composed} (lost to {competitor_name})"
        stored_competitor = competitor_id
    if notes and notes.strip():
        composed = f"{composed} - {notes.strip()}"
    return composed, stored_competitor


def transition(
    event: Event,
    to_state: EventState,
    ctx: CommandContext,
    *,
    reason: str | None = None,
    lost_reason_code: str | None = None,
    competitor_id: str | None = None,
    lost_notes: str | None = None,
) -> CommandResult[Event]:
    """
    Move ``event`` along one edge of the lifecycle.

    Into ``lost`` the stored reason is composed from the configured label,
    the competitor name when the reason requires one, and optional notes
    (``lost_notes``, falling back to ``reason``).  Into ``cancelled`` a
    free-text reason is mandatory.
    """
    actor = ctx.require_actor()
    to_state = to_enum(EventState, to_state, "to_state")
    PermissionGate.require_modify(ctx.permissions, PermissionScope.CLIENTS_AND_EVENTS)
    if to_state == EventState.CANCELLED:
        PermissionGate.require_cancellation(ctx.permissions)

    if event.is_terminal:
        raise EventLockedError(
            event_id=event.id,
            state=event.state.value,
            status=event.status.value,
            operation=f"transition to {to_state.value}",
        )
    edge = EVENT_LIFECYCLE.find_transition(event.state.value, to_state.value)
    if edge is None:
        raise InvalidStateTransitionError(event.state.value, to_state.value)

    stored_reason: str | None = reason.strip() if reason and reason.strip() else None
    if edge.requires_reason:
        stored_reason = require_reason(reason, "cancel the event")

    lost_fields: dict[str, str | None] = {
        "lost_reason_code": None,
        "lost_competitor_id": None,
        "lost_notes": None,
    }
    if to_state == EventState.LOST:
        notes = lost_notes if lost_notes is not None else reason
        stored_reason, stored_competitor = _compose_lost_reason(
            ctx, lost_reason_code, competitor_id, notes
        )
        lost_fields = {
            "lost_reason_code": lost_reason_code,
            "lost_competitor_id": stored_competitor,
            "lost_notes": notes.strip() if notes and notes.strip() else None,
        }

    entry = StateChangeEntry(
        timestamp=ctx.clock.now(),
        actor_id=actor.actor_id,
        actor_name=actor.actor_name,
        from_state=event.state,
        to_state=to_state,
        reason=stored_reason,
    )
    status = MenuStatus.FINALIZED if EVENT_LIFECYCLE.is_terminal(to_state.value) else event.status
    updated = replace(
        event,
        state=to_state,
        status=status,
        state_history=event.state_history + (entry,),
        **lost_fields,
    )
    return CommandResult(
        updated,
        (
            persist(EVENTS_COLLECTION, event.id),
            audit_log(
                actor, "UPDATE_EVENT",
                f"Event '{event.event_type}' moved from {event.state.value} to {to_state.value}",
                event.id, event.client_id,
            ),
        ),
    )


def set_menu_status(event: Event, status: MenuStatus, ctx: CommandContext) -> CommandResult[Event]:
    """Finalize or reopen the menu selection."""
    ctx.require_actor()
    status = to_enum(MenuStatus, status, "status")
    PermissionGate.require_modify(ctx.permissions, PermissionScope.CLIENTS_AND_EVENTS)
    assert_ledger_editable(event, f"set menu status to {status.value}")
    if event.status == status:
        return CommandResult(event)
    updated = replace(event, status=status)
    return CommandResult(updated, (persist(EVENTS_COLLECTION, event.id),))


def _recompute_special_charges(
    event: Event, ctx: CommandContext, actor: Actor, reason: str
) -> Event:
    """Re-derive every live reserved charge against the event's current figures.

    Charges whose amount moves get an ``updated`` audit entry.
    """
    charges = []
    for charge in event.charges:
        if charge.is_deleted or not charge.is_special:
            charges.append(charge)
            continue
        recomputed = recompute_charge(charge, event)
        if recomputed is charge:
            charges.append(charge)
            continue
        entry = make_entry(
            actor, ctx.clock, AuditAction.UPDATED, f"{RECALCULATED_REASON}: {reason}",
            diff_fields({"amount": charge.amount}, {"amount": recomputed.amount}, ("amount",)),
        )
        charges.append(replace(recomputed, history=append_entry(charge.history, entry)))
    return replace(event, charges=tuple(charges))


def _apply_core_change(
    event: Event,
    ctx: CommandContext,
    actor: Actor,
    updated: Event,
    reason: str | None,
) -> CommandResult[Event]:
    before = {name: getattr(event, name) for name in _CORE_FIELDS}
    after = {name: getattr(updated, name) for name in _CORE_FIELDS}
    changes = diff_fields(before, after, _CORE_FIELDS)
    if not changes:
        return CommandResult(event)

    reason_text = reason.strip() if reason and reason.strip() else CORE_FIGURES_UPDATED_REASON
    entry = make_entry(actor, ctx.clock, AuditAction.UPDATED, reason_text, changes)
    updated = replace(updated, history=append_entry(event.history, entry))
    updated = _recompute_special_charges(updated, ctx, actor, reason_text)
    return CommandResult(updated, (persist(EVENTS_COLLECTION, event.id),))


def set_pricing_model(
    event: Event,
    model: PricingModel,
    ctx: CommandContext,
    *,
    reason: str | None = None,
) -> CommandResult[Event]:
    """Switch pricing model and zero the field the new model does not use."""
    actor = ctx.require_actor()
    model = to_enum(PricingModel, model, "pricing_model")
    PermissionGate.require_modify(ctx.permissions, PermissionScope.FINANCE_CORE)
    assert_ledger_editable(event, "change the pricing model")

    per_pax_price, rent = _apply_pricing_exclusivity(model, event.per_pax_price, event.rent)
    updated = replace(event, pricing_model=model, per_pax_price=per_pax_price, rent=rent)
    return _apply_core_change(event, ctx, actor, updated, reason)


def update_core_figures(
    event: Event,
    ctx: CommandContext,
    *,
    pax: int | None = None,
    per_pax_price: Decimal | int | str | None = None,
    rent: Decimal | int | str | None = None,
    reason: str | None = None,
) -> CommandResult[Event]:
    """
    Edit pax, per-pax price and rent.  ``None`` leaves a figure unchanged.

    A nonzero figure the current pricing model does not use is rejected,
    so the exclusivity invariant cannot be broken through this path.
    """
    actor = ctx.require_actor()
    PermissionGate.require_modify(ctx.permissions, PermissionScope.FINANCE_CORE)
    assert_ledger_editable(event, "update core figures")

    new_pax = event.pax if pax is None else to_count(pax, "pax")
    new_price = event.per_pax_price if per_pax_price is None else to_money(per_pax_price, "per_pax_price")
    new_rent = event.rent if rent is None else to_money(rent, "rent")
    _check_non_negative("pax", new_pax)
    _check_non_negative("per_pax_price", new_price)
    _check_non_negative("rent", new_rent)

    if event.pricing_model == PricingModel.FLAT and new_price != ZERO:
        raise ValidationError(
            "per_pax_price does not apply to flat pricing", field="per_pax_price"
        )
    if event.pricing_model == PricingModel.VARIABLE and new_rent != ZERO:
        raise ValidationError("rent does not apply to variable pricing", field="rent")

    updated = replace(event, pax=new_pax, per_pax_price=new_price, rent=new_rent)
    return _apply_core_change(event, ctx, actor, updated, reason)
