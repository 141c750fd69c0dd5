"""
Lifecycle service -- persisted event creation, transitions, menu and
pricing-core edits.

Wraps the pure commands of ``domain.lifecycle`` and ``domain.menu`` in the
load -> command -> commit cycle of ``BaseService`` and logs each accepted
change.  Transition logs carry the from/to states so a lifecycle can be
reconstructed from the log stream alone.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from datetime import date
from decimal import Decimal

from catering_kernel.domain import lifecycle, menu
from catering_kernel.domain.commands import CommandContext
from catering_kernel.domain.models import Event
from catering_kernel.domain.values import EventState, MenuStatus, PricingModel
from catering_kernel.logging_config import LogContext, get_logger
from catering_kernel.services.base import BaseService

logger = get_logger("services.lifecycle")


def _actor_id(ctx: CommandContext) -> str | None:
    return ctx.actor.actor_id if ctx.actor else None


class LifecycleService(BaseService):
    """Event-level commands against the document store."""

    def create_event(
        self,
        ctx: CommandContext,
        *,
        client_id: str | None,
        event_type: str,
        start_date: date | str,
        end_date: date | str | None = None,
        location: str = "",
        session: str = "",
        pax: int = 0,
    ) -> Event:
        with LogContext.bind(client_id=client_id, actor_id=_actor_id(ctx)):
            event = self._run(
                "create_event",
                lambda: lifecycle.create_event(
                    ctx,
                    client_id=client_id,
                    event_type=event_type,
                    start_date=start_date,
                    end_date=end_date,
                    location=location,
                    session=session,
                    pax=pax,
                ),
                ctx,
            )
            logger.info(
                "event_created",
                extra={
                    "event_id": event.id,
                    "event_type": event.event_type,
                    "start_date": event.start_date,
                },
            )
            return event

    def duplicate_event(self, event_id: str, ctx: CommandContext) -> Event:
        with LogContext.bind(event_id=event_id, actor_id=_actor_id(ctx)):
            source = self.load_event(event_id)
            copy = self._run(
                "duplicate_event", lambda: lifecycle.duplicate_event(source, ctx), ctx
            )
            logger.info("event_duplicated", extra={"new_event_id": copy.id})
            return copy

    def transition(
        self,
        event_id: str,
        to_state: EventState,
        ctx: CommandContext,
        *,
        reason: str | None = None,
        lost_reason_code: str | None = None,
        competitor_id: str | None = None,
        lost_notes: str | None = None,
        expected_version: int | None = None,
    ) -> Event:
        with LogContext.bind(event_id=event_id, actor_id=_actor_id(ctx)):
            event = self.load_event(event_id, expected_version)
            updated = self._run(
                "transition",
                lambda: lifecycle.transition(
                    event,
                    to_state,
                    ctx,
                    reason=reason,
                    lost_reason_code=lost_reason_code,
                    competitor_id=competitor_id,
                    lost_notes=lost_notes,
                ),
                ctx,
            )
            logger.info(
                "event_transition_applied",
                extra={
                    "from_state": event.state.value,
                    "to_state": updated.state.value,
                    "status": updated.status.value,
                    "version": updated.version,
                },
            )
            return updated

    def set_menu_status(
        self,
        event_id: str,
        status: MenuStatus,
        ctx: CommandContext,
        expected_version: int | None = None,
    ) -> Event:
        with LogContext.bind(event_id=event_id, actor_id=_actor_id(ctx)):
            event = self.load_event(event_id, expected_version)
            updated = self._run(
                "set_menu_status",
                lambda: lifecycle.set_menu_status(event, status, ctx),
                ctx,
            )
            logger.info(
                "menu_status_set",
                extra={"status": updated.status.value, "version": updated.version},
            )
            return updated

    def update_menu_selection(
        self,
        event_id: str,
        ctx: CommandContext,
        *,
        item_ids: Mapping[str, Iterable[str]] | None = None,
        live_counters: Mapping[str, Iterable[str]] | None = None,
        cocktail_menu_items: Mapping[str, Iterable[str]] | None = None,
        hi_tea_menu_items: Mapping[str, Iterable[str]] | None = None,
        expected_version: int | None = None,
    ) -> Event:
        with LogContext.bind(event_id=event_id, actor_id=_actor_id(ctx)):
            event = self.load_event(event_id, expected_version)
            updated = self._run(
                "update_menu_selection",
                lambda: menu.update_menu_selection(
                    event,
                    ctx,
                    item_ids=item_ids,
                    live_counters=live_counters,
                    cocktail_menu_items=cocktail_menu_items,
                    hi_tea_menu_items=hi_tea_menu_items,
                ),
                ctx,
            )
            logger.info("menu_selection_updated", extra={"version": updated.version})
            return updated

    def set_pricing_model(
        self,
        event_id: str,
        model: PricingModel,
        ctx: CommandContext,
        *,
        reason: str | None = None,
        expected_version: int | None = None,
    ) -> Event:
        with LogContext.bind(event_id=event_id, actor_id=_actor_id(ctx)):
            event = self.load_event(event_id, expected_version)
            updated = self._run(
                "set_pricing_model",
                lambda: lifecycle.set_pricing_model(event, model, ctx, reason=reason),
                ctx,
            )
            logger.info(
                "pricing_model_set",
                extra={
                    "pricing_model": updated.pricing_model.value,
                    "version": updated.version,
                },
            )
            return updated

    def update_core_figures(
        self,
        event_id: str,
        ctx: CommandContext,
        *,
        pax: int | None = None,
        per_pax_price: Decimal | int | str | None = None,
        rent: Decimal | int | str | None = None,
        reason: str | None = None,
        expected_version: int | None = None,
    ) -> Event:
        with LogContext.bind(event_id=event_id, actor_id=_actor_id(ctx)):
            event = self.load_event(event_id, expected_version)
            updated = self._run(
                "update_core_figures",
                lambda: lifecycle.update_core_figures(
                    event, ctx, pax=pax, per_pax_price=per_pax_price, rent=rent,
                    reason=reason,
                ),
                ctx,
            )
            logger.info(
                "core_figures_updated",
                extra={
                    "pax": updated.pax,
                    "per_pax_price": updated.per_pax_price,
                    "rent": updated.rent,
                    "version": updated.version,
                },
            )
            return updated
