"""
Menu selections held on an event.

The item pools behind live counters, the cocktail menu and the hi-tea menu
exist only while a live charge of the matching type exists.  The ledger
calls the ``clear_*`` helpers when such a charge is deleted or re-pointed
at another template; ``update_menu_selection`` is the edit path for staff.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import replace

from catering_kernel.domain.commands import EVENTS_COLLECTION, CommandContext, CommandResult, persist
from catering_kernel.domain.lifecycle import assert_ledger_editable
from catering_kernel.domain.models import Event, MenuSelection
from catering_kernel.domain.permissions import PermissionGate, PermissionScope
from catering_kernel.domain.values import ChargeType
from catering_kernel.exceptions import ValidationError

# Sub-menu charge type -> Event attribute holding its selection map.
SUB_MENU_FIELDS: dict[str, str] = {
    ChargeType.COCKTAIL_MENU.value: "cocktail_menu_items",
    ChargeType.HI_TEA_MENU.value: "hi_tea_menu_items",
}


def _freeze(selection: Mapping[str, Iterable[str]]) -> MenuSelection:
    return {str(key): tuple(ids) for key, ids in selection.items()}


def clear_live_counter(event: Event, counter_id: str | None) -> Event:
    if not counter_id or counter_id not in event.live_counters:
        return event
    counters = {k: v for k, v in event.live_counters.items() if k != counter_id}
    return replace(event, live_counters=counters)


def clear_sub_menu(event: Event, charge_type: str) -> Event:
    attr = SUB_MENU_FIELDS.get(charge_type)
    if attr is None or not getattr(event, attr):
        return event
    return replace(event, **{attr: {}})


def _live_charge_types(event: Event) -> set[str]:
    return {c.type for c in event.charges if not c.is_deleted}


def _live_counter_ids(event: Event) -> set[str]:
    return {
        c.live_counter_id
        for c in event.charges
        if not c.is_deleted and c.type == ChargeType.LIVE_COUNTER and c.live_counter_id
    }


def update_menu_selection(
    event: Event,
    ctx: CommandContext,
    *,
    item_ids: Mapping[str, Iterable[str]] | None = None,
    live_counters: Mapping[str, Iterable[str]] | None = None,
    cocktail_menu_items: Mapping[str, Iterable[str]] | None = None,
    hi_tea_menu_items: Mapping[str, Iterable[str]] | None = None,
) -> CommandResult[Event]:
    """
    Replace one or more selection maps.  ``None`` leaves a map unchanged.

    Live counter keys must name a counter with a live Live Counter charge;
    cocktail and hi-tea selections need a live charge of that type.
    """
    ctx.require_actor()
    PermissionGate.require_modify(ctx.permissions, PermissionScope.CLIENTS_AND_EVENTS)
    assert_ledger_editable(event, "edit the menu", menu_gated=True)

    changes: dict[str, MenuSelection] = {}
    if item_ids is not None:
        changes["item_ids"] = _freeze(item_ids)
    if live_counters is not None:
        selection = _freeze(live_counters)
        unknown = set(selection) - _live_counter_ids(event)
        if unknown:
            raise ValidationError(
                f"No live counter charge for: {', '.join(sorted(unknown))}",
                field="live_counters",
            )
        changes["live_counters"] = selection
    live_types = _live_charge_types(event)
    for charge_type, attr, value in (
        (ChargeType.COCKTAIL_MENU.value, "cocktail_menu_items", cocktail_menu_items),
        (ChargeType.HI_TEA_MENU.value, "hi_tea_menu_items", hi_tea_menu_items),
    ):
        if value is None:
            continue
        selection = _freeze(value)
        if selection and charge_type not in live_types:
            raise ValidationError(f"No {charge_type} charge on this event", field=attr)
        changes[attr] = selection

    if not changes:
        return CommandResult(event)
    return CommandResult(replace(event, **changes), (persist(EVENTS_COLLECTION, event.id),))
