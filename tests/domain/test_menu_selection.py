"""Menu selections gated by live charges."""

from dataclasses import replace

import pytest

from catering_kernel.domain import ledger, menu
from catering_kernel.domain.values import MenuStatus
from catering_kernel.exceptions import EventLockedError, ValidationError
from tests.builders import cocktail_menu, live_counter


class TestUpdateMenuSelection:

    def test_item_ids_need_no_charge(self, make_event, ctx):
        event = menu.update_menu_selection(
            make_event(), ctx, item_ids={"starters": ["paneer", "kebab"]}
        ).aggregate
        assert event.item_ids == {"starters": ("paneer", "kebab")}

    def test_live_counter_needs_live_charge(self, make_event, ctx):
        with pytest.raises(ValidationError) as exc_info:
            menu.update_menu_selection(make_event(), ctx, live_counters={"lc-1": ["dosa"]})
        assert exc_info.value.field == "live_counters"

    def test_live_counter_with_charge(self, make_event, ctx):
        event = ledger.create_charge(make_event(), live_counter(100, counter_id="lc-1"), ctx).aggregate
        event = menu.update_menu_selection(event, ctx, live_counters={"lc-1": ["dosa"]}).aggregate
        assert event.live_counters == {"lc-1": ("dosa",)}

    def test_cocktail_needs_charge(self, make_event, ctx):
        with pytest.raises(ValidationError):
            menu.update_menu_selection(make_event(), ctx, cocktail_menu_items={"mocktails": ["m1"]})

    def test_clearing_a_sub_menu_needs_no_charge(self, make_event, ctx):
        event = make_event(cocktail_menu_items={"mocktails": ("m1",)})
        event = menu.update_menu_selection(event, ctx, cocktail_menu_items={}).aggregate
        assert event.cocktail_menu_items == {}

    def test_finalized_menu_is_locked(self, make_event, ctx):
        event = make_event(status=MenuStatus.FINALIZED)
        with pytest.raises(EventLockedError):
            menu.update_menu_selection(event, ctx, item_ids={"starters": ["paneer"]})

    def test_nothing_to_change(self, make_event, ctx):
        event = make_event()
        result = menu.update_menu_selection(event, ctx)
        assert result.aggregate is event
        assert result.effects == ()


class TestClearHelpers:

    def test_clear_live_counter_leaves_others(self, make_event):
        event = make_event(live_counters={"lc-1": ("a",), "lc-2": ("b",)})
        assert menu.clear_live_counter(event, "lc-1").live_counters == {"lc-2": ("b",)}

    def test_clear_unknown_counter_returns_same_event(self, make_event):
        event = make_event()
        assert menu.clear_live_counter(event, "lc-9") is event

    def test_clear_sub_menu_ignores_free_form_types(self, make_event):
        event = make_event()
        assert menu.clear_sub_menu(event, "Decoration") is event

    def test_deleted_cocktail_charge_releases_selection(self, make_event, ctx):
        event = ledger.create_charge(make_event(), cocktail_menu(250, 40), ctx).aggregate
        event = replace(event, cocktail_menu_items={"mocktails": ("m1",)})
        event = ledger.delete_charge(event, event.charges[0].id, "Not needed", ctx).aggregate
        assert event.cocktail_menu_items == {}
