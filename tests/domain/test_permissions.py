"""Scoped permission levels and the gate."""

import pytest

from catering_kernel.domain.permissions import (
    AppPermissions,
    PermissionGate,
    PermissionScope,
    scope_for_transaction,
)
from catering_kernel.domain.values import PermissionLevel, TransactionType
from catering_kernel.exceptions import PermissionDeniedError, ValidationError


class TestAppPermissions:

    def test_levels_are_ordered(self):
        perms = AppPermissions(finance_core=PermissionLevel.VIEW)
        assert perms.can_view(PermissionScope.FINANCE_CORE)
        assert not perms.can_modify(PermissionScope.FINANCE_CORE)
        assert not perms.can_view(PermissionScope.FINANCE_CHARGES)

    def test_from_mapping_ignores_unknown_keys(self):
        perms = AppPermissions.from_mapping({
            "financeCore": "modify",
            "financePayments": "view",
            "inventory": "modify",
            "allowEventCancellation": True,
        })
        assert perms.finance_core == PermissionLevel.MODIFY
        assert perms.finance_payments == PermissionLevel.VIEW
        assert perms.finance_expenses == PermissionLevel.NONE
        assert perms.allow_event_cancellation

    def test_mapping_round_trip(self):
        perms = AppPermissions.full_access()
        assert AppPermissions.from_mapping(perms.to_mapping()) == perms

    def test_unknown_level_rejected(self):
        with pytest.raises(ValidationError) as exc_info:
            AppPermissions.from_mapping({"financeCore": "admin"})
        assert exc_info.value.field == "financeCore"

    def test_no_access_default(self):
        perms = AppPermissions.no_access()
        assert all(not perms.can_view(scope) for scope in PermissionScope)
        assert not perms.allow_event_cancellation


class TestPermissionGate:

    def test_view_does_not_grant_modify(self):
        perms = AppPermissions(finance_charges=PermissionLevel.VIEW)
        with pytest.raises(PermissionDeniedError) as exc_info:
            PermissionGate.require_modify(perms, PermissionScope.FINANCE_CHARGES)
        error = exc_info.value
        assert (error.scope, error.required, error.actual) == ("financeCharges", "modify", "view")

    def test_require_view(self):
        PermissionGate.require_view(
            AppPermissions(finance_core=PermissionLevel.VIEW), PermissionScope.FINANCE_CORE
        )
        with pytest.raises(PermissionDeniedError):
            PermissionGate.require_view(AppPermissions(), PermissionScope.FINANCE_CORE)

    def test_cancellation_is_separate_from_levels(self):
        perms = AppPermissions(clients_and_events=PermissionLevel.MODIFY)
        with pytest.raises(PermissionDeniedError):
            PermissionGate.require_cancellation(perms)

    @pytest.mark.parametrize(
        "txn_type, scope",
        [
            (TransactionType.INCOME, PermissionScope.FINANCE_PAYMENTS),
            (TransactionType.EXPENSE, PermissionScope.FINANCE_EXPENSES),
        ],
    )
    def test_scope_for_transaction(self, txn_type, scope):
        assert scope_for_transaction(txn_type) == scope
