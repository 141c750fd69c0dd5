"""
catering_kernel.domain.permissions -- Scoped permission gate.

Responsibility:
    Decide whether a caller's resolved permission snapshot allows a given
    mutation or read.  Five independent scopes each carry a ``none | view |
    modify`` level; event cancellation is a separate boolean capability.

Architecture position:
    Kernel > Domain -- pure.  Permission *resolution* (which role a user
    holds, which preset applies) is an outer concern; this module only
    consumes the resolved ``AppPermissions`` snapshot.

Invariants:
    - Every mutation requires ``modify`` on its scope.
    - ``view`` permits read/recompute only.
    - ``none`` hides the capability entirely (see
      ``aggregator.build_finance_view``).
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any

from catering_kernel.domain.values import PermissionLevel, TransactionType, to_enum
from catering_kernel.exceptions import PermissionDeniedError


class PermissionScope(str, Enum):
    """Functional areas with an independent permission level.

    Values are the keys used by the permission resolver.
    """

    FINANCE_CORE = "financeCore"
    FINANCE_CHARGES = "financeCharges"
    FINANCE_PAYMENTS = "financePayments"
    FINANCE_EXPENSES = "financeExpenses"
    CLIENTS_AND_EVENTS = "clientsAndEvents"


_RANK = {
    PermissionLevel.NONE: 0,
    PermissionLevel.VIEW: 1,
    PermissionLevel.MODIFY: 2,
}

ALLOW_EVENT_CANCELLATION = "allowEventCancellation"


@dataclass(frozen=True)
class AppPermissions:
    """Read-only snapshot of one caller's resolved permissions."""

    finance_core: PermissionLevel = PermissionLevel.NONE
    finance_charges: PermissionLevel = PermissionLevel.NONE
    finance_payments: PermissionLevel = PermissionLevel.NONE
    finance_expenses: PermissionLevel = PermissionLevel.NONE
    clients_and_events: PermissionLevel = PermissionLevel.NONE
    allow_event_cancellation: bool = False

    def level(self, scope: PermissionScope) -> PermissionLevel:
        return getattr(self, _SCOPE_ATTRS[scope])

    def can_view(self, scope: PermissionScope) -> bool:
        return _RANK[self.level(scope)] >= _RANK[PermissionLevel.VIEW]

    def can_modify(self, scope: PermissionScope) -> bool:
        return self.level(scope) == PermissionLevel.MODIFY

    @classmethod
    def full_access(cls) -> AppPermissions:
        return cls(
            finance_core=PermissionLevel.MODIFY,
            finance_charges=PermissionLevel.MODIFY,
            finance_payments=PermissionLevel.MODIFY,
            finance_expenses=PermissionLevel.MODIFY,
            clients_and_events=PermissionLevel.MODIFY,
            allow_event_cancellation=True,
        )

    @classmethod
    def no_access(cls) -> AppPermissions:
        return cls()

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> AppPermissions:
        """Build from resolver output keyed by scope name.

        Missing scopes read as ``none``; unrecognized keys (permissions for
        areas outside the ledger) are ignored.
        """
        kwargs: dict[str, Any] = {}
        for scope, attr in _SCOPE_ATTRS.items():
            raw = data.get(scope.value)
            kwargs[attr] = to_enum(PermissionLevel, raw, scope.value) if raw else PermissionLevel.NONE
        kwargs["allow_event_cancellation"] = bool(
            data.get(ALLOW_EVENT_CANCELLATION, False)
        )
        return cls(**kwargs)

    def to_mapping(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            scope.value: self.level(scope).value for scope in PermissionScope
        }
        result[ALLOW_EVENT_CANCELLATION] = self.allow_event_cancellation
        return result


_SCOPE_ATTRS: dict[PermissionScope, str] = {
    PermissionScope.FINANCE_CORE: "finance_core",
    PermissionScope.FINANCE_CHARGES: "finance_charges",
    PermissionScope.FINANCE_PAYMENTS: "finance_payments",
    PermissionScope.FINANCE_EXPENSES: "finance_expenses",
    PermissionScope.CLIENTS_AND_EVENTS: "clients_and_events",
}


def scope_for_transaction(transaction_type: TransactionType) -> PermissionScope:
    """Payments gate income; expenses gate expense."""
    if transaction_type == TransactionType.INCOME:
        return PermissionScope.FINANCE_PAYMENTS
    return PermissionScope.FINANCE_EXPENSES


class PermissionGate:
    """
    Raises ``PermissionDeniedError`` when a snapshot is insufficient.

    Stateless; methods are static so commands can call them without
    constructing anything.
    """

    @staticmethod
    def require_modify(permissions: AppPermissions, scope: PermissionScope) -> None:
        if not permissions.can_modify(scope):
            raise PermissionDeniedError(
                scope=scope.value,
                required=PermissionLevel.MODIFY.value,
                actual=permissions.level(scope).value,
            )

    @staticmethod
    def require_view(permissions: AppPermissions, scope: PermissionScope) -> None:
        if not permissions.can_view(scope):
            raise PermissionDeniedError(
                scope=scope.value,
                required=PermissionLevel.VIEW.value,
                actual=permissions.level(scope).value,
            )

    @staticmethod
    def require_cancellation(permissions: AppPermissions) -> None:
        if not permissions.allow_event_cancellation:
            raise PermissionDeniedError(
                scope=ALLOW_EVENT_CANCELLATION,
                required="true",
                actual="false",
            )
