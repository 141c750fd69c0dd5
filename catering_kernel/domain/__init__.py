"""
Pure domain layer.

This package contains the aggregates and command functions of the ledger
with NO dependencies on:
- ORM (SQLAlchemy)
- Database
- Configuration files
- I/O (the system clock is injected)

All domain objects are immutable and deterministic.
"""

from catering_kernel.domain.aggregator import (
    ClientBalance,
    FinanceView,
    FinancialSummary,
    build_finance_view,
    summarize_client,
    summarize_event,
)
from catering_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from catering_kernel.domain.commands import (
    CommandContext,
    CommandResult,
    LostReasonRule,
    SideEffect,
    SideEffectKind,
)
from catering_kernel.domain.ledger import ChargeInput, TransactionInput
from catering_kernel.domain.models import (
    Actor,
    AuditEntry,
    Charge,
    Client,
    Event,
    FieldChange,
    StateChangeEntry,
    Transaction,
)
from catering_kernel.domain.permissions import AppPermissions, PermissionGate, PermissionScope
from catering_kernel.domain.values import (
    AuditAction,
    ChargeType,
    ClientStatus,
    EventState,
    MenuStatus,
    PermissionLevel,
    PricingModel,
    TransactionType,
)

__all__ = [
    # Aggregates and records
    "Actor",
    "AuditEntry",
    "Charge",
    "Client",
    "Event",
    "FieldChange",
    "StateChangeEntry",
    "Transaction",
    # Values
    "AuditAction",
    "ChargeType",
    "ClientStatus",
    "EventState",
    "MenuStatus",
    "PermissionLevel",
    "PricingModel",
    "TransactionType",
    # Commands
    "ChargeInput",
    "CommandContext",
    "CommandResult",
    "LostReasonRule",
    "SideEffect",
    "SideEffectKind",
    "TransactionInput",
    # Permissions
    "AppPermissions",
    "PermissionGate",
    "PermissionScope",
    # Aggregation
    "ClientBalance",
    "FinanceView",
    "FinancialSummary",
    "build_finance_view",
    "summarize_client",
    "summarize_event",
    # Clock
    "Clock",
    "DeterministicClock",
    "SystemClock",
]
