"""
Models -- Immutable aggregates and embedded records of the ledger.

Responsibility:
    Defines the Event and Client aggregates together with the records
    embedded in them: charges, transactions, audit entries and state
    history entries.  Aggregates are values; every command returns a new
    instance built with ``dataclasses.replace``.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.
    Persistence shape (camelCase document keys) lives in
    ``catering_kernel.db.serialization``, not here.

Invariants enforced:
    - Collections are tuples so history can only be extended by building a
      new tuple (see ``domain.audit.append_entry``).
    - Menu selection maps are copied on every write by the commands that
      touch them; the dict objects held here are treated as read-only.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import Any

from catering_kernel.domain.values import (
    MENU_GATING_CHARGE_TYPES,
    TERMINAL_EVENT_STATES,
    ZERO,
    AuditAction,
    ClientStatus,
    EventState,
    MenuStatus,
    PricingModel,
    TransactionType,
    is_special_charge_type,
)

MenuSelection = dict[str, tuple[str, ...]]


@dataclass(frozen=True)
class Actor:
    """Identity of the person performing a mutation."""

    actor_id: str
    actor_name: str


@dataclass(frozen=True)
class FieldChange:
    """One field-level difference recorded on an update."""

    field: str
    from_value: Any
    to_value: Any


@dataclass(frozen=True)
class AuditEntry:
    """
    Append-only record of one mutation to an entity or ledger line.

    ``changes`` is empty for creations, deletions, and updates that did not
    alter any tracked field.
    """

    timestamp: datetime
    actor_id: str
    actor_name: str
    action: AuditAction
    reason: str
    changes: tuple[FieldChange, ...] = ()


@dataclass(frozen=True)
class StateChangeEntry:
    """Append-only record of an event lifecycle transition.

    ``from_state`` is None only for the creation entry.
    """

    timestamp: datetime
    actor_id: str
    actor_name: str
    from_state: EventState | None
    to_state: EventState
    reason: str | None = None


@dataclass(frozen=True)
class Charge:
    """
    A billable line item beyond the event's base cost.

    For reserved types (see ``values.ChargeType``) ``amount`` is derived by
    the charge calculator from the type-specific inputs.  For any other type
    it is entered directly.
    """

    id: str
    type: str
    amount: Decimal
    notes: str = ""
    is_deleted: bool = False
    history: tuple[AuditEntry, ...] = ()

    # Reserved-type inputs
    price: Decimal | None = None
    discount_amount: Decimal | None = None
    live_counter_id: str | None = None
    menu_template_id: str | None = None
    cocktail_pax: int | None = None
    corkage_charges: Decimal | None = None
    additional_pax_count: int | None = None

    @property
    def is_special(self) -> bool:
        return is_special_charge_type(self.type)

    @property
    def gates_menu(self) -> bool:
        """True if this charge makes a menu section available."""
        return self.type in MENU_GATING_CHARGE_TYPES


@dataclass(frozen=True)
class Transaction:
    """A cash movement: client payment (income) or event cost (expense)."""

    id: str
    type: TransactionType
    date: date
    amount: Decimal
    payment_mode: str | None = None
    category: str | None = None
    notes: str = ""
    is_deleted: bool = False
    history: tuple[AuditEntry, ...] = ()


@dataclass(frozen=True)
class Event:
    """
    Root aggregate for one catering engagement.

    ``version`` is assigned by the document store and is the token callers
    pass back on write.  A freshly built event that has never been stored
    has version 0.
    """

    id: str
    client_id: str | None
    event_type: str
    start_date: date
    end_date: date | None = None
    location: str = ""
    session: str = ""
    created_at: datetime | None = None

    state: EventState = EventState.LEAD
    status: MenuStatus = MenuStatus.DRAFT

    pricing_model: PricingModel = PricingModel.VARIABLE
    pax: int = 0
    per_pax_price: Decimal = ZERO
    rent: Decimal = ZERO

    charges: tuple[Charge, ...] = ()
    transactions: tuple[Transaction, ...] = ()
    state_history: tuple[StateChangeEntry, ...] = ()
    history: tuple[AuditEntry, ...] = ()

    item_ids: MenuSelection = field(default_factory=dict)
    live_counters: MenuSelection = field(default_factory=dict)
    cocktail_menu_items: MenuSelection = field(default_factory=dict)
    hi_tea_menu_items: MenuSelection = field(default_factory=dict)

    lost_reason_code: str | None = None
    lost_competitor_id: str | None = None
    lost_notes: str | None = None

    version: int = 0

    @property
    def is_terminal(self) -> bool:
        return self.state in TERMINAL_EVENT_STATES

    @property
    def is_menu_finalized(self) -> bool:
        return self.status == MenuStatus.FINALIZED

    def find_charge(self, charge_id: str) -> Charge | None:
        for charge in self.charges:
            if charge.id == charge_id:
                return charge
        return None

    def find_transaction(self, transaction_id: str) -> Transaction | None:
        for txn in self.transactions:
            if txn.id == transaction_id:
                return txn
        return None


@dataclass(frozen=True)
class Client:
    """
    A customer.  Carries its own profile history and, when billed directly
    rather than per event, a ledger of advance payments (income only).
    """

    id: str
    name: str
    phone: str = ""
    email: str | None = None
    company: str | None = None
    address: str | None = None
    referred_by: str | None = None
    status: ClientStatus = ClientStatus.ACTIVE
    history: tuple[AuditEntry, ...] = ()
    transactions: tuple[Transaction, ...] = ()
    version: int = 0

    def find_transaction(self, transaction_id: str) -> Transaction | None:
        for txn in self.transactions:
            if txn.id == transaction_id:
                return txn
        return None
