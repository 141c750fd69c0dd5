"""
Typed Exception Hierarchy for the Catering Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Every rejected command must tell the caller *what kind* of failure occurred
and *which field* caused it, so that a UI can render a precise message
without parsing strings.

  1. Every error has a TYPED exception class (catch by type, not message)
  2. Every exception has a CODE attribute (machine-readable, API-safe)
  3. Exceptions carry structured DATA (not just a message string)

Example - WRONG way to handle errors:
    try:
        delete_charge(event, charge_id, reason, ctx)
    except Exception as e:
        if "reason" in str(e):  # FRAGILE - message might change
            prompt_for_reason()

Example - RIGHT way:
    try:
        delete_charge(event, charge_id, reason, ctx)
    except MissingReasonError as e:
        prompt_for_reason(operation=e.operation)

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

All exceptions inherit from CateringLedgerError:

    CateringLedgerError (base)
    |
    +-- ValidationError
    |   +-- MissingReasonError
    |   +-- NonPositiveAmountError
    |   +-- MissingDiscriminatorError
    |   +-- NegativeValueError
    |   +-- InvalidChargeInputError
    |   +-- UnknownLostReasonError
    |   +-- MissingCompetitorError
    |   +-- InvalidStateTransitionError
    |
    +-- PermissionDeniedError
    |
    +-- LockedError
    |   +-- EventLockedError
    |
    +-- NotFoundError
    |   +-- EntryNotFoundError
    |   +-- DocumentNotFoundError
    |
    +-- AuthenticationError
    |
    +-- ConcurrencyError
        +-- ConflictError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category        | Code                        | When Raised
----------------|-----------------------------|-----------------------------------------
Validation      | MISSING_REASON              | update/delete/cancel without a reason
                | NON_POSITIVE_AMOUNT         | Ledger amount <= 0
                | MISSING_DISCRIMINATOR       | Income without payment mode, expense
                |                             | without category
                | NEGATIVE_VALUE              | pax / per-pax price / rent below zero
                | INVALID_CHARGE_INPUT        | Special charge input malformed
                | UNKNOWN_LOST_REASON         | Lost reason code not configured
                | MISSING_COMPETITOR          | Competition reason without competitor
                | INVALID_STATE_TRANSITION    | Edge not in the lifecycle table
----------------|-----------------------------|-----------------------------------------
Permission      | PERMISSION_DENIED           | Scope level below ``modify``
----------------|-----------------------------|-----------------------------------------
Locked          | EVENT_LOCKED                | Event lost/cancelled, or menu finalized
                |                             | for menu-gating charges
----------------|-----------------------------|-----------------------------------------
Not found       | ENTRY_NOT_FOUND             | Ledger id unknown or soft-deleted
                | DOCUMENT_NOT_FOUND          | Store has no such document
----------------|-----------------------------|-----------------------------------------
Authentication  | AUTHENTICATION_REQUIRED     | No actor identity supplied
----------------|-----------------------------|-----------------------------------------
Concurrency     | VERSION_CONFLICT            | Stale version on whole-document write

===============================================================================
DESIGN DECISIONS
===============================================================================

1. Domain exceptions inherit from Exception, not ValueError, so that
   they are catchable as a group and never confused with programming errors.

2. ``code`` is a class attribute: static per type, usable without an
   instance, safe to expose over an API.

3. Every constructor stores its context as attributes. The structured log
   formatter serializes those attributes as ``exc_<name>`` fields.

4. Commands raise before building the new aggregate, so a raised error
   always means "no state changed".
"""


class CateringLedgerError(Exception):
    """
    Base exception for all catering kernel errors.

    All subclasses must have a `code` class attribute for
    machine-readable error identification.
    """

    code: str = "CATERING_LEDGER_ERROR"


# Validation exceptions


class ValidationError(CateringLedgerError):
    """Command input rejected before any state mutation."""

    code: str = "VALIDATION_ERROR"

    def __init__(self, message: str, field: str | None = None):
        self.field = field
        super().__init__(message)


class MissingReasonError(ValidationError):
    """An update, delete or lifecycle change was requested without a reason."""

    code: str = "MISSING_REASON"

    def __init__(self, operation: str):
        self.operation = operation
        super().__init__(
            f"A reason is required to {operation}",
            field="reason",
        )


class NonPositiveAmountError(ValidationError):
    """A ledger entry amount was zero or negative."""

    code: str = "NON_POSITIVE_AMOUNT"

    def __init__(self, amount: object, entry_kind: str):
        self.amount = str(amount)
        self.entry_kind = entry_kind
        super().__init__(
            f"{entry_kind} amount must be greater than zero, got {amount}",
            field="amount",
        )


class MissingDiscriminatorError(ValidationError):
    """Income without payment mode or expense without category."""

    code: str = "MISSING_DISCRIMINATOR"

    def __init__(self, transaction_type: str, required_field: str):
        self.transaction_type = transaction_type
        self.required_field = required_field
        super().__init__(
            f"{transaction_type} transactions require {required_field}",
            field=required_field,
        )


class NegativeValueError(ValidationError):
    """A core pricing figure was negative."""

    code: str = "NEGATIVE_VALUE"

    def __init__(self, field: str, value: object):
        self.value = str(value)
        super().__init__(f"{field} cannot be negative, got {value}", field=field)


class InvalidChargeInputError(ValidationError):
    """Special charge inputs are malformed (e.g. negative count)."""

    code: str = "INVALID_CHARGE_INPUT"

    def __init__(self, charge_type: str, field: str, detail: str):
        self.charge_type = charge_type
        self.detail = detail
        super().__init__(f"{charge_type}: {detail}", field=field)


class UnknownLostReasonError(ValidationError):
    """Lost reason code is missing or not present in configuration."""

    code: str = "UNKNOWN_LOST_REASON"

    def __init__(self, reason_code: str | None):
        self.reason_code = reason_code
        if reason_code:
            message = f"Unknown lost reason code: {reason_code}"
        else:
            message = "A lost reason code is required"
        super().__init__(message, field="lost_reason_code")


class MissingCompetitorError(ValidationError):
    """Competition-flagged lost reason without a (known) competitor."""

    code: str = "MISSING_COMPETITOR"

    def __init__(self, reason_code: str, competitor_id: str | None = None):
        self.reason_code = reason_code
        self.competitor_id = competitor_id
        if competitor_id:
            message = f"Unknown competitor: {competitor_id}"
        else:
            message = f"Lost reason {reason_code} requires a competitor"
        super().__init__(message, field="competitor_id")


class InvalidStateTransitionError(ValidationError):
    """Requested lifecycle edge does not exist."""

    code: str = "INVALID_STATE_TRANSITION"

    def __init__(self, from_state: str, to_state: str):
        self.from_state = from_state
        self.to_state = to_state
        super().__init__(
            f"Cannot transition event from {from_state} to {to_state}",
            field="state",
        )


# Permission exceptions


class PermissionDeniedError(CateringLedgerError):
    """Caller's resolved permission level is insufficient."""

    code: str = "PERMISSION_DENIED"

    def __init__(self, scope: str, required: str, actual: str):
        self.scope = scope
        self.required = required
        self.actual = actual
        super().__init__(
            f"Permission denied on {scope}: requires {required}, have {actual}"
        )


# Lock exceptions


class LockedError(CateringLedgerError):
    """Mutation attempted on a locked aggregate."""

    code: str = "LOCKED"


class EventLockedError(LockedError):
    """Event state or menu status forbids the mutation."""

    code: str = "EVENT_LOCKED"

    def __init__(self, event_id: str, state: str, status: str, operation: str):
        self.event_id = event_id
        self.state = state
        self.status = status
        self.operation = operation
        super().__init__(
            f"Event {event_id} is locked (state={state}, status={status}); "
            f"cannot {operation}"
        )


# Not-found exceptions


class NotFoundError(CateringLedgerError):
    """Referenced object does not exist."""

    code: str = "NOT_FOUND"


class EntryNotFoundError(NotFoundError):
    """Ledger entry id unknown or already soft-deleted."""

    code: str = "ENTRY_NOT_FOUND"

    def __init__(self, entry_kind: str, entry_id: str, owner_id: str):
        self.entry_kind = entry_kind
        self.entry_id = entry_id
        self.owner_id = owner_id
        super().__init__(f"{entry_kind} {entry_id} not found on {owner_id}")


class DocumentNotFoundError(NotFoundError):
    """Store has no document with this id in the collection."""

    code: str = "DOCUMENT_NOT_FOUND"

    def __init__(self, collection: str, document_id: str):
        self.collection = collection
        self.document_id = document_id
        super().__init__(f"Document not found: {collection}/{document_id}")


# Authentication exceptions


class AuthenticationError(CateringLedgerError):
    """No resolvable actor identity. Never retried."""

    code: str = "AUTHENTICATION_REQUIRED"

    def __init__(self, message: str = "An authenticated actor is required"):
        super().__init__(message)


# Concurrency exceptions


class ConcurrencyError(CateringLedgerError):
    """Base exception for concurrency issues."""

    code: str = "CONCURRENCY_ERROR"


class ConflictError(ConcurrencyError):
    """Whole-document write carried a stale version."""

    code: str = "VERSION_CONFLICT"

    def __init__(
        self,
        collection: str,
        document_id: str,
        expected_version: int,
        actual_version: int,
    ):
        self.collection = collection
        self.document_id = document_id
        self.expected_version = expected_version
        self.actual_version = actual_version
        super().__init__(
            f"Version conflict on {collection}/{document_id}: "
            f"expected {expected_version}, current {actual_version}"
        )
