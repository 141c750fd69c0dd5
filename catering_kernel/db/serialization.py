"""
Module: catering_kernel.db.serialization
Responsibility: Store adapter.  Maps Event and Client aggregates to and from
    the camelCase JSON documents held by the document store.
Architecture position: Kernel > DB.  Imports domain models; the domain does
    not import this module.

Invariants enforced:
    - Money is written as a decimal string and read back with
      ``values.to_money``, so any numeric or string form in the store
      becomes ``Decimal``.
    - Absent (None) fields are dropped before writing (``clean_document``).
    - Reference fields may arrive as a bare id, an ``{"id": ...}`` handle or
      an object with an ``id`` attribute; ``normalize_reference`` turns all
      of them into a plain string before the domain sees them.

Failure modes:
    - ValidationError for a reference that cannot be resolved to an id, or
      a malformed number, date or enum value.
"""

from __future__ import annotations

from collections.abc import Mapping
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any

from catering_kernel.domain.models import (
    AuditEntry,
    Charge,
    Client,
    Event,
    FieldChange,
    StateChangeEntry,
    Transaction,
)
from catering_kernel.domain.values import (
    AuditAction,
    ClientStatus,
    EventState,
    MenuStatus,
    PricingModel,
    TransactionType,
    to_count,
    to_date,
    to_enum,
    to_money,
)
from catering_kernel.exceptions import ValidationError

# ---------------------------------------------------------------------------
# Generic helpers
# ---------------------------------------------------------------------------


def clean_document(value: Any) -> Any:
    """Recursively drop None-valued keys.  List items are cleaned, not dropped."""
    if isinstance(value, Mapping):
        return {k: clean_document(v) for k, v in value.items() if v is not None}
    if isinstance(value, (list, tuple)):
        return [clean_document(v) for v in value]
    return value


def normalize_reference(value: Any, field: str) -> str | None:
    """Reduce a reference field to a plain identifier."""
    if value is None or value == "":
        return None
    if isinstance(value, str):
        return value
    if isinstance(value, Mapping):
        ref = value.get("id")
        if ref is None or ref == "":
            raise ValidationError(f"{field} handle has no id", field=field)
        return str(ref)
    ref = getattr(value, "id", None)
    if ref is not None:
        return str(ref)
    if isinstance(value, int) and not isinstance(value, bool):
        return str(value)
    raise ValidationError(f"{field} is not a reference: {value!r}", field=field)


def _json_value(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return value


def _money_out(value: Decimal | None) -> str | None:
    return None if value is None else str(value)


def _money_in(value: Any, field: str) -> Decimal | None:
    return None if value is None else to_money(value, field)


def _count_in(value: Any, field: str) -> int | None:
    return None if value is None else to_count(value, field)


def _parse_datetime(value: Any, field: str) -> datetime | None:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    try:
        return datetime.fromisoformat(str(value))
    except ValueError as e:
        raise ValidationError(f"{field} is not an ISO timestamp: {value!r}", field=field) from e


def _parse_date(value: Any, field: str) -> date | None:
    if value is None or value == "":
        return None
    return to_date(value, field)


def _enum(enum_cls: type[Enum], value: Any, default: Enum, field: str) -> Any:
    if value is None or value == "":
        return default
    return to_enum(enum_cls, value, field)


def _selection_out(selection: Mapping[str, tuple[str, ...]]) -> dict[str, list[str]]:
    return {key: list(ids) for key, ids in selection.items()}


def _selection_in(raw: Any) -> dict[str, tuple[str, ...]]:
    if not raw:
        return {}
    return {str(key): tuple(str(i) for i in (ids or ())) for key, ids in raw.items()}


# ---------------------------------------------------------------------------
# Embedded records
# ---------------------------------------------------------------------------


def audit_entry_to_document(entry: AuditEntry) -> dict[str, Any]:
    doc: dict[str, Any] = {
        "timestamp": entry.timestamp.isoformat(),
        "userId": entry.actor_id,
        "username": entry.actor_name,
        "action": entry.action.value,
        "reason": entry.reason,
    }
    if entry.changes:
        doc["changes"] = [
            {"field": c.field, "from": _json_value(c.from_value), "to": _json_value(c.to_value)}
            for c in entry.changes
        ]
    return doc


def audit_entry_from_document(doc: Mapping[str, Any]) -> AuditEntry:
    return AuditEntry(
        timestamp=_parse_datetime(doc.get("timestamp"), "timestamp"),
        actor_id=normalize_reference(doc.get("userId"), "userId") or "",
        actor_name=doc.get("username") or "",
        action=_enum(AuditAction, doc.get("action"), AuditAction.UPDATED, "action"),
        reason=doc.get("reason") or "",
        changes=tuple(
            FieldChange(field=c.get("field", ""), from_value=c.get("from"), to_value=c.get("to"))
            for c in doc.get("changes") or ()
        ),
    )


def _history_in(raw: Any) -> tuple[AuditEntry, ...]:
    return tuple(audit_entry_from_document(e) for e in raw or ())


def state_entry_to_document(entry: StateChangeEntry) -> dict[str, Any]:
    return {
        "timestamp": entry.timestamp.isoformat(),
        "userId": entry.actor_id,
        "username": entry.actor_name,
        "fromState": entry.from_state.value if entry.from_state else None,
        "toState": entry.to_state.value,
        "reason": entry.reason,
    }


def state_entry_from_document(doc: Mapping[str, Any]) -> StateChangeEntry:
    from_state = doc.get("fromState")
    return StateChangeEntry(
        timestamp=_parse_datetime(doc.get("timestamp"), "timestamp"),
        actor_id=normalize_reference(doc.get("userId"), "userId") or "",
        actor_name=doc.get("username") or "",
        from_state=to_enum(EventState, from_state, "fromState") if from_state else None,
        to_state=_enum(EventState, doc.get("toState"), EventState.LEAD, "toState"),
        reason=doc.get("reason"),
    )


def charge_to_document(charge: Charge) -> dict[str, Any]:
    return {
        "id": charge.id,
        "type": charge.type,
        "amount": str(charge.amount),
        "notes": charge.notes,
        "isDeleted": charge.is_deleted,
        "history": [audit_entry_to_document(e) for e in charge.history],
        "price": _money_out(charge.price),
        "discountAmount": _money_out(charge.discount_amount),
        "liveCounterId": charge.live_counter_id,
        "menuTemplateId": charge.menu_template_id,
        "cocktailPax": charge.cocktail_pax,
        "corkageCharges": _money_out(charge.corkage_charges),
        "additionalPaxCount": charge.additional_pax_count,
    }


def charge_from_document(doc: Mapping[str, Any]) -> Charge:
    return Charge(
        id=str(doc["id"]),
        type=doc.get("type") or "",
        amount=to_money(doc.get("amount"), "amount"),
        notes=doc.get("notes") or "",
        is_deleted=bool(doc.get("isDeleted", False)),
        history=_history_in(doc.get("history")),
        price=_money_in(doc.get("price"), "price"),
        discount_amount=_money_in(doc.get("discountAmount"), "discountAmount"),
        live_counter_id=normalize_reference(doc.get("liveCounterId"), "liveCounterId"),
        menu_template_id=normalize_reference(doc.get("menuTemplateId"), "menuTemplateId"),
        cocktail_pax=_count_in(doc.get("cocktailPax"), "cocktailPax"),
        corkage_charges=_money_in(doc.get("corkageCharges"), "corkageCharges"),
        additional_pax_count=_count_in(doc.get("additionalPaxCount"), "additionalPaxCount"),
    )


def transaction_to_document(txn: Transaction) -> dict[str, Any]:
    return {
        "id": txn.id,
        "type": txn.type.value,
        "date": txn.date.isoformat(),
        "amount": str(txn.amount),
        "paymentMode": txn.payment_mode,
        "category": txn.category,
        "notes": txn.notes,
        "isDeleted": txn.is_deleted,
        "history": [audit_entry_to_document(e) for e in txn.history],
    }


def transaction_from_document(doc: Mapping[str, Any]) -> Transaction:
    return Transaction(
        id=str(doc["id"]),
        type=_enum(TransactionType, doc.get("type"), TransactionType.INCOME, "type"),
        date=_parse_date(doc.get("date"), "date"),
        amount=to_money(doc.get("amount"), "amount"),
        payment_mode=doc.get("paymentMode"),
        category=doc.get("category"),
        notes=doc.get("notes") or "",
        is_deleted=bool(doc.get("isDeleted", False)),
        history=_history_in(doc.get("history")),
    )


# ---------------------------------------------------------------------------
# Aggregates
# ---------------------------------------------------------------------------


def event_to_document(event: Event) -> dict[str, Any]:
    """Cleaned store document.  ``version`` is owned by the store."""
    return clean_document({
        "id": event.id,
        "clientId": event.client_id,
        "eventType": event.event_type,
        "startDate": event.start_date.isoformat(),
        "endDate": event.end_date.isoformat() if event.end_date else None,
        "location": event.location,
        "session": event.session,
        "createdAt": event.created_at.isoformat() if event.created_at else None,
        "state": event.state.value,
        "status": event.status.value,
        "pricingModel": event.pricing_model.value,
        "pax": event.pax,
        "perPaxPrice": str(event.per_pax_price),
        "rent": str(event.rent),
        "charges": [charge_to_document(c) for c in event.charges],
        "transactions": [transaction_to_document(t) for t in event.transactions],
        "stateHistory": [state_entry_to_document(s) for s in event.state_history],
        "history": [audit_entry_to_document(e) for e in event.history],
        "itemIds": _selection_out(event.item_ids),
        "liveCounters": _selection_out(event.live_counters),
        "cocktailMenuItems": _selection_out(event.cocktail_menu_items),
        "hiTeaMenuItems": _selection_out(event.hi_tea_menu_items),
        "lostReasonCode": event.lost_reason_code,
        "lostCompetitorId": event.lost_competitor_id,
        "lostNotes": event.lost_notes,
    })


def event_from_document(doc: Mapping[str, Any]) -> Event:
    """
    Build an Event from a stored document.

    Missing finance fields take their defaults (variable pricing, zero
    figures, empty ledger), matching events created before the ledger
    existed.
    """
    start_date = _parse_date(doc.get("startDate"), "startDate")
    if start_date is None:
        raise ValidationError("startDate is required", field="startDate")
    return Event(
        id=str(doc["id"]),
        client_id=normalize_reference(doc.get("clientId"), "clientId"),
        event_type=doc.get("eventType") or "",
        start_date=start_date,
        end_date=_parse_date(doc.get("endDate"), "endDate"),
        location=doc.get("location") or "",
        session=doc.get("session") or "",
        created_at=_parse_datetime(doc.get("createdAt"), "createdAt"),
        state=_enum(EventState, doc.get("state"), EventState.LEAD, "state"),
        status=_enum(MenuStatus, doc.get("status"), MenuStatus.DRAFT, "status"),
        pricing_model=_enum(
            PricingModel, doc.get("pricingModel"), PricingModel.VARIABLE, "pricingModel"
        ),
        pax=to_count(doc.get("pax"), "pax"),
        per_pax_price=to_money(doc.get("perPaxPrice"), "perPaxPrice"),
        rent=to_money(doc.get("rent"), "rent"),
        charges=tuple(charge_from_document(c) for c in doc.get("charges") or ()),
        transactions=tuple(transaction_from_document(t) for t in doc.get("transactions") or ()),
        state_history=tuple(
            state_entry_from_document(s) for s in doc.get("stateHistory") or ()
        ),
        history=_history_in(doc.get("history")),
        item_ids=_selection_in(doc.get("itemIds")),
        live_counters=_selection_in(doc.get("liveCounters")),
        cocktail_menu_items=_selection_in(doc.get("cocktailMenuItems")),
        hi_tea_menu_items=_selection_in(doc.get("hiTeaMenuItems")),
        lost_reason_code=doc.get("lostReasonCode"),
        lost_competitor_id=normalize_reference(doc.get("lostCompetitorId"), "lostCompetitorId"),
        lost_notes=doc.get("lostNotes"),
        version=int(doc.get("version") or 0),
    )


def client_to_document(client: Client) -> dict[str, Any]:
    return clean_document({
        "id": client.id,
        "name": client.name,
        "phone": client.phone,
        "email": client.email,
        "company": client.company,
        "address": client.address,
        "referredBy": client.referred_by,
        "status": client.status.value,
        "history": [audit_entry_to_document(e) for e in client.history],
        "transactions": [transaction_to_document(t) for t in client.transactions],
    })


def client_from_document(doc: Mapping[str, Any]) -> Client:
    return Client(
        id=str(doc["id"]),
        name=doc.get("name") or "",
        phone=doc.get("phone") or "",
        email=doc.get("email"),
        company=doc.get("company"),
        address=doc.get("address"),
        referred_by=normalize_reference(doc.get("referredBy"), "referredBy"),
        status=_enum(ClientStatus, doc.get("status"), ClientStatus.ACTIVE, "status"),
        history=_history_in(doc.get("history")),
        transactions=tuple(transaction_from_document(t) for t in doc.get("transactions") or ()),
        version=int(doc.get("version") or 0),
    )
