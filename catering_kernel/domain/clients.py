"""Client profile commands: creation and audited profile edits."""

from __future__ import annotations

from dataclasses import replace
from typing import Any

from catering_kernel.domain.audit import append_entry, diff_fields, make_entry, require_reason
from catering_kernel.domain.commands import (
    CLIENTS_COLLECTION,
    CommandContext,
    CommandResult,
    persist,
)
from catering_kernel.domain.models import Client
from catering_kernel.domain.permissions import PermissionGate, PermissionScope
from catering_kernel.domain.values import AuditAction, ClientStatus, to_enum
from catering_kernel.exceptions import ValidationError

CLIENT_CREATED_REASON = "Client Created"

PROFILE_FIELDS = (
    "name",
    "phone",
    "email",
    "company",
    "address",
    "referred_by",
    "status",
)


def _clean(value: Any) -> Any:
    if isinstance(value, str):
        return value.strip() or None
    return value


def create_client(
    ctx: CommandContext,
    *,
    name: str,
    phone: str = "",
    email: str | None = None,
    company: str | None = None,
    address: str | None = None,
    referred_by: str | None = None,
    client_id: str | None = None,
) -> CommandResult[Client]:
    actor = ctx.require_actor()
    PermissionGate.require_modify(ctx.permissions, PermissionScope.CLIENTS_AND_EVENTS)
    if not name or not name.strip():
        raise ValidationError("Client name is required", field="name")

    client = Client(
        id=client_id or ctx.id_factory(),
        name=name.strip(),
        phone=(phone or "").strip(),
        email=_clean(email),
        company=_clean(company),
        address=_clean(address),
        referred_by=_clean(referred_by),
        history=(make_entry(actor, ctx.clock, AuditAction.CREATED, CLIENT_CREATED_REASON),),
    )
    return CommandResult(client, (persist(CLIENTS_COLLECTION, client.id),))


def update_client_profile(
    client: Client,
    ctx: CommandContext,
    reason: str | None,
    **fields: Any,
) -> CommandResult[Client]:
    """
    Edit profile fields named in ``PROFILE_FIELDS``.

    Raises:
        ValidationError: Unknown field, or a blank name.
        MissingReasonError: Blank reason.
    """
    actor = ctx.require_actor()
    PermissionGate.require_modify(ctx.permissions, PermissionScope.CLIENTS_AND_EVENTS)
    reason = require_reason(reason, "update the client profile")

    unknown = set(fields) - set(PROFILE_FIELDS)
    if unknown:
        raise ValidationError(
            f"Unknown client fields: {', '.join(sorted(unknown))}", field=sorted(unknown)[0]
        )
    values = {name: _clean(value) for name, value in fields.items()}
    if "name" in values and not values["name"]:
        raise ValidationError("Client name is required", field="name")
    if "phone" in values:
        values["phone"] = values["phone"] or ""
    if "status" in values:
        values["status"] = to_enum(ClientStatus, values["status"] or ClientStatus.ACTIVE, "status")

    updated = replace(client, **values)
    changes = diff_fields(
        {name: getattr(client, name) for name in PROFILE_FIELDS},
        {name: getattr(updated, name) for name in PROFILE_FIELDS},
        PROFILE_FIELDS,
    )
    if not changes:
        return CommandResult(client)
    entry = make_entry(actor, ctx.clock, AuditAction.UPDATED, reason, changes)
    updated = replace(updated, history=append_entry(client.history, entry))
    return CommandResult(updated, (persist(CLIENTS_COLLECTION, client.id),))
