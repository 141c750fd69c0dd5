"""
Commands -- Context, results and side-effect instructions.

Responsibility:
    Every mutating domain operation is a pure function
    ``(aggregate, inputs, ctx) -> CommandResult``.  The context carries
    everything the function may not look up by itself: who is acting, what
    they may do, what time it is, how to mint ids, and the configured lost
    reasons and competitors.  The result carries the new aggregate and the
    side effects the caller must perform (persist, append to the audit log).

Architecture position:
    Kernel > Domain -- pure.  The orchestrator in ``catering_services``
    executes the side effects; the domain only describes them.

Invariants:
    - Commands never mutate their input aggregate.
    - Commands raise before building a result, so a raised error means no
      state changed.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Generic, TypeVar
from uuid import uuid4

from catering_kernel.domain.clock import Clock, SystemClock
from catering_kernel.domain.models import Actor
from catering_kernel.domain.permissions import AppPermissions
from catering_kernel.exceptions import AuthenticationError

EVENTS_COLLECTION = "events"
CLIENTS_COLLECTION = "clients"
AUDIT_LOG_COLLECTION = "auditLogs"

A = TypeVar("A")


def new_id() -> str:
    return str(uuid4())


@dataclass(frozen=True)
class LostReasonRule:
    """A configured lost reason as the lifecycle sees it."""

    code: str
    label: str
    requires_competitor: bool = False


@dataclass(frozen=True)
class CommandContext:
    """Everything a command needs besides the aggregate and its inputs."""

    actor: Actor | None
    permissions: AppPermissions
    clock: Clock = field(default_factory=SystemClock)
    id_factory: Callable[[], str] = new_id
    lost_reasons: Mapping[str, LostReasonRule] = field(default_factory=dict)
    competitors: Mapping[str, str] = field(default_factory=dict)

    def require_actor(self) -> Actor:
        """Return the acting identity or fail closed.

        Raises:
            AuthenticationError: No actor, or a blank actor id.
        """
        actor = self.actor
        if actor is None or not actor.actor_id or not actor.actor_id.strip():
            raise AuthenticationError()
        return actor


class SideEffectKind(str, Enum):
    PERSIST = "persist"
    AUDIT_LOG = "audit_log"


@dataclass(frozen=True)
class SideEffect:
    """An instruction for the caller to perform after a command succeeds."""

    kind: SideEffectKind
    collection: str
    document_id: str
    payload: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class CommandResult(Generic[A]):
    """New aggregate plus the side effects that make it durable."""

    aggregate: A
    effects: tuple[SideEffect, ...] = ()

    @property
    def persist_effects(self) -> tuple[SideEffect, ...]:
        return tuple(e for e in self.effects if e.kind == SideEffectKind.PERSIST)

    @property
    def audit_log_effects(self) -> tuple[SideEffect, ...]:
        return tuple(e for e in self.effects if e.kind == SideEffectKind.AUDIT_LOG)


def persist(collection: str, document_id: str) -> SideEffect:
    return SideEffect(SideEffectKind.PERSIST, collection, document_id)


def audit_log(
    actor: Actor,
    action: str,
    details: str,
    document_id: str,
    client_id: str | None = None,
) -> SideEffect:
    """Instruction to append an application-level audit log record."""
    payload: dict[str, Any] = {
        "userId": actor.actor_id,
        "username": actor.actor_name,
        "action": action,
        "details": details,
    }
    if client_id:
        payload["clientId"] = client_id
    return SideEffect(SideEffectKind.AUDIT_LOG, AUDIT_LOG_COLLECTION, document_id, payload)
