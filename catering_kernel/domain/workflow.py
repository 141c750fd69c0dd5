"""
Workflow types and the event lifecycle table (``catering_kernel.domain.workflow``).

Responsibility
--------------
Pure value objects for state machines, plus the one workflow the ledger
uses: the commercial lifecycle of an event.  ``lifecycle.transition``
consults ``EVENT_LIFECYCLE`` to decide whether an edge exists; guards on a
transition name the extra input that edge demands.

Architecture position
---------------------
**Kernel domain layer** -- pure value objects.  ZERO I/O.

Invariants enforced
-------------------
* Transitions reference only states in ``Workflow.states``.
* ``initial_state`` is a member of ``states``.
* Terminal states have no outgoing transitions.
"""

from __future__ import annotations

from dataclasses import dataclass

from catering_kernel.domain.values import EventState


@dataclass(frozen=True)
class Guard:
    """A condition that must be satisfied before a transition fires.

    Contract: frozen, descriptive only.
    Non-goals: does not evaluate the condition -- the lifecycle does.
    """
    name: str
    description: str


@dataclass(frozen=True)
class Transition:
    """A valid state transition in a workflow."""
    from_state: str
    to_state: str
    action: str
    guard: Guard | None = None
    requires_reason: bool = False


@dataclass(frozen=True)
class Workflow:
    """A state machine definition for a document lifecycle.

    Contract: frozen; ``transitions`` reference only states in ``states``.
    """
    name: str
    description: str
    initial_state: str
    states: tuple[str, ...]
    transitions: tuple[Transition, ...]
    terminal_states: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        if self.initial_state not in self.states:
            raise ValueError(
                f"Workflow {self.name}: initial state {self.initial_state} not in states"
            )
        for t in self.transitions:
            if t.from_state not in self.states or t.to_state not in self.states:
                raise ValueError(
                    f"Workflow {self.name}: transition {t.action} references unknown state"
                )
            if t.from_state in self.terminal_states:
                raise ValueError(
                    f"Workflow {self.name}: terminal state {t.from_state} has an outgoing transition"
                )

    def find_transition(self, from_state: str, to_state: str) -> Transition | None:
        for t in self.transitions:
            if t.from_state == from_state and t.to_state == to_state:
                return t
        return None

    def allowed_targets(self, from_state: str) -> tuple[str, ...]:
        return tuple(t.to_state for t in self.transitions if t.from_state == from_state)

    def is_terminal(self, state: str) -> bool:
        return state in self.terminal_states


LOST_REASON_GUARD = Guard(
    name="lost_reason_configured",
    description="A configured lost reason code, plus a known competitor when the reason requires one",
)

CANCELLATION_GUARD = Guard(
    name="cancellation_capability",
    description="Caller holds the allowEventCancellation capability and supplies a reason",
)

EVENT_LIFECYCLE = Workflow(
    name="event_lifecycle",
    description="Commercial lifecycle of a catering event",
    initial_state=EventState.LEAD.value,
    states=tuple(s.value for s in EventState),
    transitions=(
        Transition(EventState.LEAD.value, EventState.CONFIRMED.value, "confirm"),
        Transition(
            EventState.LEAD.value, EventState.LOST.value, "mark_lost",
            guard=LOST_REASON_GUARD,
        ),
        Transition(
            EventState.CONFIRMED.value, EventState.LOST.value, "mark_lost",
            guard=LOST_REASON_GUARD,
        ),
        Transition(
            EventState.CONFIRMED.value, EventState.CANCELLED.value, "cancel",
            guard=CANCELLATION_GUARD, requires_reason=True,
        ),
    ),
    terminal_states=(EventState.LOST.value, EventState.CANCELLED.value),
)
