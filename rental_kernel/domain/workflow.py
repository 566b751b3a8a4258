"""
Canonical workflow types (``rental_kernel.domain.workflow``).

Responsibility
--------------
Pure value objects for state machines, and the reservation fulfillment
workflow declared once with them.  The lifecycle engine evaluates guards
and override requirements; this module only describes them.

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

from rental_kernel.domain.reservation import ReservationStatus


@dataclass(frozen=True)
class Guard:
    """A condition that must be satisfied before a transition fires.

    Contract: frozen, descriptive only.
    Non-goals: does not evaluate the condition -- the lifecycle engine does.
    """
    name: str
    description: str


@dataclass(frozen=True)
class Transition:
    """A valid state transition in a workflow.

    ``requires_override=True`` marks an exceptional path that is rejected
    unless the caller explicitly passes an administrative override.
    """
    from_state: str
    to_state: str
    action: str
    guard: Guard | None = None
    requires_override: bool = False


@dataclass(frozen=True)
class Workflow:
    """Fulfillment states of a reservation and the moves allowed between them.

    Each state is a ``ReservationStatus`` value.  ``RESERVATION_WORKFLOW``
    below is the only instance the kernel uses; a ``ReservationStateMachine``
    can be handed another one to change the edges or guards.
    """
    name: str
    description: str
    initial_state: str
    states: tuple[str, ...]
    transitions: tuple[Transition, ...]
    terminal_states: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        if self.initial_state not in self.states:
            raise ValueError(f"initial_state {self.initial_state!r} not in states")
        for t in self.transitions:
            if t.from_state not in self.states or t.to_state not in self.states:
                raise ValueError(
                    f"transition {t.action!r} references unknown state"
                )
            if t.from_state in self.terminal_states:
                raise ValueError(
                    f"terminal state {t.from_state!r} has outgoing transition {t.action!r}"
                )

    def find(self, from_state: str, to_state: str) -> Transition | None:
        """The declared transition between two states, if any."""
        for t in self.transitions:
            if t.from_state == from_state and t.to_state == to_state:
                return t
        return None

    def targets_from(self, from_state: str) -> tuple[str, ...]:
        """All states reachable in one step, including override-only ones."""
        return tuple(t.to_state for t in self.transitions if t.from_state == from_state)

    def is_terminal(self, state: str) -> bool:
        return state in self.terminal_states


PAYMENT_RECEIVED = Guard(
    name="payment_received",
    description="Goods are not released until the required payment is on the ledger",
)

_R = ReservationStatus

RESERVATION_WORKFLOW = Workflow(
    name="reservation_fulfillment",
    description="Fulfillment lifecycle of a rental reservation",
    initial_state=_R.REQUESTED.value,
    states=tuple(s.value for s in ReservationStatus),
    transitions=(
        Transition(_R.REQUESTED.value, _R.CONFIRMED.value, action="confirm"),
        Transition(_R.REQUESTED.value, _R.CANCELLED.value, action="cancel"),
        Transition(
            _R.CONFIRMED.value,
            _R.DELIVERED.value,
            action="deliver",
            guard=PAYMENT_RECEIVED,
        ),
        Transition(_R.CONFIRMED.value, _R.CANCELLED.value, action="cancel"),
        Transition(_R.DELIVERED.value, _R.RETURNED.value, action="return"),
        Transition(
            _R.DELIVERED.value,
            _R.CANCELLED.value,
            action="cancel_after_delivery",
            requires_override=True,
        ),
    ),
    terminal_states=(_R.RETURNED.value, _R.CANCELLED.value),
)
