"""Table-driven finite state machine used by Order and Delivery."""

from __future__ import annotations

from typing import Dict, FrozenSet, Mapping, Optional, Set

from shared.domain.exceptions import IllegalTransitionError


class StateMachine:
    """Validates transitions against an explicit ``from -> {to}`` table.

    A state with no outgoing transitions is terminal.
    """

    def __init__(self, entity: str, transitions: Mapping[str, Set[str]]) -> None:
        self.entity = entity
        self._transitions: Dict[str, FrozenSet[str]] = {
            str(state): frozenset(str(target) for target in targets)
            for state, targets in transitions.items()
        }

    @property
    def states(self) -> FrozenSet[str]:
        return frozenset(self._transitions)

    @property
    def terminal_states(self) -> FrozenSet[str]:
        return frozenset(
            state for state, targets in self._transitions.items() if not targets
        )

    def allowed(self, from_status: str) -> FrozenSet[str]:
        """Return the statuses reachable in one step from *from_status*."""
        return self._transitions.get(str(from_status), frozenset())

    def can_transition(self, from_status: str, to_status: str) -> bool:
        return str(to_status) in self.allowed(from_status)

    def is_terminal(self, status: str) -> bool:
        return str(status) in self.terminal_states

    def validate(
        self, from_status: str, to_status: str, entity_id: Optional[str] = None
    ) -> None:
        """Raise ``IllegalTransitionError`` unless the transition is legal."""
        if not self.can_transition(from_status, to_status):
            raise IllegalTransitionError(
                self.entity, str(from_status), str(to_status), entity_id=entity_id
            )
