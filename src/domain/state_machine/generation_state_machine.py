from src.domain.enums.generation_state import GenerationState


# Mapping of valid transitions: from_state -> set of allowed to_states
VALID_TRANSITIONS: dict[GenerationState, frozenset[GenerationState]] = {
    GenerationState.IDLE: frozenset({GenerationState.VALIDATING, GenerationState.GENERATING}),
    # Validation can bounce back to IDLE on bad input, or fail on session/upload problems
    GenerationState.VALIDATING: frozenset(
        {
            GenerationState.IDLE,
            GenerationState.UPLOADING,
            GenerationState.GENERATING,
            GenerationState.FAILED,
        }
    ),
    GenerationState.UPLOADING: frozenset({GenerationState.GENERATING, GenerationState.FAILED}),
    GenerationState.GENERATING: frozenset({GenerationState.SUCCEEDED, GenerationState.FAILED}),
    GenerationState.SUCCEEDED: frozenset({GenerationState.VALIDATING, GenerationState.GENERATING}),
    GenerationState.FAILED: frozenset({GenerationState.VALIDATING, GenerationState.GENERATING}),
}


class InvalidStateTransitionError(Exception):
    """Raised when an invalid state transition is attempted."""

    def __init__(self, from_state: GenerationState, to_state: GenerationState) -> None:
        self.from_state = from_state
        self.to_state = to_state
        super().__init__(
            f"Invalid transition from {from_state.value} to {to_state.value}. "
            f"Allowed transitions: {sorted(s.value for s in VALID_TRANSITIONS.get(from_state, frozenset()))}"
        )


class GenerationStateMachine:
    """
    Validates state transitions of the client-side generation flow.

    Stateless: call can_transition() or validate_transition() with explicit states.
    """

    def can_transition(self, from_state: GenerationState, to_state: GenerationState) -> bool:
        """Return True if transitioning from_state → to_state is permitted."""
        return to_state in VALID_TRANSITIONS.get(from_state, frozenset())

    def validate_transition(self, from_state: GenerationState, to_state: GenerationState) -> None:
        """Raise InvalidStateTransitionError if the transition is not permitted."""
        if not self.can_transition(from_state, to_state):
            raise InvalidStateTransitionError(from_state, to_state)

    def get_allowed_transitions(self, from_state: GenerationState) -> frozenset[GenerationState]:
        """Return the set of states reachable from from_state."""
        return VALID_TRANSITIONS.get(from_state, frozenset())
