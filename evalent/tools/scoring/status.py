"""Processing status state machine for a submission."""

from enum import Enum

from .errors import InvalidTransitionError


class ProcessingStatus(str, Enum):
    """Where a submission is in the scoring pipeline."""
    PENDING = "pending"
    SCORING = "scoring"
    AI_EVALUATION = "ai_evaluation"
    COMPLETE = "complete"
    ERROR = "error"

    def can_transition_to(self, target: "ProcessingStatus") -> bool:
        if target is ProcessingStatus.ERROR:
            return True
        return target in _TRANSITIONS[self]

    def transition(self, target: "ProcessingStatus") -> "ProcessingStatus":
        """Return ``target`` if the move is legal, otherwise raise."""
        target = ProcessingStatus(target)
        if not self.can_transition_to(target):
            raise InvalidTransitionError(
                f"Cannot move submission from {self.value} to {target.value}"
            )
        return target


# A finished, failed or interrupted submission may be scored again; the
# re-run overwrites.
_TRANSITIONS = {
    ProcessingStatus.PENDING: {ProcessingStatus.SCORING},
    ProcessingStatus.SCORING: {ProcessingStatus.AI_EVALUATION},
    ProcessingStatus.AI_EVALUATION: {ProcessingStatus.COMPLETE, ProcessingStatus.SCORING},
    ProcessingStatus.COMPLETE: {ProcessingStatus.SCORING},
    ProcessingStatus.ERROR: {ProcessingStatus.SCORING},
}
