"""
Progress Tracker
Explicit state machine behind the pipeline's ``{step, message, progress}``.
"""

from typing import Callable

from rich.console import Console

from config import PROGRESS_PAGES_START, PROGRESS_PAGES_SPAN
from .errors import InvalidTransitionError
from .models import ProcessingState, ProcessingStep


console = Console()

Step = ProcessingStep

TRANSITIONS: dict[ProcessingStep, frozenset[ProcessingStep]] = {
    Step.IDLE: frozenset({Step.ANALYZING}),
    Step.ANALYZING: frozenset({Step.SOLVING, Step.ANALYZING, Step.ERROR}),
    Step.SOLVING: frozenset({Step.GENERATING_PAGES, Step.ANALYZING, Step.ERROR}),
    Step.GENERATING_PAGES: frozenset({
        Step.GENERATING_PAGES, Step.VALIDATING, Step.ANALYZING, Step.ERROR,
    }),
    Step.VALIDATING: frozenset({Step.COMPLETED, Step.ANALYZING, Step.ERROR}),
    Step.COMPLETED: frozenset({Step.IDLE}),
    Step.ERROR: frozenset({Step.IDLE}),
}

# Targets that may lower the percentage: a new attempt, a failure, a reset
_PROGRESS_RESETS = frozenset({Step.ANALYZING, Step.ERROR, Step.IDLE})

ProgressCallback = Callable[[ProcessingState], None]


def page_progress(index: int, total: int) -> float:
    """Percentage shown while writing page ``index`` (0-based) of ``total``."""
    return PROGRESS_PAGES_START + (index / total) * PROGRESS_PAGES_SPAN


class ProgressTracker:
    """
    Holds the current ``ProcessingState`` and pushes every change to
    subscribers. Only transitions listed in ``TRANSITIONS`` are accepted.
    """

    def __init__(self):
        self._state = ProcessingState()
        self._subscribers: list[ProgressCallback] = []

    @property
    def state(self) -> ProcessingState:
        return self._state

    def subscribe(self, callback: ProgressCallback) -> Callable[[], None]:
        """Register a callback; returns a function that removes it."""
        self._subscribers.append(callback)

        def unsubscribe():
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def can_transition(self, step: ProcessingStep) -> bool:
        return step in TRANSITIONS[self._state.step]

    def advance(self, step: ProcessingStep, message: str, progress: float) -> ProcessingState:
        current = self._state
        if not self.can_transition(step):
            raise InvalidTransitionError(
                f"Cannot move from {current.step.value} to {step.value}"
            )
        if step not in _PROGRESS_RESETS and progress < current.progress:
            raise InvalidTransitionError(
                f"Progress may not decrease within an attempt "
                f"({current.progress} -> {progress})"
            )
        if not 0 <= progress <= 100:
            raise InvalidTransitionError(f"Progress out of range: {progress}")

        return self._publish(ProcessingState(step=step, message=message, progress=progress))

    def fail(self, message: str) -> ProcessingState:
        return self.advance(Step.ERROR, message, 0)

    def reset(self) -> ProcessingState:
        """Back to IDLE. Always allowed: a new run starts from here."""
        return self._publish(ProcessingState())

    def _publish(self, state: ProcessingState) -> ProcessingState:
        self._state = state
        # A broken observer must not replace the pipeline's own outcome
        for callback in list(self._subscribers):
            try:
                callback(state)
            except Exception as e:
                console.print(f"  [yellow]⚠ Progress subscriber failed: {e}[/]")
        return state
