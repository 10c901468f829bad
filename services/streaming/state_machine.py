"""
Streaming session state machine.

Idle -> Streaming -> (Paused <-> Streaming) -> Completed, with Failed
reachable from Streaming or Paused. Terminal states accept no events.
"""

import logging
from typing import Callable, Dict, FrozenSet, List, Optional

from models.common import StreamState
from services.streaming.exceptions import InvalidTransitionError

logger = logging.getLogger(__name__)

ALLOWED_TRANSITIONS: Dict[StreamState, FrozenSet[StreamState]] = {
    StreamState.IDLE: frozenset({StreamState.STREAMING, StreamState.COMPLETED, StreamState.FAILED}),
    StreamState.STREAMING: frozenset({StreamState.PAUSED, StreamState.COMPLETED, StreamState.FAILED}),
    StreamState.PAUSED: frozenset({StreamState.STREAMING, StreamState.COMPLETED, StreamState.FAILED}),
    StreamState.COMPLETED: frozenset(),
    StreamState.FAILED: frozenset(),
}


class StreamStateMachine:
    """Tracks and validates the state of one streaming session."""

    def __init__(self, on_transition: Optional[Callable[[StreamState, StreamState], None]] = None):
        self._state = StreamState.IDLE
        self._on_transition = on_transition
        self.history: List[StreamState] = [StreamState.IDLE]

    @property
    def state(self) -> StreamState:
        return self._state

    @property
    def is_terminal(self) -> bool:
        return self._state.is_terminal

    def can_transition(self, target: StreamState) -> bool:
        return target in ALLOWED_TRANSITIONS[self._state]

    def transition(self, target: StreamState) -> StreamState:
        """
        Move to a new state.

        Raises:
            InvalidTransitionError: If the move is not allowed from the current state
        """
        if not self.can_transition(target):
            raise InvalidTransitionError(self._state.value, target.value)

        previous = self._state
        self._state = target
        self.history.append(target)
        logger.debug("Stream state %s -> %s", previous.value, target.value)
        if self._on_transition is not None:
            self._on_transition(previous, target)
        return previous
