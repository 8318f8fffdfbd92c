"""
Echo Server State Machine - The lifecycle of a sequential echo server.

The server handles exactly one client at a time, so its whole life fits in a
handful of states:

- CLOSED: no listening socket yet (or it has been closed)
- LISTENING: waiting in accept() for the next client
- ACCEPTED: a client is connected but has not sent anything
- ECHOING: bytes are flowing back to the client
- TERMINATED: a fatal error took the listener down

A clean close by the client always returns the server to LISTENING. Whether a
client I/O error does the same or terminates the server is decided by the
caller, which fires either "client_error" or "fatal_error".
"""

from enum import Enum, auto
from dataclasses import dataclass
from typing import Optional, Tuple, Callable
import logging


logger = logging.getLogger(__name__)


class ServerState(Enum):
    """States of the echo server."""

    CLOSED = auto()
    LISTENING = auto()
    ACCEPTED = auto()
    ECHOING = auto()
    TERMINATED = auto()

    def has_client(self) -> bool:
        """Check if a client connection is open in this state."""
        return self in (ServerState.ACCEPTED, ServerState.ECHOING)

    def is_running(self) -> bool:
        """Check if the listening socket is open in this state."""
        return self in (
            ServerState.LISTENING,
            ServerState.ACCEPTED,
            ServerState.ECHOING
        )


@dataclass
class StateTransition:
    """
    Represents a state transition with its action.

    The action names what the server does on the way: open or close the
    listener, echo a chunk, drop a client.
    """
    from_state: ServerState
    event: str
    to_state: ServerState
    action: Optional[str] = None

    def __str__(self) -> str:
        action_str = f" / {self.action}" if self.action else ""
        return f"{self.from_state.name} --[{self.event}]--> {self.to_state.name}{action_str}"


_RUNNING = (ServerState.LISTENING, ServerState.ACCEPTED, ServerState.ECHOING)
_CONNECTED = (ServerState.ACCEPTED, ServerState.ECHOING)

TRANSITIONS = [
    StateTransition(ServerState.CLOSED, "start", ServerState.LISTENING, "open_listener"),
    StateTransition(ServerState.LISTENING, "accept", ServerState.ACCEPTED, None),
    StateTransition(ServerState.ACCEPTED, "recv_data", ServerState.ECHOING, "send_back"),
    StateTransition(ServerState.ECHOING, "recv_data", ServerState.ECHOING, "send_back"),
]
TRANSITIONS += [
    StateTransition(state, "peer_closed", ServerState.LISTENING, "close_client")
    for state in _CONNECTED
]
TRANSITIONS += [
    StateTransition(state, "client_error", ServerState.LISTENING, "drop_client")
    for state in _CONNECTED
]
TRANSITIONS += [
    StateTransition(state, "fatal_error", ServerState.TERMINATED, "close_listener")
    for state in _RUNNING
]
TRANSITIONS += [
    StateTransition(state, "stop", ServerState.CLOSED, "close_listener")
    for state in _RUNNING
]


class ServerStateMachine:
    """
    Echo server state machine.

    Validates that transitions are legal and reports the associated action.
    Invalid events leave the state untouched.
    """

    def __init__(self, initial_state: ServerState = ServerState.CLOSED):
        self.state = initial_state
        self._table = {(t.from_state, t.event): t for t in TRANSITIONS}
        self._transition_callbacks: list[Callable] = []

    def on_transition(self, callback: Callable[[ServerState, ServerState, str], None]):
        """Register a callback for state transitions."""
        self._transition_callbacks.append(callback)

    def _notify_transition(self, from_state: ServerState, to_state: ServerState, event: str):
        for callback in self._transition_callbacks:
            callback(from_state, to_state, event)

    def transition(self, event: str) -> Tuple[bool, Optional[str]]:
        """
        Attempt a state transition based on an event.

        Args:
            event: The event triggering the transition

        Returns:
            Tuple of (success, action_to_take)
            If success is False, the transition was invalid.
        """
        found = self._table.get((self.state, event))
        if found is None:
            logger.debug(f"Ignoring event {event!r} in state {self.state.name}")
            return (False, None)

        old_state = self.state
        self.state = found.to_state
        if self.state != old_state:
            logger.debug(str(found))
            self._notify_transition(old_state, self.state, event)

        return (True, found.action)

    def is_listening(self) -> bool:
        return self.state == ServerState.LISTENING

    def is_terminated(self) -> bool:
        return self.state == ServerState.TERMINATED

    def __str__(self) -> str:
        return f"ServerStateMachine(state={self.state.name})"

