"""Engine session state machine.

The session tracks where the engine is in the UCI conversation and rejects
commands the protocol does not allow at that point.  It is owned by a
:class:`~ucihost.dispatcher.Dispatcher` and only mutated under its lock.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, FrozenSet, List, Optional, Tuple

from .errors import InvalidState, ProcessDied, UnknownOption
from .protocol import BestMove, EngineId, EngineOption, OptionDeclared, ProtocolEvent, ReadyOk, UciOk


class SessionState(Enum):
    NOT_STARTED = "not started"
    AWAITING_HANDSHAKE = "awaiting handshake"
    IDLE = "idle"
    AWAITING_READY = "awaiting ready"
    SEARCHING = "searching"
    TERMINATED = "terminated"


_LIVE_STATES = frozenset(state for state in SessionState if state is not SessionState.TERMINATED)

COMMAND_STATES: Dict[str, FrozenSet[SessionState]] = {
    "uci": frozenset({SessionState.NOT_STARTED}),
    "isready": frozenset({SessionState.IDLE}),
    "ucinewgame": frozenset({SessionState.IDLE}),
    "position": frozenset({SessionState.IDLE}),
    "setoption": frozenset({SessionState.IDLE}),
    "go": frozenset({SessionState.IDLE}),
    "stop": frozenset({SessionState.SEARCHING}),
    "ponderhit": frozenset({SessionState.SEARCHING}),
    "quit": _LIVE_STATES,
}
# Anything outside the vocabulary above is passed through from idle only.
DEFAULT_COMMAND_STATES = frozenset({SessionState.IDLE})

COMMAND_TRANSITIONS: Dict[str, SessionState] = {
    "uci": SessionState.AWAITING_HANDSHAKE,
    "isready": SessionState.AWAITING_READY,
    "go": SessionState.SEARCHING,
    "quit": SessionState.TERMINATED,
}


def command_verb(command: str) -> str:
    parts = command.split(None, 1)
    return parts[0] if parts else ""


class Session:
    def __init__(self) -> None:
        self.state = SessionState.NOT_STARTED
        self.name: Optional[str] = None
        self.author: Optional[str] = None
        self.options: Dict[str, EngineOption] = {}
        self.died = False
        self.exit_code: Optional[int] = None
        self.handshake_complete = False
        self._buffered_options: List[Tuple[str, Any]] = []

    def allows(self, command: str) -> bool:
        verb = command_verb(command)
        return self.state in COMMAND_STATES.get(verb, DEFAULT_COMMAND_STATES)

    def check_command(self, command: str) -> None:
        if self.died:
            raise ProcessDied(exit_code=self.exit_code)
        if not self.allows(command):
            raise InvalidState(command_verb(command) or command, self.state)

    def check_state(self, allowed: FrozenSet[SessionState], label: str) -> None:
        if self.died:
            raise ProcessDied(exit_code=self.exit_code)
        if self.state not in allowed:
            raise InvalidState(label, self.state)

    def apply_command(self, command: str) -> None:
        target = COMMAND_TRANSITIONS.get(command_verb(command))
        if target is not None:
            self.state = target

    def apply_event(self, event: ProtocolEvent) -> None:
        if self.state is SessionState.TERMINATED:
            return
        if isinstance(event, EngineId):
            if event.name is not None:
                self.name = event.name
            if event.author is not None:
                self.author = event.author
        elif isinstance(event, OptionDeclared):
            if self.state is SessionState.AWAITING_HANDSHAKE:
                self.options.setdefault(event.option.name, event.option)
        elif isinstance(event, UciOk):
            if self.state is SessionState.AWAITING_HANDSHAKE:
                self.state = SessionState.IDLE
                self.handshake_complete = True
        elif isinstance(event, ReadyOk):
            if self.state is SessionState.AWAITING_READY:
                self.state = SessionState.IDLE
        elif isinstance(event, BestMove):
            if self.state is SessionState.SEARCHING:
                self.state = SessionState.IDLE

    def mark_died(self, exit_code: Optional[int] = None) -> None:
        self.state = SessionState.TERMINATED
        self.died = True
        self.exit_code = exit_code

    def mark_terminated(self) -> None:
        self.state = SessionState.TERMINATED

    # -- options ------------------------------------------------------------

    def option(self, name: str) -> EngineOption:
        """Look up a declared option; UCI option names ignore case."""
        option = self.options.get(name)
        if option is not None:
            return option
        lowered = name.lower()
        for declared_name, declared in self.options.items():
            if declared_name.lower() == lowered:
                return declared
        raise UnknownOption(name)

    def buffer_option(self, name: str, value: Any) -> None:
        self._buffered_options.append((name, value))

    def take_buffered_options(self) -> List[Tuple[str, Any]]:
        buffered, self._buffered_options = self._buffered_options, []
        return buffered

    @property
    def buffered_options(self) -> Tuple[Tuple[str, Any], ...]:
        return tuple(self._buffered_options)
