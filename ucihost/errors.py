"""Exception hierarchy raised by the engine host."""

from __future__ import annotations

from typing import Optional


class EngineError(Exception):
    """Base class for every error surfaced by :mod:`ucihost`."""


class SpawnError(EngineError):
    """The engine executable could not be started."""


class ProcessDied(EngineError):
    """The engine process exited while the session was still in use."""

    def __init__(self, message: str = "Engine process terminated unexpectedly", exit_code: Optional[int] = None) -> None:
        if exit_code is not None:
            message = f"{message} (exit code {exit_code})"
        super().__init__(message)
        self.exit_code = exit_code


class WriteError(ProcessDied):
    """Writing to the engine's stdin failed; the pipe is gone."""


class EngineTimeout(EngineError, TimeoutError):
    """A caller supplied deadline elapsed before the engine replied."""


class InvalidState(EngineError):
    """A command was issued in a session state that does not allow it."""

    def __init__(self, command: str, state) -> None:
        super().__init__(f"Cannot send '{command}' while engine is {state.value}")
        self.command = command
        self.state = state


class Busy(EngineError):
    """Another command is already waiting for its reply."""


class UnknownOption(EngineError):
    def __init__(self, name: str) -> None:
        super().__init__(f"No such option: '{name}'")
        self.name = name
