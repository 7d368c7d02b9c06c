"""Command dispatch and reply correlation.

UCI has no request identifiers, so correlation relies on there being at most
one command in flight that waits for a terminal reply (``uciok``, ``readyok``
or ``bestmove``).  ``info`` output may interleave freely before that reply.
"""

from __future__ import annotations

import threading
from typing import Callable, FrozenSet, List, Optional, Tuple, Type, Union

from .errors import Busy, EngineTimeout, InvalidState, ProcessDied, WriteError
from .protocol import BestMove, ProtocolEvent, ReadyOk, SearchInfo, StatusReport, Unrecognized, parse_line
from .session import Session, SessionState, command_verb
from .utils import Logger, debug_text, info_text, null_logger, received_text, sending_text

EventTypes = Union[Type[ProtocolEvent], Tuple[Type[ProtocolEvent], ...]]


class PendingRequest:
    """A command waiting for its terminal event; resolved exactly once."""

    def __init__(self, command: Optional[str], expect: EventTypes, *, collect: bool = False) -> None:
        self.command = command
        self.expect = expect
        self.collect = collect
        self.transcript: List[str] = []
        self.result: Optional[ProtocolEvent] = None
        self.line: Optional[str] = None
        self.error: Optional[BaseException] = None
        self._done = threading.Event()

    @property
    def done(self) -> bool:
        return self._done.is_set()

    def matches(self, event: ProtocolEvent) -> bool:
        return isinstance(event, self.expect)

    def resolve(
        self,
        result: Optional[ProtocolEvent] = None,
        error: Optional[BaseException] = None,
        *,
        line: Optional[str] = None,
    ) -> bool:
        if self._done.is_set():
            return False
        self.result = result
        self.line = line
        self.error = error
        self._done.set()
        return True

    def wait(self, timeout: Optional[float]) -> bool:
        return self._done.wait(timeout)


class Dispatcher:
    def __init__(
        self,
        channel=None,
        session: Optional[Session] = None,
        *,
        logger: Optional[Logger] = None,
        on_info: Optional[Callable[[SearchInfo], None]] = None,
        echo_info: bool = False,
    ) -> None:
        self._channel = channel
        self.session = session if session is not None else Session()
        self.lock = threading.RLock()
        # Held from the state check through the write so commands reach the
        # engine in the order their transitions were applied.  Event delivery
        # on the reader thread only needs ``lock``.
        self._send_lock = threading.Lock()
        self._pending: Optional[PendingRequest] = None
        self._log = logger or null_logger
        self.on_info = on_info
        self.echo_info = echo_info
        self.last_info: Optional[SearchInfo] = None
        # Terminal reply that arrived after its waiter gave up.
        self._unclaimed: Optional[ProtocolEvent] = None

    def attach(self, channel) -> None:
        self._channel = channel

    @property
    def pending(self) -> Optional[PendingRequest]:
        return self._pending

    # -- outgoing -----------------------------------------------------------

    def send(self, command: str) -> None:
        """Send a command that has no terminal reply."""
        with self._send_lock:
            with self.lock:
                self.session.check_command(command)
                self.session.apply_command(command)
                if command_verb(command) not in ("stop", "ponderhit"):
                    self._unclaimed = None
            self._write(command)

    def execute(self, command: str, expect: EventTypes, timeout: Optional[float] = None) -> ProtocolEvent:
        """Send *command* and block until an *expect* event arrives."""
        with self._send_lock:
            with self.lock:
                self._check_idle_slot()
                self.session.check_command(command)
                pending = self._register(command, expect)
            self._write(command)
        return self._wait(pending, timeout)

    def await_event(
        self,
        expect: EventTypes,
        timeout: Optional[float] = None,
        *,
        states: FrozenSet[SessionState] = frozenset({SessionState.SEARCHING}),
    ) -> ProtocolEvent:
        """Wait for a terminal event without sending anything."""
        with self.lock:
            self._check_idle_slot()
            unclaimed, self._unclaimed = self._unclaimed, None
            if unclaimed is not None and isinstance(unclaimed, expect):
                return unclaimed
            self.session.check_state(states, getattr(expect, "__name__", "event"))
            pending = PendingRequest(None, expect)
            self._pending = pending
        return self._wait(pending, timeout)

    def transcript(self, command: str, timeout: Optional[float] = None) -> List[str]:
        """Send a raw command and return the output it produced.

        ``go`` is answered up to and including its ``bestmove`` line and
        ``isready`` up to ``readyok``.  Any other command is followed by an
        ``isready`` and the lines before ``readyok`` are returned.
        """
        verb = command_verb(command)
        with self._send_lock:
            with self.lock:
                self._check_idle_slot()
                if verb in ("uci", "quit"):
                    raise InvalidState(verb, self.session.state)
                self.session.check_command(command)
                if verb == "go":
                    pending = self._register(command, BestMove, collect=True)
                    commands = [command]
                elif verb == "isready":
                    pending = self._register(command, ReadyOk, collect=True)
                    commands = [command]
                else:
                    # Both writes are validated before either is applied.
                    self.session.check_command("isready")
                    self.session.apply_command(command)
                    pending = self._register("isready", ReadyOk, collect=True)
                    commands = [command, "isready"]
            for item in commands:
                self._write(item)
        self._wait(pending, timeout)
        lines = list(pending.transcript)
        if verb == "go" and pending.line is not None:
            lines.append(pending.line)
        return lines

    def _check_idle_slot(self) -> None:
        if self.session.died:
            raise ProcessDied(exit_code=self.session.exit_code)
        if self._pending is not None:
            raise Busy(f"Engine is busy waiting on '{self._pending.command or 'reply'}'")

    def _register(self, command: str, expect: EventTypes, *, collect: bool = False) -> PendingRequest:
        self.session.apply_command(command)
        pending = PendingRequest(command, expect, collect=collect)
        self._pending = pending
        self._unclaimed = None
        if command_verb(command) == "go":
            self.last_info = None
        return pending

    def _write(self, command: str) -> None:
        if self._channel is None:
            error = ProcessDied("Engine process is not running")
            self._fail_all(error)
            raise error
        self._log(sending_text(command))
        try:
            self._channel.send(command)
        except WriteError as exc:
            self._fail_all(WriteError(str(exc)))
            raise

    def _wait(self, pending: PendingRequest, timeout: Optional[float]) -> ProtocolEvent:
        if not pending.wait(timeout):
            with self.lock:
                pending.resolve(error=EngineTimeout(f"No reply to '{pending.command or 'wait'}' within {timeout}s"))
                if self._pending is pending:
                    self._pending = None
        if pending.error is not None:
            raise pending.error
        return pending.result

    # -- incoming -----------------------------------------------------------

    def handle_line(self, line: str) -> ProtocolEvent:
        """Consume one output line; called on the reader thread."""
        event = parse_line(line)
        if isinstance(event, SearchInfo):
            if self.echo_info:
                self._log(received_text(line))
        elif isinstance(event, Unrecognized):
            if event.raw.strip():
                self._log(debug_text(f"Ignoring engine output: {event.raw}"))
        elif isinstance(event, StatusReport) and event.status == "error":
            self._log(info_text(f"Engine reported {event.kind} error"))
        else:
            self._log(received_text(line))

        with self.lock:
            self.session.apply_event(event)
            if isinstance(event, SearchInfo):
                self.last_info = event
            pending = self._pending
            if pending is not None:
                if pending.matches(event):
                    pending.resolve(result=event, line=line)
                    self._pending = None
                elif pending.collect:
                    pending.transcript.append(line)
            elif isinstance(event, BestMove):
                self._unclaimed = event

        if isinstance(event, SearchInfo) and self.on_info is not None:
            try:
                self.on_info(event)
            except Exception as exc:
                self._log(debug_text(f"info observer failed: {exc}"))
        return event

    def handle_eof(self, exit_code: Optional[int] = None) -> None:
        """The engine closed its output; fail whatever is still waiting."""
        with self.lock:
            if self.session.state is SessionState.TERMINATED and not self.session.died:
                return
        self._log(info_text("Engine process terminated unexpectedly"))
        self._fail_all(ProcessDied(exit_code=exit_code), exit_code)

    def terminate(self) -> None:
        """Mark the session finished on purpose and release any waiter."""
        with self.lock:
            if not self.session.died:
                self.session.mark_terminated()
            pending, self._pending = self._pending, None
        if pending is not None:
            pending.resolve(error=ProcessDied("Engine was shut down"))

    def _fail_all(self, error: ProcessDied, exit_code: Optional[int] = None) -> None:
        with self.lock:
            if not self.session.died:
                self.session.mark_died(exit_code)
            pending, self._pending = self._pending, None
        if pending is not None:
            pending.resolve(error=error)
