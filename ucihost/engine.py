"""Blocking facade over a UCI engine process.

Typical use::

    with Engine("stockfish", options={"Threads": 2}) as engine:
        engine.new_game()
        engine.set_position("startpos", ["e2e4", "e7e5"])
        result = engine.go_search(SearchLimits(depth=12))
        print(result.move, result.ponder)
"""

from __future__ import annotations

import subprocess
import threading
from types import MappingProxyType
from typing import Any, Callable, List, Mapping, Optional, Sequence

from .dispatcher import Dispatcher
from .errors import InvalidState
from .process import EngineProcess, PathLike
from .protocol import (
    STARTPOS,
    BestMove,
    EngineOption,
    ReadyOk,
    SearchInfo,
    SearchLimits,
    UciOk,
    position_command,
    setoption_command,
)
from .session import Session, SessionState
from .utils import Logger, info_text, null_logger

DEFAULT_HANDSHAKE_TIMEOUT = 5.0  # seconds to wait for "uciok"
DEFAULT_READY_TIMEOUT = 5.0  # seconds to wait for "readyok"
DEFAULT_QUIT_GRACE = 2.0  # seconds between "quit" and SIGTERM
DEFAULT_MOVETIME = 100  # ms, used when go_search() gets no limits

_PRE_HANDSHAKE = (SessionState.NOT_STARTED, SessionState.AWAITING_HANDSHAKE)


class Engine:
    """One engine process plus the UCI session running over it."""

    def __init__(
        self,
        path: PathLike,
        args: Sequence[str] = (),
        *,
        options: Optional[Mapping[str, Any]] = None,
        on_info: Optional[Callable[[SearchInfo], None]] = None,
        logger: Optional[Logger] = None,
        echo_info: bool = False,
        handshake_timeout: Optional[float] = DEFAULT_HANDSHAKE_TIMEOUT,
        quit_grace: float = DEFAULT_QUIT_GRACE,
        autostart: bool = True,
        cwd: Optional[PathLike] = None,
        stderr: Any = subprocess.DEVNULL,
    ) -> None:
        self.path = path
        self.args = tuple(args)
        self.cwd = cwd
        self.stderr = stderr
        self.handshake_timeout = handshake_timeout
        self.quit_grace = quit_grace
        self._log = logger or null_logger
        self.session = Session()
        self._dispatcher = Dispatcher(
            session=self.session,
            logger=self._log,
            on_info=on_info,
            echo_info=echo_info,
        )
        self._process: Optional[EngineProcess] = None
        self._lifecycle_lock = threading.Lock()

        for name, value in (options or {}).items():
            self.session.buffer_option(name, value)

        if autostart:
            self.start()

    # -- lifecycle ----------------------------------------------------------

    def start(self) -> "Engine":
        """Spawn the engine, run the ``uci`` handshake and flush buffered options."""
        with self._lifecycle_lock:
            if self.session.state is not SessionState.NOT_STARTED:
                raise InvalidState("start", self.session.state)
            process = EngineProcess.start(self.path, self.args, cwd=self.cwd, stderr=self.stderr)
            self._process = process
            # The reader must not reference the facade, or a dropped Engine
            # would never be collected and its process never stopped.
            dispatcher = self._dispatcher
            dispatcher.attach(process.channel)
            process.channel.start_reader(
                dispatcher.handle_line,
                lambda: dispatcher.handle_eof(process.returncode),
                name=f"uci-reader-{process.pid}",
            )
            self._log(info_text(f"Started engine {self.path} (pid {process.pid})"))

        try:
            self._dispatcher.execute("uci", UciOk, self.handshake_timeout)
            self._flush_buffered_options()
        except BaseException:
            self.shutdown()
            raise

        self._log(info_text(f"Handshake complete: {self.name or self.path} ({len(self.session.options)} options)"))
        return self

    def shutdown(self) -> None:
        """Terminate the engine.  Calling this more than once is harmless."""
        with self._lifecycle_lock:
            process, self._process = self._process, None
            self._dispatcher.terminate()
            if process is None:
                return
            exit_code = process.terminate(self.quit_grace)
            reader = process.channel.reader
            if reader is not None and reader is not threading.current_thread():
                reader.join(timeout=1.0)
            process.close_streams()
        self._log(info_text(f"Engine {self.name or self.path} shut down (exit code {exit_code})"))

    def __enter__(self) -> "Engine":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> bool:
        self.shutdown()
        return False

    def __del__(self) -> None:
        if getattr(self, "_process", None) is not None:
            self.shutdown()

    # -- session info -------------------------------------------------------

    @property
    def name(self) -> Optional[str]:
        return self.session.name

    @property
    def author(self) -> Optional[str]:
        return self.session.author

    @property
    def options(self) -> Mapping[str, EngineOption]:
        return MappingProxyType(dict(self.session.options))

    @property
    def state(self) -> SessionState:
        return self.session.state

    @property
    def pid(self) -> Optional[int]:
        process = self._process
        return process.pid if process is not None else None

    @property
    def is_alive(self) -> bool:
        process = self._process
        return process is not None and process.is_alive()

    @property
    def last_info(self) -> Optional[SearchInfo]:
        return self._dispatcher.last_info

    # -- commands -----------------------------------------------------------

    def set_option(self, name: str, value: Any = None) -> None:
        """Set an engine option; buffered until the handshake has finished."""
        with self._dispatcher.lock:
            if self.session.state in _PRE_HANDSHAKE and not self.session.died:
                self.session.buffer_option(name, value)
                return
            self.session.check_command("setoption")
            command = self._setoption(name, value)
        self._dispatcher.send(command)

    def _setoption(self, name: str, value: Any) -> str:
        option = self.session.option(name)
        return setoption_command(option.name, option.format_value(value))

    def _flush_buffered_options(self) -> None:
        with self._dispatcher.lock:
            buffered = self.session.take_buffered_options()
            # Validate everything before the first write.
            commands = [self._setoption(name, value) for name, value in buffered]
        for command in commands:
            self._dispatcher.send(command)

    def new_game(self, timeout: Optional[float] = DEFAULT_READY_TIMEOUT) -> None:
        self._dispatcher.send("ucinewgame")
        self.is_ready(timeout)

    def set_position(self, position: Optional[str] = STARTPOS, moves: Sequence[str] = ()) -> None:
        """Set the position from ``"startpos"`` or a FEN, followed by *moves*."""
        self._dispatcher.send(position_command(position, moves))

    def is_ready(self, timeout: Optional[float] = DEFAULT_READY_TIMEOUT) -> None:
        self._dispatcher.execute("isready", ReadyOk, timeout)

    def go_search(self, limits: Optional[SearchLimits] = None, timeout: Optional[float] = None) -> BestMove:
        """Search the current position and block until ``bestmove``.

        On :class:`~ucihost.errors.EngineTimeout` the engine keeps searching;
        call :meth:`stop_search` and :meth:`wait_for_bestmove` to collect it.
        """
        if limits is None:
            limits = SearchLimits(movetime=DEFAULT_MOVETIME)
        return self._dispatcher.execute(limits.to_command(), BestMove, timeout)

    def stop_search(self) -> None:
        self._dispatcher.send("stop")

    def wait_for_bestmove(self, timeout: Optional[float] = None) -> BestMove:
        return self._dispatcher.await_event(BestMove, timeout)

    def ponder_hit(self) -> None:
        self._dispatcher.send("ponderhit")

    def command(self, text: str, timeout: Optional[float] = DEFAULT_READY_TIMEOUT) -> List[str]:
        """Send a raw command and return the output lines it produced.

        ``go`` returns everything up to and including ``bestmove``. Other
        commands return what arrived before a trailing ``readyok``.
        """
        return self._dispatcher.transcript(text.strip(), timeout)
