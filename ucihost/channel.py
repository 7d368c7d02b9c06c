from __future__ import annotations

import threading
from typing import BinaryIO, Callable, Iterator, Optional

from .errors import WriteError


class LineChannel:
    """Newline-delimited text transport over a pair of binary pipe ends."""

    def __init__(self, stdin: BinaryIO, stdout: BinaryIO, *, encoding: str = "utf-8") -> None:
        self._stdin = stdin
        self._stdout = stdout
        self._encoding = encoding
        self._write_lock = threading.Lock()
        self._consumed = False
        self._reader: Optional[threading.Thread] = None

    @property
    def reader(self) -> Optional[threading.Thread]:
        return self._reader

    def send(self, line: str) -> None:
        data = (line + "\n").encode(self._encoding)
        with self._write_lock:
            try:
                self._stdin.write(data)
                self._stdin.flush()
            except (OSError, ValueError) as exc:
                # BrokenPipeError once the engine is gone, ValueError once we closed stdin.
                raise WriteError(f"Failed to send '{line}': {exc}") from exc

    def lines(self) -> Iterator[str]:
        """Yield decoded output lines until the engine closes its stdout.

        The stream can only be consumed once.
        """
        if self._consumed:
            raise RuntimeError("engine output is already being consumed")
        self._consumed = True
        return self._iter_lines()

    def _iter_lines(self) -> Iterator[str]:
        while True:
            try:
                raw = self._stdout.readline()
            except (OSError, ValueError):
                return
            if not raw:
                return
            if not raw.endswith(b"\n"):
                # Unterminated tail at EOF is not a protocol line.
                return
            yield raw.decode(self._encoding, errors="replace").rstrip()

    def start_reader(
        self,
        on_line: Callable[[str], None],
        on_eof: Callable[[], None],
        *,
        name: str = "uci-reader",
    ) -> threading.Thread:
        """Drain output on a daemon thread, calling *on_line* in arrival order."""
        lines = self.lines()

        def pump() -> None:
            try:
                for line in lines:
                    on_line(line)
            finally:
                on_eof()

        self._reader = threading.Thread(target=pump, name=name, daemon=True)
        self._reader.start()
        return self._reader

    def close(self) -> None:
        for stream in (self._stdin, self._stdout):
            try:
                stream.close()
            except OSError:
                pass
