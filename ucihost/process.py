from __future__ import annotations

import os
import subprocess
import threading
from typing import Any, Optional, Sequence, Union

from .channel import LineChannel
from .errors import SpawnError, WriteError

PathLike = Union[str, "os.PathLike[str]"]


class EngineProcess:
    """Owns one engine child process and both ends of its stdio pipes."""

    def __init__(self, proc: subprocess.Popen, path: PathLike) -> None:
        self.path = path
        self._proc = proc
        self.channel = LineChannel(proc.stdin, proc.stdout)
        self._stop_lock = threading.Lock()
        self._stopped = False

    @classmethod
    def start(
        cls,
        path: PathLike,
        args: Sequence[str] = (),
        *,
        cwd: Optional[PathLike] = None,
        stderr: Any = subprocess.DEVNULL,
    ) -> "EngineProcess":
        command = [os.fspath(path), *[str(arg) for arg in args]]
        try:
            proc = subprocess.Popen(
                command,
                stdin=subprocess.PIPE,
                stdout=subprocess.PIPE,
                stderr=stderr,
                bufsize=0,
                cwd=cwd,
            )
        except (OSError, ValueError) as exc:
            raise SpawnError(f"Unable to run engine {os.fspath(path)!r}: {exc}") from exc
        return cls(proc, path)

    @property
    def pid(self) -> int:
        return self._proc.pid

    @property
    def returncode(self) -> Optional[int]:
        return self._proc.poll()

    def is_alive(self) -> bool:
        return self._proc.poll() is None

    def wait(self, timeout: Optional[float] = None) -> Optional[int]:
        try:
            return self._proc.wait(timeout=timeout)
        except subprocess.TimeoutExpired:
            return None

    def terminate(self, grace: float = 2.0) -> Optional[int]:
        """Ask the engine to quit, then escalate to SIGTERM and SIGKILL.

        Safe to call any number of times; later calls just report the exit code.
        """
        with self._stop_lock:
            if self._stopped:
                return self._proc.poll()
            self._stopped = True

            if self._proc.poll() is None:
                try:
                    self.channel.send("quit")
                except WriteError:
                    pass
            if self._proc.stdin:
                try:
                    self._proc.stdin.close()
                except OSError:
                    pass
            try:
                self._proc.wait(timeout=grace)
            except subprocess.TimeoutExpired:
                self._proc.terminate()
                try:
                    self._proc.wait(timeout=1.0)
                except subprocess.TimeoutExpired:
                    self._proc.kill()
                    try:
                        self._proc.wait(timeout=1.0)
                    except subprocess.TimeoutExpired:
                        pass
            return self._proc.poll()

    def close_streams(self) -> None:
        self.channel.close()
