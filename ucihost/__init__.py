"""Host-side driver for UCI chess engines.

Start an engine process, configure it, push positions and block on searches
while a background reader keeps the UCI session state in step with the
engine's output.
"""

from .engine import (
    DEFAULT_HANDSHAKE_TIMEOUT,
    DEFAULT_MOVETIME,
    DEFAULT_QUIT_GRACE,
    DEFAULT_READY_TIMEOUT,
    Engine,
)
from .errors import (
    Busy,
    EngineError,
    EngineTimeout,
    InvalidState,
    ProcessDied,
    SpawnError,
    UnknownOption,
    WriteError,
)
from .protocol import (
    BestMove,
    EngineId,
    EngineOption,
    OptionDeclared,
    OptionType,
    ProtocolEvent,
    ReadyOk,
    Score,
    SearchInfo,
    SearchLimits,
    StatusReport,
    UciOk,
    Unrecognized,
    parse_line,
)
from .session import SessionState

__version__ = "0.1.0"

__all__ = [
    "Busy",
    "BestMove",
    "DEFAULT_HANDSHAKE_TIMEOUT",
    "DEFAULT_MOVETIME",
    "DEFAULT_QUIT_GRACE",
    "DEFAULT_READY_TIMEOUT",
    "Engine",
    "EngineError",
    "EngineId",
    "EngineOption",
    "EngineTimeout",
    "InvalidState",
    "OptionDeclared",
    "OptionType",
    "ProcessDied",
    "ProtocolEvent",
    "ReadyOk",
    "Score",
    "SearchInfo",
    "SearchLimits",
    "SessionState",
    "SpawnError",
    "StatusReport",
    "UciOk",
    "UnknownOption",
    "Unrecognized",
    "WriteError",
    "parse_line",
]
