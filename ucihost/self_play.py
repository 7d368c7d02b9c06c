"""Engine-versus-engine games on top of :class:`~ucihost.engine.Engine`."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Protocol, Sequence, Union

import chess

from . import chess_logic
from .protocol import BestMove, SearchInfo, SearchLimits
from .utils import Logger, info_text, null_logger

COLOR_NAME = {chess.WHITE: "White", chess.BLACK: "Black"}
DEFAULT_MAX_PLIES = 200


class _Player(Protocol):
    """What :func:`play_game` needs from an engine."""

    name: Optional[str]
    last_info: Optional[SearchInfo]

    def new_game(self) -> None:
        ...

    def set_position(self, position: Optional[str] = ..., moves: Sequence[str] = ...) -> None:
        ...

    def go_search(self, limits: Optional[SearchLimits] = None, timeout: Optional[float] = None) -> BestMove:
        ...


@dataclass
class GameRecord:
    start_fen: str
    labels: Dict[bool, str]
    moves: List[str] = field(default_factory=list)
    final_fen: Optional[str] = None
    result: str = "Game in progress"
    stop_reason: Optional[str] = None
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    traces: Dict[bool, List[str]] = field(default_factory=lambda: {chess.WHITE: [], chess.BLACK: []})

    @property
    def finished(self) -> bool:
        return self.result != "Game in progress"


def _describe(result: BestMove, info: Optional[SearchInfo]) -> str:
    parts = [f"bestmove {result.move or '(none)'}"]
    if result.ponder:
        parts.append(f"ponder {result.ponder}")
    if info is not None:
        parts.extend(f"{key}={value}" for key, value in info.present().items() if key != "pv")
    return " ".join(parts)


def play_game(
    white: _Player,
    black: _Player,
    *,
    board: Optional[chess.Board] = None,
    limits: Optional[SearchLimits] = None,
    max_plies: int = DEFAULT_MAX_PLIES,
    move_timeout: Optional[float] = None,
    labels: Optional[Dict[bool, str]] = None,
    logger: Optional[Logger] = None,
    on_move: Optional[Callable[[bool, str], None]] = None,
) -> GameRecord:
    """Play one game and return its record.

    The same engine may play both colors.  Engine errors propagate to the
    caller; an illegal or missing move ends the game with a stop reason.
    """
    log = logger or null_logger
    board = board.copy() if board is not None else chess.Board()
    engines: Dict[bool, Any] = {chess.WHITE: white, chess.BLACK: black}
    names = {
        color: (labels or {}).get(color) or f"{COLOR_NAME[color]} - {getattr(engine, 'name', None) or 'Engine'}"
        for color, engine in engines.items()
    }
    record = GameRecord(start_fen=board.fen(), labels=names)

    seen_ids = set()
    for engine in engines.values():
        if id(engine) in seen_ids:
            continue
        seen_ids.add(id(engine))
        engine.new_game()

    log(info_text(f"Self-play started: {names[chess.WHITE]} vs {names[chess.BLACK]}"))

    while not chess_logic.is_game_over(board):
        if len(record.moves) >= max_plies:
            record.stop_reason = f"Move limit reached ({max_plies} plies)"
            break

        color = board.turn
        engine = engines[color]
        start, moves = chess_logic.position_args(board)
        engine.set_position(start, moves)
        result = engine.go_search(limits, timeout=move_timeout)
        record.traces[color].append(_describe(result, getattr(engine, "last_info", None)))

        if not chess_logic.push_uci_move(board, result.move):
            record.stop_reason = f"{names[color]} produced illegal move: {result.move or '(none)'}"
            break
        record.moves.append(result.move)
        if on_move is not None:
            on_move(color, result.move)

    if chess_logic.is_game_over(board):
        record.result = chess_logic.get_game_result(board)
        record.stop_reason = f"Self-play finished: {record.result}"
    record.final_fen = board.fen()
    log(info_text(record.stop_reason or "Self-play stopped"))
    return record


_TRACE_PATTERN = re.compile(r"^(\d+)_selfplay(?:\.[^.]+)?$")


def export_trace(record: GameRecord, directory: Union[Path, str]) -> Path:
    """Write *record* to the next free ``<n>_selfplay.txt`` in *directory*."""
    trace_directory = Path(directory)
    trace_directory.mkdir(parents=True, exist_ok=True)

    existing_indices = []
    for entry in trace_directory.iterdir():
        if not entry.is_file():
            continue
        match = _TRACE_PATTERN.match(entry.name)
        if match:
            existing_indices.append(int(match.group(1)))
    next_index = max(existing_indices) + 1 if existing_indices else 1

    board = chess.Board(record.start_fen)
    for move in record.moves:
        board.push_uci(move)

    iso_stamp = record.started_at.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")
    header_lines = [
        f"Self-play trace recorded at {iso_stamp}",
        f"Initial FEN: {record.start_fen}",
        f"Final FEN: {record.final_fen or 'unknown'}",
        f"Moves: {chess_logic.export_move_history_uci(board)}",
        f"SAN: {chess_logic.export_move_history_san(board)}",
    ]
    if record.stop_reason:
        header_lines.append(f"Stop reason: {record.stop_reason}")

    path = trace_directory / f"{next_index}_selfplay.txt"
    with path.open("w", encoding="utf-8") as trace_file:
        trace_file.write("\n".join(header_lines))
        trace_file.write("\n\n")
        for color in (chess.WHITE, chess.BLACK):
            trace_file.write(f"[{record.labels.get(color, 'Engine')}]\n")
            for line in record.traces.get(color, []):
                trace_file.write(f"  {line}\n")
            trace_file.write("\n")
    return path
