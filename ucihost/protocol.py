"""UCI wire vocabulary: engine output events and host command builders.

Every line an engine prints maps to exactly one event through
:func:`parse_line`.  The parser is total; lines it cannot make sense of become
:class:`Unrecognized` rather than raising, because engines in the wild are
loose about the protocol.
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple, Union


# ---------------------------------------------------------------------------
# Options
# ---------------------------------------------------------------------------


class OptionType(Enum):
    BOOLEAN = "check"
    INTEGER = "spin"
    ENUMERATION = "combo"
    STRING = "string"
    BUTTON = "button"


EMPTY_STRING_TOKEN = "<empty>"


def _parse_bool(text: str) -> bool:
    lowered = text.strip().lower()
    if lowered == "true":
        return True
    if lowered == "false":
        return False
    raise ValueError(f"not a boolean: {text!r}")


@dataclass(frozen=True)
class EngineOption:
    name: str
    type: OptionType
    default: Any = None
    min: Optional[int] = None
    max: Optional[int] = None
    var: Tuple[str, ...] = ()

    def format_value(self, value: Any) -> Optional[str]:
        """Validate *value* for this option and render it for ``setoption``.

        Returns ``None`` for buttons, which are sent without a value.
        Raises :class:`ValueError` when the value does not fit the declaration.
        """
        if self.type is OptionType.BUTTON:
            return None

        if self.type is OptionType.BOOLEAN:
            if isinstance(value, bool):
                return "true" if value else "false"
            if isinstance(value, str):
                return "true" if _parse_bool(value) else "false"
            raise ValueError(f"option '{self.name}' expects a boolean, got {value!r}")

        if self.type is OptionType.INTEGER:
            if isinstance(value, bool):
                raise ValueError(f"option '{self.name}' expects an integer, got {value!r}")
            try:
                number = int(value)
            except (TypeError, ValueError):
                raise ValueError(f"option '{self.name}' expects an integer, got {value!r}") from None
            if self.min is not None and number < self.min:
                raise ValueError(f"option '{self.name}' must be >= {self.min}, got {number}")
            if self.max is not None and number > self.max:
                raise ValueError(f"option '{self.name}' must be <= {self.max}, got {number}")
            return str(number)

        if value is None:
            raise ValueError(f"option '{self.name}' requires a value")
        text = str(value)

        if self.type is OptionType.ENUMERATION and self.var:
            for choice in self.var:
                if choice.lower() == text.lower():
                    return choice
            raise ValueError(f"option '{self.name}' must be one of {', '.join(self.var)}; got {text!r}")

        return text if text else EMPTY_STRING_TOKEN


# ---------------------------------------------------------------------------
# Events
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class EngineId:
    name: Optional[str] = None
    author: Optional[str] = None


@dataclass(frozen=True)
class OptionDeclared:
    option: EngineOption


@dataclass(frozen=True)
class UciOk:
    pass


@dataclass(frozen=True)
class ReadyOk:
    pass


@dataclass(frozen=True)
class Score:
    cp: Optional[int] = None
    mate: Optional[int] = None
    lowerbound: bool = False
    upperbound: bool = False

    @property
    def is_mate(self) -> bool:
        return self.mate is not None


@dataclass(frozen=True)
class SearchInfo:
    depth: Optional[int] = None
    seldepth: Optional[int] = None
    time: Optional[int] = None
    nodes: Optional[int] = None
    nps: Optional[int] = None
    hashfull: Optional[int] = None
    tbhits: Optional[int] = None
    sbhits: Optional[int] = None
    cpuload: Optional[int] = None
    multipv: Optional[int] = None
    currmovenumber: Optional[int] = None
    currmove: Optional[str] = None
    score: Optional[Score] = None
    pv: Tuple[str, ...] = ()
    wdl: Optional[Tuple[int, int, int]] = None
    refutation: Tuple[str, ...] = ()
    currline: Tuple[str, ...] = ()
    cpunr: Optional[int] = None
    string: Optional[str] = None

    def present(self) -> Dict[str, Any]:
        """Only the fields the engine actually reported."""
        result = {}
        for item in fields(self):
            value = getattr(self, item.name)
            if value is None or value == ():
                continue
            result[item.name] = value
        return result


@dataclass(frozen=True)
class BestMove:
    move: Optional[str]
    ponder: Optional[str] = None


@dataclass(frozen=True)
class StatusReport:
    kind: str
    status: str


@dataclass(frozen=True)
class Unrecognized:
    raw: str


ProtocolEvent = Union[EngineId, OptionDeclared, UciOk, ReadyOk, SearchInfo, BestMove, StatusReport, Unrecognized]


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------


NULL_MOVES = {"(none)", "0000", "none"}

OPTION_KEYWORDS = {"name", "type", "default", "min", "max", "var"}

INFO_INT_FIELDS = {
    "depth",
    "seldepth",
    "time",
    "nodes",
    "nps",
    "hashfull",
    "tbhits",
    "sbhits",
    "cpuload",
    "multipv",
    "currmovenumber",
}
INFO_MOVE_LIST_FIELDS = {"pv", "refutation"}
INFO_KEYWORDS = INFO_INT_FIELDS | INFO_MOVE_LIST_FIELDS | {"score", "currmove", "currline", "wdl", "string"}


def _to_int(text: str) -> Optional[int]:
    try:
        return int(text)
    except ValueError:
        return None


def _parse_id(line: str, tokens: List[str]) -> ProtocolEvent:
    if len(tokens) < 2:
        return Unrecognized(line)
    # Keep the value's inner spacing ("id name Stockfish 16.1").
    rest = line.strip()[len("id"):].strip()
    key, _, value = rest.partition(" ")
    value = value.strip()
    if key == "name":
        return EngineId(name=value)
    if key == "author":
        return EngineId(author=value)
    return Unrecognized(line)


def _convert_default(option_type: OptionType, raw: Optional[str]) -> Any:
    if raw is None or option_type is OptionType.BUTTON:
        return None
    if option_type is OptionType.BOOLEAN:
        try:
            return _parse_bool(raw)
        except ValueError:
            return None
    if option_type is OptionType.INTEGER:
        return _to_int(raw)
    if raw == EMPTY_STRING_TOKEN:
        return ""
    return raw


def _parse_option(line: str, tokens: List[str]) -> ProtocolEvent:
    sections: Dict[str, List[str]] = {}
    variants: List[List[str]] = []
    current: Optional[List[str]] = None
    for token in tokens[1:]:
        if token in OPTION_KEYWORDS:
            current = []
            if token == "var":
                variants.append(current)
            else:
                sections[token] = current
            continue
        if current is not None:
            current.append(token)

    name = " ".join(sections.get("name", []))
    type_tokens = sections.get("type", [])
    if not name or len(type_tokens) != 1:
        return Unrecognized(line)
    try:
        option_type = OptionType(type_tokens[0])
    except ValueError:
        return Unrecognized(line)

    default_tokens = sections.get("default")
    raw_default = " ".join(default_tokens) if default_tokens is not None else None
    is_integer = option_type is OptionType.INTEGER

    option = EngineOption(
        name=name,
        type=option_type,
        default=_convert_default(option_type, raw_default),
        min=_to_int(" ".join(sections["min"])) if is_integer and "min" in sections else None,
        max=_to_int(" ".join(sections["max"])) if is_integer and "max" in sections else None,
        var=tuple(" ".join(parts) for parts in variants if parts) if option_type is OptionType.ENUMERATION else (),
    )
    return OptionDeclared(option)


def _parse_bestmove(line: str, tokens: List[str]) -> ProtocolEvent:
    move: Optional[str] = None
    ponder: Optional[str] = None
    if len(tokens) >= 2 and tokens[1] not in NULL_MOVES and tokens[1] != "ponder":
        move = tokens[1]
    if "ponder" in tokens:
        index = tokens.index("ponder")
        if index + 1 < len(tokens) and tokens[index + 1] not in NULL_MOVES:
            ponder = tokens[index + 1]
    return BestMove(move=move, ponder=ponder)


def _collect_moves(tokens: List[str], start: int) -> Tuple[Tuple[str, ...], int]:
    index = start
    while index < len(tokens) and tokens[index] not in INFO_KEYWORDS:
        index += 1
    return tuple(tokens[start:index]), index


def _parse_info(line: str, tokens: List[str]) -> ProtocolEvent:
    values: Dict[str, Any] = {}
    index = 1
    while index < len(tokens):
        key = tokens[index]
        index += 1
        if key in INFO_INT_FIELDS:
            if index < len(tokens):
                number = _to_int(tokens[index])
                if number is not None:
                    values[key] = number
                    index += 1
        elif key == "currmove":
            if index < len(tokens) and tokens[index] not in INFO_KEYWORDS:
                values["currmove"] = tokens[index]
                index += 1
        elif key == "score":
            score, index = _parse_score(tokens, index)
            if score is not None:
                values["score"] = score
        elif key in INFO_MOVE_LIST_FIELDS:
            values[key], index = _collect_moves(tokens, index)
        elif key == "currline":
            if index < len(tokens):
                cpunr = _to_int(tokens[index])
                if cpunr is not None:
                    values["cpunr"] = cpunr
                    index += 1
            values["currline"], index = _collect_moves(tokens, index)
        elif key == "wdl":
            triple = [_to_int(token) for token in tokens[index:index + 3]]
            if len(triple) == 3 and all(item is not None for item in triple):
                values["wdl"] = tuple(triple)
                index += 3
        elif key == "string":
            # Everything after the first `index` tokens, inner spacing intact.
            rest = line.split(None, index)
            values["string"] = rest[index].strip() if len(rest) > index else ""
            break
    return SearchInfo(**values)


def _parse_score(tokens: List[str], index: int) -> Tuple[Optional[Score], int]:
    if index + 1 >= len(tokens) or tokens[index] not in ("cp", "mate"):
        return None, index
    kind = tokens[index]
    number = _to_int(tokens[index + 1])
    if number is None:
        return None, index + 1
    index += 2
    lowerbound = upperbound = False
    while index < len(tokens) and tokens[index] in ("lowerbound", "upperbound"):
        if tokens[index] == "lowerbound":
            lowerbound = True
        else:
            upperbound = True
        index += 1
    if kind == "cp":
        return Score(cp=number, lowerbound=lowerbound, upperbound=upperbound), index
    return Score(mate=number, lowerbound=lowerbound, upperbound=upperbound), index


def _parse_status(line: str, tokens: List[str]) -> ProtocolEvent:
    if len(tokens) < 2:
        return Unrecognized(line)
    return StatusReport(kind=tokens[0], status=tokens[1])


_HANDLERS: Dict[str, Callable[[str, List[str]], ProtocolEvent]] = {
    "id": _parse_id,
    "option": _parse_option,
    "uciok": lambda line, tokens: UciOk(),
    "readyok": lambda line, tokens: ReadyOk(),
    "bestmove": _parse_bestmove,
    "info": _parse_info,
    "copyprotection": _parse_status,
    "registration": _parse_status,
}


def parse_line(line: str) -> ProtocolEvent:
    """Map one line of engine output to a protocol event."""
    tokens = line.split()
    if not tokens:
        return Unrecognized(line)
    handler = _HANDLERS.get(tokens[0])
    if handler is None:
        return Unrecognized(line)
    return handler(line, tokens)


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


STARTPOS = "startpos"


def position_command(position: Optional[str] = STARTPOS, moves: Sequence[str] = ()) -> str:
    """Build ``position [startpos | fen <fen>] [moves ...]``."""
    root = (position or STARTPOS).strip()
    if root.startswith("fen "):
        root = root[len("fen "):].strip()
    parts = ["position"]
    if root == STARTPOS:
        parts.append(STARTPOS)
    else:
        parts.extend(["fen", root])
    if moves:
        parts.append("moves")
        parts.extend(moves)
    return " ".join(parts)


def setoption_command(name: str, value: Optional[str] = None) -> str:
    if value is None:
        return f"setoption name {name}"
    return f"setoption name {name} value {value}"


@dataclass(frozen=True)
class SearchLimits:
    depth: Optional[int] = None
    nodes: Optional[int] = None
    mate: Optional[int] = None
    movetime: Optional[int] = None
    wtime: Optional[int] = None
    btime: Optional[int] = None
    winc: Optional[int] = None
    binc: Optional[int] = None
    movestogo: Optional[int] = None
    infinite: bool = False
    ponder: bool = False
    searchmoves: Tuple[str, ...] = field(default_factory=tuple)

    _NUMERIC = ("wtime", "btime", "winc", "binc", "movestogo", "depth", "nodes", "mate", "movetime")

    def to_command(self) -> str:
        parts = ["go"]
        if self.ponder:
            parts.append("ponder")
        for key in self._NUMERIC:
            value = getattr(self, key)
            if value is not None:
                parts.extend([key, str(int(value))])
        if self.infinite:
            parts.append("infinite")
        if self.searchmoves:
            parts.append("searchmoves")
            parts.extend(self.searchmoves)
        return " ".join(parts)

    @classmethod
    def parse(cls, args: str) -> "SearchLimits":
        """Read the arguments of a ``go`` command; unknown tokens are skipped."""
        tokens = args.split()
        if tokens and tokens[0] == "go":
            tokens = tokens[1:]
        keywords = set(cls._NUMERIC) | {"infinite", "ponder", "searchmoves"}
        parsed: Dict[str, Any] = {}
        moves: List[str] = []
        index = 0
        while index < len(tokens):
            key = tokens[index].lower()
            index += 1
            if key in cls._NUMERIC:
                if index < len(tokens):
                    try:
                        parsed[key] = int(tokens[index])
                    except ValueError:
                        pass
                    index += 1
            elif key in {"infinite", "ponder"}:
                parsed[key] = True
            elif key == "searchmoves":
                while index < len(tokens) and tokens[index].lower() not in keywords:
                    moves.append(tokens[index])
                    index += 1
        if moves:
            parsed["searchmoves"] = tuple(moves)
        return cls(**parsed)
