# MAIN
import argparse
from dataclasses import replace
import sys
from typing import Dict, List, Optional, Sequence, Tuple

import chess

from .engine import DEFAULT_MOVETIME, Engine
from .errors import EngineError
from .protocol import SearchLimits
from .self_play import DEFAULT_MAX_PLIES, export_trace, play_game
from .utils import ReportingLevel, console_logger, info_text


def parse_option_assignment(text: str) -> Tuple[str, str]:
    name, sep, value = text.partition("=")
    if not sep or not name.strip():
        raise argparse.ArgumentTypeError(f"expected NAME=VALUE, got {text!r}")
    return name.strip(), value.strip()


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="ucihost",
        description="Drive a UCI chess engine: run one search or an engine-vs-engine game.",
    )
    parser.add_argument("engine", help="Path to the engine executable")
    parser.add_argument(
        "--arg",
        dest="engine_args",
        action="append",
        default=[],
        metavar="ARG",
        help="Extra argument passed to the engine (repeatable)",
    )
    start = parser.add_mutually_exclusive_group()
    start.add_argument("-fen", "--fen", help="Start from the given FEN instead of the initial position")
    start.add_argument("--startpos", action="store_true", help="Start from the initial position (default)")
    parser.add_argument("--moves", nargs="*", default=[], metavar="MOVE", help="UCI moves played from the start position")
    parser.add_argument("--depth", type=int, help="Search to a fixed depth")
    parser.add_argument("--movetime", type=int, help="Search for a fixed number of milliseconds")
    parser.add_argument("--nodes", type=int, help="Search a fixed number of nodes")
    parser.add_argument("--limits", default="", help="Raw go arguments, e.g. 'wtime 60000 btime 60000'")
    parser.add_argument(
        "--option",
        dest="options",
        action="append",
        default=[],
        type=parse_option_assignment,
        metavar="NAME=VALUE",
        help="Engine option to set after the handshake (repeatable)",
    )
    parser.add_argument("--timeout", type=float, help="Seconds to wait for each bestmove")
    parser.add_argument("--self-play", action="store_true", help="Play a game instead of a single search")
    parser.add_argument("--opponent", help="Engine playing Black in self-play (defaults to the same engine)")
    parser.add_argument("--max-plies", type=int, default=DEFAULT_MAX_PLIES, help="Stop self-play after this many plies")
    parser.add_argument("--trace-dir", help="Write a self-play trace file into this directory")
    verbosity = parser.add_mutually_exclusive_group()
    verbosity.add_argument("--quiet", action="store_true", help="Only print the result")
    verbosity.add_argument("--verbose", action="store_true", help="Also echo engine info lines")
    return parser.parse_args(argv)


def build_limits(args: argparse.Namespace) -> SearchLimits:
    limits = SearchLimits.parse(args.limits)
    overrides: Dict[str, int] = {}
    for key in ("depth", "movetime", "nodes"):
        value = getattr(args, key)
        if value is not None:
            overrides[key] = value
    if overrides:
        limits = replace(limits, **overrides)
    if limits == SearchLimits():
        limits = SearchLimits(movetime=DEFAULT_MOVETIME)
    return limits


def reporting_level(args: argparse.Namespace) -> ReportingLevel:
    if args.quiet:
        return ReportingLevel.QUIET
    if args.verbose:
        return ReportingLevel.VERBOSE
    return ReportingLevel.BASIC


def open_engine(path: str, args: argparse.Namespace, label: str) -> Engine:
    level = reporting_level(args)
    return Engine(
        path,
        args.engine_args,
        options=dict(args.options),
        logger=console_logger(level, label=label),
        echo_info=level >= ReportingLevel.VERBOSE,
    )


def run_search(args: argparse.Namespace, limits: SearchLimits) -> int:
    with open_engine(args.engine, args, "Engine") as engine:
        engine.is_ready()
        engine.set_position(args.fen or "startpos", args.moves)
        result = engine.go_search(limits, timeout=args.timeout)
        info = engine.last_info
    line = f"bestmove {result.move or '(none)'}"
    if result.ponder:
        line += f" ponder {result.ponder}"
    print(line)
    if info is not None and info.score is not None and not args.quiet:
        score = info.score
        value = f"mate {score.mate}" if score.is_mate else f"cp {score.cp}"
        print(info_text(f"score {value} depth {info.depth}"))
    return 0


def run_self_play(args: argparse.Namespace, limits: SearchLimits) -> int:
    board = chess.Board(args.fen) if args.fen else chess.Board()
    for move in args.moves:
        board.push_uci(move)

    engines: List[Engine] = []
    try:
        white = open_engine(args.engine, args, "W" if args.opponent else "WB")
        engines.append(white)
        black = white
        if args.opponent:
            black = open_engine(args.opponent, args, "B")
            engines.append(black)
        level = reporting_level(args)
        record = play_game(
            white,
            black,
            board=board,
            limits=limits,
            max_plies=args.max_plies,
            move_timeout=args.timeout,
            logger=console_logger(level),
        )
    finally:
        for engine in engines:
            engine.shutdown()

    print(" ".join(record.moves))
    print(record.stop_reason or record.result)
    if args.trace_dir:
        path = export_trace(record, args.trace_dir)
        if not args.quiet:
            print(info_text(f"Self-play trace written -> {path}"))
    return 0


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_args(argv)
    try:
        limits = build_limits(args)
        if args.self_play:
            return run_self_play(args, limits)
        return run_search(args, limits)
    except EngineError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1
    except ValueError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    sys.exit(main())
