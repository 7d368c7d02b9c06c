import pytest

from ucihost.protocol import (
    BestMove,
    EngineId,
    EngineOption,
    OptionDeclared,
    OptionType,
    ReadyOk,
    Score,
    SearchInfo,
    SearchLimits,
    StatusReport,
    UciOk,
    Unrecognized,
    parse_line,
    position_command,
    setoption_command,
)


def test_id_lines_keep_inner_spacing() -> None:
    assert parse_line("id name Stockfish 16.1  dev") == EngineId(name="Stockfish 16.1  dev")
    assert parse_line("id author T. Romstad, M. Costalba") == EngineId(author="T. Romstad, M. Costalba")
    assert isinstance(parse_line("id"), Unrecognized)
    assert isinstance(parse_line("id colour white"), Unrecognized)


def test_terminal_lines() -> None:
    assert parse_line("uciok") == UciOk()
    assert parse_line("readyok") == ReadyOk()
    assert parse_line("  readyok  ") == ReadyOk()


@pytest.mark.parametrize(
    "line, expected",
    [
        ("option name Ponder type check default false", EngineOption("Ponder", OptionType.BOOLEAN, default=False)),
        (
            "option name Hash type spin default 16 min 1 max 33554432",
            EngineOption("Hash", OptionType.INTEGER, default=16, min=1, max=33554432),
        ),
        (
            "option name Style type combo default Normal var Solid var Normal var Risky",
            EngineOption("Style", OptionType.ENUMERATION, default="Normal", var=("Solid", "Normal", "Risky")),
        ),
        (
            "option name NalimovPath type string default <empty>",
            EngineOption("NalimovPath", OptionType.STRING, default=""),
        ),
        ("option name Clear Hash type button", EngineOption("Clear Hash", OptionType.BUTTON)),
    ],
)
def test_option_declarations(line, expected) -> None:
    event = parse_line(line)
    assert event == OptionDeclared(expected)


def test_option_with_spaces_in_name_and_values() -> None:
    event = parse_line("option name Syzygy Path type string default C:\\tb one")
    assert event.option.name == "Syzygy Path"
    assert event.option.default == "C:\\tb one"

    event = parse_line("option name Book type combo default Main Book var Main Book var None")
    assert event.option.var == ("Main Book", "None")
    assert event.option.default == "Main Book"


def test_option_without_name_or_type_is_unrecognized() -> None:
    assert isinstance(parse_line("option type spin default 1"), Unrecognized)
    assert isinstance(parse_line("option name Hash"), Unrecognized)
    assert isinstance(parse_line("option name Hash type slider default 3"), Unrecognized)


def test_bestmove_variants() -> None:
    assert parse_line("bestmove e2e4") == BestMove("e2e4")
    assert parse_line("bestmove e2e4 ponder e7e5") == BestMove("e2e4", "e7e5")
    assert parse_line("bestmove e7e8q") == BestMove("e7e8q")
    assert parse_line("bestmove (none)") == BestMove(None)
    assert parse_line("bestmove 0000") == BestMove(None)
    assert parse_line("bestmove e2e4 ponder") == BestMove("e2e4")


def test_info_fields() -> None:
    event = parse_line(
        "info depth 12 seldepth 18 multipv 1 score cp -35 upperbound nodes 123456 nps 987654 "
        "hashfull 12 tbhits 0 time 125 pv e2e4 e7e5 g1f3"
    )
    assert event == SearchInfo(
        depth=12,
        seldepth=18,
        multipv=1,
        score=Score(cp=-35, upperbound=True),
        nodes=123456,
        nps=987654,
        hashfull=12,
        tbhits=0,
        time=125,
        pv=("e2e4", "e7e5", "g1f3"),
    )


def test_info_mate_wdl_and_currline() -> None:
    event = parse_line("info score mate -3 wdl 0 10 990 currline 2 e2e4 e7e5 currmove d2d4 currmovenumber 4")
    assert event.score == Score(mate=-3)
    assert event.score.is_mate
    assert event.wdl == (0, 10, 990)
    assert event.cpunr == 2
    assert event.currline == ("e2e4", "e7e5")
    assert event.currmove == "d2d4"
    assert event.currmovenumber == 4


def test_info_string_takes_rest_of_line() -> None:
    event = parse_line("info depth 3 string NNUE evaluation using  nn.bin  enabled")
    assert event.depth == 3
    assert event.string == "NNUE evaluation using  nn.bin  enabled"


def test_info_is_permissive() -> None:
    event = parse_line("info depth x nodes 10 frobnicate 7 score cp")
    assert event.depth is None
    assert event.nodes == 10
    assert event.score is None
    assert parse_line("info") == SearchInfo()


def test_present_only_lists_reported_fields() -> None:
    event = parse_line("info depth 5 pv e2e4")
    assert event.present() == {"depth": 5, "pv": ("e2e4",)}


def test_status_reports_and_unknown_lines() -> None:
    assert parse_line("copyprotection ok") == StatusReport("copyprotection", "ok")
    assert parse_line("registration error") == StatusReport("registration", "error")
    assert parse_line("") == Unrecognized("")
    assert parse_line("Stockfish 16 by the Stockfish developers") == Unrecognized(
        "Stockfish 16 by the Stockfish developers"
    )


def test_position_command() -> None:
    assert position_command() == "position startpos"
    assert position_command("startpos", ["e2e4", "e7e5"]) == "position startpos moves e2e4 e7e5"
    fen = "8/8/8/8/8/8/8/K6k w - - 0 1"
    assert position_command(fen) == f"position fen {fen}"
    assert position_command(f"fen {fen}", ["a1a2"]) == f"position fen {fen} moves a1a2"
    assert position_command(None) == "position startpos"


def test_setoption_command() -> None:
    assert setoption_command("Hash", "64") == "setoption name Hash value 64"
    assert setoption_command("Clear Hash") == "setoption name Clear Hash"


def test_search_limits_to_command() -> None:
    assert SearchLimits().to_command() == "go"
    assert SearchLimits(depth=1).to_command() == "go depth 1"
    limits = SearchLimits(wtime=60000, btime=59000, winc=1000, binc=1000, movestogo=20)
    assert limits.to_command() == "go wtime 60000 btime 59000 winc 1000 binc 1000 movestogo 20"
    assert SearchLimits(infinite=True, searchmoves=("e2e4", "d2d4")).to_command() == "go infinite searchmoves e2e4 d2d4"
    assert SearchLimits(ponder=True, movetime=500).to_command() == "go ponder movetime 500"


def test_search_limits_parse() -> None:
    assert SearchLimits.parse("go depth 7 movetime 300") == SearchLimits(depth=7, movetime=300)
    assert SearchLimits.parse("infinite searchmoves e2e4 g1f3") == SearchLimits(
        infinite=True, searchmoves=("e2e4", "g1f3")
    )
    assert SearchLimits.parse("depth nope nodes 5 bogus") == SearchLimits(nodes=5)
    assert SearchLimits.parse("") == SearchLimits()


def test_format_value_per_type() -> None:
    check = EngineOption("Ponder", OptionType.BOOLEAN, default=False)
    assert check.format_value(True) == "true"
    assert check.format_value("FALSE") == "false"
    with pytest.raises(ValueError):
        check.format_value(1)

    spin = EngineOption("Hash", OptionType.INTEGER, default=16, min=1, max=1024)
    assert spin.format_value(64) == "64"
    assert spin.format_value("128") == "128"
    for bad in (0, 2048, "big", True):
        with pytest.raises(ValueError):
            spin.format_value(bad)

    combo = EngineOption("Style", OptionType.ENUMERATION, default="Normal", var=("Solid", "Normal", "Risky"))
    assert combo.format_value("risky") == "Risky"
    with pytest.raises(ValueError):
        combo.format_value("Wild")

    text = EngineOption("NalimovPath", OptionType.STRING, default="")
    assert text.format_value("/tb") == "/tb"
    assert text.format_value("") == "<empty>"
    with pytest.raises(ValueError):
        text.format_value(None)

    assert EngineOption("Clear Hash", OptionType.BUTTON).format_value(None) is None


def test_search_limits_parse_stops_searchmoves_at_next_keyword() -> None:
    assert SearchLimits.parse("searchmoves e2e4 d2d4 depth 5 infinite") == SearchLimits(
        searchmoves=("e2e4", "d2d4"), depth=5, infinite=True
    )


def test_info_string_is_found_by_token() -> None:
    event = parse_line("info currmove string7 string hello  world")
    assert event.currmove == "string7"
    assert event.string == "hello  world"
    assert parse_line("info string").string == ""
