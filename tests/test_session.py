import pytest

from ucihost.errors import InvalidState, ProcessDied, UnknownOption
from ucihost.protocol import BestMove, EngineId, ReadyOk, UciOk, parse_line
from ucihost.session import Session, SessionState, command_verb


def handshaken() -> Session:
    session = Session()
    session.apply_command("uci")
    for line in (
        "id name Fake",
        "id author Someone",
        "option name Hash type spin default 16 min 1 max 1024",
        "option name Hash type spin default 99 min 1 max 2",
        "option name Ponder type check default false",
        "uciok",
    ):
        session.apply_event(parse_line(line))
    return session


def test_command_verb() -> None:
    assert command_verb("go depth 3") == "go"
    assert command_verb("  isready") == "isready"
    assert command_verb("") == ""


def test_handshake_collects_identity_and_options() -> None:
    session = handshaken()
    assert session.state is SessionState.IDLE
    assert session.handshake_complete
    assert (session.name, session.author) == ("Fake", "Someone")
    assert list(session.options) == ["Hash", "Ponder"]
    # First declaration wins.
    assert session.options["Hash"].default == 16


def test_options_after_handshake_are_ignored() -> None:
    session = handshaken()
    session.apply_event(parse_line("option name Late type check default true"))
    assert "Late" not in session.options


def test_only_uci_allowed_before_handshake() -> None:
    session = Session()
    assert session.allows("uci")
    assert session.allows("quit")
    for command in ("isready", "go depth 1", "position startpos", "stop", "setoption name Hash value 1"):
        with pytest.raises(InvalidState) as excinfo:
            session.check_command(command)
        assert excinfo.value.state is SessionState.NOT_STARTED


def test_search_cycle() -> None:
    session = handshaken()
    session.check_command("go depth 1")
    session.apply_command("go depth 1")
    assert session.state is SessionState.SEARCHING
    assert session.allows("stop")
    assert session.allows("ponderhit")
    assert not session.allows("isready")
    assert not session.allows("go depth 1")

    session.apply_event(parse_line("info depth 1 pv e2e4"))
    assert session.state is SessionState.SEARCHING
    session.apply_event(BestMove("e2e4"))
    assert session.state is SessionState.IDLE
    assert not session.allows("stop")


def test_ready_cycle_and_stray_terminal_events() -> None:
    session = handshaken()
    session.apply_event(ReadyOk())
    session.apply_event(BestMove("e2e4"))
    assert session.state is SessionState.IDLE

    session.apply_command("isready")
    assert session.state is SessionState.AWAITING_READY
    session.apply_event(UciOk())
    assert session.state is SessionState.AWAITING_READY
    session.apply_event(ReadyOk())
    assert session.state is SessionState.IDLE


def test_passthrough_commands_do_not_move_state() -> None:
    session = handshaken()
    for command in ("ucinewgame", "position startpos moves e2e4", "setoption name Hash value 8", "d"):
        session.check_command(command)
        session.apply_command(command)
        assert session.state is SessionState.IDLE


def test_terminated_session_rejects_everything() -> None:
    session = handshaken()
    session.apply_command("quit")
    assert session.state is SessionState.TERMINATED
    with pytest.raises(InvalidState):
        session.check_command("isready")
    with pytest.raises(InvalidState):
        session.check_command("quit")
    session.apply_event(EngineId(name="Other"))
    assert session.name == "Fake"


def test_died_session_raises_process_died() -> None:
    session = handshaken()
    session.mark_died(exit_code=9)
    assert session.state is SessionState.TERMINATED
    with pytest.raises(ProcessDied) as excinfo:
        session.check_command("go depth 1")
    assert excinfo.value.exit_code == 9
    with pytest.raises(ProcessDied):
        session.check_state(frozenset({SessionState.SEARCHING}), "BestMove")


def test_option_lookup_ignores_case() -> None:
    session = handshaken()
    assert session.option("hash").name == "Hash"
    assert session.option("PONDER").name == "Ponder"
    with pytest.raises(UnknownOption, match="No such option: 'Threads'"):
        session.option("Threads")


def test_buffered_options_are_taken_once() -> None:
    session = Session()
    session.buffer_option("Hash", 32)
    session.buffer_option("Ponder", True)
    assert session.buffered_options == (("Hash", 32), ("Ponder", True))
    assert session.take_buffered_options() == [("Hash", 32), ("Ponder", True)]
    assert session.take_buffered_options() == []
