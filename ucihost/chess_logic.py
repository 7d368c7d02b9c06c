from typing import List, Optional, Tuple

import chess

from .protocol import STARTPOS


def position_args(board: chess.Board) -> Tuple[str, List[str]]:
    """Split *board* into the root position and the moves played from it."""
    root = board.root()
    start = STARTPOS if root.fen() == chess.STARTING_FEN else root.fen()
    return start, [move.uci() for move in board.move_stack]

def push_uci_move(board: chess.Board, move_uci: Optional[str]) -> bool:
    if not move_uci:
        return False
    try:
        move = chess.Move.from_uci(move_uci)
    except ValueError:
        return False
    if move not in board.legal_moves:
        return False
    board.push(move)
    return True

def is_game_over(board: chess.Board) -> bool:
    return board.is_game_over()

def get_game_result(board: chess.Board) -> str:
    if board.is_checkmate():
        return "Checkmate"
    elif board.is_stalemate():
        return "Stalemate"
    elif board.is_insufficient_material():
        return "Insufficient Material"
    elif board.is_seventyfive_moves():
        return "75-move rule"
    elif board.is_fivefold_repetition():
        return "Fivefold Repetition"
    elif board.is_variant_draw():
        return "Variant-specific Draw"
    else:
        return "Game in progress"

def export_move_history_uci(board: chess.Board) -> str:
    """Exports the move history of a chess game in Universal Chess Interface (UCI) format."""
    moves_uci = [move.uci() for move in board.move_stack]
    return ' '.join(moves_uci)

def export_move_history_san(board: chess.Board) -> str:
    moves_san = []
    temp_board = board.root()

    for move in board.move_stack:
        moves_san.append(temp_board.san(move))  # Convert to SAN before applying
        temp_board.push(move)

    return ' '.join(moves_san)
