"""Apply principal-variation tokens (UCI or SAN) to a board."""

from __future__ import annotations

import re

import chess

from pvexplorer.errors import InvalidMoveError

_UCI_MOVE_RE = re.compile(r"^[a-h][1-8][a-h][1-8][qrbn]?$")


def is_uci_move(token: str) -> bool:
    return bool(_UCI_MOVE_RE.match(token))


def split_pv(pv: str | None) -> list[str]:
    """Split a space separated PV into move tokens."""
    return (pv or "").split()


def push_pv_move(board: chess.Board, token: str) -> str:
    """Push ``token`` on ``board`` and return its SAN.

    Engines report coordinate notation; SAN tokens are accepted as well so
    book lines can be replayed through the same path. The board is left
    untouched when the move is rejected.
    """
    move = _parse_move(board, token)
    san = board.san(move)
    board.push(move)
    return san


def _parse_move(board: chess.Board, token: str) -> chess.Move:
    if is_uci_move(token):
        move = chess.Move.from_uci(token)
        if move not in board.legal_moves:
            raise InvalidMoveError(f"Illegal move {token} in {board.fen()}")
        return move
    try:
        return board.parse_san(token)
    except ValueError as exc:
        raise InvalidMoveError(f"Invalid move {token} in {board.fen()}") from exc
