"""Canonical position fingerprints.

A fingerprint is the first four FEN fields (placement, side to move, castling
rights, en passant square). Move counters are dropped so that transposed move
orders collapse onto one key. The en passant square is only written when an en
passant capture is actually legal, matching how python-chess reports positions
for repetition detection.
"""

from __future__ import annotations

import chess

_FINGERPRINT_FIELDS = 4


def fingerprint_board(board: chess.Board) -> str:
    """Return the fingerprint of a python-chess board."""
    return " ".join(board.fen(en_passant="legal").split()[:_FINGERPRINT_FIELDS])


def normalize_fen(fen: str) -> str:
    """Return the fingerprint for a FEN string.

    Raises ``ValueError`` when python-chess cannot parse the FEN.
    """
    return fingerprint_board(chess.Board(fen.strip()))


def board_from_fingerprint(fingerprint: str) -> chess.Board:
    """Rebuild a board from a fingerprint (counters default to ``0 1``)."""
    return chess.Board(to_full_fen(fingerprint))


def to_full_fen(fingerprint: str) -> str:
    """Append default move counters so engines accept the position."""
    fields = fingerprint.split()
    if len(fields) >= 6:
        return " ".join(fields[:6])
    return " ".join([*fields[:_FINGERPRINT_FIELDS], "0", "1"])


def is_valid_fen(fen: str | None) -> bool:
    """Return True when the FEN parses and describes a legal position."""
    if not fen or not fen.strip():
        return False
    try:
        board = chess.Board(fen.strip())
    except ValueError:
        return False
    return board.is_valid()
