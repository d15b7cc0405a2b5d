"""Rules engine for Super Tic-Tac-Toe.

A game is an immutable ``Snapshot``; ``apply_move`` returns a fresh one per
accepted move and ``None`` when the move is illegal. Marks are "X"/"O",
empty cells are None and a drawn mini-board (or match) is "D".
"""
import logging
from collections import namedtuple

log = logging.getLogger(__name__)

WIN_LINES = [
    (0,1,2),(3,4,5),(6,7,8),
    (0,3,6),(1,4,7),(2,5,8),
    (0,4,8),(2,4,6)
]

PLAYERS      = ("X", "O")
DRAW         = "D"
DIFFICULTIES = ("easy", "hard")

_OUTCOMES = (None, "X", "O", DRAW)


Snapshot = namedtuple("Snapshot", [
    "boards",            # 9 tuples of 9 cells
    "winners",           # global board: outcome of each mini-board
    "board_win_lines",   # which 3 cells formed each mini-board win
    "player",
    "forced",            # board the mover must play in, None = any
    "winner",
    "win_line",          # which 3 mini-boards formed the meta-win
    "difficulty",
    "last_move",         # (board, cell)
    "history",           # ((board, cell, player), ...)
])


def new_game(difficulty="easy"):
    if difficulty not in DIFFICULTIES:
        raise ValueError(f"unknown difficulty {difficulty!r}")
    return Snapshot(
        boards=((None,)*9,)*9,
        winners=(None,)*9,
        board_win_lines=(None,)*9,
        player="X",
        forced=None,
        winner=None,
        win_line=None,
        difficulty=difficulty,
        last_move=None,
        history=(),
    )


def opponent(mark):
    return "O" if mark == "X" else "X"


def check_win(cells):
    """Evaluate 9 marks (a mini-board, or the global board of outcomes).

    Returns ``(winner, line)``: the first line in ``WIN_LINES`` order whose
    three marks are equal and set, ``("D", None)`` once nothing is empty,
    otherwise ``(None, None)``.
    """
    for a, b, c in WIN_LINES:
        if cells[a] and cells[a] == cells[b] == cells[c]:
            return cells[a], (a, b, c)
    if all(cells):
        return DRAW, None
    return None, None


# ── Contract checks ───────────────────────────────────────────────────────────
def _is_index(i):
    return isinstance(i, int) and not isinstance(i, bool) and 0 <= i < 9

def _check_index(name, i):
    if not _is_index(i):
        raise ValueError(f"{name} index must be an int in 0-8, got {i!r}")

def check_snapshot(snap):
    """Raise ValueError if ``snap`` is not a well-formed snapshot."""
    if len(snap.boards) != 9 or any(len(b) != 9 for b in snap.boards):
        raise ValueError("snapshot must hold 9 mini-boards of 9 cells")
    for i, board in enumerate(snap.boards):
        bad = [m for m in board if m not in (None, "X", "O")]
        if bad:
            raise ValueError(f"mini-board {i} holds unknown mark {bad[0]!r}")
    if len(snap.winners) != 9 or any(w not in _OUTCOMES for w in snap.winners):
        raise ValueError(f"malformed global board {snap.winners!r}")
    if snap.player not in PLAYERS:
        raise ValueError(f"current player must be X or O, got {snap.player!r}")
    if snap.forced is not None and not _is_index(snap.forced):
        raise ValueError(f"forced board must be None or 0-8, got {snap.forced!r}")
    if snap.forced is not None and snap.winners[snap.forced]:
        raise ValueError(f"forced board {snap.forced} is already decided")
    if snap.winner not in _OUTCOMES:
        raise ValueError(f"unknown winner {snap.winner!r}")


# ── Moves ─────────────────────────────────────────────────────────────────────
def move_error(snap, b, c):
    """Why ``(b, c)`` is illegal in ``snap``, or None when it may be played."""
    check_snapshot(snap)
    _check_index("board", b)
    _check_index("cell", c)
    if snap.winner:
        return "game is over"
    if snap.winners[b]:
        return f"board {b} is already decided"
    if snap.forced is not None and b != snap.forced:
        return f"must play in board {snap.forced}"
    if snap.boards[b][c] is not None:
        return f"cell {c} of board {b} is occupied"
    return None


def apply_move(snap, b, c):
    """Play the current player's mark at cell ``c`` of board ``b``.

    Returns the next ``Snapshot`` or None if the move is rejected; ``snap``
    itself is left untouched either way.
    """
    err = move_error(snap, b, c)
    if err:
        log.debug("rejected %s at (%d, %d): %s", snap.player, b, c, err)
        return None

    player = snap.player
    board = list(snap.boards[b]); board[c] = player
    boards = snap.boards[:b] + (tuple(board),) + snap.boards[b+1:]

    winners = list(snap.winners)
    win_lines = list(snap.board_win_lines)
    mini, line = check_win(board)
    if mini:
        winners[b] = mini
        win_lines[b] = line

    winner, win_line = check_win(winners)
    forced = c if winners[c] is None else None

    return snap._replace(
        boards=boards,
        winners=tuple(winners),
        board_win_lines=tuple(win_lines),
        player=player if winner else opponent(player),
        forced=None if winner else forced,
        winner=winner,
        win_line=win_line,
        last_move=(b, c),
        history=snap.history + ((b, c, player),),
    )


def valid_moves(snap):
    check_snapshot(snap)
    if snap.winner: return []
    if snap.forced is not None:
        boards_to_check = [snap.forced]
    else:
        boards_to_check = range(9)
    moves = []
    for b in boards_to_check:
        if snap.winners[b]: continue
        for c in range(9):
            if snap.boards[b][c] is None: moves.append((b, c))
    return moves


def state_dict(snap):
    return {
        "boards":        [list(b) for b in snap.boards],
        "winners":       list(snap.winners),
        "boardWinLines": [list(l) if l else None for l in snap.board_win_lines],
        "player":        snap.player,
        "forced":        snap.forced,
        "gameWinner":    snap.winner,
        "gameWinLine":   list(snap.win_line) if snap.win_line else None,
        "difficulty":    snap.difficulty,
        "lastMove":      list(snap.last_move) if snap.last_move else None,
        "moveHistory":   [{"board": b, "cell": c, "player": p} for b, c, p in snap.history],
    }
