"""Computer opponent for Super Tic-Tac-Toe: easy / hard difficulties.

HARD AI STRATEGY
────────────────
A single ply, no search. Every legal move is scored on its own and the
best score is played; ties go to the first move found (board ascending,
then cell ascending).

   +100  wins the mini-board being played
    +80  blocks the opponent from winning that mini-board at the same cell
     +5  centre cell            +3  corner cell            +0  edge cell
    -50  sends the opponent to a decided board (free choice for them)
    -60  otherwise, sends them to a board they can win in one move
   +500  the mini-board win also wins the match
   +200  ...or else denies the opponent the same mini-board for a match win

The destination penalties only look at the board as it stands before the
move is made.
"""
import logging
import random

from .logic import check_win, opponent, valid_moves

log = logging.getLogger(__name__)


# ── Weights ───────────────────────────────────────────────────────────────────
WIN_MINI       = 100
BLOCK_MINI     = 80
CENTER_CELL    = 5
CORNER_CELL    = 3
FREE_CHOICE    = -50
OPP_CAN_WIN    = -60
WIN_MATCH      = 500
BLOCK_MATCH    = 200

_CENTER  = 4
_CORNERS = frozenset({0, 2, 6, 8})


def _wins_with(cells, i, mark):
    cells = list(cells); cells[i] = mark
    return check_win(cells)[0] == mark


def _can_win_now(board, mark):
    return any(board[i] is None and _wins_with(board, i, mark) for i in range(9))


# ── Heuristic ─────────────────────────────────────────────────────────────────
def score_move(snap, b, c):
    """Heuristic value of ``(b, c)`` for the player to move in ``snap``."""
    me, opp = snap.player, opponent(snap.player)
    board = snap.boards[b]
    score = 0

    won_mini = _wins_with(board, c, me)
    if won_mini: score += WIN_MINI
    if _wins_with(board, c, opp): score += BLOCK_MINI

    if c == _CENTER: score += CENTER_CELL
    elif c in _CORNERS: score += CORNER_CELL

    # cell index = opponent's next board
    if snap.winners[c]:
        score += FREE_CHOICE
    elif _can_win_now(snap.boards[c], opp):
        score += OPP_CAN_WIN

    if won_mini:
        if _wins_with(snap.winners, b, me):
            score += WIN_MATCH
        elif _wins_with(snap.winners, b, opp):
            score += BLOCK_MATCH

    return score


def _hard_ai(snap, valid):
    best_move, best_score = valid[0], None
    for b, c in valid:
        s = score_move(snap, b, c)
        if best_score is None or s > best_score:
            best_move, best_score = (b, c), s
    log.debug("hard ai (%s) picked %s scoring %d of %d candidates",
              snap.player, best_move, best_score, len(valid))
    return best_move


# ── Public API ────────────────────────────────────────────────────────────────
def get_ai_move(snap, rng=None):
    """Pick a move for ``snap.player`` at ``snap.difficulty``.

    Returns ``(board, cell)``, or None when there is nothing legal to play.
    ``rng`` is anything with a ``choice`` method; defaults to ``random``.
    """
    valid = valid_moves(snap)
    if not valid:
        log.warning("no legal move for %s (winner=%r)", snap.player, snap.winner)
        return None
    if snap.difficulty == 'easy':
        return (rng or random).choice(valid)
    if snap.difficulty == 'hard':
        return _hard_ai(snap, valid)
    raise ValueError(f"unknown difficulty {snap.difficulty!r}")
