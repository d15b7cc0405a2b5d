import os

ASYNC_MODE = os.environ.get('SOCKETIO_ASYNC_MODE', 'gevent')
if ASYNC_MODE == 'gevent':
    from gevent import monkey
    monkey.patch_all()

from flask import Flask, request, jsonify, abort
from flask_socketio import SocketIO, join_room, emit
from game.logic import new_game, apply_move, move_error, state_dict, DIFFICULTIES, PLAYERS
from game.ai import get_ai_move
import logging, random, string, threading

app = Flask(__name__)
app.config['SECRET_KEY']    = os.environ.get('SECRET_KEY', 'a_secret_key')
# Pause before the computer answers so the human move renders first
app.config['AI_MOVE_DELAY'] = float(os.environ.get('AI_MOVE_DELAY', 0.6))
socketio = SocketIO(app, async_mode=ASYNC_MODE)

MODES = ('pvp', 'pvc', 'online')

RULES_TEXT = """
Super Tic-Tac-Toe rules:

1. The board: a big 3x3 board where every square holds a smaller 3x3 board. 81 cells in total.

2. The goal: win 3 mini-boards in a row (horizontal, vertical or diagonal) on the global board.

3. How to play:
   - The first player may play any cell of any mini-board.
   - Your move "sends" the opponent to the matching mini-board.
     (E.g. playing the bottom-right cell of a mini-board sends them to the bottom-right mini-board.)

4. Winning a mini-board:
   - Classic tic-tac-toe. Line up 3 marks to claim that square of the big board.
   - A drawn mini-board counts for nobody.

5. Free-board rule:
   - If you are sent to a mini-board that is already won or full, you may play in ANY open mini-board.

Strategy: think not only about where you mark, but where you are sending your opponent!
"""

rooms = {}

# ── Helpers ───────────────────────────────────────────────────────────────────
def new_room():
    while True:
        code = ''.join(random.choices(string.digits, k=5))
        if code not in rooms: return code

def make_room(mode='pvp', difficulty='easy', computer='O', creator=None):
    names = {"X": "Player X", "O": "Player O"}
    if mode == 'pvc': names[computer] = "Computer"
    return {
        "game":     new_game(difficulty),
        "mode":     mode,                 # 'pvp' | 'pvc' | 'online'
        "computer": computer if mode == 'pvc' else None,
        "players":  {},                   # sid -> 'X' | 'O' | '*' (local: both sides)
        "names":    names,
        "creator":  creator,              # sid that created the room
        "lock":     threading.Lock(),     # guards "game" read-apply-store
    }

def full_state(room, room_data):
    s = state_dict(room_data["game"])
    s["room"]     = room
    s["mode"]     = room_data["mode"]
    s["computer"] = room_data["computer"]
    s["names"]    = room_data["names"]
    return s

def broadcast_state(room):
    emit("state", full_state(room, rooms[room]), to=room)

def _room_of(data):
    room = data.get("room") if isinstance(data, dict) else None
    if not isinstance(room, str): return None, None
    return room, rooms.get(room)

def _parse_move(data):
    try:
        b, c = data["board"], data["cell"]
    except (KeyError, TypeError):
        return None
    if not all(isinstance(i, int) and not isinstance(i, bool) and 0 <= i < 9 for i in (b, c)):
        return None
    return b, c

def _may_move(room_data, sid):
    """Whether ``sid`` is allowed to play the side currently to move."""
    mark = room_data["players"].get(sid)
    if mark is None: return False
    player = room_data["game"].player
    if room_data["mode"] == 'online':
        return mark == player
    if room_data["mode"] == 'pvc':
        return player != room_data["computer"]
    return True

def play_computer(room):
    """Let the computer answer if it is its turn in a 'pvc' room."""
    room_data = rooms.get(room)
    if not room_data or room_data["mode"] != 'pvc': return
    g = room_data["game"]
    if g.winner or g.player != room_data["computer"]: return
    socketio.sleep(app.config['AI_MOVE_DELAY'])
    with room_data["lock"]:
        if rooms.get(room) is not room_data or room_data["game"] is not g:
            return  # reset, moved or closed while we were waiting
        ai_move = get_ai_move(g)
        if ai_move is None:
            app.logger.warning("room %s: computer found no legal move", room)
            return
        nxt = apply_move(g, *ai_move)
        if nxt is None:
            app.logger.error("room %s: computer move %s rejected: %s", room, ai_move, move_error(g, *ai_move))
            return
        room_data["game"] = nxt
    app.logger.info("room %s: computer (%s) played %s", room, g.player, ai_move)
    broadcast_state(room)

# ── Routes ───────────────────────────────────────────────────────────────────
@app.route('/rules')
def rules(): return jsonify({"rules": RULES_TEXT})

@app.route('/state/<room>')
def room_state(room):
    room_data = rooms.get(room)
    if not room_data: abort(404)
    return jsonify(full_state(room, room_data))

# ── SocketIO Events ───────────────────────────────────────────────────────────
@socketio.on("create")
def create(data=None):
    data       = data if isinstance(data, dict) else {}
    mode       = data.get('mode', 'pvp')
    difficulty = data.get('difficulty', 'easy')
    computer   = data.get('computer', 'O')
    if mode not in MODES or difficulty not in DIFFICULTIES or computer not in PLAYERS:
        emit("invalid", {"error": "unknown mode, difficulty or computer side"}); return
    room = new_room()
    rooms[room] = make_room(mode, difficulty, computer, creator=request.sid)
    app.logger.info("room %s created (%s, %s)", room, mode, difficulty)
    emit("created", room)

@socketio.on("join")
def join(data):
    room, room_data = _room_of(data); sid = request.sid
    if not room_data: emit("invalid", {"error": "no such room"}); return
    join_room(room)
    players = room_data["players"]
    if room_data["mode"] != 'online':
        # Local games: one screen drives every human side
        players[sid] = '*'
        emit("assign", '*')
    else:
        taken = set(players.values())
        free  = [p for p in PLAYERS if p not in taken]
        if free:
            players[sid] = free[0]
            emit("assign", free[0])
        else:
            emit("spectator")
    broadcast_state(room)
    play_computer(room)

@socketio.on("move")
def move(data):
    room, room_data = _room_of(data); sid = request.sid
    if not room_data: emit("invalid", {"error": "no such room"}); return
    parsed = _parse_move(data)
    if parsed is None:
        emit("invalid", {"error": "board and cell must be ints in 0-8"}); return
    with room_data["lock"]:
        if not _may_move(room_data, sid):
            emit("rejected", {"error": "not your turn"}); return
        g = room_data["game"]
        nxt = apply_move(g, *parsed)
        if nxt is None:
            # Stale or illegal; the room state stays as it was
            emit("rejected", {"error": move_error(g, *parsed)}); return
        room_data["game"] = nxt
    broadcast_state(room)
    if nxt.winner:
        app.logger.info("room %s: game over, winner %s", room, nxt.winner)
        return
    play_computer(room)

@socketio.on("reset")
def reset(data):
    room, room_data = _room_of(data)
    if not room_data or request.sid not in room_data["players"]: return
    difficulty = data.get("difficulty", room_data["game"].difficulty)
    if difficulty not in DIFFICULTIES:
        emit("invalid", {"error": f"unknown difficulty {difficulty!r}"}); return
    with room_data["lock"]:
        room_data["game"] = new_game(difficulty)
    broadcast_state(room)
    play_computer(room)

@socketio.on("names")
def names(data):
    room, room_data = _room_of(data)
    if not room_data or request.sid not in room_data["players"]: return
    for p in PLAYERS:
        name = data.get(p)
        if isinstance(name, str) and name.strip():
            room_data["names"][p] = name.strip()[:40]
    emit("names", room_data["names"], to=room)

@socketio.on('disconnect')
def disconnect(*args):
    sid = request.sid
    for room, room_data in list(rooms.items()):
        if sid in room_data["players"]:
            del room_data["players"][sid]
        elif room_data["creator"] != sid:
            continue
        if not room_data["players"]:
            del rooms[room]
            app.logger.info("room %s closed", room)

if __name__ == "__main__":
    logging.basicConfig(level=os.environ.get('LOG_LEVEL', 'INFO'))
    socketio.run(app, debug=True)
