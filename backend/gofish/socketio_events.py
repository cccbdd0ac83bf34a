from flask import current_app
from flask_login import current_user
from flask_socketio import join_room, leave_room, emit
from gofish import socketio
from gofish.services.games.queries import player_ids

NAMESPACE = '/ws'

# Event names shared with the browser client
GAME_CREATE = 'games:created'
PLAYER_JOINED = 'player:joined'
GAME_STARTED = 'game:started'
ASK_RESULT = 'game:ask-result'
CHAT_MESSAGE = 'chat:message'


def game_room(game_id: int) -> str:
    return f"game:{game_id}"


# ---- Broadcasts (called by HTTP routes after their transaction commits) ----

def broadcast_game_created(game) -> None:
    socketio.emit(GAME_CREATE, game.to_dict(include_players=False), namespace=NAMESPACE)


def broadcast_join(game_id: int, user_id: int) -> None:
    socketio.emit(PLAYER_JOINED, {'game_id': game_id, 'user_id': user_id}, to=game_room(game_id), namespace=NAMESPACE)


def broadcast_game_started(game_id: int, first_player_id: int) -> None:
    socketio.emit(
        GAME_STARTED,
        {'game_id': game_id, 'first_player_id': first_player_id},
        to=game_room(game_id),
        namespace=NAMESPACE,
    )


def broadcast_ask_result(game_id: int, asker_id: int, target_id: int, rank: str, result) -> None:
    payload = {'game_id': game_id, 'asker_id': asker_id, 'target_id': target_id, 'rank': rank}
    payload.update(result.to_dict())
    # Only the asker may see which card they drew
    payload.pop('drawn_rank', None)
    socketio.emit(ASK_RESULT, payload, to=game_room(game_id), namespace=NAMESPACE)


def broadcast_chat_message(message: dict) -> None:
    socketio.emit(CHAT_MESSAGE, message, namespace=NAMESPACE)


# ---- Socket handlers ----

def handle_connect():
    if not current_user.is_authenticated:
        return False
    emit('connected', {'message': 'Connected to /ws', 'user_id': current_user.id})


def handle_join_game(data):
    game_id = (data or {}).get('game_id')
    try:
        game_id = int(game_id)
    except (TypeError, ValueError):
        emit('error', {'message': 'game_id is required'})
        return
    if current_user.id not in player_ids(game_id):
        current_app.logger.warning(f"[socket] user={current_user.id} tried to join game={game_id} without being a player")
        emit('error', {'message': 'You are not a player in this game'})
        return
    room = game_room(game_id)
    join_room(room)
    current_app.logger.info(f"[socket] user={current_user.id} joined room={room}")
    emit('joined', {'room': room})


def handle_leave_game(data):
    game_id = (data or {}).get('game_id')
    if game_id is None:
        emit('error', {'message': 'game_id is required'})
        return
    room = game_room(game_id)
    leave_room(room)
    emit('left', {'room': room})


def handle_ping(data):
    emit('pong', data or {})


def register_socketio_handlers() -> None:
    """Register Socket.IO event handlers on namespace '/ws'."""
    socketio.on_event('connect', handle_connect, namespace=NAMESPACE)
    socketio.on_event('join_game', handle_join_game, namespace=NAMESPACE)
    socketio.on_event('leave_game', handle_leave_game, namespace=NAMESPACE)
    socketio.on_event('ping', handle_ping, namespace=NAMESPACE)
