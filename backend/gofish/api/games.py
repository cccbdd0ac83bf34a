from flask import Blueprint, jsonify, request, current_app
from flask_login import login_required, current_user
from gofish import db
from gofish.models import Game
from gofish.services.games.engine import start_game as svc_start_game, play_turn as svc_play_turn
from gofish.services.games.errors import GameError, GameNotFoundError
from gofish.services.games.lobby import (
    create_game as svc_create_game,
    join_game as svc_join_game,
    list_games,
    games_by_user,
)
from gofish.services.games.queries import game_state, player_ids
from gofish.socketio_events import (
    broadcast_ask_result,
    broadcast_game_created,
    broadcast_game_started,
    broadcast_join,
)


games = Blueprint('games', __name__)


@games.errorhandler(GameError)
def handle_game_error(exc):
    current_app.logger.warning(f"[game-error] {request.method} {request.path}: {exc.message}")
    return jsonify({'error': exc.message}), exc.status_code


def _get_game_or_404(game_id: int) -> Game:
    game = db.session.get(Game, game_id)
    if game is None:
        raise GameNotFoundError()
    return game


@games.route('/', methods=['GET'])
@login_required
def list_lobby():
    """
    Returns lobby games split into the current user's games and open ones.
    """
    mine = games_by_user(current_user.id)
    my_ids = {g.id for g in mine}
    available = [g for g in list_games() if g.id not in my_ids]
    return jsonify({
        'my_games': [g.to_dict() for g in mine],
        'available_games': [g.to_dict() for g in available],
    }), 200


@games.route('/create', methods=['POST'])
@login_required
def create_game():
    data = request.get_json(silent=True) or {}
    game = svc_create_game(current_user.id, name=data.get('name'), max_players=data.get('max_players'))
    broadcast_game_created(game)
    return jsonify(game.to_dict()), 201


@games.route('/<int:game_id>/join', methods=['POST'])
@login_required
def join_game(game_id):
    game = svc_join_game(game_id, current_user.id)
    broadcast_join(game_id, current_user.id)
    return jsonify({
        'message': f'Successfully joined game {game.name}',
        'game_id': game_id,
    }), 200


@games.route('/<int:game_id>/state', methods=['GET'])
@login_required
def get_game_state(game_id):
    return jsonify(game_state(game_id, current_user.id)), 200


@games.route('/<int:game_id>/start', methods=['POST'])
@login_required
def start_game(game_id):
    """
    Deals the cards and moves the game from the lobby to active play.
    Only the player who created the game may start it.
    """
    game = _get_game_or_404(game_id)
    if game.created_by != current_user.id:
        return jsonify({'error': 'Only the game creator may start the game'}), 403

    result = svc_start_game(game_id)
    broadcast_game_started(game_id, result.first_player_id)
    return jsonify(result.to_dict()), 200


@games.route('/<int:game_id>/ask', methods=['POST'])
@login_required
def ask_for_cards(game_id):
    data = request.get_json(silent=True) or {}
    rank = data.get('rank')
    try:
        target_id = int(data.get('target_user_id'))
    except (TypeError, ValueError):
        return jsonify({'error': 'target_user_id is required'}), 400
    if not rank:
        return jsonify({'error': 'rank is required'}), 400

    if current_user.id not in player_ids(game_id):
        _get_game_or_404(game_id)
        return jsonify({'error': 'You are not a player in this game'}), 403

    result = svc_play_turn(game_id, current_user.id, target_id, str(rank))
    broadcast_ask_result(game_id, current_user.id, target_id, str(rank), result)
    return jsonify(result.to_dict()), 200
