from typing import List, Optional

from flask import current_app
from sqlalchemy.exc import IntegrityError

from gofish import db
from gofish.models import Game, GamePlayer, GameState, RANKS, SUITS
from . import transaction
from .engine import CARDS_PER_PLAYER, MIN_PLAYERS, lock_game
from .errors import AlreadyJoinedError, GameError, GameFullError, GameStateError

# Seven hands of seven still fit in one deck
MAX_PLAYERS = (len(RANKS) * len(SUITS)) // CARDS_PER_PLAYER


def create_game(user_id: int, name: Optional[str] = None, max_players: Optional[int] = None) -> Game:
    """Create a lobby and seat its creator as the first player."""
    if max_players is None:
        max_players = int(current_app.config.get('DEFAULT_MAX_PLAYERS', 4))
    try:
        max_players = int(max_players)
    except (TypeError, ValueError):
        raise GameError('max_players must be a number')
    if not MIN_PLAYERS <= max_players <= MAX_PLAYERS:
        raise GameError(f'max_players must be between {MIN_PLAYERS} and {MAX_PLAYERS}')

    name = (name or '').strip() or None
    with transaction():
        game = Game(created_by=user_id, name=name, max_players=max_players)
        db.session.add(game)
        db.session.flush()
        db.session.add(GamePlayer(game_id=game.id, user_id=user_id))
    current_app.logger.info(f"[create] game={game.id} name={game.name} max={max_players} by={user_id}")
    return game


def join_game(game_id: int, user_id: int) -> Game:
    try:
        with transaction():
            game = lock_game(game_id)
            if game.state != GameState.LOBBY:
                raise GameStateError('This game is not in the lobby')
            seated = GamePlayer.query.filter_by(game_id=game_id).all()
            if any(p.user_id == user_id for p in seated):
                raise AlreadyJoinedError()
            if len(seated) >= game.max_players:
                raise GameFullError()
            db.session.add(GamePlayer(game_id=game_id, user_id=user_id))
    except IntegrityError:
        # Lost a race with a concurrent join of the same user
        raise AlreadyJoinedError()
    current_app.logger.info(f"[join] game={game_id} user={user_id}")
    return game


def list_games(state: str = GameState.LOBBY, limit: int = 50) -> List[Game]:
    return (
        Game.query.filter_by(state=state)
        .order_by(Game.created_at.desc(), Game.id.desc())
        .limit(limit)
        .all()
    )


def games_by_user(user_id: int) -> List[Game]:
    return (
        Game.query.join(GamePlayer, GamePlayer.game_id == Game.id)
        .filter(GamePlayer.user_id == user_id)
        .order_by(Game.created_at.desc(), Game.id.desc())
        .all()
    )
