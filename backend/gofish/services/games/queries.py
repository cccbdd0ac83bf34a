"""Read paths used to render hands, the board and the book ledger."""
from typing import Any, Dict, List

from gofish import db
from gofish.models import Card, Game, GameCard, GamePlayer, PlayerBook, User, DECK_OWNER
from .errors import GameNotFoundError


def not_booked():
    """Filter for GameCard rows (joined to Card) whose rank the owner has not booked."""
    return ~db.exists().where(
        PlayerBook.game_id == GameCard.game_id,
        PlayerBook.user_id == GameCard.owner_id,
        PlayerBook.rank == Card.rank,
    )


def cards_by_owner(game_id: int, owner_id: int, in_hand_only: bool = True) -> List[Dict[str, Any]]:
    stmt = (
        db.select(GameCard.id, Card.rank, Card.suit)
        .join(Card, GameCard.card_id == Card.id)
        .where(GameCard.game_id == game_id, GameCard.owner_id == owner_id)
        .order_by(Card.sort_order)
    )
    if in_hand_only:
        stmt = stmt.where(not_booked())
    return [dict(row._mapping) for row in db.session.execute(stmt)]


def count_by_owner(game_id: int, owner_id: int) -> int:
    stmt = db.select(db.func.count(GameCard.id)).where(
        GameCard.game_id == game_id, GameCard.owner_id == owner_id
    )
    return db.session.execute(stmt).scalar_one()


def players_with_stats(game_id: int) -> List[Dict[str, Any]]:
    """Roster with hand size and book count, in turn order (unseated last)."""
    card_count = (
        db.select(db.func.count(GameCard.id))
        .join(Card, GameCard.card_id == Card.id)
        .where(
            GameCard.game_id == GamePlayer.game_id,
            GameCard.owner_id == GamePlayer.user_id,
            not_booked(),
        )
        .correlate(GamePlayer)
        .scalar_subquery()
    )
    book_count = (
        db.select(db.func.count(PlayerBook.id))
        .where(PlayerBook.game_id == GamePlayer.game_id, PlayerBook.user_id == GamePlayer.user_id)
        .correlate(GamePlayer)
        .scalar_subquery()
    )
    stmt = (
        db.select(
            GamePlayer.user_id,
            User.username,
            GamePlayer.position,
            card_count.label('card_count'),
            book_count.label('book_count'),
        )
        .join(User, User.id == GamePlayer.user_id)
        .where(GamePlayer.game_id == game_id)
        .order_by(GamePlayer.position.is_(None), GamePlayer.position, GamePlayer.id)
    )
    return [dict(row._mapping) for row in db.session.execute(stmt)]


def books_by_game(game_id: int) -> List[Dict[str, Any]]:
    stmt = (
        db.select(PlayerBook.id, PlayerBook.user_id, User.username, PlayerBook.rank, PlayerBook.created_at)
        .join(User, User.id == PlayerBook.user_id)
        .where(PlayerBook.game_id == game_id)
        .order_by(PlayerBook.created_at, PlayerBook.id)
    )
    books = []
    for row in db.session.execute(stmt):
        book = dict(row._mapping)
        book['created_at'] = book['created_at'].isoformat() if book['created_at'] else None
        books.append(book)
    return books


def player_ids(game_id: int) -> List[int]:
    stmt = db.select(GamePlayer.user_id).where(GamePlayer.game_id == game_id).order_by(GamePlayer.id)
    return list(db.session.execute(stmt).scalars())


def game_state(game_id: int, user_id: int) -> Dict[str, Any]:
    """Everything a player's client needs to draw the table."""
    game = db.session.get(Game, game_id)
    if game is None:
        raise GameNotFoundError()
    payload = game.to_dict(include_players=False)
    payload.update({
        'my_cards': [{'rank': c['rank'], 'suit': c['suit']} for c in cards_by_owner(game_id, user_id)],
        'deck_count': count_by_owner(game_id, DECK_OWNER),
        'players': players_with_stats(game_id),
        'books': books_by_game(game_id),
        'is_my_turn': game.current_turn_user_id == user_id,
        'is_member': user_id in player_ids(game_id),
    })
    return payload
