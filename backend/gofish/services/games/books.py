from typing import List

from gofish import db
from gofish.models import Card, GameCard, PlayerBook, RANKS, SUITS
from .queries import not_booked


def collect_books(game_id: int, user_id: int) -> List[str]:
    """Record a book for every rank the player now holds all four cards of.

    The cards stay owned by the player; hand queries and ask transfers skip
    booked ranks. Returns the newly booked ranks in rank order.
    """
    stmt = (
        db.select(Card.rank)
        .join(GameCard, GameCard.card_id == Card.id)
        .where(GameCard.game_id == game_id, GameCard.owner_id == user_id, not_booked())
        .group_by(Card.rank)
        .having(db.func.count(GameCard.id) == len(SUITS))
    )
    ranks = sorted(db.session.execute(stmt).scalars(), key=RANKS.index)
    for rank in ranks:
        db.session.add(PlayerBook(game_id=game_id, user_id=user_id, rank=rank))
    db.session.flush()
    return ranks


def count_books(game_id: int) -> int:
    stmt = db.select(db.func.count(PlayerBook.id)).where(PlayerBook.game_id == game_id)
    return db.session.execute(stmt).scalar_one()
