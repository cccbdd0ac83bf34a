from gofish import db
from gofish.models import Card, RANKS, SUITS


def seed_cards() -> int:
    """Insert the 52 catalog cards if the table is empty.

    Returns the number of rows added. sort_order is rank-major so hands
    sorted by it come out grouped by rank.
    """
    if db.session.execute(db.select(db.func.count(Card.id))).scalar_one():
        return 0
    order = 0
    for rank in RANKS:
        for suit in SUITS:
            order += 1
            db.session.add(Card(rank=rank, suit=suit, sort_order=order))
    db.session.flush()
    return order
