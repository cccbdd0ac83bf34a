"""Deck lifecycle: shuffling a fresh deck, dealing hands and drawing.

None of these functions commit; they run inside the caller's
``transaction()``.
"""
import random
from typing import Dict, List, Optional, Sequence

from gofish import db
from gofish.models import Card, GameCard, DECK_OWNER
from .errors import CatalogError, GameError
from .queries import count_by_owner


def create_deck(game_id: int, rng=None) -> int:
    """Insert one deck-owned GameCard per catalog card in shuffled order.

    Positions are a uniformly random permutation of 1..52. Calling this twice
    for the same game creates a second deck; start_game guards against that.
    """
    rng = rng or random
    card_ids = list(db.session.execute(db.select(Card.id).order_by(Card.id)).scalars())
    if not card_ids:
        raise CatalogError()
    rng.shuffle(card_ids)
    rows = [
        {'game_id': game_id, 'card_id': card_id, 'owner_id': DECK_OWNER, 'position': position}
        for position, card_id in enumerate(card_ids, start=1)
    ]
    db.session.execute(db.insert(GameCard), rows)
    return len(rows)


def get_cards_from_deck(game_id: int, count: int) -> List[int]:
    """Ids of the next `count` cards of the deck, lowest position first."""
    stmt = (
        db.select(GameCard.id)
        .where(GameCard.game_id == game_id, GameCard.owner_id == DECK_OWNER)
        .order_by(GameCard.position)
        .limit(count)
    )
    return list(db.session.execute(stmt).scalars())


def deal_cards(card_ids: Sequence[int], owner_id: int) -> int:
    if not card_ids:
        return 0
    stmt = (
        db.update(GameCard)
        .where(GameCard.id.in_(list(card_ids)), GameCard.owner_id == DECK_OWNER)
        .values(owner_id=owner_id, position=None)
        .execution_options(synchronize_session=False)
    )
    return db.session.execute(stmt).rowcount


def deal_initial_hands(game_id: int, players: Sequence[int], per_player_count: int) -> Dict[int, List[int]]:
    """Deal consecutive blocks of the deck: players[0] gets the first block,
    players[1] the next one, and so on."""
    total = per_player_count * len(players)
    card_ids = get_cards_from_deck(game_id, total)
    if len(card_ids) < total:
        raise GameError(f'Deck has {len(card_ids)} cards, {total} needed to deal')
    hands = {}
    for i, player_id in enumerate(players):
        hand = card_ids[i * per_player_count:(i + 1) * per_player_count]
        deal_cards(hand, player_id)
        hands[player_id] = hand
    return hands


def draw_card(game_id: int, player_id: int) -> Optional[int]:
    """Move the top card of the deck to `player_id`.

    Selection and reassignment are one UPDATE statement, so two concurrent
    draws never claim the same card. Returns the GameCard id, or None when the
    deck is empty.
    """
    # Aliased so the subquery is not correlated with the UPDATE target
    deck = db.aliased(GameCard)
    top_card = (
        db.select(deck.id)
        .where(deck.game_id == game_id, deck.owner_id == DECK_OWNER)
        .order_by(deck.position)
        .limit(1)
        .with_for_update(skip_locked=True)
        .scalar_subquery()
    )
    stmt = (
        db.update(GameCard)
        .where(GameCard.id == top_card, GameCard.owner_id == DECK_OWNER)
        .values(owner_id=player_id, position=None)
        .returning(GameCard.id)
        .execution_options(synchronize_session=False)
    )
    return db.session.execute(stmt).scalar_one_or_none()


def deck_count(game_id: int) -> int:
    return count_by_owner(game_id, DECK_OWNER)
