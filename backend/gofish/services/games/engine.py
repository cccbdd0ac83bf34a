"""Go Fish game engine.

``start_game`` moves a game from the lobby to play: it builds and shuffles
the deck, seats the players in a random order and deals seven cards each.
``ask_for_cards`` resolves a single ask: every card of the rank moves from
the target to the asker, or the asker draws one card from the deck.
``play_turn`` wraps the ask with the rules the HTTP layer enforces (turn
order, legal targets, holding the rank), collects books and hands the turn
to the next player who can ask.
"""
import random
from dataclasses import dataclass, field, asdict
from typing import List, Optional

from flask import current_app

from gofish import db
from gofish.models import Card, Game, GameCard, GamePlayer, GameState, PlayerBook, RANKS
from . import transaction
from .books import collect_books, count_books
from .deck import create_deck, deal_initial_hands, draw_card
from .errors import (
    GameNotFoundError,
    GameStateError,
    InsufficientPlayersError,
    InvalidMoveError,
    NotYourTurnError,
)
from .queries import not_booked, player_ids

CARDS_PER_PLAYER = 7
MIN_PLAYERS = 2


@dataclass
class StartResult:
    first_player_id: int
    turn_order: List[int] = field(default_factory=list)

    def to_dict(self):
        return asdict(self)


@dataclass
class AskResult:
    success: bool
    cards_received: int
    drew_card: bool
    drawn_rank: Optional[str] = None

    def to_dict(self):
        return asdict(self)


@dataclass
class TurnResult:
    ask: AskResult
    books_formed: List[str]
    next_turn_user_id: Optional[int]
    state: str

    def to_dict(self):
        data = self.ask.to_dict()
        data.update({
            'books_formed': self.books_formed,
            'next_turn_user_id': self.next_turn_user_id,
            'state': self.state,
        })
        return data


def lock_game(game_id: int) -> Game:
    stmt = (
        db.select(Game)
        .where(Game.id == game_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    game = db.session.execute(stmt).scalar_one_or_none()
    if game is None:
        raise GameNotFoundError()
    return game


def _min_players() -> int:
    try:
        return max(MIN_PLAYERS, int(current_app.config.get('MIN_PLAYERS', MIN_PLAYERS)))
    except (TypeError, ValueError):
        return MIN_PLAYERS


def start_game(game_id: int, rng=None) -> StartResult:
    """Deal the game and seat its players; all-or-nothing.

    The same shuffle fixes both the deal and the turn order: the player at
    index i gets hand i and turn position i + 1.
    """
    rng = rng or random
    with transaction():
        game = lock_game(game_id)
        if game.state != GameState.LOBBY:
            raise GameStateError('Game has already started')

        players = player_ids(game_id)
        if len(players) < _min_players():
            raise InsufficientPlayersError()

        create_deck(game_id, rng)

        shuffled = list(players)
        rng.shuffle(shuffled)
        deal_initial_hands(game_id, shuffled, CARDS_PER_PLAYER)
        for position, user_id in enumerate(shuffled, start=1):
            db.session.execute(
                db.update(GamePlayer)
                .where(GamePlayer.game_id == game_id, GamePlayer.user_id == user_id)
                .values(position=position)
                .execution_options(synchronize_session=False)
            )

        game.state = GameState.ACTIVE
        game.current_turn_user_id = shuffled[0]

    current_app.logger.info(f"[start] game={game_id} players={len(shuffled)} first={shuffled[0]}")
    return StartResult(first_player_id=shuffled[0], turn_order=shuffled)


def _ask(game_id: int, asker_id: int, target_id: int, rank: str) -> AskResult:
    rank_cards = db.select(Card.id).where(Card.rank == rank)
    # A booked rank is out of the target's hand
    target_booked = db.exists().where(
        PlayerBook.game_id == game_id, PlayerBook.user_id == target_id, PlayerBook.rank == rank
    )
    stmt = (
        db.update(GameCard)
        .where(
            GameCard.game_id == game_id,
            GameCard.owner_id == target_id,
            GameCard.card_id.in_(rank_cards),
            ~target_booked,
        )
        .values(owner_id=asker_id)
        .returning(GameCard.id)
        .execution_options(synchronize_session=False)
    )
    moved = db.session.execute(stmt).scalars().all()
    if moved:
        return AskResult(success=True, cards_received=len(moved), drew_card=False)

    drawn_id = draw_card(game_id, asker_id)
    drawn_rank = None
    if drawn_id is not None:
        drawn_rank = db.session.execute(
            db.select(Card.rank).join(GameCard, GameCard.card_id == Card.id).where(GameCard.id == drawn_id)
        ).scalar_one()
    return AskResult(success=False, cards_received=0, drew_card=drawn_id is not None, drawn_rank=drawn_rank)


def ask_for_cards(game_id: int, asker_id: int, target_id: int, rank: str) -> AskResult:
    """Take every card of `rank` from the target, or go fish.

    Does not check turn order or who is asking whom; see play_turn.
    """
    with transaction():
        result = _ask(game_id, asker_id, target_id, rank)
    current_app.logger.info(
        f"[ask] game={game_id} asker={asker_id} target={target_id} rank={rank} "
        f"success={result.success} received={result.cards_received} drew={result.drew_card}"
    )
    return result


def _hand_size(game_id: int, user_id: int) -> int:
    stmt = (
        db.select(db.func.count(GameCard.id))
        .join(Card, GameCard.card_id == Card.id)
        .where(GameCard.game_id == game_id, GameCard.owner_id == user_id, not_booked())
    )
    return db.session.execute(stmt).scalar_one()


def _seats_after(game_id: int, user_id: int) -> List[int]:
    """Seated players in turn order starting after `user_id`; `user_id` comes last."""
    stmt = (
        db.select(GamePlayer.user_id)
        .where(GamePlayer.game_id == game_id, GamePlayer.position.is_not(None))
        .order_by(GamePlayer.position)
    )
    seats = list(db.session.execute(stmt).scalars())
    if user_id not in seats:
        return seats
    i = seats.index(user_id)
    return seats[i + 1:] + seats[:i + 1]


def _hand_turn_to(game_id: int, candidates: List[int]) -> Optional[int]:
    """First candidate able to ask.

    A candidate with an empty hand draws one card from the deck and plays on;
    once the deck is empty they are skipped. None means nobody holds a card.
    """
    for user_id in candidates:
        if _hand_size(game_id, user_id):
            return user_id
        if draw_card(game_id, user_id) is not None:
            current_app.logger.debug(f"[refill] game={game_id} user={user_id}")
            return user_id
    return None


def _holds_rank(game_id: int, user_id: int, rank: str) -> bool:
    stmt = (
        db.select(GameCard.id)
        .join(Card, GameCard.card_id == Card.id)
        .where(GameCard.game_id == game_id, GameCard.owner_id == user_id, Card.rank == rank, not_booked())
        .limit(1)
    )
    return db.session.execute(stmt).scalar_one_or_none() is not None


def play_turn(game_id: int, asker_id: int, target_id: int, rank: str) -> TurnResult:
    """Validate and resolve one ask, collect books and pass the turn.

    The asker keeps the turn after a successful ask or a lucky draw (drawing
    the rank they asked for). Whoever ends up with the turn holds at least one
    card: an empty hand is refilled from the deck, or skipped once the deck
    is empty. The game finishes when all books are claimed.
    """
    with transaction():
        game = lock_game(game_id)
        if game.state != GameState.ACTIVE:
            raise GameStateError('Game is not in progress')
        if game.current_turn_user_id != asker_id:
            raise NotYourTurnError()
        if target_id == asker_id:
            raise InvalidMoveError('You cannot ask yourself')
        if target_id not in player_ids(game_id):
            raise InvalidMoveError('That player is not in this game')
        if rank not in RANKS:
            raise InvalidMoveError(f'Unknown rank {rank!r}')
        if not _holds_rank(game_id, asker_id, rank):
            raise InvalidMoveError(f'You must hold a {rank} to ask for one')

        result = _ask(game_id, asker_id, target_id, rank)
        books = collect_books(game_id, asker_id)

        next_turn_user_id = None
        if count_books(game_id) < len(RANKS):
            candidates = _seats_after(game_id, asker_id)
            if result.success or result.drawn_rank == rank:
                candidates.insert(0, asker_id)
            next_turn_user_id = _hand_turn_to(game_id, candidates)
        if next_turn_user_id is None:
            game.state = GameState.FINISHED
        game.current_turn_user_id = next_turn_user_id
        state = game.state

    current_app.logger.info(
        f"[turn] game={game_id} asker={asker_id} target={target_id} rank={rank} "
        f"success={result.success} received={result.cards_received} drew={result.drew_card} "
        f"books={books} next={next_turn_user_id}"
    )
    if state == GameState.FINISHED:
        current_app.logger.info(f"[finish] game={game_id} all books claimed")
    return TurnResult(ask=result, books_formed=books, next_turn_user_id=next_turn_user_id, state=state)
