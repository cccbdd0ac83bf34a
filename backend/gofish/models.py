from datetime import datetime, timezone

from gofish import db, bcrypt
from flask_login import UserMixin
import random

# Owner id of cards that are still in the undealt deck
DECK_OWNER = 0

RANKS = ['2', '3', '4', '5', '6', '7', '8', '9', '10', 'J', 'Q', 'K', 'A']
SUITS = ['clubs', 'diamonds', 'hearts', 'spades']


class GameState:
    LOBBY = 'lobby'
    ACTIVE = 'active'
    FINISHED = 'finished'


def _utcnow():
    return datetime.now(timezone.utc)


class User(UserMixin, db.Model):
    __tablename__ = 'user'
    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(64), unique=True, nullable=False, index=True)
    email = db.Column(db.String(120), unique=True, nullable=False, index=True)
    password_hash = db.Column(db.String(256), nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow, nullable=False)

    def set_password(self, password):
        self.password_hash = bcrypt.generate_password_hash(password).decode('utf-8')

    def check_password(self, password):
        return bcrypt.check_password_hash(self.password_hash, password)

    def to_dict(self):
        return {
            'id': self.id,
            'username': self.username,
            'email': self.email,
        }


class Card(db.Model):
    """Catalog entry; one row per (rank, suit), never written after seeding."""
    __tablename__ = 'card'
    __table_args__ = (db.UniqueConstraint('rank', 'suit', name='uq_card_rank_suit'),)
    id = db.Column(db.Integer, primary_key=True)
    rank = db.Column(db.String(2), nullable=False, index=True)
    suit = db.Column(db.String(8), nullable=False)
    sort_order = db.Column(db.Integer, nullable=False)

    def to_dict(self):
        return {'id': self.id, 'rank': self.rank, 'suit': self.suit}


ADJECTIVES = ['brave', 'lucky', 'sleepy', 'swift', 'quiet', 'salty', 'bold', 'clever', 'jolly', 'shy']
COLOURS = ['green', 'blue', 'amber', 'coral', 'violet', 'silver', 'teal', 'crimson']
ANIMALS = ['dolphin', 'otter', 'marlin', 'walrus', 'heron', 'pike', 'seal', 'turtle', 'squid', 'carp']

def generate_game_name():
    """Generate a readable game name such as 'brave-green-dolphin'."""
    return '-'.join([random.choice(ADJECTIVES), random.choice(COLOURS), random.choice(ANIMALS)])


class Game(db.Model):
    __tablename__ = 'game'
    id = db.Column(db.Integer, primary_key=True)
    created_by = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=False)
    name = db.Column(db.String(64), nullable=False)
    max_players = db.Column(db.Integer, nullable=False, default=4)
    state = db.Column(db.String(16), nullable=False, default=GameState.LOBBY, index=True) # lobby, active, finished
    current_turn_user_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow, nullable=False)
    players = db.relationship('GamePlayer', back_populates='game', order_by='GamePlayer.id')

    def __init__(self, **kwargs):
        super(Game, self).__init__(**kwargs)
        if not self.name:
            self.name = generate_game_name()

    def to_dict(self, include_players=True):
        data = {
            'id': self.id,
            'name': self.name,
            'created_by': self.created_by,
            'max_players': self.max_players,
            'state': self.state,
            'current_turn_user_id': self.current_turn_user_id,
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'player_count': len(self.players),
        }
        if include_players:
            data['players'] = [p.to_dict() for p in self.players]
        return data


class GamePlayer(db.Model):
    __tablename__ = 'game_player'
    __table_args__ = (db.UniqueConstraint('game_id', 'user_id', name='uq_game_player'),)
    id = db.Column(db.Integer, primary_key=True)
    game_id = db.Column(db.Integer, db.ForeignKey('game.id'), nullable=False, index=True)
    user_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=False, index=True)
    # Turn order, assigned when the game starts
    position = db.Column(db.Integer, nullable=True)
    joined_at = db.Column(db.DateTime(timezone=True), default=_utcnow, nullable=False)
    game = db.relationship('Game', back_populates='players')
    user = db.relationship('User')

    def to_dict(self):
        return {
            'user_id': self.user_id,
            'username': self.user.username if self.user else None,
            'position': self.position,
        }


class GameCard(db.Model):
    """A physical card of one game's deck.

    owner_id is DECK_OWNER while the card is undealt, otherwise the id of the
    user holding it. position orders the undealt cards and is cleared as soon
    as the card leaves the deck.
    """
    __tablename__ = 'game_card'
    __table_args__ = (
        db.CheckConstraint('owner_id >= 0', name='ck_game_card_owner'),
        db.CheckConstraint('owner_id = 0 OR position IS NULL', name='ck_game_card_position'),
        db.Index('ix_game_card_game_owner', 'game_id', 'owner_id'),
    )
    id = db.Column(db.Integer, primary_key=True)
    game_id = db.Column(db.Integer, db.ForeignKey('game.id'), nullable=False)
    card_id = db.Column(db.Integer, db.ForeignKey('card.id'), nullable=False)
    owner_id = db.Column(db.Integer, nullable=False, default=DECK_OWNER)
    position = db.Column(db.Integer, nullable=True)
    card = db.relationship('Card')


class PlayerBook(db.Model):
    __tablename__ = 'player_book'
    __table_args__ = (db.UniqueConstraint('game_id', 'user_id', 'rank', name='uq_player_book'),)
    id = db.Column(db.Integer, primary_key=True)
    game_id = db.Column(db.Integer, db.ForeignKey('game.id'), nullable=False, index=True)
    user_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=False)
    rank = db.Column(db.String(2), nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow, nullable=False)


class ChatMessage(db.Model):
    __tablename__ = 'chat_message'
    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=False)
    message = db.Column(db.Text, nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow, nullable=False, index=True)
    user = db.relationship('User')

    def to_dict(self):
        return {
            'id': self.id,
            'user_id': self.user_id,
            'username': self.user.username if self.user else None,
            'message': self.message,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }
