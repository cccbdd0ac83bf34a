class GameError(Exception):
    """Base class for rule violations reported back to the player."""
    status_code = 400
    default_message = 'Invalid game action'

    def __init__(self, message=None):
        self.message = message or self.default_message
        super().__init__(self.message)


class InsufficientPlayersError(GameError):
    default_message = 'insufficient players'


class GameStateError(GameError):
    default_message = 'Game is not in the right state for this action'


class GameFullError(GameError):
    default_message = 'Game is full'


class AlreadyJoinedError(GameError):
    default_message = 'You are already in this game'


class InvalidMoveError(GameError):
    default_message = 'Invalid move'


class NotYourTurnError(GameError):
    status_code = 403
    default_message = 'It is not your turn'


class GameNotFoundError(GameError):
    status_code = 404
    default_message = 'Game not found'


class CatalogError(GameError):
    status_code = 500
    default_message = 'Card catalog is not seeded'
