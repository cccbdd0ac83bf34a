"""Game domain services: deck, dealing, turns and books.

This package contains the game engine that HTTP routes and socket
handlers call into, keeping transport concerns separated from core game
mechanics. All game state lives in the database; every mutating
operation runs inside ``transaction()``.
"""
from contextlib import contextmanager

from gofish import db


@contextmanager
def transaction():
    """Commit the session on success, roll back and re-raise on failure."""
    try:
        yield db.session
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
