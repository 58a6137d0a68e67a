# domain/errors.py
from __future__ import annotations


class BracketError(Exception):
    pass


class InvalidInputError(BracketError):
    pass


class InvalidResultError(InvalidInputError):
    """Tied or negative scores. Also an InvalidInputError."""


class NotFoundError(BracketError):
    pass


class IncompleteMatchupError(BracketError):
    pass


class BracketStateError(BracketError):
    pass
