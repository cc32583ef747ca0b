"""
Exceptions raised by the Tak engine, codec and evaluators.
"""


class TakError(Exception):
    """Base class for all alpha_tak errors."""


class IllegalMoveError(TakError):
    """Raised when a turn breaks the rules; the game state is left untouched."""


class EncodingMismatchError(TakError):
    """Raised when a turn or index lies outside the action space of a board size."""


class EvaluatorUnavailableError(TakError):
    """Raised when an evaluator cannot be loaded from or saved to disk."""


class PTNParseError(TakError, ValueError):
    """Raised when text is not valid Portable Tak Notation."""
