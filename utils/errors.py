"""
Error types raised by the database layer and services
"""

from typing import Optional


class BotError(Exception):
    """Base class for every error the bot reports back to a user"""

    title = "Error"

    def __init__(self, message: Optional[str] = None) -> None:
        super().__init__(message or self.__class__.__doc__ or self.title)

    @property
    def message(self) -> str:
        return str(self)


class MissingGuildContext(BotError):
    """This command can only be used in a server."""

    title = "Unavailable"


class ConversionError(BotError, ValueError):
    """An identifier does not fit in a 64-bit database integer."""

    title = "Invalid Identifier"


class InvalidInput(BotError, ValueError):
    """A required field was missing or blank."""

    title = "Invalid Input"


class NotFound(BotError):
    """The requested entry does not exist."""

    title = "Not Found"


class InsufficientBalance(BotError):
    """You don't have enough stars for that."""

    title = "Not Enough Stars"

    def __init__(self, user_id: int, requested: int, balance: int) -> None:
        self.user_id = user_id
        self.requested = requested
        self.balance = balance
        super().__init__(
            f"You need {requested} star(s) but only have {balance}."
        )


class PersistenceFailure(BotError):
    """A database error occurred. Please try again later."""

    title = "Database Error"


class MessagingFailure(BotError):
    """Discord rejected a request made by the bot."""

    title = "Discord Error"

    def __init__(self, message: Optional[str] = None, *, target_id: Optional[int] = None) -> None:
        self.target_id = target_id
        super().__init__(message)
